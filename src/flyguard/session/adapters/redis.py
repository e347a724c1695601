# Copyright 2026 Firefly Software Solutions Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.
"""Redis-backed session store."""

from __future__ import annotations

import json
from typing import Any, cast

import structlog

logger = structlog.get_logger("flyguard.session")

_KEY_PREFIX = "flyguard:session:"


class RedisSessionStore:
    """Session store backed by ``redis.asyncio``.

    Records are stored as JSON under ``{key_prefix}{session_id}`` with a Redis
    TTL, so every worker process sees the same CSRF token for a session. A
    record that is not a JSON object is treated as missing.
    """

    def __init__(self, client: Any, key_prefix: str = _KEY_PREFIX) -> None:
        self._client = client
        self._prefix = key_prefix

    @classmethod
    def from_url(cls, url: str) -> RedisSessionStore:
        import redis.asyncio as aioredis

        return cls(client=aioredis.from_url(url))

    def _key(self, session_id: str) -> str:
        return f"{self._prefix}{session_id}"

    async def get(self, session_id: str) -> dict[str, Any] | None:
        """Retrieve and deserialize session data."""
        raw = await self._client.get(self._key(session_id))
        if raw is None:
            return None
        try:
            record = json.loads(raw)
        except (json.JSONDecodeError, TypeError, UnicodeDecodeError):
            record = None
        if not isinstance(record, dict):
            logger.warning("session_deserialize_failed", session_id=session_id)
            return None
        return cast(dict[str, Any], record)

    async def save(self, session_id: str, data: dict[str, Any], ttl: int) -> None:
        """Serialize and store session data with a TTL in seconds."""
        await self._client.set(self._key(session_id), json.dumps(data).encode(), ex=ttl)

    async def delete(self, session_id: str) -> None:
        await self._client.delete(self._key(session_id))

    async def exists(self, session_id: str) -> bool:
        count = await self._client.exists(self._key(session_id))
        return cast(bool, count > 0)
