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
"""SessionTokenStore — binds one CSRF token to each session."""

from __future__ import annotations

import asyncio
import weakref

import structlog

from flyguard.csrf.token import TokenGenerator
from flyguard.session.ports.outbound import SessionStore
from flyguard.session.session import HttpSession

logger = structlog.get_logger("flyguard.csrf")

_DEFAULT_SESSION_KEY = "_token"


class SessionTokenStore:
    """Reads, lazily creates and rotates the token held by an :class:`HttpSession`.

    Generation happens under a per-session ``asyncio.Lock``. When the backing
    :class:`SessionStore` is supplied, the lock holder first re-reads the
    persisted session and writes any new token straight through, so two
    concurrent first requests for the same session end up with one token.
    Nothing is cached here; every call reads the request's session.
    """

    def __init__(
        self,
        generator: TokenGenerator | None = None,
        *,
        session_key: str = _DEFAULT_SESSION_KEY,
        backend: SessionStore | None = None,
        ttl: int = 1800,
    ) -> None:
        self._generator = generator or TokenGenerator()
        self._key = session_key
        self._backend = backend
        self._ttl = ttl
        self._locks: weakref.WeakValueDictionary[str, asyncio.Lock] = weakref.WeakValueDictionary()

    @property
    def session_key(self) -> str:
        return self._key

    def peek(self, session: HttpSession | None) -> str | None:
        """Return the session's token without generating one."""
        if session is None:
            return None
        token = session.get_attribute(self._key)
        return token if isinstance(token, str) and token else None

    async def current_token(self, session: HttpSession) -> str:
        """Return the session's token, generating and persisting it on first access."""
        token = self.peek(session)
        if token is not None:
            return token

        async with self._lock_for(session.id):
            token = self.peek(session)
            if token is not None:
                return token

            token = await self._load_persisted(session)
            if token is not None:
                session.set_attribute(self._key, token)
                return token

            token = self._generator.generate()
            await self._persist(session, token)
            logger.debug("csrf_token_generated", session_id=session.id)
            return token

    async def regenerate(self, session: HttpSession) -> str:
        """Replace the session's token; the previous value stops validating immediately."""
        async with self._lock_for(session.id):
            token = self._generator.generate()
            await self._persist(session, token)
        logger.debug("csrf_token_regenerated", session_id=session.id)
        return token

    def _lock_for(self, session_id: str) -> asyncio.Lock:
        lock = self._locks.get(session_id)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[session_id] = lock
        return lock

    async def _load_persisted(self, session: HttpSession) -> str | None:
        if self._backend is None or session.is_new:
            return None
        data = await self._backend.get(session.id)
        if not data:
            return None
        token = data.get(self._key)
        return token if isinstance(token, str) and token else None

    async def _persist(self, session: HttpSession, token: str) -> None:
        session.set_attribute(self._key, token)
        if self._backend is not None and not session.invalidated:
            await self._backend.save(session.id, session.to_record(), self._ttl)
