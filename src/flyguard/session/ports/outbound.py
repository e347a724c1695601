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
"""SessionStore — outbound port for persisting session records.

A record is the JSON-ready mapping produced by
:meth:`HttpSession.to_record`: application attributes, the CSRF token under
the configured session key (``_token`` by default) and ``_created_at``.
"""

from __future__ import annotations

from typing import Any, Protocol, runtime_checkable


@runtime_checkable
class SessionStore(Protocol):
    """Where :class:`SessionFilter` and :class:`SessionTokenStore` keep session records.

    ``save`` replaces the whole record and restarts its lifetime; a record
    older than *ttl* seconds must read as missing. ``get`` returns a record
    the caller may mutate without affecting the stored copy. Every worker
    serving the application must see the same records, or concurrent first
    requests could bind different CSRF tokens to one session.
    """

    async def get(self, session_id: str) -> dict[str, Any] | None: ...

    async def save(self, session_id: str, data: dict[str, Any], ttl: int) -> None: ...

    async def delete(self, session_id: str) -> None: ...

    async def exists(self, session_id: str) -> bool: ...
