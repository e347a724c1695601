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
"""SessionFilter — binds each request to a server-side session via a cookie."""

from __future__ import annotations

from typing import Any

from flyguard.session.ports.outbound import SessionStore
from flyguard.session.session import HttpSession, new_session_id
from flyguard.web.filters import ScopedFilter
from flyguard.web.ordering import HIGHEST_PRECEDENCE, order
from flyguard.web.ports.filter import CallNext

_DEFAULT_COOKIE_NAME = "FLYGUARD_SESSION"
_DEFAULT_TTL = 1800  # 30 minutes


@order(HIGHEST_PRECEDENCE + 150)
class SessionFilter(ScopedFilter):
    """Exposes the request's :class:`HttpSession` as ``request.state.session``.

    An unknown or expired cookie yields a fresh session. After the handler
    runs the session is written back if it changed, its old record is
    dropped when the id was regenerated, and an invalidated session is
    deleted along with its cookie. Persistence happens even if the handler
    raises.
    """

    def __init__(
        self,
        store: SessionStore,
        cookie_name: str = _DEFAULT_COOKIE_NAME,
        ttl: int = _DEFAULT_TTL,
        *,
        secure: bool = True,
    ) -> None:
        self._store = store
        self._cookie_name = cookie_name
        self._ttl = ttl
        self._secure = secure

    @property
    def store(self) -> SessionStore:
        return self._store

    @property
    def ttl(self) -> int:
        return self._ttl

    async def do_filter(self, request: Any, call_next: CallNext) -> Any:
        session = await self._open(getattr(request, "cookies", {}).get(self._cookie_name))
        request.state.session = session
        try:
            response = await call_next(request)
        finally:
            await self._commit(session)
        self._write_cookie(response, session)
        return response

    async def _open(self, session_id: str | None) -> HttpSession:
        record = await self._store.get(session_id) if session_id else None
        if record is None:
            return HttpSession(new_session_id(), is_new=True)
        return HttpSession(session_id, record)  # type: ignore[arg-type]

    async def _commit(self, session: HttpSession) -> None:
        if session.previous_id is not None:
            await self._store.delete(session.previous_id)
        if session.invalidated:
            await self._store.delete(session.id)
        elif session.modified:
            await self._store.save(session.id, session.to_record(), self._ttl)

    def _write_cookie(self, response: Any, session: HttpSession) -> None:
        if session.invalidated:
            response.delete_cookie(key=self._cookie_name)
            return
        if session.is_new or session.previous_id is not None:
            response.set_cookie(
                key=self._cookie_name,
                value=session.id,
                max_age=self._ttl,
                httponly=True,
                secure=self._secure,
                samesite="lax",
            )
