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
"""CsrfFilter — session-bound CSRF protection for Starlette applications.

* **Unsafe methods** (POST, PUT, PATCH, DELETE) on paths not covered by an
  exclusion rule must carry the session's token in the ``_token`` field, the
  ``X-CSRF-TOKEN`` header, or the encrypted ``X-XSRF-TOKEN`` header.
  Otherwise the handler is not called and the filter answers with the
  configured rejection status (419 by default).
* **Every response** gets a fresh ``XSRF-TOKEN`` cookie carrying the
  encrypted session token, so script clients always hold the current value.

Requires :class:`~flyguard.session.filter.SessionFilter` to run first.
"""

from __future__ import annotations

import json
from typing import Any
from urllib.parse import quote

from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from flyguard.csrf.protection import CsrfProtection
from flyguard.csrf.validator import Decision, ValidationContext
from flyguard.web.filters import ScopedFilter
from flyguard.web.ordering import order
from flyguard.web.ports.filter import CallNext

_FORM_TYPES = ("application/x-www-form-urlencoded", "multipart/form-data")


@order(-50)
class CsrfFilter(ScopedFilter):
    """Runs :class:`CsrfProtection` for each request and maps its decision to HTTP."""

    def __init__(
        self,
        protection: CsrfProtection,
        *,
        reject_status: int = 419,
        field_name: str = "_token",
    ) -> None:
        self._protection = protection
        self._reject_status = reject_status
        self._field_name = field_name

    @property
    def protection(self) -> CsrfProtection:
        return self._protection

    async def do_filter(self, request: Any, call_next: CallNext) -> Any:
        request.state.csrf_protection = self._protection
        session = getattr(request.state, "session", None)

        context = await self._build_context(request)
        decision = await self._protection.evaluate(context, session)
        request.state.csrf_decision = decision

        if decision.rejected:
            response = self._reject(decision)
        else:
            response = await call_next(request)

        cookie = await self._protection.cookie_for(session)
        if cookie is not None:
            response.set_cookie(**cookie.as_kwargs())
        return response

    def _reject(self, decision: Decision) -> Response:
        return JSONResponse(
            {"error": "CSRF token mismatch.", "reason": decision.reason.value},
            status_code=self._reject_status,
        )

    async def _build_context(self, request: Request) -> ValidationContext:
        path = _raw_path(request)
        uri = f"{request.url.scheme}://{request.url.netloc}{path}"
        fields: dict[str, Any] = {}
        if self._protection.requires_verification(request.method, path, uri):
            fields = await self._read_fields(request)
        return ValidationContext(
            method=request.method,
            path=path,
            uri=uri,
            headers=request.headers,
            fields=fields,
        )

    async def _read_fields(self, request: Request) -> dict[str, Any]:
        """Read the token input field from a form or JSON body."""
        content_type = request.headers.get("content-type", "").split(";", 1)[0].strip().lower()

        if content_type in _FORM_TYPES:
            await request.body()
            form = await request.form()
            try:
                value = form.get(self._field_name)
            finally:
                await form.close()
            return {} if value is None else {self._field_name: value}

        if content_type == "application/json" or content_type.endswith("+json"):
            body = await request.body()
            try:
                payload = json.loads(body) if body else None
            except ValueError:
                return {}
            if isinstance(payload, dict) and self._field_name in payload:
                return {self._field_name: payload[self._field_name]}

        return {}


def _raw_path(request: Request) -> str:
    """Return the request path still percent-encoded, as exclusion rules expect it."""
    raw: bytes | None = request.scope.get("raw_path")
    if raw:
        return raw.decode("latin-1").split("?", 1)[0]
    return quote(request.url.path, safe="/:@!$&'()*+,;=-._~")
