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
"""WebFilterChainMiddleware — runs the ordered WebFilter chain as plain ASGI.

The downstream application is invoked as the innermost step of the chain.
Its response is buffered into a Starlette :class:`Response` so filters can
add cookies (session id, ``XSRF-TOKEN``) after the handler has run.
"""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any, cast

from starlette.requests import Request
from starlette.responses import Response
from starlette.types import ASGIApp, Message, Receive, Scope, Send

from flyguard.web.ordering import sort_filters
from flyguard.web.ports.filter import CallNext, WebFilter


class WebFilterChainMiddleware:
    """ASGI middleware executing *filters* outermost first, by ``@order``.

    A filter whose ``should_not_filter()`` returns ``True`` is stepped over.
    Non-HTTP scopes (lifespan, websocket) bypass the chain.
    """

    def __init__(self, app: ASGIApp, filters: Sequence[WebFilter] = ()) -> None:
        self.app = app
        self._filters = sort_filters(filters)

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self.app(scope, receive, send)
            return

        async def _endpoint(request: Request) -> Response:
            collector = _ResponseCollector()
            await self.app(scope, _downstream_receive(request, receive), collector)
            return collector.response()

        chain: CallNext = _endpoint
        for web_filter in reversed(self._filters):
            chain = _wrap(web_filter, chain)

        response = cast(Response, await chain(Request(scope, receive, send)))
        await response(scope, receive, send)


class _ResponseCollector:
    """ASGI ``send`` callable that buffers one HTTP response."""

    def __init__(self) -> None:
        self._status = 200
        self._headers: list[tuple[bytes, bytes]] = []
        self._body = bytearray()

    async def __call__(self, message: Message) -> None:
        if message["type"] == "http.response.start":
            self._status = message["status"]
            self._headers = list(message.get("headers", []))
        elif message["type"] == "http.response.body":
            self._body.extend(message.get("body", b""))

    def response(self) -> Response:
        response = Response(content=bytes(self._body), status_code=self._status)
        response.raw_headers[:] = self._headers
        return response


def _downstream_receive(request: Any, receive: Receive) -> Receive:
    """Replay a body that a filter consumed through ``request.body()``."""
    body: bytes | None = getattr(request, "_body", None)
    if body is None:
        return receive

    replayed = False

    async def _receive() -> Message:
        nonlocal replayed
        if not replayed:
            replayed = True
            return {"type": "http.request", "body": body, "more_body": False}
        return await receive()

    return _receive


def _wrap(web_filter: WebFilter, next_call: CallNext) -> CallNext:
    async def _step(request: Request) -> Response:
        if web_filter.should_not_filter(request):
            return cast(Response, await next_call(request))
        return cast(Response, await web_filter.do_filter(request, next_call))

    return _step
