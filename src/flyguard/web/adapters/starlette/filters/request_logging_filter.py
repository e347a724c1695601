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
"""RequestLoggingFilter — one structlog event per request, with its CSRF outcome."""

from __future__ import annotations

import time
from typing import cast

import structlog
from starlette.requests import Request
from starlette.responses import Response

from flyguard.web.filters import ScopedFilter
from flyguard.web.ordering import HIGHEST_PRECEDENCE, order
from flyguard.web.ports.filter import CallNext

logger = structlog.get_logger("flyguard.web")


@order(HIGHEST_PRECEDENCE + 200)
class RequestLoggingFilter(ScopedFilter):
    """Emits ``http_request`` (or ``http_request_failed``) after the response.

    The ``csrf`` field carries the decision's reason code, e.g.
    ``token_mismatch`` for a rejected form post, and is ``None`` when the
    CSRF filter did not run.
    """

    async def do_filter(self, request: Request, call_next: CallNext) -> Response:
        log = logger.bind(method=request.method, path=request.url.path)
        started = time.perf_counter()

        try:
            response = cast(Response, await call_next(request))
        except Exception as exc:
            log.error(
                "http_request_failed",
                duration_ms=_elapsed_ms(started),
                error=str(exc),
                error_type=type(exc).__name__,
            )
            raise

        decision = getattr(request.state, "csrf_decision", None)
        log.info(
            "http_request",
            status_code=response.status_code,
            duration_ms=_elapsed_ms(started),
            csrf=decision.reason.value if decision is not None else None,
        )
        return response


def _elapsed_ms(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)
