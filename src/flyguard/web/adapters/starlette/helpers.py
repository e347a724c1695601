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
"""Request-level helpers for handlers and templates."""

from __future__ import annotations

from typing import Any

from flyguard.csrf.protection import CsrfProtection
from flyguard.kernel.exceptions import ConfigurationException
from flyguard.session.session import HttpSession


def _resolve(request: Any) -> tuple[CsrfProtection, HttpSession]:
    protection = getattr(request.state, "csrf_protection", None)
    session = getattr(request.state, "session", None)
    if protection is None or session is None:
        raise ConfigurationException(
            "CSRF helpers need SessionFilter and CsrfFilter in the filter chain",
            code="CSRF_NOT_INSTALLED",
        )
    return protection, session


async def csrf_token(request: Any) -> str:
    """Return the current session's token, for a hidden ``_token`` field or meta tag."""
    protection, session = _resolve(request)
    return await protection.token_store.current_token(session)


async def regenerate_csrf_token(request: Any) -> str:
    """Rotate the session's token. Call at login and logout."""
    protection, session = _resolve(request)
    return await protection.token_store.regenerate(session)
