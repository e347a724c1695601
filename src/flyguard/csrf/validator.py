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
"""RequestValidator — extracts the candidate token and compares it to the session's.

Extraction order, first non-empty wins:

1. the ``_token`` input field (form or JSON body),
2. the ``X-CSRF-TOKEN`` header (plain token),
3. the ``X-XSRF-TOKEN`` header (the encrypted ``XSRF-TOKEN`` cookie echoed
   back by client-side script; decrypted before comparison).

Only the first candidate found is checked; sources are never combined.
"""

from __future__ import annotations

import enum
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Any

from flyguard.csrf.cookie import CookieEncrypter
from flyguard.csrf.token import tokens_match
from flyguard.kernel.exceptions import (
    CsrfTokenException,
    TokenMalformedException,
    TokenMismatchException,
    TokenMissingException,
)
from flyguard.kernel.types import CsrfState, ReasonCode

_TOKEN_RE = re.compile(r"[A-Za-z0-9_-]+")


class CandidateSource(str, enum.Enum):
    FIELD = "field"
    HEADER = "header"
    XSRF_HEADER = "xsrf_header"


@dataclass(frozen=True)
class Decision:
    """Outcome of CSRF verification for one request."""

    allowed: bool
    reason: ReasonCode
    detail: str | None = None

    @classmethod
    def allow(cls, reason: ReasonCode) -> Decision:
        return cls(allowed=True, reason=reason)

    @classmethod
    def deny(cls, reason: ReasonCode, detail: str | None = None) -> Decision:
        return cls(allowed=False, reason=reason, detail=detail)

    @property
    def rejected(self) -> bool:
        return not self.allowed


@dataclass
class ValidationContext:
    """Transient per-request state.

    The HTTP layer fills the request fields; :class:`CsrfProtection` records
    the state, candidate source and decision as it runs. Header names are
    matched case-insensitively.
    """

    method: str
    path: str
    uri: str | None = None
    headers: Mapping[str, str] = field(default_factory=dict)
    fields: Mapping[str, Any] = field(default_factory=dict)

    state: CsrfState = CsrfState.INIT
    session_token: str | None = None
    candidate_source: CandidateSource | None = None
    decision: Decision | None = None

    def __post_init__(self) -> None:
        self.method = self.method.upper()
        self.headers = {str(k).lower(): v for k, v in self.headers.items()}

    def header(self, name: str) -> str | None:
        return self.headers.get(name.lower())

    @property
    def reason(self) -> ReasonCode | None:
        return self.decision.reason if self.decision is not None else None


class RequestValidator:
    """Compares a request's candidate token against the session token.

    Args:
        encrypter: Decrypts ``X-XSRF-TOKEN`` values. Without one, that
            header is always treated as malformed.
    """

    def __init__(
        self,
        encrypter: CookieEncrypter | None = None,
        *,
        field_name: str = "_token",
        header_name: str = "X-CSRF-TOKEN",
        xsrf_header_name: str = "X-XSRF-TOKEN",
    ) -> None:
        self._encrypter = encrypter
        self._field_name = field_name
        self._header_name = header_name
        self._xsrf_header_name = xsrf_header_name

    def extract(self, context: ValidationContext) -> tuple[Any, CandidateSource] | None:
        """Return the first non-empty raw candidate and where it came from."""
        value = context.fields.get(self._field_name)
        if value not in (None, ""):
            return value, CandidateSource.FIELD

        value = context.header(self._header_name)
        if value:
            return value, CandidateSource.HEADER

        value = context.header(self._xsrf_header_name)
        if value:
            return value, CandidateSource.XSRF_HEADER

        return None

    def validate(self, context: ValidationContext, session_token: str | None) -> Decision:
        """Return ALLOW when the candidate equals *session_token*, DENY otherwise."""
        try:
            self._verify(context, session_token)
        except CsrfTokenException as exc:
            return Decision.deny(exc.reason, str(exc))
        return Decision.allow(ReasonCode.TOKEN_VALID)

    def _verify(self, context: ValidationContext, session_token: str | None) -> None:
        found = self.extract(context)
        if found is None:
            raise TokenMissingException("CSRF token not supplied")
        raw, source = found
        context.candidate_source = source

        if not session_token:
            raise TokenMissingException("Session has no CSRF token")

        candidate = self._decode(raw, source)
        if not tokens_match(session_token, candidate):
            raise TokenMismatchException("CSRF token mismatch", context={"source": source.value})

    def _decode(self, raw: Any, source: CandidateSource) -> str:
        if not isinstance(raw, str):
            raise TokenMalformedException("CSRF token must be a string", context={"source": source.value})

        if source is not CandidateSource.XSRF_HEADER:
            return raw

        if self._encrypter is None:
            raise TokenMalformedException("Encrypted CSRF header is not accepted without a cookie key")
        plain = self._encrypter.decrypt(raw)
        if not _TOKEN_RE.fullmatch(plain):
            raise TokenMalformedException("Decrypted CSRF token is not URL-safe text", context={"source": source.value})
        return plain
