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
"""CsrfProtection — orchestrates method, exclusion and token checks.

Each request walks ``INIT → METHOD_CHECK → EXCLUSION_CHECK →
TOKEN_VALIDATION`` and ends in ``ALLOWED`` or ``REJECTED``. The result is a
:class:`~flyguard.csrf.validator.Decision` value; nothing is raised across
this boundary for a failed verification, and mapping a rejection onto an
HTTP status is left to the caller.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import TYPE_CHECKING

import structlog

from flyguard.csrf.cookie import CookieEncrypter, CookieInstruction, CookieIssuer
from flyguard.csrf.matcher import PatternMatcher
from flyguard.csrf.store import SessionTokenStore
from flyguard.csrf.token import PROTECTED_METHODS, TokenGenerator
from flyguard.csrf.validator import Decision, RequestValidator, ValidationContext
from flyguard.kernel.exceptions import CookieKeyInvalidException
from flyguard.kernel.types import CsrfState, ReasonCode
from flyguard.session.session import HttpSession

if TYPE_CHECKING:
    from flyguard.config.properties.csrf import CsrfProperties
    from flyguard.session.ports.outbound import SessionStore

logger = structlog.get_logger("flyguard.csrf")


class CsrfProtection:
    """Decides whether a request may reach the application handler.

    Args:
        token_store: Source of the session-bound token.
        validator: Extracts and compares the request's candidate token.
        matcher: Exclusion rules; requests they cover skip verification.
        cookie_issuer: Builds the ``XSRF-TOKEN`` cookie. ``None`` disables it.
        test_mode: Allow every request without verification. Must be set
            explicitly; it is never derived from the environment.
    """

    def __init__(
        self,
        token_store: SessionTokenStore,
        validator: RequestValidator,
        matcher: PatternMatcher | None = None,
        cookie_issuer: CookieIssuer | None = None,
        *,
        test_mode: bool = False,
        protected_methods: Iterable[str] = PROTECTED_METHODS,
    ) -> None:
        self._token_store = token_store
        self._validator = validator
        self._matcher = matcher or PatternMatcher()
        self._cookie_issuer = cookie_issuer
        self._test_mode = test_mode
        self._protected_methods = frozenset(m.upper() for m in protected_methods)

        if test_mode:
            logger.warning("csrf_test_mode_enabled")

    @classmethod
    def from_properties(
        cls,
        props: CsrfProperties,
        *,
        backend: SessionStore | None = None,
        session_ttl: int = 1800,
        generator: TokenGenerator | None = None,
    ) -> CsrfProtection:
        """Assemble the protection from bound ``flyguard.csrf`` properties.

        Raises:
            CookieKeyInvalidException: ``add-cookie`` is on but no key is set,
                or a key is malformed.
            ExclusionConfigInvalidException: An exclusion pattern is malformed.
        """
        encrypter: CookieEncrypter | None = None
        if props.key is not None:
            encrypter = CookieEncrypter(
                props.key.get_secret_value(),
                [k.get_secret_value() for k in props.previous_keys],
            )
        elif props.add_cookie:
            raise CookieKeyInvalidException(
                "flyguard.csrf.key is required while flyguard.csrf.add-cookie is enabled",
                code="CSRF_COOKIE_KEY",
            )

        issuer: CookieIssuer | None = None
        if props.add_cookie and encrypter is not None:
            issuer = CookieIssuer(
                encrypter,
                props.cookie_name,
                path=props.cookie.path,
                domain=props.cookie.domain,
                secure=props.cookie.secure,
                same_site=props.cookie.same_site,
                lifetime=props.cookie.lifetime,
            )

        return cls(
            token_store=SessionTokenStore(
                generator,
                session_key=props.session_key,
                backend=backend,
                ttl=session_ttl,
            ),
            validator=RequestValidator(
                encrypter,
                field_name=props.field_name,
                header_name=props.header_name,
                xsrf_header_name=props.xsrf_header_name,
            ),
            matcher=PatternMatcher(props.exclude),
            cookie_issuer=issuer,
            test_mode=props.test_mode,
        )

    @property
    def token_store(self) -> SessionTokenStore:
        return self._token_store

    @property
    def matcher(self) -> PatternMatcher:
        return self._matcher

    @property
    def test_mode(self) -> bool:
        return self._test_mode

    def requires_verification(self, method: str, path: str, uri: str | None = None) -> bool:
        """Return ``True`` if a request would reach token validation.

        Lets the HTTP layer skip reading the body of requests that are never
        checked (excluded webhooks, safe methods).
        """
        if self._test_mode or method.upper() not in self._protected_methods:
            return False
        return not self._matcher.is_excluded(path, uri)

    def decide(self, context: ValidationContext, session_token: str | None) -> Decision:
        """Run the state machine for *context* against a known session token."""
        context.session_token = session_token

        if self._test_mode:
            logger.debug("csrf_test_mode_bypass", method=context.method, path=context.path)
            return self._finish(context, Decision.allow(ReasonCode.TEST_MODE))

        context.state = CsrfState.METHOD_CHECK
        if context.method not in self._protected_methods:
            return self._finish(context, Decision.allow(ReasonCode.SAFE_METHOD))

        context.state = CsrfState.EXCLUSION_CHECK
        rule = self._matcher.find_match(context.path, context.uri)
        if rule is not None:
            logger.debug("csrf_excluded", method=context.method, path=context.path, rule=rule.pattern)
            return self._finish(context, Decision.allow(ReasonCode.EXCLUDED))

        context.state = CsrfState.TOKEN_VALIDATION
        decision = self._validator.validate(context, session_token)
        if decision.rejected:
            logger.warning(
                "csrf_rejected",
                method=context.method,
                path=context.path,
                reason=decision.reason.value,
                source=context.candidate_source.value if context.candidate_source else None,
            )
        return self._finish(context, decision)

    async def evaluate(self, context: ValidationContext, session: HttpSession | None) -> Decision:
        """Decide for a request belonging to *session* (``None`` if it has none)."""
        return self.decide(context, self._token_store.peek(session))

    async def cookie_for(self, session: HttpSession | None) -> CookieInstruction | None:
        """Return the ``XSRF-TOKEN`` cookie carrying the session's current token."""
        if self._cookie_issuer is None or session is None or session.invalidated:
            return None
        token = await self._token_store.current_token(session)
        return self._cookie_issuer.issue(token)

    @staticmethod
    def _finish(context: ValidationContext, decision: Decision) -> Decision:
        context.state = CsrfState.ALLOWED if decision.allowed else CsrfState.REJECTED
        context.decision = decision
        return decision
