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
"""FlyGuard exception hierarchy.

Per-request CSRF failures are modelled as exceptions internally and turned
into :class:`~flyguard.csrf.validator.Decision` values before they reach the
HTTP layer. Configuration and environment failures are fatal and propagate.
"""

from __future__ import annotations

from flyguard.kernel.types import ReasonCode

# =============================================================================
# Base Exception
# =============================================================================


class FlyGuardException(Exception):
    """Base exception for all FlyGuard errors.

    Carries an optional error code and context dict for structured error data.

    Args:
        message: Human-readable error description.
        code: Machine-readable error code (e.g. "CSRF_001").
        context: Arbitrary key-value pairs for error context and debugging.
    """

    def __init__(
        self,
        message: str,
        code: str | None = None,
        context: dict | None = None,
    ) -> None:
        super().__init__(message)
        self.code = code
        self.context: dict = context if context is not None else {}


# =============================================================================
# Security Exceptions
# =============================================================================


class SecurityException(FlyGuardException):
    """Request verification failures."""


class CsrfTokenException(SecurityException):
    """A state-changing request failed CSRF token verification.

    Subclasses pin :attr:`reason` to the matching :class:`ReasonCode`.
    """

    reason: ReasonCode = ReasonCode.TOKEN_MISMATCH

    def __init__(self, message: str, context: dict | None = None) -> None:
        super().__init__(message, code=self.reason.value, context=context)


class TokenMissingException(CsrfTokenException):
    """No candidate token was supplied, or the session holds no token yet."""

    reason = ReasonCode.TOKEN_MISSING


class TokenMismatchException(CsrfTokenException):
    """The candidate token does not equal the session token."""

    reason = ReasonCode.TOKEN_MISMATCH


class TokenMalformedException(CsrfTokenException):
    """The candidate token could not be decoded or decrypted."""

    reason = ReasonCode.TOKEN_MALFORMED


# =============================================================================
# Infrastructure Exceptions
# =============================================================================


class InfrastructureException(FlyGuardException):
    """Environment failures the library cannot recover from."""


class RandomSourceExhaustedException(InfrastructureException):
    """The operating system's secure randomness source is unavailable."""


# =============================================================================
# Configuration Exceptions
# =============================================================================


class ConfigurationException(FlyGuardException):
    """Invalid configuration detected at load time."""


class ExclusionConfigInvalidException(ConfigurationException):
    """An exclusion pattern is malformed."""


class CookieKeyInvalidException(ConfigurationException):
    """The side-channel cookie encryption key is missing or malformed."""
