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
"""CSRF token generation and timing-safe comparison.

Tokens are 32 bytes from the operating system's CSPRNG, encoded as
URL-safe base64 without padding so they can travel in headers, cookies and
form fields without escaping.
"""

from __future__ import annotations

import secrets

from flyguard.kernel.exceptions import RandomSourceExhaustedException

# ---------------------------------------------------------------------------
# Constants
# ---------------------------------------------------------------------------
TOKEN_ENTROPY_BYTES: int = 32
"""Random bytes drawn per token before encoding."""

PROTECTED_METHODS: frozenset[str] = frozenset({"POST", "PUT", "PATCH", "DELETE"})
"""HTTP methods that require CSRF validation."""


class TokenGenerator:
    """Produces unpredictable, URL-safe CSRF tokens.

    Args:
        nbytes: Entropy per token. Values below :data:`TOKEN_ENTROPY_BYTES`
            are rejected.
    """

    def __init__(self, nbytes: int = TOKEN_ENTROPY_BYTES) -> None:
        if nbytes < TOKEN_ENTROPY_BYTES:
            raise ValueError(f"CSRF tokens need at least {TOKEN_ENTROPY_BYTES} bytes of entropy, got {nbytes}")
        self._nbytes = nbytes

    def generate(self) -> str:
        """Return a fresh token (43 characters for the default 32 bytes).

        Raises:
            RandomSourceExhaustedException: The OS randomness source failed.
        """
        try:
            return secrets.token_urlsafe(self._nbytes)
        except (OSError, NotImplementedError) as exc:
            raise RandomSourceExhaustedException(
                "Secure random source unavailable; cannot generate CSRF token",
                code="CSRF_RANDOM_SOURCE",
            ) from exc


_default_generator = TokenGenerator()


def generate_csrf_token() -> str:
    """Generate a token with the default :class:`TokenGenerator`."""
    return _default_generator.generate()


def tokens_match(expected: str, candidate: str) -> bool:
    """Compare two tokens in constant time.

    An empty *expected* value never matches, whatever the candidate.
    """
    if not expected:
        return False
    return secrets.compare_digest(
        expected.encode("utf-8", "surrogatepass"),
        candidate.encode("utf-8", "surrogatepass"),
    )
