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
"""Reason codes and per-request states of a CSRF decision.

Denial reasons are what the HTTP layer reports back to the client; allow
reasons exist for observability only. All types use only the Python
standard library.
"""

from __future__ import annotations

from enum import Enum


class ReasonCode(str, Enum):
    """Why a request was allowed or rejected."""

    # Denials
    TOKEN_MISSING = "token_missing"
    TOKEN_MISMATCH = "token_mismatch"
    TOKEN_MALFORMED = "token_malformed"

    # Allowances
    SAFE_METHOD = "safe_method"
    EXCLUDED = "excluded"
    TEST_MODE = "test_mode"
    TOKEN_VALID = "token_valid"

    @property
    def is_denial(self) -> bool:
        return self in _DENIALS


_DENIALS = frozenset({ReasonCode.TOKEN_MISSING, ReasonCode.TOKEN_MISMATCH, ReasonCode.TOKEN_MALFORMED})


class CsrfState(str, Enum):
    """Where a request stands in ``CsrfProtection``'s state machine."""

    INIT = "init"
    METHOD_CHECK = "method_check"
    EXCLUSION_CHECK = "exclusion_check"
    TOKEN_VALIDATION = "token_validation"
    ALLOWED = "allowed"
    REJECTED = "rejected"
