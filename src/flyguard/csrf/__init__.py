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
"""CSRF protection core — tokens, exclusions, validation and the side-channel cookie."""

from flyguard.csrf.cookie import CookieEncrypter, CookieInstruction, CookieIssuer
from flyguard.csrf.matcher import ExclusionRule, PatternMatcher, RuleKind, normalize_path
from flyguard.csrf.protection import CsrfProtection
from flyguard.csrf.store import SessionTokenStore
from flyguard.csrf.token import PROTECTED_METHODS, TokenGenerator, generate_csrf_token, tokens_match
from flyguard.csrf.validator import CandidateSource, Decision, RequestValidator, ValidationContext
from flyguard.kernel.types import CsrfState

__all__ = [
    "PROTECTED_METHODS",
    "CandidateSource",
    "CookieEncrypter",
    "CookieInstruction",
    "CookieIssuer",
    "CsrfProtection",
    "CsrfState",
    "Decision",
    "ExclusionRule",
    "PatternMatcher",
    "RequestValidator",
    "RuleKind",
    "SessionTokenStore",
    "TokenGenerator",
    "ValidationContext",
    "generate_csrf_token",
    "normalize_path",
    "tokens_match",
]
