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
"""Exclusion rules — which request paths skip CSRF verification.

Three rule forms are supported:

* **Exact** — ``"webhooks/github"`` matches only that path.
* **Trailing wildcard** — ``"stripe/*"`` matches every path that starts with
  ``"stripe/"``. A bare ``"*"`` matches everything.
* **Full URI** — ``"https://hooks.example.com/stripe/*"`` is matched against
  the complete request URI, so the exclusion only applies to that scheme and
  host.

Paths are compared after normalization: percent-decoded, duplicate slashes
collapsed and the leading slash removed (``"/stripe//webhook"`` becomes
``"stripe/webhook"``; the root path stays ``"/"``). Matching is
case-sensitive except for the URI scheme and host.
"""

from __future__ import annotations

import enum
import re
from collections.abc import Iterable
from dataclasses import dataclass
from urllib.parse import unquote, urlsplit

import structlog

from flyguard.kernel.exceptions import ExclusionConfigInvalidException

logger = structlog.get_logger("flyguard.csrf")

_DUPLICATE_SLASHES = re.compile(r"/{2,}")
_URI_SCHEMES = frozenset({"http", "https"})


def normalize_path(path: str) -> str:
    """Return *path* decoded, de-duplicated and without its leading slash.

    *path* must be percent-encoded as sent on the wire (ASGI ``raw_path``),
    never a framework's already-decoded path: it is decoded exactly once
    here, so ``%2568ooks`` stays ``%68ooks`` and cannot pose as ``hooks``.
    """
    collapsed = _DUPLICATE_SLASHES.sub("/", unquote(path))
    return collapsed.lstrip("/") or "/"


def _normalize_prefix(prefix: str) -> str:
    return _DUPLICATE_SLASHES.sub("/", unquote(prefix)).lstrip("/")


class RuleKind(enum.Enum):
    EXACT = "exact"
    PREFIX = "prefix"
    URI = "uri"


@dataclass(frozen=True)
class ExclusionRule:
    """A parsed, immutable exclusion pattern.

    Build instances with :meth:`parse`; the constructor does no validation.
    """

    pattern: str
    kind: RuleKind
    path: str
    wildcard: bool = False
    scheme: str | None = None
    host: str | None = None

    @classmethod
    def parse(cls, pattern: str) -> ExclusionRule:
        """Parse *pattern* into a rule.

        Raises:
            ExclusionConfigInvalidException: The pattern is empty, contains
                whitespace, places ``*`` anywhere but at the end, or is a URI
                without an http(s) scheme and host.
        """
        if not isinstance(pattern, str) or not pattern:
            raise ExclusionConfigInvalidException(
                "Exclusion pattern must be a non-empty string",
                code="CSRF_EXCLUSION_EMPTY",
                context={"pattern": pattern},
            )
        if any(ch.isspace() for ch in pattern):
            raise ExclusionConfigInvalidException(
                f"Exclusion pattern '{pattern}' contains whitespace",
                code="CSRF_EXCLUSION_WHITESPACE",
                context={"pattern": pattern},
            )

        if "://" in pattern:
            return cls._parse_uri(pattern)

        path, wildcard = cls._split_wildcard(pattern, pattern)
        if wildcard and not path:
            logger.warning("csrf_exclude_all_paths", pattern=pattern)
        return cls(pattern=pattern, kind=RuleKind.PREFIX if wildcard else RuleKind.EXACT, path=path, wildcard=wildcard)

    @classmethod
    def _parse_uri(cls, pattern: str) -> ExclusionRule:
        parts = urlsplit(pattern)
        if parts.scheme.lower() not in _URI_SCHEMES or not parts.netloc:
            raise ExclusionConfigInvalidException(
                f"URI exclusion pattern '{pattern}' needs an http(s) scheme and a host",
                code="CSRF_EXCLUSION_URI",
                context={"pattern": pattern},
            )
        if "*" in parts.netloc or parts.query or parts.fragment:
            raise ExclusionConfigInvalidException(
                f"URI exclusion pattern '{pattern}' may only use a wildcard at the end of its path",
                code="CSRF_EXCLUSION_URI",
                context={"pattern": pattern},
            )
        path, wildcard = cls._split_wildcard(pattern, parts.path or "/")
        return cls(
            pattern=pattern,
            kind=RuleKind.URI,
            path=path,
            wildcard=wildcard,
            scheme=parts.scheme.lower(),
            host=parts.netloc.lower(),
        )

    @staticmethod
    def _split_wildcard(pattern: str, raw_path: str) -> tuple[str, bool]:
        star = raw_path.find("*")
        if star == -1:
            return normalize_path(raw_path), False
        if star != len(raw_path) - 1:
            raise ExclusionConfigInvalidException(
                f"Exclusion pattern '{pattern}' may only use '*' as its last character",
                code="CSRF_EXCLUSION_WILDCARD",
                context={"pattern": pattern},
            )
        return _normalize_prefix(raw_path[:-1]), True

    def matches(self, path: str, uri: str | None = None) -> bool:
        """Return ``True`` if this rule covers the request.

        *path* is the percent-encoded request path and *uri* the complete
        request URI in the same encoded form; *uri* is only consulted by URI
        rules, which never match without it.
        """
        if self.kind is RuleKind.URI:
            if uri is None:
                return False
            parts = urlsplit(uri)
            if parts.scheme.lower() != self.scheme or parts.netloc.lower() != self.host:
                return False
            return self._match_path(normalize_path(parts.path or "/"))
        return self._match_path(normalize_path(path))

    def _match_path(self, normalized: str) -> bool:
        if self.wildcard:
            return normalized.startswith(self.path)
        return normalized == self.path


class PatternMatcher:
    """Evaluates a fixed set of exclusion rules.

    The rule set is parsed once at construction and is read-only afterwards.
    A request is excluded when *any* rule matches.
    """

    def __init__(self, patterns: Iterable[str | ExclusionRule] = ()) -> None:
        self._rules: tuple[ExclusionRule, ...] = tuple(
            p if isinstance(p, ExclusionRule) else ExclusionRule.parse(p) for p in patterns
        )

    @property
    def rules(self) -> tuple[ExclusionRule, ...]:
        return self._rules

    def matches(self, path: str, rule: ExclusionRule | str, uri: str | None = None) -> bool:
        """Return ``True`` if *rule* covers *path* (or *uri* for URI rules)."""
        if isinstance(rule, str):
            rule = ExclusionRule.parse(rule)
        return rule.matches(path, uri)

    def find_match(self, path: str, uri: str | None = None) -> ExclusionRule | None:
        """Return a rule covering the request, or ``None``."""
        for rule in self._rules:
            if rule.matches(path, uri):
                return rule
        return None

    def is_excluded(self, path: str, uri: str | None = None) -> bool:
        return self.find_match(path, uri) is not None

    def __len__(self) -> int:
        return len(self._rules)
