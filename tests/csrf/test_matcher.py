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
"""Tests for exclusion rules and PatternMatcher."""

import pytest

from flyguard.csrf.matcher import ExclusionRule, PatternMatcher, RuleKind, normalize_path
from flyguard.kernel.exceptions import ExclusionConfigInvalidException


class TestNormalizePath:
    def test_strips_leading_slash(self):
        assert normalize_path("/stripe/webhook") == "stripe/webhook"

    def test_root(self):
        assert normalize_path("/") == "/"
        assert normalize_path("") == "/"

    def test_collapses_duplicate_slashes(self):
        assert normalize_path("//stripe///webhook") == "stripe/webhook"

    def test_percent_decoding(self):
        assert normalize_path("/stripe%2Fwebhook") == "stripe/webhook"
        assert normalize_path("/caf%C3%A9") == "café"

    def test_decodes_exactly_once(self):
        assert normalize_path("/%2568ooks/delete") == "%68ooks/delete"
        assert not PatternMatcher(["hooks/*"]).is_excluded("/%2568ooks/delete")

    def test_keeps_trailing_slash(self):
        assert normalize_path("/stripe/") == "stripe/"


class TestExclusionRuleParse:
    def test_exact(self):
        rule = ExclusionRule.parse("webhooks/github")
        assert rule.kind is RuleKind.EXACT
        assert rule.path == "webhooks/github"

    def test_leading_slash_is_ignored(self):
        assert ExclusionRule.parse("/webhooks/github").path == "webhooks/github"

    def test_prefix(self):
        rule = ExclusionRule.parse("stripe/*")
        assert rule.kind is RuleKind.PREFIX
        assert rule.path == "stripe/"
        assert rule.wildcard is True

    def test_uri(self):
        rule = ExclusionRule.parse("HTTPS://Hooks.Example.com/stripe/*")
        assert rule.kind is RuleKind.URI
        assert rule.scheme == "https"
        assert rule.host == "hooks.example.com"
        assert rule.path == "stripe/"

    @pytest.mark.parametrize(
        "pattern",
        ["", "stripe/*/events", "*/webhook", "stripe webhook", "ftp://example.com/x", "https:///x",
         "https://*.example.com/x", "https://example.com/x?y=1"],
    )
    def test_invalid_patterns(self, pattern):
        with pytest.raises(ExclusionConfigInvalidException):
            ExclusionRule.parse(pattern)

    def test_non_string_pattern(self):
        with pytest.raises(ExclusionConfigInvalidException):
            ExclusionRule.parse(None)  # type: ignore[arg-type]


class TestPatternMatcher:
    def test_prefix_wildcard(self):
        matcher = PatternMatcher(["stripe/*"])
        assert matcher.is_excluded("stripe/webhook")
        assert matcher.is_excluded("stripe/")
        assert matcher.is_excluded("/stripe/webhook")
        assert not matcher.is_excluded("stripex/webhook")
        assert not matcher.is_excluded("stripe")

    def test_exact_match(self):
        matcher = PatternMatcher(["webhooks/github"])
        assert matcher.is_excluded("/webhooks/github")
        assert not matcher.is_excluded("/webhooks/github/extra")
        assert not matcher.is_excluded("/webhooks")

    def test_case_sensitive(self):
        matcher = PatternMatcher(["stripe/*"])
        assert not matcher.is_excluded("/Stripe/webhook")

    def test_normalized_request_path(self):
        matcher = PatternMatcher(["stripe/webhook"])
        assert matcher.is_excluded("//stripe//webhook")
        assert matcher.is_excluded("/stripe%2Fwebhook")

    def test_bare_wildcard_matches_everything(self):
        matcher = PatternMatcher(["*"])
        assert matcher.is_excluded("/")
        assert matcher.is_excluded("/anything/at/all")

    def test_uri_rule_needs_matching_host(self):
        matcher = PatternMatcher(["https://hooks.example.com/stripe/*"])
        assert matcher.is_excluded("/stripe/webhook", "https://hooks.example.com/stripe/webhook")
        assert matcher.is_excluded("/stripe/webhook", "https://HOOKS.example.com/stripe/webhook?x=1")
        assert not matcher.is_excluded("/stripe/webhook", "https://app.example.com/stripe/webhook")
        assert not matcher.is_excluded("/stripe/webhook", "http://hooks.example.com/stripe/webhook")
        assert not matcher.is_excluded("/stripe/webhook")

    def test_any_rule_excludes(self):
        matcher = PatternMatcher(["webhooks/github", "stripe/*"])
        assert matcher.find_match("/stripe/events").pattern == "stripe/*"
        assert matcher.find_match("/webhooks/github").pattern == "webhooks/github"
        assert matcher.find_match("/orders") is None

    def test_matches_single_rule(self):
        matcher = PatternMatcher()
        assert matcher.matches("stripe/webhook", "stripe/*")
        assert not matcher.matches("stripex/webhook", ExclusionRule.parse("stripe/*"))

    def test_invalid_rule_fails_at_construction(self):
        with pytest.raises(ExclusionConfigInvalidException):
            PatternMatcher(["ok/*", "bad/*/rule"])

    def test_accepts_parsed_rules(self):
        rule = ExclusionRule.parse("stripe/*")
        matcher = PatternMatcher([rule])
        assert matcher.rules == (rule,)
        assert len(matcher) == 1
