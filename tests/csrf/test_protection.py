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
"""Tests for the CsrfProtection state machine."""

import pytest

from flyguard.config.properties.csrf import CsrfProperties
from flyguard.csrf.cookie import CookieEncrypter, CookieIssuer
from flyguard.csrf.matcher import PatternMatcher
from flyguard.csrf.protection import CsrfProtection
from flyguard.csrf.store import SessionTokenStore
from flyguard.csrf.token import generate_csrf_token
from flyguard.csrf.validator import RequestValidator, ValidationContext
from flyguard.kernel.exceptions import CookieKeyInvalidException, ExclusionConfigInvalidException
from flyguard.kernel.types import CsrfState, ReasonCode
from flyguard.session.session import HttpSession

KEY = CookieEncrypter.generate_key()


def _protection(exclude=(), test_mode=False) -> CsrfProtection:
    encrypter = CookieEncrypter(KEY)
    return CsrfProtection(
        token_store=SessionTokenStore(),
        validator=RequestValidator(encrypter),
        matcher=PatternMatcher(exclude),
        cookie_issuer=CookieIssuer(encrypter),
        test_mode=test_mode,
    )


def _ctx(method="POST", path="/orders", uri=None, fields=None, headers=None) -> ValidationContext:
    return ValidationContext(method=method, path=path, uri=uri, fields=fields or {}, headers=headers or {})


class TestMethodCheck:
    @pytest.mark.parametrize("method", ["GET", "HEAD", "OPTIONS", "TRACE"])
    def test_safe_methods_always_allowed(self, method):
        ctx = _ctx(method=method)
        decision = _protection().decide(ctx, None)
        assert decision.allowed
        assert decision.reason is ReasonCode.SAFE_METHOD
        assert ctx.state is CsrfState.ALLOWED

    @pytest.mark.parametrize("method", ["POST", "PUT", "PATCH", "DELETE", "post"])
    def test_unsafe_methods_need_token(self, method):
        ctx = _ctx(method=method)
        decision = _protection().decide(ctx, generate_csrf_token())
        assert decision.rejected
        assert ctx.state is CsrfState.REJECTED


class TestExclusionCheck:
    def test_excluded_path_allowed_without_token(self):
        ctx = _ctx(path="/stripe/webhook")
        decision = _protection(exclude=["stripe/*"]).decide(ctx, generate_csrf_token())
        assert decision.allowed
        assert decision.reason is ReasonCode.EXCLUDED

    def test_non_matching_path_still_checked(self):
        decision = _protection(exclude=["stripe/*"]).decide(_ctx(path="/stripex/webhook"), "t")
        assert decision.reason is ReasonCode.TOKEN_MISSING

    def test_uri_exclusion(self):
        protection = _protection(exclude=["https://hooks.example.com/*"])
        allowed = protection.decide(_ctx(path="/pay", uri="https://hooks.example.com/pay"), "t")
        rejected = protection.decide(_ctx(path="/pay", uri="https://app.example.com/pay"), "t")
        assert allowed.reason is ReasonCode.EXCLUDED
        assert rejected.rejected


class TestTokenValidation:
    def test_matching_field_allowed(self):
        token = generate_csrf_token()
        ctx = _ctx(fields={"_token": token})
        decision = _protection().decide(ctx, token)
        assert decision.allowed
        assert decision.reason is ReasonCode.TOKEN_VALID
        assert ctx.session_token == token

    def test_mismatched_field_rejected(self):
        ctx = _ctx(fields={"_token": generate_csrf_token()})
        decision = _protection().decide(ctx, generate_csrf_token())
        assert decision.reason is ReasonCode.TOKEN_MISMATCH
        assert ctx.reason is ReasonCode.TOKEN_MISMATCH

    def test_no_session_token_rejected(self):
        decision = _protection().decide(_ctx(fields={"_token": generate_csrf_token()}), None)
        assert decision.reason is ReasonCode.TOKEN_MISSING

    def test_header_allowed(self):
        token = generate_csrf_token()
        assert _protection().decide(_ctx(headers={"X-CSRF-TOKEN": token}), token).allowed

    def test_encrypted_cookie_round_trip(self):
        token = generate_csrf_token()
        encrypted = CookieEncrypter(KEY).encrypt(token)
        assert _protection().decide(_ctx(headers={"X-XSRF-TOKEN": encrypted}), token).allowed


class TestTestMode:
    @pytest.mark.parametrize("method", ["GET", "POST", "DELETE"])
    def test_everything_allowed(self, method):
        decision = _protection(test_mode=True).decide(_ctx(method=method, fields={"_token": "x"}), None)
        assert decision.allowed
        assert decision.reason is ReasonCode.TEST_MODE

    def test_requires_verification_false(self):
        assert _protection(test_mode=True).requires_verification("POST", "/orders") is False


class TestRequiresVerification:
    def test_rules(self):
        protection = _protection(exclude=["stripe/*"])
        assert protection.requires_verification("POST", "/orders")
        assert not protection.requires_verification("GET", "/orders")
        assert not protection.requires_verification("POST", "/stripe/webhook")


class TestEvaluateWithSession:
    @pytest.mark.asyncio
    async def test_uses_session_token(self):
        protection = _protection()
        session = HttpSession("s1", is_new=True)
        token = await protection.token_store.current_token(session)

        decision = await protection.evaluate(_ctx(fields={"_token": token}), session)
        assert decision.allowed

    @pytest.mark.asyncio
    async def test_does_not_create_token(self):
        protection = _protection()
        session = HttpSession("s1", is_new=True)

        decision = await protection.evaluate(_ctx(fields={"_token": "abc"}), session)

        assert decision.reason is ReasonCode.TOKEN_MISSING
        assert protection.token_store.peek(session) is None

    @pytest.mark.asyncio
    async def test_rotation_invalidates_old_token(self):
        protection = _protection()
        session = HttpSession("s1", is_new=True)
        old = await protection.token_store.current_token(session)
        new = await protection.token_store.regenerate(session)

        assert (await protection.evaluate(_ctx(fields={"_token": old}), session)).reason is ReasonCode.TOKEN_MISMATCH
        assert (await protection.evaluate(_ctx(fields={"_token": new}), session)).allowed

    @pytest.mark.asyncio
    async def test_cookie_carries_current_token(self):
        protection = _protection()
        session = HttpSession("s1", is_new=True)

        cookie = await protection.cookie_for(session)

        assert cookie is not None
        token = protection.token_store.peek(session)
        assert CookieEncrypter(KEY).decrypt(cookie.value) == token

    @pytest.mark.asyncio
    async def test_no_cookie_without_session(self):
        assert await _protection().cookie_for(None) is None


class TestFromProperties:
    def test_builds_from_properties(self):
        props = CsrfProperties(key=KEY, exclude=("stripe/*",), cookie_name="MY-XSRF")
        protection = CsrfProtection.from_properties(props)
        assert protection.matcher.is_excluded("/stripe/webhook")
        assert protection.test_mode is False

    def test_key_required_for_cookie(self):
        with pytest.raises(CookieKeyInvalidException):
            CsrfProtection.from_properties(CsrfProperties())

    def test_no_key_needed_without_cookie(self):
        protection = CsrfProtection.from_properties(CsrfProperties(add_cookie=False))
        assert protection.test_mode is False

    def test_bad_key(self):
        with pytest.raises(CookieKeyInvalidException):
            CsrfProtection.from_properties(CsrfProperties(key="nope"))

    def test_bad_exclusion(self):
        with pytest.raises(ExclusionConfigInvalidException):
            CsrfProperties(key=KEY, exclude=("a/*/b",))

    @pytest.mark.asyncio
    async def test_cookie_disabled(self):
        protection = CsrfProtection.from_properties(CsrfProperties(key=KEY, add_cookie=False))
        assert await protection.cookie_for(HttpSession("s1", is_new=True)) is None
