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
"""Side-channel ``XSRF-TOKEN`` cookie — encryption and issuing.

The session token is copied into a script-readable cookie on every response
so that JavaScript clients can echo it back in the ``X-XSRF-TOKEN`` header.
The cookie value is encrypted with Fernet (AES-128-CBC + HMAC-SHA256);
:class:`~cryptography.fernet.MultiFernet` lets older keys keep decrypting
while new cookies are always written with the current key.
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from cryptography.fernet import Fernet, InvalidToken, MultiFernet

from flyguard.kernel.exceptions import CookieKeyInvalidException, TokenMalformedException


class CookieEncrypter:
    """Symmetric encryption for the side-channel cookie.

    Args:
        key: Current Fernet key (URL-safe base64 of 32 bytes).
        previous_keys: Retired keys that are still accepted for decryption.
        ttl: Optional maximum age in seconds of a decryptable value.
    """

    def __init__(
        self,
        key: str | bytes,
        previous_keys: Sequence[str | bytes] = (),
        ttl: int | None = None,
    ) -> None:
        try:
            fernets = [Fernet(k) for k in (key, *previous_keys)]
        except (TypeError, ValueError) as exc:
            raise CookieKeyInvalidException(
                "CSRF cookie key must be 32 URL-safe base64-encoded bytes",
                code="CSRF_COOKIE_KEY",
            ) from exc
        self._fernet = MultiFernet(fernets)
        self._ttl = ttl

    @staticmethod
    def generate_key() -> str:
        """Return a new random key suitable for ``flyguard.csrf.key``."""
        return Fernet.generate_key().decode("ascii")

    def encrypt(self, value: str) -> str:
        """Encrypt *value*; the result is unpadded URL-safe base64, legal as a bare cookie value."""
        return self._fernet.encrypt(value.encode("utf-8")).decode("ascii").rstrip("=")

    def decrypt(self, value: str) -> str:
        """Decrypt a cookie value.

        Raises:
            TokenMalformedException: The value was tampered with, encrypted
                under an unknown key, expired, or is not a Fernet token.
        """
        try:
            padded = value + "=" * (-len(value) % 4)
            return self._fernet.decrypt(padded, ttl=self._ttl).decode("utf-8")
        except (InvalidToken, TypeError, ValueError) as exc:
            raise TokenMalformedException("CSRF cookie value could not be decrypted") from exc


@dataclass(frozen=True)
class CookieInstruction:
    """What the HTTP layer should set on the outgoing response."""

    key: str
    value: str
    max_age: int | None
    path: str
    domain: str | None
    secure: bool
    samesite: str
    httponly: bool = False

    def as_kwargs(self) -> dict[str, Any]:
        """Keyword arguments for ``Response.set_cookie()``."""
        return {
            "key": self.key,
            "value": self.value,
            "max_age": self.max_age,
            "path": self.path,
            "domain": self.domain,
            "secure": self.secure,
            "httponly": self.httponly,
            "samesite": self.samesite,
        }


class CookieIssuer:
    """Builds the ``XSRF-TOKEN`` cookie for a session token.

    The cookie is never HTTP-only: client-side script must read it.
    """

    def __init__(
        self,
        encrypter: CookieEncrypter,
        name: str = "XSRF-TOKEN",
        *,
        path: str = "/",
        domain: str | None = None,
        secure: bool = True,
        same_site: str = "lax",
        lifetime: int = 7200,
    ) -> None:
        self._encrypter = encrypter
        self._name = name
        self._path = path
        self._domain = domain
        self._secure = secure
        self._same_site = same_site
        self._lifetime = lifetime

    @property
    def name(self) -> str:
        return self._name

    def issue(self, token: str) -> CookieInstruction:
        return CookieInstruction(
            key=self._name,
            value=self._encrypter.encrypt(token),
            max_age=self._lifetime or None,
            path=self._path,
            domain=self._domain,
            secure=self._secure,
            samesite=self._same_site,
        )
