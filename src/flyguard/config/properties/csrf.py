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
"""CSRF protection configuration properties."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator

from flyguard.core.config import config_properties
from flyguard.csrf.matcher import ExclusionRule


def _kebab(name: str) -> str:
    return name.replace("_", "-")


class CookieProperties(BaseModel):
    """Attributes of the ``XSRF-TOKEN`` side-channel cookie (flyguard.csrf.cookie.*)."""

    model_config = ConfigDict(alias_generator=_kebab, populate_by_name=True, frozen=True)

    path: str = "/"
    domain: str | None = None
    secure: bool = True
    same_site: Literal["lax", "strict", "none"] = "lax"
    lifetime: int = Field(default=7200, ge=0)


@config_properties(prefix="flyguard.csrf")
class CsrfProperties(BaseModel):
    """Configuration for CSRF protection (flyguard.csrf.*).

    ``except`` lists the exclusion patterns; it is exposed as :attr:`exclude`
    because ``except`` is a Python keyword.
    """

    model_config = ConfigDict(alias_generator=_kebab, populate_by_name=True, frozen=True)

    exclude: tuple[str, ...] = Field(default=(), alias="except")
    key: SecretStr | None = None
    previous_keys: tuple[SecretStr, ...] = ()
    test_mode: bool = False
    add_cookie: bool = True

    cookie_name: str = "XSRF-TOKEN"
    header_name: str = "X-CSRF-TOKEN"
    xsrf_header_name: str = "X-XSRF-TOKEN"
    field_name: str = "_token"
    session_key: str = "_token"

    reject_status: int = Field(default=419, ge=400, le=599)
    cookie: CookieProperties = Field(default_factory=CookieProperties)

    @field_validator("exclude", "previous_keys", mode="before")
    @classmethod
    def _split_env_list(cls, value: object) -> object:
        # FLYGUARD_CSRF_EXCEPT="stripe/*,hooks/*"
        if isinstance(value, str):
            return tuple(item.strip() for item in value.split(",") if item.strip())
        return value

    @field_validator("exclude")
    @classmethod
    def _parse_exclusions(cls, value: tuple[str, ...]) -> tuple[str, ...]:
        # Raises ExclusionConfigInvalidException, which pydantic lets propagate.
        for pattern in value:
            ExclusionRule.parse(pattern)
        return value
