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
"""Tests for Config loading, env overrides and property binding."""

import os
from dataclasses import dataclass
from pathlib import Path

import pytest
from pydantic import BaseModel

from flyguard.core.config import Config, config_properties


class TestConfig:
    def test_get_nested_value(self):
        config = Config({"flyguard": {"csrf": {"cookie-name": "XSRF-TOKEN"}}})
        assert config.get("flyguard.csrf.cookie-name") == "XSRF-TOKEN"

    def test_get_with_default(self):
        assert Config({}).get("missing.key", "default") == "default"

    def test_falsy_values_are_returned(self):
        config = Config({"a": {"flag": False, "items": []}})
        assert config.get("a.flag", True) is False
        assert config.get("a.items", None) == []

    def test_env_var_override(self, monkeypatch):
        monkeypatch.setenv("FLYGUARD_CSRF_TEST_MODE", "true")
        config = Config({"flyguard": {"csrf": {"test-mode": False}}})
        assert config.get("flyguard.csrf.test-mode") == "true"

    def test_placeholder_from_env(self, monkeypatch):
        monkeypatch.setenv("CSRF_KEY_FROM_ENV", "secret")
        config = Config({"flyguard": {"csrf": {"key": "${CSRF_KEY_FROM_ENV}"}}})
        assert config.get("flyguard.csrf.key") == "secret"

    def test_placeholder_default(self):
        os.environ.pop("FLYGUARD_UNSET_PLACEHOLDER", None)
        config = Config({"app": {"name": "${FLYGUARD_UNSET_PLACEHOLDER:fallback}"}})
        assert config.get("app.name") == "fallback"

    def test_unresolvable_placeholder_raises(self):
        config = Config({"app": {"name": "${definitely.not.there}"}})
        with pytest.raises(ValueError):
            config.get("app.name")

    def test_load_from_yaml_file(self, tmp_path: Path):
        config_file = tmp_path / "app.yaml"
        config_file.write_text("flyguard:\n  csrf:\n    except:\n      - stripe/*\n")
        config = Config.from_file(config_file)
        assert config.get("flyguard.csrf.except") == ["stripe/*"]
        assert config.get("flyguard.csrf.cookie-name") == "XSRF-TOKEN"

    def test_load_from_toml_without_defaults(self, tmp_path: Path):
        config_file = tmp_path / "app.toml"
        config_file.write_text('[flyguard.csrf]\ntest-mode = true\n')
        config = Config.from_file(config_file, load_defaults=False)
        assert config.get("flyguard.csrf.test-mode") is True
        assert config.get("flyguard.csrf.cookie-name") is None

    def test_from_sources_merges_profiles(self, tmp_path: Path):
        (tmp_path / "flyguard.yaml").write_text("flyguard:\n  session:\n    ttl: 600\n")
        (tmp_path / "flyguard-dev.yaml").write_text("flyguard:\n  csrf:\n    test-mode: true\n")
        config = Config.from_sources(tmp_path, active_profiles=["dev"])
        assert config.get("flyguard.session.ttl") == 600
        assert config.get("flyguard.csrf.test-mode") is True
        assert config.get("flyguard.session.store") == "memory"
        assert len(config.loaded_sources) == 3


class TestConfigBinding:
    def test_bind_dataclass_with_kebab_keys(self):
        @config_properties(prefix="svc")
        @dataclass
        class ServiceConfig:
            cookie_name: str = "a"
            ttl: int = 5

        config = Config({"svc": {"cookie-name": "b", "ttl": "30"}})
        bound = config.bind(ServiceConfig)
        assert bound.cookie_name == "b"
        assert bound.ttl == 30

    def test_bind_pydantic_model(self):
        @config_properties(prefix="svc")
        class ServiceModel(BaseModel):
            port: int = 1

        assert Config({"svc": {"port": "8080"}}).bind(ServiceModel).port == 8080

    def test_bind_pydantic_validation_error(self):
        @config_properties(prefix="svc")
        class ServiceModel(BaseModel):
            port: int = 1

        with pytest.raises(ValueError, match="Configuration validation failed"):
            Config({"svc": {"port": "not-a-number"}}).bind(ServiceModel)

    def test_bind_applies_env_override(self, monkeypatch):
        @config_properties(prefix="flyguard.session")
        @dataclass
        class SessionConfig:
            ttl: int = 5

        monkeypatch.setenv("FLYGUARD_SESSION_TTL", "99")
        assert Config({"flyguard": {"session": {"ttl": 5}}}).bind(SessionConfig).ttl == 99

    def test_bind_env_only_dataclass_field(self, monkeypatch):
        @config_properties(prefix="flyguard.session")
        @dataclass
        class SessionConfig:
            cookie_name: str = "SID"
            ttl: int = 5

        monkeypatch.setenv("FLYGUARD_SESSION_COOKIE_NAME", "APP_SID")
        monkeypatch.setenv("FLYGUARD_SESSION_TTL", "60")
        bound = Config({}).bind(SessionConfig)
        assert bound.cookie_name == "APP_SID"
        assert bound.ttl == 60

    def test_bind_env_only_nested_model_field(self, monkeypatch):
        class Inner(BaseModel):
            port: int = 1
            host: str = "localhost"

        @config_properties(prefix="svc")
        class Outer(BaseModel):
            inner: Inner = Inner()

        monkeypatch.setenv("FLYGUARD_SVC_INNER_PORT", "6379")
        bound = Config({}).bind(Outer)
        assert bound.inner.port == 6379
        assert bound.inner.host == "localhost"

    def test_section_resolves_nested_values(self, monkeypatch):
        monkeypatch.setenv("FLYGUARD_LOGGING_LEVEL_ROOT", "DEBUG")
        config = Config({"flyguard": {"logging": {"level": {"root": "INFO"}}}})
        assert config.get_section("flyguard.logging") == {"level": {"root": "DEBUG"}}

    def test_bind_requires_decorator(self):
        @dataclass
        class Plain:
            x: int = 1

        with pytest.raises(ValueError, match="not decorated"):
            Config({}).bind(Plain)
