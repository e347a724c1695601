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
"""Layered configuration: packaged defaults, YAML/TOML files, env vars, model binding.

Keys use dot notation (``flyguard.csrf.test-mode``). Every key can be
overridden from the environment as ``FLYGUARD_`` + the key without its
``flyguard.`` root, upper-cased with dots and dashes turned into
underscores (``FLYGUARD_CSRF_TEST_MODE``).
"""

from __future__ import annotations

import dataclasses
import importlib.resources
import os
import re
import tomllib
from collections.abc import Callable, Iterator
from pathlib import Path
from typing import Any, TypeVar, get_type_hints

import yaml  # type: ignore[import-untyped]
from pydantic import BaseModel, ValidationError

T = TypeVar("T")

_PREFIX_ATTR = "__flyguard_config_prefix__"
_ENV_PREFIX = "FLYGUARD_"
_DEFAULTS_RESOURCE = "flyguard-defaults.yaml"
_EXTENSIONS = (".yaml", ".toml")
_PLACEHOLDER_RE = re.compile(r"\$\{([^}]+)\}")
_MAX_PLACEHOLDER_DEPTH = 10


def config_properties(prefix: str) -> Callable[[type[T]], type[T]]:
    """Bind a pydantic model or dataclass to the config section at *prefix*.

    Pydantic models go through ``model_validate()``, so a malformed setting
    fails at startup rather than on the first request::

        @config_properties(prefix="flyguard.csrf")
        class CsrfProperties(BaseModel):
            test_mode: bool = False
    """

    def decorator(cls: type[T]) -> type[T]:
        setattr(cls, _PREFIX_ATTR, prefix)
        return cls

    return decorator


class Config:
    """Read-only view over merged configuration data.

    Lookup order for :meth:`get` (first hit wins): environment variable,
    loaded data, caller default. Model defaults fill whatever is left when
    a section is bound with :meth:`bind`.
    """

    def __init__(self, data: dict[str, Any] | None = None) -> None:
        self._data: dict[str, Any] = data or {}
        self._loaded_sources: list[str] = []

    @property
    def loaded_sources(self) -> list[str]:
        """Files merged into this config, in merge order."""
        return list(self._loaded_sources)

    def to_dict(self) -> dict[str, Any]:
        return dict(self._data)

    # -- loading -----------------------------------------------------------

    @classmethod
    def from_sources(
        cls,
        base_dir: str | Path,
        active_profiles: list[str] | None = None,
        load_defaults: bool = True,
    ) -> Config:
        """Merge ``flyguard.{yaml,toml}`` and its profile overlays under *base_dir*.

        ``config/`` is read before the project root, and all base files before
        any ``flyguard-{profile}`` overlay; later files win.
        """
        base_dir = Path(base_dir)
        stems = ["flyguard", *(f"flyguard-{p}" for p in active_profiles or [])]
        paths = [
            directory / f"{stem}{ext}"
            for stem in stems
            for directory in (base_dir / "config", base_dir)
            for ext in _EXTENSIONS
        ]
        return cls._assemble(paths, load_defaults)

    @classmethod
    def from_file(
        cls,
        path: str | Path,
        active_profiles: list[str] | None = None,
        load_defaults: bool = True,
    ) -> Config:
        """Load *path* plus ``{stem}-{profile}{suffix}`` overlays beside it."""
        path = Path(path)
        if not path.is_file():
            return cls._assemble([], load_defaults)
        overlays = [path.with_name(f"{path.stem}-{p}{path.suffix}") for p in active_profiles or []]
        return cls._assemble([path, *overlays], load_defaults)

    @classmethod
    def _assemble(cls, paths: list[Path], load_defaults: bool) -> Config:
        data: dict[str, Any] = {}
        sources: list[str] = []
        if load_defaults:
            data = _read_library_defaults()
            sources.append(f"{_DEFAULTS_RESOURCE} (library defaults)")
        for path in paths:
            if path.is_file():
                data = _merge(data, _read_file(path))
                sources.append(str(path))

        config = cls(data)
        config._loaded_sources = sources
        return config

    # -- access ------------------------------------------------------------

    def get(self, key: str, default: Any = None) -> Any:
        """Return the value at dotted *key*.

        ``${NAME}``, ``${other.key}`` and ``${NAME:fallback}`` placeholders in
        string values are expanded from the environment, then from config.
        """
        env_val = os.environ.get(_env_key(key))
        if env_val is not None:
            return env_val

        value = self._lookup(key)
        if value is None:
            return default
        if isinstance(value, str) and "${" in value:
            return self._expand(value)
        return value

    def get_section(self, prefix: str) -> dict[str, Any]:
        """Return the mapping under *prefix* with every loaded value resolved as :meth:`get` would.

        Nested mappings are resolved recursively. Keys that appear only in
        the environment are added by :meth:`bind`, which knows the fields.
        """
        section = self._lookup(prefix)
        if not isinstance(section, dict):
            return {}
        resolved: dict[str, Any] = {}
        for name, value in section.items():
            key = f"{prefix}.{name}"
            resolved[name] = self.get_section(key) if isinstance(value, dict) else self.get(key, value)
        return resolved

    def bind(self, config_cls: type[T]) -> T:
        """Instantiate a ``@config_properties`` class from its section."""
        prefix = getattr(config_cls, _PREFIX_ATTR, None)
        if prefix is None:
            raise ValueError(f"{config_cls.__name__} is not decorated with @config_properties")

        section = self.get_section(prefix)
        if isinstance(config_cls, type) and issubclass(config_cls, BaseModel):
            _overlay_env(prefix, config_cls, section)
            try:
                return config_cls.model_validate(section)  # type: ignore[return-value]
            except ValidationError as exc:
                raise ValueError(
                    f"Configuration validation failed for '{config_cls.__name__}' (prefix='{prefix}'):\n{exc}"
                ) from exc
        for field in dataclasses.fields(config_cls):  # type: ignore[arg-type]
            _put_env(section, prefix, field.name.replace("_", "-"), aliases=(field.name,))
        return config_cls(**dict(_dataclass_kwargs(config_cls, section)))

    def _lookup(self, key: str) -> Any:
        node: Any = self._data
        for part in key.split("."):
            if not isinstance(node, dict) or part not in node:
                return None
            node = node[part]
        return node

    def _expand(self, value: str, depth: int = 0) -> str:
        if depth > _MAX_PLACEHOLDER_DEPTH:
            raise ValueError(f"Placeholder expansion in '{value}' is too deep; check for circular references")

        def _substitute(match: re.Match[str]) -> str:
            ref, sep, fallback = match.group(1).partition(":")
            env_val = os.environ.get(ref)
            if env_val is not None:
                return env_val
            found = self._lookup(ref)
            if found is not None:
                text = str(found)
                return self._expand(text, depth + 1) if "${" in text else text
            if sep:
                return fallback
            raise ValueError(f"Cannot resolve placeholder '${{{match.group(1)}}}': not found in environment or config")

        return _PLACEHOLDER_RE.sub(_substitute, value)


def _env_key(key: str) -> str:
    return _ENV_PREFIX + key.removeprefix("flyguard.").upper().replace(".", "_").replace("-", "_")


def _overlay_env(prefix: str, model: type[BaseModel], section: dict[str, Any]) -> None:
    """Add fields of *model* that only the environment sets, descending into nested models."""
    for name, info in model.model_fields.items():
        key = info.alias or name
        nested = info.annotation
        if isinstance(nested, type) and issubclass(nested, BaseModel):
            loaded = section.get(key)
            sub = dict(loaded) if isinstance(loaded, dict) else {}
            _overlay_env(f"{prefix}.{key}", nested, sub)
            if sub:
                section[key] = sub
        else:
            _put_env(section, prefix, key, aliases=(name,))


def _put_env(section: dict[str, Any], prefix: str, key: str, aliases: tuple[str, ...] = ()) -> None:
    if key in section or any(alias in section for alias in aliases):
        return
    env_val = os.environ.get(_env_key(f"{prefix}.{key}"))
    if env_val is not None:
        section[key] = env_val


def _dataclass_kwargs(config_cls: type, section: dict[str, Any]) -> Iterator[tuple[str, Any]]:
    """Yield constructor arguments, accepting ``snake_case`` or ``kebab-case`` keys."""
    hints = get_type_hints(config_cls)
    for field in dataclasses.fields(config_cls):
        for key in (field.name, field.name.replace("_", "-")):
            if key in section:
                yield field.name, _coerce(section[key], hints.get(field.name))
                break


def _coerce(value: Any, expected: Any) -> Any:
    if not isinstance(value, str):
        return value
    if expected is bool:
        return value.strip().lower() in ("true", "1", "yes", "on")
    if expected in (int, float):
        return expected(value)
    return value


def _merge(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in override.items():
        if isinstance(merged.get(key), dict) and isinstance(value, dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def _read_file(path: Path) -> dict[str, Any]:
    if path.suffix == ".toml":
        with open(path, "rb") as fh:
            return tomllib.load(fh)
    with open(path) as fh:
        return yaml.safe_load(fh) or {}


def _read_library_defaults() -> dict[str, Any]:
    resource = importlib.resources.files("flyguard.resources").joinpath(_DEFAULTS_RESOURCE)
    return yaml.safe_load(resource.read_text(encoding="utf-8")) or {}
