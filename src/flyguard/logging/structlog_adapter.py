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
"""StructlogAdapter — LoggingPort implementation backed by structlog.

Library modules log through ``structlog.get_logger("flyguard.<area>")``;
this adapter decides how those events are rendered and which levels pass.
"""

from __future__ import annotations

import logging
import sys
from typing import Any

import structlog

from flyguard.config.properties.logging import LoggingProperties
from flyguard.core.config import Config

_RENDERERS = ("console", "json")


class StructlogAdapter:
    """Renders structlog events through stdlib logging on stdout.

    ``flyguard.logging.level.root`` sets the root level; any other key under
    ``level`` is a logger name (``flyguard.csrf: DEBUG`` surfaces exclusion
    and test-mode decisions). ``format`` is ``console`` or ``json``.
    """

    def __init__(self) -> None:
        self._props = LoggingProperties()

    @property
    def root_level(self) -> str:
        return str(self._props.level.get("root", "INFO")).upper()

    @property
    def module_levels(self) -> dict[str, str]:
        return {name: str(level).upper() for name, level in self._props.level.items() if name != "root"}

    @property
    def format(self) -> str:
        fmt = str(self._props.format).lower()
        return fmt if fmt in _RENDERERS else "console"

    def configure(self, config: Config) -> None:
        self._props = config.bind(LoggingProperties)

        structlog.configure(
            processors=self._processors(),
            logger_factory=structlog.stdlib.LoggerFactory(),
            wrapper_class=structlog.stdlib.BoundLogger,
            cache_logger_on_first_use=True,
        )
        logging.basicConfig(
            format="%(message)s",
            stream=sys.stdout,
            level=_to_level(self.root_level),
            force=True,
        )
        for name, level in self.module_levels.items():
            self.set_level(name, level)

    def get_logger(self, name: str) -> Any:
        return structlog.get_logger(name)

    def set_level(self, name: str, level: str) -> None:
        logging.getLogger(name).setLevel(_to_level(level))

    def _processors(self) -> list[structlog.types.Processor]:
        processors: list[structlog.types.Processor] = [
            structlog.contextvars.merge_contextvars,
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.StackInfoRenderer(),
        ]
        if self.format == "json":
            processors += [structlog.processors.format_exc_info, structlog.processors.JSONRenderer()]
        else:
            processors.append(structlog.dev.ConsoleRenderer())
        return processors


def _to_level(name: str) -> int:
    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else logging.INFO
