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
"""ScopedFilter — base class for filters limited to a set of request paths."""

from __future__ import annotations

import abc
from fnmatch import fnmatchcase
from typing import Any, ClassVar

from flyguard.web.ports.filter import CallNext


class ScopedFilter(abc.ABC):
    """Base for :class:`~flyguard.web.ports.filter.WebFilter` implementations.

    ``include`` and ``exclude`` hold case-sensitive glob patterns matched
    against ``request.url.path``. An empty ``include`` covers every path;
    ``exclude`` wins over ``include``.
    """

    include: ClassVar[tuple[str, ...]] = ()
    exclude: ClassVar[tuple[str, ...]] = ()

    def should_not_filter(self, request: Any) -> bool:
        path: str = request.url.path
        if self.include and not _any_match(path, self.include):
            return True
        return _any_match(path, self.exclude)

    @abc.abstractmethod
    async def do_filter(self, request: Any, call_next: CallNext) -> Any:
        """Handle *request*; await ``call_next(request)`` to continue the chain."""
        ...


def _any_match(path: str, patterns: tuple[str, ...]) -> bool:
    return any(fnmatchcase(path, pattern) for pattern in patterns)
