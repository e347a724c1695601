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
"""WebFilter port — the contract every request filter implements.

Request and response are typed as ``Any`` here; Starlette types appear only
in ``flyguard.web.adapters.starlette``.
"""

from __future__ import annotations

from collections.abc import Callable, Coroutine
from typing import Any, Protocol, runtime_checkable

CallNext = Callable[..., Coroutine[Any, Any, Any]]


@runtime_checkable
class WebFilter(Protocol):
    """A step in the request pipeline placed in front of the application.

    The chain middleware calls filters outermost first, by ``@order``. A
    filter may answer on its own (CSRF rejection) or await ``call_next`` and
    decorate the response it gets back (session and ``XSRF-TOKEN`` cookies).
    """

    async def do_filter(self, request: Any, call_next: CallNext) -> Any: ...

    def should_not_filter(self, request: Any) -> bool:
        """Return ``True`` to pass *request* straight to the next step."""
        ...
