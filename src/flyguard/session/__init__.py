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
"""FlyGuard Session — Server-side session management with pluggable stores.

Import concrete store types from the adapter package::

    from flyguard.session.adapters.memory import InMemorySessionStore
    from flyguard.session.adapters.redis import RedisSessionStore
"""

from flyguard.session.filter import SessionFilter
from flyguard.session.ports.outbound import SessionStore
from flyguard.session.session import HttpSession

__all__ = [
    "HttpSession",
    "SessionFilter",
    "SessionStore",
]
