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
"""HttpSession — the server-side record a session cookie points at."""

from __future__ import annotations

import time
import uuid
from typing import Any

_CREATED_AT = "_created_at"


def new_session_id() -> str:
    return uuid.uuid4().hex


class HttpSession:
    """Attributes of one browser session plus the bookkeeping needed to persist it.

    A session is loaded from a store record, mutated by the request, and
    written back by :class:`~flyguard.session.filter.SessionFilter` when
    :attr:`modified` is set. Names starting with ``_`` are reserved for
    library state (the CSRF token lives under ``_token``).

    Attributes:
        id: Current identifier; changes on :meth:`regenerate_id`.
        is_new: ``True`` if no stored record existed for this request.
        previous_id: Identifier whose record must be dropped after regeneration.
    """

    def __init__(
        self,
        session_id: str,
        data: dict[str, Any] | None = None,
        *,
        is_new: bool = False,
    ) -> None:
        record = dict(data or {})
        self._created_at = float(record.pop(_CREATED_AT, time.time()))
        self._attributes: dict[str, Any] = record
        self._id = session_id
        self._is_new = is_new
        self._previous_id: str | None = None
        self._invalidated = False
        self._modified = is_new

    @property
    def id(self) -> str:
        return self._id

    @property
    def is_new(self) -> bool:
        return self._is_new

    @property
    def previous_id(self) -> str | None:
        return self._previous_id

    @property
    def created_at(self) -> float:
        return self._created_at

    @property
    def invalidated(self) -> bool:
        return self._invalidated

    @property
    def modified(self) -> bool:
        return self._modified

    def get_attribute(self, name: str) -> Any | None:
        return self._attributes.get(name)

    def set_attribute(self, name: str, value: Any) -> None:
        self._attributes[name] = value
        self._modified = True

    def remove_attribute(self, name: str) -> None:
        if name in self._attributes:
            del self._attributes[name]
            self._modified = True

    def get_attribute_names(self) -> list[str]:
        """Application attribute names; reserved ``_`` names are left out."""
        return [name for name in self._attributes if not name.startswith("_")]

    def regenerate_id(self) -> str:
        """Move the session to a fresh identifier, keeping its attributes.

        Call at authentication boundaries (login, logout) together with
        rotating the CSRF token. Only the identifier loaded from the store is
        remembered, so regenerating twice still drops the original record.
        """
        if self._previous_id is None and not self._is_new:
            self._previous_id = self._id
        self._id = new_session_id()
        self._modified = True
        return self._id

    def invalidate(self) -> None:
        self._invalidated = True
        self._modified = True

    def to_record(self) -> dict[str, Any]:
        """Return a JSON-ready copy of the session for a :class:`SessionStore`."""
        return {**self._attributes, _CREATED_AT: self._created_at}
