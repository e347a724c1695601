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
"""Tests for HttpSession and the session store adapters."""

import json
from unittest.mock import AsyncMock, patch

import pytest

from flyguard.session.adapters.memory import InMemorySessionStore
from flyguard.session.adapters.redis import RedisSessionStore
from flyguard.session.ports.outbound import SessionStore
from flyguard.session.session import HttpSession


class TestHttpSession:
    def test_new_session_is_modified(self):
        session = HttpSession("s1", is_new=True)
        assert session.is_new
        assert session.modified
        assert session.previous_id is None

    def test_attributes(self):
        session = HttpSession("s1", {"user": "alice"})
        assert not session.modified
        session.set_attribute("role", "admin")
        assert session.get_attribute("role") == "admin"
        assert session.modified
        assert set(session.get_attribute_names()) == {"user", "role"}
        session.remove_attribute("role")
        assert session.get_attribute("role") is None

    def test_regenerate_id_keeps_data(self):
        session = HttpSession("s1", {"_token": "t", "user": "alice"})
        new_id = session.regenerate_id()
        assert new_id != "s1"
        assert session.id == new_id
        assert session.previous_id == "s1"
        assert session.get_attribute("user") == "alice"

    def test_regenerate_twice_remembers_original(self):
        session = HttpSession("s1", {})
        session.regenerate_id()
        session.regenerate_id()
        assert session.previous_id == "s1"

    def test_regenerate_new_session_has_nothing_to_delete(self):
        session = HttpSession("s1", is_new=True)
        session.regenerate_id()
        assert session.previous_id is None

    def test_record_keeps_creation_time(self):
        original = HttpSession("s1", is_new=True)
        original.set_attribute("_token", "t")
        record = original.to_record()

        reloaded = HttpSession("s1", record)
        assert reloaded.created_at == original.created_at
        assert reloaded.get_attribute("_token") == "t"
        assert reloaded.get_attribute_names() == []

    def test_invalidate(self):
        session = HttpSession("s1", {})
        session.invalidate()
        assert session.invalidated
        assert session.modified


class TestInMemorySessionStore:
    def test_implements_port(self):
        assert isinstance(InMemorySessionStore(), SessionStore)

    @pytest.mark.asyncio
    async def test_save_get_delete(self):
        store = InMemorySessionStore()
        await store.save("s1", {"a": 1}, 60)
        assert await store.get("s1") == {"a": 1}
        assert await store.exists("s1")
        await store.delete("s1")
        assert await store.get("s1") is None
        assert not await store.exists("s1")

    @pytest.mark.asyncio
    async def test_returns_copies(self):
        store = InMemorySessionStore()
        data = {"a": 1}
        await store.save("s1", data, 60)
        data["a"] = 2
        loaded = await store.get("s1")
        loaded["a"] = 3
        assert await store.get("s1") == {"a": 1}

    @pytest.mark.asyncio
    async def test_save_replaces_whole_record(self):
        store = InMemorySessionStore()
        first = HttpSession("s1", is_new=True)
        first.set_attribute("_token", "t1")
        first.set_attribute("user", "alice")
        await store.save("s1", first.to_record(), 60)

        second = HttpSession("s1", is_new=True)
        second.set_attribute("_token", "t2")
        await store.save("s1", second.to_record(), 60)

        reloaded = HttpSession("s1", await store.get("s1"))
        assert reloaded.get_attribute("_token") == "t2"
        assert reloaded.get_attribute("user") is None
        assert reloaded.created_at == second.created_at

    @pytest.mark.asyncio
    async def test_expiry(self):
        store = InMemorySessionStore()
        with patch("flyguard.session.adapters.memory.time.monotonic", return_value=1000.0):
            await store.save("s1", {"a": 1}, 10)
        with patch("flyguard.session.adapters.memory.time.monotonic", return_value=1011.0):
            assert await store.get("s1") is None
            assert not await store.exists("s1")


class TestRedisSessionStore:
    def test_implements_port(self):
        assert isinstance(RedisSessionStore(AsyncMock()), SessionStore)

    @pytest.mark.asyncio
    async def test_save_serializes_with_ttl(self):
        client = AsyncMock()
        store = RedisSessionStore(client)
        await store.save("s1", {"_token": "t"}, 60)
        client.set.assert_awaited_once_with("flyguard:session:s1", json.dumps({"_token": "t"}).encode(), ex=60)

    @pytest.mark.asyncio
    async def test_get_deserializes(self):
        client = AsyncMock()
        client.get.return_value = b'{"_token": "t"}'
        assert await RedisSessionStore(client).get("s1") == {"_token": "t"}
        client.get.assert_awaited_once_with("flyguard:session:s1")

    @pytest.mark.asyncio
    async def test_get_missing(self):
        client = AsyncMock()
        client.get.return_value = None
        assert await RedisSessionStore(client).get("s1") is None

    @pytest.mark.asyncio
    async def test_get_corrupt(self):
        client = AsyncMock()
        client.get.return_value = b"{not json"
        assert await RedisSessionStore(client).get("s1") is None

    @pytest.mark.asyncio
    async def test_delete_and_exists(self):
        client = AsyncMock()
        client.exists.return_value = 1
        store = RedisSessionStore(client, key_prefix="app:")
        assert await store.exists("s1")
        await store.delete("s1")
        client.exists.assert_awaited_once_with("app:s1")
        client.delete.assert_awaited_once_with("app:s1")

    @pytest.mark.asyncio
    async def test_get_non_object_record(self):
        client = AsyncMock()
        client.get.return_value = b'["_token"]'
        assert await RedisSessionStore(client).get("s1") is None
