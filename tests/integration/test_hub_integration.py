"""
Integration tests for CacheHub over shared stores.

Tests complete end-to-end scenarios:
- TTL expiration with real time (get → fresh → expire → refetch)
- Explicit delete forcing a refetch
- Canonical key collapsing for structured keys
- Concurrent callers sharing one provider call across hub fields
- Field isolation when several fields share one backing store
- Persistent store (Dapr over a fake sidecar) behind a StoreHub
"""

import asyncio
import json
from dataclasses import dataclass

import httpx
import pytest

from hubcache import (
    CacheHub,
    DaprStateStore,
    FieldConfig,
    InMemoryMetrics,
    MemoryStore,
    StoreHub,
    attribute_key,
    expire_after,
)

TTL_SECONDS = 0.3


@dataclass
class User:
    name: str
    age: int


class TestTokenAndUserFields:
    """Token with TTL and user keyed by name, sharing one table."""

    @pytest.mark.asyncio
    async def test_token_expiration_and_delete(self) -> None:
        """Token stays fresh within TTL, refetches after it and after delete."""
        count = 0

        async def fetch_token(last, key):
            nonlocal count
            token = f"hello_{count}"
            count += 1
            return token

        table: dict = {}
        hub = CacheHub(
            {"token": FieldConfig(expire_after(fetch_token, TTL_SECONDS), MemoryStore(table, lambda key: f"token.{key or ''}"))}
        )

        assert await hub["token"].get("") == "hello_0"
        assert await hub["token"].get("") == "hello_0"

        await asyncio.sleep(TTL_SECONDS + 0.05)
        assert await hub["token"].get("") == "hello_1"
        assert await hub["token"].get("") == "hello_1"

        await hub["token"].delete("")
        assert await hub["token"].get("") == "hello_2"
        assert list(table) == ["token."]

    @pytest.mark.asyncio
    async def test_user_keyed_by_name(self) -> None:
        """Users with the same name share the cached record."""
        young = User(name="young", age=22)

        async def fetch_user(last, key):
            if last is not None:
                return last.value
            return young

        table: dict = {}
        hub = CacheHub({"user": FieldConfig(fetch_user, MemoryStore(table, lambda key: f"user.{key.name}"))})

        assert await hub["user"].get(User(name="young", age=18)) is young
        other = await hub["user"].get(User(name="young", age=30))
        assert other.name == "young"
        assert other.age == 22


class TestConcurrentExpiration:
    """Concurrent callers over a StoreHub with a short TTL."""

    @pytest.mark.asyncio
    async def test_concurrent_rounds_share_values(self) -> None:
        """Concurrent rounds see the same value before and after expiration."""
        count = 0

        async def fetch_name(last, key):
            nonlocal count
            value = str(count)
            count += 1
            await asyncio.sleep(0.01)
            return value

        table: dict = {}
        stores = StoreHub(MemoryStore(table), "concurrent")
        metrics = InMemoryMetrics()
        hub = CacheHub.from_hubs({"name": expire_after(fetch_name, TTL_SECONDS)}, stores, metrics=metrics)

        async def round_() -> tuple[str, str, str]:
            first = await hub["name"].get("")
            second = await hub["name"].get("")
            await asyncio.sleep(TTL_SECONDS + 0.05)
            third = await hub["name"].get("")
            return first, second, third

        results = await asyncio.gather(*[round_() for _ in range(5)])

        assert all(result == ("0", "0", "1") for result in results)
        assert count == 2
        assert list(table) == ["concurrent.name"]
        assert metrics.get_stats().shared > 0


class TestFieldIsolation:
    """Several fields over a single backing store."""

    @pytest.mark.asyncio
    async def test_fields_never_overwrite_each_other(self) -> None:
        """Same logical key in two fields maps to two entries."""

        async def fetch_a(last, key):
            return f"a:{key}"

        async def fetch_b(last, key):
            return f"b:{key}"

        table: dict = {}
        stores = StoreHub(MemoryStore(table), "app")
        hub = CacheHub.from_hubs({"a": fetch_a, "b": fetch_b}, stores)

        assert await hub["a"].get("1") == "a:1"
        assert await hub["b"].get("1") == "b:1"
        await hub["a"].set("1", "manual")

        assert table["app.a.1"].value == "manual"
        assert table["app.b.1"].value == "b:1"

    @pytest.mark.asyncio
    async def test_structured_keys_through_store_hub(self) -> None:
        """StoreHub converter collapses users by name."""
        calls = 0

        async def fetch_user(last, key):
            nonlocal calls
            calls += 1
            return last.value if last is not None else {"name": key.name, "age": key.age}

        stores = StoreHub(MemoryStore(), "app", convert=attribute_key("name"))
        hub = CacheHub.from_hubs({"user": expire_after(fetch_user, 60)}, stores)

        first = await hub["user"].get(User("young", 18))
        second = await hub["user"].get(User("young", 22))

        assert second == first == {"name": "young", "age": 18}
        assert calls == 1


class TestPersistentStore:
    """Hub over a Dapr state store behind a fake sidecar."""

    @pytest.mark.asyncio
    async def test_values_survive_new_hub(self) -> None:
        """A new hub over the same state store reuses the persisted snapshot."""
        state: dict[str, str] = {}

        def sidecar(request: httpx.Request) -> httpx.Response:
            prefix = "/v1.0/state/cache"
            if request.method == "POST":
                for item in json.loads(request.content):
                    state[item["key"]] = item["value"]
                return httpx.Response(204)
            key = request.url.path[len(prefix) + 1 :]
            if request.method == "DELETE":
                state.pop(key, None)
                return httpx.Response(204)
            if key in state:
                return httpx.Response(200, json=state[key])
            return httpx.Response(204)

        def new_backing() -> DaprStateStore:
            store = DaprStateStore("cache", "session", dapr_url="http://test:3500")
            store._async_client = httpx.AsyncClient(
                base_url="http://test:3500", transport=httpx.MockTransport(sidecar)
            )
            return store

        count = 0

        async def fetch_token(last, key):
            nonlocal count
            count += 1
            return f"token_{count}"

        first_backing = new_backing()
        first_hub = CacheHub.from_hubs({"token": expire_after(fetch_token, 60)}, StoreHub(first_backing, "app"))
        assert await first_hub["token"].get("") == "token_1"
        assert state["session.__keys__"] == ["session.app.token"]
        assert "session.app.token" in state

        second_backing = new_backing()
        second_hub = CacheHub.from_hubs({"token": expire_after(fetch_token, 60)}, StoreHub(second_backing, "app"))
        assert await second_hub["token"].get("") == "token_1"
        assert count == 1

        # Uma terceira instância, que nunca gravou nada, limpa o escopo
        third_backing = new_backing()
        third_hub = CacheHub.from_hubs({"token": expire_after(fetch_token, 60)}, StoreHub(third_backing, "app"))
        await third_hub["token"].clear()
        assert state == {}
        assert await second_hub["token"].get("") == "token_2"

        await first_backing.aclose()
        await second_backing.aclose()
        await third_backing.aclose()
