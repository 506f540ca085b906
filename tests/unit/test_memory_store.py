"""Testes para o store em memória."""

import pytest

from hubcache.entry import CacheEntry
from hubcache.keys import attribute_key
from hubcache.stores.memory import MemoryStore


class TestMemoryStore:
    """Testes para MemoryStore."""

    @pytest.mark.asyncio
    async def test_get_missing_returns_none(self) -> None:
        """Chave ausente deve retornar None, não erro."""
        store = MemoryStore()
        assert await store.get("missing") is None

    @pytest.mark.asyncio
    async def test_set_and_get(self) -> None:
        """Deve armazenar e recuperar a mesma entrada."""
        store = MemoryStore()
        entry = CacheEntry("value", 1.0)

        await store.set("key", entry)

        assert await store.get("key") is entry

    @pytest.mark.asyncio
    async def test_set_replaces_entry(self) -> None:
        """Nova escrita deve substituir a anterior."""
        store = MemoryStore()
        await store.set("key", CacheEntry("v1", 1.0))
        await store.set("key", CacheEntry("v2", 2.0))

        assert (await store.get("key")).value == "v2"

    @pytest.mark.asyncio
    async def test_delete(self) -> None:
        """Deve remover a entrada (no-op se ausente)."""
        store = MemoryStore()
        await store.set("key", CacheEntry("v", 1.0))

        await store.delete("key")
        await store.delete("key")

        assert await store.get("key") is None

    @pytest.mark.asyncio
    async def test_shared_table(self, table) -> None:
        """Stores sobre a mesma tabela devem ver as mesmas entradas."""
        first = MemoryStore(table)
        second = MemoryStore(table)

        await first.set("key", CacheEntry("v", 1.0))

        assert (await second.get("key")).value == "v"
        assert first.table is table

    @pytest.mark.asyncio
    async def test_clear_empties_table(self, table) -> None:
        """clear deve esvaziar a tabela inteira."""
        store = MemoryStore(table)
        await store.set("a", CacheEntry(1, 1.0))
        await store.set("b", CacheEntry(2, 1.0))

        await store.clear()

        assert table == {}

    def test_default_convert(self) -> None:
        """Conversor padrão deve usar str_key."""
        store = MemoryStore()
        assert store.convert(None) == ""
        assert store.convert(42) == "42"

    def test_custom_convert(self) -> None:
        """Deve usar o conversor informado."""
        store = MemoryStore(convert=attribute_key("name"))
        assert store.convert({"name": "young", "age": 18}) == "young"
