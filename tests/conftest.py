"""Configuração de fixtures para testes."""

from typing import Any

import pytest

from hubcache import CacheEntry, MemoryStore


class FakeClock:
    """Relógio manual para testar TTL sem esperar."""

    def __init__(self, start: float = 1_000_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


class CountingProvider:
    """Provider que emite ``{prefix}_0``, ``{prefix}_1``, ... a cada chamada real."""

    def __init__(self, prefix: str = "hello") -> None:
        self.prefix = prefix
        self.calls = 0
        self.keys: list[Any] = []

    async def __call__(self, last: CacheEntry[str] | None, key: Any) -> str:
        value = f"{self.prefix}_{self.calls}"
        self.calls += 1
        self.keys.append(key)
        return value


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def counting_provider() -> CountingProvider:
    return CountingProvider()


@pytest.fixture
def table() -> dict[str, CacheEntry[Any]]:
    """Tabela compartilhada entre stores em memória."""
    return {}


@pytest.fixture
def memory_store(table: dict[str, CacheEntry[Any]]) -> MemoryStore:
    return MemoryStore(table)


@pytest.fixture
def sample_data() -> dict:
    """Dados de exemplo para testes."""
    return {"user_id": 123, "name": "Test User", "active": True}
