"""Fachada de cache para um campo: get/set/delete/clear."""

import logging
import time
from collections.abc import Callable
from typing import Any, Generic, TypeVar

from .deduplication import DeduplicationManager
from .entry import CacheEntry, now
from .metrics import CacheMetrics, NoOpMetrics
from .protocols import Provider, Store

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")


class Cache(Generic[K, V]):
    """Orquestra Store + Provider + deduplicação em uma API de cache.

    Fluxo do ``get``:
    1. Converte a chave lógica em chave canônica (``store.convert``)
    2. Deduplica chamadas concorrentes para a mesma chave canônica
    3. Lê o snapshot atual do store e chama o provider com ``(snapshot, chave)``
    4. Se o valor retornado difere do armazenado, grava novo snapshot

    ``get``, ``set`` e ``delete`` têm registros de deduplicação independentes:
    um ``get`` e um ``set`` para a mesma chave podem rodar ao mesmo tempo.

    Erros de store ou provider são logados e propagados sem retry.

    Example:
        ```python
        async def fetch_token(last, key):
            return await auth.new_token()

        cache = Cache(MemoryStore(), expire_after(fetch_token, ttl_seconds=300))
        token = await cache.get("")
        await cache.delete("")
        ```
    """

    def __init__(
        self,
        store: Store[K, V],
        provider: Provider[K, V],
        *,
        name: str | None = None,
        metrics: CacheMetrics | None = None,
        clock: Callable[[], float] = now,
    ) -> None:
        """Inicializa a fachada.

        Args:
            store: Store onde os snapshots são persistidos
            provider: Provider que produz os valores (normalmente com TTL)
            name: Nome do campo (usado em logs)
            metrics: Coletor de métricas (default: NoOpMetrics)
            clock: Fonte de tempo dos snapshots (default: time.time)
        """
        self._store = store
        self._provider = provider
        self._name = name or "cache"
        self._metrics = metrics or NoOpMetrics()
        self._clock = clock
        self._get_dedup = DeduplicationManager(f"{self._name}.get", self._metrics)
        self._set_dedup = DeduplicationManager(f"{self._name}.set", self._metrics)
        self._delete_dedup = DeduplicationManager(f"{self._name}.delete", self._metrics)

    @property
    def name(self) -> str:
        return self._name

    @property
    def store(self) -> Store[K, V]:
        return self._store

    async def get(self, key: K) -> V:
        """Obtém o valor da chave, chamando o provider quando necessário.

        Args:
            key: Chave lógica do campo

        Returns:
            Valor retornado pelo provider (ou o armazenado, se ainda válido)

        Raises:
            Exception: Erros do store ou do provider, sem alteração
        """
        store_key = self._store.convert(key)
        return await self._get_dedup.deduplicate(store_key, lambda: self._load(key, store_key))

    async def _load(self, key: K, store_key: str) -> V:
        start_time = time.perf_counter()
        try:
            entry = await self._store.get(store_key)
            result = await self._provider(entry, key)

            latency = time.perf_counter() - start_time
            if entry is not None and _same_value(result, entry.value):
                self._metrics.record_hit(store_key, latency)
                logger.debug(f"Cache hit: {self._name}[{store_key}]")
                return result

            self._metrics.record_miss(store_key, latency)
            logger.debug(f"Cache miss: {self._name}[{store_key}]")
            await self._store.set(store_key, CacheEntry(result, self._clock()))
            self._metrics.record_write(store_key)
            return result

        except Exception as e:
            self._fail("get", store_key, e)
            raise

    async def set(self, key: K, value: V) -> None:
        """Grava o valor diretamente, sem passar pelo provider."""
        store_key = self._store.convert(key)

        async def write() -> None:
            try:
                await self._store.set(store_key, CacheEntry(value, self._clock()))
                self._metrics.record_write(store_key)
                logger.debug(f"Cache set: {self._name}[{store_key}]")
            except Exception as e:
                self._fail("set", store_key, e)
                raise

        await self._set_dedup.deduplicate(store_key, write)

    async def delete(self, key: K) -> None:
        """Remove o snapshot da chave; o próximo get chama o provider."""
        store_key = self._store.convert(key)

        async def remove() -> None:
            try:
                await self._store.delete(store_key)
                logger.debug(f"Cache delete: {self._name}[{store_key}]")
            except Exception as e:
                self._fail("delete", store_key, e)
                raise

        await self._delete_dedup.deduplicate(store_key, remove)

    async def clear(self) -> None:
        """Limpa o store (sem deduplicação)."""
        try:
            await self._store.clear()
            logger.debug(f"Cache clear: {self._name}")
        except Exception as e:
            self._fail("clear", "*", e)
            raise

    def _fail(self, operation: str, store_key: str, error: Exception) -> None:
        logger.error(f"Erro em {operation} para {self._name}[{store_key}]: {error!r}")
        self._metrics.record_error(store_key, error)

    def __repr__(self) -> str:
        return f"Cache(name={self._name!r}, store={self._store!r})"


def _same_value(result: Any, stored: Any) -> bool:
    """Compara por identidade e, depois, por igualdade."""
    if result is stored:
        return True
    try:
        return bool(result == stored)
    except Exception:
        # Tipos cuja comparação falha (ex.: arrays) são tratados como diferentes
        return False
