"""Protocols para extensibilidade da biblioteca.

Define as interfaces que permitem plugar implementações customizadas de:
- Store: Persistência de snapshots (CacheEntry) por chave canônica
- Provider: Função async que produz o valor de um campo
- Serializer: Serialização/deserialização para stores persistentes
- CacheMetrics: Coleta de métricas
"""

from collections.abc import Awaitable
from typing import Any, Protocol, TypeVar

from .entry import CacheEntry

V = TypeVar("V")
K_contra = TypeVar("K_contra", contravariant=True)


class Provider(Protocol[K_contra, V]):
    """Protocol para providers: ``async (último snapshot | None, chave) -> valor``.

    Qualquer função async com essa assinatura satisfaz o protocol. O
    provider recebe o snapshot atual para decidir se reaproveita o valor
    (retornando ``last.value``) ou produz um novo.
    """

    def __call__(self, last: CacheEntry[V] | None, key: K_contra, /) -> Awaitable[V]: ...


class Store(Protocol[K_contra, V]):
    """Protocol para stores de snapshots.

    Um store mapeia uma chave canônica (string) para no máximo um
    CacheEntry. Ausência de entrada é um estado válido (``None``), não erro.

    Example:
        ```python
        class DictStore:
            def __init__(self) -> None:
                self._data: dict[str, CacheEntry[str]] = {}

            async def get(self, key: str) -> CacheEntry[str] | None:
                return self._data.get(key)

            async def set(self, key: str, entry: CacheEntry[str]) -> None:
                self._data[key] = entry

            async def delete(self, key: str) -> None:
                self._data.pop(key, None)

            async def clear(self) -> None:
                self._data.clear()

            def convert(self, key: int) -> str:
                return f"user.{key}"
        ```
    """

    async def get(self, key: str) -> CacheEntry[V] | None:
        """Busca a entrada da chave canônica.

        Args:
            key: Chave canônica

        Returns:
            Entrada armazenada ou None se ausente
        """
        ...

    async def set(self, key: str, entry: CacheEntry[V]) -> None:
        """Armazena (substitui) a entrada da chave canônica."""
        ...

    async def delete(self, key: str) -> None:
        """Remove a entrada da chave canônica (no-op se ausente)."""
        ...

    async def clear(self) -> None:
        """Remove todas as entradas alcançáveis por este store."""
        ...

    def convert(self, key: K_contra) -> str:
        """Converte a chave lógica do campo em chave canônica."""
        ...


class Serializer(Protocol):
    """Protocol para serialização de dados.

    Usado por stores persistentes para converter o snapshot
    (``CacheEntry.to_dict()``) em bytes.
    """

    def serialize(self, data: Any) -> bytes:
        """Serializa dados Python para bytes.

        Raises:
            CacheSerializationError: Se falhar ao serializar
        """
        ...

    def deserialize(self, data: bytes) -> Any:
        """Deserializa bytes para dados Python.

        Raises:
            CacheSerializationError: Se falhar ao deserializar
        """
        ...


class CacheMetrics(Protocol):
    """Protocol para coleta de métricas de cache.

    Example:
        ```python
        class PrometheusMetrics:
            def record_hit(self, key: str, latency: float) -> None:
                cache_hits_total.labels(key=key).inc()
                cache_latency.labels(operation="hit").observe(latency)
            ...
        ```
    """

    def record_hit(self, key: str, latency: float) -> None:
        """Registra get respondido com o valor já armazenado."""
        ...

    def record_miss(self, key: str, latency: float) -> None:
        """Registra get que produziu um valor novo."""
        ...

    def record_write(self, key: str) -> None:
        """Registra escrita no store."""
        ...

    def record_error(self, key: str, error: Exception) -> None:
        """Registra erro de store ou provider."""
        ...

    def record_shared(self, key: str) -> None:
        """Registra chamada que reaproveitou uma operação em andamento."""
        ...
