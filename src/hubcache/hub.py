"""Composição de múltiplos campos de cache sobre stores compartilhados."""

import logging
from collections.abc import Callable, Iterator, Mapping
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

from .cache import Cache
from .entry import CacheEntry, now
from .keys import build_key, str_key
from .metrics import CacheMetrics
from .protocols import Provider, Store

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")


@dataclass(frozen=True)
class FieldConfig(Generic[K, V]):
    """Configuração de um campo: provider + store."""

    provider: Provider[K, V]
    store: Store[K, V]


class CacheHub(Mapping[str, Cache[Any, Any]]):
    """Coleção de caches por campo, construídos sob demanda.

    O primeiro acesso a um campo cria o ``Cache`` com o store e o provider
    configurados; acessos seguintes retornam a mesma instância. Cada campo
    tem seus próprios registros de deduplicação.

    Example:
        ```python
        hub = CacheHub({
            "token": FieldConfig(expire_after(fetch_token, 300), MemoryStore(table)),
            "user": FieldConfig(fetch_user, MemoryStore(table, attribute_key("name"))),
        })

        token = await hub["token"].get("")
        user = await hub.field("user").get(User(name="young", age=18))
        ```
    """

    def __init__(
        self,
        fields: Mapping[str, FieldConfig[Any, Any]],
        *,
        metrics: CacheMetrics | None = None,
        clock: Callable[[], float] = now,
    ) -> None:
        """Inicializa o hub.

        Args:
            fields: Configuração por nome de campo
            metrics: Coletor compartilhado por todos os campos
            clock: Fonte de tempo dos snapshots
        """
        self._fields = dict(fields)
        self._metrics = metrics
        self._clock = clock
        self._caches: dict[str, Cache[Any, Any]] = {}

    @classmethod
    def from_hubs(
        cls,
        providers: Mapping[str, Provider[Any, Any]],
        stores: "Mapping[str, Store[Any, Any]] | StoreHub",
        *,
        metrics: CacheMetrics | None = None,
        clock: Callable[[], float] = now,
    ) -> "CacheHub":
        """Cria hub pareando um registro de providers com um de stores.

        Os campos são os do registro de providers; ``stores`` pode ser um
        dict ou um ``StoreHub``.

        Raises:
            KeyError: Se algum campo não tiver store
        """
        fields = {name: FieldConfig(provider, stores[name]) for name, provider in providers.items()}
        return cls(fields, metrics=metrics, clock=clock)

    def field(self, name: str) -> Cache[Any, Any]:
        """Retorna (criando se necessário) o cache do campo.

        Raises:
            KeyError: Se o campo não estiver configurado
        """
        cache = self._caches.get(name)
        if cache is None:
            config = self._fields[name]
            cache = Cache(config.store, config.provider, name=name, metrics=self._metrics, clock=self._clock)
            self._caches[name] = cache
            logger.debug(f"Cache criado para campo: {name}")
        return cache

    def __getitem__(self, name: str) -> Cache[Any, Any]:
        return self.field(name)

    def __iter__(self) -> Iterator[str]:
        return iter(self._fields)

    def __len__(self) -> int:
        return len(self._fields)

    def __contains__(self, name: object) -> bool:
        return name in self._fields

    def built(self) -> list[str]:
        """Campos cujos caches já foram criados."""
        return list(self._caches)


class FieldStore:
    """Store de um campo sobre um store compartilhado.

    ``get``/``set``/``delete`` acessam o store compartilhado com a chave
    ``build_key(field, scope, key)``. ``clear`` delega ao ``clear`` do store
    compartilhado, ou seja, limpa todos os campos que o compartilham.
    """

    def __init__(
        self,
        backing: Store[Any, Any],
        field: str,
        scope: str | None = None,
        convert: Callable[[Any], str] = str_key,
    ) -> None:
        self._backing = backing
        self._field = field
        self._scope = scope
        self._convert = convert

    @property
    def field(self) -> str:
        return self._field

    def _physical_key(self, key: str) -> str:
        return build_key(self._field, self._scope, key)

    async def get(self, key: str) -> CacheEntry[Any] | None:
        return await self._backing.get(self._physical_key(key))

    async def set(self, key: str, entry: CacheEntry[Any]) -> None:
        await self._backing.set(self._physical_key(key), entry)

    async def delete(self, key: str) -> None:
        await self._backing.delete(self._physical_key(key))

    async def clear(self) -> None:
        await self._backing.clear()

    def convert(self, key: Any) -> str:
        return self._convert(key)

    def __repr__(self) -> str:
        return f"FieldStore(field={self._field!r}, scope={self._scope!r})"


class StoreHub:
    """Coleção de stores por campo derivados de um único store.

    Permite que vários campos compartilhem uma mesma tabela física sem
    colisão de chaves: cada campo usa o namespace ``scope.campo``.
    Qualquer nome de campo é aceito; o store é criado no primeiro acesso
    e reutilizado depois.

    Example:
        ```python
        stores = StoreHub(MemoryStore(), scope="session")
        hub = CacheHub.from_hubs({"name": fetch_name}, stores)
        ```
    """

    def __init__(
        self,
        backing: Store[Any, Any],
        scope: str | None = None,
        *,
        convert: Callable[[Any], str] = str_key,
    ) -> None:
        """Inicializa o hub de stores.

        Args:
            backing: Store compartilhado
            scope: Escopo opcional prefixado em todas as chaves
            convert: Conversor de chave lógica usado pelos stores derivados
        """
        self._backing = backing
        self._scope = scope
        self._convert = convert
        self._stores: dict[str, FieldStore] = {}

    @property
    def scope(self) -> str | None:
        return self._scope

    def field(self, name: str) -> FieldStore:
        """Retorna (criando se necessário) o store do campo."""
        store = self._stores.get(name)
        if store is None:
            store = FieldStore(self._backing, name, self._scope, self._convert)
            self._stores[name] = store
        return store

    def __getitem__(self, name: str) -> FieldStore:
        return self.field(name)

    def fields(self) -> list[str]:
        """Campos cujos stores já foram criados."""
        return list(self._stores)
