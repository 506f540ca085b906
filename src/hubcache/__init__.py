"""hubcache: Cache assíncrono plugável com TTL e deduplicação.

Combina um provider async (quem produz o valor) com um store (onde fica o
último snapshot) em uma fachada ``get/set/delete/clear``. Chamadas
concorrentes para a mesma chave compartilham a mesma operação.

Uso básico:
    ```python
    from hubcache import CacheHub, FieldConfig, MemoryStore, StoreHub, expire_after

    async def fetch_token(last, key):
        return await auth.new_token()

    stores = StoreHub(MemoryStore(), scope="app")
    hub = CacheHub({
        "token": FieldConfig(expire_after(fetch_token, ttl_seconds=300), stores["token"]),
    })

    token = await hub["token"].get("")
    await hub["token"].delete("")
    ```

Com métricas OpenTelemetry:
    ```python
    from hubcache import CacheHub, OpenTelemetryMetrics

    hub = CacheHub(fields, metrics=OpenTelemetryMetrics())
    ```
"""

__version__ = "0.1.0"

# Fachada e composição
from .cache import Cache

# Deduplicação (uso avançado)
from .deduplication import DeduplicationManager
from .entry import CacheEntry

# Exceções
from .exceptions import (
    CacheConnectionError,
    CacheError,
    CacheKeyError,
    CacheSerializationError,
    CacheStoreError,
)

# Política de frescor
from .freshness import DEFAULT_TTL_SECONDS, expire_after
from .hub import CacheHub, FieldConfig, FieldStore, StoreHub

# Chaves
from .keys import attribute_key, build_key, hashed_key, str_key

# Métricas
from .metrics import (
    CacheStats,
    InMemoryMetrics,
    KeyStats,
    NoOpMetrics,
    OpenTelemetryMetrics,
)

# Protocols (para extensibilidade)
from .protocols import CacheMetrics, Provider, Serializer, Store

# Serialização
from .serializer import JsonSerializer, MsgPackSerializer

# Stores
from .stores import DaprStateStore, MemoryStore

__all__ = [
    # Fachada e composição
    "Cache",
    "CacheEntry",
    "CacheHub",
    "FieldConfig",
    "FieldStore",
    "StoreHub",
    # Política de frescor
    "DEFAULT_TTL_SECONDS",
    "expire_after",
    # Stores
    "DaprStateStore",
    "MemoryStore",
    # Chaves
    "attribute_key",
    "build_key",
    "hashed_key",
    "str_key",
    # Serialização
    "JsonSerializer",
    "MsgPackSerializer",
    # Métricas
    "CacheStats",
    "InMemoryMetrics",
    "KeyStats",
    "NoOpMetrics",
    "OpenTelemetryMetrics",
    # Exceções
    "CacheError",
    "CacheConnectionError",
    "CacheKeyError",
    "CacheSerializationError",
    "CacheStoreError",
    # Deduplicação
    "DeduplicationManager",
    # Protocols
    "CacheMetrics",
    "Provider",
    "Serializer",
    "Store",
]
