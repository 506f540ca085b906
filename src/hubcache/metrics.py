"""Métricas de cache usando OpenTelemetry."""

from collections import deque
from dataclasses import dataclass, field, replace
from threading import Lock

from opentelemetry import metrics as otel_metrics

from .protocols import CacheMetrics


__all__ = [
    "CacheMetrics",
    "CacheStats",
    "InMemoryMetrics",
    "KeyStats",
    "NoOpMetrics",
    "OVERFLOW_KEY",
    "OpenTelemetryMetrics",
]


class NoOpMetrics:
    """Coletor de métricas que não faz nada (default)."""

    def record_hit(self, key: str, latency: float) -> None:
        pass

    def record_miss(self, key: str, latency: float) -> None:
        pass

    def record_write(self, key: str) -> None:
        pass

    def record_error(self, key: str, error: Exception) -> None:
        pass

    def record_shared(self, key: str) -> None:
        pass


class _HitRatio:
    """Contagem de gets e taxa de acerto, comum às estatísticas."""

    hits: int
    misses: int

    @property
    def total_operations(self) -> int:
        return self.hits + self.misses

    @property
    def hit_ratio(self) -> float:
        return self.hits / self.total_operations if self.total_operations else 0.0


def _ms(total: float, count: int) -> float:
    return total / count * 1000 if count else 0.0


@dataclass
class KeyStats(_HitRatio):
    """Contadores de uma chave canônica; latências somadas em segundos."""

    hits: int = 0
    misses: int = 0
    writes: int = 0
    errors: int = 0
    shared: int = 0
    total_latency_hits: float = 0.0
    total_latency_misses: float = 0.0

    @property
    def avg_hit_latency_ms(self) -> float:
        return _ms(self.total_latency_hits, self.hits)

    @property
    def avg_miss_latency_ms(self) -> float:
        return _ms(self.total_latency_misses, self.misses)


@dataclass
class CacheStats(_HitRatio):
    """Contadores de todas as chaves, com as últimas amostras de latência."""

    hits: int = 0
    misses: int = 0
    writes: int = 0
    errors: int = 0
    shared: int = 0
    hit_latencies: list[float] = field(default_factory=list)
    miss_latencies: list[float] = field(default_factory=list)

    @property
    def avg_hit_latency_ms(self) -> float:
        return _ms(sum(self.hit_latencies), len(self.hit_latencies))

    @property
    def avg_miss_latency_ms(self) -> float:
        return _ms(sum(self.miss_latencies), len(self.miss_latencies))


class OpenTelemetryMetrics:
    """Coletor de métricas usando OpenTelemetry.

    Métricas exportadas:
    - hubcache.hits (counter): get respondido com o snapshot armazenado
    - hubcache.misses (counter): get que produziu valor novo
    - hubcache.writes (counter): escritas no store
    - hubcache.errors (counter): erros de store ou provider
    - hubcache.shared (counter): chamadas que reaproveitaram operação em andamento
    - hubcache.latency (histogram): latência dos gets em segundos

    Example:
        ```python
        from opentelemetry.sdk.metrics import MeterProvider
        from opentelemetry import metrics

        metrics.set_meter_provider(MeterProvider())

        hub = CacheHub(fields, metrics=OpenTelemetryMetrics())
        ```
    """

    def __init__(self, meter_name: str = "hubcache") -> None:
        """Inicializa métricas OpenTelemetry.

        Args:
            meter_name: Nome do meter para agrupar métricas
        """
        meter = otel_metrics.get_meter(meter_name)

        self._hits_counter = meter.create_counter(
            "hubcache.hits",
            description="Número de gets respondidos com o snapshot armazenado",
            unit="1",
        )
        self._misses_counter = meter.create_counter(
            "hubcache.misses",
            description="Número de gets que produziram valor novo",
            unit="1",
        )
        self._writes_counter = meter.create_counter(
            "hubcache.writes",
            description="Número de escritas no store",
            unit="1",
        )
        self._errors_counter = meter.create_counter(
            "hubcache.errors",
            description="Número de erros de cache",
            unit="1",
        )
        self._shared_counter = meter.create_counter(
            "hubcache.shared",
            description="Número de chamadas deduplicadas",
            unit="1",
        )
        self._latency_histogram = meter.create_histogram(
            "hubcache.latency",
            description="Latência dos gets",
            unit="s",
        )

    def record_hit(self, key: str, latency: float) -> None:
        self._hits_counter.add(1, {"key": key})
        self._latency_histogram.record(latency, {"operation": "hit", "key": key})

    def record_miss(self, key: str, latency: float) -> None:
        self._misses_counter.add(1, {"key": key})
        self._latency_histogram.record(latency, {"operation": "miss", "key": key})

    def record_write(self, key: str) -> None:
        self._writes_counter.add(1, {"key": key})

    def record_error(self, key: str, error: Exception) -> None:
        self._errors_counter.add(1, {"key": key, "error_type": type(error).__name__})

    def record_shared(self, key: str) -> None:
        self._shared_counter.add(1, {"key": key})


# Chave que agrega as estatísticas das chaves além do limite ``max_keys``
OVERFLOW_KEY = "__overflow__"


class InMemoryMetrics:
    """Coletor em memória, com totais e contadores por chave canônica.

    Pensado para desenvolvimento e testes; seguro entre threads. Guarda só
    as últimas ``max_samples`` latências de hit e de miss. Chaves novas além
    de ``max_keys`` são contadas juntas em ``OVERFLOW_KEY``, o que limita a
    memória mesmo com chaves ilimitadas.
    """

    def __init__(self, max_samples: int = 1000, max_keys: int = 10_000) -> None:
        self._max_samples = max_samples
        self._max_keys = max_keys
        self._lock = Lock()
        self.reset()

    def reset(self) -> None:
        """Zera totais, amostras e contadores por chave."""
        with self._lock:
            self._totals = KeyStats()
            self._samples: dict[str, deque[float]] = {
                "hit": deque(maxlen=self._max_samples),
                "miss": deque(maxlen=self._max_samples),
            }
            self._by_key: dict[str, KeyStats] = {}

    def _bump(self, key: str, counter: str, latency: float | None = None) -> None:
        with self._lock:
            if key not in self._by_key and len(self._by_key) >= self._max_keys:
                key = OVERFLOW_KEY
            stats = self._by_key.setdefault(key, KeyStats())
            for target in (self._totals, stats):
                setattr(target, counter, getattr(target, counter) + 1)
            if latency is not None:
                kind = "hit" if counter == "hits" else "miss"
                self._samples[kind].append(latency)
                stats_attr = f"total_latency_{counter}"
                setattr(stats, stats_attr, getattr(stats, stats_attr) + latency)

    def record_hit(self, key: str, latency: float) -> None:
        self._bump(key, "hits", latency)

    def record_miss(self, key: str, latency: float) -> None:
        self._bump(key, "misses", latency)

    def record_write(self, key: str) -> None:
        self._bump(key, "writes")

    def record_error(self, key: str, error: Exception) -> None:
        self._bump(key, "errors")

    def record_shared(self, key: str) -> None:
        self._bump(key, "shared")

    def get_stats(self) -> CacheStats:
        """Retorna uma cópia dos totais e das amostras de latência."""
        with self._lock:
            totals = self._totals
            return CacheStats(
                hits=totals.hits,
                misses=totals.misses,
                writes=totals.writes,
                errors=totals.errors,
                shared=totals.shared,
                hit_latencies=list(self._samples["hit"]),
                miss_latencies=list(self._samples["miss"]),
            )

    def get_key_stats(self, key: str) -> KeyStats | None:
        with self._lock:
            stats = self._by_key.get(key)
            return replace(stats) if stats is not None else None

    def get_all_key_stats(self) -> dict[str, KeyStats]:
        with self._lock:
            return {key: replace(stats) for key, stats in self._by_key.items()}

    def get_top_keys(self, by: str = "hits", limit: int = 10) -> list[tuple[str, int]]:
        """Chaves ordenadas de forma decrescente por ``by`` (hits, misses, writes, errors, shared)."""
        with self._lock:
            ranked = sorted(self._by_key.items(), key=lambda item: getattr(item[1], by), reverse=True)
            return [(key, getattr(stats, by)) for key, stats in ranked[:limit]]
