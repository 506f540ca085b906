"""Política de frescor (TTL) para providers."""

import logging
from collections.abc import Callable
from typing import TypeVar

from .entry import CacheEntry, now
from .protocols import Provider

logger = logging.getLogger(__name__)

K = TypeVar("K")
V = TypeVar("V")

DEFAULT_TTL_SECONDS = 3600


def expire_after(
    provider: Provider[K, V],
    ttl_seconds: float = DEFAULT_TTL_SECONDS,
    *,
    clock: Callable[[], float] = now,
) -> Provider[K, V]:
    """Envolve um provider com uma política de TTL.

    Enquanto o último snapshot tiver idade menor que ``ttl_seconds``, o valor
    armazenado é devolvido sem chamar o provider original. Sem snapshot, ou
    com snapshot expirado, o provider é chamado.

    O wrapper não escreve no store: o Cache grava apenas quando o valor
    retornado difere do armazenado. Erros do provider são propagados.

    Args:
        provider: Provider original
        ttl_seconds: Tempo de vida do snapshot em segundos
        clock: Fonte de tempo (default: time.time)

    Returns:
        Provider com TTL

    Raises:
        ValueError: Se ttl_seconds for negativo

    Example:
        ```python
        async def fetch_token(last, key):
            return await auth.new_token()

        provider = expire_after(fetch_token, ttl_seconds=300)
        ```
    """
    if ttl_seconds < 0:
        raise ValueError(f"ttl_seconds deve ser >= 0, recebido: {ttl_seconds}")

    async def wrapper(last: CacheEntry[V] | None, key: K) -> V:
        if last is None:
            return await provider(last, key)

        age = clock() - last.created_at
        if age < ttl_seconds:
            logger.debug(f"Snapshot ainda válido para {key!r} (idade {age:.3f}s)")
            return last.value

        logger.debug(f"Snapshot expirado para {key!r} (idade {age:.3f}s)")
        return await provider(last, key)

    return wrapper
