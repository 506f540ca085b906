"""Deduplicação de operações concorrentes por chave."""

import asyncio
import functools
import logging
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

from .metrics import CacheMetrics, NoOpMetrics

logger = logging.getLogger(__name__)

T = TypeVar("T")


class DeduplicationManager:
    """Registro de operações em andamento, no máximo uma por chave.

    Quando múltiplas chamadas concorrentes pedem a mesma operação para a
    mesma chave, apenas uma execução acontece e o resultado (valor ou
    exceção) é compartilhado com todas as chamadas aguardando.

    O registro é removido assim que a operação termina, com sucesso ou
    falha: resultados não ficam guardados aqui e uma falha não bloqueia
    novas tentativas. A operação roda em task própria e vai até o fim mesmo
    que a chamada que a iniciou seja cancelada.

    Exemplo:
        ```python
        manager = DeduplicationManager()

        async def expensive_compute():
            await asyncio.sleep(1)
            return "result"

        # Apenas uma computação é executada, mesmo com 10 chamadas
        results = await asyncio.gather(*[
            manager.deduplicate("key", expensive_compute)
            for _ in range(10)
        ])
        ```
    """

    def __init__(self, name: str = "operation", metrics: CacheMetrics | None = None) -> None:
        """Inicializa o gerenciador de deduplicação.

        Args:
            name: Tipo de operação (usado em logs)
            metrics: Coletor notificado quando uma chamada é compartilhada
        """
        self._name = name
        self._metrics = metrics or NoOpMetrics()
        self._pending: dict[str, asyncio.Future[Any]] = {}
        # asyncio.Lock é criado lazy para evitar "no current event loop" em Python 3.10+
        # quando a classe é instanciada antes de um event loop existir
        self._lock: asyncio.Lock | None = None

    @property
    def name(self) -> str:
        """Tipo de operação deduplicada."""
        return self._name

    def _get_lock(self) -> asyncio.Lock:
        """Obtém ou cria lock assíncrono (lazy init)."""
        if self._lock is None:
            self._lock = asyncio.Lock()
        return self._lock

    async def deduplicate(
        self,
        key: str,
        compute_func: Callable[[], Awaitable[T]],
    ) -> T:
        """Executa operação com deduplicação.

        Se já existe uma operação em andamento para a mesma chave,
        aguarda e retorna o mesmo resultado.

        Args:
            key: Chave canônica
            compute_func: Função async que executa a operação

        Returns:
            Resultado da operação

        Raises:
            Exception: Propaga exceções da operação para todos os waiters
        """
        async with self._get_lock():
            task = self._pending.get(key)
            shared = task is not None
            if task is None:
                # A operação roda em task própria: cancelar quem a iniciou não a interrompe
                task = asyncio.ensure_future(compute_func())
                self._pending[key] = task
                task.add_done_callback(functools.partial(self._release, key))

        if shared:
            logger.debug(f"{self._name}: aguardando operação existente para: {key}")
            self._metrics.record_shared(key)
        else:
            logger.debug(f"{self._name}: iniciando operação para: {key}")

        return await asyncio.shield(task)

    def _release(self, key: str, task: asyncio.Future[Any]) -> None:
        """Remove o registro da operação concluída (sucesso ou falha)."""
        if self._pending.get(key) is task:
            del self._pending[key]
        if not task.cancelled():
            # Marca a exceção como consumida quando ninguém está aguardando
            task.exception()

    async def is_pending(self, key: str) -> bool:
        """Verifica se há operação pendente para a chave."""
        async with self._get_lock():
            return key in self._pending

    async def pending_count(self) -> int:
        """Retorna número de operações pendentes."""
        async with self._get_lock():
            return len(self._pending)
