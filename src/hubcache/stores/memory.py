"""Store em memória."""

import logging
from collections.abc import Callable
from typing import Any

from ..entry import CacheEntry
from ..keys import str_key

logger = logging.getLogger(__name__)


class MemoryStore:
    """Store em memória sobre uma tabela (dict) injetada.

    Vários stores podem compartilhar a mesma tabela, cada um com seu próprio
    conversor de chave. ``clear`` esvazia a tabela inteira.

    Example:
        ```python
        table: dict[str, CacheEntry] = {}
        tokens = MemoryStore(table, lambda key: f"token.{key or ''}")
        users = MemoryStore(table, attribute_key("name"))
        ```
    """

    def __init__(
        self,
        table: dict[str, CacheEntry[Any]] | None = None,
        convert: Callable[[Any], str] = str_key,
    ) -> None:
        """Inicializa o store.

        Args:
            table: Tabela compartilhada (cria uma nova se omitida)
            convert: Conversor de chave lógica para chave canônica
        """
        self._table: dict[str, CacheEntry[Any]] = {} if table is None else table
        self._convert = convert

    @property
    def table(self) -> dict[str, CacheEntry[Any]]:
        return self._table

    async def get(self, key: str) -> CacheEntry[Any] | None:
        return self._table.get(key)

    async def set(self, key: str, entry: CacheEntry[Any]) -> None:
        self._table[key] = entry

    async def delete(self, key: str) -> None:
        self._table.pop(key, None)

    async def clear(self) -> None:
        logger.debug(f"Limpando tabela em memória ({len(self._table)} entradas)")
        self._table.clear()

    def convert(self, key: Any) -> str:
        return self._convert(key)
