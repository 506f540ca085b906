"""Snapshot imutável de um valor em cache."""

import time
from dataclasses import dataclass
from typing import Any, Generic, TypeVar

V = TypeVar("V")


def now() -> float:
    """Timestamp atual (segundos desde a epoch)."""
    return time.time()


@dataclass(frozen=True)
class CacheEntry(Generic[V]):
    """Último valor conhecido para uma chave, com o instante de criação.

    Nunca é alterado: uma nova escrita cria uma nova instância.

    Attributes:
        value: Valor produzido pelo provider (ou gravado via set)
        created_at: Timestamp de criação em segundos
    """

    value: V
    created_at: float

    @classmethod
    def create(cls, value: V) -> "CacheEntry[V]":
        """Cria entrada com o timestamp atual."""
        return cls(value=value, created_at=now())

    def age(self, at: float | None = None) -> float:
        """Idade da entrada em segundos."""
        return (now() if at is None else at) - self.created_at

    def to_dict(self) -> dict[str, Any]:
        return {"value": self.value, "created_at": self.created_at}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "CacheEntry[Any]":
        """Reconstrói entrada a partir do formato persistido.

        Raises:
            KeyError: Se faltar algum campo
        """
        return cls(value=data["value"], created_at=float(data["created_at"]))
