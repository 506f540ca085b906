"""Stores prontos para uso.

- MemoryStore: tabela em memória (dict injetado)
- DaprStateStore: persistente, via Dapr State Store (HTTP)
"""

from .dapr import DaprStateStore
from .memory import MemoryStore

__all__ = [
    "DaprStateStore",
    "MemoryStore",
]
