"""Serialização de snapshots para stores persistentes."""

import json
from typing import Any

import msgpack

from .exceptions import CacheSerializationError
from .protocols import Serializer

__all__ = ["JsonSerializer", "MsgPackSerializer", "Serializer"]


class MsgPackSerializer:
    """Serializer usando MessagePack (default).

    MsgPack é um formato binário eficiente, mais compacto que JSON.

    Suporta tipos Python nativos:
    - None, bool, int, float, str, bytes
    - list, tuple, dict
    """

    def serialize(self, data: Any) -> bytes:
        """Serializa dados Python para bytes MsgPack.

        Raises:
            CacheSerializationError: Se falhar ao serializar
        """
        try:
            result = msgpack.packb(data, use_bin_type=True)
            if result is None:
                raise CacheSerializationError("msgpack.packb retornou None")
            return result
        except (TypeError, ValueError) as e:
            raise CacheSerializationError(f"Falha ao serializar dados: {e}") from e

    def deserialize(self, data: bytes) -> Any:
        """Deserializa bytes MsgPack para dados Python.

        Raises:
            CacheSerializationError: Se falhar ao deserializar
        """
        try:
            return msgpack.unpackb(data, raw=False)
        except (msgpack.UnpackException, ValueError) as e:
            raise CacheSerializationError(f"Falha ao deserializar dados: {e}") from e


class JsonSerializer:
    """Serializer JSON compacto, com chaves ordenadas.

    Legível por outras linguagens que compartilhem o mesmo state store.
    Não preserva tipos Python: tuplas viram listas, por exemplo.
    """

    def serialize(self, data: Any) -> bytes:
        try:
            return json.dumps(data, separators=(",", ":"), sort_keys=True, ensure_ascii=False).encode("utf-8")
        except (TypeError, ValueError) as e:
            raise CacheSerializationError(f"Falha ao serializar dados: {e}") from e

    def deserialize(self, data: bytes) -> Any:
        try:
            return json.loads(data.decode("utf-8"))
        except (UnicodeDecodeError, ValueError) as e:
            raise CacheSerializationError(f"Falha ao deserializar dados: {e}") from e
