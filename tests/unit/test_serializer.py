"""Testes para os serializers."""

import pytest

from hubcache.entry import CacheEntry
from hubcache.exceptions import CacheSerializationError
from hubcache.serializer import JsonSerializer, MsgPackSerializer


class TestMsgPackSerializer:
    """Testes para MsgPackSerializer."""

    def test_serialize_entry_dict(self) -> None:
        """Deve serializar o formato persistido de um snapshot."""
        serializer = MsgPackSerializer()
        data = CacheEntry({"name": "young", "age": 22}, 1700000000.5).to_dict()

        result = serializer.deserialize(serializer.serialize(data))

        assert CacheEntry.from_dict(result) == CacheEntry({"name": "young", "age": 22}, 1700000000.5)

    def test_serialize_bytes(self) -> None:
        """Deve preservar bytes."""
        serializer = MsgPackSerializer()
        assert serializer.deserialize(serializer.serialize(b"binary data")) == b"binary data"

    def test_serialize_unsupported_type_raises_error(self) -> None:
        """Deve lançar erro para tipos não suportados."""
        serializer = MsgPackSerializer()

        with pytest.raises(CacheSerializationError):
            serializer.serialize(object())

    def test_deserialize_invalid_data_raises_error(self) -> None:
        """Deve lançar erro ao deserializar dados inválidos."""
        serializer = MsgPackSerializer()

        with pytest.raises(CacheSerializationError):
            serializer.deserialize(b"invalid msgpack data \xff\xfe")


class TestJsonSerializer:
    """Testes para JsonSerializer."""

    def test_compact_sorted_output(self) -> None:
        """Deve gerar JSON compacto com chaves ordenadas."""
        serializer = JsonSerializer()

        result = serializer.serialize({"value": "v", "created_at": 1.5})

        assert result == b'{"created_at":1.5,"value":"v"}'

    def test_roundtrip_unicode(self) -> None:
        """Deve preservar texto unicode."""
        serializer = JsonSerializer()
        data = {"value": "olá, mundo", "created_at": 1.0}

        assert serializer.deserialize(serializer.serialize(data)) == data

    def test_serialize_unsupported_type_raises_error(self) -> None:
        """Deve lançar erro para tipos não suportados."""
        serializer = JsonSerializer()

        with pytest.raises(CacheSerializationError):
            serializer.serialize({"value": object()})

    def test_deserialize_invalid_data_raises_error(self) -> None:
        """Deve lançar erro para JSON inválido."""
        serializer = JsonSerializer()

        with pytest.raises(CacheSerializationError):
            serializer.deserialize(b"{not json")
