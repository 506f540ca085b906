"""Store persistente sobre o Dapr State Store via API HTTP do sidecar."""

import asyncio
import base64
import binascii
import json
import logging
import os
from collections.abc import Callable
from typing import Any
from urllib.parse import quote

import httpx

from ..entry import CacheEntry
from ..exceptions import CacheConnectionError, CacheKeyError, CacheSerializationError, CacheStoreError
from ..keys import str_key
from ..protocols import Serializer
from ..serializer import MsgPackSerializer

logger = logging.getLogger(__name__)

# Configuração do sidecar Dapr
DEFAULT_DAPR_HTTP_PORT = 3500
DEFAULT_TIMEOUT_SECONDS = 5.0

_SUCCESS_STATUS = (200, 201, 204)

# Chave (dentro do escopo) do índice de chaves gravadas
INDEX_KEY = "__keys__"


def _get_dapr_url() -> str:
    """Obtém a URL base do sidecar Dapr."""
    host = os.getenv("DAPR_HTTP_HOST", "127.0.0.1")
    port = os.getenv("DAPR_HTTP_PORT", str(DEFAULT_DAPR_HTTP_PORT))
    return f"http://{host}:{port}"


class DaprStateStore:
    """Store persistente usando a API REST de state do Dapr.

    Cada snapshot é serializado (default: MsgPack), codificado em base64 e
    salvo com a chave física ``{scope}.{chave}``. O escopo isola stores que
    compartilham o mesmo state store do Dapr.

    A API REST do Dapr State:
    - GET /v1.0/state/{storename}/{key} - buscar valor
    - POST /v1.0/state/{storename} - salvar valor(es)
    - DELETE /v1.0/state/{storename}/{key} - deletar valor

    O Dapr não lista chaves: cada escopo mantém no próprio state store um
    índice (``{scope}.__keys__``) com as chaves físicas gravadas, atualizado
    em ``set``/``delete`` e lido por ``clear``. Assim ``clear`` alcança também
    o que foi gravado por outras instâncias ou processos.

    Attributes:
        store_name: Nome do state store configurado no Dapr
        scope: Prefixo das chaves físicas
    """

    def __init__(
        self,
        store_name: str,
        scope: str,
        *,
        convert: Callable[[Any], str] = str_key,
        serializer: Serializer | None = None,
        ttl_seconds: int | None = None,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        dapr_url: str | None = None,
    ) -> None:
        """Inicializa o store.

        Args:
            store_name: Nome do state store Dapr
            scope: Escopo das chaves (não pode ser vazio)
            convert: Conversor de chave lógica para chave canônica
            serializer: Serializer dos snapshots (default: MsgPackSerializer)
            ttl_seconds: TTL repassado ao Dapr (``ttlInSeconds``), opcional
            timeout: Timeout para operações HTTP
            dapr_url: URL do sidecar (usa env vars se não fornecido)

        Raises:
            CacheKeyError: Se store_name ou scope forem vazios
        """
        if not store_name:
            raise CacheKeyError("store_name não pode ser vazio")
        if not scope:
            raise CacheKeyError("scope não pode ser vazio")

        self._store_name = store_name
        self._scope = scope
        self._convert = convert
        self._serializer = serializer or MsgPackSerializer()
        self._ttl_seconds = ttl_seconds
        self._timeout = timeout
        self._base_url = dapr_url or _get_dapr_url()
        self._index_key = f"{scope}.{INDEX_KEY}"

        self._async_client: httpx.AsyncClient | None = None
        # asyncio.Lock é criado lazy para evitar "no current event loop" em Python 3.10+
        self._async_client_lock: asyncio.Lock | None = None
        self._index_lock: asyncio.Lock | None = None

    @property
    def store_name(self) -> str:
        """Nome do state store."""
        return self._store_name

    @property
    def scope(self) -> str:
        return self._scope

    def _get_async_lock(self) -> asyncio.Lock:
        """Obtém ou cria lock assíncrono (lazy init)."""
        if self._async_client_lock is None:
            self._async_client_lock = asyncio.Lock()
        return self._async_client_lock

    def _get_index_lock(self) -> asyncio.Lock:
        if self._index_lock is None:
            self._index_lock = asyncio.Lock()
        return self._index_lock

    async def _get_async_client(self) -> httpx.AsyncClient:
        """Obtém ou cria cliente HTTP assíncrono.

        Usa double-checked locking com asyncio.Lock para não bloquear o event loop.
        """
        if self._async_client is None:
            async with self._get_async_lock():
                if self._async_client is None:
                    self._async_client = httpx.AsyncClient(
                        base_url=self._base_url,
                        timeout=self._timeout,
                    )
        return self._async_client

    def _state_url(self, key: str | None = None) -> str:
        """Constrói URL para operações de state."""
        if key:
            return f"/v1.0/state/{self._store_name}/{quote(key, safe='')}"
        return f"/v1.0/state/{self._store_name}"

    def _physical_key(self, key: str) -> str:
        if key == INDEX_KEY:
            raise CacheKeyError(f"Chave reservada: {key}", key=key)
        return f"{self._scope}.{key}"

    def _encode_entry(self, entry: CacheEntry[Any]) -> str:
        """Serializa o snapshot e codifica em base64 para envio via JSON."""
        data = self._serializer.serialize(entry.to_dict())
        return base64.b64encode(data).decode("ascii")

    def _decode_entry(self, key: str, content: bytes) -> CacheEntry[Any]:
        """Decodifica o snapshot recebido do Dapr.

        O Dapr devolve o valor salvo como string JSON (com aspas); valores
        gravados por outros clientes podem vir sem aspas.

        Raises:
            CacheSerializationError: Se o conteúdo não for um snapshot válido
        """
        try:
            try:
                text = json.loads(content)
            except ValueError:
                text = content.decode("utf-8")
            if not isinstance(text, str):
                raise CacheSerializationError(f"Formato inesperado: {type(text).__name__}", key=key)
            data = self._serializer.deserialize(base64.b64decode(text, validate=True))
            return CacheEntry.from_dict(data)
        except (binascii.Error, UnicodeDecodeError, KeyError, TypeError, ValueError) as e:
            raise CacheSerializationError(f"Snapshot inválido para chave {key}: {e}", key=key) from e

    async def get(self, key: str) -> CacheEntry[Any] | None:
        """Busca snapshot do state store.

        Returns:
            Snapshot ou None se não encontrado

        Raises:
            CacheConnectionError: Se não conseguir conectar ao sidecar
            CacheStoreError: Se o Dapr responder com erro
            CacheSerializationError: Se o conteúdo não puder ser decodificado
        """
        physical_key = self._physical_key(key)
        content = await self._get_raw(physical_key)
        if content is None:
            logger.debug(f"Chave ausente no state store: {physical_key}")
            return None

        logger.debug(f"Chave encontrada no state store: {physical_key}")
        return self._decode_entry(physical_key, content)

    async def set(self, key: str, entry: CacheEntry[Any]) -> None:
        """Salva snapshot no state store e registra a chave no índice do escopo.

        Raises:
            CacheConnectionError: Se não conseguir conectar ao sidecar
            CacheStoreError: Se o Dapr responder com erro
            CacheSerializationError: Se o valor não puder ser serializado
        """
        physical_key = self._physical_key(key)
        item: dict[str, Any] = {"key": physical_key, "value": self._encode_entry(entry)}
        if self._ttl_seconds is not None:
            item["metadata"] = {"ttlInSeconds": str(self._ttl_seconds)}

        # Toda chave com valor gravado já consta no índice
        async with self._get_index_lock():
            keys = await self._read_index()
            if physical_key not in keys:
                await self._write_index([*keys, physical_key])

        await self._post(physical_key, [item])
        logger.debug(f"Estado salvo para chave: {physical_key}")

    async def delete(self, key: str) -> None:
        """Remove snapshot do state store."""
        physical_key = self._physical_key(key)
        await self._delete_raw(physical_key)

        async with self._get_index_lock():
            keys = await self._read_index()
            if physical_key in keys:
                await self._write_index([k for k in keys if k != physical_key])
        logger.debug(f"Estado removido para chave: {physical_key}")

    async def clear(self) -> None:
        """Remove todas as chaves deste escopo registradas no índice persistido."""
        async with self._get_index_lock():
            keys = await self._read_index()
            logger.debug(f"Limpando escopo {self._scope} ({len(keys)} chaves)")
            for physical_key in keys:
                await self._delete_raw(physical_key)
            await self._delete_raw(self._index_key)

    async def _read_index(self) -> list[str]:
        """Lê a lista de chaves físicas gravadas neste escopo."""
        content = await self._get_raw(self._index_key)
        if content is None:
            return []
        try:
            keys = json.loads(content)
        except ValueError as e:
            raise CacheSerializationError(f"Índice inválido: {e}", key=self._index_key) from e
        if not isinstance(keys, list) or not all(isinstance(k, str) for k in keys):
            raise CacheSerializationError("Índice inválido: esperado lista de chaves", key=self._index_key)
        return keys

    async def _write_index(self, keys: list[str]) -> None:
        if not keys:
            await self._delete_raw(self._index_key)
            return
        await self._post(self._index_key, [{"key": self._index_key, "value": keys}])

    async def _get_raw(self, physical_key: str) -> bytes | None:
        try:
            client = await self._get_async_client()
            response = await client.get(self._state_url(physical_key))
        except httpx.HTTPError as e:
            raise CacheConnectionError(f"Não foi possível conectar ao sidecar Dapr: {e}", key=physical_key) from e

        if response.status_code == 204 or (response.status_code == 200 and not response.content):
            return None
        if response.status_code == 200:
            return response.content
        raise CacheStoreError(f"Resposta inesperada do Dapr: {response.status_code}", key=physical_key)

    async def _post(self, physical_key: str, items: list[dict[str, Any]]) -> None:
        try:
            client = await self._get_async_client()
            response = await client.post(self._state_url(), json=items)
        except httpx.HTTPError as e:
            raise CacheConnectionError(f"Não foi possível conectar ao sidecar Dapr: {e}", key=physical_key) from e

        if response.status_code not in _SUCCESS_STATUS:
            raise CacheStoreError(f"Falha ao salvar estado: {response.status_code}", key=physical_key)

    async def _delete_raw(self, physical_key: str) -> None:
        try:
            client = await self._get_async_client()
            response = await client.delete(self._state_url(physical_key))
        except httpx.HTTPError as e:
            raise CacheConnectionError(f"Não foi possível conectar ao sidecar Dapr: {e}", key=physical_key) from e

        if response.status_code not in _SUCCESS_STATUS:
            raise CacheStoreError(f"Falha ao remover estado: {response.status_code}", key=physical_key)

    def convert(self, key: Any) -> str:
        return self._convert(key)

    async def aclose(self) -> None:
        """Fecha o cliente HTTP assíncrono."""
        if self._async_client is not None:
            await self._async_client.aclose()
            self._async_client = None

    async def __aenter__(self) -> "DaprStateStore":
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.aclose()
