"""Exceções do hubcache."""


class CacheError(Exception):
    """Erro base para operações de cache."""

    def __init__(self, message: str, key: str | None = None) -> None:
        self.key = key
        super().__init__(message)


class CacheKeyError(CacheError):
    """Erro relacionado à chave ou escopo (vazio, inválido, etc.)."""

    pass


class CacheStoreError(CacheError):
    """Falha de leitura/escrita/remoção em um store."""

    pass


class CacheConnectionError(CacheStoreError):
    """Erro de conexão com o backend de persistência."""

    pass


class CacheSerializationError(CacheError):
    """Erro de serialização/deserialização de dados."""

    pass
