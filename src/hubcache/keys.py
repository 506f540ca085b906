"""Derivação de chaves canônicas."""

import hashlib
import json
from collections.abc import Callable, Mapping
from typing import Any

KEY_SEPARATOR = "."


def build_key(field: str, scope: str | None = None, key: str | None = None) -> str:
    """Monta a chave física de um campo em um store compartilhado.

    Formato ``scope.field.key``, degradando para ``field.key``,
    ``scope.field`` ou ``field`` quando scope e/ou key estão vazios.

    Args:
        field: Nome do campo
        scope: Escopo opcional (namespace do hub)
        key: Chave canônica do campo

    Returns:
        Chave física
    """
    parts = [part for part in (scope, field, key) if part]
    return KEY_SEPARATOR.join(parts) if parts else field


def str_key(key: Any) -> str:
    """Conversor padrão: ``None`` vira ``""``, o resto vira ``str``."""
    if key is None:
        return ""
    if isinstance(key, str):
        return key
    return str(key)


def attribute_key(*names: str, separator: str = KEY_SEPARATOR) -> Callable[[Any], str]:
    """Cria conversor que usa apenas alguns atributos da chave lógica.

    Aceita tanto objetos (atributos) quanto mappings (itens). Chaves
    lógicas diferentes com os mesmos valores nesses campos colapsam
    na mesma chave canônica.

    Example:
        ```python
        convert = attribute_key("name")
        convert(User(name="young", age=18))  # "young"
        convert({"name": "young", "age": 22})  # "young"
        ```

    Raises:
        ValueError: Se nenhum nome for informado
    """
    if not names:
        raise ValueError("Informe ao menos um atributo")

    def convert(key: Any) -> str:
        values = []
        for name in names:
            value = key[name] if isinstance(key, Mapping) else getattr(key, name)
            values.append(str_key(value))
        return separator.join(values)

    return convert


def hashed_key(prefix: str | None = None) -> Callable[[Any], str]:
    """Cria conversor que gera hash SHA256 determinístico da chave lógica.

    Útil para chaves estruturadas (dicts, listas, sets) que não têm uma
    representação textual estável.

    Args:
        prefix: Prefixo opcional, separado por ``:``
    """

    def convert(key: Any) -> str:
        try:
            serialized = json.dumps(_normalize(key), sort_keys=True, default=str)
        except (TypeError, ValueError):
            serialized = repr(key)
        digest = hashlib.sha256(serialized.encode()).hexdigest()[:16]
        return f"{prefix}:{digest}" if prefix else digest

    return convert


def _normalize(obj: Any) -> Any:
    """Normaliza objeto para serialização JSON."""
    if obj is None or isinstance(obj, (bool, int, float, str)):
        return obj
    if isinstance(obj, bytes):
        return obj.decode("utf-8", errors="replace")
    if isinstance(obj, (list, tuple)):
        return [_normalize(item) for item in obj]
    if isinstance(obj, Mapping):
        return {str(k): _normalize(v) for k, v in obj.items()}
    if isinstance(obj, (set, frozenset)):
        # Ordena por tipo e texto para suportar sets com tipos mistos
        normalized_items = [_normalize(item) for item in obj]
        return sorted(normalized_items, key=lambda x: (type(x).__name__, str(x)))
    if hasattr(obj, "__dict__"):
        return {k: _normalize(v) for k, v in vars(obj).items() if not k.startswith("_")}
    return str(obj)
