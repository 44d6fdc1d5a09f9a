"""
Cache en memoria con TTL para respuestas de las fuentes.

Memoiza listados de directorios, contenidos de archivos y conteos por
clave. Las entradas caducan por tiempo, independientemente de la
construcción que las creó, y se comparten entre construcciones.

Version: 1.0.0
"""

import hashlib
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional

from folderfusion.core.constants import CACHE_TTL_SECONDS
from folderfusion.core.logger import get_logger

logger = get_logger(__name__)

# Espacios de nombres de clave
LIST_NAMESPACE = "list"
CONTENT_NAMESPACE = "content"
COUNT_NAMESPACE = "count"

# Centinela para distinguir "no existe" de un None almacenado
MISSING = object()


def make_key(namespace: str, source: str, path: str) -> str:
    """
    Construye la clave de cache `<namespace>:<source>/<path>`.

    Example:
        >>> make_key("list", "acme/widgets", "src")
        'list:acme/widgets/src'
    """
    return f"{namespace}:{source}/{path}"


def credential_scope(token: Optional[str]) -> str:
    """
    Ámbito de credencial para las claves de cache.

    Las respuestas obtenidas con un token no deben servirse a otra
    credencial (ni a peticiones anónimas). El token nunca aparece en la
    clave: sólo un prefijo de su sha256.

    Example:
        >>> credential_scope(None)
        'anon'
    """
    if not token:
        return "anon"
    return "tok-" + hashlib.sha256(token.encode("utf-8")).hexdigest()[:16]


@dataclass
class CacheEntry:
    key: str
    value: Any
    stored_at: float


class ResponseCache:
    """
    Cache thread-safe con expiración por TTL.

    Una entrada se considera caducada cuando `ahora - stored_at > ttl`; se
    elimina al consultarla. El reloj es inyectable para pruebas.
    """

    def __init__(self, ttl: float = CACHE_TTL_SECONDS, clock: Callable[[], float] = time.monotonic):
        self.ttl = ttl
        self._clock = clock
        self._entries: Dict[str, CacheEntry] = {}
        self._lock = threading.Lock()
        self.hits = 0
        self.misses = 0

    def get(self, key: str, default: Any = None) -> Any:
        """Devuelve el valor vigente o `default` si no existe o caducó."""
        value = self.lookup(key)
        return default if value is MISSING else value

    def lookup(self, key: str) -> Any:
        """Como `get`, pero distingue un valor None almacenado devolviendo el centinela MISSING."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                self.misses += 1
                return MISSING

            if self._clock() - entry.stored_at > self.ttl:
                del self._entries[key]
                self.misses += 1
                logger.debug(f"Cache entry expired: {key}")
                return MISSING

            self.hits += 1
            return entry.value

    def put(self, key: str, value: Any) -> None:
        with self._lock:
            self._entries[key] = CacheEntry(key=key, value=value, stored_at=self._clock())

    def contains(self, key: str) -> bool:
        return self.lookup(key) is not MISSING

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self.hits = 0
            self.misses = 0

    def stats(self) -> Dict[str, int]:
        with self._lock:
            return {"entries": len(self._entries), "hits": self.hits, "misses": self.misses}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def cached_call(cache: Optional[ResponseCache], key: str, loader: Callable[[], Any]) -> Any:
    """
    Devuelve el valor cacheado para `key` o lo obtiene con `loader` y lo almacena.

    Los errores del loader se propagan y no se cachean.
    """
    if cache is None:
        return loader()

    value = cache.lookup(key)
    if value is not MISSING:
        return value

    value = loader()
    cache.put(key, value)
    return value
