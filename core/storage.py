"""
Durable key/value storage for client-side storefront state.

Holds the cart snapshot, the last phone number used for order lookup and
the selected UI language, each under its own fixed key. Backends are
interchangeable; callers that only need one key use a StorageSlot.

Backends never raise on I/O failure: reads degrade to a miss and writes
report False, so the in-memory state stays authoritative for the session.
"""
import logging
from pathlib import Path
from typing import Dict, Optional

import redis
from django.conf import settings

logger = logging.getLogger(__name__)

CART_KEY = 'shopping-cart'
LAST_ORDER_PHONE_KEY = 'lastOrderPhone'
LANGUAGE_KEY = 'site_language'


class StorageBackend:
    """Bytes-by-key storage interface."""

    def get(self, key: str) -> Optional[bytes]:
        raise NotImplementedError

    def set(self, key: str, value: bytes) -> bool:
        raise NotImplementedError

    def delete(self, key: str) -> bool:
        raise NotImplementedError


class MemoryBackend(StorageBackend):
    """Process-local storage, used by tests and one-off scripts."""

    def __init__(self, initial: Optional[Dict[str, bytes]] = None):
        self._data: Dict[str, bytes] = dict(initial or {})

    def get(self, key):
        return self._data.get(key)

    def set(self, key, value):
        self._data[key] = bytes(value)
        return True

    def delete(self, key):
        self._data.pop(key, None)
        return True


class FileBackend(StorageBackend):
    """
    One file per key inside a directory.

    Writes go to a temporary file first and are renamed into place, so a
    crash mid-write leaves the previous snapshot readable.
    """

    def __init__(self, directory):
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def get(self, key):
        try:
            return self._path(key).read_bytes()
        except FileNotFoundError:
            return None
        except OSError as e:
            logger.warning(f"Could not read storage key {key!r}: {e}")
            return None

    def set(self, key, value):
        path = self._path(key)
        tmp_path = path.with_suffix('.tmp')
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_bytes(value)
            tmp_path.replace(path)
            return True
        except OSError as e:
            logger.error(f"Could not write storage key {key!r}: {e}")
            return False

    def delete(self, key):
        try:
            self._path(key).unlink(missing_ok=True)
            return True
        except OSError as e:
            logger.error(f"Could not delete storage key {key!r}: {e}")
            return False


class RedisBackend(StorageBackend):
    """
    Redis-backed storage, namespaced per client.

    Keys are stored as ``storefront:<namespace>:<key>``.
    """

    def __init__(self, client: redis.Redis, namespace: str = 'default'):
        self.client = client
        self.namespace = namespace

    @classmethod
    def from_url(cls, url: str, namespace: str = 'default') -> 'RedisBackend':
        client = redis.Redis.from_url(url, socket_connect_timeout=5)
        return cls(client, namespace)

    def _key(self, key: str) -> str:
        return f"storefront:{self.namespace}:{key}"

    def get(self, key):
        try:
            return self.client.get(self._key(key))
        except redis.RedisError as e:
            logger.error(f"Redis error reading {key!r}: {e}")
            return None

    def set(self, key, value):
        try:
            self.client.set(self._key(key), value)
            return True
        except redis.RedisError as e:
            logger.error(f"Redis error writing {key!r}: {e}")
            return False

    def delete(self, key):
        try:
            self.client.delete(self._key(key))
            return True
        except redis.RedisError as e:
            logger.error(f"Redis error deleting {key!r}: {e}")
            return False


class SessionBackend(StorageBackend):
    """
    Storage inside a Django session.

    Values are kept as text because the session serializer is JSON.
    """

    def __init__(self, session):
        self.session = session

    def get(self, key):
        value = self.session.get(key)
        if value is None:
            return None
        if not isinstance(value, str):
            logger.warning(f"Ignoring non-text session value under {key!r}")
            return None
        return value.encode('utf-8')

    def set(self, key, value):
        try:
            self.session[key] = value.decode('utf-8')
        except UnicodeDecodeError as e:
            logger.error(f"Refusing to store non UTF-8 value under {key!r}: {e}")
            return False
        self.session.modified = True
        return True

    def delete(self, key):
        self.session.pop(key, None)
        return True


class StorageSlot:
    """
    A single key of a backend, exposing only load() and save().

    This is the whole persistence capability the cart needs.
    """

    def __init__(self, backend: StorageBackend, key: str):
        self.backend = backend
        self.key = key

    def load(self) -> Optional[bytes]:
        return self.backend.get(self.key)

    def save(self, data: bytes) -> bool:
        return self.backend.set(self.key, data)

    def clear(self) -> bool:
        return self.backend.delete(self.key)

    def __repr__(self):
        return f"StorageSlot({type(self.backend).__name__}, {self.key!r})"


def get_default_backend(namespace: str = 'default') -> StorageBackend:
    """Build the backend named by the STOREFRONT_STORAGE setting."""
    kind = getattr(settings, 'STOREFRONT_STORAGE', 'memory')
    if kind == 'file':
        return FileBackend(Path(settings.STOREFRONT_STORAGE_DIR) / namespace)
    if kind == 'redis':
        return RedisBackend.from_url(settings.REDIS_URL, namespace)
    if kind != 'memory':
        logger.warning(f"Unknown STOREFRONT_STORAGE {kind!r}, using memory storage")
    return MemoryBackend()
