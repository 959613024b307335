"""
Persistence adapters for cart state.

Every adapter stores two independent string records under namespaced keys:
the line items (JSON array) and the notification counter (JSON int).

`load()` never raises: a corrupted record is erased and replaced by its
default. `save()` never raises either: write failures are logged and the
caller's in-memory state stays authoritative.
"""
import os
from pathlib import Path
from typing import Awaitable, Callable, Dict, Optional, Protocol, Union

from corgicart.config import (
    BACKEND_FILE,
    BACKEND_MEMORY,
    BACKEND_REDIS,
    DEFAULT_NAMESPACE,
    CartSettings,
    load_settings,
)
from corgicart.db import TTL, RedisKeys, get_redis
from corgicart.errors import (
    ERROR_ERASE_FAILED,
    ERROR_WRITE_FAILED,
    ERROR_UNKNOWN_BACKEND,
    CorruptPersistedData,
    PersistenceWriteFailure,
)
from corgicart.logging import get_logger, sanitize_string_for_logging
from .codec import (
    decode_line_items,
    decode_notification_count,
    encode_line_items,
    encode_notification_count,
)
from .models import CartRecords

logger = get_logger(__name__)


class PersistenceAdapter(Protocol):
    """
    Load/save contract used by CartStore.

    Both methods may either return their result directly or return an
    awaitable; CartStore handles both.
    """

    def load(self) -> Union[CartRecords, Awaitable[CartRecords]]:
        ...

    def save(self, records: CartRecords) -> Union[None, Awaitable[None]]:
        ...


class KeyedCartStorage:
    """
    Synchronous adapter over a keyed string store.

    Subclasses implement `_read`, `_write` and `_erase` for a single key; this
    class owns decoding, self-healing and failure isolation.
    """

    def __init__(self, namespace: str = DEFAULT_NAMESPACE):
        self.namespace = namespace
        self.cart_key = RedisKeys.cart_key(namespace)
        self.notifications_key = RedisKeys.notifications_key(namespace)

    def _read(self, key: str) -> Optional[str]:
        raise NotImplementedError

    def _write(self, key: str, value: str) -> None:
        raise NotImplementedError

    def _erase(self, key: str) -> None:
        raise NotImplementedError

    def _load_record(self, key: str, decode: Callable, default):
        try:
            return decode(key, self._read(key))
        except CorruptPersistedData as e:
            logger.warning(f"Corrupted cart record {key}: {e.reason}")
            self._heal(key)
        except Exception as e:
            logger.error(f"Failed to read cart record {key}: {e}")
        return default

    def _heal(self, key: str) -> None:
        try:
            self._erase(key)
        except Exception as e:
            logger.error(f"{ERROR_ERASE_FAILED}: {key}: {e}")

    def load(self) -> CartRecords:
        """Load both records; each falls back to its default independently."""
        line_items = self._load_record(self.cart_key, decode_line_items, [])
        count = self._load_record(self.notifications_key, decode_notification_count, 0)
        return CartRecords(line_items=line_items, notification_count=count)

    def _save_record(self, key: str, encode, value) -> bool:
        try:
            self._write(key, encode(value))
        except Exception as e:
            logger.error(f"{ERROR_WRITE_FAILED}: {key}: {e}")
            return False
        return True

    def save(self, records: CartRecords) -> None:
        """Write both records; a failure on one does not skip the other."""
        self._save_record(self.cart_key, encode_line_items, records.line_items)
        self._save_record(
            self.notifications_key, encode_notification_count, records.notification_count
        )


class InMemoryCartStorage(KeyedCartStorage):
    """Dict-backed storage. Default backend and the test double."""

    def __init__(self, namespace: str = DEFAULT_NAMESPACE, data: Optional[Dict[str, str]] = None):
        super().__init__(namespace)
        self.data: Dict[str, str] = data if data is not None else {}

    def _read(self, key: str) -> Optional[str]:
        return self.data.get(key)

    def _write(self, key: str, value: str) -> None:
        self.data[key] = value

    def _erase(self, key: str) -> None:
        self.data.pop(key, None)


class FileCartStorage(KeyedCartStorage):
    """One JSON file per record inside a directory."""

    def __init__(self, directory: Union[str, Path], namespace: str = DEFAULT_NAMESPACE):
        super().__init__(namespace)
        self.directory = Path(directory)

    def _path(self, key: str) -> Path:
        return self.directory / f"{key}.json"

    def _read(self, key: str) -> Optional[str]:
        path = self._path(key)
        if not path.exists():
            return None
        return path.read_text(encoding="utf-8")

    def _write(self, key: str, value: str) -> None:
        path = self._path(key)
        # Write-then-rename so a crash mid-write cannot leave half a record
        tmp_path = path.with_suffix(".json.tmp")
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            tmp_path.write_text(value, encoding="utf-8")
            os.replace(tmp_path, path)
        except OSError as e:
            raise PersistenceWriteFailure(key, str(e)) from e

    def _erase(self, key: str) -> None:
        self._path(key).unlink(missing_ok=True)


class RedisCartStorage:
    """
    Asynchronous storage in Upstash Redis.

    Records expire after `ttl` seconds of inactivity; every save refreshes it.
    """

    def __init__(self, redis=None, namespace: str = DEFAULT_NAMESPACE, ttl: int = TTL.CART):
        self._redis = redis  # Lazy initialization
        self.namespace = namespace
        self.ttl = ttl
        self.cart_key = RedisKeys.cart_key(namespace)
        self.notifications_key = RedisKeys.notifications_key(namespace)

    @property
    def redis(self):
        """Get Redis client (lazy initialization)."""
        if self._redis is None:
            self._redis = get_redis()
        return self._redis

    async def _load_record(self, key: str, decode: Callable, default):
        try:
            raw = await self.redis.get(key)
            return decode(key, raw)
        except CorruptPersistedData as e:
            logger.warning(
                f"Corrupted cart record {key}: {e.reason} "
                f"({sanitize_string_for_logging(raw)})"
            )
            try:
                await self.redis.delete(key)
            except Exception as erase_error:
                logger.error(f"{ERROR_ERASE_FAILED}: {key}: {erase_error}")
        except Exception as e:
            logger.error(f"Failed to read cart record {key} from Redis: {e}")
        return default

    async def load(self) -> CartRecords:
        line_items = await self._load_record(self.cart_key, decode_line_items, [])
        count = await self._load_record(self.notifications_key, decode_notification_count, 0)
        return CartRecords(line_items=line_items, notification_count=count)

    async def _save_record(self, key: str, encode, value) -> bool:
        try:
            await self.redis.set(key, encode(value), ex=self.ttl)
            return True
        except Exception as e:
            logger.error(f"{ERROR_WRITE_FAILED}: {key}: {e}")
            return False

    async def save(self, records: CartRecords) -> None:
        await self._save_record(self.cart_key, encode_line_items, records.line_items)
        await self._save_record(
            self.notifications_key, encode_notification_count, records.notification_count
        )


def create_storage(settings: Optional[CartSettings] = None):
    """
    Build the persistence adapter selected by configuration.

    Raises:
        ValueError: unknown backend name
    """
    settings = settings or load_settings()
    backend = settings.storage_backend

    if backend == BACKEND_MEMORY:
        return InMemoryCartStorage(namespace=settings.namespace)
    if backend == BACKEND_FILE:
        return FileCartStorage(settings.storage_dir, namespace=settings.namespace)
    if backend == BACKEND_REDIS:
        return RedisCartStorage(
            redis=get_redis(settings),
            namespace=settings.namespace,
            ttl=settings.ttl_seconds,
        )
    raise ValueError(f"{ERROR_UNKNOWN_BACKEND}: {backend}")
