"""Cart package: models, configuration keys, storage, and the cart store."""
from .keys import configuration_key, key_for
from .models import AddOn, CartLineItem, CartRecords, CartState, ItemKind
from .notifications import NotificationCounter
from .service import CartStore, StoreStatus
from .storage import (
    FileCartStorage,
    InMemoryCartStorage,
    PersistenceAdapter,
    RedisCartStorage,
    create_storage,
)

__all__ = [
    "AddOn",
    "CartLineItem",
    "CartRecords",
    "CartState",
    "CartStore",
    "FileCartStorage",
    "InMemoryCartStorage",
    "ItemKind",
    "NotificationCounter",
    "PersistenceAdapter",
    "RedisCartStorage",
    "StoreStatus",
    "configuration_key",
    "create_storage",
    "key_for",
]
