"""
corgicart - cart aggregation and persistence engine for the CorgiGo storefront.

Usage:
    from corgicart import CartStore, InMemoryCartStorage

    store = CartStore(InMemoryCartStorage())
    store.add_line_item({"catalog_item_id": "pad-thai", "name": "Pad Thai", "unit_price": 100})
"""
from .cart import (
    AddOn,
    CartLineItem,
    CartState,
    CartStore,
    FileCartStorage,
    InMemoryCartStorage,
    ItemKind,
    RedisCartStorage,
    StoreStatus,
    configuration_key,
    create_storage,
)
from .models import AddOnSelection, CartSnapshot, CartSummary, LineItemCandidate

__all__ = [
    "AddOn",
    "AddOnSelection",
    "CartLineItem",
    "CartSnapshot",
    "CartState",
    "CartStore",
    "CartSummary",
    "FileCartStorage",
    "InMemoryCartStorage",
    "ItemKind",
    "LineItemCandidate",
    "RedisCartStorage",
    "StoreStatus",
    "configuration_key",
    "create_storage",
]
