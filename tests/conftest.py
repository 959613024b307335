"""Pytest configuration and fixtures"""
import asyncio
import os
from typing import List

import pytest
from unittest.mock import AsyncMock

# Keep tests independent of any developer .env
os.environ.setdefault("CART_NAMESPACE", "corgigo")
os.environ.setdefault("CART_STORAGE_BACKEND", "memory")
os.environ.setdefault("LOG_LEVEL", "DEBUG")

from corgicart.cart import CartRecords, CartStore, InMemoryCartStorage  # noqa: E402
from corgicart.models import LineItemCandidate  # noqa: E402


class InstrumentedStorage:
    """
    Asynchronous adapter whose load only completes when the test says so.

    Records every call in `calls` so tests can check ordering.
    """

    def __init__(self, records: CartRecords = None):
        self.records = records or CartRecords()
        self.calls: List[str] = []
        self.saved: List[CartRecords] = []
        self.release = asyncio.Event()

    async def load(self) -> CartRecords:
        self.calls.append("load:start")
        await self.release.wait()
        self.calls.append("load:done")
        return self.records

    async def save(self, records: CartRecords) -> None:
        self.calls.append("save")
        self.saved.append(records)


@pytest.fixture
def pad_thai():
    """Plain menu item"""
    return LineItemCandidate(
        catalog_item_id="pad-thai",
        name="Pad Thai",
        unit_price=100,
        vendor_id="rest-1",
        vendor_name="Corgi Kitchen",
    )


@pytest.fixture
def pad_thai_egg():
    """Pad Thai with an egg add-on"""
    return LineItemCandidate(
        catalog_item_id="pad-thai",
        name="Pad Thai",
        unit_price=100,
        vendor_id="rest-1",
        vendor_name="Corgi Kitchen",
        add_ons=[{"id": "egg", "name": "Fried egg", "price": 20}],
    )


@pytest.fixture
def pad_thai_shrimp():
    """Pad Thai with a shrimp add-on"""
    return LineItemCandidate(
        catalog_item_id="pad-thai",
        name="Pad Thai",
        unit_price=100,
        vendor_id="rest-1",
        vendor_name="Corgi Kitchen",
        add_ons=[{"id": "shrimp", "name": "Shrimp", "price": 30}],
    )


@pytest.fixture
def memory_storage():
    """Empty in-memory storage"""
    return InMemoryCartStorage()


@pytest.fixture
def store(memory_storage):
    """Hydrated store over in-memory storage"""
    return CartStore(memory_storage)


@pytest.fixture
def mock_redis():
    """Mock Upstash async client backed by a dict"""
    data = {}
    redis = AsyncMock()
    redis.data = data

    async def _get(key):
        return data.get(key)

    async def _set(key, value, ex=None):
        data[key] = value
        return True

    async def _delete(*keys):
        for key in keys:
            data.pop(key, None)
        return len(keys)

    redis.get.side_effect = _get
    redis.set.side_effect = _set
    redis.delete.side_effect = _delete
    return redis
