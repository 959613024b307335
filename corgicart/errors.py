"""
Common Errors

Centralized error messages and the cart engine's exception types.
None of these exceptions escape the public CartStore API: persistence
adapters catch them at their boundary and log instead.
"""

# Persistence errors
ERROR_CORRUPT_RECORD = "Stored record is corrupted"
ERROR_NOT_JSON = "Stored record is not valid JSON"
ERROR_NOT_A_LIST = "Stored cart record is not a JSON array"
ERROR_BAD_LINE_ITEM = "Stored line item is malformed"
ERROR_BAD_COUNTER = "Stored notification counter is not a non-negative integer"
ERROR_WRITE_FAILED = "Failed to write record"
ERROR_ERASE_FAILED = "Failed to erase corrupted record"

# Store errors
ERROR_NEEDS_EVENT_LOOP = "Asynchronous persistence requires a running event loop"
ERROR_NEGATIVE_COUNTER = "Notification counter cannot be negative"

# Configuration errors
ERROR_UNKNOWN_BACKEND = "Unknown cart storage backend"
ERROR_REDIS_NOT_CONFIGURED = "UPSTASH_REDIS_REST_URL and UPSTASH_REDIS_REST_TOKEN must be set"


class CartError(Exception):
    """Base class for cart engine errors."""


class CorruptPersistedData(CartError):
    """A durable record exists but cannot be decoded."""

    def __init__(self, key: str, reason: str = ERROR_CORRUPT_RECORD):
        self.key = key
        self.reason = reason
        super().__init__(f"{reason}: {key}")


class PersistenceWriteFailure(CartError):
    """A durable record could not be written or erased."""

    def __init__(self, key: str, reason: str = ERROR_WRITE_FAILED):
        self.key = key
        self.reason = reason
        super().__init__(f"{reason}: {key}")
