"""Unseen-addition counter shown as the notification badge."""
from corgicart.errors import ERROR_NEGATIVE_COUNTER


class NotificationCounter:
    """
    Counts addition events the user has not looked at yet.

    Independent of the cart contents: clearing the cart leaves it alone and
    resetting it leaves the cart alone.
    """

    def __init__(self, value: int = 0):
        if value < 0:
            raise ValueError(ERROR_NEGATIVE_COUNTER)
        self._value = value

    @property
    def value(self) -> int:
        return self._value

    def increment(self) -> int:
        self._value += 1
        return self._value

    def reset(self) -> None:
        self._value = 0

    def __repr__(self) -> str:
        return f"NotificationCounter({self._value})"
