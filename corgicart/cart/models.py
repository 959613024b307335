"""Cart models with Decimal-based totals."""
import math
from dataclasses import dataclass, field, replace
from decimal import Decimal
from enum import Enum
from typing import List, Optional, Tuple, Union

from corgicart.services.money import multiply, to_decimal, total

Price = Union[int, float]


class ItemKind(str, Enum):
    """What the line item was selected from. Not part of merge identity."""
    MEAL_PLAN = "MEAL_PLAN"  # Subscription plan
    MENU_ITEM = "MENU_ITEM"  # Regular catalog item


def _require_str(data: dict, name: str) -> str:
    value = data[name]
    if not isinstance(value, str) or not value:
        raise ValueError(f"{name} must be a non-empty string")
    return value


def _optional_str(data: dict, name: str) -> Optional[str]:
    value = data.get(name)
    if value is not None and not isinstance(value, str):
        raise ValueError(f"{name} must be a string or null")
    return value


def _require_price(data: dict, name: str) -> Price:
    value = data[name]
    # bool is an int subclass; a stored true/false is never a price
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise ValueError(f"{name} must be a number")
    if not math.isfinite(value):
        raise ValueError(f"{name} must be finite")
    if value < 0:
        raise ValueError(f"{name} cannot be negative")
    return value


@dataclass(frozen=True)
class AddOn:
    """Optional, separately priced modifier of a line item."""
    id: str
    name: str
    price: Price = 0

    def to_dict(self) -> dict:
        return {"id": self.id, "name": self.name, "price": self.price}

    @classmethod
    def from_dict(cls, data: dict) -> "AddOn":
        if not isinstance(data, dict):
            raise TypeError("add-on must be an object")
        return cls(
            id=_require_str(data, "id"),
            name=data.get("name") or "",
            price=_require_price(data, "price"),
        )


@dataclass
class CartLineItem:
    """One distinct selection held in the cart, with its own quantity."""
    id: str
    catalog_item_id: str
    name: str
    unit_price: Price
    vendor_id: str
    vendor_name: str
    quantity: int = 1
    kind: ItemKind = ItemKind.MENU_ITEM
    image: Optional[str] = None
    special_instructions: Optional[str] = None
    add_ons: List[AddOn] = field(default_factory=list)

    @property
    def add_ons_price(self) -> Decimal:
        """Sum of the selected add-on prices for a single unit."""
        return total(add_on.price for add_on in self.add_ons)

    @property
    def unit_total(self) -> Decimal:
        """Price of one unit including add-ons."""
        return to_decimal(self.unit_price) + self.add_ons_price

    @property
    def line_total(self) -> Decimal:
        """Price of all units including add-ons."""
        return multiply(self.unit_total, self.quantity)

    @property
    def add_on_ids(self) -> List[str]:
        return [add_on.id for add_on in self.add_ons]

    def copy(self, **changes) -> "CartLineItem":
        """Independent copy; add_ons list is not shared."""
        changes.setdefault("add_ons", list(self.add_ons))
        return replace(self, **changes)

    def to_dict(self) -> dict:
        """Convert to the persisted JSON shape."""
        return {
            "id": self.id,
            "catalog_item_id": self.catalog_item_id,
            "name": self.name,
            "unit_price": self.unit_price,
            "image": self.image,
            "vendor_id": self.vendor_id,
            "vendor_name": self.vendor_name,
            "kind": self.kind.value,
            "special_instructions": self.special_instructions,
            "add_ons": [add_on.to_dict() for add_on in self.add_ons],
            "quantity": self.quantity,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "CartLineItem":
        """
        Create from the persisted JSON shape.

        Raises:
            KeyError, TypeError, ValueError: the record is malformed
        """
        if not isinstance(data, dict):
            raise TypeError("line item must be an object")

        quantity = data["quantity"]
        if isinstance(quantity, bool) or not isinstance(quantity, int) or quantity < 1:
            raise ValueError("quantity must be a positive integer")

        add_ons = data.get("add_ons") or []
        if not isinstance(add_ons, list):
            raise TypeError("add_ons must be an array")

        return cls(
            id=_require_str(data, "id"),
            catalog_item_id=_require_str(data, "catalog_item_id"),
            name=data.get("name") or "",
            unit_price=_require_price(data, "unit_price"),
            vendor_id=data.get("vendor_id") or "",
            vendor_name=data.get("vendor_name") or "",
            quantity=quantity,
            kind=ItemKind(data.get("kind", ItemKind.MENU_ITEM.value)),
            image=_optional_str(data, "image"),
            special_instructions=_optional_str(data, "special_instructions"),
            add_ons=[AddOn.from_dict(add_on) for add_on in add_ons],
        )


@dataclass(frozen=True)
class CartState:
    """Ordered line items plus aggregates derived from them on every read."""
    line_items: Tuple[CartLineItem, ...] = ()

    @property
    def item_count(self) -> int:
        """Total quantity across all line items."""
        return sum(item.quantity for item in self.line_items)

    @property
    def total_price(self) -> Decimal:
        """Sum of (unit price + add-ons) * quantity."""
        return total(item.line_total for item in self.line_items)

    @property
    def is_empty(self) -> bool:
        return not self.line_items

    def get(self, line_item_id: str) -> Optional[CartLineItem]:
        return next((item for item in self.line_items if item.id == line_item_id), None)

    def __len__(self) -> int:
        return len(self.line_items)


@dataclass
class CartRecords:
    """Contents of the two durable records, as loaded or about to be saved."""
    line_items: List[CartLineItem] = field(default_factory=list)
    notification_count: int = 0
