"""
Pydantic Models - Schemas at the cart engine's edges

- LineItemCandidate: a selection resolved by the catalog, before it enters the cart
- CartSnapshot / CartSummary: read models handed to checkout and badges
"""

import math
from decimal import Decimal
from typing import List, Optional, Union

from pydantic import BaseModel, Field, field_validator

from corgicart.cart.models import AddOn, CartLineItem, CartState, ItemKind
from corgicart.services.money import format_money, to_json_number


# ============================================================
# Input
# ============================================================

def _finite_price(value: Union[int, float]) -> Union[int, float]:
    # JSON has no Infinity/NaN and Decimal totals overflow on them
    if not math.isfinite(value):
        raise ValueError("price must be a finite number")
    return value


class AddOnSelection(BaseModel):
    """Add-on chosen in the add-to-cart drawer."""
    id: str = Field(min_length=1)
    name: str = ""
    price: Union[int, float] = Field(default=0, ge=0)

    @field_validator("price")
    @classmethod
    def price_is_finite(cls, v):
        return _finite_price(v)


class LineItemCandidate(BaseModel):
    """
    Fully resolved selection supplied by the catalog/menu layer.

    Carries everything a line item needs except its id and quantity, which
    the cart assigns.
    """
    catalog_item_id: str = Field(min_length=1)
    name: str
    unit_price: Union[int, float] = Field(ge=0)
    vendor_id: str = ""
    vendor_name: str = ""
    kind: ItemKind = ItemKind.MENU_ITEM
    image: Optional[str] = None
    special_instructions: Optional[str] = None
    add_ons: List[AddOnSelection] = Field(default_factory=list)

    @field_validator("unit_price")
    @classmethod
    def unit_price_is_finite(cls, v):
        return _finite_price(v)

    def to_line_item(self, line_item_id: str, quantity: int) -> CartLineItem:
        return CartLineItem(
            id=line_item_id,
            catalog_item_id=self.catalog_item_id,
            name=self.name,
            unit_price=self.unit_price,
            vendor_id=self.vendor_id,
            vendor_name=self.vendor_name,
            quantity=quantity,
            kind=self.kind,
            image=self.image,
            special_instructions=self.special_instructions,
            add_ons=[AddOn(id=a.id, name=a.name, price=a.price) for a in self.add_ons],
        )


# ============================================================
# Output
# ============================================================

class LineItemView(BaseModel):
    """Line item as seen by checkout."""
    id: str
    catalog_item_id: str
    name: str
    unit_price: Union[int, float]
    vendor_id: str
    vendor_name: str
    kind: ItemKind
    image: Optional[str] = None
    special_instructions: Optional[str] = None
    add_ons: List[AddOnSelection] = Field(default_factory=list)
    quantity: int = Field(ge=1)
    line_total: Union[int, float]
    line_total_display: str

    @classmethod
    def from_line_item(cls, item: CartLineItem, currency: str = "THB") -> "LineItemView":
        return cls(
            **item.to_dict(),
            line_total=to_json_number(item.line_total),
            line_total_display=format_money(item.line_total, currency),
        )


class CartSummary(BaseModel):
    """Numbers shown on the cart and notification badges."""
    item_count: int = Field(ge=0)
    total_price: Decimal
    total_display: str
    notification_count: int = Field(ge=0)
    is_loaded: bool


class CartSnapshot(CartSummary):
    """Complete cart contents at one point in time."""
    items: List[LineItemView] = Field(default_factory=list)

    @classmethod
    def build(
        cls,
        state: CartState,
        notification_count: int,
        is_loaded: bool,
        currency: str = "THB",
    ) -> "CartSnapshot":
        """Read model of a cart state; display strings are formatted in `currency`."""
        return cls(
            items=[LineItemView.from_line_item(item, currency) for item in state.line_items],
            item_count=state.item_count,
            total_price=state.total_price,
            total_display=format_money(state.total_price, currency),
            notification_count=notification_count,
            is_loaded=is_loaded,
        )

    def summary(self) -> CartSummary:
        return CartSummary(
            item_count=self.item_count,
            total_price=self.total_price,
            total_display=self.total_display,
            notification_count=self.notification_count,
            is_loaded=self.is_loaded,
        )
