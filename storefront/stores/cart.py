"""
Client-side cart state (the browser cart drawer).

Only the line items are persisted; the drawer flag is view state and starts closed
on every load.
"""

from __future__ import annotations

import time
from decimal import Decimal
from typing import List, Optional

from pydantic import Field

from storefront.schemas.common import APIModel


class CartItem(APIModel):
    id: str = ""
    product_id: str
    variant_id: Optional[str] = None
    name: str
    slug: str
    price: Decimal
    original_price: Optional[Decimal] = None
    quantity: int = 1
    size: Optional[str] = None
    color: Optional[str] = None
    color_hex: Optional[str] = None
    image: Optional[str] = None
    stock: int


class CartStore(APIModel):
    items: List[CartItem] = []
    is_open: bool = Field(default=False, exclude=True)

    # PUBLIC_INTERFACE
    def add_item(self, item: CartItem) -> CartItem:
        """
        Add a line or merge it into the line with the same product and variant.

        The merged quantity never exceeds the line's stock. Adding opens the drawer.
        """
        existing = self.get_item(item.product_id, item.variant_id)
        if existing is not None:
            existing.quantity = min(existing.quantity + item.quantity, item.stock)
            line = existing
        else:
            millis = int(time.time() * 1000)
            line = item.model_copy(update={"id": f"{item.product_id}-{item.variant_id or 'default'}-{millis}"})
            self.items.append(line)
        self.is_open = True
        return line

    def remove_item(self, item_id: str) -> None:
        self.items = [i for i in self.items if i.id != item_id]

    def update_quantity(self, item_id: str, quantity: int) -> None:
        """Zero or less removes the line; otherwise the quantity is capped at stock."""
        if quantity <= 0:
            self.remove_item(item_id)
            return
        for item in self.items:
            if item.id == item_id:
                item.quantity = min(quantity, item.stock)

    def clear(self) -> None:
        self.items = []

    def open(self) -> None:
        self.is_open = True

    def close(self) -> None:
        self.is_open = False

    def toggle(self) -> None:
        self.is_open = not self.is_open

    def item_count(self) -> int:
        return sum(i.quantity for i in self.items)

    def subtotal(self) -> Decimal:
        return sum((i.price * i.quantity for i in self.items), Decimal("0"))

    def get_item(self, product_id: str, variant_id: Optional[str]) -> Optional[CartItem]:
        return next((i for i in self.items if i.product_id == product_id and i.variant_id == variant_id), None)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, data: str) -> "CartStore":
        return cls.model_validate_json(data)
