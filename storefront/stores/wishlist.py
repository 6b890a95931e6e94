"""Saved-for-later products, one entry per product."""

from __future__ import annotations

import time
from decimal import Decimal
from typing import List, Optional

from storefront.schemas.common import APIModel


class WishlistItem(APIModel):
    id: str = ""
    product_id: str
    name: str
    slug: str
    price: Decimal
    original_price: Optional[Decimal] = None
    image: Optional[str] = None
    is_new: bool = False


class WishlistStore(APIModel):
    items: List[WishlistItem] = []

    def add_item(self, item: WishlistItem) -> None:
        """No-op when the product is already saved."""
        if self.contains(item.product_id):
            return
        millis = int(time.time() * 1000)
        self.items.append(item.model_copy(update={"id": f"wishlist-{item.product_id}-{millis}"}))

    def remove_item(self, product_id: str) -> None:
        self.items = [i for i in self.items if i.product_id != product_id]

    def toggle_item(self, item: WishlistItem) -> bool:
        """Add or remove `item`; returns True when it ends up in the wishlist."""
        if self.contains(item.product_id):
            self.remove_item(item.product_id)
            return False
        self.add_item(item)
        return True

    def clear(self) -> None:
        self.items = []

    def count(self) -> int:
        return len(self.items)

    def contains(self, product_id: str) -> bool:
        return any(i.product_id == product_id for i in self.items)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, data: str) -> "WishlistStore":
        return cls.model_validate_json(data)
