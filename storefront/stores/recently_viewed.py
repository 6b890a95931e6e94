"""Recently viewed products, newest first."""

from __future__ import annotations

import time
from decimal import Decimal
from typing import ClassVar, List, Optional

from storefront.schemas.common import APIModel


class ViewedItem(APIModel):
    product_id: str
    name: str
    slug: str
    price: Decimal
    original_price: Optional[Decimal] = None
    image: Optional[str] = None
    viewed_at: int = 0


class RecentlyViewedStore(APIModel):
    max_items: ClassVar[int] = 12

    items: List[ViewedItem] = []

    def add_item(self, item: ViewedItem, viewed_at: Optional[int] = None) -> None:
        """Move the product to the front (stamped in epoch millis) and keep the newest twelve."""
        stamped = item.model_copy(update={"viewed_at": viewed_at if viewed_at is not None else int(time.time() * 1000)})
        rest = [i for i in self.items if i.product_id != item.product_id]
        self.items = [stamped, *rest][: self.max_items]

    def remove_item(self, product_id: str) -> None:
        self.items = [i for i in self.items if i.product_id != product_id]

    def clear(self) -> None:
        self.items = []

    def get_items(self, exclude_product_id: Optional[str] = None) -> List[ViewedItem]:
        if exclude_product_id:
            return [i for i in self.items if i.product_id != exclude_product_id]
        return list(self.items)

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, data: str) -> "RecentlyViewedStore":
        return cls.model_validate_json(data)
