"""Product comparison list (at most four products)."""

from __future__ import annotations

from decimal import Decimal
from typing import ClassVar, List, Optional

from storefront.schemas.common import APIModel


class ComparisonItem(APIModel):
    product_id: str
    name: str
    slug: str
    price: Decimal
    original_price: Optional[Decimal] = None
    image: Optional[str] = None
    category_id: Optional[str] = None


class ComparisonStore(APIModel):
    max_items: ClassVar[int] = 4

    items: List[ComparisonItem] = []

    def add_item(self, item: ComparisonItem) -> bool:
        """False when the product is already listed or the list is full."""
        if self.contains(item.product_id) or not self.can_add():
            return False
        self.items.append(item)
        return True

    def remove_item(self, product_id: str) -> None:
        self.items = [i for i in self.items if i.product_id != product_id]

    def clear(self) -> None:
        self.items = []

    def count(self) -> int:
        return len(self.items)

    def contains(self, product_id: str) -> bool:
        return any(i.product_id == product_id for i in self.items)

    def can_add(self) -> bool:
        return len(self.items) < self.max_items

    def to_json(self) -> str:
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, data: str) -> "ComparisonStore":
        return cls.model_validate_json(data)
