"""Stock status rules shared by the inventory screens and the dashboard."""

from __future__ import annotations

from typing import Iterable

DEFAULT_LOW_STOCK_THRESHOLD = 5

IN_STOCK = "in_stock"
LOW_STOCK = "low_stock"
OUT_OF_STOCK = "out_of_stock"

ADJUSTMENTS = ("set", "add", "subtract")


def total_stock(stocks: Iterable[int]) -> int:
    return sum(stocks)


# PUBLIC_INTERFACE
def stock_status(in_stock: bool, has_variants: bool, total: int, threshold: int = DEFAULT_LOW_STOCK_THRESHOLD) -> str:
    """
    Classify a product for the inventory overview.

    A product the admin flagged out of stock, or one whose variants hold no units, is
    out_of_stock. A product with variants and at most `threshold` units is low_stock.
    Products without variants are tracked by the flag alone.
    """
    if not in_stock:
        return OUT_OF_STOCK
    if has_variants and total <= 0:
        return OUT_OF_STOCK
    if has_variants and total <= threshold:
        return LOW_STOCK
    return IN_STOCK


# PUBLIC_INTERFACE
def adjust_stock(current: int, amount: int, adjustment: str = "set") -> int:
    """Apply a set/add/subtract adjustment; subtraction never goes below zero."""
    if adjustment == "add":
        return current + amount
    if adjustment == "subtract":
        return max(0, current - amount)
    return amount
