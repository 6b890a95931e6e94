"""Date arithmetic and aggregation helpers behind the dashboard and reports."""

from __future__ import annotations

from collections import OrderedDict
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Iterable, List, Tuple


def month_start(moment: datetime) -> datetime:
    return moment.replace(day=1, hour=0, minute=0, second=0, microsecond=0)


def previous_month_start(moment: datetime) -> datetime:
    return month_start(month_start(moment) - timedelta(days=1))


def day_start(moment: datetime) -> datetime:
    return moment.replace(hour=0, minute=0, second=0, microsecond=0)


def percent_change(current, previous) -> float:
    """Relative change in percent, one decimal; 0 when there is no previous value."""
    if not previous:
        return 0.0
    return round(float((Decimal(current) - Decimal(previous)) / Decimal(previous) * 100), 1)


def bucket_key(moment: datetime, group_by: str) -> str:
    return moment.strftime("%Y-%m" if group_by == "month" else "%Y-%m-%d")


# PUBLIC_INTERFACE
def bucket_sales(rows: Iterable[Tuple[datetime, Decimal]], group_by: str = "day") -> List[Tuple[str, int, Decimal]]:
    """
    Group (created_at, total) pairs into day or month buckets.

    Returns (bucket, order count, revenue) tuples in chronological order. Buckets
    without orders are not emitted.
    """
    buckets: "OrderedDict[str, List]" = OrderedDict()
    for created_at, total in sorted(rows, key=lambda r: r[0]):
        entry = buckets.setdefault(bucket_key(created_at, group_by), [0, Decimal("0")])
        entry[0] += 1
        entry[1] += Decimal(total)
    return [(key, count, revenue) for key, (count, revenue) in buckets.items()]
