"""Small query helpers shared by the routers."""

from __future__ import annotations

from typing import Any, List, Tuple

from sqlalchemy import Select, func, select
from sqlalchemy.orm import Session


def contains(search: str) -> str:
    """LIKE pattern for a substring search (used with `ilike`)."""
    return f"%{search.strip()}%"


def count_of(db: Session, stmt: Select) -> int:
    """Row count of a select, ignoring its ordering and limits."""
    subquery = stmt.order_by(None).limit(None).offset(None).subquery()
    return int(db.scalar(select(func.count()).select_from(subquery)) or 0)


# PUBLIC_INTERFACE
def paginate(db: Session, stmt: Select, page: int, limit: int) -> Tuple[List[Any], int]:
    """
    Run `stmt` for one page and count the full filtered result.

    Returns:
        (rows, total) where rows are ORM entities (scalars) of the page.
    """
    total = count_of(db, stmt)
    rows = db.scalars(stmt.offset((page - 1) * limit).limit(limit)).unique().all()
    return list(rows), total
