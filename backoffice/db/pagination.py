"""
Back Office — Offset pagination for SELECT statements
"""
import math
from typing import Any, Sequence

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession


class PageResult:
    """One page of ORM rows; validated into schemas.common.Page by the routers."""

    def __init__(self, items: Sequence[Any], total: int, page: int, size: int):
        self.items = list(items)
        self.total = total
        self.page = page
        self.size = size
        self.total_pages = math.ceil(total / size) if size else 0


async def paginate(db: AsyncSession, stmt: Select, page: int, size: int) -> PageResult:
    total = await db.scalar(select(func.count()).select_from(stmt.order_by(None).subquery()))
    result = await db.execute(stmt.offset(page * size).limit(size))
    return PageResult(result.scalars().all(), total or 0, page, size)
