# workorders/services/work_order_services/numbering.py
import asyncio
from datetime import datetime, timezone
from typing import Optional, Tuple

from workorders.models.counter_models import DocumentCounter

GENERAL = "general"
WORK_ORDER = "work_order"


class NumberAllocator:
    """
    Hands out the two human-facing numbers of a work order:
    ``YYYY-NNNN`` from the shared general counter and ``W-YYYY-NNNN`` from the
    work order counter. Allocations are committed immediately and never reused.
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory
        self._lock = asyncio.Lock()

    async def _increment(self, db, year: int, kind: str) -> int:
        counter = await db.get(DocumentCounter, (year, kind))
        if counter is None:
            counter = DocumentCounter(year=year, kind=kind, value=0)
            db.add(counter)
        counter.value += 1
        await db.flush()
        return counter.value

    async def next_work_order_numbers(self, year: Optional[int] = None) -> Tuple[str, str]:
        year = year or datetime.now(timezone.utc).year
        async with self._lock:
            async with self._session_factory() as db:
                general = await self._increment(db, year, GENERAL)
                work_order = await self._increment(db, year, WORK_ORDER)
                await db.commit()
        return f"{year}-{general:04d}", f"W-{year}-{work_order:04d}"
