# workorders/services/work_order_services/auto_archive.py
import asyncio
import logging
from datetime import datetime, timedelta
from typing import Optional

from workorders.core.config import AUTO_ARCHIVE_AFTER_HOURS
from workorders.core.exceptions import WorkOrderError
from workorders.schemas.actor_schemas import SYSTEM_ACTOR
from workorders.schemas.work_order_schemas import (
    AutoArchiveResult,
    Notification,
    WorkOrder,
    WorkOrderStatus,
)
from workorders.services.work_order_services.lifecycle import WorkOrderLifecycleEngine

logger = logging.getLogger(__name__)


def is_due_for_archive(order: WorkOrder, now: datetime, threshold_hours: float = AUTO_ARCHIVE_AFTER_HOURS) -> bool:
    return (
        order.status == WorkOrderStatus.COMPLETED
        and not order.is_archived
        and order.completed_date is not None
        and now - order.completed_date > timedelta(hours=threshold_hours)
    )


def _link(order: WorkOrder) -> str:
    return f"/work-orders/{order.id}"


async def run_auto_archive(
    engine: WorkOrderLifecycleEngine,
    now: Optional[datetime] = None,
    threshold_hours: float = AUTO_ARCHIVE_AFTER_HOURS,
) -> AutoArchiveResult:
    """
    Sweep completed, unarchived orders older than the threshold.

    Orders with an invoice are archived as the system actor; orders without
    one are reported as needing an invoice and left untouched. Each candidate
    is re-read before archiving, so a concurrent manual archive or delete just
    drops it from the run. Notifications are not de-duplicated across runs.
    """
    now = now or engine.now()
    result = AutoArchiveResult()

    candidates = await engine.list(status=WorkOrderStatus.COMPLETED, is_archived=False)
    for candidate in candidates:
        if not is_due_for_archive(candidate, now, threshold_hours):
            continue

        if not candidate.invoice_id:
            result.needs_invoice.append(candidate)
            result.notifications.append(Notification(
                type="warning",
                title="Work order needs an invoice",
                message=(f"Work order {candidate.work_order_number} ({candidate.title}) was completed more than "
                         f"{threshold_hours:g} hours ago but has no invoice"),
                link=_link(candidate),
            ))
            continue

        try:
            fresh = await engine.get(candidate.id)
            if not is_due_for_archive(fresh, now, threshold_hours) or not fresh.invoice_id:
                logger.info("Skipping auto-archive of %s: no longer eligible", candidate.work_order_number)
                continue
            archived = await engine.archive(fresh.id, None, SYSTEM_ACTOR)
        except WorkOrderError as exc:
            logger.info("Skipping auto-archive of %s: %s", candidate.work_order_number, exc)
            continue

        result.auto_archived.append(archived)
        result.notifications.append(Notification(
            type="success",
            title="Work order archived",
            message=f"Work order {archived.work_order_number} ({archived.title}) was archived automatically",
            link=_link(archived),
        ))

    if result.auto_archived or result.needs_invoice:
        logger.info(
            "Auto-archive run: %d archived, %d need an invoice",
            len(result.auto_archived), len(result.needs_invoice),
        )
    return result


async def auto_archive_loop(
    engine: WorkOrderLifecycleEngine,
    interval_seconds: float,
    threshold_hours: float = AUTO_ARCHIVE_AFTER_HOURS,
) -> None:
    while True:
        try:
            await run_auto_archive(engine, threshold_hours=threshold_hours)
        except Exception:
            logger.exception("Auto-archive run failed")
        await asyncio.sleep(interval_seconds)
