# workorders/services/work_order_services/lifecycle.py
"""
State machine for work orders.

Every public mutation validates first, builds the complete new state
(history and journey entries included), and then performs a single store
write. Validation errors therefore never leave partial changes behind.
Mutations on the same order id are serialized with a per-id lock; different
ids run concurrently.
"""
import asyncio
import logging
from datetime import datetime, timezone
from typing import Any, Callable, Dict, List, Optional, Union

from workorders.core.config import AUTO_CREATE_INVOICE, SIDE_EFFECT_TIMEOUT_SECONDS
from workorders.core.exceptions import ConflictError, InvalidStateError, PreconditionError
from workorders.schemas.actor_schemas import Actor
from workorders.schemas.work_order_schemas import (
    HistoryAction,
    JourneyStage,
    SourceType,
    WorkOrder,
    WorkOrderCreate,
    WorkOrderStatus,
    WorkOrderUpdate,
)
from workorders.services.ports import ActivityPort, ArchivePort, InventoryPort, InvoicingPort
from workorders.services.work_order_services.history import HistoryLog, JourneyTracker
from workorders.services.work_order_services.numbering import NumberAllocator
from workorders.services.work_order_services.side_effects import CompletionSideEffects
from workorders.services.work_order_services.store import WorkOrderStore
from workorders.utils.activity_helpers import diff_fields, summarize_changes
from workorders.utils.id_helpers import generate_work_order_id
from workorders.utils.keyed_lock import KeyedLock

logger = logging.getLogger(__name__)

ENTITY_KIND = "work_order"

# fields whose change gets a dedicated history entry, in emission order
STATUS, ASSIGNMENT, MATERIALS, HOURS = "status", "assigned_to", "materials", "hours_spent"
DEDICATED_FIELDS = {STATUS, ASSIGNMENT, MATERIALS, HOURS}
NON_NULLABLE_FIELDS = {"title", "description", "status", "estimated_hours", "hours_spent", "estimated_cost", "materials"}


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class WorkOrderLifecycleEngine:

    def __init__(
        self,
        store: WorkOrderStore,
        numbers: NumberAllocator,
        inventory: InventoryPort,
        invoicing: InvoicingPort,
        archive: ArchivePort,
        activity: ActivityPort,
        *,
        clock: Optional[Callable[[], datetime]] = None,
        side_effect_timeout: Optional[float] = SIDE_EFFECT_TIMEOUT_SECONDS,
        auto_create_invoice: bool = AUTO_CREATE_INVOICE,
    ):
        self.store = store
        self._numbers = numbers
        self._invoicing = invoicing
        self._archive = archive
        self._activity = activity
        self._side_effects = CompletionSideEffects(inventory, invoicing, side_effect_timeout)
        self._side_effect_timeout = side_effect_timeout
        self._auto_create_invoice = auto_create_invoice
        self._clock = clock or _utcnow
        self._locks = KeyedLock()

    def now(self) -> datetime:
        return self._clock()

    # --------------------------
    # Reads
    # --------------------------
    async def get(self, order_id: str) -> WorkOrder:
        return await self.store.get(order_id)

    async def list(self, **filters) -> List[WorkOrder]:
        return await self.store.list(**filters)

    # --------------------------
    # Create
    # --------------------------
    async def create(
        self,
        data: WorkOrderCreate,
        actor: Actor,
        source_type: Optional[Union[SourceType, str]] = None,
    ) -> WorkOrder:
        source = SourceType(source_type) if source_type else SourceType.MANUAL
        if data.status == WorkOrderStatus.COMPLETED:
            raise InvalidStateError("A work order cannot be created in completed status")

        source_id = None
        if source == SourceType.QUOTE:
            source_id = data.quote_id
        elif source == SourceType.INVOICE:
            source_id = data.invoice_id
        if source != SourceType.MANUAL and not source_id:
            raise PreconditionError(
                f"Converting from a {source.value} requires the {source.value} id",
                missing=f"{source.value}_id",
            )

        now = self.now()
        general_number, work_order_number = await self._numbers.next_work_order_numbers(now.year)
        history, journey = HistoryLog(), JourneyTracker()

        if source == SourceType.MANUAL:
            details = f"Work order {work_order_number} created"
            history.append(HistoryAction.CREATED, actor, details, now)
            journey.append(JourneyStage.CREATED, actor, "Created", details, now)
        else:
            details = f"Work order {work_order_number} converted from {source.value} {source_id}"
            source_meta = {"sourceType": source.value, "sourceId": source_id}
            history.append(HistoryAction.CONVERTED, actor, details, now, metadata=source_meta)
            journey.append(JourneyStage.CONVERTED, actor, f"Converted from {source.value}", details, now,
                           metadata=source_meta)

        if data.assigned_to:
            details = f"Assigned to {data.assigned_to_name or data.assigned_to}"
            history.append(HistoryAction.ASSIGNED, actor, details, now, to_assigned_to=data.assigned_to)
            journey.append(JourneyStage.IN_PROGRESS, actor, "Assigned", details, now,
                           metadata={"assignedTo": data.assigned_to})

        order = WorkOrder(
            id=generate_work_order_id(),
            general_number=general_number,
            work_order_number=work_order_number,
            **data.model_dump(),
            history=history.entries,
            journey=journey.entries,
            created_at=now,
            updated_at=now,
            created_by=actor.id,
            created_by_name=actor.name,
        )
        saved = await self.store.create(order)
        logger.info("Work order %s created by %s (%s)", work_order_number, actor.id, source.value)

        event = "work_order_created" if source == SourceType.MANUAL else "work_order_converted"
        await self._record_activity(
            event, saved, "created", f"{actor.name} created work order {work_order_number}", actor,
            metadata={"sourceType": source.value, "sourceId": source_id},
        )
        return saved

    # --------------------------
    # Update
    # --------------------------
    async def update(
        self,
        order_id: str,
        patch: Union[WorkOrderUpdate, Dict[str, Any]],
        actor: Actor,
        *,
        create_invoice: bool = True,
    ) -> WorkOrder:
        if not isinstance(patch, WorkOrderUpdate):
            patch = WorkOrderUpdate.model_validate(patch)
        requested = {
            key: value for key, value in patch.model_dump(exclude_unset=True).items()
            if value is not None or key not in NON_NULLABLE_FIELDS
        }

        async with self._locks.hold(order_id):
            current = await self.store.get(order_id)
            if current.is_archived:
                raise InvalidStateError(
                    f"Work order {current.work_order_number} is archived and can no longer be changed"
                )

            now = self.now()
            before = current.model_dump()
            changed = {key: value for key, value in requested.items() if before.get(key) != value}
            new_values: Dict[str, Any] = dict(changed)
            history = HistoryLog(current.history)
            journey = JourneyTracker(current.journey)
            completing = False

            # 1. status
            if STATUS in changed:
                new_status = changed[STATUS]
                details = f"Status changed from {current.status.value} to {new_status.value}"
                if new_status == WorkOrderStatus.PENDING:
                    reason = new_values.get("pending_reason", current.pending_reason)
                    if reason:
                        details += f" - Reason: {reason}"
                history.append(HistoryAction.STATUS_CHANGED, actor, details, now,
                               from_status=current.status, to_status=new_status)
                if new_status == WorkOrderStatus.COMPLETED:
                    completing = True
                    new_values["completed_date"] = now
                    journey.append(JourneyStage.COMPLETED, actor, "Completed",
                                   f"Work order {current.work_order_number} completed", now)
                elif current.status == WorkOrderStatus.COMPLETED:
                    new_values["completed_date"] = None

            # 2. assignment
            if ASSIGNMENT in changed:
                old_id, new_id = current.assigned_to, changed[ASSIGNMENT]
                # a name left out of the patch would describe the previous assignee
                new_name = requested.get("assigned_to_name")
                new_values["assigned_to_name"] = new_name
                old_label = current.assigned_to_name or old_id
                new_label = new_name or new_id
                if new_id is None:
                    details = f"Unassigned from {old_label}"
                elif old_id is None:
                    details = f"Assigned to {new_label}"
                else:
                    details = f"Reassigned from {old_label} to {new_label}"
                action = HistoryAction.ASSIGNED if old_id is None else HistoryAction.REASSIGNED
                history.append(action, actor, details, now, from_assigned_to=old_id, to_assigned_to=new_id)
                if new_id is not None:
                    journey.append(JourneyStage.IN_PROGRESS, actor, "Assigned", details, now,
                                   metadata={"assignedTo": new_id})

            # 3. materials
            if MATERIALS in changed:
                old_lines, new_lines = before[MATERIALS], changed[MATERIALS]
                history.append(
                    HistoryAction.MATERIAL_UPDATED, actor,
                    f"Materials updated ({len(old_lines)} → {len(new_lines)} lines)", now,
                    metadata={"previousMaterials": old_lines, "newMaterials": new_lines},
                )

            # 4. hours
            if HOURS in changed:
                history.append(
                    HistoryAction.HOURS_UPDATED, actor,
                    f"Hours spent updated from {current.hours_spent:g} to {changed[HOURS]:g}", now,
                    metadata={"previousHours": current.hours_spent, "newHours": changed[HOURS]},
                )

            if not DEDICATED_FIELDS & set(changed):
                field_changes = diff_fields(before, new_values, changed)
                details = "Work order details updated"
                if field_changes:
                    details += f": {summarize_changes(field_changes)}"
                history.append(HistoryAction.UPDATED, actor, details, now,
                               metadata={"fields": [c["field"] for c in field_changes]})

            if completing:
                completed_view = self._merge(current, new_values)
                invoice_id = await self._side_effects.run(
                    completed_view, history, actor, now,
                    create_invoice=create_invoice and self._auto_create_invoice,
                )
                if invoice_id:
                    new_values["invoice_id"] = invoice_id

            new_values["history"] = history.entries
            new_values["journey"] = journey.entries
            new_values["updated_at"] = now
            saved = await self.store.update(order_id, new_values)

        field_changes = diff_fields(before, new_values, [k for k in new_values if k not in ("history", "journey", "updated_at")])
        if completing:
            event, action = "work_order_completed", "completed"
        elif STATUS in changed:
            event, action = "work_order_status_changed", "status_changed"
        elif ASSIGNMENT in changed:
            event, action = "work_order_assigned", "assigned"
        else:
            event, action = "work_order_updated", "updated"
        message = f"{actor.name} updated work order {saved.work_order_number}"
        if field_changes:
            message += f": {summarize_changes(field_changes)}"
        await self._record_activity(event, saved, action, message, actor, changes=field_changes)
        return saved

    # --------------------------
    # Reopen
    # --------------------------
    async def reopen(self, order_id: str, reason: str, actor: Actor) -> WorkOrder:
        async with self._locks.hold(order_id):
            current = await self.store.get(order_id)
            if current.status != WorkOrderStatus.COMPLETED:
                raise InvalidStateError(
                    f"Only completed work orders can be reopened (current status: {current.status.value})"
                )
            if current.is_archived:
                raise InvalidStateError(f"Work order {current.work_order_number} is archived and cannot be reopened")

            now = self.now()
            history = HistoryLog(current.history)
            journey = JourneyTracker(current.journey)
            restored = history.status_before_completion()

            details = f"Work order reopened, status restored to {restored.value}. Reason: {reason}"
            metadata: Dict[str, Any] = {
                "reason": reason,
                "reopened": True,
                "previousCompletedDate": current.completed_date.isoformat() if current.completed_date else None,
            }
            if current.invoice_id:
                invoice_status = await self._invoice_status(current.invoice_id)
                metadata.update({
                    "invoiceId": current.invoice_id,
                    "invoiceStatus": invoice_status or "unknown",
                    "requiresFollowUp": True,
                })
                details += (f". Invoice {current.invoice_id} ({invoice_status or 'unknown'}) is unchanged "
                            f"and needs manual follow-up")
                if invoice_status == "paid":
                    logger.warning(
                        "Work order %s reopened by %s while invoice %s is already paid",
                        current.work_order_number, actor.id, current.invoice_id,
                    )

            history.append(HistoryAction.STATUS_CHANGED, actor, details, now,
                           from_status=WorkOrderStatus.COMPLETED, to_status=restored, metadata=metadata)
            journey.append(JourneyStage.IN_PROGRESS, actor, "Reopened", reason, now, metadata={"reason": reason})

            saved = await self.store.update(order_id, {
                "status": restored,
                "completed_date": None,
                "history": history.entries,
                "journey": journey.entries,
                "updated_at": now,
            })

        await self._record_activity(
            "work_order_reopened", saved, "reopened",
            f"{actor.name} reopened work order {saved.work_order_number}: {reason}", actor,
            changes=[{"field": "status", "old_value": WorkOrderStatus.COMPLETED.value, "new_value": restored.value}],
            metadata=metadata,
        )
        return saved

    # --------------------------
    # Archive
    # --------------------------
    async def archive(self, order_id: str, archive_reason: Optional[str], actor: Actor) -> WorkOrder:
        async with self._locks.hold(order_id):
            current = await self.store.get(order_id)
            if current.status != WorkOrderStatus.COMPLETED:
                raise InvalidStateError(
                    f"Only completed work orders can be archived (current status: {current.status.value})"
                )
            if current.is_archived:
                raise ConflictError(f"Work order {current.work_order_number} is already archived")

            reason = (archive_reason or "").strip() or None
            if not current.invoice_id and not reason:
                raise PreconditionError(
                    f"Work order {current.work_order_number} has no invoice; an archive reason is required",
                    missing="invoice_id or archive_reason",
                )

            now = self.now()
            history = HistoryLog(current.history)
            journey = JourneyTracker(current.journey)
            details = f"Work order {current.work_order_number} archived"
            if reason:
                details += f". Reason: {reason}"
            history.append(HistoryAction.ARCHIVED, actor, details, now,
                           metadata={"archiveReason": reason, "invoiceId": current.invoice_id})
            journey.append(JourneyStage.COMPLETED, actor, "Archived", details, now)

            new_values = {
                "is_archived": True,
                "archived_at": now,
                "archived_by": actor.id,
                "archive_reason": reason,
                "history": history.entries,
                "journey": journey.entries,
                "updated_at": now,
            }
            await self._snapshot(self._merge(current, new_values), actor, reason)
            saved = await self.store.update(order_id, new_values)

        logger.info("Work order %s archived by %s", saved.work_order_number, actor.id)
        await self._record_activity(
            "work_order_archived", saved, "archived",
            f"{actor.name} archived work order {saved.work_order_number}", actor,
            metadata={"archiveReason": reason, "invoiceId": saved.invoice_id},
        )
        return saved

    # --------------------------
    # Delete
    # --------------------------
    async def delete(self, order_id: str, actor: Actor, reason: Optional[str] = None) -> None:
        async with self._locks.hold(order_id):
            current = await self.store.get(order_id)
            now = self.now()
            history = HistoryLog(current.history)
            details = f"Work order {current.work_order_number} deleted"
            if reason:
                details += f". Reason: {reason}"
            history.append(HistoryAction.DELETED, actor, details, now, metadata={"reason": reason})

            await self._snapshot(self._merge(current, {"history": history.entries, "updated_at": now}), actor, reason)
            await self.store.delete(order_id)

        logger.info("Work order %s deleted by %s", current.work_order_number, actor.id)
        await self._record_activity(
            "work_order_deleted", current, "deleted",
            f"{actor.name} deleted work order {current.work_order_number}", actor,
            metadata={"reason": reason},
        )

    # --------------------------
    # Helpers
    # --------------------------
    @staticmethod
    def _merge(current: WorkOrder, values: Dict[str, Any]) -> WorkOrder:
        return WorkOrder.model_validate({**current.model_dump(), **values})

    async def _snapshot(self, order: WorkOrder, actor: Actor, reason: Optional[str]) -> None:
        snapshot = order.model_dump(mode="json")
        await self._archive.archive_document(
            ENTITY_KIND,
            snapshot,
            order.general_number,
            order.work_order_number,
            snapshot["journey"],
            await self._entity_activities(order.id),
            actor.id,
            actor.name,
            reason,
        )

    async def _entity_activities(self, order_id: str) -> List[Dict[str, Any]]:
        try:
            return await self._activity.get_entity_activities(ENTITY_KIND, order_id)
        except Exception:
            logger.exception("Could not load activity log for work order %s", order_id)
            return []

    async def _invoice_status(self, invoice_id: str) -> Optional[str]:
        try:
            call = self._invoicing.get_invoice_status(invoice_id)
            if self._side_effect_timeout is None:
                return await call
            return await asyncio.wait_for(call, timeout=self._side_effect_timeout)
        except Exception:
            logger.warning("Could not determine status of invoice %s", invoice_id, exc_info=True)
            return None

    async def _record_activity(
        self,
        event_type: str,
        order: WorkOrder,
        action: str,
        message: str,
        actor: Actor,
        changes: Optional[List[Dict[str, Any]]] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> None:
        try:
            await self._activity.log_activity(
                event_type,
                ENTITY_KIND,
                order.id,
                action,
                message,
                actor.id,
                actor.name,
                actor.email,
                entity_label=f"{order.work_order_number} {order.title}",
                field_diffs=changes,
                metadata=metadata,
            )
        except Exception:
            logger.exception("Failed to log activity %s for work order %s", event_type, order.id)
