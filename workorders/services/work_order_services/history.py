# workorders/services/work_order_services/history.py
"""
Append-only audit trail and customer-facing journey of a work order.

``HistoryLog`` records every change at field level. ``JourneyTracker`` records
the coarse checkpoints a customer cares about (created, converted, in
progress, completed); several history entries can map to one journey stage.

Both wrap the entries already stored on the order and only ever append. The
history log also indexes entries by ``to_status`` so the status an order had
before it was completed can be recovered without rescanning the log.
"""
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional

from workorders.schemas.actor_schemas import Actor
from workorders.schemas.work_order_schemas import (
    HistoryAction,
    HistoryEntry,
    JourneyEntry,
    JourneyStage,
    WorkOrderStatus,
)
from workorders.utils.id_helpers import generate_entry_id


class HistoryLog:

    def __init__(self, entries: Iterable[HistoryEntry] = ()):
        self._entries: List[HistoryEntry] = []
        self._last_by_to_status: Dict[WorkOrderStatus, HistoryEntry] = {}
        for entry in entries:
            self._index(entry)

    def _index(self, entry: HistoryEntry) -> None:
        self._entries.append(entry)
        if entry.to_status is not None:
            self._last_by_to_status[entry.to_status] = entry

    def append(
        self,
        action_type: HistoryAction,
        actor: Actor,
        details: str,
        timestamp: datetime,
        *,
        from_status: Optional[WorkOrderStatus] = None,
        to_status: Optional[WorkOrderStatus] = None,
        from_assigned_to: Optional[str] = None,
        to_assigned_to: Optional[str] = None,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> HistoryEntry:
        entry = HistoryEntry(
            id=generate_entry_id("hist"),
            action_type=action_type,
            performed_by=actor.id,
            performed_by_name=actor.name,
            timestamp=timestamp,
            details=details,
            from_status=from_status,
            to_status=to_status,
            from_assigned_to=from_assigned_to,
            to_assigned_to=to_assigned_to,
            metadata=metadata or {},
        )
        self._index(entry)
        return entry

    def last_transition_to(self, status: WorkOrderStatus) -> Optional[HistoryEntry]:
        return self._last_by_to_status.get(status)

    def status_before_completion(self, default: WorkOrderStatus = WorkOrderStatus.IN_PROGRESS) -> WorkOrderStatus:
        entry = self.last_transition_to(WorkOrderStatus.COMPLETED)
        if entry is None or entry.from_status is None or entry.from_status == WorkOrderStatus.COMPLETED:
            return default
        return entry.from_status

    @property
    def entries(self) -> List[HistoryEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)


class JourneyTracker:

    def __init__(self, entries: Iterable[JourneyEntry] = ()):
        self._entries: List[JourneyEntry] = list(entries)

    def append(
        self,
        stage: JourneyStage,
        actor: Actor,
        label: str,
        details: str,
        timestamp: datetime,
        metadata: Optional[Dict[str, Any]] = None,
    ) -> JourneyEntry:
        entry = JourneyEntry(
            id=generate_entry_id("journey"),
            stage=stage,
            performed_by=actor.id,
            performed_by_name=actor.name,
            label=label,
            details=details,
            metadata=metadata or {},
            timestamp=timestamp,
        )
        self._entries.append(entry)
        return entry

    def by_stage(self, stage: JourneyStage) -> List[JourneyEntry]:
        return [entry for entry in self._entries if entry.stage == stage]

    def latest(self) -> Optional[JourneyEntry]:
        return self._entries[-1] if self._entries else None

    @property
    def entries(self) -> List[JourneyEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
