# workorders/services/work_order_services/store.py
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from pydantic import BaseModel
from sqlalchemy import asc
from sqlalchemy.future import select

from workorders.core.exceptions import NotFoundError
from workorders.models.work_order_models import WorkOrderRecord
from workorders.schemas.work_order_schemas import WorkOrder, WorkOrderStatus

JSON_COLUMNS = ("materials", "history", "journey")
READ_ONLY_FIELDS = {"id", "general_number", "work_order_number", "created_at"}


def _to_column_value(key: str, value: Any) -> Any:
    if key in JSON_COLUMNS:
        # nested models carry datetimes; JSON columns need plain values
        return [v.model_dump(mode="json") if isinstance(v, BaseModel) else v for v in (value or [])]
    if isinstance(value, WorkOrderStatus):
        return value.value
    return value


class WorkOrderStore:
    """
    Keyed storage for work orders. Single source of truth for current state;
    holds no business rules.
    """

    def __init__(self, session_factory):
        self._session_factory = session_factory

    async def create(self, order: WorkOrder) -> WorkOrder:
        record = WorkOrderRecord(**{
            key: _to_column_value(key, getattr(order, key)) for key in WorkOrder.model_fields
        })
        async with self._session_factory() as db:
            db.add(record)
            await db.commit()
            await db.refresh(record)
            return WorkOrder.model_validate(record)

    async def get(self, order_id: str) -> WorkOrder:
        async with self._session_factory() as db:
            record = await db.get(WorkOrderRecord, order_id)
            if not record:
                raise NotFoundError(order_id)
            return WorkOrder.model_validate(record)

    async def update(self, order_id: str, patch: Dict[str, Any]) -> WorkOrder:
        forbidden = READ_ONLY_FIELDS & set(patch)
        if forbidden:
            raise ValueError(f"Fields cannot be changed: {', '.join(sorted(forbidden))}")

        async with self._session_factory() as db:
            record = await db.get(WorkOrderRecord, order_id)
            if not record:
                raise NotFoundError(order_id)
            for key, value in patch.items():
                setattr(record, key, _to_column_value(key, value))
            if "updated_at" not in patch:
                record.updated_at = datetime.now(timezone.utc)
            await db.commit()
            await db.refresh(record)
            return WorkOrder.model_validate(record)

    async def delete(self, order_id: str) -> None:
        async with self._session_factory() as db:
            record = await db.get(WorkOrderRecord, order_id)
            if not record:
                raise NotFoundError(order_id)
            await db.delete(record)
            await db.commit()

    async def list(
        self,
        status: Optional[WorkOrderStatus] = None,
        is_archived: Optional[bool] = None,
        assigned_to: Optional[str] = None,
        customer_id: Optional[str] = None,
    ) -> List[WorkOrder]:
        stmt = select(WorkOrderRecord)
        if status is not None:
            stmt = stmt.where(WorkOrderRecord.status == WorkOrderStatus(status).value)
        if is_archived is not None:
            stmt = stmt.where(WorkOrderRecord.is_archived == is_archived)
        if assigned_to:
            stmt = stmt.where(WorkOrderRecord.assigned_to == assigned_to)
        if customer_id:
            stmt = stmt.where(WorkOrderRecord.customer_id == customer_id)

        async with self._session_factory() as db:
            result = await db.execute(stmt.order_by(asc(WorkOrderRecord.created_at)))
            return [WorkOrder.model_validate(r) for r in result.scalars().all()]
