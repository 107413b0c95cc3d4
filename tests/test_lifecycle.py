import logging

import pytest

from workorders.core.exceptions import (
    ConflictError,
    InvalidStateError,
    NotFoundError,
    PreconditionError,
)
from workorders.schemas.work_order_schemas import (
    HistoryAction,
    JourneyStage,
    Material,
    SourceType,
    WorkOrderStatus,
    WorkOrderUpdate,
)

from conftest import FakeActivity, FakeArchive, START


def _actions(order):
    return [entry.action_type for entry in order.history]


async def _completed(lifecycle, actor, new_order, **fields):
    order = await lifecycle.create(new_order(**fields), actor)
    return await lifecycle.update(order.id, {"status": WorkOrderStatus.COMPLETED}, actor)


# --------------------------
# create
# --------------------------
async def test_create_manual_seeds_history_and_journey(lifecycle, alice, new_order, activity):
    order = await lifecycle.create(new_order(), alice)

    assert _actions(order) == [HistoryAction.CREATED]
    assert [j.stage for j in order.journey] == [JourneyStage.CREATED]
    assert order.general_number == "2024-0001"
    assert order.work_order_number == "W-2024-0001"
    assert order.created_by == alice.id
    assert order.created_by_name == alice.name
    assert order.created_at == START
    assert order.history[0].performed_by == alice.id
    assert activity.events[0]["event_type"] == "work_order_created"


async def test_numbers_are_sequential_and_distinct(lifecycle, alice, new_order):
    first = await lifecycle.create(new_order(), alice)
    second = await lifecycle.create(new_order(title="Second job"), alice)

    assert first.work_order_number == "W-2024-0001"
    assert second.work_order_number == "W-2024-0002"
    assert second.general_number == "2024-0002"
    assert first.id != second.id


async def test_create_converted_from_quote(lifecycle, alice, new_order):
    order = await lifecycle.create(new_order(quote_id="Q-77"), alice, SourceType.QUOTE)

    assert _actions(order) == [HistoryAction.CONVERTED]
    assert "Q-77" in order.history[0].details
    assert order.history[0].metadata == {"sourceType": "quote", "sourceId": "Q-77"}
    assert [j.stage for j in order.journey] == [JourneyStage.CONVERTED]


async def test_create_converted_without_source_id_fails(lifecycle, alice, new_order):
    with pytest.raises(PreconditionError) as exc_info:
        await lifecycle.create(new_order(), alice, "invoice")
    assert exc_info.value.missing == "invoice_id"
    assert await lifecycle.list() == []


async def test_create_with_assignee_adds_assignment(lifecycle, alice, new_order):
    order = await lifecycle.create(new_order(assigned_to="u-bob", assigned_to_name="Bob Nguyen"), alice)

    assert _actions(order) == [HistoryAction.CREATED, HistoryAction.ASSIGNED]
    assert order.history[1].to_assigned_to == "u-bob"
    assert [j.stage for j in order.journey] == [JourneyStage.CREATED, JourneyStage.IN_PROGRESS]


async def test_create_as_completed_is_rejected(lifecycle, alice, new_order):
    with pytest.raises(InvalidStateError):
        await lifecycle.create(new_order(status=WorkOrderStatus.COMPLETED), alice)


# --------------------------
# update
# --------------------------
async def test_update_missing_order_raises(lifecycle, alice):
    with pytest.raises(NotFoundError):
        await lifecycle.update("wo-missing", {"title": "x"}, alice)


async def test_every_update_appends_history(lifecycle, alice, new_order):
    order = await lifecycle.create(new_order(), alice)

    renamed = await lifecycle.update(order.id, {"title": "Replace boiler valve (urgent)"}, alice)
    assert len(renamed.history) == len(order.history) + 1
    assert renamed.history[-1].action_type == HistoryAction.UPDATED
    assert "title" in renamed.history[-1].details

    unchanged = await lifecycle.update(order.id, WorkOrderUpdate(), alice)
    assert len(unchanged.history) == len(renamed.history) + 1


async def test_assign_then_complete_scenario(lifecycle, alice, new_order, invoicing):
    order = await lifecycle.create(new_order(), alice)
    assert _actions(order) == [HistoryAction.CREATED]
    assert len(order.journey) == 1

    assigned = await lifecycle.update(order.id, {"assigned_to": "u-bob", "assigned_to_name": "Bob Nguyen"}, alice)
    assert _actions(assigned).count(HistoryAction.ASSIGNED) == 1
    assert len(assigned.history) == 2
    assert assigned.assigned_to_name == "Bob Nguyen"

    completed = await lifecycle.update(order.id, {"status": "completed"}, alice)
    status_entry = next(e for e in completed.history if e.action_type == HistoryAction.STATUS_CHANGED)
    assert status_entry.from_status == WorkOrderStatus.TODO
    assert status_entry.to_status == WorkOrderStatus.COMPLETED
    assert completed.invoice_id == "inv-1"
    assert completed.completed_date == START
    assert completed.journey[-1].stage == JourneyStage.COMPLETED
    assert len(invoicing.calls) == 1
    new_entries = completed.history[len(assigned.history):]
    assert {e.timestamp for e in new_entries} == {completed.updated_at}


async def test_multi_field_update_emits_entries_in_fixed_order(lifecycle, alice, new_order):
    order = await lifecycle.create(new_order(), alice)
    updated = await lifecycle.update(order.id, {
        "hours_spent": 3.5,
        "materials": [Material(name="Pipe", quantity=1)],
        "assigned_to": "u-bob",
        "status": WorkOrderStatus.IN_PROGRESS,
    }, alice)

    assert _actions(updated)[1:] == [
        HistoryAction.STATUS_CHANGED,
        HistoryAction.ASSIGNED,
        HistoryAction.MATERIAL_UPDATED,
        HistoryAction.HOURS_UPDATED,
    ]
    assert updated.history[-1].metadata == {"previousHours": 0.0, "newHours": 3.5}


async def test_reassign_and_unassign(lifecycle, alice, new_order):
    order = await lifecycle.create(new_order(assigned_to="u-bob", assigned_to_name="Bob"), alice)

    reassigned = await lifecycle.update(order.id, {"assigned_to": "u-carol", "assigned_to_name": "Carol"}, alice)
    entry = reassigned.history[-1]
    assert entry.action_type == HistoryAction.REASSIGNED
    assert (entry.from_assigned_to, entry.to_assigned_to) == ("u-bob", "u-carol")
    assert entry.details == "Reassigned from Bob to Carol"

    unassigned = await lifecycle.update(order.id, {"assigned_to": None}, alice)
    assert unassigned.assigned_to is None
    assert unassigned.assigned_to_name is None
    assert unassigned.history[-1].details == "Unassigned from Carol"


async def test_pending_reason_is_recorded(lifecycle, alice, new_order):
    order = await lifecycle.create(new_order(), alice)
    updated = await lifecycle.update(order.id, {"status": "pending", "pending_reason": "Waiting for parts"}, alice)
    assert updated.history[-1].details.endswith("Reason: Waiting for parts")


async def test_leaving_completed_clears_completed_date(lifecycle, alice, new_order):
    completed = await _completed(lifecycle, alice, new_order)
    moved = await lifecycle.update(completed.id, {"status": WorkOrderStatus.IN_PROGRESS}, alice)
    assert moved.completed_date is None


async def test_invoice_opt_out(lifecycle, alice, new_order, invoicing):
    order = await lifecycle.create(new_order(), alice)
    completed = await lifecycle.update(order.id, {"status": "completed"}, alice, create_invoice=False)
    assert completed.invoice_id is None
    assert invoicing.calls == []


async def test_update_of_archived_order_is_rejected(lifecycle, alice, new_order):
    completed = await _completed(lifecycle, alice, new_order)
    archived = await lifecycle.archive(completed.id, None, alice)

    with pytest.raises(InvalidStateError):
        await lifecycle.update(completed.id, {"notes": "late edit"}, alice)
    assert len((await lifecycle.get(completed.id)).history) == len(archived.history)


async def test_activity_log_failure_does_not_fail_update(make_lifecycle, alice, new_order):
    lifecycle = make_lifecycle(activity=FakeActivity(fail=True))
    order = await lifecycle.create(new_order(), alice)
    updated = await lifecycle.update(order.id, {"notes": "call first"}, alice)
    assert updated.notes == "call first"


# --------------------------
# reopen
# --------------------------
async def test_reopen_requires_completed(lifecycle, alice, new_order):
    order = await lifecycle.create(new_order(), alice)
    with pytest.raises(InvalidStateError):
        await lifecycle.reopen(order.id, "customer complaint", alice)
    assert len((await lifecycle.get(order.id)).history) == 1


async def test_reopen_restores_pre_completion_status(lifecycle, alice, new_order):
    order = await lifecycle.create(new_order(), alice)
    await lifecycle.update(order.id, {"status": "pending", "pending_reason": "parts"}, alice)
    await lifecycle.update(order.id, {"status": "completed"}, alice)

    reopened = await lifecycle.reopen(order.id, "Leak came back", alice)

    assert reopened.status == WorkOrderStatus.PENDING
    assert reopened.completed_date is None
    entry = reopened.history[-1]
    assert entry.action_type == HistoryAction.STATUS_CHANGED
    assert (entry.from_status, entry.to_status) == (WorkOrderStatus.COMPLETED, WorkOrderStatus.PENDING)
    assert "Leak came back" in entry.details
    assert entry.metadata["invoiceStatus"] == "pending"
    assert entry.metadata["requiresFollowUp"] is True
    assert reopened.journey[-1].stage == JourneyStage.IN_PROGRESS
    assert reopened.journey[-1].label == "Reopened"


async def test_reopen_with_paid_invoice_warns(lifecycle, alice, new_order, invoicing, caplog):
    completed = await _completed(lifecycle, alice, new_order)
    invoicing.statuses[completed.invoice_id] = "paid"

    with caplog.at_level(logging.WARNING):
        reopened = await lifecycle.reopen(completed.id, "Rework", alice)

    assert reopened.invoice_id == completed.invoice_id
    assert reopened.history[-1].metadata["invoiceStatus"] == "paid"
    assert any("already paid" in r.getMessage() for r in caplog.records)


async def test_numbers_survive_reopen_and_recompletion(lifecycle, alice, new_order, invoicing):
    completed = await _completed(lifecycle, alice, new_order)
    await lifecycle.reopen(completed.id, "Rework", alice)
    again = await lifecycle.update(completed.id, {"status": "completed"}, alice)

    assert again.general_number == completed.general_number
    assert again.work_order_number == completed.work_order_number
    assert again.invoice_id == completed.invoice_id
    assert len(invoicing.calls) == 1


# --------------------------
# archive
# --------------------------
async def test_archive_requires_completed(lifecycle, alice, new_order, archive):
    order = await lifecycle.create(new_order(), alice)
    with pytest.raises(InvalidStateError):
        await lifecycle.archive(order.id, "done", alice)

    unchanged = await lifecycle.get(order.id)
    assert unchanged.history == order.history
    assert unchanged.is_archived is False
    assert archive.documents == []


async def test_archive_without_invoice_needs_reason(lifecycle, alice, new_order):
    order = await lifecycle.create(new_order(), alice)
    completed = await lifecycle.update(order.id, {"status": "completed"}, alice, create_invoice=False)

    for reason in (None, "", "   "):
        with pytest.raises(PreconditionError):
            await lifecycle.archive(completed.id, reason, alice)

    archived = await lifecycle.archive(completed.id, "Warranty job, no charge", alice)
    assert archived.is_archived is True
    assert archived.archive_reason == "Warranty job, no charge"


async def test_archive_sets_fields_and_snapshots(lifecycle, alice, new_order, archive, clock):
    completed = await _completed(lifecycle, alice, new_order)
    clock.advance(hours=1)

    archived = await lifecycle.archive(completed.id, None, alice)

    assert archived.is_archived is True
    assert archived.archived_at == clock.now
    assert archived.archived_by == alice.id
    assert archived.history[-1].action_type == HistoryAction.ARCHIVED
    assert archived.journey[-1].stage == JourneyStage.COMPLETED
    assert archived.journey[-1].label == "Archived"

    document = archive.documents[-1]
    assert document["kind"] == "work_order"
    assert document["document_number"] == completed.work_order_number
    assert document["snapshot"]["history"][-1]["action_type"] == "archived"
    assert any(a["event_type"] == "work_order_completed" for a in document["activities"])


async def test_archive_twice_conflicts(lifecycle, alice, new_order):
    completed = await _completed(lifecycle, alice, new_order)
    archived = await lifecycle.archive(completed.id, None, alice)

    with pytest.raises(ConflictError):
        await lifecycle.archive(completed.id, None, alice)
    assert len((await lifecycle.get(completed.id)).history) == len(archived.history)


async def test_archive_sink_failure_leaves_order_unarchived(make_lifecycle, alice, new_order):
    lifecycle = make_lifecycle(archive=FakeArchive(fail=True))
    completed = await _completed(lifecycle, alice, new_order)

    with pytest.raises(RuntimeError):
        await lifecycle.archive(completed.id, None, alice)
    assert (await lifecycle.get(completed.id)).is_archived is False


# --------------------------
# delete
# --------------------------
async def test_delete_snapshots_then_removes(lifecycle, alice, new_order, archive, activity):
    order = await lifecycle.create(new_order(), alice)
    await lifecycle.delete(order.id, alice, "Duplicate")

    with pytest.raises(NotFoundError):
        await lifecycle.get(order.id)
    document = archive.documents[-1]
    assert document["reason"] == "Duplicate"
    assert document["snapshot"]["history"][-1]["action_type"] == "deleted"
    assert activity.events[-1]["event_type"] == "work_order_deleted"


async def test_delete_missing_order_raises(lifecycle, alice, archive):
    with pytest.raises(NotFoundError):
        await lifecycle.delete("wo-missing", alice)
    assert archive.documents == []
