import asyncio

from workorders.schemas.work_order_schemas import HistoryAction, WorkOrderStatus
from workorders.utils.keyed_lock import KeyedLock

from conftest import FakeInvoicing


async def test_same_order_updates_do_not_lose_changes(make_lifecycle, alice, bob, new_order):
    lifecycle = make_lifecycle(invoicing=FakeInvoicing(delay=0.2))
    order = await lifecycle.create(new_order(), alice)

    await asyncio.gather(
        lifecycle.update(order.id, {"status": WorkOrderStatus.COMPLETED}, alice),
        lifecycle.update(order.id, {"assigned_to": "u-carol", "assigned_to_name": "Carol"}, bob),
    )

    final = await lifecycle.get(order.id)
    assert final.status == WorkOrderStatus.COMPLETED
    assert final.invoice_id == "inv-1"
    assert final.assigned_to == "u-carol"
    actions = [e.action_type for e in final.history]
    assert HistoryAction.STATUS_CHANGED in actions
    assert HistoryAction.ASSIGNED in actions


async def test_different_orders_run_in_parallel(make_lifecycle, alice, new_order):
    lifecycle = make_lifecycle(invoicing=FakeInvoicing(delay=0.5))
    first = await lifecycle.create(new_order(), alice)
    second = await lifecycle.create(new_order(title="Other job"), alice)

    loop = asyncio.get_running_loop()
    started = loop.time()
    await asyncio.gather(
        lifecycle.update(first.id, {"status": "completed"}, alice),
        lifecycle.update(second.id, {"status": "completed"}, alice),
    )
    assert loop.time() - started < 0.9


async def test_parallel_creates_get_unique_numbers(lifecycle, alice, new_order):
    orders = await asyncio.gather(*(lifecycle.create(new_order(title=f"Job {i}"), alice) for i in range(5)))
    numbers = sorted(o.work_order_number for o in orders)
    assert numbers == [f"W-2024-{i:04d}" for i in range(1, 6)]


async def test_keyed_lock_serializes_per_key():
    locks = KeyedLock()
    events = []

    async def worker(key, name):
        async with locks.hold(key):
            events.append(f"{name}-in")
            await asyncio.sleep(0.01)
            events.append(f"{name}-out")

    await asyncio.gather(worker("a", "1"), worker("a", "2"))
    assert events == ["1-in", "1-out", "2-in", "2-out"]
    assert len(locks) == 0


async def test_keyed_lock_does_not_block_other_keys():
    locks = KeyedLock()
    async with locks.hold("a"):
        assert locks.is_locked("a")
        assert not locks.is_locked("b")
        async with locks.hold("b"):
            assert len(locks) == 2
