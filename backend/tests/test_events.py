"""流转事件总线"""

import asyncio

from stationery.domain.events import EventBus, TransitionEvent
from stationery.domain.status import OrderStatus


def submitted_event(order_id=1):
    return TransitionEvent(
        order_id=order_id, order_no=f"ORD-D07-20240101-{order_id:03d}", department_id=7,
        from_status=OrderStatus.UPLOADED, to_status=OrderStatus.SUBMITTED, actor=101,
    )


class TestEventBus:

    async def test_publish_returns_before_subscribers_finish(self):
        bus = EventBus()
        started, release = asyncio.Event(), asyncio.Event()
        seen = []

        async def slow(event):
            started.set()
            await release.wait()
            seen.append(event.order_id)

        bus.subscribe(slow)
        await asyncio.wait_for(bus.publish(submitted_event()), timeout=1)
        assert seen == []
        assert bus.pending_count == 1

        await asyncio.wait_for(started.wait(), timeout=1)
        release.set()
        await bus.drain()
        assert seen == [1]
        assert bus.pending_count == 0

    async def test_subscribers_called_in_order(self):
        bus = EventBus()
        calls = []

        async def first(event):
            await asyncio.sleep(0)
            calls.append(("first", event.order_id))

        bus.subscribe(first)
        bus.subscribe(lambda event: calls.append(("second", event.order_id)))
        await bus.publish(submitted_event(1))
        await bus.publish(submitted_event(2))
        await bus.drain()
        assert calls[:2] == [("first", 1), ("second", 1)]
        assert sorted(calls) == [("first", 1), ("first", 2), ("second", 1), ("second", 2)]

    async def test_drain_timeout_cancels_stuck_subscriber(self):
        bus = EventBus()
        cancelled = asyncio.Event()

        async def stuck(event):
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.set()
                raise

        bus.subscribe(stuck)
        await bus.publish(submitted_event())
        await asyncio.sleep(0)
        await asyncio.wait_for(bus.drain(timeout=0.05), timeout=2)
        assert cancelled.is_set()
        assert bus.pending_count == 0

    async def test_failing_subscriber_does_not_stop_others(self):
        bus = EventBus()
        seen = []

        def broken(event):
            raise RuntimeError("订阅方异常")

        bus.subscribe(broken)
        bus.subscribe(lambda event: seen.append(event.order_id))
        await bus.publish(submitted_event(3))
        await bus.drain()
        assert seen == [3]

    async def test_unsubscribe(self):
        bus = EventBus()
        seen = []
        unsubscribe = bus.subscribe(seen.append)
        unsubscribe()
        await bus.publish(submitted_event())
        await bus.drain()
        assert seen == []
