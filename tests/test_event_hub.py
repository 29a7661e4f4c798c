"""Event hub tests: outlet scoping, ordering, overflow and thread safety."""

import asyncio
import threading

from pos_core.realtime import events
from pos_core.realtime import hub as realtime_hub
from pos_core.realtime.hub import EventHub
from pos_core.schemas.order import OrderCreate, OrderItemCreate
from pos_core.services import order_service


def test_publish_reaches_only_subscribers_of_the_outlet() -> None:
    async def scenario() -> None:
        hub = EventHub(queue_max=8)
        first = hub.subscribe(1)
        second = hub.subscribe(1)
        other = hub.subscribe(2)

        assert hub.publish(1, {"type": "order.created", "order_id": 10}) == 2

        assert (await first.get(timeout=1))["order_id"] == 10
        assert (await second.get(timeout=1))["order_id"] == 10
        try:
            await other.get(timeout=0.05)
        except asyncio.TimeoutError:
            pass
        else:
            raise AssertionError("subscriber of another outlet received an event")

    asyncio.run(scenario())


def test_publish_without_subscribers_is_a_no_op() -> None:
    assert EventHub(queue_max=4).publish(99, {"type": "order.updated"}) == 0


def test_events_arrive_in_publish_order() -> None:
    async def scenario() -> list[int]:
        hub = EventHub(queue_max=64)
        subscriber = hub.subscribe(1)
        for seq in range(20):
            hub.publish(1, {"seq": seq})
        return [(await subscriber.get(timeout=1))["seq"] for _ in range(20)]

    assert asyncio.run(scenario()) == list(range(20))


def test_publish_from_worker_threads_preserves_per_thread_order() -> None:
    async def scenario() -> list[dict]:
        hub = EventHub(queue_max=256)
        subscriber = hub.subscribe(1)

        def producer(name: str) -> None:
            for seq in range(25):
                hub.publish(1, {"producer": name, "seq": seq})

        threads = [threading.Thread(target=producer, args=(name,)) for name in ("a", "b", "c")]
        for thread in threads:
            thread.start()
        await asyncio.to_thread(lambda: [thread.join() for thread in threads])
        return [await subscriber.get(timeout=1) for _ in range(75)]

    received = asyncio.run(scenario())
    for name in ("a", "b", "c"):
        assert [event["seq"] for event in received if event["producer"] == name] == list(range(25))


def test_overflowing_subscriber_is_disconnected() -> None:
    async def scenario() -> None:
        hub = EventHub(queue_max=2)
        slow = hub.subscribe(1)
        fast = hub.subscribe(1)

        hub.publish(1, {"seq": 0})
        assert (await fast.get(timeout=1))["seq"] == 0
        hub.publish(1, {"seq": 1})
        assert (await fast.get(timeout=1))["seq"] == 1
        hub.publish(1, {"seq": 2})
        assert (await fast.get(timeout=1))["seq"] == 2

        assert slow.closed
        assert hub.subscriber_count(1) == 1
        assert await slow.get(timeout=1) is None

    asyncio.run(scenario())


def test_unsubscribe_wakes_pending_reader() -> None:
    async def scenario() -> None:
        hub = EventHub(queue_max=4)
        subscriber = hub.subscribe(3)
        waiter = asyncio.create_task(subscriber.get())
        await asyncio.sleep(0)
        hub.unsubscribe(subscriber)
        assert await asyncio.wait_for(waiter, timeout=1) is None
        assert hub.subscriber_count(3) == 0

    asyncio.run(scenario())


def test_close_all_disconnects_everyone() -> None:
    async def scenario() -> None:
        hub = EventHub(queue_max=4)
        subscribers = [hub.subscribe(1), hub.subscribe(2)]
        hub.close_all()
        assert [await subscriber.get(timeout=1) for subscriber in subscribers] == [None, None]
        assert hub.subscriber_count(1) == 0

    asyncio.run(scenario())


def test_notify_swallows_publish_failures(db, catalog, cashier, monkeypatch) -> None:
    class BrokenHub:
        def publish(self, outlet_id, message):
            raise RuntimeError("hub down")

    monkeypatch.setattr(realtime_hub, "event_hub", BrokenHub())
    order = order_service.create_order(
        db,
        catalog.outlet_id,
        OrderCreate(order_type="TAKEAWAY", items=[OrderItemCreate(product_id=catalog.nasi_goreng)]),
        cashier,
    )
    events.notify(order, events.ORDER_UPDATED)
    assert order.id is not None
