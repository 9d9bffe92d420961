"""
Tests for stream.stub
"""
import asyncio

from stream.interface import StreamConsumer, StreamProducer
from stream.stub import InMemoryStream


def test_stub_satisfies_protocols():
    stream = InMemoryStream()
    assert isinstance(stream, StreamProducer)
    assert isinstance(stream.consumer("t"), StreamConsumer)


async def test_publish_then_pull_in_order():
    stream = InMemoryStream()
    ids = [await stream.publish("t", {"n": n}, key=str(n)) for n in range(3)]
    consumer = stream.consumer("t")

    pulled = [await consumer.pull(timeout=0) for _ in range(3)]

    assert [m.message_id for m in pulled] == ids
    assert [m.data["n"] for m in pulled] == [0, 1, 2]
    assert await consumer.pull(timeout=0) is None


async def test_topics_are_independent():
    stream = InMemoryStream()
    await stream.publish("a", {"x": 1})
    assert await stream.consumer("b").pull(timeout=0) is None


async def test_pull_wakes_on_publish():
    stream = InMemoryStream()
    consumer = stream.consumer("t")

    waiter = asyncio.create_task(consumer.pull(timeout=1.0))
    await asyncio.sleep(0.01)
    await stream.publish("t", {"late": True})

    message = await asyncio.wait_for(waiter, timeout=1.0)
    assert message.data == {"late": True}


async def test_reset_delivery_redelivers_only_unacked():
    stream = InMemoryStream()
    await stream.publish("t", {"n": 1})
    await stream.publish("t", {"n": 2})
    consumer = stream.consumer("t")

    first = await consumer.pull(timeout=0)
    await consumer.ack(first.message_id)
    second = await consumer.pull(timeout=0)
    assert stream.pending_ids("t") == {second.message_id}

    stream.reset_delivery("t")

    again = await consumer.pull(timeout=0)
    assert again.message_id == second.message_id
    assert await consumer.pull(timeout=0) is None
