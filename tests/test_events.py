import asyncio

from app.services.events import ON_FUNKO_CREADO, EventPublisher, FunkoCreadoEvent


async def test_subscriber_receives_published_event():
    publisher = EventPublisher()

    async with publisher.subscribe(ON_FUNKO_CREADO) as queue:
        delivered = await publisher.publish(ON_FUNKO_CREADO, FunkoCreadoEvent(funko_id=1, name="Batman", price=10))
        payload = await asyncio.wait_for(queue.get(), timeout=1)

    assert delivered == 1
    assert payload["funko_id"] == 1
    assert payload["name"] == "Batman"
    assert "created_at" in payload
    assert publisher.subscriber_count(ON_FUNKO_CREADO) == 0


async def test_publish_without_subscribers():
    publisher = EventPublisher()

    assert await publisher.publish(ON_FUNKO_CREADO, {"funko_id": 1}) == 0


async def test_topics_are_isolated():
    publisher = EventPublisher()

    async with publisher.subscribe("onFunkoEliminado") as queue:
        await publisher.publish(ON_FUNKO_CREADO, {"funko_id": 1})
        assert queue.empty()
