import asyncio

from app.services.background import BackgroundDispatcher


async def test_jobs_run_in_background():
    dispatcher = BackgroundDispatcher(workers=2)
    await dispatcher.start()
    done = []

    async def job(value):
        done.append(value)

    for value in range(5):
        assert dispatcher.submit(f"job-{value}", lambda value=value: job(value))
    await dispatcher.join()
    await dispatcher.stop()

    assert sorted(done) == [0, 1, 2, 3, 4]
    assert dispatcher.completed == 5


async def test_failing_job_is_isolated(caplog):
    dispatcher = BackgroundDispatcher(workers=1)
    await dispatcher.start()
    done = []

    async def boom():
        raise ValueError("smtp down")

    async def ok():
        done.append(True)

    dispatcher.submit("boom", boom)
    dispatcher.submit("ok", ok)
    await dispatcher.join()
    await dispatcher.stop()

    assert done == [True]
    assert dispatcher.failed == 1
    assert "Background job 'boom' failed" in caplog.text


async def test_full_queue_drops_jobs():
    dispatcher = BackgroundDispatcher(workers=1, max_queue_size=1)
    await dispatcher.start()
    gate = asyncio.Event()

    async def blocked():
        await gate.wait()

    assert dispatcher.submit("first", blocked)
    await asyncio.sleep(0)  # let the worker pick the first job
    assert dispatcher.submit("second", blocked)
    assert dispatcher.submit("third", blocked) is False
    assert dispatcher.dropped == 1

    gate.set()
    await dispatcher.stop()


async def test_stop_drains_pending_jobs():
    dispatcher = BackgroundDispatcher(workers=1, drain_timeout=2)
    await dispatcher.start()
    done = []

    async def slow():
        await asyncio.sleep(0.01)
        done.append(True)

    for _ in range(3):
        dispatcher.submit("slow", slow)
    await dispatcher.stop(drain=True)

    assert len(done) == 3
    assert not dispatcher.running


async def test_submit_before_start_is_dropped():
    dispatcher = BackgroundDispatcher()

    async def job():
        pass

    assert dispatcher.submit("early", job) is False
    assert dispatcher.dropped == 1
