import asyncio

from scoring_integrity.platform.background import BackgroundTaskRunner, TelemetryChannel, TelemetryEvent


async def _ok():
    return "done"


async def _boom():
    raise ValueError("sink rejected row")


async def _forever():
    await asyncio.sleep(3600)


def test_failures_are_published_and_pending_is_cleared():
    runner = BackgroundTaskRunner()

    async def run():
        runner.submit(_ok(), name="ok")
        runner.submit(_boom(), name="audit:1")
        assert runner.pending_count == 2
        await runner.drain()

    asyncio.run(run())
    assert runner.pending_count == 0
    [event] = runner.channel.events
    assert event.task_name == "audit:1"
    assert event.status == "failed"
    assert event.error_type == "ValueError"
    assert event.error_message == "sink rejected row"


def test_successes_recorded_when_requested():
    runner = BackgroundTaskRunner(TelemetryChannel(record_successes=True))

    async def run():
        runner.submit(_ok(), name="ok")
        await runner.drain()

    asyncio.run(run())
    assert [(e.task_name, e.status) for e in runner.channel.events] == [("ok", "succeeded")]
    assert runner.channel.failures == []


def test_cancelled_tasks_are_reported():
    runner = BackgroundTaskRunner()

    async def run():
        task = runner.submit(_forever(), name="slow")
        await asyncio.sleep(0)
        task.cancel()
        await runner.drain()

    asyncio.run(run())
    assert [e.status for e in runner.channel.events] == ["cancelled"]


def test_drain_timeout_leaves_task_pending():
    runner = BackgroundTaskRunner()

    async def run():
        task = runner.submit(_forever(), name="slow")
        await runner.drain(timeout=0.01)
        pending = runner.pending_count
        task.cancel()
        await runner.drain()
        return pending

    assert asyncio.run(run()) == 1


def test_channel_is_bounded_and_survives_broken_subscribers():
    channel = TelemetryChannel(max_events=2)
    seen = []

    def broken(event):
        raise RuntimeError("subscriber down")

    channel.subscribe(broken)
    channel.subscribe(seen.append)
    for index in range(3):
        channel.publish(TelemetryEvent(task_name=f"t{index}", status="failed"))

    assert [e.task_name for e in channel.events] == ["t1", "t2"]
    assert [e.task_name for e in seen] == ["t0", "t1", "t2"]
