import asyncio
from datetime import datetime, timezone

import pytest

from commit_harvester.domain.entities import CollectionReport
from commit_harvester.domain.exceptions import CollectionInProgressError
from commit_harvester.interface.scheduler import CollectionScheduler


class StubUseCase:
    """Collect use case whose passes can be held open by the test."""

    def __init__(self) -> None:
        self.release = asyncio.Event()
        self.release.set()
        self.passes = 0
        self.active = 0
        self.peak = 0
        self.fail = False

    async def execute(self) -> CollectionReport:
        self.passes += 1
        self.active += 1
        self.peak = max(self.peak, self.active)
        try:
            await self.release.wait()
            if self.fail:
                raise RuntimeError("database exploded")
        finally:
            self.active -= 1
        return CollectionReport(started_at=datetime.now(timezone.utc))


async def test_run_once_records_latest_report():
    scheduler = CollectionScheduler(StubUseCase(), interval_seconds=60)

    report = await scheduler.run_once()

    assert scheduler.latest_report is report
    assert not scheduler.running


async def test_trigger_rejects_overlapping_pass():
    use_case = StubUseCase()
    use_case.release.clear()
    scheduler = CollectionScheduler(use_case, interval_seconds=60)

    task = scheduler.trigger()
    await asyncio.sleep(0)

    assert scheduler.running
    with pytest.raises(CollectionInProgressError):
        scheduler.trigger()

    use_case.release.set()
    await task
    assert not scheduler.running
    assert use_case.passes == 1


async def test_periodic_loop_runs_passes_until_stopped():
    use_case = StubUseCase()
    scheduler = CollectionScheduler(use_case, interval_seconds=0.01)

    scheduler.start()
    await asyncio.sleep(0.05)
    await scheduler.stop()

    assert use_case.passes >= 2
    assert scheduler.latest_report is not None


async def test_loop_survives_a_crashing_pass():
    use_case = StubUseCase()
    use_case.fail = True
    scheduler = CollectionScheduler(use_case, interval_seconds=0.01)

    scheduler.start()
    await asyncio.sleep(0.05)
    await scheduler.stop()

    assert use_case.passes >= 2
    assert scheduler.latest_report is None


async def test_timer_and_manual_passes_never_overlap():
    use_case = StubUseCase()
    scheduler = CollectionScheduler(use_case, interval_seconds=0.005)

    scheduler.start()
    for _ in range(5):
        try:
            await scheduler.trigger()
        except CollectionInProgressError:
            pass
        await asyncio.sleep(0.005)
    await scheduler.stop()

    assert use_case.peak == 1


async def test_stop_cancels_pending_manual_pass():
    use_case = StubUseCase()
    use_case.release.clear()
    scheduler = CollectionScheduler(use_case, interval_seconds=60)

    task = scheduler.trigger()
    await asyncio.sleep(0)
    await scheduler.stop()

    assert task.cancelled()
    assert not scheduler.running


async def test_failed_manual_pass_is_logged(caplog):
    use_case = StubUseCase()
    use_case.fail = True
    scheduler = CollectionScheduler(use_case, interval_seconds=60)

    task = scheduler.trigger()
    await asyncio.wait([task])
    await asyncio.sleep(0)

    assert not scheduler.running
    assert "Manual collection pass crashed" in caplog.text
    assert any(record.exc_info for record in caplog.records)
