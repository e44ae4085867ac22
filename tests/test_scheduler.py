import queue
import threading
import time

import pytest

from netspeed.scheduler import Scheduler
from netspeed.util.errors import NetSpeedError, ParseError, SourceReadError
from netspeed.util.network import CounterSource, StatsParser

# Long enough that the worker only ticks on refresh()
IDLE_INTERVAL = 3600
TIMEOUT = 5


def _snapshot(rx: int, tx: int) -> str:
    return (
        "Inter-|   Receive |  Transmit\n"
        " face |bytes packets|bytes packets\n"
        "    lo: 5 0 0 0 0 0 0 0 5 0 0 0 0 0 0 0\n"
        f"  eth0: {rx} 0 0 0 0 0 0 0 {tx} 0 0 0 0 0 0 0\n"
    )


class FakeSource(CounterSource):
    """
    Hands out the given snapshots in order, then repeats the last one.
    """

    def __init__(self, snapshots: list[str | Exception]):
        super().__init__(path="/fake/net/dev")
        self.snapshots = list(snapshots)
        self.reads = 0

    def read(self) -> str:
        self.reads += 1
        item = self.snapshots.pop(0) if len(self.snapshots) > 1 else self.snapshots[0]
        if isinstance(item, Exception):
            raise item
        return item


class BlockingSource(FakeSource):
    """
    The second read blocks until `release` is set.
    """

    def __init__(self, snapshots: list[str | Exception]):
        super().__init__(snapshots)
        self.entered = threading.Event()
        self.release = threading.Event()

    def read(self) -> str:
        if self.reads == 1:
            self.entered.set()
            assert self.release.wait(TIMEOUT)
        return super().read()


def _worker_threads() -> list[threading.Thread]:
    return [t for t in threading.enumerate() if t.name == "netspeed-scheduler"]


@pytest.fixture
def ticks() -> queue.Queue[tuple[str, str]]:
    return queue.Queue()


@pytest.fixture
def errors() -> queue.Queue[NetSpeedError]:
    return queue.Queue()


def _scheduler(source: CounterSource, errors: queue.Queue) -> Scheduler:
    return Scheduler(source=source, parser=StatsParser(), on_error=errors.put)


def test_start_ticks_immediately_with_zero_rate(ticks, errors) -> None:
    scheduler = _scheduler(FakeSource([_snapshot(10**12, 10**11)]), errors)
    scheduler.start(interval=IDLE_INTERVAL, on_tick=lambda d, u: ticks.put((d, u)))
    try:
        assert ticks.get_nowait() == ("0.0 B/s", "0.0 B/s")
        assert scheduler.running
    finally:
        scheduler.stop()


def test_rate_divides_by_the_configured_interval(ticks, errors) -> None:
    source = FakeSource([_snapshot(100, 200), _snapshot(1000, 2000)])
    scheduler = _scheduler(source, errors)
    scheduler.start(interval=3, on_tick=lambda d, u: ticks.put((d, u)))
    try:
        assert ticks.get(timeout=TIMEOUT) == ("0.0 B/s", "0.0 B/s")
        # Wall time between the two samples is not 3 seconds
        time.sleep(0.05)
        scheduler.refresh()
        assert ticks.get(timeout=TIMEOUT) == ("300.0 B/s", "600.0 B/s")
    finally:
        scheduler.stop()


def test_worker_ticks_on_interval(ticks, errors) -> None:
    source = FakeSource([_snapshot(0, 0), _snapshot(1024, 2048)])
    scheduler = _scheduler(source, errors)
    scheduler.start(interval=1, on_tick=lambda d, u: ticks.put((d, u)))
    try:
        assert ticks.get(timeout=TIMEOUT) == ("0.0 B/s", "0.0 B/s")
        # The worker re-arms after each tick, so real ticks run slightly late
        assert ticks.get(timeout=TIMEOUT) == ("1.0 KB/s", "2.0 KB/s")
    finally:
        scheduler.stop()


def test_failed_tick_keeps_the_baseline(ticks, errors) -> None:
    source = FakeSource(
        [
            _snapshot(100, 200),
            SourceReadError(path="/fake/net/dev", reason="boom"),
            _snapshot(1000, 2000),
        ]
    )
    scheduler = _scheduler(source, errors)
    scheduler.start(interval=3, on_tick=lambda d, u: ticks.put((d, u)))
    try:
        assert ticks.get(timeout=TIMEOUT) == ("0.0 B/s", "0.0 B/s")

        scheduler.refresh()
        assert isinstance(errors.get(timeout=TIMEOUT), SourceReadError)
        assert ticks.empty()

        scheduler.refresh()
        assert ticks.get(timeout=TIMEOUT) == ("300.0 B/s", "600.0 B/s")
        assert scheduler.running
    finally:
        scheduler.stop()


def test_parse_error_keeps_running(ticks, errors) -> None:
    source = FakeSource(
        [_snapshot(0, 0), "h1\nh2\neth0: 1 2 3\n", _snapshot(3072, 0)]
    )
    scheduler = _scheduler(source, errors)
    scheduler.start(interval=3, on_tick=lambda d, u: ticks.put((d, u)))
    try:
        assert ticks.get(timeout=TIMEOUT) == ("0.0 B/s", "0.0 B/s")

        scheduler.refresh()
        assert isinstance(errors.get(timeout=TIMEOUT), ParseError)

        scheduler.refresh()
        assert ticks.get(timeout=TIMEOUT) == ("1.0 KB/s", "0.0 B/s")
    finally:
        scheduler.stop()


def test_failed_first_tick_is_reported(ticks, errors) -> None:
    source = FakeSource([SourceReadError(path="/fake/net/dev", reason="missing")])
    scheduler = _scheduler(source, errors)
    scheduler.start(interval=IDLE_INTERVAL, on_tick=lambda d, u: ticks.put((d, u)))
    try:
        assert isinstance(errors.get_nowait(), SourceReadError)
        assert ticks.empty()
        assert scheduler.running
    finally:
        scheduler.stop()


def test_stop_is_idempotent(ticks, errors) -> None:
    scheduler = _scheduler(FakeSource([_snapshot(1, 1)]), errors)
    scheduler.stop()

    scheduler.start(interval=IDLE_INTERVAL, on_tick=lambda d, u: ticks.put((d, u)))
    scheduler.stop()
    scheduler.stop()

    assert not scheduler.running
    assert _worker_threads() == []


def test_start_twice_keeps_one_worker(ticks, errors) -> None:
    source = FakeSource([_snapshot(1, 1), _snapshot(2, 2)])
    scheduler = _scheduler(source, errors)
    scheduler.start(interval=IDLE_INTERVAL, on_tick=lambda d, u: ticks.put((d, u)))
    scheduler.start(interval=IDLE_INTERVAL, on_tick=lambda d, u: ticks.put((d, u)))
    try:
        assert len(_worker_threads()) == 1
        # Each start begins from a fresh baseline
        assert ticks.get_nowait() == ("0.0 B/s", "0.0 B/s")
        assert ticks.get_nowait() == ("0.0 B/s", "0.0 B/s")
    finally:
        scheduler.stop()
    assert _worker_threads() == []


def test_stop_discards_read_in_flight(ticks, errors) -> None:
    source = BlockingSource([_snapshot(0, 0), _snapshot(9000, 9000)])
    scheduler = _scheduler(source, errors)
    scheduler.start(interval=IDLE_INTERVAL, on_tick=lambda d, u: ticks.put((d, u)))
    assert ticks.get_nowait() == ("0.0 B/s", "0.0 B/s")

    scheduler.refresh()
    assert source.entered.wait(TIMEOUT)

    # The read finishes only after stop() has started
    releaser = threading.Timer(0.2, source.release.set)
    releaser.start()
    scheduler.stop()
    releaser.join()

    assert source.reads == 2
    assert ticks.empty()
    assert errors.empty()
    assert scheduler.calculator.previous is not None
    assert scheduler.calculator.previous.rx_bytes == 0


def test_stop_from_callback(errors) -> None:
    scheduler = _scheduler(FakeSource([_snapshot(1, 1)]), errors)
    calls: list[tuple[str, str]] = []

    def on_tick(download: str, upload: str):
        calls.append((download, upload))
        scheduler.stop()

    scheduler.start(interval=IDLE_INTERVAL, on_tick=on_tick)

    assert calls == [("0.0 B/s", "0.0 B/s")]
    assert not scheduler.running
    assert _worker_threads() == []


def test_refresh_when_idle_is_a_noop(errors) -> None:
    source = FakeSource([])
    scheduler = _scheduler(source, errors)
    scheduler.refresh()
    assert source.reads == 0
    assert not scheduler.running


@pytest.mark.parametrize("interval", [0, -1, 1.5, True, "3"])
def test_start_rejects_bad_interval(interval, errors) -> None:
    scheduler = _scheduler(FakeSource([]), errors)
    with pytest.raises(ValueError):
        scheduler.start(interval=interval, on_tick=lambda d, u: None)
    assert not scheduler.running


def test_failing_callback_on_start_leaves_scheduler_idle(errors) -> None:
    scheduler = _scheduler(FakeSource([_snapshot(1, 1)]), errors)

    def on_tick(download: str, upload: str):
        raise RuntimeError("display gone")

    with pytest.raises(RuntimeError):
        scheduler.start(interval=IDLE_INTERVAL, on_tick=on_tick)

    assert not scheduler.running
    assert _worker_threads() == []
