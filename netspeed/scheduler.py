import logging
import threading
from typing import Callable

from netspeed.util import conversion
from netspeed.util.errors import NetSpeedError
from netspeed.util.network import CounterSource, StatsParser
from netspeed.util.rate import RateCalculator

logger = logging.getLogger(__name__)

TickCallback = Callable[[str, str], None]
ErrorCallback = Callable[[NetSpeedError], None]


def log_error(error: NetSpeedError):
    logger.error(f"tick failed, keeping the previous sample - {error}")


class Scheduler:
    """
    Run the read -> parse -> compute -> format pipeline every `interval`
    seconds on a worker thread and hand the formatted download/upload
    speeds to a callback.

    Computing the rates and invoking the callback happen under one lock and
    only while the run that issued the read is still current, so a read that
    completes after stop() never touches the baseline or calls back.
    """

    def __init__(
        self,
        source: CounterSource | None = None,
        parser: StatsParser | None = None,
        calculator: RateCalculator | None = None,
        on_error: ErrorCallback | None = None,
    ):
        self.source = source if source is not None else CounterSource()
        self.parser = parser if parser is not None else StatsParser()
        self.calculator = calculator if calculator is not None else RateCalculator()
        self.on_error = on_error if on_error is not None else log_error

        self._condition = threading.Condition(threading.RLock())
        self._generation = 0
        self._interval = 0
        self._needs_fetch = False
        self._on_tick: TickCallback | None = None
        self._running = False
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        with self._condition:
            return self._running

    def start(self, interval: int, on_tick: TickCallback):
        if isinstance(interval, bool) or not isinstance(interval, int) or interval < 1:
            raise ValueError(f"interval must be a positive integer, got {interval!r}")

        self.stop()

        with self._condition:
            self._generation += 1
            generation = self._generation
            self._interval = interval
            self._needs_fetch = False
            self._on_tick = on_tick
            self._running = True
            self.calculator.reset()

        logger.info(f"starting with interval={interval}s source={self.source.path}")

        # Populate the display right away instead of after the first interval
        try:
            self._tick(generation)
        except Exception:
            self.stop()
            raise

        with self._condition:
            if generation != self._generation:
                return
            self._thread = threading.Thread(
                target=self._worker,
                args=(generation,),
                name="netspeed-scheduler",
                daemon=True,
            )
            self._thread.start()

    def stop(self):
        with self._condition:
            thread = self._thread
            self._thread = None
            if self._running:
                logger.info("stopping")
            self._running = False
            self._generation += 1
            self._condition.notify_all()

        if thread is not None and thread is not threading.current_thread():
            thread.join()

    def refresh(self):
        """
        Wake the worker for an immediate, off-schedule tick.
        """
        with self._condition:
            if not self._running:
                return
            logger.debug("refresh requested")
            self._needs_fetch = True
            self._condition.notify_all()

    def _worker(self, generation: int):
        while True:
            with self._condition:
                _ = self._condition.wait_for(
                    lambda: self._needs_fetch or generation != self._generation,
                    timeout=self._interval,
                )
                if generation != self._generation:
                    logger.debug("worker exiting")
                    return
                self._needs_fetch = False

            try:
                self._tick(generation)
            except Exception:
                logger.exception("unexpected error in tick")

    def _tick(self, generation: int):
        try:
            snapshot = self.source.read()
            sample = self.parser.parse(snapshot)
        except NetSpeedError as e:
            with self._condition:
                if generation == self._generation:
                    self.on_error(e)
            return

        with self._condition:
            if generation != self._generation:
                logger.debug("discarding sample read after stop")
                return

            rates = self.calculator.update(current=sample, interval=self._interval)

            download = conversion.format_speed(rates.rx)
            upload = conversion.format_speed(rates.tx)
            logger.debug(
                f"rx={sample.rx_bytes} tx={sample.tx_bytes} down={download} up={upload}"
            )

            if self._on_tick is not None:
                self._on_tick(download, upload)
