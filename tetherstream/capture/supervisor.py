from __future__ import annotations

import logging
import os
import sys
import threading
import time
from typing import Callable, Optional

from tetherstream.commander.protocol import Channels
from tetherstream.core import commands as C
from tetherstream.core.state import ExitCode, StreamConfig

log = logging.getLogger(__name__)

WATCHDOG_INTERVAL_S = 0.5


def _hard_exit(code: int) -> None:
    # called from a non-main thread; sys.exit would only end this thread
    sys.stdout.flush()
    sys.stderr.flush()
    os._exit(code)


class Supervisor(threading.Thread):
    """Watchdog: keeps one capture thread alive and enforces the idle timeout.

    ``worker_factory`` builds a fresh, unstarted capture thread. ``count_readers``
    returns how many processes hold the output sink open (the encoder counts as
    one). ``exit_fn`` ends the whole process; it is injectable for tests, where
    it should record the code. The loop stops after calling it either way.
    """

    def __init__(
        self,
        config: StreamConfig,
        channels: Channels,
        worker_factory: Callable[[], threading.Thread],
        *,
        count_readers: Callable[[str], int],
        stop_event: threading.Event,
        exit_fn: Callable[[int], None] = _hard_exit,
        clock: Callable[[], float] = time.monotonic,
        interval_s: float = WATCHDOG_INTERVAL_S,
        shutdown_timeout_s: float = 5.0,
    ):
        super().__init__(daemon=True, name="supervisor")
        self.config = config
        self.channels = channels
        self.worker_factory = worker_factory
        self.count_readers = count_readers
        self.stop_event = stop_event
        self.exit_fn = exit_fn
        self.clock = clock
        self.interval_s = interval_s
        self.shutdown_timeout_s = shutdown_timeout_s

        self.worker: Optional[threading.Thread] = None
        self.idle_since: Optional[float] = None
        self.restarts = 0
        self.exit_code: Optional[int] = None

    def _stop_worker(self) -> None:
        # let the capture thread release the camera and the encoder first
        w = self.worker
        if w is None or not w.is_alive():
            return
        self.channels.send(C.SHUTDOWN)
        w.join(timeout=self.shutdown_timeout_s)
        if w.is_alive():
            log.warning("capture thread did not stop within %.1fs", self.shutdown_timeout_s)

    def _terminate(self, code: ExitCode) -> None:
        self.exit_code = int(code)
        self.stop_event.set()
        self._stop_worker()
        self.exit_fn(int(code))

    def _check_worker(self) -> bool:
        if self.worker is not None and self.worker.is_alive():
            return True

        result = self.channels.receive(fail_ok=True)
        if result is not None and result.fatal:
            print(result.message or "Camera lost, aborting.")
            self._terminate(ExitCode.DEVICE_LOST)
            return False

        if self.worker is not None:
            self.restarts += 1
            log.info("capture thread gone (%s), starting a new one", result.tag if result else "crashed")
        self.worker = self.worker_factory()
        self.worker.start()
        return True

    def _check_idle(self) -> bool:
        timeout = self.config.idle_timeout_s
        if timeout <= 0:
            return True

        now = self.clock()
        if self.count_readers(self.config.device) > 1:
            self.idle_since = None
            return True

        if self.idle_since is None:
            self.idle_since = now
            log.debug("output sink idle, exiting after %.0fs without readers", timeout)
        if now - self.idle_since > timeout:
            print(f"No readers on {self.config.device} for {timeout / 60:.1f} min, exiting.")
            self._terminate(ExitCode.IDLE_TIMEOUT)
            return False
        return True

    def step(self) -> bool:
        """One watchdog cycle. False once the process has been told to exit."""
        return self._check_worker() and self._check_idle()

    def run(self) -> None:
        while not self.stop_event.is_set():
            if not self.step():
                break
            self.stop_event.wait(self.interval_s)
