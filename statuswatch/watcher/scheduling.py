"""
Scheduling harness: two independent repeating cycles.

The poll cycle drives reconciliation; the cleanup cycle drives the aging
rules. Each cycle has its own re-entrancy guard: a firing that arrives while
the previous cycle of the same type is still running is skipped, never
queued. Poll and cleanup cycles are not mutually exclusive and may overlap.

Any error inside a cycle is logged and the guard released; the next
scheduled firing is the retry.
"""

import logging
import threading
from datetime import datetime
from typing import Any, Callable, Dict, Optional

from .engine import WatcherEngine
from .errors import ConfigurationMissingError, WatcherError
from .models import utc_now

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 5.0
DEFAULT_CLEANUP_INTERVAL = 60.0


class CycleGuard:
    """
    Atomic test-and-set guard for one cycle type.

    Backed by a non-blocking lock, so concurrent firings cannot both enter.
    """

    def __init__(self, name: str):
        self.name = name
        self._lock = threading.Lock()

    def try_acquire(self) -> bool:
        """Enter the guard; False if a cycle is already running."""
        return self._lock.acquire(blocking=False)

    def release(self) -> None:
        self._lock.release()

    @property
    def busy(self) -> bool:
        return self._lock.locked()


class RepeatingCycle:
    """
    Fixed-interval, non-reentrant cycle runner.

    A daemon ticker thread fires every `interval` seconds. Each firing runs
    the cycle on its own worker thread when the guard is free, so a slow
    cycle never delays the ticker; firings during a running cycle are
    skipped.
    """

    def __init__(self, name: str, cycle: Callable[[], Any], interval: float):
        """
        Initialize a repeating cycle.

        Args:
            name: Cycle name used in logs and thread names
            cycle: Callable performing one cycle and returning its result
            interval: Seconds between firings
        """
        if interval <= 0:
            raise ValueError(f"{name} interval must be positive: {interval}")

        self.name = name
        self.interval = interval
        self.guard = CycleGuard(name)
        self._cycle = cycle
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self._worker: Optional[threading.Thread] = None
        self._state_lock = threading.Lock()

        self.runs = 0
        self.skips = 0
        self.failures = 0
        self.last_result: Any = None
        self.last_error: Optional[str] = None
        self.last_finished_at: Optional[datetime] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Start the ticker thread. The first firing happens after one interval."""
        if self.running:
            return
        self._stop_event.clear()
        self._thread = threading.Thread(
            target=self._tick_loop,
            daemon=True,
            name=f"{self.name}-ticker",
        )
        self._thread.start()

    def stop(self, timeout: float = 2.0) -> None:
        """
        Stop firing and wait for a cycle already in progress.

        The ticker and the current cycle worker are each joined with timeout.
        """
        self._stop_event.set()
        if self._thread:
            self._thread.join(timeout=timeout)
            self._thread = None
        worker = self._worker
        if worker is not None:
            worker.join(timeout=timeout)
            if worker.is_alive():
                logger.warning(f"{self.name} cycle still running after {timeout:g}s stop timeout")
            else:
                self._worker = None

    def fire(self) -> Any:
        """
        Run one guarded cycle on the calling thread.

        Returns:
            The cycle's result, or None if skipped or failed
        """
        if not self.guard.try_acquire():
            self._record_skip()
            return None
        try:
            return self._execute()
        finally:
            self.guard.release()

    def _tick_loop(self) -> None:
        while not self._stop_event.wait(self.interval):
            self._trigger()

    def _trigger(self) -> None:
        if not self.guard.try_acquire():
            self._record_skip()
            return
        worker = threading.Thread(
            target=self._run_and_release,
            daemon=True,
            name=f"{self.name}-cycle",
        )
        try:
            worker.start()
        except RuntimeError:
            self.guard.release()
            raise
        self._worker = worker

    def _run_and_release(self) -> None:
        try:
            self._execute()
        finally:
            self.guard.release()

    def _record_skip(self) -> None:
        with self._state_lock:
            self.skips += 1
        logger.info(f"{self.name} cycle still running, skipping this firing")

    def _execute(self) -> Any:
        logger.debug(f"{self.name} cycle starting")
        try:
            result = self._cycle()
        except ConfigurationMissingError as e:
            logger.error(f"{e}. Skipping {self.name} cycle.")
            self._record_outcome(None, str(e))
            return None
        except Exception as e:
            logger.error(f"{self.name} cycle failed: {e}", exc_info=True)
            self._record_outcome(None, str(e))
            return None

        self._record_outcome(result, None)
        logger.debug(f"{self.name} cycle finished")
        return result

    def _record_outcome(self, result: Any, error: Optional[str]) -> None:
        with self._state_lock:
            self.runs += 1
            if error is not None:
                self.failures += 1
            else:
                self.last_result = result
            self.last_error = error
            self.last_finished_at = utc_now()

    def stats(self) -> Dict[str, Any]:
        with self._state_lock:
            return {
                "name": self.name,
                "interval_seconds": self.interval,
                "running": self.running,
                "in_progress": self.guard.busy,
                "runs": self.runs,
                "skips": self.skips,
                "failures": self.failures,
                "last_error": self.last_error,
                "last_finished_at": self.last_finished_at,
            }


class WatcherService:
    """
    Owns the poll and cleanup loops for one WatcherEngine.

    start() arms both loops only when the startup precondition holds: both
    monitored directories are configured and accessible. Otherwise neither
    loop starts and the operator must fix the configuration and restart.
    """

    def __init__(
        self,
        engine: WatcherEngine,
        poll_interval: float = DEFAULT_POLL_INTERVAL,
        cleanup_interval: float = DEFAULT_CLEANUP_INTERVAL,
    ):
        self.engine = engine
        self.poll = RepeatingCycle("poll", engine.run_poll_cycle, poll_interval)
        self.cleanup = RepeatingCycle("cleanup", engine.run_cleanup_cycle, cleanup_interval)
        self.startup_error: Optional[str] = None

    @property
    def running(self) -> bool:
        return self.poll.running or self.cleanup.running

    def start(self) -> bool:
        """
        Verify the monitored directories and arm both loops.

        Returns:
            True if the loops were started, False on startup failure
        """
        logger.info("Initializing file watcher service...")
        try:
            snapshot = self.engine.check_startup()
        except WatcherError as e:
            self.startup_error = str(e)
            logger.error(f"Startup failed: {e}")
            logger.error("Service will not start. Verify the monitored paths and restart.")
            return False
        except Exception as e:
            self.startup_error = str(e)
            logger.error(f"Startup failed while reading configuration: {e}", exc_info=True)
            logger.error("Service will not start. Verify the configuration and restart.")
            return False

        self.startup_error = None
        logger.info(f"Import directory: {snapshot.import_location.path}")
        logger.info(f"Failed directory: {snapshot.failed_location.path}")

        self.poll.start()
        self.cleanup.start()
        logger.info(
            f"Service started. Polling every {self.poll.interval:g}s, "
            f"cleanup every {self.cleanup.interval:g}s."
        )
        return True

    def stop(self) -> None:
        """Stop both loops."""
        self.poll.stop()
        self.cleanup.stop()
        logger.info("File watcher service stopped")
