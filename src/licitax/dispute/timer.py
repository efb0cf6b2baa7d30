"""Elapsed-time tracking for the live dispute session."""

import logging
import threading
from datetime import datetime
from typing import Callable, Optional

from licitax.models.bid import DisputeLog, utcnow
from licitax.models.status import BidStatus

logger = logging.getLogger(__name__)

Clock = Callable[[], datetime]


def format_elapsed(seconds: int) -> str:
    """Format seconds as HH:MM:SS (hours are not capped at 24)."""
    seconds = max(0, int(seconds))
    hours, rest = divmod(seconds, 3600)
    minutes, secs = divmod(rest, 60)
    return f"{hours:02d}:{minutes:02d}:{secs:02d}"


def seconds_between(start: datetime, end: datetime) -> int:
    """Whole seconds from start to end, floored at zero."""
    return max(0, int((end - start).total_seconds()))


class ElapsedTimeTracker:
    """
    Elapsed time of a dispute, anchored on the persisted start timestamp.

    tick() is derived from clock() - anchor on every call rather than
    counted, so a tracker rebuilt after a restart shows the same value as
    one that has been running all along.
    """

    def __init__(self, clock: Optional[Clock] = None):
        self._clock = clock or utcnow
        self._anchor: Optional[datetime] = None
        self._frozen: int = 0
        self._running = False

    @property
    def running(self) -> bool:
        return self._running

    @property
    def anchor(self) -> Optional[datetime]:
        return self._anchor

    def start(self, started_at: Optional[datetime] = None) -> datetime:
        """Start (or restart) from started_at; defaults to now, i.e. 0 seconds."""
        self._anchor = started_at or self._clock()
        self._running = True
        return self._anchor

    def tick(self) -> int:
        """Current elapsed seconds; frozen value once stopped."""
        if self._running and self._anchor is not None:
            return seconds_between(self._anchor, self._clock())
        return self._frozen

    def stop(self) -> int:
        """Stop advancing and return the final elapsed seconds."""
        if self._running:
            self._frozen = self.tick()
            self._running = False
        return self._frozen

    def freeze(self, started_at: datetime, ended_at: datetime) -> int:
        """Set a fixed, non-advancing value (concluded disputes)."""
        self._anchor = started_at
        self._running = False
        self._frozen = seconds_between(started_at, ended_at)
        return self._frozen

    @classmethod
    def resume(
        cls,
        log: Optional[DisputeLog],
        status: BidStatus,
        clock: Optional[Clock] = None,
    ) -> "ElapsedTimeTracker":
        """Rebuild the tracker for a bid loaded from storage."""
        tracker = cls(clock=clock)
        if log is None or log.iniciada_em is None:
            return tracker
        if status == BidStatus.EM_DISPUTA:
            tracker.start(log.iniciada_em)
        elif status == BidStatus.DISPUTA_CONCLUIDA and log.finalizada_em is not None:
            tracker.freeze(log.iniciada_em, log.finalizada_em)
        return tracker

    def display(self) -> str:
        return format_elapsed(self.tick())


class IntervalTicker:
    """
    Calls a callback every interval seconds on a daemon thread.
    start() is a no-op while already running; stop() cancels once.
    """

    def __init__(self, callback: Callable[[], None], interval_seconds: float = 1.0):
        self._callback = callback
        self.interval_seconds = interval_seconds
        self._stop_event = threading.Event()
        self._thread: Optional[threading.Thread] = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> bool:
        """Start ticking. Returns False if a tick thread is already alive."""
        if self.running:
            return False
        self._stop_event = threading.Event()
        self._thread = threading.Thread(target=self._run_loop, name="dispute-ticker", daemon=True)
        self._thread.start()
        return True

    def stop(self) -> bool:
        """Cancel ticking. Returns True only for the call that stopped a live ticker."""
        thread = self._thread
        if thread is None:
            return False
        self._thread = None
        self._stop_event.set()
        if thread is not threading.current_thread():
            thread.join(timeout=self.interval_seconds * 2)
        return True

    def _run_loop(self) -> None:
        stop_event = self._stop_event
        while not stop_event.wait(self.interval_seconds):
            try:
                self._callback()
            except Exception as e:
                logger.warning("Dispute tick callback failed: %s", e)
