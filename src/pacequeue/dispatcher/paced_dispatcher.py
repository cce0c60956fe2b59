"""Paced dispatcher — one worker, strict FIFO, minimum spacing between calls.

Learn: The dispatcher sits in front of a single slow/rate-limited upstream.
Callers submit() concurrently and get a future back immediately; a single
dedicated worker task owns the queue and drains it:

  wait for work → busy → pacing wait → pop head → call upstream
    → settle future → cooldown (full interval) → idle → repeat

Key design decisions:
- One worker task, no locks. Every state change (append, pop, timestamp,
  busy flag) happens between await points, so the event loop makes it
  atomic with respect to other submitters.
- The only suspension points are the upstream call and the two sleeps.
- Upstream failures are outcomes, never worker faults. A failed call
  still settles its future and the worker moves on after the cooldown.
- The cooldown starts after settlement, so upstream latency adds to the
  effective spacing between dispatch starts.
"""

import asyncio
import time
import uuid
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

import structlog

from pacequeue.dispatcher.outcome import CallOutcome, classify_error

logger = structlog.get_logger()

UpstreamCall = Callable[[Any], Awaitable[CallOutcome]]


def _now_ms() -> int:
    return int(time.time() * 1000)


@dataclass
class Submission:
    """One unit of pending work, owned by the queue until dispatched."""

    payload: Any
    future: asyncio.Future
    submitted_at: int = field(default_factory=_now_ms)
    id: str = field(default_factory=lambda: f"sub-{uuid.uuid4().hex[:8]}")


@dataclass(frozen=True)
class QueueStatus:
    """Point-in-time view of the dispatcher."""

    queue_length: int
    processing: bool
    last_call_time: int  # epoch ms of the last dispatch start, 0 if none
    waiting_time: int  # ms, queue_length * min interval

    def to_dict(self) -> dict:
        return {
            "queueLength": self.queue_length,
            "processing": self.processing,
            "lastCallTime": self.last_call_time,
            "waitingTime": self.waiting_time,
        }


@dataclass
class DispatcherStats:
    """Runtime statistics for monitoring."""
    submitted: int = 0
    dispatched: int = 0
    succeeded: int = 0
    failed: int = 0
    cleared: int = 0
    started_at: Optional[datetime] = None


class PacedDispatcher:
    """Single-worker FIFO queue with a minimum interval between dispatches.

    Usage:
        dispatcher = PacedDispatcher(upstream, min_interval_ms=5000)
        dispatcher.start()
        outcome = await dispatcher.submit({"api_key": ...})
    """

    def __init__(
        self,
        upstream: UpstreamCall,
        min_interval_ms: int,
        *,
        call_timeout: Optional[float] = None,
        cancel_on_clear: bool = False,
    ):
        if min_interval_ms < 0:
            raise ValueError("min_interval_ms must be >= 0")
        self.upstream = upstream
        self.min_interval_ms = min_interval_ms
        self.call_timeout = call_timeout
        self.cancel_on_clear = cancel_on_clear
        self.stats = DispatcherStats()

        self._queue: deque[Submission] = deque()
        self._busy = False
        self._last_dispatch: Optional[float] = None  # monotonic seconds
        self._last_call_time = 0  # epoch ms, reported in status
        self._wakeup: Optional[asyncio.Event] = None
        self._worker: Optional[asyncio.Task] = None

    @property
    def min_interval(self) -> float:
        """Minimum interval in seconds."""
        return self.min_interval_ms / 1000

    @property
    def running(self) -> bool:
        return self._worker is not None and not self._worker.done()

    # ─── Lifecycle ─────────────────────────────────────────

    def start(self) -> None:
        """Start the worker task (no-op if already running)."""
        if self.running:
            return
        self._wakeup = asyncio.Event()
        if self._queue:
            self._wakeup.set()
        self._worker = asyncio.get_running_loop().create_task(
            self._run_loop(), name="paced-dispatcher"
        )
        self.stats.started_at = datetime.now(timezone.utc)
        logger.info(
            "dispatcher.started",
            min_interval_ms=self.min_interval_ms,
            call_timeout=self.call_timeout,
        )

    async def stop(self) -> None:
        """Cancel the worker. Queued and in-flight items are abandoned."""
        worker, self._worker = self._worker, None
        if worker is None:
            return
        worker.cancel()
        try:
            await worker
        except asyncio.CancelledError:
            pass
        self._busy = False
        logger.info("dispatcher.stopped", queue_length=len(self._queue), **self.get_stats())

    # ─── Public operations ────────────────────────────────

    def submit(self, payload: Any) -> asyncio.Future:
        """Append work to the tail of the queue and return its future.

        Never blocks. The future settles exactly once with a CallOutcome.
        """
        future = asyncio.get_running_loop().create_future()
        submission = Submission(payload=payload, future=future)
        self._queue.append(submission)
        self.stats.submitted += 1
        logger.debug(
            "dispatcher.submitted",
            submission_id=submission.id,
            queue_length=len(self._queue),
        )
        self._trigger()
        return future

    async def call(self, payload: Any) -> CallOutcome:
        """Submit and wait for the outcome."""
        return await self.submit(payload)

    def status(self) -> QueueStatus:
        queue_length = len(self._queue)
        return QueueStatus(
            queue_length=queue_length,
            processing=self._busy,
            last_call_time=self._last_call_time,
            waiting_time=queue_length * self.min_interval_ms,
        )

    def clear(self, cancel_pending: Optional[bool] = None) -> int:
        """Drop every queued (not yet dispatched) submission.

        The in-flight dispatch is untouched. Dropped futures are left
        unsettled unless cancel_pending (or cancel_on_clear) is set, in
        which case they settle with a "cancelled" failure.
        """
        if cancel_pending is None:
            cancel_pending = self.cancel_on_clear

        discarded = list(self._queue)
        self._queue.clear()
        self.stats.cleared += len(discarded)

        if cancel_pending:
            cancelled = CallOutcome.failure(error="cancelled", retryable=False)
            for submission in discarded:
                self._settle(submission, cancelled)

        logger.info("dispatcher.cleared", count=len(discarded), cancelled=cancel_pending)
        return len(discarded)

    def get_stats(self) -> dict:
        return {
            "submitted": self.stats.submitted,
            "dispatched": self.stats.dispatched,
            "succeeded": self.stats.succeeded,
            "failed": self.stats.failed,
            "cleared": self.stats.cleared,
            "started_at": self.stats.started_at.isoformat() if self.stats.started_at else None,
        }

    # ─── Worker ────────────────────────────────────────────

    def _trigger(self) -> None:
        """Wake the worker. Repeated triggers while busy are no-ops."""
        if not self.running:
            self.start()
        elif self._wakeup is not None:
            self._wakeup.set()

    async def _run_loop(self) -> None:
        # Started lazily from a request; drop that request's log context.
        structlog.contextvars.clear_contextvars()
        while True:
            try:
                await self._cycle()
            except Exception:
                logger.exception("dispatcher.worker_error")
                self._busy = False
                await asyncio.sleep(self.min_interval)

    async def _cycle(self) -> None:
        """One pump cycle: wait for work, pace, dispatch, cool down."""
        while not self._queue:
            self._wakeup.clear()
            await self._wakeup.wait()

        self._busy = True
        try:
            delay = self._pacing_delay()
            if delay > 0:
                await asyncio.sleep(delay)

            # Cleared while we were waiting
            if not self._queue:
                return

            submission = self._queue.popleft()
            await self._dispatch(submission)
            await asyncio.sleep(self.min_interval)
        finally:
            self._busy = False

    def _pacing_delay(self) -> float:
        if self._last_dispatch is None:
            return 0.0
        elapsed = time.monotonic() - self._last_dispatch
        return max(0.0, self.min_interval - elapsed)

    async def _dispatch(self, submission: Submission) -> None:
        self._last_dispatch = time.monotonic()
        # Wall clock can step back; the reported timestamp must not.
        self._last_call_time = max(self._last_call_time, _now_ms())
        self.stats.dispatched += 1

        log = logger.bind(submission_id=submission.id)
        log.info(
            "dispatcher.dispatched",
            waited_ms=self._last_call_time - submission.submitted_at,
            queue_length=len(self._queue),
        )

        try:
            call = self.upstream(submission.payload)
            if self.call_timeout is not None:
                outcome = await asyncio.wait_for(call, timeout=self.call_timeout)
            else:
                outcome = await call
        except (Exception, asyncio.CancelledError) as e:
            # stop() cancelling the worker is not an upstream failure.
            if isinstance(e, asyncio.CancelledError) and asyncio.current_task().cancelling():
                raise
            outcome = classify_error(e)
            log.warning(
                "dispatcher.upstream_error",
                error=outcome.error,
                error_type=type(e).__name__,
                retryable=outcome.retryable,
            )

        if not isinstance(outcome, CallOutcome):
            log.error("dispatcher.malformed_outcome", outcome_type=type(outcome).__name__)
            outcome = CallOutcome.failure(error="Malformed upstream result", retryable=False)

        if outcome.status:
            self.stats.succeeded += 1
        else:
            self.stats.failed += 1
        log.info("dispatcher.settled", success=outcome.status)

        self._settle(submission, outcome)

    @staticmethod
    def _settle(submission: Submission, outcome: CallOutcome) -> None:
        # The caller may have gone away (cancelled its await).
        if not submission.future.done():
            submission.future.set_result(outcome)
