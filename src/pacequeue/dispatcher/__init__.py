"""Paced dispatcher — serializes calls to one rate-limited upstream.

Learn: Callers submit work and await a future. A single worker task
drains the FIFO queue, starting at most one upstream call at a time and
never two closer together than the configured minimum interval.
Upstream failures come back as failed outcomes, never as exceptions.
"""

from pacequeue.dispatcher.outcome import CallOutcome, classify_error, is_retryable
from pacequeue.dispatcher.paced_dispatcher import (
    DispatcherStats,
    PacedDispatcher,
    QueueStatus,
    Submission,
    UpstreamCall,
)

__all__ = [
    "CallOutcome",
    "DispatcherStats",
    "PacedDispatcher",
    "QueueStatus",
    "Submission",
    "UpstreamCall",
    "classify_error",
    "is_retryable",
]
