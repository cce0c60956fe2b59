"""Upstream client base — the opaque call the dispatcher paces.

Learn: The dispatcher only knows one thing about the upstream: it is an
async callable taking a payload and returning a CallOutcome. Clients
implement __call__ so an instance can be handed straight to
PacedDispatcher. Transport and parse errors are raised, not swallowed;
the dispatcher converts them into failed outcomes.
"""

from abc import ABC, abstractmethod
from typing import Any

from pacequeue.dispatcher.outcome import CallOutcome


class UpstreamResponseError(Exception):
    """The upstream answered, but not with the shape we expect."""


class UpstreamClient(ABC):
    """Abstract base for upstream API clients."""

    @property
    @abstractmethod
    def name(self) -> str:
        """Client identifier, e.g. 'smsgen'."""

    @abstractmethod
    async def __call__(self, payload: Any) -> CallOutcome:
        """Perform one upstream call for the given payload."""

    async def aclose(self) -> None:
        """Release connections. Override when the client holds any."""
