"""Upstream client registry.

Learn: The dispatcher takes any async callable; the registry maps a
configured name to a client class so the app factory can build one:
    client = build_upstream(settings)
    dispatcher = PacedDispatcher(client, settings.min_interval_ms)
"""

from pacequeue.upstream.base import UpstreamClient, UpstreamResponseError
from pacequeue.upstream.smsgen import SmsGenClient

__all__ = [
    "SmsGenClient",
    "UpstreamClient",
    "UpstreamResponseError",
    "build_upstream",
    "list_upstreams",
]

# ─── Registry ──────────────────────────────────────────────

_UPSTREAMS: dict[str, type[UpstreamClient]] = {
    "smsgen": SmsGenClient,
}


def build_upstream(settings, name: str = "smsgen") -> UpstreamClient:
    """Build an upstream client from settings.

    Raises ValueError if the name is not registered.
    """
    cls = _UPSTREAMS.get(name)
    if not cls:
        available = ", ".join(sorted(_UPSTREAMS.keys()))
        raise ValueError(f"Unknown upstream '{name}'. Available: {available}")
    return cls(
        base_url=settings.upstream_base_url,
        timeout=settings.upstream_timeout_seconds,
    )


def list_upstreams() -> list[str]:
    """List registered upstream names."""
    return sorted(_UPSTREAMS.keys())
