"""Pacequeue — paced request queue in front of a rate-limited upstream API.

Accepts concurrent calls, serializes them FIFO, and releases them to the
upstream one at a time with a minimum spacing between dispatches.
"""

__version__ = "0.1.0"
