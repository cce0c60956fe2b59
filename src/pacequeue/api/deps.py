"""Shared FastAPI dependencies."""

from fastapi import Request

from pacequeue.dispatcher import PacedDispatcher


def get_dispatcher(request: Request) -> PacedDispatcher:
    """The process-wide dispatcher, attached to app.state by create_app()."""
    return request.app.state.dispatcher
