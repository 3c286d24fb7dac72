"""
Observability module.
Contains logging and tracing setup.
"""

from pgqueue.observability.logging import (
    bind_context,
    clear_context,
    get_logger,
    setup_logging,
)
from pgqueue.observability.tracing import get_tracer, setup_tracing

__all__ = [
    "setup_logging",
    "get_logger",
    "bind_context",
    "clear_context",
    "setup_tracing",
    "get_tracer",
]
