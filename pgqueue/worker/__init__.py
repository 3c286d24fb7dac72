"""
Worker module.
Contains the consumption loop and the worker process built on it.
"""

from pgqueue.worker.consumer import Consumer
from pgqueue.worker.main import Worker, run

__all__ = ["Consumer", "Worker", "run"]
