"""
Database module.
Contains database connection, queue table schema, and repository implementations.
"""

from pgqueue.db.connection import (
    close_db,
    create_session_factory,
    get_engine,
    get_test_engine,
)
from pgqueue.db.repository import QueueRepository, build_claim_statement
from pgqueue.db.schema import SchemaManager, build_table

__all__ = [
    "get_engine",
    "get_test_engine",
    "create_session_factory",
    "close_db",
    "QueueRepository",
    "build_claim_statement",
    "SchemaManager",
    "build_table",
]
