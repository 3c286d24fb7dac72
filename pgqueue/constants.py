"""
Application constants.
Centralized location for all constant values used across the application.
"""

import re
from enum import StrEnum


class ConsumerState(StrEnum):
    """
    Consumption loop states.

    State transitions:
    - DRAINING -> DRAINING (non-empty batch delivered)
    - DRAINING -> IDLE (empty batch or dequeue error)
    - IDLE -> DRAINING (pause elapsed)
    - DRAINING -> STOPPED (stop requested)
    """

    DRAINING = "draining"
    IDLE = "idle"
    STOPPED = "stopped"


# Default values
DEFAULT_NAME_PREFIX = "pgqueue"
DEFAULT_BATCH_SIZE = 10
DEFAULT_POLL_INTERVAL_SECONDS = 1.0
DEFAULT_CHANNEL_SIZE = 1

# Schema naming
# Postgres truncates identifiers at 63 bytes; leave room for the index suffix.
MAX_NAME_PREFIX_LENGTH = 53
NAME_PREFIX_PATTERN = re.compile(r"^[a-z_][a-z0-9_]*$")
SEQUENCE_SUFFIX = "_seq"
CLAIM_INDEX_SUFFIX = "_claim_idx"

# Trace span names
SPAN_PUBLISH = "queue.publish"
SPAN_CONSUME_BATCH = "queue.consume_batch"
SPAN_COMMIT = "queue.commit"
SPAN_EXTEND_CLAIMS = "queue.extend_claims"
