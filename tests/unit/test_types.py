"""
Unit tests for queue value types and configuration.
"""

from datetime import timedelta

import pytest
from pydantic import ValidationError

from pgqueue.config import Settings
from pgqueue.types import ConsumerMessage, Message, MessageReceipt, QueueConfig, QueueDepth


class TestQueueConfig:
    """Tests for QueueConfig."""

    def test_defaults(self):
        """Test default configuration disables reclaiming."""
        config = QueueConfig()

        assert config.name_prefix == "pgqueue"
        assert config.visibility_timeout == timedelta(0)
        assert config.reclaim_enabled is False

    def test_derived_names(self):
        """Test table, sequence and index names derive from the prefix."""
        config = QueueConfig(name_prefix="emails")

        assert config.table_name == "emails"
        assert config.sequence_name == "emails_seq"
        assert config.index_name == "emails_claim_idx"

    def test_reclaim_enabled_with_timeout(self):
        """Test a positive visibility timeout enables reclaiming."""
        config = QueueConfig(visibility_timeout=timedelta(seconds=30))
        assert config.reclaim_enabled is True

    def test_timeout_accepts_seconds(self):
        """Test the timeout can be given as a number of seconds."""
        config = QueueConfig(visibility_timeout=2.5)
        assert config.visibility_timeout == timedelta(seconds=2.5)

    @pytest.mark.parametrize(
        "prefix",
        ["", "Emails", "1queue", "bad-name", "drop table;", "a" * 54],
    )
    def test_invalid_prefix_rejected(self, prefix: str):
        """Test prefixes that are not safe lowercase identifiers are rejected."""
        with pytest.raises(ValidationError):
            QueueConfig(name_prefix=prefix)

    def test_negative_timeout_rejected(self):
        """Test a negative visibility timeout is rejected."""
        with pytest.raises(ValidationError):
            QueueConfig(visibility_timeout=timedelta(seconds=-1))

    def test_frozen(self):
        """Test configuration cannot be changed after construction."""
        config = QueueConfig()
        with pytest.raises(ValidationError):
            config.name_prefix = "other"

    def test_from_settings(self):
        """Test settings build the queue configuration."""
        settings = Settings(
            queue_name_prefix="orders",
            queue_visibility_timeout_seconds=15,
        )

        config = settings.queue_config()

        assert config.name_prefix == "orders"
        assert config.visibility_timeout == timedelta(seconds=15)


class TestMessageTypes:
    """Tests for message value types."""

    def test_message_is_immutable(self):
        """Test messages are frozen values."""
        message = Message(payload=b"hello")
        with pytest.raises(AttributeError):
            message.payload = b"other"

    def test_consumer_messages_compare_by_value(self):
        """Test consumer messages with equal fields are equal."""
        assert ConsumerMessage(id=1, payload=b"a") == ConsumerMessage(id=1, payload=b"a")
        assert ConsumerMessage(id=1, payload=b"a") != ConsumerMessage(id=2, payload=b"a")

    def test_receipt_helpers(self):
        """Test receipts built from a delivered message."""
        message = ConsumerMessage(id=7, payload=b"x")

        assert MessageReceipt.ok(message) == MessageReceipt(id=7, success=True)
        assert MessageReceipt.failed(message) == MessageReceipt(id=7, success=False)

    def test_queue_depth_total(self):
        """Test depth total sums both classes."""
        depth = QueueDepth(unclaimed=3, claimed=2)
        assert depth.total == 5
