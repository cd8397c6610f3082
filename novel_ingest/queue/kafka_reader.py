"""Kafka consumer-group reader.

Wraps ``AIOKafkaConsumer`` with auto-commit disabled, so the consume loop
decides when offsets advance (see ``CommitPolicy``).
"""

import logging
from dataclasses import dataclass

from aiokafka import AIOKafkaConsumer, TopicPartition
from aiokafka.errors import KafkaError

from novel_ingest.config.settings import Settings
from novel_ingest.errors import QueueReadError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class QueueMessage:
    """One record read from the topic."""

    topic: str
    partition: int
    offset: int
    key: bytes | None
    value: bytes | None

    @property
    def key_text(self) -> str:
        return self.key.decode("utf-8", errors="replace") if self.key else ""


class KafkaReader:
    """Reads a topic as a member of a consumer group, one message at a time."""

    def __init__(self, consumer: AIOKafkaConsumer, topic: str, group_id: str) -> None:
        self._consumer = consumer
        self.topic = topic
        self.group_id = group_id

    @classmethod
    def from_settings(cls, settings: Settings) -> "KafkaReader":
        consumer = AIOKafkaConsumer(
            settings.kafka_topic,
            bootstrap_servers=settings.broker_list,
            group_id=settings.kafka_group_id,
            enable_auto_commit=False,
            auto_offset_reset="earliest",
            fetch_max_bytes=settings.kafka_max_fetch_bytes,
            max_partition_fetch_bytes=settings.kafka_max_fetch_bytes,
        )
        return cls(consumer, settings.kafka_topic, settings.kafka_group_id)

    async def start(self) -> None:
        """Connect to the brokers and join the group.

        Raises:
            QueueReadError: the brokers are unreachable.
        """
        try:
            await self._consumer.start()
        except KafkaError as e:
            raise QueueReadError(f"cannot start consumer for topic {self.topic!r}: {e}") from e
        logger.info("Kafka reader started | topic=%s | group=%s", self.topic, self.group_id)

    async def read(self) -> QueueMessage:
        """Block until the next message arrives.

        Raises:
            QueueReadError: the fetch failed.
        """
        try:
            record = await self._consumer.getone()
        except KafkaError as e:
            raise QueueReadError(f"read from {self.topic!r} failed: {e}") from e
        return QueueMessage(
            topic=record.topic,
            partition=record.partition,
            offset=record.offset,
            key=record.key,
            value=record.value,
        )

    async def commit(self, message: QueueMessage) -> None:
        """Advance the group offset past ``message``.

        Raises:
            QueueReadError: the commit was rejected, e.g. after a rebalance.
        """
        tp = TopicPartition(message.topic, message.partition)
        try:
            await self._consumer.commit({tp: message.offset + 1})
        except KafkaError as e:
            raise QueueReadError(
                f"commit {message.topic}[{message.partition}]@{message.offset} failed: {e}"
            ) from e

    def rewind(self, message: QueueMessage) -> None:
        """Seek back so ``message`` is fetched again by the next read."""
        tp = TopicPartition(message.topic, message.partition)
        self._consumer.seek(tp, message.offset)

    async def stop(self) -> None:
        """Leave the group and close connections."""
        await self._consumer.stop()
        logger.info("Kafka reader stopped | topic=%s", self.topic)
