"""ConsumeLoop: reads novels from Kafka and dual-writes them.

Key capabilities:
- Sequential consumption: one message is decoded, mapped and written before
  the next read
- Read errors back off and retry; the loop never exits on its own
- Explicit offset commit policy (after read or after a successful write)
- Heartbeat: optionally writes status to Redis every 10s for monitoring
"""

import asyncio
import logging
from datetime import datetime
from typing import Protocol

import redis.asyncio as aioredis

from novel_ingest.config.settings import CommitPolicy
from novel_ingest.errors import DecodeError, ExtractionError, QueueReadError
from novel_ingest.mapper import decode_payload, map_payload
from novel_ingest.models import WorkerHeartbeat
from novel_ingest.queue.kafka_reader import QueueMessage
from novel_ingest.writer import DualWriter

logger = logging.getLogger(__name__)

HEARTBEAT_INTERVAL = 10
HEARTBEAT_TTL = 30


class MessageReader(Protocol):
    topic: str
    group_id: str

    async def read(self) -> QueueMessage: ...

    async def commit(self, message: QueueMessage) -> None: ...

    def rewind(self, message: QueueMessage) -> None: ...


class ConsumeLoop:
    """Consumes the novel topic until shutdown.

    Usage:
        loop = ConsumeLoop(reader, DualWriter(records, documents))
        await loop.run()
    """

    def __init__(
        self,
        reader: MessageReader,
        writer: DualWriter,
        *,
        name: str = "pixiv-consumer",
        commit_policy: CommitPolicy = CommitPolicy.AFTER_READ,
        read_backoff_seconds: float = 3.0,
        redis: aioredis.Redis | None = None,
    ) -> None:
        self.name = name
        self.commit_policy = commit_policy
        self.read_backoff_seconds = read_backoff_seconds

        self._reader = reader
        self._writer = writer
        self._redis = redis
        self._shutdown_event = asyncio.Event()

        # Heartbeat state
        self._current: QueueMessage | None = None
        self._last: QueueMessage | None = None
        self.messages_processed: int = 0
        self.messages_failed: int = 0
        self._started_at: datetime = datetime.now()

    # ──────────────────────────────────────────────
    # Main loop
    # ──────────────────────────────────────────────

    async def run(self) -> None:
        """Main loop: read, process, commit. Runs until shutdown is requested."""
        self._started_at = datetime.now()
        logger.info(
            "Consumer '%s' starting | topic=%s | group=%s | commit_policy=%s",
            self.name,
            self._reader.topic,
            self._reader.group_id,
            self.commit_policy.value,
        )

        heartbeat_task = None
        if self._redis is not None:
            heartbeat_task = asyncio.create_task(self._heartbeat_loop())

        try:
            while not self._shutdown_event.is_set():
                try:
                    message = await self._reader.read()
                except QueueReadError as e:
                    logger.error("Kafka read error: %s", e)
                    await self._pause(self.read_backoff_seconds)
                    continue

                self._current = message
                try:
                    await self.process(message)
                except Exception as e:
                    self.messages_failed += 1
                    logger.error(
                        "Unexpected error on %s[%d]@%d: %s",
                        message.topic,
                        message.partition,
                        message.offset,
                        e,
                        exc_info=True,
                    )
                    if self.commit_policy is CommitPolicy.AFTER_WRITE:
                        await self._redeliver(message)
                finally:
                    self._last = message
                    self._current = None

        except asyncio.CancelledError:
            logger.info("Consumer '%s' cancelled", self.name)
        finally:
            if heartbeat_task is not None:
                heartbeat_task.cancel()
                await asyncio.gather(heartbeat_task, return_exceptions=True)
                try:
                    await self._redis.delete(self._heartbeat_key)
                except Exception:
                    logger.warning("Failed to clear heartbeat", exc_info=True)
            logger.info(
                "Consumer '%s' stopped | processed=%d | failed=%d",
                self.name,
                self.messages_processed,
                self.messages_failed,
            )

    def request_shutdown(self) -> None:
        """Stop after the current message; a pending backoff ends immediately."""
        logger.info("Consumer '%s' shutting down...", self.name)
        self._shutdown_event.set()

    # ──────────────────────────────────────────────
    # Message processing
    # ──────────────────────────────────────────────

    async def process(self, message: QueueMessage) -> bool:
        """Decode, map and dual-write one message. Returns True if both writes succeeded.

        Decode, extraction, write and commit failures are logged here, not raised.
        """
        value = message.value or b""
        logger.info(
            ">>> [Kafka] Partition=%d Offset=%d Key=%s msg_len=%d",
            message.partition,
            message.offset,
            message.key_text,
            len(value),
        )

        if self.commit_policy is CommitPolicy.AFTER_READ:
            await self._commit(message)

        try:
            mapped = map_payload(decode_payload(value))
        except (DecodeError, ExtractionError) as e:
            self.messages_failed += 1
            logger.error(
                "Skipping %s[%d]@%d: %s: %s",
                message.topic,
                message.partition,
                message.offset,
                type(e).__name__,
                e,
            )
            # Malformed payloads never succeed on redelivery
            if self.commit_policy is CommitPolicy.AFTER_WRITE:
                await self._commit(message)
            return False

        outcome = await self._writer.write(mapped.article, mapped.document)

        if outcome.ok:
            self.messages_processed += 1
            if self.commit_policy is CommitPolicy.AFTER_WRITE:
                await self._commit(message)
            return True

        self.messages_failed += 1
        for err in outcome.errors:
            logger.error(
                "Write failed for %s[%d]@%d: %s: %s",
                message.topic,
                message.partition,
                message.offset,
                type(err).__name__,
                err,
            )
        if self.commit_policy is CommitPolicy.AFTER_WRITE:
            if outcome.retryable:
                await self._redeliver(message)
            else:
                # A rejected payload fails the same way on every redelivery
                logger.error(
                    "Dropping %s[%d]@%d: write rejected, not retryable",
                    message.topic,
                    message.partition,
                    message.offset,
                )
                await self._commit(message)
        return False

    async def _redeliver(self, message: QueueMessage) -> None:
        logger.warning(
            "Rewinding %s[%d] to offset %d for redelivery",
            message.topic,
            message.partition,
            message.offset,
        )
        self._reader.rewind(message)
        await self._pause(self.read_backoff_seconds)

    async def _commit(self, message: QueueMessage) -> None:
        try:
            await self._reader.commit(message)
        except QueueReadError as e:
            logger.error("Offset commit failed: %s", e)

    async def _pause(self, seconds: float) -> None:
        """Sleep for ``seconds`` or until shutdown is requested."""
        try:
            await asyncio.wait_for(self._shutdown_event.wait(), timeout=seconds)
        except asyncio.TimeoutError:
            pass

    # ──────────────────────────────────────────────
    # Heartbeat
    # ──────────────────────────────────────────────

    @property
    def _heartbeat_key(self) -> str:
        return f"worker:heartbeat:{self.name}"

    def heartbeat(self) -> WorkerHeartbeat:
        """Snapshot of the loop's current status."""
        last = self._current or self._last
        return WorkerHeartbeat(
            name=self.name,
            topic=self._reader.topic,
            group_id=self._reader.group_id,
            status="busy" if self._current else "idle",
            last_partition=last.partition if last else None,
            last_offset=last.offset if last else None,
            messages_processed=self.messages_processed,
            messages_failed=self.messages_failed,
            started_at=self._started_at,
            last_heartbeat=datetime.now(),
        )

    async def _heartbeat_loop(self) -> None:
        """Write heartbeat to Redis every 10s. Expires after 30s."""
        while not self._shutdown_event.is_set():
            try:
                await self._redis.set(
                    self._heartbeat_key,
                    self.heartbeat().model_dump_json(),
                    ex=HEARTBEAT_TTL,
                )
            except Exception:
                logger.warning("Failed to write heartbeat", exc_info=True)
            await asyncio.sleep(HEARTBEAT_INTERVAL)
