"""Ingest worker entry point.

Connects the record store, the search index and the Kafka consumer group,
then runs the consume loop next to the health endpoint until the process
is stopped.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import Any

import redis.asyncio as aioredis
import uvicorn
from sqlalchemy.exc import SQLAlchemyError

from novel_ingest.api import create_app
from novel_ingest.config.settings import Settings, get_settings
from novel_ingest.db import RecordStore, build_engine, build_session_factory, close_engine, create_tables
from novel_ingest.errors import QueueReadError
from novel_ingest.queue import KafkaReader
from novel_ingest.search import DocumentIndex, build_client
from novel_ingest.worker import ConsumeLoop
from novel_ingest.writer import DualWriter

logger = logging.getLogger(__name__)

SHUTDOWN_GRACE_SECONDS = 10


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=level.upper(),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    for noisy in ("aiokafka", "opensearch", "uvicorn.access"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


async def main(settings: Settings | None = None) -> int:
    settings = settings or get_settings()

    # 1) Record store: unreachable at boot is fatal
    engine = build_engine(settings.database_url)
    try:
        await create_tables(engine)
    except (SQLAlchemyError, OSError) as e:
        logger.critical("Record store unreachable: %s", e)
        await close_engine(engine)
        return 1
    logger.info("Record store connected, tables ready")
    records = RecordStore(build_session_factory(engine))

    # 2) Search index: the index write reports its own errors per message
    documents = DocumentIndex(build_client(settings.opensearch_url), settings.search_index)
    try:
        await documents.ensure_index()
        logger.info("OpenSearch connected, index '%s' ready", settings.search_index)
    except Exception as e:
        logger.warning("OpenSearch index setup failed: %s", e)

    # 3) Kafka: unreachable at boot is fatal
    reader = KafkaReader.from_settings(settings)
    try:
        await reader.start()
    except QueueReadError as e:
        logger.critical("%s", e)
        await _close("OpenSearch client", documents.close)
        await _close("database engine", lambda: close_engine(engine))
        return 1

    redis_client = None
    if settings.redis_url:
        redis_client = aioredis.from_url(settings.redis_url, decode_responses=True)

    consume_loop = ConsumeLoop(
        reader,
        DualWriter(records, documents),
        name=settings.worker_name,
        commit_policy=settings.commit_policy,
        read_backoff_seconds=settings.read_backoff_seconds,
        redis=redis_client,
    )
    server = uvicorn.Server(
        uvicorn.Config(
            create_app(),
            host=settings.health_host,
            port=settings.health_port,
            log_level=settings.log_level.lower(),
        )
    )

    worker_task = asyncio.create_task(consume_loop.run(), name="consume-loop")
    server_task = asyncio.create_task(server.serve(), name="health-server")

    exit_code = 0
    try:
        # The server owns SIGTERM/SIGINT; the worker only ends by crashing
        await asyncio.wait({worker_task, server_task}, return_when=asyncio.FIRST_COMPLETED)
    finally:
        consume_loop.request_shutdown()
        server.should_exit = True

        # A worker blocked in read() only notices shutdown on the next message
        _, pending = await asyncio.wait({worker_task}, timeout=SHUTDOWN_GRACE_SECONDS)
        if pending:
            worker_task.cancel()
            await asyncio.gather(worker_task, return_exceptions=True)
        elif worker_task.exception() is not None:
            logger.critical("Consume loop crashed", exc_info=worker_task.exception())
            exit_code = 1
        await asyncio.gather(server_task, return_exceptions=True)

        await _close("Kafka reader", reader.stop)
        await _close("OpenSearch client", documents.close)
        await _close("database engine", lambda: close_engine(engine))
        if redis_client is not None:
            await _close("Redis client", redis_client.aclose)
    return exit_code


async def _close(name: str, closer: Callable[[], Awaitable[Any]]) -> None:
    """Release one resource; a failure is logged so the others still close."""
    try:
        await closer()
    except Exception:
        logger.warning("Failed to close %s", name, exc_info=True)


def run() -> None:
    configure_logging(get_settings().log_level)
    raise SystemExit(asyncio.run(main()))


if __name__ == "__main__":
    run()
