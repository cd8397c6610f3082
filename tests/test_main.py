import logging
from unittest.mock import AsyncMock, MagicMock

import pytest

import novel_ingest.__main__ as entry
from novel_ingest.config.settings import Settings
from novel_ingest.errors import QueueReadError


@pytest.fixture
def search_client(monkeypatch):
    client = MagicMock()
    client.indices.exists = AsyncMock(return_value=True)
    client.close = AsyncMock()
    monkeypatch.setattr(entry, "build_client", lambda url: client)
    return client


@pytest.mark.asyncio
async def test_unreachable_record_store_exits_nonzero(tmp_path):
    settings = Settings(db_url=f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'dir' / 'x.db'}")

    assert await entry.main(settings) == 1


@pytest.mark.asyncio
async def test_unreachable_queue_exits_nonzero(tmp_path, monkeypatch, search_client):
    reader = MagicMock()
    reader.start = AsyncMock(side_effect=QueueReadError("cannot start consumer"))
    monkeypatch.setattr(entry.KafkaReader, "from_settings", classmethod(lambda cls, s: reader))
    settings = Settings(db_url=f"sqlite+aiosqlite:///{tmp_path / 'x.db'}")

    assert await entry.main(settings) == 1
    search_client.close.assert_awaited_once()


def test_configure_logging_quiets_client_loggers():
    entry.configure_logging("debug")
    assert logging.getLogger("aiokafka").level == logging.WARNING
    assert logging.getLogger("opensearch").level == logging.WARNING


class StoppedServer:
    """Health server that returns at once, as if the process got SIGTERM."""

    def __init__(self, config):
        self.should_exit = False

    async def serve(self):
        return None


@pytest.mark.asyncio
async def test_teardown_closes_every_resource_when_one_fails(tmp_path, monkeypatch, search_client):
    reader = MagicMock()
    reader.topic = "crawler-pixiv"
    reader.group_id = "pixiv-group"
    reader.start = AsyncMock()
    reader.read = AsyncMock(side_effect=QueueReadError("no broker"))
    reader.stop = AsyncMock(side_effect=RuntimeError("already closed"))
    monkeypatch.setattr(entry.KafkaReader, "from_settings", classmethod(lambda cls, s: reader))
    monkeypatch.setattr(entry.uvicorn, "Server", StoppedServer)
    close_engine = AsyncMock(wraps=entry.close_engine)
    monkeypatch.setattr(entry, "close_engine", close_engine)
    settings = Settings(db_url=f"sqlite+aiosqlite:///{tmp_path / 'x.db'}")

    assert await entry.main(settings) == 0
    reader.stop.assert_awaited_once()
    search_client.close.assert_awaited_once()
    close_engine.assert_awaited_once()
