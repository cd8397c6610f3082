from unittest.mock import MagicMock

import pytest
import pytest_asyncio
from sqlalchemy import select, text
from sqlalchemy.exc import OperationalError

from novel_ingest.db import ArticleRow, RecordStore, build_engine, build_session_factory, close_engine, create_tables
from novel_ingest.errors import RecordStoreWriteError
from novel_ingest.mapper import map_payload
from novel_ingest.models import Article, Platform


@pytest_asyncio.fixture
async def engine(tmp_path):
    engine = build_engine(f"sqlite+aiosqlite:///{tmp_path / 'articles.db'}")
    await create_tables(engine)
    yield engine
    await close_engine(engine)


@pytest.fixture
def session_factory(engine):
    return build_session_factory(engine)


@pytest.mark.asyncio
async def test_create_returns_assigned_id_and_persists_fields(session_factory, full_payload):
    store = RecordStore(session_factory)
    article = map_payload(full_payload).article

    article_id = await store.create(article)

    async with session_factory() as session:
        row = (await session.execute(select(ArticleRow).where(ArticleRow.id == article_id))).scalar_one()
    assert row.title == "夏の終わり"
    assert row.author == "青空"
    assert row.platform is Platform.PIXIV
    assert row.word_count == 12034
    assert row.kudos_count == 321
    assert row.comment_count == 12
    assert row.is_completed is False
    assert row.tags == '["オリジナル","恋愛","夏"]'


@pytest.mark.asyncio
async def test_platform_stored_as_enum_value(session_factory, engine, minimal_payload):
    store = RecordStore(session_factory)
    await store.create(map_payload(minimal_payload).article)

    async with engine.connect() as conn:
        raw = (await conn.execute(text("SELECT platform FROM article"))).scalar_one()
    assert raw == "Pixiv"


@pytest.mark.asyncio
async def test_same_record_twice_gets_two_ids(session_factory, minimal_payload):
    store = RecordStore(session_factory)
    article = map_payload(minimal_payload).article

    first = await store.create(article)
    second = await store.create(article)

    assert first != second
    async with session_factory() as session:
        count = len((await session.execute(select(ArticleRow))).scalars().all())
    assert count == 2


@pytest.mark.asyncio
async def test_create_tables_is_idempotent(engine):
    await create_tables(engine)


@pytest.mark.asyncio
async def test_database_error_is_wrapped(session_factory, engine):
    async with engine.begin() as conn:
        await conn.execute(text("DROP TABLE article"))
    store = RecordStore(session_factory)

    with pytest.raises(RecordStoreWriteError, match="insert article 'T'") as excinfo:
        await store.create(Article(title="T", platform=Platform.AO3))
    assert isinstance(excinfo.value.__cause__, OperationalError)
    assert excinfo.value.retryable


@pytest.mark.asyncio
async def test_constraint_violation_is_not_retryable(session_factory, engine):
    async with engine.begin() as conn:
        await conn.execute(text("CREATE UNIQUE INDEX uq_article_title ON article (title)"))
    store = RecordStore(session_factory)
    await store.create(Article(title="T", platform=Platform.PIXIV))

    with pytest.raises(RecordStoreWriteError, match="rejected") as excinfo:
        await store.create(Article(title="T", platform=Platform.PIXIV))
    assert not excinfo.value.retryable


@pytest.mark.asyncio
async def test_connection_refused_is_wrapped():
    refused = ConnectionRefusedError(111, "Connection refused")
    store = RecordStore(MagicMock(side_effect=refused))

    with pytest.raises(RecordStoreWriteError) as excinfo:
        await store.create(Article(title="T", platform=Platform.PIXIV))
    assert excinfo.value.__cause__ is refused
    assert excinfo.value.retryable
