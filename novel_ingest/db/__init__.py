"""Database layer: async SQLAlchemy engine, session factory, ORM models and record store."""

from novel_ingest.db.engine import build_engine, build_session_factory, close_engine, create_tables
from novel_ingest.db.models import ArticleRow, Base
from novel_ingest.db.store import RecordStore

__all__ = [
    "ArticleRow",
    "Base",
    "RecordStore",
    "build_engine",
    "build_session_factory",
    "close_engine",
    "create_tables",
]
