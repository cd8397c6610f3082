"""Record store: inserts articles and returns their assigned ids."""

import logging

from sqlalchemy.exc import DataError, IntegrityError, ProgrammingError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from novel_ingest.db.models import ArticleRow
from novel_ingest.errors import RecordStoreWriteError
from novel_ingest.models import Article

logger = logging.getLogger(__name__)


class RecordStore:
    """Relational sink for ``Article`` rows.

    Every call opens its own session, so one store can be shared by
    concurrent callers; isolation is left to the database.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def create(self, article: Article) -> int:
        """Insert ``article`` and return the id assigned by the database.

        Duplicate submissions create duplicate rows: there is no natural key.

        Raises:
            RecordStoreWriteError: the insert failed. Constraint and data
                errors are marked not retryable.
        """
        row = ArticleRow(**article.model_dump(exclude={"id"}))
        try:
            async with self._session_factory() as session:
                session.add(row)
                await session.commit()
        except (IntegrityError, DataError, ProgrammingError) as exc:
            raise RecordStoreWriteError(
                f"insert article {article.title!r} rejected: {exc}", retryable=False
            ) from exc
        except (SQLAlchemyError, OSError) as exc:
            raise RecordStoreWriteError(f"insert article {article.title!r}: {exc}") from exc
        logger.debug("Inserted article row id=%s", row.id)
        return row.id
