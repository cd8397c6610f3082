"""Dual writer: record store first, then search index, with no shared transaction."""

import logging
from dataclasses import dataclass
from typing import Any, Protocol

from novel_ingest.errors import IndexWriteError, RecordStoreWriteError, WriteError
from novel_ingest.models import Article, SearchDocument

logger = logging.getLogger(__name__)


class ArticleSink(Protocol):
    async def create(self, article: Article) -> int: ...


class DocumentSink(Protocol):
    async def index(self, document: SearchDocument) -> Any: ...


@dataclass
class WriteOutcome:
    """What happened to each sink for one message."""

    record_id: int | None = None
    record_error: RecordStoreWriteError | None = None
    index_error: IndexWriteError | None = None

    @property
    def ok(self) -> bool:
        return self.record_error is None and self.index_error is None

    @property
    def retryable(self) -> bool:
        """True when every failure may succeed on redelivery."""
        return bool(self.errors) and all(e.retryable for e in self.errors)

    @property
    def errors(self) -> list[WriteError]:
        return [e for e in (self.record_error, self.index_error) if e is not None]


class DualWriter:
    """Writes one novel to both sinks.

    The index write is attempted even when the record write failed, and a
    failed index write does not undo the record. Neither write is retried.
    Any exception a sink raises is recorded as that sink's error.
    """

    def __init__(self, records: ArticleSink, documents: DocumentSink) -> None:
        self._records = records
        self._documents = documents

    async def write(self, article: Article, document: SearchDocument) -> WriteOutcome:
        outcome = WriteOutcome()

        try:
            outcome.record_id = await self._records.create(article)
        except RecordStoreWriteError as e:
            outcome.record_error = e
            logger.error("Record store write failed for '%s': %s", article.title, e)
        except Exception as e:
            outcome.record_error = RecordStoreWriteError(f"{type(e).__name__}: {e}")
            outcome.record_error.__cause__ = e
            logger.error(
                "Record store write failed for '%s': %s", article.title, e, exc_info=True
            )
        else:
            article.id = outcome.record_id
            logger.info("Inserted article '%s' into record store, ID=%d", article.title, article.id)

        try:
            await self._documents.index(document)
        except IndexWriteError as e:
            outcome.index_error = e
            logger.error("Index write failed for article_id=%s: %s", document.article_id, e)
        except Exception as e:
            outcome.index_error = IndexWriteError("unexpected error", f"{type(e).__name__}: {e}")
            outcome.index_error.__cause__ = e
            logger.error(
                "Index write failed for article_id=%s: %s", document.article_id, e, exc_info=True
            )
        else:
            logger.info("Indexed article_id=%s", document.article_id)

        return outcome
