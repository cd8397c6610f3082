"""Data models for novel-ingest."""

from novel_ingest.models.article import Article, Platform
from novel_ingest.models.heartbeat import WorkerHeartbeat
from novel_ingest.models.search_document import Interaction, SearchAuthor, SearchDocument

__all__ = [
    "Article",
    "Interaction",
    "Platform",
    "SearchAuthor",
    "SearchDocument",
    "WorkerHeartbeat",
]
