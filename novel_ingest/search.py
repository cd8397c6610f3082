"""OpenSearch client for the article search index."""

import logging
from typing import Any

from opensearchpy import AsyncOpenSearch
from opensearchpy.exceptions import OpenSearchException, TransportError

from novel_ingest.errors import IndexWriteError
from novel_ingest.models import SearchDocument

logger = logging.getLogger(__name__)

INDEX_BODY: dict[str, Any] = {
    "settings": {
        "number_of_shards": 1,
        "number_of_replicas": 0,
        "analysis": {
            "analyzer": {
                "cjk_text": {
                    "type": "custom",
                    "tokenizer": "standard",
                    "filter": ["lowercase", "cjk_width", "cjk_bigram"],
                },
            },
        },
    },
    "mappings": {
        "properties": {
            "article_id": {"type": "keyword"},
            "title": {
                "type": "text",
                "analyzer": "cjk_text",
                "fields": {"raw": {"type": "keyword"}},
            },
            "author": {
                "properties": {
                    "name": {
                        "type": "text",
                        "analyzer": "cjk_text",
                        "fields": {"raw": {"type": "keyword"}},
                    },
                    "profile_url": {"type": "keyword"},
                    "status": {"type": "keyword"},
                },
            },
            "cover_image": {"type": "keyword", "index": False},
            "content": {"type": "text", "analyzer": "cjk_text"},
            "word_count": {"type": "integer"},
            "language": {"type": "keyword"},
            "status": {"type": "keyword"},
            "chapters": {"type": "object", "enabled": False},
            "likes": {"type": "integer"},
            "comments_count": {"type": "integer"},
            "comments": {"type": "object", "enabled": False},
            "tags": {"type": "keyword"},
            # Pixiv's uploadDate is kept verbatim, so it is not mapped as a date
            "published_at": {"type": "keyword"},
            "estimated_read_time": {"type": "keyword"},
            "interaction": {
                "properties": {
                    "reaction_count": {"type": "integer"},
                    "likes_count": {"type": "integer"},
                    "views_count": {"type": "integer"},
                },
            },
        },
    },
}


def build_client(url: str) -> AsyncOpenSearch:
    """Create the async OpenSearch client for ``url``."""
    return AsyncOpenSearch(
        hosts=[url],
        use_ssl=url.startswith("https://"),
        verify_certs=False,
    )


class DocumentIndex:
    """Search sink for ``SearchDocument`` bodies.

    Documents get index-assigned ids; the record store id is not shared.
    """

    def __init__(self, client: AsyncOpenSearch, index_name: str) -> None:
        self._client = client
        self.index_name = index_name

    async def ensure_index(self) -> None:
        """Create the index if it doesn't exist (idempotent)."""
        if not await self._client.indices.exists(index=self.index_name):
            await self._client.indices.create(index=self.index_name, body=INDEX_BODY)
            logger.info("Created OpenSearch index '%s'", self.index_name)
        else:
            logger.debug("OpenSearch index '%s' already exists", self.index_name)

    async def index(self, document: SearchDocument) -> dict[str, Any]:
        """Index one document with an immediate refresh.

        The document is searchable when this returns.

        Raises:
            IndexWriteError: the request failed or a shard rejected the write.
                A 4xx rejection other than 429 is marked not retryable.
        """
        try:
            resp = await self._client.index(
                index=self.index_name,
                body=document.model_dump(mode="json"),
                refresh=True,
            )
        except OpenSearchException as exc:
            raise IndexWriteError(
                "index request failed", str(exc), retryable=_is_retryable(exc)
            ) from exc
        except OSError as exc:
            raise IndexWriteError("index request failed", str(exc)) from exc

        shards = resp.get("_shards") or {}
        if shards.get("failed"):
            raise IndexWriteError("index write rejected", str(shards.get("failures") or shards))
        if resp.get("result") not in ("created", "updated"):
            raise IndexWriteError("unexpected index result", str(resp), retryable=False)
        logger.debug("Indexed document %s into '%s'", resp.get("_id"), self.index_name)
        return resp

    async def close(self) -> None:
        """Close the OpenSearch client."""
        await self._client.close()


def _is_retryable(exc: OpenSearchException) -> bool:
    """Connection failures, throttling and 5xx answers may succeed on retry."""
    if not isinstance(exc, TransportError):
        return False
    status = exc.status_code
    if not isinstance(status, int):
        return True
    return status == 429 or status >= 500
