"""Novel mapper: turns a Pixiv preload-data payload into two projections.

The crawler publishes the page's preload JSON, where the novel sits under
``novel.<novel_id>``. The mapper produces the ``Article`` row for the record
store and the ``SearchDocument`` for the search index from that one object.
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from typing import Any

from novel_ingest.errors import DecodeError, ExtractionError
from novel_ingest.extract import extract_int, extract_list, extract_mapping, extract_string
from novel_ingest.models import Article, Interaction, Platform, SearchAuthor, SearchDocument

CONTAINER_KEY = "novel"
PROFILE_URL = "https://www.pixiv.net/users/{user_id}"
READ_TIME_UNIT = "分"


@dataclass
class MappedPayload:
    """Both projections of one source novel."""

    article: Article
    document: SearchDocument


def decode_payload(raw: bytes | str) -> dict[str, Any]:
    """Decode a message value into a JSON tree.

    Raises:
        DecodeError: the value is not UTF-8 or not JSON.
    """
    try:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise DecodeError(f"invalid JSON payload: {exc}") from exc


def map_payload(root: Any) -> MappedPayload:
    """Map a decoded payload to an ``Article`` and a ``SearchDocument``.

    Raises:
        ExtractionError: the novel container is missing, empty, holds more
            than one entry, or its entry is not an object.
    """
    novel_id, novel = _select_novel(root)
    tags = _extract_tags(novel)

    article = Article(
        title=extract_string(novel.get("title")),
        author=extract_string(novel.get("userName")),
        platform=Platform.PIXIV,
        summary=extract_string(novel.get("description")),
        content=extract_string(novel.get("content")),
        word_count=extract_int(novel.get("wordCount")),
        is_completed=False,
        kudos_count=extract_int(novel.get("likeCount")),
        comment_count=extract_int(novel.get("commentCount")),
        language=extract_string(novel.get("language")),
        tags=_serialize_tags(tags),
    )

    likes = extract_int(novel.get("likeCount"))
    document = SearchDocument(
        article_id=extract_string(novel.get("id")) or novel_id,
        title=extract_string(novel.get("title")),
        author=SearchAuthor(
            name=extract_string(novel.get("userName")),
            profile_url=PROFILE_URL.format(user_id=extract_string(novel.get("userId"))),
            status="active",
        ),
        cover_image=extract_string(novel.get("coverUrl")),
        content=extract_string(novel.get("content")),
        word_count=extract_int(novel.get("wordCount")),
        language=extract_string(novel.get("language")),
        status="completed",
        likes=likes,
        comments_count=extract_int(novel.get("commentCount")),
        tags=tags or [],
        published_at=extract_string(novel.get("uploadDate")),
        estimated_read_time=estimate_read_time(extract_int(novel.get("readingTime"))),
        interaction=Interaction(
            reaction_count=0,
            likes_count=likes,
            views_count=extract_int(novel.get("viewCount")),
        ),
    )
    return MappedPayload(article=article, document=document)


def estimate_read_time(seconds: int) -> str:
    """Whole minutes (truncated toward zero) followed by the unit suffix."""
    minutes = abs(seconds) // 60
    if seconds < 0:
        minutes = -minutes
    return f"{minutes}{READ_TIME_UNIT}"


def _select_novel(root: Any) -> tuple[str, dict[str, Any]]:
    """Return ``(novel_id, novel)`` for the single entry under ``novel``."""
    payload = extract_mapping(root)
    if payload is None:
        raise ExtractionError(f"payload is a JSON {type(root).__name__}, expected an object")

    container = extract_mapping(payload.get(CONTAINER_KEY))
    if not container:
        raise ExtractionError(f"no {CONTAINER_KEY!r} object found in the payload")
    if len(container) > 1:
        raise ExtractionError(
            f"expected exactly one entry under {CONTAINER_KEY!r}, got {len(container)}: "
            f"{sorted(container)[:5]}"
        )

    novel_id, value = next(iter(container.items()))
    novel = extract_mapping(value)
    if novel is None:
        raise ExtractionError(
            f"entry {novel_id!r} under {CONTAINER_KEY!r} is a {type(value).__name__}, "
            "expected an object"
        )
    return novel_id, novel


def _extract_tags(novel: dict[str, Any]) -> list[str] | None:
    """Collect tag strings from ``novel.tags.tags[*].tag``.

    Returns None when any nesting level is absent or of the wrong shape.
    Entries that are not objects are skipped. An object entry without tag
    text yields "" so the list keeps one slot per tag object.
    """
    tags_obj = extract_mapping(novel.get("tags"))
    if tags_obj is None:
        return None
    entries = extract_list(tags_obj.get("tags"))
    if entries is None:
        return None

    tags: list[str] = []
    for entry in entries:
        tag_record = extract_mapping(entry)
        if tag_record is None:
            continue
        tags.append(extract_string(tag_record.get("tag")))
    return tags


def _serialize_tags(tags: list[str] | None) -> str:
    if tags is None:
        return ""
    return json.dumps(tags, ensure_ascii=False, separators=(",", ":"))
