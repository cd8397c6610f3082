"""Shared fixtures: Pixiv preload payloads and queue messages."""

import json

import pytest

from novel_ingest.queue.kafka_reader import QueueMessage


@pytest.fixture
def minimal_payload() -> dict:
    return {
        "novel": {
            "12345": {
                "title": "T",
                "userName": "A",
                "description": "D",
                "content": "C",
                "wordCount": 100,
                "likeCount": 5,
                "commentCount": 2,
                "language": "ja",
                "tags": {"tags": [{"tag": "romance"}]},
            }
        }
    }


@pytest.fixture
def full_payload() -> dict:
    return {
        "timestamp": "2024-03-02T10:00:00+09:00",
        "novel": {
            "21587013": {
                "id": "21587013",
                "title": "夏の終わり",
                "userId": "4512873",
                "userName": "青空",
                "description": "短編です",
                "content": "本文……",
                "coverUrl": "https://i.pximg.net/c/600x600/novel-cover-master/cover.jpg",
                "wordCount": 12034.0,
                "readingTime": 1805,
                "likeCount": 321,
                "commentCount": 12,
                "viewCount": 10492,
                "language": "ja",
                "uploadDate": "2024-02-28T12:34:56+00:00",
                "tags": {
                    "authorId": "4512873",
                    "tags": [
                        {"tag": "オリジナル", "locked": True},
                        {"tag": "恋愛", "locked": False},
                        {"tag": "夏", "locked": False},
                    ],
                },
            }
        },
    }


def _make_message(value, *, offset: int = 0, partition: int = 0, key: bytes | None = b"k") -> QueueMessage:
    if isinstance(value, dict):
        value = json.dumps(value).encode("utf-8")
    return QueueMessage(
        topic="crawler-pixiv",
        partition=partition,
        offset=offset,
        key=key,
        value=value,
    )


@pytest.fixture
def make_message():
    return _make_message
