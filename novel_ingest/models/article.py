"""Article model: the relational projection of a crawled novel."""

from enum import Enum

from pydantic import BaseModel


class Platform(str, Enum):
    """Source platform tag. Values match the ``article.platform`` enum column."""

    AO3 = "ao3"
    PIXIV = "Pixiv"
    LOFTER = "lofter"
    WEIBO = "weibo"


class Article(BaseModel):
    """A novel as stored in the ``article`` table.

    ``tags`` holds a compact JSON array of tag strings, or ``""`` when the
    payload carried no tag list. ``id`` is assigned by the record store after
    a successful insert.
    """

    id: int | None = None
    title: str = ""
    author: str = ""
    platform: Platform
    summary: str = ""
    content: str = ""
    word_count: int = 0
    is_completed: bool = False
    kudos_count: int = 0
    comment_count: int = 0
    language: str = ""
    tags: str = ""
