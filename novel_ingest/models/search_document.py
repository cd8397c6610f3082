"""Search document model: the denormalized index projection of a novel."""

from typing import Any

from pydantic import BaseModel, Field


class SearchAuthor(BaseModel):
    name: str = ""
    profile_url: str = ""
    status: str = "active"


class Interaction(BaseModel):
    reaction_count: int = 0
    likes_count: int = 0
    views_count: int = 0


class SearchDocument(BaseModel):
    """Document body sent to the search index.

    ``chapters`` and ``comments`` are placeholders kept so the index mapping
    stays stable; this pipeline always sends them empty.
    """

    article_id: str = ""
    title: str = ""
    author: SearchAuthor = Field(default_factory=SearchAuthor)
    cover_image: str = ""
    content: str = ""
    word_count: int = 0
    language: str = ""
    status: str = "completed"
    chapters: list[Any] = Field(default_factory=list)
    likes: int = 0
    comments_count: int = 0
    comments: list[Any] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    published_at: str = ""
    estimated_read_time: str = ""
    interaction: Interaction = Field(default_factory=Interaction)
