"""SQLAlchemy ORM models for the record store."""

from sqlalchemy import Boolean, Enum, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from novel_ingest.models.article import Platform


class Base(DeclarativeBase):
    pass


class ArticleRow(Base):
    """One ingested novel. ``tags`` is a JSON array serialized to text."""

    __tablename__ = "article"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(500), nullable=False)
    author: Mapped[str | None] = mapped_column(String(255), nullable=True)
    platform: Mapped[Platform] = mapped_column(
        Enum(
            Platform,
            name="article_platform",
            values_callable=lambda enum: [member.value for member in enum],
        ),
        nullable=False,
    )
    summary: Mapped[str | None] = mapped_column(Text, nullable=True)
    content: Mapped[str | None] = mapped_column(Text, nullable=True)
    word_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    is_completed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    kudos_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    comment_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    language: Mapped[str | None] = mapped_column(String(50), nullable=True)
    tags: Mapped[str | None] = mapped_column(Text, nullable=True)
