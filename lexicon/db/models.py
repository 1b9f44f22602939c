"""
Item store models.

SQLAlchemy models for vocabulary items and the review log:
- Word: one learner's vocabulary item with its scheduling fields
- Review: one answered item (daily or training)
"""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import Any

from sqlalchemy import JSON, DateTime, Float, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def _new_id() -> str:
    return str(uuid.uuid4())


class Base(DeclarativeBase):
    pass


class Word(Base):
    """
    A vocabulary item.

    mastery_level 5 retires the word from scheduling; next_review_date is
    NULL while retired.
    """

    __tablename__ = "words"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    learner_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)

    primary_text: Mapped[str] = mapped_column(Text, nullable=False)
    translated_text: Mapped[str] = mapped_column(Text, nullable=False)
    synonyms: Mapped[list[str]] = mapped_column(JSON, default=list)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)

    # Scheduling
    mastery_level: Mapped[int] = mapped_column(Integer, default=0)
    current_interval: Mapped[int] = mapped_column(Integer, default=1)
    last_review_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    next_review_date: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # {correct_count, attempt_count, last_score, average_response_seconds}
    input_history: Mapped[dict[str, Any] | None] = mapped_column(JSON)

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now())
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )

    reviews: Mapped[list[Review]] = relationship(
        back_populates="word", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_words_due", "learner_id", "mastery_level", "next_review_date"),
        Index("idx_words_created", "learner_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<Word {self.primary_text!r} level={self.mastery_level} due={self.next_review_date}>"


class Review(Base):
    """One answered item."""

    __tablename__ = "reviews"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    learner_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    word_id: Mapped[str] = mapped_column(
        ForeignKey("words.id", ondelete="CASCADE"), nullable=False, index=True
    )
    session_id: Mapped[str] = mapped_column(Text, nullable=False)

    rating: Mapped[int] = mapped_column(Integer, nullable=False)  # 1-4
    review_mode: Mapped[str] = mapped_column(Text, nullable=False)
    session_type: Mapped[str] = mapped_column(Text, nullable=False)
    direction: Mapped[str] = mapped_column(Text, nullable=False)
    user_input: Mapped[str | None] = mapped_column(Text)
    hints_used: Mapped[int] = mapped_column(Integer, default=0)
    time_spent: Mapped[float] = mapped_column(Float, default=0.0)  # seconds

    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=func.now())

    word: Mapped[Word] = relationship(back_populates="reviews")

    def __repr__(self) -> str:
        return f"<Review word={self.word_id} rating={self.rating} mode={self.review_mode}>"
