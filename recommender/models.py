"""
Models for recommendation output.
"""

from dataclasses import dataclass

from pydantic import Field

from catalog.models import Book


class RecommendedBook(Book):
    """Book recommended to a user, with the rationale shown next to it."""
    reason: str = Field(..., description="Human-readable recommendation rationale")


@dataclass
class ScoredBook:
    """Recommendation candidate while it is being ranked. Never serialized."""

    book: Book
    score: int
    reason: str

    def to_recommendation(self) -> RecommendedBook:
        return RecommendedBook(**self.book.dict(), reason=self.reason)
