"""
Recommendation engine for personalized book suggestions.

This module provides:
- Cold-start recommendations (popular books plus random discovery)
- Personalized scoring by genre preference, rating quality, community
  review volume and shelf popularity
- Back-fill and discovery top-up to a fixed list size
"""

import random
from collections import Counter
from typing import Dict, Iterable, List, Optional, Protocol

import structlog

from catalog.exceptions import NotFoundError
from catalog.models import Book, User
from recommender.models import RecommendedBook, ScoredBook

logger = structlog.get_logger(__name__)

MAX_RECOMMENDATIONS = 18
RANKED_TARGET = 12
COLD_START_THRESHOLD = 3

POPULAR_LIMIT = 10
COLD_START_DISCOVERY = 8
DISCOVERY_TOP_UP = 6
TOP_GENRE_COUNT = 3

QUALITY_RATING = 3.5
HIGH_RATING = 4.0
MANY_REVIEWS = 5
SOME_REVIEWS = 2
POPULAR_SHELVED_COUNT = 10

DISCOVERY_REASON = "Discover something new"
REASON_SEPARATOR = " • "


class CatalogReader(Protocol):
    """Read queries the engine needs from the catalog store."""

    async def get_user(self, user_id: str) -> Optional[User]:
        ...

    async def get_books_by_ids(self, book_ids: Iterable[str]) -> List[Book]:
        ...

    async def find_books(
        self,
        exclude_ids: Iterable[str] = (),
        genres: Optional[Iterable[str]] = None,
        min_rating: Optional[float] = None,
        min_rating_count: Optional[int] = None,
        by_rating: bool = False,
        limit: Optional[int] = None
    ) -> List[Book]:
        ...

    async def count_approved_reviews(self, book_ids: Iterable[str]) -> Dict[str, int]:
        ...


def score_candidate(
    book: Book,
    top_genres: List[str],
    genre_counts: Dict[str, int],
    approved_reviews: int
) -> ScoredBook:
    """
    Score a candidate book against the reader's genre history.

    Args:
        book: Candidate book
        top_genres: Up to three most-read genres, most read first
        genre_counts: Number of read books per genre
        approved_reviews: Approved community reviews of the candidate

    Returns:
        ScoredBook with an additive integer score and its rationale
    """
    score = 0
    reasons = []

    if book.genre in top_genres:
        score += (TOP_GENRE_COUNT - top_genres.index(book.genre)) * 10
        read_count = genre_counts[book.genre]
        plural = "s" if read_count > 1 else ""
        reasons.append(f"Matches your preference for {book.genre} ({read_count} book{plural} read)")
    elif book.genre in genre_counts:
        score += 5
        reasons.append(f"Similar to {book.genre} books you've read")

    if book.average_rating >= HIGH_RATING:
        score += 15
        reasons.append(f"Highly rated ({book.average_rating:.1f}★)")
    elif book.average_rating >= QUALITY_RATING:
        score += 8

    if approved_reviews >= MANY_REVIEWS:
        score += 10
        reasons.append(f"{approved_reviews} community reviews")
    elif approved_reviews >= SOME_REVIEWS:
        score += 5

    if book.shelved_count >= POPULAR_SHELVED_COUNT:
        score += 5

    reason = REASON_SEPARATOR.join(reasons[:2]) if reasons else f"Recommended in {book.genre}"
    return ScoredBook(book=book, score=score, reason=reason)


class RecommendationEngine:
    """Builds a ranked, deduplicated recommendation list for one user."""

    def __init__(self, store: CatalogReader, rng: Optional[random.Random] = None):
        """
        Initialize the recommendation engine.

        Args:
            store: Catalog store used for every read
            rng: Random source for discovery sampling
        """
        self.store = store
        self.rng = rng or random.Random()
        self.logger = logger.bind(component="recommendation_engine")

    async def recommend(self, user_id: str) -> List[RecommendedBook]:
        """
        Recommend up to 18 books the user has not read.

        Users with fewer than three resolvable books on their read shelf get
        popular books followed by random discovery picks. Everyone else gets
        books from genres they have read, ranked by score, topped up with
        popular and random discovery picks.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self.store.get_user(user_id)
        if user is None:
            raise NotFoundError("User", user_id)

        read_ids = list(user.read)
        read_books = await self.store.get_books_by_ids(read_ids)

        if len(read_books) < COLD_START_THRESHOLD:
            path = "cold_start"
            picks = await self._cold_start(read_ids)
        else:
            path = "personalized"
            picks = await self._personalized(read_ids, read_books)

        recommendations = [pick.to_recommendation() for pick in picks[:MAX_RECOMMENDATIONS]]

        self.logger.info(
            "Recommendations generated",
            user_id=user_id,
            path=path,
            read_books=len(read_books),
            count=len(recommendations)
        )
        return recommendations

    async def _cold_start(self, read_ids: List[str]) -> List[ScoredBook]:
        popular = await self.store.find_books(
            exclude_ids=read_ids,
            min_rating=QUALITY_RATING,
            min_rating_count=1,
            by_rating=True,
            limit=POPULAR_LIMIT
        )
        others = await self.store.find_books(exclude_ids=read_ids + [book.id for book in popular])

        picks = [
            ScoredBook(
                book=book,
                score=0,
                reason=f"Popular choice with {book.rating_count} reviews ({book.average_rating:.1f}★)"
            )
            for book in popular
        ]
        picks.extend(self._discover(others, COLD_START_DISCOVERY))
        return picks

    async def _personalized(self, read_ids: List[str], read_books: List[Book]) -> List[ScoredBook]:
        genre_counts = Counter(book.genre for book in read_books if book.genre)
        top_genres = [genre for genre, _ in genre_counts.most_common(TOP_GENRE_COUNT)]

        candidates = []
        review_counts: Dict[str, int] = {}
        if genre_counts:
            candidates = await self.store.find_books(exclude_ids=read_ids, genres=list(genre_counts))
        if candidates:
            review_counts = await self.store.count_approved_reviews([book.id for book in candidates])

        scored = [
            score_candidate(book, top_genres, genre_counts, review_counts.get(book.id, 0))
            for book in candidates
        ]
        # sorted() is stable, so equal scores keep query order
        picks = sorted(scored, key=lambda pick: pick.score, reverse=True)[:RANKED_TARGET]

        self.logger.debug(
            "Scored candidates",
            top_genres=top_genres,
            candidates=len(candidates),
            ranked=len(picks)
        )

        if len(picks) < RANKED_TARGET:
            backfill = await self.store.find_books(
                exclude_ids=read_ids + [pick.book.id for pick in picks],
                min_rating=QUALITY_RATING,
                by_rating=True,
                limit=RANKED_TARGET - len(picks)
            )
            picks.extend(
                ScoredBook(book=book, score=0, reason=f"Popular choice ({book.average_rating:.1f}★)")
                for book in backfill
            )

        discovery_count = min(DISCOVERY_TOP_UP, MAX_RECOMMENDATIONS - len(picks))
        if discovery_count > 0:
            others = await self.store.find_books(
                exclude_ids=read_ids + [pick.book.id for pick in picks]
            )
            picks.extend(self._discover(others, discovery_count))

        return picks

    def _discover(self, books: List[Book], count: int) -> List[ScoredBook]:
        """Uniform sample without replacement, tagged as discovery picks."""
        sample = self.rng.sample(books, min(count, len(books)))
        return [ScoredBook(book=book, score=-1, reason=DISCOVERY_REASON) for book in sample]
