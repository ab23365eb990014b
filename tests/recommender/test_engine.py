"""
Test cases for the recommendation engine.
Covers cold-start and personalized paths, scoring, back-fill and discovery.
"""

import random

import pytest

from catalog.exceptions import NotFoundError
from catalog.models import Book
from recommender.engine import (
    DISCOVERY_REASON, MAX_RECOMMENDATIONS, RecommendationEngine, score_candidate
)
from recommender.models import RecommendedBook, ScoredBook


def read_shelf(catalog, genres):
    """Add one read book per genre entry and return their ids."""
    return [catalog.add_book(genre=genre, average_rating=3.0, rating_count=1).id for genre in genres]


class TestScoreCandidate:
    """Test cases for candidate scoring."""

    def test_top_genre_high_rating_many_reviews_popular(self):
        """Top genre, 4.2 stars, 6 approved reviews and 12 shelves scores 60."""
        book = Book(id="b1", title="T", author="A", genre="Mystery",
                    average_rating=4.2, rating_count=6, shelved_count=12)

        scored = score_candidate(book, ["Mystery", "History"], {"Mystery": 3, "History": 1}, 6)

        assert scored.score == 60
        assert scored.reason == "Matches your preference for Mystery (3 books read) • Highly rated (4.2★)"

    def test_genre_rank_weights(self):
        """Genres ranked 0, 1 and 2 earn 30, 20 and 10 points."""
        counts = {"A": 5, "B": 3, "C": 2}
        top = ["A", "B", "C"]
        scores = [
            score_candidate(Book(id=g, title="T", author="X", genre=g), top, counts, 0).score
            for g in top
        ]
        assert scores == [30, 20, 10]

    def test_secondary_genre(self):
        """A read genre outside the top three earns 5 points."""
        counts = {"A": 5, "B": 3, "C": 2, "D": 1}
        book = Book(id="d", title="T", author="X", genre="D")

        scored = score_candidate(book, ["A", "B", "C"], counts, 0)

        assert scored.score == 5
        assert scored.reason == "Similar to D books you've read"

    def test_singular_book_read(self):
        """One read book in a genre uses the singular form."""
        book = Book(id="h", title="T", author="X", genre="History")

        scored = score_candidate(book, ["History"], {"History": 1}, 0)

        assert scored.reason == "Matches your preference for History (1 book read)"

    def test_mid_rating_and_some_reviews_add_points_without_reasons(self):
        """3.5 to 4.0 stars adds 8 and 2 to 4 reviews adds 5, both silently."""
        book = Book(id="b", title="T", author="X", genre="D", average_rating=3.7)

        scored = score_candidate(book, ["A", "B", "C"], {"A": 3, "B": 2, "C": 2, "D": 1}, 3)

        assert scored.score == 5 + 8 + 5
        assert scored.reason == "Similar to D books you've read"

    def test_review_fragment_is_third_reason_and_dropped(self):
        """Only the first two reason fragments are kept."""
        book = Book(id="b", title="T", author="X", genre="A", average_rating=4.5)

        scored = score_candidate(book, ["A"], {"A": 2}, 9)

        assert scored.score == 30 + 15 + 10
        assert "community reviews" not in scored.reason
        assert scored.reason.count(" • ") == 1

    def test_review_fragment_when_second(self):
        """Review volume shows when the rating is not high."""
        book = Book(id="b", title="T", author="X", genre="A", average_rating=3.0)

        scored = score_candidate(book, ["A"], {"A": 2}, 5)

        assert scored.reason == "Matches your preference for A (2 books read) • 5 community reviews"

    def test_fallback_reason(self):
        """Without any fragment the reason names the genre."""
        book = Book(id="b", title="T", author="X", genre="Poetry", shelved_count=10)

        scored = score_candidate(book, ["A"], {"A": 2}, 0)

        assert scored.score == 5
        assert scored.reason == "Recommended in Poetry"

    def test_projection_strips_score(self):
        """Recommendations carry book fields and reason but no score."""
        book = Book(id="b", title="T", author="X", genre="A", average_rating=4.0)
        recommendation = ScoredBook(book=book, score=42, reason="because").to_recommendation()

        assert isinstance(recommendation, RecommendedBook)
        data = recommendation.dict()
        assert "score" not in data
        assert data["reason"] == "because"
        assert data["id"] == "b"
        assert data["average_rating"] == 4.0


class TestColdStart:
    """Test cases for users with fewer than three read books."""

    @pytest.mark.asyncio
    async def test_unknown_user(self, catalog, rng):
        """A user that does not resolve raises NotFoundError."""
        engine = RecommendationEngine(catalog, rng=rng)

        with pytest.raises(NotFoundError):
            await engine.recommend("000000000000000000000000")

    @pytest.mark.asyncio
    async def test_empty_catalog_returns_empty_list(self, catalog, rng):
        """No books is a valid, empty result."""
        user = catalog.add_user()
        engine = RecommendationEngine(catalog, rng=rng)

        assert await engine.recommend(user.id) == []

    @pytest.mark.asyncio
    async def test_five_popular_books(self, catalog, rng):
        """Five rated books all come back as popular choices."""
        for _ in range(5):
            catalog.add_book(genre="Fiction", average_rating=4.0, rating_count=2)
        user = catalog.add_user()
        engine = RecommendationEngine(catalog, rng=rng)

        result = await engine.recommend(user.id)

        assert len(result) == 5
        assert all(item.reason == "Popular choice with 2 reviews (4.0★)" for item in result)

    @pytest.mark.asyncio
    async def test_popular_then_discovery(self, catalog, rng):
        """Popular books come first, then up to 8 discovery picks."""
        for _ in range(5):
            catalog.add_book(genre="Fiction", average_rating=4.0, rating_count=2)
        for _ in range(12):
            catalog.add_book(genre="Fiction", average_rating=2.5, rating_count=3)
        catalog.add_book(genre="Fiction", average_rating=4.8, rating_count=0)
        user = catalog.add_user()
        engine = RecommendationEngine(catalog, rng=rng)

        result = await engine.recommend(user.id)

        assert len(result) == 13
        reasons = [item.reason for item in result]
        assert reasons[:5] == ["Popular choice with 2 reviews (4.0★)"] * 5
        assert reasons[5:] == [DISCOVERY_REASON] * 8

    @pytest.mark.asyncio
    async def test_popular_ordering_and_cap(self, catalog, rng):
        """At most 10 popular books, by rating then rating count."""
        ratings = [(3.5, 1), (4.9, 3), (4.9, 8), (3.9, 20), (4.1, 2), (3.6, 4),
                   (4.4, 1), (5.0, 1), (3.7, 7), (4.0, 9), (3.8, 2), (4.2, 5)]
        for rating, count in ratings:
            catalog.add_book(genre="Fiction", average_rating=rating, rating_count=count)
        user = catalog.add_user()
        engine = RecommendationEngine(catalog, rng=rng)

        result = await engine.recommend(user.id)
        popular = [item for item in result if item.reason != DISCOVERY_REASON]

        assert len(popular) == 10
        keys = [(item.average_rating, item.rating_count) for item in popular]
        assert keys == sorted(keys, reverse=True)
        assert keys[0] == (5.0, 1)
        assert keys[1] == (4.9, 8)
        assert len(result) == 12

    @pytest.mark.asyncio
    async def test_two_read_books_take_cold_start(self, catalog, rng):
        """Exactly two read books still take the cold-start path."""
        read_ids = read_shelf(catalog, ["Mystery", "Mystery"])
        catalog.add_book(genre="Mystery", average_rating=4.5, rating_count=3)
        user = catalog.add_user(read=read_ids)
        engine = RecommendationEngine(catalog, rng=rng)

        result = await engine.recommend(user.id)

        assert len(result) == 1
        assert result[0].reason == "Popular choice with 3 reviews (4.5★)"
        assert "count_approved_reviews" not in catalog.calls

    @pytest.mark.asyncio
    async def test_unresolved_read_ids_do_not_count(self, catalog, rng):
        """Read ids whose books no longer exist do not leave cold start."""
        read_ids = read_shelf(catalog, ["Mystery", "Mystery"]) + ["5f0000000000000000000000"]
        catalog.add_book(genre="Mystery", average_rating=4.5, rating_count=3)
        user = catalog.add_user(read=read_ids)
        engine = RecommendationEngine(catalog, rng=rng)

        result = await engine.recommend(user.id)

        assert result[0].reason.startswith("Popular choice with")

    @pytest.mark.asyncio
    async def test_never_exceeds_limit(self, catalog, rng):
        """A large catalog yields exactly 10 popular and 8 discovery books."""
        for index in range(40):
            catalog.add_book(genre="Fiction", average_rating=3.5 + (index % 15) / 10, rating_count=index + 1)
        user = catalog.add_user()
        engine = RecommendationEngine(catalog, rng=rng)

        result = await engine.recommend(user.id)

        assert len(result) == MAX_RECOMMENDATIONS
        assert len({item.id for item in result}) == MAX_RECOMMENDATIONS


class TestPersonalized:
    """Test cases for users with three or more read books."""

    @pytest.mark.asyncio
    async def test_three_read_books_take_personalized_path(self, catalog, rng):
        """Exactly three read books switch to personalized scoring."""
        read_ids = read_shelf(catalog, ["Mystery", "Mystery", "Mystery"])
        catalog.add_book(genre="Mystery", average_rating=4.5, rating_count=3)
        user = catalog.add_user(read=read_ids)
        engine = RecommendationEngine(catalog, rng=rng)

        result = await engine.recommend(user.id)

        assert len(result) == 1
        assert result[0].reason == "Matches your preference for Mystery (3 books read) • Highly rated (4.5★)"
        assert "count_approved_reviews" in catalog.calls

    @pytest.mark.asyncio
    async def test_mystery_reader_scenario(self, catalog, rng):
        """Three Mystery and one History read book rank the strong Mystery candidate first."""
        read_ids = read_shelf(catalog, ["Mystery", "Mystery", "Mystery", "History"])
        history = catalog.add_book(genre="History", average_rating=3.0, rating_count=1)
        mystery = catalog.add_book(genre="Mystery", average_rating=4.2, rating_count=6, shelved_count=12)
        catalog.approved_reviews[mystery.id] = 6
        user = catalog.add_user(read=read_ids)
        engine = RecommendationEngine(catalog, rng=rng)

        result = await engine.recommend(user.id)

        assert [item.id for item in result] == [mystery.id, history.id]
        assert result[0].reason == "Matches your preference for Mystery (3 books read) • Highly rated (4.2★)"
        assert result[1].reason == "Matches your preference for History (1 book read)"

    @pytest.mark.asyncio
    async def test_only_read_genres_are_candidates(self, catalog, rng):
        """Books from genres never read only show up through back-fill or discovery."""
        read_ids = read_shelf(catalog, ["Mystery"] * 3)
        catalog.add_book(genre="Romance", average_rating=2.0, rating_count=1)
        mystery = catalog.add_book(genre="Mystery", average_rating=2.0, rating_count=1)
        user = catalog.add_user(read=read_ids)
        engine = RecommendationEngine(catalog, rng=rng)

        result = await engine.recommend(user.id)

        assert result[0].id == mystery.id
        assert result[0].reason == "Matches your preference for Mystery (3 books read)"
        assert result[1].reason == DISCOVERY_REASON

    @pytest.mark.asyncio
    async def test_ranking_by_score(self, catalog, rng):
        """Higher scores come first and ties keep query order."""
        read_ids = read_shelf(catalog, ["A", "A", "A", "B", "B", "C", "D"])
        low = catalog.add_book(genre="D", average_rating=1.0)
        tie_first = catalog.add_book(genre="C", average_rating=1.0)
        tie_second = catalog.add_book(genre="C", average_rating=1.0)
        top = catalog.add_book(genre="A", average_rating=4.5)
        middle = catalog.add_book(genre="B", average_rating=3.6)
        user = catalog.add_user(read=read_ids)
        engine = RecommendationEngine(catalog, rng=rng)

        result = await engine.recommend(user.id)

        assert [item.id for item in result] == [top.id, middle.id, tie_first.id, tie_second.id, low.id]

    @pytest.mark.asyncio
    async def test_top_genre_ties_keep_first_seen_order(self, catalog, rng):
        """Genres read equally often rank in the order they were first read."""
        read_ids = read_shelf(catalog, ["X", "Y", "Z", "W"])
        w_book = catalog.add_book(genre="W")
        x_book = catalog.add_book(genre="X")
        user = catalog.add_user(read=read_ids)
        engine = RecommendationEngine(catalog, rng=rng)

        result = await engine.recommend(user.id)

        assert result[0].id == x_book.id
        assert result[1].id == w_book.id
        assert result[1].reason == "Similar to W books you've read"

    @pytest.mark.asyncio
    async def test_backfill_and_discovery(self, catalog, rng):
        """Four scored candidates are back-filled to 12 and topped up to 18."""
        read_ids = read_shelf(catalog, ["Poetry"] * 3)
        candidates = [catalog.add_book(genre="Poetry", average_rating=3.9, rating_count=2) for _ in range(4)]
        popular = [
            catalog.add_book(genre="Sci-Fi", average_rating=3.5 + index / 10, rating_count=index)
            for index in range(10)
        ]
        for _ in range(10):
            catalog.add_book(genre="Romance", average_rating=2.0, rating_count=1)
        user = catalog.add_user(read=read_ids)
        engine = RecommendationEngine(catalog, rng=rng)

        result = await engine.recommend(user.id)

        assert len(result) == 18
        assert {item.id for item in result[:4]} == {book.id for book in candidates}

        backfill = result[4:12]
        expected = sorted(popular, key=lambda book: book.average_rating, reverse=True)[:8]
        assert [item.id for item in backfill] == [book.id for book in expected]
        assert backfill[0].reason == "Popular choice (4.4★)"
        assert all(item.reason.startswith("Popular choice (") for item in backfill)

        assert all(item.reason == DISCOVERY_REASON for item in result[12:])
        assert len({item.id for item in result}) == 18
        assert not set(read_ids) & {item.id for item in result}

    @pytest.mark.asyncio
    async def test_full_ranked_list_skips_backfill(self, catalog, rng):
        """Twelve or more candidates need no back-fill; six discoveries follow."""
        read_ids = read_shelf(catalog, ["Fantasy"] * 3)
        for index in range(15):
            catalog.add_book(genre="Fantasy", average_rating=(index % 5) + 0.5)
        for _ in range(10):
            catalog.add_book(genre="History", average_rating=4.8, rating_count=9)
        user = catalog.add_user(read=read_ids)
        engine = RecommendationEngine(catalog, rng=rng)

        result = await engine.recommend(user.id)

        assert len(result) == 18
        assert all(item.genre == "Fantasy" for item in result[:12])
        assert all(item.reason == DISCOVERY_REASON for item in result[12:])
        assert all(not item.reason.startswith("Popular choice") for item in result)

    @pytest.mark.asyncio
    async def test_read_books_without_genre(self, catalog, rng):
        """Read books without a genre give no candidates, only back-fill."""
        read_ids = [catalog.add_book(genre=None).id for _ in range(3)]
        rated = catalog.add_book(genre="Drama", average_rating=4.0, rating_count=1)
        user = catalog.add_user(read=read_ids)
        engine = RecommendationEngine(catalog, rng=rng)

        result = await engine.recommend(user.id)

        assert [item.id for item in result] == [rated.id]
        assert result[0].reason == "Popular choice (4.0★)"
        assert "count_approved_reviews" not in catalog.calls


class TestRecommendationProperties:
    """Invariants that hold for any catalog."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("seed", range(20))
    async def test_invariants(self, catalog, seed):
        """Never a read book, never a duplicate, never a score, never more than 18."""
        generator = random.Random(seed)
        genres = ["Mystery", "History", "Fantasy", "Sci-Fi", "Romance", None]
        for _ in range(generator.randint(0, 45)):
            book = catalog.add_book(
                genre=generator.choice(genres),
                average_rating=round(generator.uniform(0, 5), 1),
                rating_count=generator.randint(0, 20),
                shelved_count=generator.randint(0, 25)
            )
            catalog.approved_reviews[book.id] = generator.randint(0, 8)

        read_ids = [book.id for book in generator.sample(catalog.books, min(len(catalog.books), generator.randint(0, 8)))]
        user = catalog.add_user(read=read_ids)
        engine = RecommendationEngine(catalog, rng=random.Random(seed))

        result = await engine.recommend(user.id)
        ids = [item.id for item in result]

        assert 0 <= len(result) <= MAX_RECOMMENDATIONS
        assert not set(ids) & set(read_ids)
        assert len(ids) == len(set(ids))
        for item in result:
            assert "score" not in item.dict()
            assert item.reason
