"""
Pytest configuration and shared fixtures.
"""

import random
from typing import Dict, Iterable, List, Optional
from unittest.mock import AsyncMock, MagicMock

import pytest
from bson import ObjectId

from catalog.database import CatalogStore
from catalog.models import Book, User, UserRole


class InMemoryCatalog:
    """
    Catalog double holding books, users and approved review counts in memory.

    Implements the read queries the recommendation engine uses with the same
    filter, sort and limit semantics as the MongoDB store.
    """

    def __init__(self):
        self.books: List[Book] = []
        self.users: Dict[str, User] = {}
        self.approved_reviews: Dict[str, int] = {}
        self.calls: List[str] = []

    def add_book(self, **fields) -> Book:
        fields.setdefault("id", str(ObjectId()))
        fields.setdefault("title", f"Book {len(self.books) + 1}")
        fields.setdefault("author", "Author")
        book = Book(**fields)
        self.books.append(book)
        return book

    def add_user(self, read: Iterable[str] = (), **fields) -> User:
        fields.setdefault("id", str(ObjectId()))
        fields.setdefault("name", "Reader")
        fields.setdefault("email", f"reader{len(self.users)}@example.com")
        user = User(read=list(read), **fields)
        self.users[user.id] = user
        return user

    async def get_user(self, user_id: str) -> Optional[User]:
        self.calls.append("get_user")
        return self.users.get(user_id)

    async def get_books_by_ids(self, book_ids: Iterable[str]) -> List[Book]:
        self.calls.append("get_books_by_ids")
        wanted = set(book_ids)
        return [book for book in self.books if book.id in wanted]

    async def find_books(
        self,
        exclude_ids: Iterable[str] = (),
        genres: Optional[Iterable[str]] = None,
        min_rating: Optional[float] = None,
        min_rating_count: Optional[int] = None,
        by_rating: bool = False,
        limit: Optional[int] = None
    ) -> List[Book]:
        self.calls.append("find_books")
        excluded = set(exclude_ids)
        genres = set(genres) if genres is not None else None

        matches = [
            book for book in self.books
            if book.id not in excluded
            and (genres is None or book.genre in genres)
            and (min_rating is None or book.average_rating >= min_rating)
            and (min_rating_count is None or book.rating_count >= min_rating_count)
        ]
        if by_rating:
            matches.sort(key=lambda book: (book.average_rating, book.rating_count), reverse=True)
        if limit is not None:
            matches = matches[:limit]
        return matches

    async def count_approved_reviews(self, book_ids: Iterable[str]) -> Dict[str, int]:
        self.calls.append("count_approved_reviews")
        return {
            book_id: self.approved_reviews[book_id]
            for book_id in book_ids
            if self.approved_reviews.get(book_id)
        }


@pytest.fixture
def catalog():
    """Empty in-memory catalog."""
    return InMemoryCatalog()


@pytest.fixture
def rng():
    """Seeded random source for discovery sampling."""
    return random.Random(1234)


@pytest.fixture
def mock_catalog_store():
    """Create a mock catalog store for API testing."""
    store = AsyncMock(spec=CatalogStore)
    store.get_user.return_value = None
    return store


@pytest.fixture
def sample_user():
    """Regular user."""
    return User(
        id=str(ObjectId()),
        name="Test Reader",
        email="reader@example.com",
        role=UserRole.USER
    )


@pytest.fixture
def admin_user():
    """Admin user."""
    return User(
        id=str(ObjectId()),
        name="Test Admin",
        email="admin@example.com",
        role=UserRole.ADMIN
    )


@pytest.fixture
def sample_book():
    """Book with a rating summary."""
    return Book(
        id=str(ObjectId()),
        title="The Hound of the Baskervilles",
        author="Arthur Conan Doyle",
        genre="Mystery",
        description="Sherlock Holmes investigates a legendary hound.",
        cover_image="https://example.com/covers/hound.jpg",
        average_rating=4.2,
        rating_count=6,
        shelved_count=12
    )


def make_cursor(documents: List[dict]) -> MagicMock:
    """Motor-style cursor whose chained calls return itself."""
    cursor = MagicMock()
    cursor.sort.return_value = cursor
    cursor.skip.return_value = cursor
    cursor.limit.return_value = cursor
    cursor.to_list = AsyncMock(return_value=documents)
    return cursor


@pytest.fixture
def mock_database():
    """Mock Motor database whose collections are MagicMocks with async CRUD methods."""
    database = MagicMock()
    for name in ("books", "users", "reviews", "genres", "activities"):
        collection = getattr(database, name)
        for method in (
            "find_one", "insert_one", "insert_many", "update_one", "delete_one",
            "find_one_and_delete", "count_documents", "create_index",
        ):
            setattr(collection, method, AsyncMock())
    database.command = AsyncMock(return_value={"ok": 1})
    return database


@pytest.fixture
def store(mock_database):
    """CatalogStore wired to the mock database."""
    catalog_store = CatalogStore("mongodb://localhost:27017", "bookworm_test")
    catalog_store.database = mock_database
    return catalog_store
