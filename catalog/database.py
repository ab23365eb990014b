"""
MongoDB catalog store for async operations.
Handles connection, indexing, and CRUD operations for books, users, shelves,
reviews, genres and activities, plus the read queries behind recommendations.
"""

import math
import re
from datetime import datetime
from typing import Any, Dict, Iterable, List, Optional, Tuple

import structlog
from bson import ObjectId
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase
from pymongo import ASCENDING, DESCENDING
from pymongo.errors import ConnectionFailure, DuplicateKeyError

from .exceptions import DuplicateError, NotFoundError
from .models import (
    ActivityType, Book, BookCreate, BookPage, BookQueryParams, BookUpdate,
    CurrentlyReadingDetail, Genre, Library, Activity, Review, ReviewCreate,
    ReviewStatus, ReviewSummary, ShelfName, User, UserRole, summarize_ratings
)

logger = structlog.get_logger(__name__)

PAGE_SIZE = 12
ACTIVITY_FEED_SIZE = 20
DEFAULT_GENRES = [
    "Fiction", "Non-Fiction", "Mystery", "Sci-Fi",
    "Fantasy", "Romance", "History", "Technology",
]
SHELF_ACTIVITY_DETAILS = {
    ShelfName.WANT_TO_READ: "added to wishlist",
    ShelfName.CURRENTLY_READING: "started reading",
    ShelfName.READ: "finished reading",
    None: "removed from shelves",
}


def to_object_id(value: Any) -> Optional[ObjectId]:
    """Parse an identifier, returning None when it is not a valid ObjectId."""
    if isinstance(value, ObjectId):
        return value
    if isinstance(value, str) and ObjectId.is_valid(value):
        return ObjectId(value)
    return None


def to_object_ids(values: Iterable[Any]) -> List[ObjectId]:
    """Parse identifiers, dropping the malformed ones."""
    return [oid for oid in (to_object_id(value) for value in values) if oid is not None]


def _require_object_id(value: Any, resource: str) -> ObjectId:
    oid = to_object_id(value)
    if oid is None:
        raise NotFoundError(resource, str(value))
    return oid


class CatalogStore:
    """
    Async MongoDB store for the book catalog.
    Handles connection, indexing, and all document operations.
    """

    def __init__(self, connection_url: str, database_name: str):
        """
        Initialize the catalog store.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None

    @property
    def books(self):
        return self.database.books

    @property
    def users(self):
        return self.database.users

    @property
    def reviews(self):
        return self.database.reviews

    @property
    def genres(self):
        return self.database.genres

    @property
    def activities(self):
        return self.database.activities

    async def connect(self) -> None:
        """Establish connection to MongoDB."""
        try:
            self.client = AsyncIOMotorClient(self.connection_url)
            self.database = self.client[self.database_name]

            await self.client.admin.command('ping')
            logger.info("Successfully connected to MongoDB", database=self.database_name)

            await self._create_indexes()

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self) -> None:
        """Create indexes for uniqueness rules and the common query patterns."""
        try:
            await self.users.create_index("email", unique=True)

            # One review per (book, user)
            await self.reviews.create_index([("book", ASCENDING), ("user", ASCENDING)], unique=True)
            await self.reviews.create_index("status")

            await self.books.create_index("genre")
            await self.books.create_index([("average_rating", DESCENDING), ("rating_count", DESCENDING)])
            await self.books.create_index("shelved_count")
            await self.books.create_index("created_at")

            await self.genres.create_index("name", unique=True)
            await self.activities.create_index("created_at")

            logger.info("Successfully created MongoDB indexes")

        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    async def health_check(self) -> Dict:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.database.command("ping")
            books_count = await self.books.count_documents({})
            users_count = await self.users.count_documents({})

            return {
                "status": "healthy",
                "books_count": books_count,
                "users_count": users_count
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }

    # Books

    async def list_books(self, query_params: BookQueryParams) -> BookPage:
        """
        Get books with keyword search, genre and rating filters, sorting and pagination.

        Args:
            query_params: Query parameters for filtering and pagination

        Returns:
            BookPage with the requested page
        """
        try:
            filter_query: Dict[str, Any] = {}

            if query_params.keyword:
                pattern = re.escape(query_params.keyword)
                filter_query["$or"] = [
                    {"title": {"$regex": pattern, "$options": "i"}},
                    {"author": {"$regex": pattern, "$options": "i"}},
                ]

            if query_params.genres:
                filter_query["genre"] = {"$in": query_params.genres}

            if query_params.min_rating is not None or query_params.max_rating is not None:
                rating_filter = {}
                if query_params.min_rating is not None:
                    rating_filter["$gte"] = query_params.min_rating
                if query_params.max_rating is not None:
                    rating_filter["$lte"] = query_params.max_rating
                filter_query["average_rating"] = rating_filter

            if query_params.sort_by == "rating":
                sort_query = [("average_rating", DESCENDING), ("rating_count", DESCENDING)]
            elif query_params.sort_by == "most_shelved":
                sort_query = [("shelved_count", DESCENDING), ("created_at", DESCENDING)]
            else:
                sort_query = [("created_at", DESCENDING)]

            skip = (query_params.page - 1) * PAGE_SIZE

            count = await self.books.count_documents(filter_query)
            cursor = self.books.find(filter_query).sort(sort_query).skip(skip).limit(PAGE_SIZE)
            docs = await cursor.to_list(length=PAGE_SIZE)

            return BookPage(
                books=[Book.from_document(doc) for doc in docs],
                page=query_params.page,
                pages=math.ceil(count / PAGE_SIZE),
                count=count
            )

        except Exception as e:
            logger.error("Failed to list books", error=str(e), query_params=query_params.dict())
            raise

    async def get_book(self, book_id: str) -> Book:
        """
        Get a single book by ID.

        Raises:
            NotFoundError: If the book does not exist
        """
        oid = _require_object_id(book_id, "Book")
        try:
            doc = await self.books.find_one({"_id": oid})
        except Exception as e:
            logger.error("Failed to get book", book_id=book_id, error=str(e))
            raise

        if not doc:
            raise NotFoundError("Book", book_id)
        return Book.from_document(doc)

    async def create_book(self, payload: BookCreate, added_by: str) -> Book:
        """Insert a new book with zeroed rating and shelf counters."""
        now = datetime.utcnow()
        doc = {
            **payload.dict(),
            "added_by": to_object_id(added_by),
            "average_rating": 0.0,
            "rating_count": 0,
            "shelved_count": 0,
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = await self.books.insert_one(doc)
            created = await self.books.find_one({"_id": result.inserted_id})
            logger.info("Book created", book_id=str(result.inserted_id), title=payload.title)
            return Book.from_document(created)
        except Exception as e:
            logger.error("Failed to create book", title=payload.title, error=str(e))
            raise

    async def update_book(self, book_id: str, payload: BookUpdate) -> Book:
        """
        Overwrite the provided fields of a book.

        Raises:
            NotFoundError: If the book does not exist
        """
        oid = _require_object_id(book_id, "Book")
        update_data = payload.changes()
        update_data["updated_at"] = datetime.utcnow()
        try:
            result = await self.books.update_one({"_id": oid}, {"$set": update_data})
            if result.matched_count == 0:
                raise NotFoundError("Book", book_id)
            updated = await self.books.find_one({"_id": oid})
            logger.debug("Book updated", book_id=book_id, fields=sorted(update_data))
            return Book.from_document(updated)
        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Failed to update book", book_id=book_id, error=str(e))
            raise

    async def delete_book(self, book_id: str) -> None:
        """
        Delete a book.

        Raises:
            NotFoundError: If the book does not exist
        """
        oid = _require_object_id(book_id, "Book")
        try:
            result = await self.books.delete_one({"_id": oid})
        except Exception as e:
            logger.error("Failed to delete book", book_id=book_id, error=str(e))
            raise

        if result.deleted_count == 0:
            raise NotFoundError("Book", book_id)
        logger.info("Book deleted", book_id=book_id)

    async def get_books_by_ids(self, book_ids: Iterable[str]) -> List[Book]:
        """Get every existing book among the given identifiers."""
        oids = to_object_ids(book_ids)
        if not oids:
            return []
        try:
            cursor = self.books.find({"_id": {"$in": oids}})
            docs = await cursor.to_list(length=None)
            return [Book.from_document(doc) for doc in docs]
        except Exception as e:
            logger.error("Failed to get books by ids", count=len(oids), error=str(e))
            raise

    async def find_books(
        self,
        exclude_ids: Iterable[str] = (),
        genres: Optional[Iterable[str]] = None,
        min_rating: Optional[float] = None,
        min_rating_count: Optional[int] = None,
        by_rating: bool = False,
        limit: Optional[int] = None
    ) -> List[Book]:
        """
        Query books for recommendations.

        Args:
            exclude_ids: Book identifiers to leave out
            genres: Restrict to these genres (None for any genre)
            min_rating: Minimum average rating
            min_rating_count: Minimum number of approved ratings
            by_rating: Sort by average rating then rating count, both descending
            limit: Maximum number of books (None for all)

        Returns:
            List of matching books in query order
        """
        filter_query: Dict[str, Any] = {"_id": {"$nin": to_object_ids(exclude_ids)}}
        if genres is not None:
            filter_query["genre"] = {"$in": list(genres)}
        if min_rating is not None:
            filter_query["average_rating"] = {"$gte": min_rating}
        if min_rating_count is not None:
            filter_query["rating_count"] = {"$gte": min_rating_count}

        if limit is not None and limit <= 0:
            return []

        try:
            cursor = self.books.find(filter_query)
            if by_rating:
                cursor = cursor.sort([("average_rating", DESCENDING), ("rating_count", DESCENDING)])
            if limit is not None:
                cursor = cursor.limit(limit)
            docs = await cursor.to_list(length=limit)
            return [Book.from_document(doc) for doc in docs]
        except Exception as e:
            logger.error("Failed to find books", error=str(e), limit=limit, by_rating=by_rating)
            raise

    async def count_approved_reviews(self, book_ids: Iterable[str]) -> Dict[str, int]:
        """
        Count approved reviews per book in a single aggregation.

        Returns:
            Mapping of book id to approved review count; books without
            approved reviews are absent
        """
        oids = to_object_ids(book_ids)
        if not oids:
            return {}

        pipeline = [
            {"$match": {"book": {"$in": oids}, "status": ReviewStatus.APPROVED.value}},
            {"$group": {"_id": "$book", "review_count": {"$sum": 1}}},
        ]
        try:
            cursor = self.reviews.aggregate(pipeline)
            rows = await cursor.to_list(length=None)
            return {str(row["_id"]): row["review_count"] for row in rows}
        except Exception as e:
            logger.error("Failed to count approved reviews", count=len(oids), error=str(e))
            raise

    # Users

    async def create_user(
        self,
        name: str,
        email: str,
        password_hash: str,
        photo: Optional[str] = None
    ) -> User:
        """
        Register a user with empty shelves.

        Raises:
            DuplicateError: If the email is already registered
        """
        email = email.strip().lower()
        if await self.users.find_one({"email": email}):
            raise DuplicateError("User already exists")

        now = datetime.utcnow()
        doc = {
            "name": name,
            "email": email,
            "password": password_hash,
            "role": UserRole.USER.value,
            "photo": photo or "https://via.placeholder.com/150",
            "want_to_read": [],
            "currently_reading": [],
            "read": [],
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = await self.users.insert_one(doc)
        except DuplicateKeyError:
            raise DuplicateError("User already exists")
        except Exception as e:
            logger.error("Failed to create user", error=str(e))
            raise

        doc["_id"] = result.inserted_id
        logger.info("User registered", user_id=str(result.inserted_id))
        return User.from_document(doc)

    async def get_user(self, user_id: str) -> Optional[User]:
        """Get a user by ID, None when absent or malformed."""
        oid = to_object_id(user_id)
        if oid is None:
            return None
        try:
            doc = await self.users.find_one({"_id": oid})
            return User.from_document(doc) if doc else None
        except Exception as e:
            logger.error("Failed to get user", user_id=user_id, error=str(e))
            raise

    async def get_user_credentials(self, email: str) -> Optional[Tuple[User, str]]:
        """Get a user and their password hash by email, for login."""
        try:
            doc = await self.users.find_one({"email": email.strip().lower()})
        except Exception as e:
            logger.error("Failed to get user by email", error=str(e))
            raise

        if not doc:
            return None
        return User.from_document(doc), doc.get("password", "")

    async def list_users(self) -> List[User]:
        """Get all users without password hashes."""
        try:
            cursor = self.users.find({}, {"password": 0})
            docs = await cursor.to_list(length=None)
            return [User.from_document(doc) for doc in docs]
        except Exception as e:
            logger.error("Failed to list users", error=str(e))
            raise

    async def update_user_role(self, user_id: str, role: UserRole) -> None:
        """
        Change a user's role.

        Raises:
            NotFoundError: If the user does not exist
        """
        oid = _require_object_id(user_id, "User")
        try:
            result = await self.users.update_one(
                {"_id": oid},
                {"$set": {"role": role.value, "updated_at": datetime.utcnow()}}
            )
        except Exception as e:
            logger.error("Failed to update user role", user_id=user_id, error=str(e))
            raise

        if result.matched_count == 0:
            raise NotFoundError("User", user_id)
        logger.info("User role updated", user_id=user_id, role=role.value)

    async def delete_user(self, user_id: str) -> None:
        """
        Delete a user.

        Raises:
            NotFoundError: If the user does not exist
        """
        oid = _require_object_id(user_id, "User")
        try:
            result = await self.users.delete_one({"_id": oid})
        except Exception as e:
            logger.error("Failed to delete user", user_id=user_id, error=str(e))
            raise

        if result.deleted_count == 0:
            raise NotFoundError("User", user_id)
        logger.info("User deleted", user_id=user_id)

    # Shelves

    async def update_shelf(
        self,
        user_id: str,
        book_id: str,
        shelf: Optional[ShelfName],
        progress: int = 0,
        total_length: int = 0
    ) -> User:
        """
        Move a book onto one shelf (or off every shelf when shelf is None).

        The book is first removed from all three shelves, so it is never on
        more than one. The book's shelved_count goes up by one when it lands
        on a shelf from none and down by one when it leaves every shelf.

        Raises:
            NotFoundError: If the user or the book does not exist
        """
        user_oid = _require_object_id(user_id, "User")
        book_oid = _require_object_id(book_id, "Book")

        try:
            user_doc = await self.users.find_one({"_id": user_oid})
            if not user_doc:
                raise NotFoundError("User", user_id)
            if not await self.books.find_one({"_id": book_oid}, {"_id": 1}):
                raise NotFoundError("Book", book_id)

            want_to_read = user_doc.get("want_to_read") or []
            read = user_doc.get("read") or []
            currently_reading = user_doc.get("currently_reading") or []

            was_shelved = (
                book_oid in want_to_read
                or book_oid in read
                or any(entry.get("book") == book_oid for entry in currently_reading)
            )

            want_to_read = [oid for oid in want_to_read if oid != book_oid]
            read = [oid for oid in read if oid != book_oid]
            currently_reading = [entry for entry in currently_reading if entry.get("book") != book_oid]

            if shelf == ShelfName.WANT_TO_READ:
                want_to_read.append(book_oid)
            elif shelf == ShelfName.READ:
                read.append(book_oid)
            elif shelf == ShelfName.CURRENTLY_READING:
                currently_reading.append({
                    "book": book_oid,
                    "progress": progress or 0,
                    "total_length": total_length or 0,
                })

            now = datetime.utcnow()
            await self.users.update_one(
                {"_id": user_oid},
                {"$set": {
                    "want_to_read": want_to_read,
                    "read": read,
                    "currently_reading": currently_reading,
                    "updated_at": now,
                }}
            )

            is_shelved = shelf is not None
            if is_shelved and not was_shelved:
                await self.books.update_one({"_id": book_oid}, {"$inc": {"shelved_count": 1}})
            elif was_shelved and not is_shelved:
                await self.books.update_one(
                    {"_id": book_oid, "shelved_count": {"$gt": 0}},
                    {"$inc": {"shelved_count": -1}}
                )

            await self._record_activity(
                user_oid, book_oid, ActivityType.SHELF_UPDATE, SHELF_ACTIVITY_DETAILS[shelf]
            )

            updated = await self.users.find_one({"_id": user_oid})
            logger.debug(
                "Shelf updated",
                user_id=user_id,
                book_id=book_id,
                shelf=shelf.value if shelf else None
            )
            return User.from_document(updated)

        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Failed to update shelf", user_id=user_id, book_id=book_id, error=str(e))
            raise

    async def get_library(self, user_id: str) -> Library:
        """
        Get a user's three shelves with book details.

        Raises:
            NotFoundError: If the user does not exist
        """
        user = await self.get_user(user_id)
        if user is None:
            raise NotFoundError("User", user_id)

        books = {book.id: book for book in await self.get_books_by_ids(user.shelved_book_ids())}

        return Library(
            want_to_read=[books[book_id] for book_id in user.want_to_read if book_id in books],
            currently_reading=[
                CurrentlyReadingDetail(
                    book=books.get(entry.book),
                    progress=entry.progress,
                    total_length=entry.total_length
                )
                for entry in user.currently_reading
            ],
            read=[books[book_id] for book_id in user.read if book_id in books],
        )

    # Reviews

    async def create_review(self, user_id: str, payload: ReviewCreate) -> Review:
        """
        Submit a pending review.

        Raises:
            NotFoundError: If the book does not exist
            DuplicateError: If the user already reviewed the book
        """
        user_oid = _require_object_id(user_id, "User")
        book_oid = _require_object_id(payload.book_id, "Book")

        if not await self.books.find_one({"_id": book_oid}, {"_id": 1}):
            raise NotFoundError("Book", payload.book_id)

        if await self.reviews.find_one({"user": user_oid, "book": book_oid}):
            raise DuplicateError("Book already reviewed")

        now = datetime.utcnow()
        doc = {
            "user": user_oid,
            "book": book_oid,
            "rating": payload.rating,
            "content": payload.content,
            "status": ReviewStatus.PENDING.value,
            "created_at": now,
            "updated_at": now,
        }
        try:
            result = await self.reviews.insert_one(doc)
        except DuplicateKeyError:
            raise DuplicateError("Book already reviewed")
        except Exception as e:
            logger.error("Failed to create review", book_id=payload.book_id, error=str(e))
            raise

        doc["_id"] = result.inserted_id
        await self._record_activity(
            user_oid, book_oid, ActivityType.NEW_REVIEW, f"rated it {payload.rating}/5"
        )
        logger.info("Review submitted", review_id=str(result.inserted_id), book_id=payload.book_id)
        return Review.from_document(doc)

    async def get_book_reviews(self, book_id: str) -> List[ReviewSummary]:
        """Get approved reviews of a book with reviewer name and photo."""
        oid = _require_object_id(book_id, "Book")
        pipeline = [
            {"$match": {"book": oid, "status": ReviewStatus.APPROVED.value}},
            {"$lookup": {
                "from": "users",
                "localField": "user",
                "foreignField": "_id",
                "as": "user_details",
            }},
            {"$unwind": "$user_details"},
            {"$project": {
                "user": {"name": "$user_details.name", "photo": "$user_details.photo"},
                "rating": 1,
                "content": 1,
                "created_at": 1,
            }},
        ]
        try:
            rows = await self.reviews.aggregate(pipeline).to_list(length=None)
            return [ReviewSummary.from_document(row) for row in rows]
        except Exception as e:
            logger.error("Failed to get book reviews", book_id=book_id, error=str(e))
            raise

    async def get_pending_reviews(self) -> List[ReviewSummary]:
        """Get reviews awaiting moderation with reviewer name and book title."""
        pipeline = [
            {"$match": {"status": ReviewStatus.PENDING.value}},
            {"$lookup": {
                "from": "users",
                "localField": "user",
                "foreignField": "_id",
                "as": "user_details",
            }},
            {"$lookup": {
                "from": "books",
                "localField": "book",
                "foreignField": "_id",
                "as": "book_details",
            }},
            {"$unwind": "$user_details"},
            {"$unwind": "$book_details"},
            {"$project": {
                "user": {"name": "$user_details.name"},
                "book": {"title": "$book_details.title"},
                "rating": 1,
                "content": 1,
                "created_at": 1,
            }},
        ]
        try:
            rows = await self.reviews.aggregate(pipeline).to_list(length=None)
            return [ReviewSummary.from_document(row) for row in rows]
        except Exception as e:
            logger.error("Failed to get pending reviews", error=str(e))
            raise

    async def approve_review(self, review_id: str) -> Tuple[float, int]:
        """
        Approve a review and refresh the rating summary of its book.

        Returns:
            The book's new (average_rating, rating_count)

        Raises:
            NotFoundError: If the review does not exist
        """
        oid = _require_object_id(review_id, "Review")
        try:
            review = await self.reviews.find_one({"_id": oid})
            if not review:
                raise NotFoundError("Review", review_id)

            await self.reviews.update_one(
                {"_id": oid},
                {"$set": {"status": ReviewStatus.APPROVED.value, "updated_at": datetime.utcnow()}}
            )
            summary = await self._refresh_book_rating(review["book"])
            logger.info(
                "Review approved",
                review_id=review_id,
                book_id=str(review["book"]),
                average_rating=summary[0],
                rating_count=summary[1]
            )
            return summary

        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Failed to approve review", review_id=review_id, error=str(e))
            raise

    async def delete_review(self, review_id: str) -> None:
        """
        Delete a review; the book's rating summary is refreshed if it was approved.

        Raises:
            NotFoundError: If the review does not exist
        """
        oid = _require_object_id(review_id, "Review")
        try:
            review = await self.reviews.find_one_and_delete({"_id": oid})
            if not review:
                raise NotFoundError("Review", review_id)

            if review.get("status") == ReviewStatus.APPROVED.value:
                await self._refresh_book_rating(review["book"])
            logger.info("Review deleted", review_id=review_id)

        except NotFoundError:
            raise
        except Exception as e:
            logger.error("Failed to delete review", review_id=review_id, error=str(e))
            raise

    async def _refresh_book_rating(self, book_oid: ObjectId) -> Tuple[float, int]:
        cursor = self.reviews.find(
            {"book": book_oid, "status": ReviewStatus.APPROVED.value},
            {"rating": 1}
        )
        approved = await cursor.to_list(length=None)
        average_rating, rating_count = summarize_ratings(doc["rating"] for doc in approved)

        await self.books.update_one(
            {"_id": book_oid},
            {"$set": {"average_rating": average_rating, "rating_count": rating_count}}
        )
        return average_rating, rating_count

    # Genres

    async def list_genres(self) -> List[Genre]:
        """Get all genres, seeding the defaults into an empty collection."""
        try:
            docs = await self.genres.find({}).to_list(length=None)
            if not docs:
                now = datetime.utcnow()
                await self.genres.insert_many([{"name": name, "created_at": now} for name in DEFAULT_GENRES])
                logger.info("Seeded default genres", count=len(DEFAULT_GENRES))
                docs = await self.genres.find({}).to_list(length=None)
            return [Genre.from_document(doc) for doc in docs]
        except Exception as e:
            logger.error("Failed to list genres", error=str(e))
            raise

    async def create_genre(self, name: str) -> Genre:
        """
        Add a genre.

        Raises:
            DuplicateError: If the genre already exists
        """
        if await self.genres.find_one({"name": name}):
            raise DuplicateError("Genre already exists")

        doc = {"name": name, "created_at": datetime.utcnow()}
        try:
            result = await self.genres.insert_one(doc)
        except DuplicateKeyError:
            raise DuplicateError("Genre already exists")
        except Exception as e:
            logger.error("Failed to create genre", name=name, error=str(e))
            raise

        doc["_id"] = result.inserted_id
        return Genre.from_document(doc)

    async def delete_genre(self, genre_id: str) -> None:
        """
        Delete a genre.

        Raises:
            NotFoundError: If the genre does not exist
        """
        oid = _require_object_id(genre_id, "Genre")
        try:
            result = await self.genres.delete_one({"_id": oid})
        except Exception as e:
            logger.error("Failed to delete genre", genre_id=genre_id, error=str(e))
            raise

        if result.deleted_count == 0:
            raise NotFoundError("Genre", genre_id)

    # Activities and statistics

    async def _record_activity(
        self,
        user_oid: ObjectId,
        book_oid: ObjectId,
        activity_type: ActivityType,
        details: str
    ) -> None:
        now = datetime.utcnow()
        await self.activities.insert_one({
            "user": user_oid,
            "type": activity_type.value,
            "book": book_oid,
            "details": details,
            "timestamp": now,
            "created_at": now,
            "updated_at": now,
        })

    async def get_activities(self, limit: int = ACTIVITY_FEED_SIZE) -> List[Activity]:
        """Get the most recent activities with user and book details."""
        pipeline = [
            {"$lookup": {
                "from": "users",
                "localField": "user",
                "foreignField": "_id",
                "as": "user_details",
            }},
            {"$unwind": "$user_details"},
            {"$lookup": {
                "from": "books",
                "localField": "book",
                "foreignField": "_id",
                "as": "book_details",
            }},
            {"$unwind": "$book_details"},
            {"$project": {
                "_id": 0,
                "user": {"name": "$user_details.name", "photo": "$user_details.photo"},
                "book": {"title": "$book_details.title", "cover_image": "$book_details.cover_image"},
                "type": 1,
                "details": 1,
                "timestamp": 1,
                "created_at": 1,
            }},
            {"$sort": {"created_at": -1}},
            {"$limit": limit},
        ]
        try:
            rows = await self.activities.aggregate(pipeline).to_list(length=limit)
            return [Activity(**row) for row in rows]
        except Exception as e:
            logger.error("Failed to get activities", error=str(e))
            raise

    async def get_stats(self) -> Dict[str, Any]:
        """Get catalog-wide counts and the genre distribution."""
        try:
            total_books = await self.books.count_documents({})
            total_users = await self.users.count_documents({})
            total_reviews = await self.reviews.count_documents({})
            pending_reviews = await self.reviews.count_documents({"status": ReviewStatus.PENDING.value})

            genre_distribution = await self.books.aggregate([
                {"$group": {"_id": "$genre", "count": {"$sum": 1}}},
                {"$project": {"name": "$_id", "value": "$count", "_id": 0}},
            ]).to_list(length=None)

            return {
                "total_books": total_books,
                "total_users": total_users,
                "total_reviews": total_reviews,
                "pending_reviews": pending_reviews,
                "genre_distribution": genre_distribution,
            }
        except Exception as e:
            logger.error("Failed to get stats", error=str(e))
            raise
