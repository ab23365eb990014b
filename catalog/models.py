"""
Pydantic models for catalog documents.
Covers books, users and their shelves, reviews, genres and activity entries.
"""

from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional, Tuple

from bson import ObjectId
from pydantic import BaseModel, Field, validator


class ShelfName(str, Enum):
    """The three reading shelves a user owns."""
    WANT_TO_READ = "want_to_read"
    CURRENTLY_READING = "currently_reading"
    READ = "read"


class UserRole(str, Enum):
    """Enum for user roles."""
    USER = "user"
    ADMIN = "admin"


class ReviewStatus(str, Enum):
    """Enum for review moderation status."""
    PENDING = "pending"
    APPROVED = "approved"


class ActivityType(str, Enum):
    """Enum for activity feed entries."""
    SHELF_UPDATE = "shelf_update"
    NEW_REVIEW = "new_review"


def stringify_ids(document: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a raw Mongo document into plain data.

    `_id` becomes `id` and every ObjectId (top level, inside lists and inside
    embedded documents) becomes its hex string.
    """
    def convert(value):
        if isinstance(value, ObjectId):
            return str(value)
        if isinstance(value, list):
            return [convert(item) for item in value]
        if isinstance(value, dict):
            return {key: convert(item) for key, item in value.items()}
        return value

    data = {key: convert(value) for key, value in document.items() if key != "_id"}
    if "_id" in document:
        data["id"] = str(document["_id"])
    return data


def summarize_ratings(ratings: Iterable[int]) -> Tuple[float, int]:
    """
    Compute a book's rating summary from its approved review ratings.

    Returns:
        (average_rating, rating_count); the average is 0.0 when there are
        no ratings.

    The float mean is rounded to one decimal place half-up on its exact
    binary value, so 4.25 gives 4.3 while 87 / 20 (stored just below 4.35)
    gives 4.3.
    """
    ratings = list(ratings)
    if not ratings:
        return 0.0, 0

    mean = sum(ratings) / len(ratings)
    average = Decimal(mean).quantize(Decimal("0.1"), rounding=ROUND_HALF_UP)
    return float(average), len(ratings)


class Book(BaseModel):
    """Book as stored in the catalog."""
    id: str = Field(..., description="Unique book identifier")
    title: str = Field(..., description="Book title")
    author: str = Field(..., description="Book author")
    genre: Optional[str] = Field(None, description="Single genre label")
    description: Optional[str] = Field(None, description="Book description")
    cover_image: Optional[str] = Field(None, description="Cover image URL")
    average_rating: float = Field(0.0, ge=0, le=5, description="Mean of approved review ratings")
    rating_count: int = Field(0, ge=0, description="Number of approved reviews")
    shelved_count: int = Field(0, ge=0, description="Number of users holding the book on a shelf")
    added_by: Optional[str] = Field(None, description="Admin who added the book")
    created_at: Optional[datetime] = Field(None, description="Creation timestamp")
    updated_at: Optional[datetime] = Field(None, description="Last update timestamp")

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Book":
        return cls(**stringify_ids(document))


class BookCreate(BaseModel):
    """Payload for adding a book to the catalog."""
    title: str = Field(..., min_length=1, description="Book title")
    author: str = Field(..., min_length=1, description="Book author")
    genre: str = Field(..., min_length=1, description="Book genre")
    description: str = Field(..., description="Book description")
    cover_image: str = Field(..., description="Cover image URL")

    @validator('title', 'author', 'genre')
    def strip_text(cls, v):
        """Trim surrounding whitespace."""
        v = v.strip()
        if not v:
            raise ValueError('Field cannot be blank')
        return v

    class Config:
        """Pydantic configuration."""
        json_schema_extra = {
            "example": {
                "title": "The Hound of the Baskervilles",
                "author": "Arthur Conan Doyle",
                "genre": "Mystery",
                "description": "Sherlock Holmes investigates a legendary hound.",
                "cover_image": "https://example.com/covers/hound.jpg"
            }
        }


class BookUpdate(BaseModel):
    """Payload for editing a book; empty fields keep their stored value."""
    title: Optional[str] = None
    author: Optional[str] = None
    genre: Optional[str] = None
    description: Optional[str] = None
    cover_image: Optional[str] = None

    def changes(self) -> Dict[str, str]:
        """Fields that carry a non-empty value."""
        return {key: value for key, value in self.dict().items() if value}


class BookQueryParams(BaseModel):
    """Query parameters for the paginated book listing."""
    keyword: Optional[str] = Field(None, description="Search in title or author")
    genres: List[str] = Field(default_factory=list, description="Genre multi-select")
    min_rating: Optional[float] = Field(None, ge=0, le=5, description="Minimum average rating")
    max_rating: Optional[float] = Field(None, ge=0, le=5, description="Maximum average rating")
    sort_by: Optional[str] = Field(None, description="rating, most_shelved or newest")
    page: int = Field(1, ge=1, description="Page number")

    @validator('sort_by')
    def validate_sort_by(cls, v):
        """Ensure the sort key is known."""
        if v is not None and v not in ("rating", "most_shelved", "newest"):
            raise ValueError('sort_by must be one of: rating, most_shelved, newest')
        return v


class BookPage(BaseModel):
    """One page of the book listing."""
    books: List[Book]
    page: int
    pages: int
    count: int


class CurrentlyReadingEntry(BaseModel):
    """Book on the currently-reading shelf with reading progress."""
    book: str = Field(..., description="Book identifier")
    progress: int = Field(0, ge=0, description="Page number or percentage reached")
    total_length: int = Field(0, ge=0, description="Total pages")


class User(BaseModel):
    """User profile and shelves. Never carries the password hash."""
    id: str
    name: str
    email: str
    role: UserRole = UserRole.USER
    photo: Optional[str] = None
    want_to_read: List[str] = Field(default_factory=list)
    currently_reading: List[CurrentlyReadingEntry] = Field(default_factory=list)
    read: List[str] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "User":
        data = stringify_ids(document)
        data.pop("password", None)
        return cls(**data)

    def shelved_book_ids(self) -> List[str]:
        """Every book id on any of the three shelves."""
        return (
            list(self.want_to_read)
            + list(self.read)
            + [entry.book for entry in self.currently_reading]
        )


class CurrentlyReadingDetail(BaseModel):
    """Currently-reading entry with the book resolved."""
    book: Optional[Book]
    progress: int = 0
    total_length: int = 0


class Library(BaseModel):
    """A user's shelves with book details."""
    want_to_read: List[Book] = Field(default_factory=list)
    currently_reading: List[CurrentlyReadingDetail] = Field(default_factory=list)
    read: List[Book] = Field(default_factory=list)


class Review(BaseModel):
    """Review of a book by a user."""
    id: str
    user: str
    book: str
    rating: int = Field(..., ge=1, le=5)
    content: str
    status: ReviewStatus = ReviewStatus.PENDING
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Review":
        return cls(**stringify_ids(document))


class ReviewCreate(BaseModel):
    """Payload for submitting a review."""
    book_id: str = Field(..., description="Reviewed book")
    rating: int = Field(..., ge=1, le=5, description="Rating between 1 and 5")
    content: str = Field(..., min_length=1, description="Review text")


class ReviewSummary(BaseModel):
    """Review joined with reviewer (and, for moderation, book) details."""
    id: str
    user: Dict[str, Optional[str]]
    book: Optional[Dict[str, Optional[str]]] = None
    rating: int
    content: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "ReviewSummary":
        return cls(**stringify_ids(document))


class Genre(BaseModel):
    """Genre label managed by admins."""
    id: str
    name: str
    created_at: Optional[datetime] = None

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Genre":
        return cls(**stringify_ids(document))


class Activity(BaseModel):
    """Activity feed entry."""
    user: Dict[str, Optional[str]]
    book: Dict[str, Optional[str]]
    type: ActivityType
    details: Optional[str] = None
    timestamp: Optional[datetime] = None
    created_at: Optional[datetime] = None
