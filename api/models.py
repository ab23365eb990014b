"""
API request and response schemas for the FastAPI application.
"""

from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, validator

from catalog.models import ShelfName, User


class RegisterRequest(BaseModel):
    """Payload for creating an account."""
    name: str = Field(..., min_length=1, description="Display name")
    email: EmailStr = Field(..., description="Login email")
    password: str = Field(..., min_length=6, description="Plain-text password")
    photo: Optional[str] = Field(None, description="Avatar URL")

    @validator('email')
    def normalize_email(cls, v):
        """Emails are stored lower-cased."""
        return v.lower()


class LoginRequest(BaseModel):
    """Payload for logging in."""
    email: EmailStr
    password: str

    @validator('email')
    def normalize_email(cls, v):
        """Emails are stored lower-cased."""
        return v.lower()


class AuthResponse(BaseModel):
    """Authenticated user plus the issued token."""
    user: User
    token: str


class ShelfUpdateRequest(BaseModel):
    """Move a book onto a shelf; a null shelf removes it from all shelves."""
    book_id: str = Field(..., description="Book to move")
    shelf: Optional[ShelfName] = Field(None, description="Target shelf")
    progress: int = Field(0, ge=0, description="Reading progress for currently_reading")
    total_length: int = Field(0, ge=0, description="Total pages for currently_reading")


class RoleUpdateRequest(BaseModel):
    """Payload for changing a user's role."""
    role: str


class GenreCreate(BaseModel):
    """Payload for adding a genre."""
    name: str = Field(..., min_length=1)

    @validator('name')
    def strip_name(cls, v):
        """Trim surrounding whitespace."""
        v = v.strip()
        if not v:
            raise ValueError('name cannot be blank')
        return v


class ApprovalResponse(BaseModel):
    """Result of approving a review."""
    message: str
    average_rating: float
    rating_count: int


class GenreCount(BaseModel):
    """Number of books in one genre."""
    name: Optional[str]
    value: int


class StatsResponse(BaseModel):
    """Admin dashboard statistics."""
    total_books: int
    total_users: int
    total_reviews: int
    pending_reviews: int
    genre_distribution: List[GenreCount]


class MessageResponse(BaseModel):
    """Plain confirmation message."""
    message: str


class ErrorResponse(BaseModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(BaseModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
