"""
Domain errors raised by the catalog store and the recommendation engine.
"""

from typing import Optional


class CatalogError(Exception):
    """Base class for catalog errors."""


class NotFoundError(CatalogError):
    """A referenced document does not exist."""

    def __init__(self, resource: str, resource_id: Optional[str] = None):
        self.resource = resource
        self.resource_id = resource_id
        message = f"{resource} not found"
        if resource_id:
            message = f"{resource} with id '{resource_id}' not found"
        super().__init__(message)


class DuplicateError(CatalogError):
    """A uniqueness rule would be violated."""
