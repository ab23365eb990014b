"""
FastAPI RESTful API for the Bookworm book tracker.

This module provides a REST API for:
- Account registration, login and reading shelves
- Catalog browsing and admin book management
- Review submission and moderation
- Personalized book recommendations
"""
