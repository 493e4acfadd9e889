"""
API data models. Single import surface for DB entities.

DB entities (pathway.models.models):
- User, ProgressDocument
"""

from pathway.models.models import (
    User,
    ProgressDocument,
)

__all__ = [
    "User",
    "ProgressDocument",
]
