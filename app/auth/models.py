# =============================================================================
# app/auth/models.py - Authentication Models
# =============================================================================
# Pydantic models for authentication data.
# =============================================================================

from typing import Optional
from uuid import UUID

from pydantic import BaseModel


class AuthUser(BaseModel):
    """
    Authenticated user extracted from a bearer JWT.

    This is the minimal user info available from the token itself,
    without querying the database. Its `id` becomes a location's owner_id.
    """
    id: UUID
    email: Optional[str] = None
    role: Optional[str] = None

    class Config:
        frozen = True  # Make immutable
