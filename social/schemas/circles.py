"""
Pydantic models for circle request validation.
"""

from typing import Optional
from pydantic import BaseModel, Field


class CreateCircleRequest(BaseModel):
    """Request body for creating a circle."""
    name: str = Field(..., min_length=1, max_length=100)
    goal: str = Field(..., min_length=1, max_length=100)
    tendency: Optional[str] = Field(None, max_length=100)
    maxMembers: Optional[int] = Field(None, ge=1)


class InviteToCircleRequest(BaseModel):
    """Request body for inviting a user to a circle."""
    toUserId: str = Field(..., min_length=1)
