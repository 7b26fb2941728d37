"""
Pydantic models for forum request validation.
"""

from typing import Optional
from pydantic import BaseModel, Field


class CreateForumRequest(BaseModel):
    """Request body for opening a forum."""
    title: str
    description: str = Field("", max_length=500)
    category: str = Field("general", max_length=50)


class CreatePostRequest(BaseModel):
    """Request body for creating a forum post."""
    content: str
    title: Optional[str] = Field(None, max_length=200)


class AddCommentRequest(BaseModel):
    """Request body for commenting on a post."""
    content: str
