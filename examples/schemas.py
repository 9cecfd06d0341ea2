from pydantic import BaseModel
from typing import Optional
import datetime
from enum import Enum


class StatusEnum(str, Enum):
    DRAFT = "draft"
    PUBLISHED = "published"
    ARCHIVED = "archived"


# -------------------
# User Schemas
# -------------------

class UserResponse(BaseModel):
    id: int
    name: str
    email: str

    class Config:
        from_attributes = True


# -------------------
# Post Schemas
# -------------------

class PostBase(BaseModel):
    title: str
    body: Optional[str] = None
    is_active: bool = True
    is_featured: bool = False
    status: StatusEnum
    user_id: int


class PostResponse(PostBase):
    id: int
    published_at: Optional[datetime.datetime] = None
    created_at: datetime.datetime
    user: Optional[UserResponse]

    class Config:
        from_attributes = True
