"""
Database Schemas

MongoDB collection schemas for Thread Nexus, defined as Pydantic models.
Each model is the fixed shape of one collection's documents and is validated
at the HTTP boundary before anything reaches a repository.

- User -> "users"
- Post -> "posts"
- Comment -> "comments"
- Report -> "reports"
- Tag -> "tags"
- Announcement -> "announcements"
"""
from datetime import datetime, timezone
from typing import List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    StrictFloat,
    StrictInt,
    field_validator,
    model_validator,
)

OBJECT_ID_PATTERN = r"^[0-9a-fA-F]{24}$"

MembershipStatus = Literal["free", "subscribed"]
UserRole = Literal["member", "admin"]
ReportStatus = Literal["pending", "ignored", "deleted"]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Author(BaseModel):
    name: Optional[str] = Field(None, description="Display name")
    email: EmailStr = Field(..., description="Author email address")
    image: Optional[str] = Field(None, description="Avatar URL")


# Accounts
class User(BaseModel):
    email: EmailStr = Field(..., description="Unique natural key")
    name: Optional[str] = Field(None, description="Display name")
    photo: Optional[str] = Field(None, description="Profile photo URL")
    membership_status: MembershipStatus = Field("free", description="free or subscribed")
    user_role: UserRole = Field("member", description="member or admin")


class UserCreate(BaseModel):
    """Sign-in payload; new accounts always start as free members."""
    email: EmailStr
    name: Optional[str] = None
    photo: Optional[str] = None

    def to_document(self) -> User:
        return User(**self.model_dump(exclude_none=True))


class UserPatch(BaseModel):
    membership_status: Optional[MembershipStatus] = None
    user_role: Optional[UserRole] = None

    @model_validator(mode="after")
    def _not_empty(self):
        if self.membership_status is None and self.user_role is None:
            raise ValueError("membership_status or user_role is required")
        return self


# Forum content
class Post(BaseModel):
    title: str = Field(..., min_length=1, description="Post title")
    description: str = Field(..., description="Post body")
    author: Author
    tags: List[str] = Field(default_factory=list, description="Tag labels")
    comments_count: int = Field(0, ge=0, description="Cached number of comments")
    upvote_count: int = Field(0, ge=0)
    downvote_count: int = Field(0, ge=0)
    time: datetime = Field(default_factory=utc_now, description="Creation time, sort key")

    @field_validator("tags")
    @classmethod
    def _strip_tags(cls, tags: List[str]) -> List[str]:
        return [t.strip() for t in tags if t and t.strip()]


class PostCreate(BaseModel):
    """Client payload for a new post; counters always start at zero."""
    title: str = Field(..., min_length=1)
    description: str
    author: Author
    tags: List[str] = Field(default_factory=list)
    time: Optional[datetime] = None

    def to_document(self) -> Post:
        data = self.model_dump(exclude_none=True)
        return Post(**data)


class Comment(BaseModel):
    postId: str = Field(..., pattern=OBJECT_ID_PATTERN, description="Parent post id")
    author: Author
    body: str = Field(..., min_length=1, description="Comment text")
    time: datetime = Field(default_factory=utc_now)


class Report(BaseModel):
    commentId: str = Field(..., pattern=OBJECT_ID_PATTERN, description="Offending comment id")
    postId: str = Field(..., pattern=OBJECT_ID_PATTERN, description="Parent post id")
    reporter: EmailStr = Field(..., description="Who filed the report")
    reason: str = Field(..., min_length=1, description="Feedback chosen by the reporter")
    comment: Optional[str] = Field(None, description="Snapshot of the reported text")
    status: ReportStatus = Field("pending", description="pending, ignored or deleted")
    time: datetime = Field(default_factory=utc_now)


class ReportCreate(BaseModel):
    commentId: str = Field(..., pattern=OBJECT_ID_PATTERN)
    postId: str = Field(..., pattern=OBJECT_ID_PATTERN)
    reporter: EmailStr
    reason: str = Field(..., min_length=1)
    comment: Optional[str] = None

    def to_document(self) -> Report:
        return Report(**self.model_dump(), status="pending")


class Tag(BaseModel):
    label: str = Field(..., min_length=1, description="Tag label")

    @field_validator("label")
    @classmethod
    def _strip(cls, label: str) -> str:
        label = label.strip()
        if not label:
            raise ValueError("label must not be blank")
        return label


class Announcement(BaseModel):
    title: str = Field(..., min_length=1)
    body: str = Field(..., min_length=1)
    author: Optional[Author] = None
    date: datetime = Field(default_factory=utc_now, description="Publication date, sort key")


# Auth and billing payloads
class TokenRequest(BaseModel):
    """Identity claims to sign; extra profile claims are carried through."""
    model_config = ConfigDict(extra="allow")

    email: EmailStr


class PaymentRequest(BaseModel):
    # strict: JSON true or "5" is not a price
    price: Union[StrictInt, StrictFloat] = Field(..., description="Price in major currency units")
