"""
Data models for the sitehub MCP server.
"""

from typing import Literal, Optional, get_args

from pydantic import BaseModel, Field

ProjectStatus = Literal["announcement", "bidding", "award", "construction_start", "completion"]
UserRole = Literal["admin", "main_user", "vip_user", "user"]

USER_ROLES: tuple[str, ...] = get_args(UserRole)


# --- Backend Row Models ---

class Author(BaseModel):
    """Profile fields embedded in a post."""
    email: Optional[str] = None
    display_name: Optional[str] = None
    role: Optional[UserRole] = None


class Project(BaseModel):
    """A construction project."""
    id: str
    project_number: int
    name: str
    description: Optional[str] = None
    location: Optional[str] = None
    client: Optional[str] = None
    contract_amount: Optional[float] = None
    start_date: str = Field(description="ISO 8601 date")
    end_date: Optional[str] = None
    status: ProjectStatus = "announcement"
    created_by: Optional[str] = None
    created_at: str
    updated_at: str


class Post(BaseModel):
    """A board post with its author."""
    id: str
    title: str
    content: str
    author_id: str
    author: Optional[Author] = None
    created_at: str
    updated_at: Optional[str] = None


class PostRef(BaseModel):
    """Post fields embedded in a comment."""
    id: str
    title: str


class Comment(BaseModel):
    """A comment on a board post."""
    id: str
    post_id: str
    content: str
    author_id: str
    author: Optional[Author] = None
    post: Optional[PostRef] = None
    created_at: str


class Profile(BaseModel):
    """A user profile."""
    id: str
    email: str
    role: UserRole = "user"
    display_name: Optional[str] = None
    avatar_url: Optional[str] = None
    bio: Optional[str] = None
    created_at: str
    updated_at: Optional[str] = None


class RoleStats(BaseModel):
    """Profile counts per role."""
    total: int = 0
    admin: int = 0
    main_user: int = 0
    vip_user: int = 0
    user: int = 0


# --- Diagnostics ---

class CacheStats(BaseModel):
    """Snapshot of a MemoryCache for diagnostics."""
    name: str
    size: int = Field(description="Physical entry count, unswept expired entries included")
    keys: list[str] = Field(default_factory=list)
    default_ttl_ms: int
