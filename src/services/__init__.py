"""Service layer: cached reads and cache-invalidating writes against the backend."""

from services.comments import CommentsService
from services.posts import PostsService
from services.profiles import ProfilesService
from services.projects import ProjectsService

__all__ = [
    "CommentsService",
    "PostsService",
    "ProfilesService",
    "ProjectsService",
]
