#!/usr/bin/env python3
"""
sitehub-mcp: The Construction Site Hub MCP Server

Provides access to projects, board posts, comments and user profiles stored in a
PostgREST backend. Reads are memoized in per-domain TTL caches; writes
invalidate the cache of the domain they touch.

Environment variables:
    SUPABASE_URL: Backend base URL
    SUPABASE_KEY: Backend API key
    CACHE_DEFAULT_TTL_MS: Projects/profiles cache TTL in ms (default: 300000)
    POSTS_CACHE_TTL_MS: Posts/comments cache TTL in ms (default: 60000)
    LOG_LEVEL: Log level (default: INFO)
"""

import logging
from typing import Optional

from mcp.server.fastmcp import FastMCP
from mcp.shared.exceptions import McpError
from mcp.types import ErrorData
from pydantic import ValidationError

from cache import CacheOptions, MemoryCache
from config import configure_logging, settings
from fetch import BackendClient, BackendError, NotFoundError
from models import USER_ROLES, CacheStats, Comment, Post, Profile, Project
from services import CommentsService, PostsService, ProfilesService, ProjectsService

logger = logging.getLogger(__name__)

mcp = FastMCP(
    "sitehub-mcp",
    instructions="""Sitehub MCP Server - Projects, posts, comments and users of a construction site hub.

Tools:
- list_projects(status?) → Projects, newest first
- get_project(id_or_number) → One project by UUID or project number
- create_project / update_project / delete_project → Project writes
- list_posts(limit?, author_id?) → Board posts with authors
- get_post(post_id) / create_post / update_post / delete_post → Single post access
- list_comments(post_id?, author_id?) / create_comment / delete_comment → Post comments
- list_users() / get_user(user_id) / user_role_stats() → Profiles
- update_user_role(user_id, role) → Promote or demote a user
- cache_stats() / cache_cleanup() / cache_invalidate(cache_name?) → Cache maintenance""",
)

backend = BackendClient(settings.rest_url, settings.supabase_key, timeout=settings.http_timeout)

projects_cache = MemoryCache(CacheOptions(name="projects", default_ttl_ms=settings.cache_default_ttl_ms))
posts_cache = MemoryCache(CacheOptions(name="posts", default_ttl_ms=settings.posts_cache_ttl_ms))
profiles_cache = MemoryCache(CacheOptions(name="profiles", default_ttl_ms=settings.cache_default_ttl_ms))
comments_cache = MemoryCache(CacheOptions(name="comments", default_ttl_ms=settings.posts_cache_ttl_ms))

CACHES: dict[str, MemoryCache] = {
    c.name: c for c in (projects_cache, posts_cache, profiles_cache, comments_cache)
}

projects = ProjectsService(backend, projects_cache)
posts = PostsService(backend, posts_cache)
profiles = ProfilesService(backend, profiles_cache)
comments = CommentsService(backend, comments_cache)


# --- Helper Functions ---


def _invalid_params(message: str) -> McpError:
    return McpError(ErrorData(code=-32602, message=message))


def _backend_failure(e: Exception) -> McpError:
    return McpError(ErrorData(code=-32603, message=f"Backend request failed: {str(e)}"))


def _format_project(p: Project) -> str:
    period = p.start_date + (f" ~ {p.end_date}" if p.end_date else "")
    line = f"- #{p.project_number} `{p.id}` {p.name} [{p.status}] ({period})"
    if p.location:
        line += f" @ {p.location}"
    return line


def _format_post(p: Post) -> str:
    author = (p.author.display_name or p.author.email) if p.author else None
    return f"- `{p.id}` {p.title} by {author or p.author_id} ({p.created_at})"


def _format_comment(c: Comment) -> str:
    author = c.author.email if c.author and c.author.email else c.author_id
    on_post = f" on \"{c.post.title}\"" if c.post else ""
    return f"- `{c.id}` {author}{on_post}: {c.content}"


def _format_profile(u: Profile) -> str:
    name = f" ({u.display_name})" if u.display_name else ""
    return f"- `{u.id}` {u.email}{name} [{u.role}]"


def _stats(cache: MemoryCache) -> CacheStats:
    return CacheStats(
        name=cache.name, size=cache.size(), keys=cache.keys(), default_ttl_ms=cache.default_ttl_ms
    )


# --- Project Tools ---


@mcp.tool()
async def list_projects(status: Optional[str] = None) -> str:
    """
    List projects, newest first.

    Args:
        status: Optional status filter (announcement, bidding, award, construction_start, completion)

    Returns:
        Markdown list of projects.
    """
    try:
        items = await (projects.get_projects_by_status(status) if status else projects.get_projects())
    except (BackendError, ValidationError) as e:
        raise _backend_failure(e)

    title = f"# Projects ({status})" if status else "# Projects"
    if not items:
        return f"{title}\n\nNo projects found."
    return "\n".join([title, ""] + [_format_project(p) for p in items])


@mcp.tool()
async def get_project(id_or_number: str) -> str:
    """
    Get a single project.

    Args:
        id_or_number: Project UUID or numeric project number

    Returns:
        Project details as JSON.
    """
    try:
        project = await projects.get_project(id_or_number)
    except (BackendError, ValidationError) as e:
        raise _backend_failure(e)

    if project is None:
        raise _invalid_params(f"Project '{id_or_number}' not found")
    return project.model_dump_json(indent=2)


@mcp.tool()
async def create_project(
    name: str,
    start_date: str,
    description: Optional[str] = None,
    location: Optional[str] = None,
    client: Optional[str] = None,
    contract_amount: Optional[float] = None,
    end_date: Optional[str] = None,
    status: Optional[str] = None,
    created_by: Optional[str] = None,
) -> str:
    """
    Create a project. Status defaults to 'announcement'.

    Returns:
        The created project as JSON.
    """
    data = {
        "name": name,
        "start_date": start_date,
        "description": description,
        "location": location,
        "client": client,
        "contract_amount": contract_amount,
        "end_date": end_date,
        "status": status,
    }
    try:
        project = await projects.create_project(data, created_by=created_by)
    except (BackendError, ValidationError) as e:
        raise _backend_failure(e)
    return project.model_dump_json(indent=2)


@mcp.tool()
async def update_project(
    project_id: str,
    name: Optional[str] = None,
    description: Optional[str] = None,
    location: Optional[str] = None,
    status: Optional[str] = None,
    end_date: Optional[str] = None,
) -> str:
    """
    Update fields of a project. Omitted fields are left unchanged.

    Returns:
        The updated project as JSON.
    """
    updates = {
        k: v
        for k, v in {
            "name": name,
            "description": description,
            "location": location,
            "status": status,
            "end_date": end_date,
        }.items()
        if v is not None
    }
    try:
        project = await projects.update_project(project_id, updates)
    except NotFoundError as e:
        raise _invalid_params(str(e))
    except (BackendError, ValidationError) as e:
        raise _backend_failure(e)
    return project.model_dump_json(indent=2)


@mcp.tool()
async def delete_project(project_id: str) -> str:
    """Delete a project by UUID."""
    try:
        await projects.delete_project(project_id)
    except (BackendError, ValidationError) as e:
        raise _backend_failure(e)
    return f"Deleted project `{project_id}`."


# --- Post Tools ---


@mcp.tool()
async def list_posts(limit: int = 20, author_id: Optional[str] = None) -> str:
    """
    List board posts, newest first.

    Args:
        limit: Maximum number of posts. Default: 20
        author_id: Only posts written by this user

    Returns:
        Markdown list of posts.
    """
    try:
        if author_id:
            items = await posts.get_posts_by_user(author_id, limit)
        else:
            items = await posts.get_posts(limit)
    except (BackendError, ValidationError) as e:
        raise _backend_failure(e)

    if not items:
        return "# Posts\n\nNo posts found."
    return "\n".join(["# Posts", ""] + [_format_post(p) for p in items])


@mcp.tool()
async def get_post(post_id: str) -> str:
    """
    Get a post with its full content.

    Args:
        post_id: Post UUID

    Returns:
        Markdown with title, author and content.
    """
    try:
        post = await posts.get_post(post_id)
    except (BackendError, ValidationError) as e:
        raise _backend_failure(e)

    if post is None:
        raise _invalid_params(f"Post '{post_id}' not found")

    author = (post.author.display_name or post.author.email) if post.author else post.author_id
    return f"# {post.title}\n\n_by {author}, {post.created_at}_\n\n{post.content}"


@mcp.tool()
async def create_post(title: str, content: str, author_id: str) -> str:
    """Create a board post. Returns the created post as JSON."""
    try:
        post = await posts.create_post(title, content, author_id)
    except (BackendError, ValidationError) as e:
        raise _backend_failure(e)
    return post.model_dump_json(indent=2)


@mcp.tool()
async def delete_post(post_id: str) -> str:
    """Delete a board post by UUID."""
    try:
        await posts.delete_post(post_id)
    except (BackendError, ValidationError) as e:
        raise _backend_failure(e)
    return f"Deleted post `{post_id}`."


@mcp.tool()
async def update_post(post_id: str, title: Optional[str] = None, content: Optional[str] = None) -> str:
    """
    Edit the title and/or content of a post. Omitted fields are left unchanged.

    Returns:
        The updated post as JSON.
    """
    try:
        post = await posts.update_post(post_id, title=title, content=content)
    except NotFoundError as e:
        raise _invalid_params(str(e))
    except (BackendError, ValidationError) as e:
        raise _backend_failure(e)
    return post.model_dump_json(indent=2)


# --- Comment Tools ---


@mcp.tool()
async def list_comments(
    post_id: Optional[str] = None, author_id: Optional[str] = None, limit: int = 20
) -> str:
    """
    List comments of a post, or the latest comments written by a user.

    Args:
        post_id: Post UUID. Takes precedence over author_id.
        author_id: User UUID
        limit: Maximum number of comments when listing by author. Default: 20

    Returns:
        Markdown list of comments.
    """
    if not post_id and not author_id:
        raise _invalid_params("Either post_id or author_id is required")

    try:
        if post_id:
            items = await comments.get_comments_by_post(post_id)
        else:
            items = await comments.get_comments_by_user(author_id, limit)
    except (BackendError, ValidationError) as e:
        raise _backend_failure(e)

    if not items:
        return "# Comments\n\nNo comments found."
    return "\n".join(["# Comments", ""] + [_format_comment(c) for c in items])


@mcp.tool()
async def create_comment(post_id: str, content: str, author_id: str) -> str:
    """Comment on a post. Returns the created comment as JSON."""
    try:
        comment = await comments.create_comment(post_id, content, author_id)
    except (BackendError, ValidationError) as e:
        raise _backend_failure(e)
    return comment.model_dump_json(indent=2)


@mcp.tool()
async def delete_comment(comment_id: str) -> str:
    """Delete a comment by UUID."""
    try:
        await comments.delete_comment(comment_id)
    except (BackendError, ValidationError) as e:
        raise _backend_failure(e)
    return f"Deleted comment `{comment_id}`."


# --- User Tools ---


@mcp.tool()
async def list_users() -> str:
    """List all user profiles, newest first."""
    try:
        users = await profiles.get_all_users()
    except (BackendError, ValidationError) as e:
        raise _backend_failure(e)

    if not users:
        return "# Users\n\nNo users found."
    return "\n".join(["# Users", ""] + [_format_profile(u) for u in users])


@mcp.tool()
async def get_user(user_id: str) -> str:
    """Get a user profile as JSON."""
    try:
        user = await profiles.get_user(user_id)
    except (BackendError, ValidationError) as e:
        raise _backend_failure(e)

    if user is None:
        raise _invalid_params(f"User '{user_id}' not found")
    return user.model_dump_json(indent=2)


@mcp.tool()
async def user_role_stats() -> str:
    """Count users per role."""
    try:
        stats = await profiles.get_role_stats()
    except (BackendError, ValidationError) as e:
        raise _backend_failure(e)
    lines = ["# User roles", "", f"- total: {stats.total}"]
    lines += [f"- {role}: {getattr(stats, role)}" for role in USER_ROLES]
    return "\n".join(lines)


@mcp.tool()
async def update_user_role(user_id: str, role: str) -> str:
    """
    Change the role of a user.

    Args:
        user_id: Profile UUID
        role: 'admin', 'main_user', 'vip_user' or 'user'
    """
    try:
        user = await profiles.update_user_role(user_id, role)
    except NotFoundError as e:
        raise _invalid_params(str(e))
    # ValidationError subclasses ValueError, so it has to be caught first
    except (BackendError, ValidationError) as e:
        raise _backend_failure(e)
    except ValueError as e:
        raise _invalid_params(str(e))
    return f"{user.email} is now {user.role}."


# --- Cache Tools ---


@mcp.tool()
async def cache_stats() -> str:
    """
    Show every cache with its entry count and keys.

    Counts include expired entries that have not been swept yet.
    """
    lines = ["# Caches", ""]
    for cache in CACHES.values():
        s = _stats(cache)
        lines.append(f"## {s.name}")
        lines.append(f"size: {s.size}, default TTL: {s.default_ttl_ms} ms")
        if s.keys:
            lines.append(", ".join(f"`{k}`" for k in s.keys))
        lines.append("")
    return "\n".join(lines).rstrip()


@mcp.tool()
async def cache_cleanup() -> str:
    """Sweep expired entries from every cache and report how many were removed."""
    lines = ["# Cache cleanup", ""]
    total = 0
    for name, cache in CACHES.items():
        removed = cache.cleanup()
        total += removed
        lines.append(f"- {name}: {removed}")
    lines.append(f"\nRemoved {total} expired entries.")
    logger.info("Cache cleanup removed %d entries", total)
    return "\n".join(lines)


@mcp.tool()
async def cache_invalidate(cache_name: Optional[str] = None) -> str:
    """
    Empty a cache.

    Args:
        cache_name: One of projects, posts, profiles, comments. If omitted, all caches are emptied.
    """
    if cache_name is None:
        for cache in CACHES.values():
            cache.invalidate_all()
        return f"Invalidated all caches: {', '.join(CACHES)}."

    cache = CACHES.get(cache_name)
    if cache is None:
        available = ", ".join(CACHES)
        raise _invalid_params(f"Unknown cache '{cache_name}'. Available: {available}")
    cache.invalidate_all()
    return f"Invalidated cache '{cache_name}'."


def run() -> None:
    configure_logging(settings.log_level)
    logger.info("Starting sitehub-mcp against %s", settings.rest_url)
    mcp.run()


if __name__ == "__main__":
    run()
