"""Project reads and writes, memoized per project query."""

import logging
from datetime import datetime, timezone
from typing import Any, Optional

from cache import MemoryCache, create_cache_key
from fetch import BackendClient, NotFoundError
from models import Project

logger = logging.getLogger(__name__)

TABLE = "projects"
ALL_PROJECTS = "all"


class ProjectsService:
    """CRUD over the projects table. Any write empties the whole projects cache."""

    def __init__(self, client: BackendClient, cache: MemoryCache):
        self.client = client
        self.cache = cache

    async def get_projects(self) -> list[Project]:
        async def fetch():
            rows = await self.client.select(TABLE, {"select": "*", "order": "created_at.desc"})
            return [Project.model_validate(r) for r in rows]

        return await self.cache.get_or_fetch(ALL_PROJECTS, fetch)

    async def get_project(self, id_or_number: str) -> Optional[Project]:
        """Look up by project_number when the argument is numeric, else by id."""
        key = create_cache_key("project", id_or_number)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        # Only plain digit strings count as numbers; " 12" or "1e3" are looked up as ids
        if id_or_number.isdigit():
            params = {"select": "*", "project_number": f"eq.{int(id_or_number)}", "limit": 1}
        else:
            params = {"select": "*", "id": f"eq.{id_or_number}", "limit": 1}
        rows = await self.client.select(TABLE, params)
        if not rows:
            return None

        project = Project.model_validate(rows[0])
        self.cache.set(key, project)
        return project

    async def get_projects_by_status(self, status: str) -> list[Project]:
        async def fetch():
            rows = await self.client.select(
                TABLE, {"select": "*", "status": f"eq.{status}", "order": "created_at.desc"}
            )
            return [Project.model_validate(r) for r in rows]

        return await self.cache.get_or_fetch(create_cache_key("status", status), fetch)

    async def get_projects_by_user(self, user_id: str) -> list[Project]:
        async def fetch():
            rows = await self.client.select(
                TABLE, {"select": "*", "created_by": f"eq.{user_id}", "order": "created_at.desc"}
            )
            return [Project.model_validate(r) for r in rows]

        return await self.cache.get_or_fetch(create_cache_key("user", user_id), fetch)

    async def create_project(self, data: dict[str, Any], created_by: Optional[str] = None) -> Project:
        row = {**data, "status": data.get("status") or "announcement", "created_by": created_by}
        # Blank form fields are left to column defaults
        row = {k: v for k, v in row.items() if v is not None and v != ""}

        rows = await self.client.insert(TABLE, row)
        project = Project.model_validate(rows[0])
        self.cache.invalidate_all()
        logger.info("Project created: %s", project.id)
        return project

    async def update_project(self, project_id: str, updates: dict[str, Any]) -> Project:
        values = {**updates, "updated_at": datetime.now(timezone.utc).isoformat()}
        rows = await self.client.update(TABLE, {"id": project_id}, values)
        if not rows:
            raise NotFoundError(f"Project '{project_id}' not found or permission denied", status_code=404)

        self.cache.invalidate_all()
        logger.info("Project updated: %s", project_id)
        return Project.model_validate(rows[0])

    async def delete_project(self, project_id: str) -> None:
        await self.client.delete(TABLE, {"id": project_id})
        self.cache.invalidate_all()
        logger.info("Project deleted: %s", project_id)
