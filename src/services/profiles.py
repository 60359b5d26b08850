"""User profiles and admin role management."""

import logging
from typing import Optional

from cache import MemoryCache, create_cache_key
from fetch import BackendClient, NotFoundError
from models import USER_ROLES, Profile, RoleStats

logger = logging.getLogger(__name__)

TABLE = "profiles"
ALL_PROFILES = "all"


class ProfilesService:
    def __init__(self, client: BackendClient, cache: MemoryCache):
        self.client = client
        self.cache = cache

    async def get_all_users(self) -> list[Profile]:
        async def fetch():
            rows = await self.client.select(TABLE, {"select": "*", "order": "created_at.desc"})
            return [Profile.model_validate(r) for r in rows]

        return await self.cache.get_or_fetch(ALL_PROFILES, fetch)

    async def get_user(self, user_id: str) -> Optional[Profile]:
        key = create_cache_key("user", user_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        rows = await self.client.select(TABLE, {"select": "*", "id": f"eq.{user_id}", "limit": 1})
        if not rows:
            return None

        profile = Profile.model_validate(rows[0])
        self.cache.set(key, profile)
        return profile

    async def get_role_stats(self) -> RoleStats:
        users = await self.get_all_users()
        stats = RoleStats(total=len(users))
        for u in users:
            setattr(stats, u.role, getattr(stats, u.role) + 1)
        return stats

    async def update_user_role(self, user_id: str, role: str) -> Profile:
        if role not in USER_ROLES:
            raise ValueError(f"Invalid role '{role}'. Expected one of: {', '.join(USER_ROLES)}")

        rows = await self.client.update(TABLE, {"id": user_id}, {"role": role})
        if not rows:
            raise NotFoundError(f"User '{user_id}' not found or permission denied", status_code=404)

        self.cache.invalidate_all()
        logger.info("Role of %s set to %s", user_id, role)
        return Profile.model_validate(rows[0])
