"""Board posts with their embedded author profile."""

import logging
from datetime import datetime, timezone
from typing import Optional

from cache import MemoryCache, create_cache_key
from fetch import BackendClient, NotFoundError
from models import Post

logger = logging.getLogger(__name__)

TABLE = "posts"
WITH_AUTHOR = "*,author:profiles(email,display_name,role)"


class PostsService:
    def __init__(self, client: BackendClient, cache: MemoryCache):
        self.client = client
        self.cache = cache

    async def get_posts(self, limit: int = 20) -> list[Post]:
        async def fetch():
            rows = await self.client.select(
                TABLE, {"select": WITH_AUTHOR, "order": "created_at.desc", "limit": limit}
            )
            return [Post.model_validate(r) for r in rows]

        return await self.cache.get_or_fetch(create_cache_key("list", limit), fetch)

    async def get_post(self, post_id: str) -> Optional[Post]:
        key = create_cache_key("post", post_id)
        cached = self.cache.get(key)
        if cached is not None:
            return cached

        rows = await self.client.select(
            TABLE, {"select": WITH_AUTHOR, "id": f"eq.{post_id}", "limit": 1}
        )
        if not rows:
            return None

        post = Post.model_validate(rows[0])
        self.cache.set(key, post)
        return post

    async def get_posts_by_user(self, user_id: str, limit: int = 20) -> list[Post]:
        async def fetch():
            rows = await self.client.select(
                TABLE,
                {
                    "select": WITH_AUTHOR,
                    "author_id": f"eq.{user_id}",
                    "order": "created_at.desc",
                    "limit": limit,
                },
            )
            return [Post.model_validate(r) for r in rows]

        return await self.cache.get_or_fetch(create_cache_key("user", user_id, limit), fetch)

    async def create_post(self, title: str, content: str, author_id: str) -> Post:
        rows = await self.client.insert(
            TABLE, {"title": title, "content": content, "author_id": author_id}
        )
        post = Post.model_validate(rows[0])
        self.cache.invalidate_all()
        logger.info("Post created: %s", post.id)
        return post

    async def update_post(
        self, post_id: str, title: Optional[str] = None, content: Optional[str] = None
    ) -> Post:
        values = {k: v for k, v in {"title": title, "content": content}.items() if v is not None}
        values["updated_at"] = datetime.now(timezone.utc).isoformat()

        rows = await self.client.update(TABLE, {"id": post_id}, values)
        if not rows:
            raise NotFoundError(f"Post '{post_id}' not found or permission denied", status_code=404)

        self.cache.invalidate_all()
        logger.info("Post updated: %s", post_id)
        return Post.model_validate(rows[0])

    async def delete_post(self, post_id: str) -> None:
        await self.client.delete(TABLE, {"id": post_id})
        self.cache.invalidate_all()
        logger.info("Post deleted: %s", post_id)
