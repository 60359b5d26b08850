"""Comments on board posts."""

import logging

from cache import MemoryCache, create_cache_key
from fetch import BackendClient
from models import Comment

logger = logging.getLogger(__name__)

TABLE = "comments"
WITH_AUTHOR = "*,author:profiles(email,role)"
WITH_AUTHOR_AND_POST = "*,author:profiles(email,role),post:posts(id,title)"


class CommentsService:
    def __init__(self, client: BackendClient, cache: MemoryCache):
        self.client = client
        self.cache = cache

    async def get_comments_by_post(self, post_id: str) -> list[Comment]:
        async def fetch():
            rows = await self.client.select(
                TABLE, {"select": WITH_AUTHOR, "post_id": f"eq.{post_id}", "order": "created_at.desc"}
            )
            return [Comment.model_validate(r) for r in rows]

        return await self.cache.get_or_fetch(create_cache_key("post", post_id), fetch)

    async def get_comments_by_user(self, user_id: str, limit: int = 20) -> list[Comment]:
        async def fetch():
            rows = await self.client.select(
                TABLE,
                {
                    "select": WITH_AUTHOR_AND_POST,
                    "author_id": f"eq.{user_id}",
                    "order": "created_at.desc",
                    "limit": limit,
                },
            )
            return [Comment.model_validate(r) for r in rows]

        return await self.cache.get_or_fetch(create_cache_key("user", user_id, limit), fetch)

    async def create_comment(self, post_id: str, content: str, author_id: str) -> Comment:
        rows = await self.client.insert(
            TABLE, {"post_id": post_id, "content": content, "author_id": author_id}
        )
        comment = Comment.model_validate(rows[0])
        self.cache.invalidate_all()
        logger.info("Comment created on post %s: %s", post_id, comment.id)
        return comment

    async def delete_comment(self, comment_id: str) -> None:
        await self.client.delete(TABLE, {"id": comment_id})
        self.cache.invalidate_all()
        logger.info("Comment deleted: %s", comment_id)
