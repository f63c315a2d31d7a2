"""Following relationships used to gate followers-only catches."""

import logging
from dataclasses import dataclass
from typing import Protocol

from catch_feed.domain.catches import ViewerContext
from catch_feed.services.cache import Cache

_logger = logging.getLogger(__name__)


class FollowRepository(Protocol):
    """Persistence interface for follow edges."""

    async def list_following_ids(self, follower_id: str) -> list[str]:
        """Return ids of the profiles the follower follows."""


@dataclass
class FollowingService:
    """Service owning the cached following-ids of viewers."""

    repository: FollowRepository
    cache: Cache
    ttl_seconds: int = 60

    async def following_ids(self, viewer_id: str | None) -> frozenset[str]:
        """Return the viewer's following ids, cached for ``ttl_seconds``."""
        if not viewer_id:
            return frozenset()
        cache_key = _cache_key(viewer_id)
        cached = self.cache.get(cache_key)
        if isinstance(cached, frozenset):
            return cached
        ids = frozenset(await self.repository.list_following_ids(viewer_id))
        self.cache.set(cache_key, ids, ttl_seconds=self.ttl_seconds)
        _logger.debug("Loaded %s following ids for viewer %s", len(ids), viewer_id)
        return ids

    def invalidate(self, viewer_id: str) -> None:
        """Forget the cached following ids of a viewer."""
        self.cache.invalidate(_cache_key(viewer_id))

    async def viewer_context(self, viewer_id: str | None) -> ViewerContext:
        """Build the access context for a viewer."""
        if not viewer_id:
            return ViewerContext.anonymous()
        return ViewerContext(
            viewer_id=viewer_id,
            following_ids=await self.following_ids(viewer_id),
        )


def _cache_key(viewer_id: str) -> str:
    return f"following:{viewer_id}"
