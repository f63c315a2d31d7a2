"""Supabase repository for follow edges."""

from dataclasses import dataclass

from supabase import AsyncClient

from catch_feed.adapters.supabase_errors import execute
from catch_feed.services.following import FollowRepository


@dataclass
class SupabaseFollowRepository(FollowRepository):
    """Supabase-backed reads of ``profile_follows``."""

    client: AsyncClient

    async def list_following_ids(self, follower_id: str) -> list[str]:
        """Return the ids the follower follows."""
        response = await execute(
            self.client.table("profile_follows")
            .select("following_id")
            .eq("follower_id", follower_id),
            action="list following ids",
        )
        return [
            str(row["following_id"])
            for row in response.data or []
            if row.get("following_id")
        ]
