"""Supabase repository for angler profiles."""

from dataclasses import dataclass

from supabase import AsyncClient

from catch_feed.adapters.supabase_errors import execute
from catch_feed.domain.search import ProfileSummary
from catch_feed.services.search import ProfileRepository


@dataclass
class SupabaseProfileRepository(ProfileRepository):
    """Supabase-backed profile search."""

    client: AsyncClient

    async def search_profiles(
        self, filters: list[str], limit: int
    ) -> list[ProfileSummary]:
        """Return profiles matching any clause."""
        response = await execute(
            self.client.table("profiles")
            .select("id, username, avatar_path, avatar_url, bio")
            .or_(",".join(filters))
            .limit(limit),
            action="search profiles",
        )
        return [_parse_profile(row) for row in response.data or []]


def _parse_profile(row: dict[str, object]) -> ProfileSummary:
    return ProfileSummary(
        id=str(row["id"]),
        username=str(row.get("username") or ""),
        avatar_path=row.get("avatar_path"),
        avatar_url=row.get("avatar_url"),
        bio=row.get("bio"),
    )
