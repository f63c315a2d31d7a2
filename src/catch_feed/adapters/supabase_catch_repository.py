"""Supabase repository for catch records."""

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from supabase import AsyncClient

from catch_feed.adapters.supabase_errors import execute
from catch_feed.domain.catches import CatchRecord, Visibility
from catch_feed.domain.pagination import OrderKey, QueryDescriptor
from catch_feed.services.feed import CatchRepository
from catch_feed.services.query_sanitizer import sanitize_order_by

CATCHES_TABLE = "catches"
CATCH_FIELDS = (
    "id",
    "user_id",
    "title",
    "visibility",
    "hide_exact_spot",
    "location",
    "conditions",
    "created_at",
    "session_id",
    "species",
    "weight",
    "weight_unit",
)
CATCH_SELECT = ", ".join(CATCH_FIELDS) + ", ratings (rating)"
VENUE_SELECT = "id, user_id, location, hide_exact_spot, visibility, created_at"
# The view has no hide_exact_spot column, so spot details are not read.
LEADERBOARD_TABLE = "leaderboard_scores_detailed"
LEADERBOARD_SELECT = (
    "id, user_id, owner_username, title, species, weight, weight_unit, "
    "total_score, avg_rating, rating_count, created_at"
)

_logger = logging.getLogger(__name__)


@dataclass
class SupabaseCatchRepository(CatchRepository):
    """Supabase-backed reads of the catches table and leaderboard view."""

    client: AsyncClient

    async def fetch_page(self, query: QueryDescriptor) -> list[CatchRecord]:
        """Run a page query described by ``query``."""
        builder = _page_query(
            self.client.table(CATCHES_TABLE).select(CATCH_SELECT), query
        )
        response = await execute(builder, action="fetch catches page")
        return [parse_catch(row) for row in response.data or []]

    async def fetch_leaderboard_page(self, query: QueryDescriptor) -> list[CatchRecord]:
        """Run a page query against the scored leaderboard view."""
        builder = _page_query(
            self.client.table(LEADERBOARD_TABLE).select(LEADERBOARD_SELECT), query
        )
        response = await execute(builder, action="fetch leaderboard page")
        return [parse_leaderboard_entry(row) for row in response.data or []]

    async def get_catch(self, catch_id: str) -> CatchRecord | None:
        """Return a catch by id, if present."""
        response = await execute(
            self.client.table(CATCHES_TABLE)
            .select(CATCH_SELECT)
            .eq("id", catch_id)
            .limit(1),
            action="get catch",
        )
        if not response.data:
            return None
        return parse_catch(response.data[0])

    async def search_catches(self, filters: list[str], limit: int) -> list[CatchRecord]:
        """Return newest public catches matching any clause."""
        response = await execute(
            self.client.table(CATCHES_TABLE)
            .select(CATCH_SELECT)
            .or_(",".join(filters))
            .eq("visibility", Visibility.PUBLIC.value)
            .order("created_at", desc=True)
            .limit(limit),
            action="search catches",
        )
        return [parse_catch(row) for row in response.data or []]

    async def search_venues(self, like_pattern: str, limit: int) -> list[CatchRecord]:
        """Return catches with a location matching the pattern."""
        response = await execute(
            self.client.table(CATCHES_TABLE)
            .select(VENUE_SELECT)
            .ilike("location", like_pattern)
            .not_.is_("location", "null")
            .limit(limit),
            action="search venues",
        )
        return [parse_catch(row) for row in response.data or []]


def _page_query(builder, query: QueryDescriptor):  # type: ignore[no-untyped-def]
    for column, value in query.equals:
        builder = builder.eq(column, value)
    for column, values in query.within:
        builder = builder.in_(column, list(values))
    if query.keyset_filter:
        builder = builder.or_(query.keyset_filter)
    return _apply_order(builder, query.order).limit(query.limit)


def _apply_order(builder, order: Sequence[OrderKey]):  # type: ignore[no-untyped-def]
    # order() in postgrest-py cannot express NULLS LAST, so set the
    # parameter directly.
    clauses = [
        f"{sanitize_order_by(key.column)}.{'desc' if key.descending else 'asc'}"
        + (".nullslast" if key.nullable else "")
        for key in order
    ]
    builder.params = builder.params.set("order", ",".join(clauses))
    return builder


def parse_visibility(raw: object) -> Visibility | None:
    """Parse a stored visibility; unknown values fall back to private."""
    if raw is None:
        return None
    try:
        return Visibility(raw)
    except ValueError:
        _logger.warning("Unrecognised catch visibility %r treated as private", raw)
        return Visibility.PRIVATE


def parse_catch(row: dict[str, object]) -> CatchRecord:
    """Parse a catches row into a domain model."""
    conditions = row.get("conditions")
    weight = row.get("weight")
    ratings = row.get("ratings") or []
    owner_id = row.get("user_id")
    return CatchRecord(
        id=str(row["id"]),
        owner_id=str(owner_id) if owner_id else None,
        created_at=_timestamp(row.get("created_at")),
        visibility=parse_visibility(row.get("visibility")),
        hide_exact_spot=bool(row.get("hide_exact_spot")),
        location=row.get("location"),
        attributes=conditions if isinstance(conditions, dict) else None,
        title=row.get("title"),
        species=row.get("species"),
        weight=float(weight) if isinstance(weight, int | float) else None,
        weight_unit=row.get("weight_unit"),
        session_id=row.get("session_id"),
        ratings=[
            float(entry["rating"])
            for entry in ratings
            if isinstance(entry, dict) and isinstance(entry.get("rating"), int | float)
        ],
    )


def parse_leaderboard_entry(row: dict[str, object]) -> CatchRecord:
    """Parse a leaderboard view row; the view only holds public catches."""
    owner_id = row.get("user_id")
    rating_count = _number(row.get("rating_count"))
    return CatchRecord(
        id=str(row["id"]),
        owner_id=str(owner_id) if owner_id else None,
        created_at=_timestamp(row.get("created_at")),
        visibility=Visibility.PUBLIC,
        title=row.get("title"),
        species=row.get("species"),
        weight=_number(row.get("weight")),
        weight_unit=row.get("weight_unit"),
        owner_username=row.get("owner_username"),
        total_score=_number(row.get("total_score")),
        avg_rating=_number(row.get("avg_rating")),
        rating_count=int(rating_count) if rating_count is not None else None,
    )


def _timestamp(raw: object) -> datetime:
    # Rows without a timestamp sort as the oldest.
    if not isinstance(raw, str) or not raw:
        return datetime.min.replace(tzinfo=UTC)
    parsed = datetime.fromisoformat(raw)
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=UTC)


def _number(raw: object) -> float | None:
    # Postgres numeric columns can arrive as strings.
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int | float):
        return float(raw)
    if isinstance(raw, str):
        try:
            return float(raw)
        except ValueError:
            return None
    return None
