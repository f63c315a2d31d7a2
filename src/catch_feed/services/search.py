"""Composite search across profiles, catches and venues."""

import asyncio
import logging
from collections.abc import Awaitable
from dataclasses import dataclass
from typing import Protocol, TypeVar

from catch_feed.domain.catches import CatchRecord, ViewerContext
from catch_feed.domain.search import ProfileSummary, SearchError, SearchResults
from catch_feed.domain.species import match_species
from catch_feed.errors import NetworkError, QueryError
from catch_feed.services.access_policy import can_view, filter_visible
from catch_feed.services.feed import CatchRepository
from catch_feed.services.query_sanitizer import (
    build_catch_search_filters,
    build_ilike_filters,
    normalize_search_term,
)
from catch_feed.services.redaction import (
    present_catch,
    should_show_exact_location,
)

PROFILES = "profiles"
CATCHES = "catches"
VENUES = "venues"

T = TypeVar("T")

_logger = logging.getLogger(__name__)


class ProfileRepository(Protocol):
    """Read interface for angler profiles."""

    async def search_profiles(
        self, filters: list[str], limit: int
    ) -> list[ProfileSummary]:
        """Return profiles matching any of the ``or`` clauses."""


@dataclass(frozen=True)
class SearchLimits:
    """Per-source result caps."""

    profiles: int = 5
    catches: int = 5
    venues: int = 10


@dataclass
class SearchService:
    """Searches several sources and isolates each source's failures."""

    catch_repository: CatchRepository
    profile_repository: ProfileRepository
    limits: SearchLimits = SearchLimits()

    async def search_all(
        self,
        query: object,
        viewer: ViewerContext | None = None,
        limits: SearchLimits | None = None,
    ) -> SearchResults:
        """Search every source; empty input performs no search at all."""
        normalized = normalize_search_term(query)
        if normalized is None:
            return SearchResults()
        viewer = viewer or ViewerContext.anonymous()
        limits = limits or self.limits

        profile_filters = build_ilike_filters(
            normalized.like_pattern, ["username", "bio"]
        )
        catch_filters = build_catch_search_filters(
            normalized, match_species(normalized.lower_case)
        )
        profile_rows, catch_rows, venue_rows = await asyncio.gather(
            _capture(
                self.profile_repository.search_profiles(
                    profile_filters, limits.profiles
                )
            ),
            _capture(
                self.catch_repository.search_catches(catch_filters, limits.catches)
            ),
            _capture(
                self.catch_repository.search_venues(
                    normalized.like_pattern, limits.venues
                )
            ),
        )

        results = SearchResults()
        if isinstance(profile_rows, Exception):
            results.errors.append(_record_failure(PROFILES, profile_rows))
        else:
            results.profiles = profile_rows

        if isinstance(catch_rows, Exception):
            results.errors.append(_record_failure(CATCHES, catch_rows))
        else:
            results.catches = [
                present_catch(row, viewer.viewer_id)
                for row in filter_visible(catch_rows, viewer)
            ]

        if isinstance(venue_rows, Exception):
            results.errors.append(_record_failure(VENUES, venue_rows))
        else:
            results.venues = _visible_venues(venue_rows, viewer)
        return results


async def _capture(call: Awaitable[T]) -> T | QueryError | NetworkError:
    try:
        return await call
    except (QueryError, NetworkError) as exc:
        return exc


def _record_failure(source: str, exc: Exception) -> SearchError:
    _logger.warning("%s search failed: %s", source.capitalize(), exc)
    return SearchError(source=source, message=_friendly_message(source, str(exc)))


def _friendly_message(source: str, message: str) -> str:
    if source == CATCHES:
        if "operator does not exist" in message:
            return "We couldn't match that species just yet."
        if "failed to parse logic tree" in message:
            return "Try a shorter search without special characters."
    return "We couldn't fetch every result this time."


def _visible_venues(rows: list[CatchRecord], viewer: ViewerContext) -> list[str]:
    venues: dict[str, None] = {}
    for row in rows:
        if not row.location:
            continue
        if not can_view(row, viewer):
            continue
        if not should_show_exact_location(
            row.hide_exact_spot, row.owner_id, viewer.viewer_id
        ):
            continue
        venues.setdefault(row.location, None)
    return list(venues)
