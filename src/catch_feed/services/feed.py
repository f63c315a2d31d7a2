"""Visibility-aware feed views over catch records."""

import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field, replace
from typing import Protocol

from catch_feed.domain.catches import CatchRecord, ViewerContext
from catch_feed.domain.pagination import (
    Cursor,
    FeedFilters,
    FeedScope,
    Page,
    QueryDescriptor,
    SortMode,
)
from catch_feed.services.access_policy import can_view, filter_visible
from catch_feed.services.pagination import CursorPaginator
from catch_feed.services.query_sanitizer import sanitize_search_input
from catch_feed.services.redaction import present_catch
from catch_feed.services.retry import call_with_retry

Fetcher = Callable[[Cursor | None], Awaitable[Page]]

_logger = logging.getLogger(__name__)


class CatchRepository(Protocol):
    """Read interface for catch records."""

    async def fetch_page(self, query: QueryDescriptor) -> list[CatchRecord]:
        """Return the raw rows for one page query."""

    async def get_catch(self, catch_id: str) -> CatchRecord | None:
        """Return a catch by id, if present."""

    async def search_catches(self, filters: list[str], limit: int) -> list[CatchRecord]:
        """Return public catches matching any of the ``or`` clauses."""

    async def search_venues(self, like_pattern: str, limit: int) -> list[CatchRecord]:
        """Return catches whose location matches the pattern."""

    async def fetch_leaderboard_page(self, query: QueryDescriptor) -> list[CatchRecord]:
        """Return the raw scored rows for one leaderboard page query."""


@dataclass
class CatchFeedService:
    """Runs the fetch, access filter and redaction pipeline for views."""

    repository: CatchRepository
    paginator: CursorPaginator = field(default_factory=CursorPaginator)
    profile_paginator: CursorPaginator = field(default_factory=CursorPaginator)
    leaderboard_paginator: CursorPaginator = field(
        default_factory=lambda: CursorPaginator(page_size=50)
    )
    retry_attempts: int = 2
    retry_delay_seconds: float = 0.3

    async def list_feed(
        self,
        viewer: ViewerContext,
        sort_mode: SortMode = SortMode.NEWEST,
        filters: FeedFilters | None = None,
        cursor: Cursor | None = None,
    ) -> Page:
        """Return one page of the feed as the viewer may see it."""
        resolved = _clean_filters(filters or FeedFilters())
        if resolved.scope is FeedScope.FOLLOWING:
            if not viewer.following_ids:
                return Page()
            resolved = replace(resolved, following_ids=viewer.following_ids)
        query = self.paginator.build_query(sort_mode, resolved, cursor)
        return await self._run(query, viewer, self.paginator)

    async def list_profile_catches(
        self,
        viewer: ViewerContext,
        profile_id: str,
        cursor: Cursor | None = None,
    ) -> Page:
        """Return one newest-first page of a single angler's catches."""
        query = self.profile_paginator.build_query(
            SortMode.NEWEST, FeedFilters(owner_id=profile_id), cursor
        )
        return await self._run(query, viewer, self.profile_paginator)

    async def list_leaderboard(
        self,
        viewer: ViewerContext,
        species: str | None = None,
        cursor: Cursor | None = None,
    ) -> Page:
        """Return one page of scored catches, best first."""
        filters = _clean_filters(FeedFilters(species=species))
        query = self.leaderboard_paginator.build_query(
            SortMode.LEADERBOARD, filters, cursor
        )
        return await self._run(
            query,
            viewer,
            self.leaderboard_paginator,
            fetch=self.repository.fetch_leaderboard_page,
        )

    async def get_catch(
        self, viewer: ViewerContext, catch_id: str
    ) -> CatchRecord | None:
        """Return a single catch, or None if absent or not visible."""
        record = await call_with_retry(
            lambda: self.repository.get_catch(catch_id),
            action="get_catch",
            attempts=self.retry_attempts,
            delay_seconds=self.retry_delay_seconds,
        )
        if record is None or not can_view(record, viewer):
            return None
        return present_catch(record, viewer.viewer_id)

    def make_fetcher(
        self,
        viewer: ViewerContext,
        sort_mode: SortMode = SortMode.NEWEST,
        filters: FeedFilters | None = None,
    ) -> Fetcher:
        """Bind a feed view so a synchronizer can re-run it by cursor."""

        async def fetch(cursor: Cursor | None) -> Page:
            return await self.list_feed(viewer, sort_mode, filters, cursor)

        return fetch

    def make_leaderboard_fetcher(
        self, viewer: ViewerContext, species: str | None = None
    ) -> Fetcher:
        """Bind a leaderboard view for a synchronizer."""

        async def fetch(cursor: Cursor | None) -> Page:
            return await self.list_leaderboard(viewer, species, cursor)

        return fetch

    async def _run(
        self,
        query: QueryDescriptor,
        viewer: ViewerContext,
        paginator: CursorPaginator,
        fetch: Callable[[QueryDescriptor], Awaitable[list[CatchRecord]]] | None = None,
    ) -> Page:
        fetch_rows = fetch or self.repository.fetch_page
        rows = await call_with_retry(
            lambda: fetch_rows(query),
            action=f"fetch_page:{query.sort_mode.value}",
            attempts=self.retry_attempts,
            delay_seconds=self.retry_delay_seconds,
        )
        page = paginator.next_page(rows, query)
        visible = filter_visible(page.items, viewer)
        if len(visible) != len(page.items):
            _logger.debug(
                "Filtered %s catches hidden from viewer",
                len(page.items) - len(visible),
            )
        items = [present_catch(record, viewer.viewer_id) for record in visible]
        return replace(page, items=items)


def _clean_filters(filters: FeedFilters) -> FeedFilters:
    species = sanitize_search_input(filters.species) or None
    custom_species = sanitize_search_input(filters.custom_species) or None
    return replace(filters, species=species, custom_species=custom_species)
