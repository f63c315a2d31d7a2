"""Dependency container wiring for the application."""

from collections.abc import Awaitable, Callable
from dataclasses import dataclass

from supabase import AsyncClient

from catch_feed.adapters.supabase_catch_repository import SupabaseCatchRepository
from catch_feed.adapters.supabase_change_stream import SupabaseChangeStream
from catch_feed.adapters.supabase_follow_repository import SupabaseFollowRepository
from catch_feed.adapters.supabase_profile_repository import (
    SupabaseProfileRepository,
)
from catch_feed.config import Settings
from catch_feed.domain.catches import ViewerContext
from catch_feed.domain.pagination import FeedFilters, SortMode
from catch_feed.services.cache import InMemoryCache
from catch_feed.services.feed import CatchFeedService
from catch_feed.services.following import FollowingService
from catch_feed.services.pagination import CursorPaginator
from catch_feed.services.search import SearchLimits, SearchService
from catch_feed.services.sync import (
    ChangeFeedSynchronizer,
    ChangeStream,
    Scheduler,
    ViewSnapshot,
)


@dataclass
class AppContainer:
    """Holds application-wide dependencies."""

    settings: Settings
    feed_service: CatchFeedService
    search_service: SearchService
    following_service: FollowingService
    change_stream: ChangeStream
    close_resources: Callable[[], Awaitable[None]]

    def open_feed_view(
        self,
        viewer: ViewerContext,
        sort_mode: SortMode = SortMode.NEWEST,
        filters: FeedFilters | None = None,
        *,
        scheduler: Scheduler | None = None,
        listener: Callable[[ViewSnapshot], None] | None = None,
    ) -> ChangeFeedSynchronizer:
        """Create a live feed view; call ``start`` to begin syncing."""
        return ChangeFeedSynchronizer(
            self.feed_service.make_fetcher(viewer, sort_mode, filters),
            self.change_stream,
            scheduler,
            debounce_seconds=self.settings.sync_debounce_seconds,
            listener=listener,
        )

    def open_leaderboard_view(
        self,
        viewer: ViewerContext,
        species: str | None = None,
        *,
        scheduler: Scheduler | None = None,
        listener: Callable[[ViewSnapshot], None] | None = None,
    ) -> ChangeFeedSynchronizer:
        """Create a live leaderboard view driven by catch changes."""
        return ChangeFeedSynchronizer(
            self.feed_service.make_leaderboard_fetcher(viewer, species),
            self.change_stream,
            scheduler,
            debounce_seconds=self.settings.sync_debounce_seconds,
            listener=listener,
        )


def build_container(settings: Settings | None = None) -> AppContainer:
    """Create the default dependency container."""
    resolved_settings = settings or Settings()
    supabase_client = AsyncClient(
        resolved_settings.supabase_url, resolved_settings.supabase_key
    )
    catch_repository = SupabaseCatchRepository(supabase_client)
    profile_repository = SupabaseProfileRepository(supabase_client)
    follow_repository = SupabaseFollowRepository(supabase_client)
    feed_service = CatchFeedService(
        repository=catch_repository,
        paginator=CursorPaginator(page_size=resolved_settings.feed_page_size),
        profile_paginator=CursorPaginator(
            page_size=resolved_settings.profile_page_size
        ),
        leaderboard_paginator=CursorPaginator(
            page_size=resolved_settings.leaderboard_page_size
        ),
        retry_attempts=resolved_settings.store_retry_attempts,
        retry_delay_seconds=resolved_settings.store_retry_delay_seconds,
    )
    search_service = SearchService(
        catch_repository=catch_repository,
        profile_repository=profile_repository,
        limits=SearchLimits(
            profiles=resolved_settings.search_profile_limit,
            catches=resolved_settings.search_catch_limit,
            venues=resolved_settings.search_venue_limit,
        ),
    )
    following_service = FollowingService(
        repository=follow_repository,
        cache=InMemoryCache(),
        ttl_seconds=resolved_settings.following_cache_ttl_seconds,
    )
    change_stream = SupabaseChangeStream(
        supabase_client,
        confirm_timeout_seconds=resolved_settings.realtime_confirm_timeout_seconds,
    )

    async def close_resources() -> None:
        await supabase_client.remove_all_channels()

    return AppContainer(
        settings=resolved_settings,
        feed_service=feed_service,
        search_service=search_service,
        following_service=following_service,
        change_stream=change_stream,
        close_resources=close_resources,
    )
