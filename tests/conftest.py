"""Shared test fixtures."""

from collections.abc import Callable
from dataclasses import dataclass, field

import pytest

from catch_feed.config import Settings
from catch_feed.containers import AppContainer
from catch_feed.domain.catches import CatchRecord
from catch_feed.domain.changes import ChangeEvent
from catch_feed.domain.pagination import QueryDescriptor
from catch_feed.domain.search import ProfileSummary
from catch_feed.services.cache import InMemoryCache
from catch_feed.services.feed import CatchFeedService, CatchRepository
from catch_feed.services.following import FollowingService, FollowRepository
from catch_feed.services.pagination import (
    CursorPaginator,
    cursor_values,
    record_values,
    row_after_cursor,
)
from catch_feed.services.search import ProfileRepository, SearchService
from catch_feed.services.sync import ChangeStream, Subscription

_COLUMNS = {
    "user_id": "owner_id",
    "session_id": "session_id",
    "species": "species",
}


@dataclass
class InMemoryCatchRepository(CatchRepository):
    """In-memory catch store that honours page queries."""

    catches: list[CatchRecord] = field(default_factory=list)
    search_hits: list[CatchRecord] = field(default_factory=list)
    venue_hits: list[CatchRecord] = field(default_factory=list)
    leaderboard: list[CatchRecord] = field(default_factory=list)
    queries: list[QueryDescriptor] = field(default_factory=list)
    search_filters: list[list[str]] = field(default_factory=list)
    errors: list[Exception] = field(default_factory=list)
    search_error: Exception | None = None
    venue_error: Exception | None = None

    def add(self, *records: CatchRecord) -> None:
        self.catches.extend(records)

    def remove(self, catch_id: str) -> None:
        self.catches = [record for record in self.catches if record.id != catch_id]

    async def fetch_page(self, query: QueryDescriptor) -> list[CatchRecord]:
        self.queries.append(query)
        if self.errors:
            raise self.errors.pop(0)
        return _page(self.catches, query)

    async def fetch_leaderboard_page(self, query: QueryDescriptor) -> list[CatchRecord]:
        self.queries.append(query)
        if self.errors:
            raise self.errors.pop(0)
        return _page(self.leaderboard, query)

    async def get_catch(self, catch_id: str) -> CatchRecord | None:
        if self.errors:
            raise self.errors.pop(0)
        for record in self.catches:
            if record.id == catch_id:
                return record
        return None

    async def search_catches(self, filters: list[str], limit: int) -> list[CatchRecord]:
        self.search_filters.append(filters)
        if self.search_error is not None:
            raise self.search_error
        return self.search_hits[:limit]

    async def search_venues(self, like_pattern: str, limit: int) -> list[CatchRecord]:
        if self.venue_error is not None:
            raise self.venue_error
        return self.venue_hits[:limit]


def _page(source: list[CatchRecord], query: QueryDescriptor) -> list[CatchRecord]:
    rows = [row for row in source if _matches(row, query)]
    if query.cursor is not None:
        bound = cursor_values(query.sort_mode, query.cursor)
        rows = [
            row
            for row in rows
            if row_after_cursor(
                record_values(query.sort_mode, row), query.order, bound
            )
        ]
    return _sorted(rows, query)[: query.limit]


def _matches(row: CatchRecord, query: QueryDescriptor) -> bool:
    for column, value in query.equals:
        if getattr(row, _COLUMNS[column]) != value:
            return False
    for column, values in query.within:
        if getattr(row, _COLUMNS[column]) not in values:
            return False
    return True


def _sorted(rows: list[CatchRecord], query: QueryDescriptor) -> list[CatchRecord]:
    ordered = list(rows)
    # Least significant key first; each pass is stable.
    for index in reversed(range(len(query.order))):
        key = query.order[index]

        def value(row: CatchRecord, position: int = index) -> object:
            return record_values(query.sort_mode, row)[position]

        present = [row for row in ordered if value(row) is not None]
        missing = [row for row in ordered if value(row) is None]
        ordered = sorted(present, key=value, reverse=key.descending) + missing
    return ordered


@dataclass
class InMemoryProfileRepository(ProfileRepository):
    """In-memory profile search."""

    profiles: list[ProfileSummary] = field(default_factory=list)
    filters: list[list[str]] = field(default_factory=list)
    error: Exception | None = None

    async def search_profiles(
        self, filters: list[str], limit: int
    ) -> list[ProfileSummary]:
        self.filters.append(filters)
        if self.error is not None:
            raise self.error
        return self.profiles[:limit]


@dataclass
class InMemoryFollowRepository(FollowRepository):
    """In-memory follow edges."""

    edges: dict[str, list[str]] = field(default_factory=dict)
    calls: int = 0

    async def list_following_ids(self, follower_id: str) -> list[str]:
        self.calls += 1
        return list(self.edges.get(follower_id, []))


@dataclass
class FakeSubscription(Subscription):
    """Subscription handle that records teardown."""

    confirmed: bool = True
    unsubscribed: bool = False

    async def unsubscribe(self) -> None:
        self.unsubscribed = True


@dataclass
class FakeChangeStream(ChangeStream):
    """Change stream driven by the test."""

    confirmed: bool = True
    error: Exception | None = None
    handlers: list[Callable[[ChangeEvent], None]] = field(default_factory=list)
    subscriptions: list[FakeSubscription] = field(default_factory=list)

    async def subscribe(
        self, table: str, handler: Callable[[ChangeEvent], None]
    ) -> Subscription:
        if self.error is not None:
            raise self.error
        self.handlers.append(handler)
        subscription = FakeSubscription(confirmed=self.confirmed)
        self.subscriptions.append(subscription)
        return subscription

    def emit(self, event: ChangeEvent) -> None:
        for handler in self.handlers:
            handler(event)


@dataclass
class VirtualTimer:
    """Timer owned by a virtual scheduler."""

    due: float
    callback: Callable[[], None]
    cancelled: bool = False

    def cancel(self) -> None:
        self.cancelled = True


@dataclass
class VirtualScheduler:
    """Scheduler with a manually advanced clock."""

    now: float = 0.0
    timers: list[VirtualTimer] = field(default_factory=list)

    def call_later(self, delay: float, callback: Callable[[], None]) -> VirtualTimer:
        timer = VirtualTimer(due=self.now + delay, callback=callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[VirtualTimer]:
        return [timer for timer in self.timers if not timer.cancelled]

    def advance(self, seconds: float) -> None:
        self.now += seconds
        for timer in sorted(self.active, key=lambda item: item.due):
            if timer.due <= self.now + 1e-9 and not timer.cancelled:
                timer.cancelled = True
                timer.callback()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        supabase_url="https://example.supabase.co",
        supabase_key="header.payload.signature",
        store_retry_delay_seconds=0.0,
    )


@pytest.fixture
def catch_repository() -> InMemoryCatchRepository:
    return InMemoryCatchRepository()


@pytest.fixture
def profile_repository() -> InMemoryProfileRepository:
    return InMemoryProfileRepository()


@pytest.fixture
def follow_repository() -> InMemoryFollowRepository:
    return InMemoryFollowRepository()


@pytest.fixture
def change_stream() -> FakeChangeStream:
    return FakeChangeStream()


@pytest.fixture
def scheduler() -> VirtualScheduler:
    return VirtualScheduler()


@pytest.fixture
def feed_service(catch_repository: InMemoryCatchRepository) -> CatchFeedService:
    return CatchFeedService(
        repository=catch_repository,
        paginator=CursorPaginator(page_size=3),
        profile_paginator=CursorPaginator(page_size=3),
        leaderboard_paginator=CursorPaginator(page_size=3),
        retry_attempts=2,
        retry_delay_seconds=0.0,
    )


@pytest.fixture
def following_service(
    follow_repository: InMemoryFollowRepository,
) -> FollowingService:
    return FollowingService(repository=follow_repository, cache=InMemoryCache())


@pytest.fixture
def search_service(
    catch_repository: InMemoryCatchRepository,
    profile_repository: InMemoryProfileRepository,
) -> SearchService:
    return SearchService(
        catch_repository=catch_repository, profile_repository=profile_repository
    )


@pytest.fixture
def container(  # noqa: PLR0913
    settings: Settings,
    feed_service: CatchFeedService,
    search_service: SearchService,
    following_service: FollowingService,
    change_stream: FakeChangeStream,
) -> AppContainer:
    async def close_resources() -> None:
        return None

    return AppContainer(
        settings=settings,
        feed_service=feed_service,
        search_service=search_service,
        following_service=following_service,
        change_stream=change_stream,
        close_resources=close_resources,
    )
