"""Keeps a held catch list consistent with store change notifications."""

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

from catch_feed.domain.catches import CatchRecord
from catch_feed.domain.changes import ChangeEvent, ChangeKind
from catch_feed.domain.pagination import Cursor
from catch_feed.errors import NetworkError, QueryError
from catch_feed.services.feed import Fetcher

DEFAULT_DEBOUNCE_SECONDS = 0.15

_logger = logging.getLogger(__name__)


class SyncState(str, Enum):
    """Lifecycle of a view's background refresh."""

    IDLE = "idle"
    DEBOUNCING = "debouncing"
    FETCHING = "fetching"


class TimerHandle(Protocol):
    """A scheduled callback that can be cancelled."""

    def cancel(self) -> None:
        """Cancel the callback if it has not run yet."""


class Scheduler(Protocol):
    """Source of delayed callbacks."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Run ``callback`` after ``delay`` seconds."""


class AsyncioScheduler(Scheduler):
    """Scheduler backed by the running event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle:
        """Schedule on the running loop."""
        return asyncio.get_running_loop().call_later(delay, callback)


class Subscription(Protocol):
    """An active change-stream subscription."""

    confirmed: bool

    async def unsubscribe(self) -> None:
        """Stop delivering events."""


class ChangeStream(Protocol):
    """Source of row change notifications."""

    async def subscribe(
        self, table: str, handler: Callable[[ChangeEvent], None]
    ) -> Subscription:
        """Subscribe ``handler`` to every change on ``table``."""


class ErrorReporter(Protocol):
    """Observability sink for failures that are not raised to callers."""

    def report(self, message: str, exc: Exception | None = None) -> None:
        """Record a degraded-operation event."""


class LoggingErrorReporter(ErrorReporter):
    """Reports degraded operation as log warnings."""

    def report(self, message: str, exc: Exception | None = None) -> None:
        """Log the message and the error, if any."""
        if exc is None:
            _logger.warning(message)
        else:
            _logger.warning("%s: %s", message, exc)


@dataclass(frozen=True)
class ViewSnapshot:
    """Read-only state of a synchronized view."""

    items: tuple[CatchRecord, ...]
    state: SyncState
    loading: bool
    loading_more: bool
    has_more: bool
    error: str | None
    live: bool


class ChangeFeedSynchronizer:
    """Holds a view's pages and reconciles them with upstream mutations.

    Deletes of held items are applied immediately. Every other change (and
    every delete) restarts a debounce window, after which the first page is
    fetched again in the background. An event arriving mid-fetch queues at
    most one follow-up cycle.
    """

    def __init__(  # noqa: PLR0913
        self,
        fetcher: Fetcher,
        change_stream: ChangeStream,
        scheduler: Scheduler | None = None,
        *,
        table: str = "catches",
        debounce_seconds: float = DEFAULT_DEBOUNCE_SECONDS,
        reporter: ErrorReporter | None = None,
        listener: Callable[[ViewSnapshot], None] | None = None,
    ) -> None:
        self._fetcher = fetcher
        self._change_stream = change_stream
        self._scheduler = scheduler or AsyncioScheduler()
        self._table = table
        self._debounce_seconds = debounce_seconds
        self._reporter = reporter or LoggingErrorReporter()
        self._listener = listener

        self._state = SyncState.IDLE
        self._pending_follow_up = False
        self._timer: TimerHandle | None = None
        self._fetch_task: asyncio.Task[None] | None = None
        self._subscription: Subscription | None = None
        self._closed = False
        self._live = False

        self._items: list[CatchRecord] = []
        # Deleted id -> delete sequence number.
        self._deleted_ids: dict[str, int] = {}
        self._delete_seq = 0
        self._next_cursor: Cursor | None = None
        self._has_more = False
        self._loading = False
        self._loading_more = False
        self._error: str | None = None

    @property
    def state(self) -> SyncState:
        """Current refresh state."""
        return self._state

    @property
    def pending_follow_up(self) -> bool:
        """Whether a change arrived while fetching."""
        return self._pending_follow_up

    @property
    def pending_deletes(self) -> int:
        """Number of deleted ids still masked from fetched pages."""
        return len(self._deleted_ids)

    @property
    def items(self) -> list[CatchRecord]:
        """Currently held catches."""
        return list(self._items)

    @property
    def closed(self) -> bool:
        """Whether the view has been torn down."""
        return self._closed

    def snapshot(self) -> ViewSnapshot:
        """Return the current view state."""
        return ViewSnapshot(
            items=tuple(self._items),
            state=self._state,
            loading=self._loading,
            loading_more=self._loading_more,
            has_more=self._has_more,
            error=self._error,
            live=self._live,
        )

    async def start(self) -> None:
        """Subscribe to changes, then load the first page.

        A failed or unconfirmed subscription is reported and the view carries
        on without live updates.
        """
        try:
            self._subscription = await self._change_stream.subscribe(
                self._table, self.handle_change
            )
        except (NetworkError, QueryError) as exc:
            self._reporter.report(
                f"Realtime subscription to {self._table} failed", exc
            )
        else:
            self._live = self._subscription.confirmed
            if not self._live:
                self._reporter.report(
                    f"Realtime subscription to {self._table} not confirmed"
                )
        await self.refresh()

    async def refresh(self) -> None:
        """Reload the first page with a visible loading indicator."""
        if self._closed:
            return
        self._cancel_timer()
        if self._fetch_task is not None and not self._fetch_task.done():
            await asyncio.wait([self._fetch_task])
        if self._closed:
            return
        # The finished fetch may have queued its own follow-up.
        self._cancel_timer()
        self._pending_follow_up = False
        await self._fetch_first_page(foreground=True)

    async def load_more(self) -> None:
        """Append the next page, if there is one."""
        if self._closed or self._loading_more or not self._has_more:
            return
        if self._state is SyncState.FETCHING or self._next_cursor is None:
            return
        cursor = self._next_cursor
        self._loading_more = True
        self._notify()
        try:
            page = await self._fetcher(cursor)
        except (QueryError, NetworkError) as exc:
            self._record_error("load more", exc)
        else:
            # A replacement fetch in the meantime invalidates this page.
            if not self._closed and self._next_cursor == cursor:
                held = {item.id for item in self._items}
                self._items.extend(
                    item
                    for item in page.items
                    if item.id not in held and item.id not in self._deleted_ids
                )
                self._next_cursor = page.next_cursor
                self._has_more = page.has_more
                self._error = None
        finally:
            self._loading_more = False
            self._notify()

    def handle_change(self, event: ChangeEvent) -> None:
        """React to a single upstream change."""
        if self._closed:
            return
        if event.kind is ChangeKind.DELETE and event.record_id:
            self._delete_seq += 1
            self._deleted_ids[event.record_id] = self._delete_seq
            remaining = [item for item in self._items if item.id != event.record_id]
            if len(remaining) != len(self._items):
                self._items = remaining
                self._notify()
        if self._state is SyncState.FETCHING:
            self._pending_follow_up = True
            return
        self._start_debounce()

    async def settle(self) -> None:
        """Wait for an in-flight background fetch to finish."""
        while self._fetch_task is not None and not self._fetch_task.done():
            await asyncio.wait([self._fetch_task])

    async def close(self) -> None:
        """Tear the view down; nothing updates it afterwards."""
        if self._closed:
            return
        self._closed = True
        self._cancel_timer()
        self._state = SyncState.IDLE
        self._pending_follow_up = False
        subscription, self._subscription = self._subscription, None
        task, self._fetch_task = self._fetch_task, None
        if task is not None and not task.done():
            task.cancel()
        self._live = False
        self._deleted_ids.clear()
        if subscription is not None:
            await subscription.unsubscribe()

    def _start_debounce(self) -> None:
        self._cancel_timer()
        self._state = SyncState.DEBOUNCING
        self._timer = self._scheduler.call_later(
            self._debounce_seconds, self._on_debounce_elapsed
        )

    def _cancel_timer(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        if self._state is SyncState.DEBOUNCING:
            self._state = SyncState.IDLE

    def _on_debounce_elapsed(self) -> None:
        self._timer = None
        if self._closed:
            return
        self._state = SyncState.FETCHING
        self._fetch_task = asyncio.get_running_loop().create_task(
            self._fetch_first_page(foreground=False)
        )

    async def _fetch_first_page(self, *, foreground: bool) -> None:
        self._state = SyncState.FETCHING
        if foreground:
            self._loading = True
            self._notify()
        started = self._delete_seq
        try:
            page = await self._fetcher(None)
        except (QueryError, NetworkError) as exc:
            self._record_error("refresh" if foreground else "background refresh", exc)
        else:
            if not self._closed:
                self._items = [
                    item for item in page.items if item.id not in self._deleted_ids
                ]
                self._next_cursor = page.next_cursor
                self._has_more = page.has_more
                self._error = None
                self._forget_deletes(started)
        finally:
            if foreground:
                self._loading = False
            self._finish_fetch()

    def _forget_deletes(self, started: int) -> None:
        # A first page fetched after a delete already reflects it.
        self._deleted_ids = {
            record_id: seq
            for record_id, seq in self._deleted_ids.items()
            if seq > started
        }

    def _finish_fetch(self) -> None:
        if self._closed:
            return
        self._state = SyncState.IDLE
        if self._pending_follow_up:
            self._pending_follow_up = False
            self._start_debounce()
        self._notify()

    def _record_error(self, action: str, exc: Exception) -> None:
        if self._closed:
            return
        _logger.error("Catch view %s failed: %s", action, exc)
        self._error = str(exc)

    def _notify(self) -> None:
        if self._listener is not None and not self._closed:
            self._listener(self.snapshot())
