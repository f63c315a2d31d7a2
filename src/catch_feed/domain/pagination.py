"""Domain models for sorted, keyset-paginated views."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum

from catch_feed.domain.catches import CatchRecord


class SortMode(str, Enum):
    """Closed set of orderings a view can request."""

    NEWEST = "newest"
    HEAVIEST = "heaviest"
    HIGHEST_RATED = "highest_rated"
    LEADERBOARD = "leaderboard"

    @property
    def stable_cursor(self) -> bool:
        """Whether the cursor for this mode orders by store-side keys only."""
        return self is not SortMode.HIGHEST_RATED


class FeedScope(str, Enum):
    """Whose catches a feed covers."""

    ALL = "all"
    FOLLOWING = "following"


@dataclass(frozen=True)
class OrderKey:
    """One column of a multi-column ordering."""

    column: str
    descending: bool = True
    nullable: bool = False


@dataclass(frozen=True)
class Cursor:
    """Last-seen position of a page.

    ``created_at`` is only carried by sort modes that break rank ties on
    creation time before falling back to ``id``.
    """

    rank: datetime | float | None
    id: str
    created_at: datetime | None = None


@dataclass(frozen=True)
class FeedFilters:
    """Store-side and client-side filters for a feed view."""

    species: str | None = None
    custom_species: str | None = None
    scope: FeedScope = FeedScope.ALL
    following_ids: frozenset[str] = frozenset()
    session_id: str | None = None
    owner_id: str | None = None


@dataclass(frozen=True)
class QueryDescriptor:
    """Store-agnostic description of one page query."""

    sort_mode: SortMode
    order: tuple[OrderKey, ...]
    limit: int
    equals: tuple[tuple[str, str], ...] = ()
    within: tuple[tuple[str, tuple[str, ...]], ...] = ()
    cursor: Cursor | None = None
    keyset_filter: str | None = None
    custom_species: str | None = None


@dataclass(frozen=True)
class Page:
    """A page of visible, redacted catches."""

    items: list[CatchRecord] = field(default_factory=list)
    next_cursor: Cursor | None = None
    has_more: bool = False
