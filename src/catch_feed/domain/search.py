"""Domain models for composite search."""

from dataclasses import dataclass, field

from catch_feed.domain.catches import CatchRecord


@dataclass(frozen=True)
class NormalizedSearchTerm:
    """A sanitized search term and its derived match forms."""

    sanitized: str
    like_pattern: str
    lower_case: str


@dataclass(frozen=True)
class ProfileSummary:
    """Public profile fields returned by search."""

    id: str
    username: str
    avatar_path: str | None = None
    avatar_url: str | None = None
    bio: str | None = None


@dataclass(frozen=True)
class SearchError:
    """A failed search source and a user-facing message."""

    source: str
    message: str


@dataclass
class SearchResults:
    """Combined results across search sources."""

    profiles: list[ProfileSummary] = field(default_factory=list)
    catches: list[CatchRecord] = field(default_factory=list)
    venues: list[str] = field(default_factory=list)
    errors: list[SearchError] = field(default_factory=list)
