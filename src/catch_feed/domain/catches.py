"""Domain models for catch records and viewers."""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum


class Visibility(str, Enum):
    """Per-record audience."""

    PUBLIC = "public"
    FOLLOWERS = "followers"
    PRIVATE = "private"


@dataclass(frozen=True)
class CatchRecord:
    """A catch as read from the record store."""

    id: str
    owner_id: str | None
    created_at: datetime
    visibility: Visibility | None = None
    hide_exact_spot: bool = False
    location: str | None = None
    attributes: dict[str, object] | None = None
    title: str | None = None
    species: str | None = None
    weight: float | None = None
    weight_unit: str | None = None
    session_id: str | None = None
    ratings: list[float] = field(default_factory=list)
    # Precomputed by the leaderboard view.
    owner_username: str | None = None
    total_score: float | None = None
    avg_rating: float | None = None
    rating_count: int | None = None

    @property
    def average_rating(self) -> float:
        """Mean of the attached ratings, zero when unrated."""
        if not self.ratings:
            return self.avg_rating or 0.0
        return sum(self.ratings) / len(self.ratings)

    @property
    def total_ratings(self) -> int:
        """Number of ratings, attached or precomputed."""
        if self.ratings or self.rating_count is None:
            return len(self.ratings)
        return self.rating_count

    @property
    def custom_species(self) -> str | None:
        """Free-text species entered under the custom fields bag."""
        custom_fields = (self.attributes or {}).get("customFields")
        if not isinstance(custom_fields, dict):
            return None
        value = custom_fields.get("species")
        return value if isinstance(value, str) else None


@dataclass(frozen=True)
class ViewerContext:
    """Who is looking, and whom they follow."""

    viewer_id: str | None = None
    following_ids: frozenset[str] = frozenset()

    @classmethod
    def anonymous(cls) -> "ViewerContext":
        """Return a context for a signed-out viewer."""
        return cls()
