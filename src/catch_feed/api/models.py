"""Pydantic response models for the catch feed API."""

from datetime import datetime
from typing import Any

from pydantic import BaseModel, Field

from catch_feed.domain.catches import CatchRecord
from catch_feed.domain.pagination import Page
from catch_feed.domain.search import SearchResults
from catch_feed.services.pagination import encode_cursor


class CatchOut(BaseModel):
    """A catch as shown to one viewer."""

    id: str
    user_id: str | None
    title: str | None = None
    species: str | None = None
    weight: float | None = None
    weight_unit: str | None = None
    location: str | None = None
    hide_exact_spot: bool = False
    visibility: str | None = None
    conditions: dict[str, Any] | None = None
    session_id: str | None = None
    created_at: datetime
    avg_rating: float = 0.0
    rating_count: int = 0
    owner_username: str | None = None
    total_score: float | None = None

    @classmethod
    def from_record(cls, record: CatchRecord) -> "CatchOut":
        return cls(
            id=record.id,
            user_id=record.owner_id,
            title=record.title,
            species=record.species,
            weight=record.weight,
            weight_unit=record.weight_unit,
            location=record.location,
            hide_exact_spot=record.hide_exact_spot,
            visibility=record.visibility.value if record.visibility else None,
            conditions=record.attributes,
            session_id=record.session_id,
            created_at=record.created_at,
            avg_rating=record.average_rating,
            rating_count=record.total_ratings,
            owner_username=record.owner_username,
            total_score=record.total_score,
        )


class PageOut(BaseModel):
    """One page of catches and the token for the next one."""

    items: list[CatchOut] = Field(default_factory=list)
    next_cursor: str | None = None
    has_more: bool = False

    @classmethod
    def from_page(cls, page: Page) -> "PageOut":
        return cls(
            items=[CatchOut.from_record(record) for record in page.items],
            next_cursor=encode_cursor(page.next_cursor) if page.next_cursor else None,
            has_more=page.has_more,
        )


class ProfileOut(BaseModel):
    """Profile search hit."""

    id: str
    username: str
    avatar_path: str | None = None
    avatar_url: str | None = None
    bio: str | None = None


class SearchErrorOut(BaseModel):
    """A search source that failed."""

    source: str
    message: str


class SearchOut(BaseModel):
    """Combined search results."""

    profiles: list[ProfileOut] = Field(default_factory=list)
    catches: list[CatchOut] = Field(default_factory=list)
    venues: list[str] = Field(default_factory=list)
    errors: list[SearchErrorOut] = Field(default_factory=list)

    @classmethod
    def from_results(cls, results: SearchResults) -> "SearchOut":
        return cls(
            profiles=[
                ProfileOut(
                    id=profile.id,
                    username=profile.username,
                    avatar_path=profile.avatar_path,
                    avatar_url=profile.avatar_url,
                    bio=profile.bio,
                )
                for profile in results.profiles
            ],
            catches=[CatchOut.from_record(record) for record in results.catches],
            venues=list(results.venues),
            errors=[
                SearchErrorOut(source=error.source, message=error.message)
                for error in results.errors
            ],
        )
