"""Keyset pagination over catch records."""

import base64
import binascii
import json
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from catch_feed.domain.catches import CatchRecord
from catch_feed.domain.pagination import (
    Cursor,
    FeedFilters,
    FeedScope,
    OrderKey,
    Page,
    QueryDescriptor,
    SortMode,
)
from catch_feed.errors import ValidationError

OTHER_SPECIES = "other"

_ORDERINGS: dict[SortMode, tuple[OrderKey, ...]] = {
    SortMode.NEWEST: (OrderKey("created_at"), OrderKey("id")),
    SortMode.HEAVIEST: (
        OrderKey("weight", nullable=True),
        OrderKey("created_at"),
        OrderKey("id"),
    ),
    # Ratings are aggregated after fetch, so the store orders by time.
    SortMode.HIGHEST_RATED: (OrderKey("created_at"), OrderKey("id")),
    # Equal scores rank the earlier catch first.
    SortMode.LEADERBOARD: (
        OrderKey("total_score", nullable=True),
        OrderKey("created_at", descending=False),
        OrderKey("id", descending=False),
    ),
}
FEED_SORT_MODES = (SortMode.NEWEST, SortMode.HEAVIEST, SortMode.HIGHEST_RATED)


def parse_sort_mode(raw: str | None) -> SortMode:
    """Parse a feed sort mode name, defaulting to newest."""
    if raw is None or raw == "":
        return SortMode.NEWEST
    try:
        sort_mode = SortMode(raw)
    except ValueError as exc:
        raise ValidationError(f"Unknown sort mode: {raw!r}") from exc
    if sort_mode not in FEED_SORT_MODES:
        raise ValidationError(f"Unknown sort mode: {raw!r}")
    return sort_mode


def ordering_for(sort_mode: SortMode) -> tuple[OrderKey, ...]:
    """Return the store ordering for a sort mode, ``id`` last."""
    return _ORDERINGS[sort_mode]


def cursor_for(sort_mode: SortMode, record: CatchRecord) -> Cursor:
    """Build the cursor that resumes after ``record``."""
    if sort_mode is SortMode.HEAVIEST:
        return Cursor(rank=record.weight, id=record.id, created_at=record.created_at)
    if sort_mode is SortMode.LEADERBOARD:
        return Cursor(
            rank=record.total_score, id=record.id, created_at=record.created_at
        )
    return Cursor(rank=record.created_at, id=record.id)


def cursor_values(sort_mode: SortMode, cursor: Cursor) -> tuple[object, ...]:
    """Return cursor values aligned with ``ordering_for(sort_mode)``."""
    if sort_mode in (SortMode.HEAVIEST, SortMode.LEADERBOARD):
        if cursor.created_at is None:
            raise ValidationError(
                f"{sort_mode.value} cursor is missing its created_at key"
            )
        return (cursor.rank, cursor.created_at, cursor.id)
    if cursor.rank is None:
        raise ValidationError("Cursor is missing its rank key")
    return (cursor.rank, cursor.id)


def record_values(sort_mode: SortMode, record: CatchRecord) -> tuple[object, ...]:
    """Return a record's sort values aligned with the ordering."""
    return cursor_values(sort_mode, cursor_for(sort_mode, record))


def build_keyset_filter(
    order: Sequence[OrderKey], values: Sequence[object]
) -> str:
    """Render the keyset predicate as a PostgREST ``or`` expression.

    For a descending ``(rank, id)`` ordering this yields
    ``rank.lt.r,and(rank.eq.r,id.lt.i)``. Nullable keys sort nulls last, so a
    null is after every value and only ties with another null.
    """
    if len(order) != len(values) or not order:
        raise ValidationError("Cursor does not match the sort ordering")
    return ",".join(_keyset_alternatives(order, values))


def row_after_cursor(
    row_values: Sequence[object],
    order: Sequence[OrderKey],
    cursor_values_: Sequence[object],
) -> bool:
    """Return whether a row sorts strictly after the cursor position."""
    for key, value, bound in zip(order, row_values, cursor_values_, strict=True):
        if value == bound:
            continue
        if bound is None:
            return False
        if value is None:
            return key.nullable
        if key.descending:
            return value < bound
        return value > bound
    return False


@dataclass
class CursorPaginator:
    """Builds page queries and assembles pages for a fixed page size."""

    page_size: int = 20

    def build_query(
        self,
        sort_mode: SortMode,
        filters: FeedFilters | None = None,
        cursor: Cursor | None = None,
    ) -> QueryDescriptor:
        """Describe the store query for one page."""
        filters = filters or FeedFilters()
        order = ordering_for(sort_mode)
        equals: list[tuple[str, str]] = []
        within: list[tuple[str, tuple[str, ...]]] = []
        if filters.session_id:
            equals.append(("session_id", filters.session_id))
        if filters.owner_id:
            equals.append(("user_id", filters.owner_id))
        if filters.species and filters.species != "all":
            equals.append(("species", filters.species))
        if filters.scope is FeedScope.FOLLOWING:
            within.append(("user_id", tuple(sorted(filters.following_ids))))

        custom_species = None
        if filters.species == OTHER_SPECIES and filters.custom_species:
            custom_species = filters.custom_species.strip().lower() or None

        keyset_filter = None
        if cursor is not None:
            keyset_filter = build_keyset_filter(
                order, cursor_values(sort_mode, cursor)
            )
        return QueryDescriptor(
            sort_mode=sort_mode,
            order=order,
            limit=self.page_size,
            equals=tuple(equals),
            within=tuple(within),
            cursor=cursor,
            keyset_filter=keyset_filter,
            custom_species=custom_species,
        )

    def next_page(
        self, rows: Sequence[CatchRecord], descriptor: QueryDescriptor
    ) -> Page:
        """Assemble a page from the raw rows returned for ``descriptor``.

        ``has_more`` is an approximation: a full page implies more rows may
        exist. Client-side narrowing can leave a page shorter than requested;
        the cursor still tracks the raw rows so that nothing is skipped.
        """
        sort_mode = descriptor.sort_mode
        raw = list(rows)
        if descriptor.cursor is not None:
            bound = cursor_values(sort_mode, descriptor.cursor)
            raw = [
                row
                for row in raw
                if row_after_cursor(
                    record_values(sort_mode, row), descriptor.order, bound
                )
            ]
        if not sort_mode.stable_cursor:
            # Ranked after fetch; the cursor follows the re-sorted page.
            raw = sorted(raw, key=lambda row: row.average_rating, reverse=True)

        has_more = len(rows) >= descriptor.limit > 0 and bool(raw)
        next_cursor = cursor_for(sort_mode, raw[-1]) if has_more and raw else None

        items = raw
        if descriptor.custom_species:
            items = [
                row
                for row in raw
                if (row.custom_species or "")
                .lower()
                .startswith(descriptor.custom_species)
            ]
        return Page(items=items, next_cursor=next_cursor, has_more=has_more)


def encode_cursor(cursor: Cursor) -> str:
    """Encode a cursor as a URL-safe page token."""
    payload: dict[str, object] = {"i": cursor.id}
    rank = cursor.rank
    if isinstance(rank, datetime):
        payload.update({"t": "datetime", "r": rank.isoformat()})
    elif isinstance(rank, int | float):
        payload.update({"t": "number", "r": rank})
    else:
        payload.update({"t": "null", "r": None})
    if cursor.created_at is not None:
        payload["c"] = cursor.created_at.isoformat()
    raw = json.dumps(payload, separators=(",", ":")).encode("utf-8")
    return base64.urlsafe_b64encode(raw).decode("ascii")


def decode_cursor(token: str) -> Cursor:
    """Decode a page token produced by :func:`encode_cursor`."""
    try:
        raw = base64.urlsafe_b64decode(token.encode("ascii"))
        payload = json.loads(raw.decode("utf-8"))
    except (ValueError, UnicodeError, binascii.Error) as exc:
        raise ValidationError("Malformed cursor") from exc
    if not isinstance(payload, dict):
        raise ValidationError("Malformed cursor")

    entity_id = payload.get("i")
    if not isinstance(entity_id, str) or not entity_id:
        raise ValidationError("Malformed cursor")
    try:
        rank = _decode_rank(payload.get("t"), payload.get("r"))
        created_raw = payload.get("c")
        created_at = (
            datetime.fromisoformat(created_raw) if isinstance(created_raw, str) else None
        )
    except (TypeError, ValueError) as exc:
        raise ValidationError("Malformed cursor") from exc
    return Cursor(rank=rank, id=entity_id, created_at=created_at)


def _decode_rank(kind: object, value: object) -> datetime | float | None:
    if kind == "datetime" and isinstance(value, str):
        return datetime.fromisoformat(value)
    if kind == "number" and isinstance(value, int | float):
        return float(value)
    if kind == "null":
        return None
    raise ValueError("unknown rank type")


def _keyset_alternatives(
    order: Sequence[OrderKey], values: Sequence[object]
) -> list[str]:
    key, value = order[0], values[0]
    alternatives = []
    if value is None:
        tie = f"{key.column}.is.null"
    else:
        operator = "lt" if key.descending else "gt"
        literal = _literal(value)
        alternatives.append(f"{key.column}.{operator}.{literal}")
        if key.nullable:
            alternatives.append(f"{key.column}.is.null")
        tie = f"{key.column}.eq.{literal}"
    if len(order) > 1:
        rest = _keyset_alternatives(order[1:], values[1:])
        inner = rest[0] if len(rest) == 1 else f"or({','.join(rest)})"
        alternatives.append(f"and({tie},{inner})")
    return alternatives


def _literal(value: object) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, int | float):
        return repr(value)
    text = value.isoformat() if isinstance(value, datetime) else str(value)
    escaped = text.replace("\\", "\\\\").replace('"', '\\"')
    return f'"{escaped}"'
