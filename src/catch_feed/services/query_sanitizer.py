"""Sanitization of free-text search input for PostgREST filters."""

import logging
import re
from collections.abc import Iterable

from catch_feed.domain.search import NormalizedSearchTerm

MAX_SEARCH_LENGTH = 100
CUSTOM_SPECIES_PATH = "conditions->customFields->>species"
SEARCHABLE_FIELDS = frozenset(
    {
        "title",
        "location",
        "species",
        "description",
        "username",
        "bio",
        CUSTOM_SPECIES_PATH,
    }
)
ORDERABLE_FIELDS = (
    "created_at",
    "updated_at",
    "title",
    "species",
    "weight",
    "total_score",
    "id",
)
DEFAULT_CATCH_FIELDS = ("title", "location", "species")

_FILTER_GRAMMAR_CHARS = re.compile(r"[,()'\"=\\]")
_WHITESPACE = re.compile(r"\s+")

_logger = logging.getLogger(__name__)


def sanitize_search_input(raw: object) -> str:
    """Strip filter-grammar characters, collapse whitespace and truncate."""
    if not isinstance(raw, str) or not raw:
        return ""
    cleaned = _FILTER_GRAMMAR_CHARS.sub("", raw)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return _truncate_code_units(cleaned, MAX_SEARCH_LENGTH)


def escape_like_pattern(value: str) -> str:
    """Escape LIKE metacharacters so user text only matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def normalize_search_term(raw: object) -> NormalizedSearchTerm | None:
    """Return the sanitized term and its match forms, or None for no search."""
    sanitized = sanitize_search_input(raw)
    if not sanitized:
        return None
    escaped = escape_like_pattern(sanitized)
    return NormalizedSearchTerm(
        sanitized=sanitized,
        like_pattern=f"%{escaped}%",
        lower_case=sanitized.lower(),
    )


def build_ilike_filters(like_pattern: str, fields: Iterable[str]) -> list[str]:
    """Build ``field.ilike.pattern`` clauses for allow-listed fields only."""
    filters = []
    for field in fields:
        name = field.strip() if isinstance(field, str) else ""
        if name not in SEARCHABLE_FIELDS:
            _logger.warning("Dropping non-searchable field from filter: %r", field)
            continue
        filters.append(f"{name}.ilike.{like_pattern}")
    return filters


def sanitize_species_candidates(candidates: Iterable[object]) -> list[str]:
    """Sanitize and de-duplicate species values, keeping first-seen order."""
    seen: dict[str, None] = {}
    for candidate in candidates:
        value = sanitize_search_input(candidate)
        if value:
            seen.setdefault(value, None)
    return list(seen)


def build_catch_search_filters(
    normalized: NormalizedSearchTerm,
    species_candidates: Iterable[object] = (),
    *,
    base_fields: Iterable[str] = DEFAULT_CATCH_FIELDS,
    include_custom_species: bool = True,
) -> list[str]:
    """Build the ``or`` clauses used to search catches."""
    fields = list(base_fields)
    if include_custom_species:
        fields.append(CUSTOM_SPECIES_PATH)
    filters = build_ilike_filters(normalized.like_pattern, fields)
    species = sanitize_species_candidates(species_candidates)
    if species:
        filters.append(f"species.in.({','.join(species)})")
    return filters


def sanitize_order_by(field: object) -> str:
    """Return the field if it is orderable, otherwise ``created_at``."""
    if isinstance(field, str) and field in ORDERABLE_FIELDS:
        return field
    return "created_at"


def _truncate_code_units(value: str, limit: int) -> str:
    encoded = value.encode("utf-16-le")
    if len(encoded) <= limit * 2:
        return value
    return encoded[: limit * 2].decode("utf-16-le", errors="ignore")
