"""Domain models for store change notifications."""

from dataclasses import dataclass
from enum import Enum


class ChangeKind(str, Enum):
    """Kind of row mutation reported by the change stream."""

    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


@dataclass(frozen=True)
class ChangeEvent:
    """A single row mutation, carrying at least the row identity."""

    kind: ChangeKind
    record_id: str | None
    table: str = "catches"
