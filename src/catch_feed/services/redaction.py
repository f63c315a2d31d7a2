"""Redaction of exact-spot details for hidden catches."""

from dataclasses import replace

from catch_feed.domain.catches import CatchRecord

GPS_KEY = "gps"


def should_show_exact_location(
    hide_exact_spot: bool | None, owner_id: str | None, viewer_id: str | None
) -> bool:
    """Return whether the exact location may be shown to the viewer."""
    if not hide_exact_spot:
        return True
    return bool(viewer_id and owner_id and viewer_id == owner_id)


def sanitize_catch(record: CatchRecord, viewer_id: str | None) -> CatchRecord:
    """Strip GPS from the attributes of a hidden-spot catch for non-owners.

    The same object is returned when nothing needs removing, so callers can
    detect the no-op with an identity check.
    """
    if should_show_exact_location(
        record.hide_exact_spot, record.owner_id, viewer_id
    ):
        return record
    attributes = record.attributes
    if not attributes or GPS_KEY not in attributes:
        return record
    stripped = {key: value for key, value in attributes.items() if key != GPS_KEY}
    return replace(record, attributes=stripped)


def redact_location(record: CatchRecord, viewer_id: str | None) -> CatchRecord:
    """Null the free-text location of a hidden-spot catch for non-owners."""
    if record.location is None:
        return record
    if should_show_exact_location(
        record.hide_exact_spot, record.owner_id, viewer_id
    ):
        return record
    return replace(record, location=None)


def present_catch(record: CatchRecord, viewer_id: str | None) -> CatchRecord:
    """Apply every redaction a viewer is subject to."""
    return redact_location(sanitize_catch(record, viewer_id), viewer_id)
