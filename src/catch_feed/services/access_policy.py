"""Visibility decisions for catch records."""

from collections.abc import Collection, Iterable

from catch_feed.domain.catches import CatchRecord, ViewerContext, Visibility


def can_view_catch(
    visibility: Visibility | str | None,
    owner_id: str | None,
    viewer_id: str | None = None,
    following_ids: Collection[str] = frozenset(),
) -> bool:
    """Return whether a viewer may see a catch with the given fields.

    A missing owner always denies. The owner always sees their own catch.
    Otherwise a null visibility is public, and raw values outside the
    known set deny.
    """
    if not owner_id:
        return False
    if viewer_id and viewer_id == owner_id:
        return True

    resolved = _resolve(visibility)
    if resolved is None:
        return False
    if resolved is Visibility.PUBLIC:
        return True
    if resolved is Visibility.PRIVATE:
        return False
    if resolved is Visibility.FOLLOWERS:
        return viewer_id is not None and owner_id in following_ids
    return False


def can_view(record: CatchRecord, viewer: ViewerContext) -> bool:
    """Return whether the viewer may see the record."""
    return can_view_catch(
        record.visibility,
        record.owner_id,
        viewer.viewer_id,
        viewer.following_ids,
    )


def filter_visible(
    records: Iterable[CatchRecord], viewer: ViewerContext
) -> list[CatchRecord]:
    """Drop records the viewer may not see, keeping order."""
    return [record for record in records if can_view(record, viewer)]


def _resolve(visibility: Visibility | str | None) -> Visibility | None:
    if visibility is None:
        return Visibility.PUBLIC
    if isinstance(visibility, Visibility):
        return visibility
    try:
        return Visibility(visibility)
    except ValueError:
        return None
