"""Tests for catch visibility rules."""

from catch_feed.domain.catches import ViewerContext, Visibility
from catch_feed.services.access_policy import can_view, can_view_catch, filter_visible
from tests.factories import make_catch


def test_public_and_unset_visibility_are_visible_to_anyone() -> None:
    assert can_view_catch(Visibility.PUBLIC, "owner")
    assert can_view_catch(None, "owner")
    assert can_view_catch("public", "owner", "stranger")


def test_missing_owner_denies_everyone() -> None:
    assert not can_view_catch(Visibility.PUBLIC, None)
    assert not can_view_catch(Visibility.PUBLIC, "", "viewer")


def test_owner_always_sees_own_catch() -> None:
    assert can_view_catch(Visibility.PRIVATE, "owner", "owner")
    assert can_view_catch("something-else", "owner", "owner")


def test_private_hidden_from_others() -> None:
    assert not can_view_catch(Visibility.PRIVATE, "owner")
    assert not can_view_catch(Visibility.PRIVATE, "owner", "friend", {"owner"})


def test_followers_visibility_requires_following_the_owner() -> None:
    assert can_view_catch(Visibility.FOLLOWERS, "owner", "fan", {"owner"})
    assert not can_view_catch(Visibility.FOLLOWERS, "owner", "fan", {"other"})
    assert not can_view_catch(Visibility.FOLLOWERS, "owner", None, {"owner"})


def test_unknown_visibility_value_denies() -> None:
    assert not can_view_catch("friends_of_friends", "owner", "viewer")


def test_filter_visible_keeps_order() -> None:
    records = [
        make_catch("c1", owner_id="a"),
        make_catch("c2", owner_id="b", visibility=Visibility.PRIVATE),
        make_catch("c3", owner_id="b", visibility=Visibility.FOLLOWERS),
        make_catch("c4", owner_id="c", visibility=None),
    ]
    viewer = ViewerContext(viewer_id="fan", following_ids=frozenset({"b"}))

    visible = filter_visible(records, viewer)

    assert [record.id for record in visible] == ["c1", "c3", "c4"]
    assert can_view(records[1], ViewerContext(viewer_id="b"))
