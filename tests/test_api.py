"""Tests for the HTTP API."""

from fastapi.testclient import TestClient

from catch_feed.api.app import create_app
from catch_feed.domain.catches import Visibility
from catch_feed.domain.search import ProfileSummary
from catch_feed.errors import NetworkError, QueryError
from tests.factories import make_catch, minutes_ago


def test_health(container) -> None:
    client = TestClient(create_app(container))

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_feed_pages_with_cursor_tokens(container, catch_repository) -> None:
    catch_repository.add(
        *[make_catch(f"c{index}", created_at=minutes_ago(index)) for index in range(5)]
    )
    client = TestClient(create_app(container))

    first = client.get("/feed").json()
    second = client.get("/feed", params={"cursor": first["next_cursor"]}).json()

    assert [item["id"] for item in first["items"]] == ["c0", "c1", "c2"]
    assert first["has_more"] is True
    assert [item["id"] for item in second["items"]] == ["c3", "c4"]
    assert second["next_cursor"] is None


def test_feed_uses_viewer_follows(
    container, catch_repository, follow_repository
) -> None:
    catch_repository.add(
        make_catch("c1", owner_id="a", visibility=Visibility.FOLLOWERS),
        make_catch("c2", owner_id="b", created_at=minutes_ago(1)),
    )
    follow_repository.edges["fan"] = ["a"]
    client = TestClient(create_app(container))

    anonymous = client.get("/feed").json()
    following = client.get(
        "/feed", params={"scope": "following"}, headers={"X-Viewer-Id": "fan"}
    ).json()

    assert [item["id"] for item in anonymous["items"]] == ["c2"]
    assert [item["id"] for item in following["items"]] == ["c1"]


def test_feed_rejects_bad_input(container) -> None:
    client = TestClient(create_app(container))

    assert client.get("/feed", params={"sort": "loudest"}).status_code == 422
    assert client.get("/feed", params={"scope": "friends"}).status_code == 422
    assert client.get("/feed", params={"cursor": "%%%"}).status_code == 422


def test_store_failures_map_to_gateway_errors(container, catch_repository) -> None:
    client = TestClient(create_app(container))

    catch_repository.errors.append(QueryError("column does not exist"))
    assert client.get("/feed").status_code == 502

    catch_repository.errors.extend([NetworkError("down")] * 3)
    assert client.get("/feed").status_code == 503


def test_catch_detail_hides_invisible_catches(container, catch_repository) -> None:
    catch_repository.add(
        make_catch("c1", owner_id="a", visibility=Visibility.PRIVATE),
        make_catch("c2", owner_id="a", hide_exact_spot=True, location="Weir Pool"),
    )
    client = TestClient(create_app(container))

    assert client.get("/catches/c1").status_code == 404
    assert client.get("/catches/c1", headers={"X-Viewer-Id": "a"}).status_code == 200
    detail = client.get("/catches/c2").json()
    assert detail["location"] is None
    assert detail["user_id"] == "a"


def test_profile_catches(container, catch_repository) -> None:
    catch_repository.add(
        make_catch("c1", owner_id="a"),
        make_catch("c2", owner_id="b"),
    )
    client = TestClient(create_app(container))

    response = client.get("/profiles/a/catches")

    assert response.status_code == 200
    assert [item["id"] for item in response.json()["items"]] == ["c1"]


def test_search_reports_partial_failures(
    container, catch_repository, profile_repository
) -> None:
    profile_repository.profiles.append(ProfileSummary(id="p1", username="pikehunter"))
    catch_repository.search_error = QueryError("boom")
    client = TestClient(create_app(container))

    response = client.get("/search", params={"q": "pike"})

    data = response.json()
    assert response.status_code == 200
    assert data["profiles"][0]["username"] == "pikehunter"
    assert data["errors"] == [
        {"source": "catches", "message": "We couldn't fetch every result this time."}
    ]


def test_search_empty_query_returns_nothing(container) -> None:
    client = TestClient(create_app(container))

    data = client.get("/search", params={"q": "   "}).json()

    assert data == {"profiles": [], "catches": [], "venues": [], "errors": []}


def test_leaderboard_pages_and_filters_species(container, catch_repository) -> None:
    catch_repository.leaderboard.extend(
        make_catch(f"c{index}", total_score=90.0 - index, species="pike")
        for index in range(4)
    )
    catch_repository.leaderboard.append(
        make_catch("p1", total_score=99.0, species="perch")
    )
    client = TestClient(create_app(container))

    first = client.get("/leaderboard", params={"species": "pike"}).json()
    second = client.get(
        "/leaderboard", params={"species": "pike", "cursor": first["next_cursor"]}
    ).json()

    assert [item["id"] for item in first["items"]] == ["c0", "c1", "c2"]
    assert first["items"][0]["total_score"] == 90.0
    assert [item["id"] for item in second["items"]] == ["c3"]
    assert second["has_more"] is False


def test_feed_does_not_accept_leaderboard_sort(container) -> None:
    client = TestClient(create_app(container))

    assert client.get("/feed", params={"sort": "leaderboard"}).status_code == 422
