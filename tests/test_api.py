from __future__ import annotations

import base64

from fastapi.testclient import TestClient
from search_payloads import (
    FakeSearchClient,
    continuation_payload,
    fresh_search_payload,
    video_entry,
)

from kidscurator.app.services.errors import SearchProviderError


def _token(raw: str) -> str:
    return base64.urlsafe_b64encode(raw.encode("utf-8")).decode("ascii")


def test_health(client: TestClient) -> None:
    response = client.get("/api/health")

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert body["timestamp"].endswith("Z")


def test_service_overview_lists_endpoints_and_filters(client: TestClient) -> None:
    response = client.get("/")

    assert response.status_code == 200
    body = response.json()
    assert body["endpoints"]["search"].startswith("/api/search")
    assert body["filters"]["search"] == {
        "policy": "general",
        "minDurationSeconds": 120,
        "maxDurationSeconds": 1200,
    }
    assert body["filters"]["channel"]["policy"] == "channel"


def test_search_returns_curated_videos_in_camel_case(
    client: TestClient,
    search_client: FakeSearchClient,
) -> None:
    search_client.queue_fresh(
        fresh_search_payload(
            video_entry("vid_animals", thumbnail="https://i.ytimg.com/vi/vid_animals/hq.jpg"),
            video_entry("vid_short", duration="0:45"),
            continuation="token-2",
        )
    )

    response = client.get("/api/search", params={"q": "animals"})

    assert response.status_code == 200
    body = response.json()
    assert body["nextPageToken"] == _token("token-2")
    assert body["videos"] == [
        {
            "id": "vid_animals",
            "title": "fun animal cartoon for kids",
            "thumbnailUrl": "https://i.ytimg.com/vi/vid_animals/hq.jpg",
            "channelTitle": "Happy Kids TV",
            "publishedAt": "2 days ago",
            "description": "Learn about animals.",
            "category": "general",
            "videoUrl": "https://www.youtube.com/watch?v=vid_animals",
            "duration": "5:00",
            "durationSeconds": 300,
        }
    ]


def test_search_follows_cached_continuation_on_next_page(
    client: TestClient,
    search_client: FakeSearchClient,
) -> None:
    search_client.queue_fresh(fresh_search_payload(video_entry("vid_1"), continuation="token-2"))
    search_client.queue_continuation(continuation_payload(video_entry("vid_2")))

    first = client.get("/api/search", params={"q": "animals", "page": 1})
    second = client.get("/api/search", params={"q": "animals", "page": 2})

    assert [video["id"] for video in first.json()["videos"]] == ["vid_1"]
    assert [video["id"] for video in second.json()["videos"]] == ["vid_2"]
    assert "nextPageToken" not in second.json()
    assert search_client.continuation_tokens == ["token-2"]


def test_search_accepts_explicit_continuation(
    client: TestClient,
    search_client: FakeSearchClient,
) -> None:
    search_client.queue_continuation(continuation_payload(video_entry("vid_7")))

    response = client.get(
        "/api/search",
        params={"q": "animals", "page": 2, "continuation": _token("caller-token")},
    )

    assert response.status_code == 200
    assert [video["id"] for video in response.json()["videos"]] == ["vid_7"]
    assert search_client.continuation_tokens == ["caller-token"]


def test_search_page_without_cached_continuation_is_empty(
    client: TestClient,
    search_client: FakeSearchClient,
) -> None:
    response = client.get("/api/search", params={"q": "animals", "page": 3})

    assert response.status_code == 200
    assert response.json() == {"videos": []}
    assert search_client.queries == []


def test_search_requires_query(client: TestClient) -> None:
    missing = client.get("/api/search")
    blank = client.get("/api/search", params={"q": "   "})

    for response in (missing, blank):
        assert response.status_code == 400
        assert response.json() == {"error": 'Query parameter "q" is required'}


def test_search_rejects_invalid_page(client: TestClient) -> None:
    for page in ("abc", "0"):
        response = client.get("/api/search", params={"q": "animals", "page": page})

        assert response.status_code == 400
        assert response.json()["error"].startswith("Invalid request parameters")


def test_search_rejects_malformed_continuation(client: TestClient) -> None:
    response = client.get("/api/search", params={"q": "animals", "continuation": "%%%"})

    assert response.status_code == 400
    assert "continuation" in response.json()["error"]


def test_search_provider_failure_returns_500(
    client: TestClient,
    search_client: FakeSearchClient,
) -> None:
    search_client.fail_with(
        SearchProviderError("Search endpoint returned HTTP 503.", status_code=503)
    )

    response = client.get("/api/search", params={"q": "animals"})

    assert response.status_code == 500
    assert response.json() == {
        "error": "Failed to search videos",
        "message": "Search endpoint returned HTTP 503.",
    }
    assert response.headers["access-control-allow-origin"] == "*"


def test_channel_videos_filters_by_channel(
    client: TestClient,
    search_client: FakeSearchClient,
) -> None:
    search_client.queue_fresh(
        fresh_search_payload(
            video_entry("vid_match", channel="Super Simple Songs - Kids Songs"),
            video_entry("vid_other", channel="Totally Different"),
        )
    )

    response = client.get("/api/channel/Super Simple Songs")

    assert response.status_code == 200
    assert [video["id"] for video in response.json()["videos"]] == ["vid_match"]
    assert search_client.queries == ['Super Simple Songs "cartoon" "kids"']


def test_channel_provider_failure_returns_500(
    client: TestClient,
    search_client: FakeSearchClient,
) -> None:
    search_client.fail_with(SearchProviderError("Search request failed: timed out"))

    response = client.get("/api/channel/Cocomelon")

    assert response.status_code == 500
    assert response.json()["error"] == "Failed to fetch channel videos"


def test_blank_channel_name_is_rejected(client: TestClient) -> None:
    response = client.get("/api/channel/%20%20")

    assert response.status_code == 400
    assert response.json() == {"error": "Channel name is required"}


def test_cors_headers_on_every_response(client: TestClient) -> None:
    response = client.get("/api/health")

    assert response.headers["access-control-allow-origin"] == "*"
    assert response.headers["access-control-allow-headers"] == (
        "authorization, x-client-info, apikey, content-type"
    )


def test_preflight_returns_empty_ok(client: TestClient) -> None:
    response = client.options("/api/search")

    assert response.status_code == 200
    assert response.content == b""
    assert response.headers["access-control-allow-origin"] == "*"


def test_request_id_is_echoed_or_generated(client: TestClient) -> None:
    echoed = client.get("/api/health", headers={"X-Request-ID": "req-123"})
    generated = client.get("/api/health")

    assert echoed.headers["x-request-id"] == "req-123"
    assert generated.headers["x-request-id"]
