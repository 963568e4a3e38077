"""Capture client to API to analytics, in process."""
import httpx

from app.sdk.clickstream import ClickstreamClient
from factories import post_event

API = "http://testserver/api"


async def test_tracked_course_view_reaches_learner_history(client, asgi_transport, retry_queue):
    registered = client.post("/api/auth/register", json={
        "username": "alice",
        "email": "alice@example.com",
        "password": "s3cret-pass",
    })
    assert registered.status_code == 201
    tracker = ClickstreamClient(API, retry_queue=retry_queue, transport=asgi_transport)

    await tracker.initialize(registered.json()["user"])
    result = await tracker.track_course_view(1, "Intro")

    assert result["success"] is True
    assert len(retry_queue) == 0

    history = client.get("/api/clickstream/user/alice").json()
    # initialize() records session_start before the course view
    assert history["totalActions"] == 2
    assert [event["eventType"] for event in history["data"]] == ["course_view", "session_start"]
    course_view = history["data"][0]
    assert course_view["eventData"]["courseId"] == 1
    assert course_view["sessionId"] == tracker.session_id
    assert course_view["id"] == result["id"]


async def test_outage_then_recovery_delivers_every_event_once(client, asgi_transport, retry_queue):
    offline = ClickstreamClient(
        API,
        retry_queue=retry_queue,
        transport=httpx.MockTransport(lambda request: httpx.Response(503)),
    )
    await offline.initialize({"username": "alice"})
    await offline.track_quiz_complete(3, score=8, total_questions=10)

    recovered = ClickstreamClient(API, retry_queue=retry_queue, transport=asgi_transport)
    assert await recovered.retry_failed_events() == 2
    assert await recovered.retry_failed_events() == 0

    dashboard = client.get("/api/analytics/dashboard/alice").json()["dashboard"]
    assert dashboard["completedModules"] == 1
    assert [badge["title"] for badge in dashboard["achievements"]] == ["Quiz Master", "High Achiever"]


def test_unparseable_timestamp_is_stored_but_excluded_from_ranges(client):
    post_event(client, "page_view", timestamp="not-a-date")

    everything = client.get("/api/analytics/clickstream").json()
    ranged = client.get("/api/analytics/clickstream", params={
        "startDate": "2000-01-01",
        "endDate": "2100-01-01",
    }).json()

    assert everything["count"] == 1
    assert everything["data"][0]["timestamp"] == "not-a-date"
    assert ranged["count"] == 0
    assert client.get("/api/clickstream/user/alice").json()["totalActions"] == 1
