from datetime import datetime, timezone

from services.channels import get_post_status, post_status_from
from services.staffbase_client import StaffbaseAPIError

NOW = datetime(2025, 6, 1, 12, 0, tzinfo=timezone.utc)


def test_published_post():
    status = post_status_from({"published": "2025-05-01T08:00:00Z"}, NOW)
    assert status["status"] == "published"
    assert status["published"] == "2025-05-01T08:00:00Z"


def test_future_planned_post_is_scheduled():
    status = post_status_from({"planned": "2025-07-01T09:30:00Z"}, NOW)
    assert status["status"] == "scheduled"
    assert status["planned"] == "2025-07-01T09:30:00Z"
    assert status["plannedDateFormatted"] == "Jul 01, 2025, 09:30"


def test_published_wins_over_planned():
    status = post_status_from({"published": "2025-05-01T08:00:00Z", "planned": "2025-07-01T09:30:00Z"}, NOW)
    assert status["status"] == "published"


def test_past_planned_without_publish_is_draft():
    assert post_status_from({"planned": "2025-01-01T00:00:00Z"}, NOW)["status"] == "draft"


def test_unparseable_planned_is_draft():
    assert post_status_from({"planned": "next week"}, NOW)["status"] == "draft"


def test_lookup_failure_falls_back_to_draft(fake_client):
    fake_client.add("GET", "/posts/p1", StaffbaseAPIError(500, "down"))

    status = get_post_status(fake_client, "p1", NOW)

    assert status["status"] == "draft"
    assert "down" in status["error"]


def test_lookup_reads_post(fake_client):
    fake_client.add("GET", "/posts/p1", {"id": "p1", "published": "2025-05-01T08:00:00Z"})
    assert get_post_status(fake_client, "p1", NOW)["status"] == "published"
