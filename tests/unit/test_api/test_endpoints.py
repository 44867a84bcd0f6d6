"""
Endpoint tests for the HTTP API.

The app runs against the test session; notifications are recorded instead of
delivered and the cron secret is fixed.
"""

import pytest
from fastapi.testclient import TestClient

from src.api.dependencies import get_delivery_notifier
from src.api.main import app
from src.config import Settings, get_settings
from src.database import get_db

CRON_SECRET = "test-secret"


@pytest.fixture
def client(db_session, notifier):
    def override_get_db():
        try:
            yield db_session
            db_session.commit()
        except Exception:
            db_session.rollback()
            raise

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_delivery_notifier] = lambda: notifier
    app.dependency_overrides[get_settings] = lambda: Settings(_env_file=None, cron_secret=CRON_SECRET)
    try:
        yield TestClient(app)
    finally:
        app.dependency_overrides.clear()


def as_member(member) -> dict:
    return {"X-User-ID": str(member.id)}


class TestSystem:
    def test_health(self, client):
        response = client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"
        assert response.json()["database_connected"] is True

    def test_request_id_echoed(self, client):
        response = client.get("/health", headers={"X-Request-ID": "abc123"})
        assert response.headers["X-Request-ID"] == "abc123"

    def test_missing_user_header(self, client):
        response = client.get("/events")

        assert response.status_code == 401
        assert response.json() == {
            "error_type": "authentication_error",
            "message": "Not authenticated",
            "retryable": False,
        }

    def test_outsider_sees_only_own_family(self, client, family, parent_a, outsider):
        client.post(
            "/events",
            json={"date": "2026-02-03", "parent": "parent_a", "location": "home_a"},
            headers=as_member(parent_a),
        )

        response = client.get("/events", headers=as_member(outsider))
        assert response.json()["total"] == 0


class TestBlockedPeriodEndpoints:
    def test_add_list_delete(self, client, parent_a, parent_b):
        created = client.post(
            "/blocked-periods",
            json={"start_date": "2026-02-03", "end_date": "2026-02-05", "note": "Work trip"},
            headers=as_member(parent_a),
        )
        assert created.status_code == 201
        assert created.json()["parent_role"] == "parent_a"

        listed = client.get("/blocked-periods", headers=as_member(parent_b))
        assert [b["start_date"] for b in listed.json()] == ["2026-02-03"]
        assert client.get("/blocked-periods?mine=true", headers=as_member(parent_b)).json() == []

        forbidden = client.delete(f"/blocked-periods/{created.json()['id']}", headers=as_member(parent_b))
        assert forbidden.status_code == 403

        deleted = client.delete(f"/blocked-periods/{created.json()['id']}", headers=as_member(parent_a))
        assert deleted.json() == {"ok": True}

    def test_reversed_range_is_400(self, client, parent_a):
        response = client.post(
            "/blocked-periods",
            json={"start_date": "2026-02-05", "end_date": "2026-02-03"},
            headers=as_member(parent_a),
        )

        assert response.status_code == 400
        assert response.json()["error_type"] == "validation_error"


class TestEventEndpoints:
    def test_create_and_patch(self, client, parent_a, parent_b, notifier):
        created = client.post(
            "/events",
            json={
                "date": "2026-02-03", "parent": "parent_a", "location": "home_a",
                "title": "Swimming", "start_time": "17:00",
            },
            headers=as_member(parent_a),
        )
        assert created.status_code == 201
        assert created.json()["created_by"] == str(parent_a.id)
        assert len(notifier.of_type("event.created")) == 1

        patched = client.patch(
            f"/events/{created.json()['id']}",
            json={"notes": "Bring towel"},
            headers=as_member(parent_b),
        )
        assert patched.json()["notes"] == "Bring towel"
        assert patched.json()["title"] == "Swimming"

    def test_blocked_day_is_409_and_notifies_blocker(self, client, parent_a, parent_b, notifier):
        client.post(
            "/blocked-periods",
            json={"start_date": "2026-02-03", "end_date": "2026-02-03"},
            headers=as_member(parent_a),
        )

        response = client.post(
            "/events",
            json={"date": "2026-02-03", "parent": "parent_a", "location": "home_a"},
            headers=as_member(parent_b),
        )

        assert response.status_code == 409
        assert response.json()["error_type"] == "schedule_conflict"
        assert response.json()["retryable"] is False
        sent = notifier.of_type("blocked_day.attempt")
        assert len(sent) == 1
        assert sent[0][0] == [str(parent_a.id)]
        assert client.get("/events", headers=as_member(parent_a)).json()["total"] == 0

    def test_bad_time_is_400(self, client, parent_a):
        response = client.post(
            "/events",
            json={"date": "2026-02-03", "parent": "parent_a", "location": "home_a", "start_time": "5pm"},
            headers=as_member(parent_a),
        )

        assert response.status_code == 400
        assert response.json()["error_type"] == "validation_error"

    def test_unknown_party_is_400(self, client, parent_a):
        response = client.post(
            "/events",
            json={"date": "2026-02-03", "parent": "grandma", "location": "home_a"},
            headers=as_member(parent_a),
        )
        assert response.status_code == 400


class TestCalendarEndpoints:
    def test_ics_export(self, client, parent_a, outsider):
        client.post(
            "/events",
            json={"date": "2026-02-03", "parent": "parent_a", "location": "home_a", "title": "Swimming"},
            headers=as_member(parent_a),
        )

        response = client.get("/calendar.ics", headers=as_member(parent_a))

        assert response.status_code == 200
        assert response.headers["content-type"] == "text/calendar; charset=utf-8"
        assert response.headers["content-disposition"] == 'attachment; filename="coparent-schedule.ics"'
        assert response.headers["cache-control"] == "no-store"
        assert "\r\nSUMMARY:Swimming\r\n" in response.text

        other = client.get("/calendar.ics", headers=as_member(outsider))
        assert "BEGIN:VEVENT" not in other.text

    def test_json_import_skips_invalid_entries(self, client, parent_a, parent_b, notifier):
        response = client.post(
            "/events/import",
            json=[
                {"date": "2026-02-03T00:00:00Z", "parent": "parent_a", "location": "home_a"},
                {"date": "2026-02-04", "parent": "grandma", "location": "home_a"},
                {"date": "4 Feb", "parent": "parent_b", "location": "home_b"},
                "not an event",
            ],
            headers=as_member(parent_a),
        )

        assert response.status_code == 200
        assert response.json() == {"imported": 1, "message": "Imported 1 events."}
        events = client.get("/events", headers=as_member(parent_b)).json()["events"]
        assert [e["date"] for e in events] == ["2026-02-03"]
        assert len(notifier.of_type("events.imported")) == 1

    def test_json_import_single_object(self, client, parent_a):
        response = client.post(
            "/events/import",
            json={"date": "2026-02-03", "parent": "together", "location": "other"},
            headers=as_member(parent_a),
        )
        assert response.json()["imported"] == 1

    def test_json_import_without_valid_entries_is_400(self, client, parent_a):
        response = client.post("/events/import", json=[{"date": "2026-02-03"}], headers=as_member(parent_a))

        assert response.status_code == 400
        assert response.json()["error_type"] == "validation_error"

    def test_json_import_conflict_is_409_and_imports_nothing(self, client, parent_a, parent_b, notifier):
        client.post(
            "/blocked-periods",
            json={"start_date": "2026-02-04", "end_date": "2026-02-04"},
            headers=as_member(parent_a),
        )

        response = client.post(
            "/events/import",
            json=[
                {"date": "2026-02-03", "parent": "parent_b", "location": "home_b"},
                {"date": "2026-02-04", "parent": "parent_a", "location": "home_a"},
            ],
            headers=as_member(parent_b),
        )

        assert response.status_code == 409
        assert client.get("/events", headers=as_member(parent_b)).json()["total"] == 0
        assert len(notifier.of_type("blocked_day.attempt")) == 1
        assert notifier.of_type("events.imported") == []


class TestProposalEndpoints:
    """Test the weekly cron run followed by both approvals."""

    def run_cron(self, client):
        return client.post(
            "/cron/weekly-proposal?week_start=2026-02-02",
            headers={"Authorization": f"Bearer {CRON_SECRET}"},
        )

    def test_full_approval_flow(self, client, parent_a, parent_b, notifier):
        summary = self.run_cron(client).json()
        assert summary["proposals_created"] == 1
        assert summary["week_label"] == "2 Feb - 8 Feb 2026"
        assert len(notifier.of_type("proposal.created")) == 1

        current = client.get("/proposals/current", headers=as_member(parent_a)).json()
        assert current["plan"] == "pro"
        assert len(current["proposal"]["days"]) == 7
        assert current["proposal"]["my_approved"] is False

        first = client.post("/proposals/current/approve", headers=as_member(parent_a)).json()
        assert first["applied"] is False
        assert first["status"] == "pending"

        seen_by_b = client.get("/proposals/current", headers=as_member(parent_b)).json()["proposal"]
        assert seen_by_b["my_approved"] is False
        assert seen_by_b["other_approved"] is True

        second = client.post("/proposals/current/approve", headers=as_member(parent_b)).json()
        assert second["applied"] is True
        assert second["status"] == "approved"

        events = client.get(
            "/events?start_date=2026-02-02&end_date=2026-02-08", headers=as_member(parent_a)
        ).json()
        assert events["total"] == 7
        assert client.get("/proposals/current", headers=as_member(parent_a)).json()["proposal"] is None

    def test_approve_without_proposal_is_404(self, client, parent_a):
        response = client.post("/proposals/current/approve", headers=as_member(parent_a))
        assert response.status_code == 404

    def test_free_plan_gets_upgrade_message(self, client, family_factory):
        _, free_parent, _ = family_factory(plan="free")

        current = client.get("/proposals/current", headers=as_member(free_parent)).json()

        assert current["proposal"] is None
        assert current["plan"] == "free"
        assert current["upgrade_message"]

    def test_activity_records_approvals(self, client, parent_a, parent_b):
        self.run_cron(client)
        client.post("/proposals/current/approve", headers=as_member(parent_a))
        client.post("/proposals/current/approve", headers=as_member(parent_b))

        actions = [e["action"] for e in client.get("/activity", headers=as_member(parent_a)).json()]
        assert "proposal_applied" in actions


class TestCronEndpoints:
    def test_requires_secret(self, client):
        assert client.get("/cron/weekly-proposal").status_code == 401
        assert client.get("/cron/weekly-proposal?secret=wrong").status_code == 401

    def test_query_secret_accepted(self, client, family):
        response = client.get(f"/cron/weekly-proposal?secret={CRON_SECRET}&week_start=2026-02-02")

        assert response.status_code == 200
        assert response.json()["ok"] is True

    def test_non_monday_is_400(self, client):
        response = client.get(f"/cron/weekly-proposal?secret={CRON_SECRET}&week_start=2026-02-03")
        assert response.status_code == 400

    def test_evening_reminder(self, client, family):
        response = client.post(
            "/cron/evening-reminder", headers={"Authorization": f"Bearer {CRON_SECRET}"}
        )

        assert response.status_code == 200
        assert response.json()["families_processed"] == 1

    def test_rejected_without_configured_secret(self, client):
        app.dependency_overrides[get_settings] = lambda: Settings(_env_file=None, cron_secret="")

        response = client.get("/cron/evening-reminder?secret=")
        assert response.status_code == 401


class TestWebhookEndpoints:
    def test_register_and_list(self, client, parent_a):
        created = client.post(
            "/webhooks",
            json={"url": "https://push.example.com/n", "event_types": ["proposal.created"]},
            headers=as_member(parent_a),
        )
        assert created.status_code == 201
        assert created.json()["secret"]

        listed = client.get("/webhooks", headers=as_member(parent_a)).json()
        assert listed["total"] == 1
        assert "secret" not in listed["webhooks"][0]

    def test_http_url_rejected(self, client, parent_a):
        response = client.post(
            "/webhooks", json={"url": "http://push.example.com/n"}, headers=as_member(parent_a)
        )
        assert response.status_code == 400

    def test_other_members_webhook_not_found(self, client, parent_a, parent_b):
        created = client.post(
            "/webhooks", json={"url": "https://push.example.com/n"}, headers=as_member(parent_a)
        ).json()

        response = client.delete(f"/webhooks/{created['id']}", headers=as_member(parent_b))
        assert response.status_code == 404
