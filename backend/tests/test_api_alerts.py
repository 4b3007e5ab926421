"""Integration tests for the alert endpoints."""

import uuid

from carecircle.enums import AccessLevel, AlertSeverity
from carecircle.services.membership_service import create_membership
from tests.conftest import auth_headers


async def _member(db_session, circle, make_user, level):
    user = await make_user()
    await create_membership(
        db_session, circle["senior"].id, user.id, "grandson", access_level=level,
    )
    return auth_headers(user.id)


class TestListAlerts:
    async def test_active_filter(self, client, circle, make_alert):
        senior_id = circle["senior"].id
        open_alert = await make_alert(senior_id)
        closed = await make_alert(senior_id, AlertSeverity.LOW)
        resp = await client.post(
            f"/api/v1/alerts/{closed.id}/false-positive", headers=circle["headers"], json={},
        )
        assert resp.status_code == 200

        resp = await client.get(
            f"/api/v1/seniors/{senior_id}/alerts",
            headers=circle["headers"],
            params={"active": "true"},
        )
        assert [a["id"] for a in resp.json()] == [str(open_alert.id)]

        resp = await client.get(
            f"/api/v1/seniors/{senior_id}/alerts",
            headers=circle["headers"],
            params={"status": "false_positive"},
        )
        assert [a["id"] for a in resp.json()] == [str(closed.id)]

    async def test_minimal_member_sees_only_critical(
        self, client, db_session, circle, make_user, make_alert,
    ):
        senior_id = circle["senior"].id
        critical = await make_alert(senior_id, AlertSeverity.CRITICAL)
        await make_alert(senior_id, AlertSeverity.HIGH)
        headers = await _member(db_session, circle, make_user, AccessLevel.MINIMAL)

        resp = await client.get(f"/api/v1/seniors/{senior_id}/alerts", headers=headers)
        assert resp.status_code == 200
        assert [a["id"] for a in resp.json()] == [str(critical.id)]


class TestReadAlert:
    async def test_member_reads_alert(self, client, circle, make_alert):
        alert = await make_alert(circle["senior"].id, AlertSeverity.HIGH)
        resp = await client.get(f"/api/v1/alerts/{alert.id}", headers=circle["headers"])
        assert resp.status_code == 200
        data = resp.json()
        assert data["id"] == str(alert.id)
        assert data["status"] == "new"
        assert data["severity"] == "high"

    async def test_minimal_member_reads_only_critical(
        self, client, db_session, circle, make_user, make_alert,
    ):
        headers = await _member(db_session, circle, make_user, AccessLevel.MINIMAL)
        critical = await make_alert(circle["senior"].id, AlertSeverity.CRITICAL)
        medium = await make_alert(circle["senior"].id, AlertSeverity.MEDIUM)

        resp = await client.get(f"/api/v1/alerts/{critical.id}", headers=headers)
        assert resp.status_code == 200

        resp = await client.get(f"/api/v1/alerts/{medium.id}", headers=headers)
        assert resp.status_code == 403
        assert resp.json()["error"] == "Unauthorized"

    async def test_stranger_forbidden(self, client, circle, make_user, make_alert):
        alert = await make_alert(circle["senior"].id)
        stranger = await make_user()
        resp = await client.get(f"/api/v1/alerts/{alert.id}", headers=auth_headers(stranger.id))
        assert resp.status_code == 403

    async def test_unknown_alert(self, client, circle):
        resp = await client.get(f"/api/v1/alerts/{uuid.uuid4()}", headers=circle["headers"])
        assert resp.status_code == 404
        assert resp.json()["error"] == "AlertNotFound"


class TestTransitions:
    async def test_commits_before_cache_invalidation(
        self, client, db_session, circle, make_alert, monkeypatch,
    ):
        from carecircle.services import cache

        alert = await make_alert(circle["senior"].id)
        calls = []
        commit = db_session.commit

        async def _commit():
            calls.append("commit")
            await commit()

        async def _invalidate(*keys):
            calls.append("invalidate")

        monkeypatch.setattr(db_session, "commit", _commit)
        monkeypatch.setattr(cache, "invalidate", _invalidate)

        resp = await client.post(
            f"/api/v1/alerts/{alert.id}/acknowledge", headers=circle["headers"],
        )
        assert resp.status_code == 200
        assert calls == ["commit", "invalidate"]

    async def test_lifecycle_over_http(self, client, circle, make_alert):
        alert = await make_alert(circle["senior"].id, AlertSeverity.HIGH)
        base = f"/api/v1/alerts/{alert.id}"

        resp = await client.post(f"{base}/acknowledge", headers=circle["headers"])
        assert resp.status_code == 200
        assert resp.json()["status"] == "acknowledged"

        resp = await client.post(f"{base}/start", headers=circle["headers"])
        assert resp.json()["status"] == "in_progress"

        resp = await client.post(f"{base}/resolve", headers=circle["headers"], json={})
        assert resp.status_code == 422
        assert resp.json()["error"] == "NotesRequired"

        resp = await client.post(
            f"{base}/resolve", headers=circle["headers"], json={"notes": "Doctor visited"},
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "resolved"
        assert resp.json()["resolution_notes"] == "Doctor visited"

        events = await client.get(f"{base}/events", headers=circle["headers"])
        assert [(e["from_status"], e["to_status"]) for e in events.json()] == [
            ("new", "acknowledged"),
            ("acknowledged", "in_progress"),
            ("in_progress", "resolved"),
        ]

    async def test_resolve_new_alert_is_invalid(self, client, circle, make_alert):
        alert = await make_alert(circle["senior"].id)
        resp = await client.post(
            f"/api/v1/alerts/{alert.id}/resolve", headers=circle["headers"], json={"notes": "x"},
        )
        assert resp.status_code == 409
        assert resp.json()["error"] == "InvalidTransition"

    async def test_second_acknowledger_rejected(
        self, client, db_session, circle, make_user, make_alert,
    ):
        alert = await make_alert(circle["senior"].id)
        other = await _member(db_session, circle, make_user, AccessLevel.STANDARD)

        assert (await client.post(
            f"/api/v1/alerts/{alert.id}/acknowledge", headers=circle["headers"],
        )).status_code == 200
        resp = await client.post(f"/api/v1/alerts/{alert.id}/acknowledge", headers=other)
        assert resp.status_code == 409
        assert resp.json()["error"] == "AlreadyAcknowledged"


class TestAlertPermissions:
    async def test_minimal_member_acknowledges_critical(
        self, client, db_session, circle, make_user, make_alert,
    ):
        alert = await make_alert(circle["senior"].id, AlertSeverity.CRITICAL)
        headers = await _member(db_session, circle, make_user, AccessLevel.MINIMAL)

        resp = await client.post(f"/api/v1/alerts/{alert.id}/acknowledge", headers=headers)
        assert resp.status_code == 200
        resp = await client.post(f"/api/v1/alerts/{alert.id}/start", headers=headers)
        assert resp.status_code == 200

        resp = await client.post(
            f"/api/v1/alerts/{alert.id}/resolve", headers=headers, json={"notes": "ok"},
        )
        assert resp.status_code == 403

    async def test_minimal_member_cannot_touch_medium(
        self, client, db_session, circle, make_user, make_alert,
    ):
        alert = await make_alert(circle["senior"].id, AlertSeverity.MEDIUM)
        headers = await _member(db_session, circle, make_user, AccessLevel.MINIMAL)

        resp = await client.post(f"/api/v1/alerts/{alert.id}/acknowledge", headers=headers)
        assert resp.status_code == 403
        resp = await client.get(f"/api/v1/alerts/{alert.id}/events", headers=headers)
        assert resp.status_code == 403

    async def test_standard_member_closes_alerts(
        self, client, db_session, circle, make_user, make_alert,
    ):
        alert = await make_alert(circle["senior"].id, AlertSeverity.LOW)
        headers = await _member(db_session, circle, make_user, AccessLevel.STANDARD)

        resp = await client.post(
            f"/api/v1/alerts/{alert.id}/false-positive", headers=headers, json={},
        )
        assert resp.status_code == 200
        assert resp.json()["status"] == "false_positive"

    async def test_stranger_forbidden(self, client, circle, make_user, make_alert):
        alert = await make_alert(circle["senior"].id, AlertSeverity.CRITICAL)
        stranger = await make_user()
        resp = await client.post(
            f"/api/v1/alerts/{alert.id}/acknowledge", headers=auth_headers(stranger.id),
        )
        assert resp.status_code == 403
