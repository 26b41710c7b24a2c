"""
HTTP-level tests for the EquipTrack API.
"""

from datetime import timedelta

from equiptrack.database.types import utcnow

from conftest import auth_headers


def rental_body(serial: str, days: int = 7, **extra) -> dict:
    now = utcnow()
    body = {
        "item_serial": serial,
        "start_date": now.isoformat(),
        "end_date": (now + timedelta(days=days)).isoformat(),
    }
    body.update(extra)
    return body


class TestRequestEndpoints:
    """Test cases for the rental, calibration and maintenance routes."""

    async def test_admin_rental_flow(self, client, runner, admin_user, item):
        response = await client.post("/v1/rentals/", json=rental_body(item.serial_number), headers=auth_headers(admin_user))
        assert response.status_code == 201
        rental = response.json()
        assert rental["status"] == "APPROVED"
        assert rental["item"]["status"] == "RENTED"
        assert rental["status_logs"][0]["status"] == "APPROVED"

        await runner.drain()
        count = await client.get("/v1/notifications/", params={"countOnly": "true"}, headers=auth_headers(admin_user))
        assert count.json() == {"count": 1}

        completed = await client.post(
            f"/v1/rentals/{rental['id']}/status",
            json={"status": "COMPLETED", "return_condition": "Good"},
            headers=auth_headers(admin_user),
        )
        assert completed.status_code == 200
        assert completed.json()["return_condition"] == "Good"
        assert completed.json()["item"]["status"] == "AVAILABLE"

    async def test_user_cannot_approve(self, client, regular_user, item):
        created = await client.post("/v1/rentals/", json=rental_body(item.serial_number), headers=auth_headers(regular_user))
        assert created.json()["status"] == "PENDING"

        response = await client.post(
            f"/v1/rentals/{created.json()['id']}/status",
            json={"status": "APPROVED"},
            headers=auth_headers(regular_user),
        )
        assert response.status_code == 403
        body = response.json()
        assert body["error_code"] == "EQT-403"
        assert body["retryable"] is False
        assert body["transaction_id"]

    async def test_illegal_transition_is_conflict(self, client, admin_user, regular_user, item):
        created = await client.post("/v1/rentals/", json=rental_body(item.serial_number), headers=auth_headers(regular_user))
        rental_id = created.json()["id"]

        response = await client.post(
            f"/v1/rentals/{rental_id}/status", json={"status": "COMPLETED"}, headers=auth_headers(admin_user),
        )
        assert response.status_code == 409
        assert response.json()["error_code"] == "EQT-409-TRANSITION"

    async def test_busy_item_is_conflict(self, client, admin_user, item):
        await client.post("/v1/rentals/", json=rental_body(item.serial_number), headers=auth_headers(admin_user))

        response = await client.post(
            "/v1/maintenance/", json={"item_serial": item.serial_number}, headers=auth_headers(admin_user),
        )
        assert response.status_code == 409
        assert response.json()["error_code"] == "EQT-409-ITEM"

    async def test_owner_cancels_with_delete(self, client, regular_user, item):
        created = await client.post("/v1/rentals/", json=rental_body(item.serial_number), headers=auth_headers(regular_user))

        response = await client.delete(f"/v1/rentals/{created.json()['id']}", headers=auth_headers(regular_user))
        assert response.status_code == 200
        assert response.json()["status"] == "CANCELLED"
        assert response.json()["status_logs"][-1]["notes"] == "Rental cancelled"

    async def test_listing_and_visibility(self, client, regular_user, other_user, item):
        created = await client.post("/v1/rentals/", json=rental_body(item.serial_number), headers=auth_headers(regular_user))
        rental_id = created.json()["id"]

        mine = await client.get("/v1/rentals/", headers=auth_headers(regular_user))
        theirs = await client.get("/v1/rentals/", headers=auth_headers(other_user))
        peek = await client.get(f"/v1/rentals/{rental_id}", headers=auth_headers(other_user))
        missing = await client.get("/v1/rentals/nope", headers=auth_headers(regular_user))

        assert mine.json()["total"] == 1
        assert mine.json()["items"][0]["id"] == rental_id
        assert theirs.json()["total"] == 0
        assert peek.status_code == 403
        assert missing.status_code == 404

    async def test_patch_requires_admin(self, client, admin_user, regular_user, item):
        created = await client.post("/v1/rentals/", json=rental_body(item.serial_number), headers=auth_headers(regular_user))
        rental_id = created.json()["id"]

        denied = await client.patch(f"/v1/rentals/{rental_id}", json={"po_number": "PO-1"}, headers=auth_headers(regular_user))
        allowed = await client.patch(f"/v1/rentals/{rental_id}", json={"po_number": "PO-1"}, headers=auth_headers(admin_user))

        assert denied.status_code == 403
        assert allowed.status_code == 200
        assert allowed.json()["po_number"] == "PO-1"

    async def test_invalid_dates_rejected(self, client, admin_user, item):
        now = utcnow()
        response = await client.post(
            "/v1/rentals/",
            json={
                "item_serial": item.serial_number,
                "start_date": now.isoformat(),
                "end_date": (now - timedelta(days=1)).isoformat(),
            },
            headers=auth_headers(admin_user),
        )
        assert response.status_code == 422

    async def test_certificate_before_completion(self, client, admin_user, item):
        created = await client.post(
            "/v1/calibrations/", json={"item_serial": item.serial_number}, headers=auth_headers(admin_user),
        )
        response = await client.get(
            f"/v1/calibrations/{created.json()['id']}/certificate", headers=auth_headers(admin_user),
        )
        assert response.status_code == 409
        assert response.json()["error_code"] == "EQT-409-CERTIFICATE"

    async def test_missing_token(self, client, item):
        response = await client.post("/v1/rentals/", json=rental_body(item.serial_number))
        assert response.status_code in (401, 403)

    async def test_garbage_token(self, client, item):
        response = await client.post(
            "/v1/rentals/", json=rental_body(item.serial_number), headers={"Authorization": "Bearer nonsense"},
        )
        assert response.status_code == 401
        assert response.json()["error_code"] == "EQT-401"


class TestNotificationEndpoints:
    """Test cases for the notification, reminder and cron routes."""

    async def test_inbox_flow(self, client, runner, admin_user, item):
        await client.post("/v1/rentals/", json=rental_body(item.serial_number), headers=auth_headers(admin_user))
        await runner.drain()

        listing = await client.get("/v1/notifications/", headers=auth_headers(admin_user))
        assert listing.json()["total"] == 1
        notification = listing.json()["items"][0]
        assert notification["should_play_sound"] is True
        assert notification["reminder"]["type"] == "RENTAL"

        read = await client.patch(f"/v1/notifications/{notification['id']}/read", headers=auth_headers(admin_user))
        assert read.status_code == 200
        assert read.json()["is_read"] is True

        deleted = await client.post(
            "/v1/notifications/", json={"action": "deleteAllRead"}, headers=auth_headers(admin_user),
        )
        assert deleted.json() == {"action": "deleteAllRead", "count": 1}

    async def test_foreign_notification_is_forbidden(self, client, runner, admin_user, regular_user, item):
        await client.post("/v1/rentals/", json=rental_body(item.serial_number), headers=auth_headers(admin_user))
        await runner.drain()
        listing = await client.get("/v1/notifications/", headers=auth_headers(admin_user))
        notification_id = listing.json()["items"][0]["id"]

        foreign = await client.patch(f"/v1/notifications/{notification_id}/read", headers=auth_headers(regular_user))
        unknown = await client.patch("/v1/notifications/nope/read", headers=auth_headers(regular_user))

        assert foreign.status_code == 403
        assert unknown.status_code == 403
        assert foreign.json()["message"] == unknown.json()["message"]

    async def test_mark_all_read(self, client, runner, admin_user, item):
        await client.post("/v1/rentals/", json=rental_body(item.serial_number), headers=auth_headers(admin_user))
        await runner.drain()

        response = await client.post("/v1/notifications/", json={"action": "markAllRead"}, headers=auth_headers(admin_user))
        count = await client.get("/v1/notifications/", params={"countOnly": "true"}, headers=auth_headers(admin_user))

        assert response.json() == {"action": "markAllRead", "count": 1}
        assert count.json() == {"count": 0}

    async def test_overdue_and_acknowledge(self, client, runner, admin_user, item):
        now = utcnow()
        await client.post(
            "/v1/rentals/",
            json={
                "item_serial": item.serial_number,
                "start_date": (now - timedelta(days=10)).isoformat(),
                "end_date": (now - timedelta(days=1)).isoformat(),
            },
            headers=auth_headers(admin_user),
        )
        await runner.drain()

        overdue = await client.get("/v1/notifications/", params={"overdueOnly": "true"}, headers=auth_headers(admin_user))
        assert len(overdue.json()) == 1
        reminder_id = overdue.json()[0]["reminder_id"]

        acknowledged = await client.post(f"/v1/reminders/{reminder_id}/acknowledge", headers=auth_headers(admin_user))
        assert acknowledged.status_code == 200
        assert acknowledged.json()["status"] == "ACKNOWLEDGED"

        overdue = await client.get("/v1/notifications/", params={"overdueOnly": "true"}, headers=auth_headers(admin_user))
        assert overdue.json() == []

    async def test_cron_sweep_is_admin_only(self, client, admin_user, regular_user):
        denied = await client.post("/v1/cron/reminders", headers=auth_headers(regular_user))
        allowed = await client.post("/v1/cron/reminders", params={"force": "true"}, headers=auth_headers(admin_user))

        assert denied.status_code == 403
        assert allowed.status_code == 200
        assert allowed.json()["skipped"] is False


class TestAdminEndpoints:
    """Test cases for the admin routes."""

    async def test_activity_logs_and_history(self, client, runner, admin_user, regular_user, item):
        await client.post("/v1/rentals/", json=rental_body(item.serial_number), headers=auth_headers(admin_user))
        await runner.drain()

        logs = await client.get(
            "/v1/admin/activity-logs", params={"itemSerial": item.serial_number}, headers=auth_headers(admin_user),
        )
        history = await client.get(f"/v1/items/{item.serial_number}/history", headers=auth_headers(admin_user))
        denied = await client.get("/v1/admin/activity-logs", headers=auth_headers(regular_user))

        assert logs.json()["total"] == 1
        assert logs.json()["items"][0]["type"] == "RENTAL_CREATED"
        assert history.json()["item"]["status"] == "RENTED"
        assert len(history.json()["history"]) == 1
        assert denied.status_code == 403

    async def test_create_inventory_check(self, client, runner, admin_user):
        next_date = (utcnow() + timedelta(days=5)).isoformat()
        response = await client.post(
            "/v1/inventory-checks",
            json={"name": "Monthly count", "frequency_days": 30, "next_date": next_date},
            headers=auth_headers(admin_user),
        )
        await runner.drain()

        assert response.status_code == 201
        assert response.json()["name"] == "Monthly count"

    async def test_health(self, client):
        response = await client.get("/health")
        assert response.status_code == 200
        assert response.json()["status"] == "ok"
