"""HTTP API tests over the ASGI app."""

from datetime import timedelta

from app.domain.duty_rules import local_today
from tests.conftest import auth_headers, create_schedule

API = "/api/v1"


async def create_schedule_via_api(client, admin, days_ahead=7, max_students=2):
    response = await client.post(
        f"{API}/schedules",
        json={
            "date": (local_today() + timedelta(days=days_ahead)).isoformat(),
            "shift_start": "07:00:00",
            "shift_end": "15:00:00",
            "location": "Delivery Room",
            "max_students": max_students,
        },
        headers=auth_headers(admin),
    )
    assert response.status_code == 201, response.text
    return response.json()


class TestAuth:
    async def test_health(self, client):
        response = await client.get("/health")

        assert response.status_code == 200
        assert response.json()["status"] == "healthy"

    async def test_missing_token(self, client):
        response = await client.get(f"{API}/schedules")

        assert response.status_code == 401
        assert response.json()["code"] == "authentication_failed"

    async def test_current_profile(self, client, student_a):
        response = await client.get(f"{API}/users/me", headers=auth_headers(student_a))

        assert response.status_code == 200
        assert response.json()["student_number"] == "2023-0001"

    async def test_student_cannot_create_schedule(self, client, student_a):
        response = await client.post(
            f"{API}/schedules",
            json={
                "date": local_today().isoformat(),
                "shift_start": "07:00:00",
                "shift_end": "15:00:00",
            },
            headers=auth_headers(student_a),
        )

        assert response.status_code == 403
        assert response.json()["code"] == "forbidden"


class TestBookingFlow:
    async def test_book_approve_and_list(self, client, admin, student_a, student_b):
        schedule = await create_schedule_via_api(client, admin)
        assert schedule["status"] == "pending"
        assert schedule["available_slots"] == 2

        booked = await client.post(
            f"{API}/schedules/{schedule['id']}/book", headers=auth_headers(student_a)
        )
        assert booked.status_code == 201, booked.text
        assert booked.json()["status"] == "pending_approval"
        assert booked.json()["can_cancel"] is True

        pending = await client.get(f"{API}/bookings/pending-approvals", headers=auth_headers(admin))
        assert pending.json()["total"] == 1

        approved = await client.post(
            f"{API}/schedules/{schedule['id']}/approve", headers=auth_headers(admin)
        )
        assert approved.status_code == 200
        assert approved.json()["status"] == "approved"
        assert [b["status"] for b in approved.json()["bookings"]] == ["confirmed"]
        assert approved.json()["bookings"][0]["student"]["full_name"] == "Ana Reyes"

        late = await client.post(
            f"{API}/schedules/{schedule['id']}/book", headers=auth_headers(student_b)
        )
        assert late.json()["status"] == "confirmed"

        mine = await client.get(f"{API}/bookings", headers=auth_headers(student_a))
        assert mine.json()["total"] == 1
        assert mine.json()["bookings"][0]["schedule"]["id"] == schedule["id"]

    async def test_business_rejections_are_409_with_codes(self, client, admin, student_a, student_b, student_c):
        schedule = await create_schedule_via_api(client, admin)
        url = f"{API}/schedules/{schedule['id']}/book"

        assert (await client.post(url, headers=auth_headers(student_a))).status_code == 201
        duplicate = await client.post(url, headers=auth_headers(student_a))
        assert duplicate.status_code == 409
        assert duplicate.json()["code"] == "already_booked"

        assert (await client.post(url, headers=auth_headers(student_b))).status_code == 201
        full = await client.post(url, headers=auth_headers(student_c))
        assert full.status_code == 409
        assert full.json() == {
            "detail": "This duty is already full (2/2 students assigned).",
            "code": "capacity_exceeded",
        }

    async def test_cancel_then_same_day_rebook_is_blocked(self, client, admin, student_a):
        schedule = await create_schedule_via_api(client, admin)
        booked = await client.post(
            f"{API}/schedules/{schedule['id']}/book", headers=auth_headers(student_a)
        )

        cancelled = await client.post(
            f"{API}/bookings/{booked.json()['id']}/cancel",
            json={"reason": "Clinical exam conflict"},
            headers=auth_headers(student_a),
        )
        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "cancelled"
        assert cancelled.json()["cancellation_reason"] == "Clinical exam conflict"

        again = await client.post(
            f"{API}/schedules/{schedule['id']}/book", headers=auth_headers(student_a)
        )
        assert again.status_code == 409
        assert again.json()["code"] == "rebooking_blocked"

    async def test_cannot_cancel_on_duty_day(self, client, db, admin, student_a):
        today_schedule = await create_schedule(db, local_today())
        booked = await client.post(
            f"{API}/schedules/{today_schedule.id}/book", headers=auth_headers(student_a)
        )
        assert booked.json()["can_cancel"] is False

        response = await client.post(
            f"{API}/bookings/{booked.json()['id']}/cancel", headers=auth_headers(student_a)
        )

        assert response.status_code == 409
        assert response.json()["code"] == "cancellation_window_closed"

    async def test_reject_cascade(self, client, admin, student_a, student_b):
        schedule = await create_schedule_via_api(client, admin)
        for student in (student_a, student_b):
            await client.post(f"{API}/schedules/{schedule['id']}/book", headers=auth_headers(student))

        rejected = await client.post(
            f"{API}/schedules/{schedule['id']}/reject", headers=auth_headers(admin)
        )

        assert rejected.status_code == 200
        assert rejected.json()["cancelled_bookings"] == 2
        assert rejected.json()["schedule"]["status"] == "cancelled"
        assert rejected.json()["schedule"]["bookings"] == []

        mine = await client.get(f"{API}/bookings", headers=auth_headers(student_a))
        booking = mine.json()["bookings"][0]
        assert booking["status"] == "cancelled"
        assert booking["cancellation_reason"] == "Schedule rejected by admin"

    async def test_patch_capacity_below_bookings(self, client, admin, student_a, student_b):
        schedule = await create_schedule_via_api(client, admin, max_students=3)
        for student in (student_a, student_b):
            await client.post(f"{API}/schedules/{schedule['id']}/book", headers=auth_headers(student))

        too_small = await client.patch(
            f"{API}/schedules/{schedule['id']}",
            json={"max_students": 1},
            headers=auth_headers(admin),
        )
        resized = await client.patch(
            f"{API}/schedules/{schedule['id']}",
            json={"max_students": 2},
            headers=auth_headers(admin),
        )

        assert too_small.status_code == 422
        assert resized.status_code == 200
        assert resized.json()["is_full"] is True

    async def test_patch_rejects_nulls_for_required_fields(self, client, admin):
        schedule = await create_schedule_via_api(client, admin)
        url = f"{API}/schedules/{schedule['id']}"

        null_shift_end = await client.patch(url, json={"shift_end": None}, headers=auth_headers(admin))
        null_capacity = await client.patch(url, json={"max_students": None}, headers=auth_headers(admin))
        unchanged = await client.get(url, headers=auth_headers(admin))

        assert null_shift_end.status_code == 422
        assert null_capacity.status_code == 422
        assert unchanged.json()["shift_end"] == "15:00:00"
        assert unchanged.json()["max_students"] == 2

    async def test_patch_may_clear_location(self, client, admin):
        schedule = await create_schedule_via_api(client, admin)

        response = await client.patch(
            f"{API}/schedules/{schedule['id']}",
            json={"location": None},
            headers=auth_headers(admin),
        )

        assert response.status_code == 200
        assert response.json()["location"] is None


class TestParentAndNotifications:
    async def test_parent_reads_child_duties_only(self, client, admin, student_a, student_b, parent):
        schedule = await create_schedule_via_api(client, admin)
        own = await client.post(
            f"{API}/schedules/{schedule['id']}/book", headers=auth_headers(student_a)
        )
        other = await client.post(
            f"{API}/schedules/{schedule['id']}/book", headers=auth_headers(student_b)
        )

        duties = await client.get(f"{API}/users/me/child/duties", headers=auth_headers(parent))
        assert [b["id"] for b in duties.json()["bookings"]] == [own.json()["id"]]

        visible = await client.get(f"{API}/bookings/{own.json()['id']}", headers=auth_headers(parent))
        hidden = await client.get(f"{API}/bookings/{other.json()['id']}", headers=auth_headers(parent))
        assert visible.status_code == 200
        assert hidden.status_code == 403

    async def test_parent_cannot_book(self, client, admin, parent):
        schedule = await create_schedule_via_api(client, admin)

        response = await client.post(
            f"{API}/schedules/{schedule['id']}/book", headers=auth_headers(parent)
        )

        assert response.status_code == 403

    async def test_notifications_read_flow(self, client, admin, student_a):
        schedule = await create_schedule_via_api(client, admin)
        await client.post(f"{API}/schedules/{schedule['id']}/book", headers=auth_headers(student_a))

        listing = await client.get(f"{API}/notifications", headers=auth_headers(student_a))
        assert listing.json()["unread_count"] == 1
        notification_id = listing.json()["notifications"][0]["id"]

        marked = await client.patch(
            f"{API}/notifications/{notification_id}/read", headers=auth_headers(student_a)
        )
        assert marked.status_code == 204

        unread = await client.get(
            f"{API}/notifications", params={"unread_only": True}, headers=auth_headers(student_a)
        )
        assert unread.json()["total"] == 0

        assert (
            await client.post(f"{API}/notifications/read-all", headers=auth_headers(student_a))
        ).status_code == 204

    async def test_duty_logs_for_admin_only(self, client, admin, student_a):
        schedule = await create_schedule_via_api(client, admin)
        await client.post(f"{API}/schedules/{schedule['id']}/book", headers=auth_headers(student_a))

        logs = await client.get(f"{API}/admin/duty-logs", headers=auth_headers(admin))
        denied = await client.get(f"{API}/admin/duty-logs", headers=auth_headers(student_a))

        assert logs.status_code == 200
        assert [entry["action"] for entry in logs.json()["logs"]][:1] == ["booked"]
        assert logs.json()["total"] == 2
        assert denied.status_code == 403

    async def test_notifications_scoped_to_one_schedule(self, client, admin, student_a):
        first = await create_schedule_via_api(client, admin)
        second = await create_schedule_via_api(client, admin, days_ahead=8)
        for schedule in (first, second):
            await client.post(f"{API}/schedules/{schedule['id']}/book", headers=auth_headers(student_a))

        scoped = await client.get(
            f"{API}/notifications", params={"schedule_id": first["id"]}, headers=auth_headers(student_a)
        )
        assert scoped.json()["total"] == 1
        assert scoped.json()["unread_count"] == 1
        assert scoped.json()["notifications"][0]["schedule_id"] == first["id"]

        marked = await client.post(
            f"{API}/notifications/read-all",
            params={"schedule_id": first["id"]},
            headers=auth_headers(student_a),
        )
        assert marked.status_code == 204

        unread = await client.get(
            f"{API}/notifications", params={"unread_only": True}, headers=auth_headers(student_a)
        )
        assert [n["schedule_id"] for n in unread.json()["notifications"]] == [second["id"]]
