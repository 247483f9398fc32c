"""HTTP surface for bookings."""

from datetime import timedelta

from tests.utils.scheduling_builders import (
    ADMIN,
    LEARNER,
    LEARNER_ID,
    NEXT_MONDAY,
    OTHER_LEARNER,
    OTHER_TUTOR,
    SESSION_ID,
    TUTOR,
    TUTOR_ID,
    headers,
    local_instant,
    seed_available,
)

BOOKINGS = "/api/v1/bookings"


def _booking_payload(hour=9, **extra):
    payload = {
        "tutor_id": TUTOR_ID,
        "session_id": SESSION_ID,
        "date": NEXT_MONDAY.isoformat(),
        "hour": hour,
    }
    payload.update(extra)
    return payload


def _book(client, actor=LEARNER, hour=9, **extra):
    return client.post(BOOKINGS, json=_booking_payload(hour, **extra), headers=headers(actor))


class TestCreateBooking:
    def test_learner_books_available_slot(self, client, slot_store):
        seed_available(slot_store, NEXT_MONDAY, [9])

        response = _book(
            client,
            contact_name="  Bo Berg ",
            contact_email="bo@example.com",
            notes="   ",
        )

        assert response.status_code == 201
        body = response.json()
        assert body["status"] == "PENDING"
        assert body["learner_id"] == LEARNER_ID
        assert body["date"] == NEXT_MONDAY.isoformat()
        assert body["price"] == 450.0
        assert body["contact_name"] == "Bo Berg"
        assert body["notes"] is None

    def test_taken_slot_returns_conflict_message(self, client, slot_store):
        seed_available(slot_store, NEXT_MONDAY, [9])
        assert _book(client).status_code == 201

        response = _book(client, actor=OTHER_LEARNER)

        assert response.status_code == 409
        detail = response.json()["detail"]
        assert detail["code"] == "SLOT_UNAVAILABLE"
        assert detail["message"] == "This time was just taken, please choose another"

    def test_slot_without_availability_conflicts(self, client):
        assert _book(client).status_code == 409

    def test_invalid_hour_is_bad_request(self, client, slot_store):
        assert _book(client, hour=22).status_code == 400

    def test_unknown_session_is_not_found(self, client, slot_store):
        seed_available(slot_store, NEXT_MONDAY, [9])

        response = _book(client, session_id="masterclass")

        assert response.status_code == 404

    def test_malformed_email_is_rejected(self, client, slot_store):
        seed_available(slot_store, NEXT_MONDAY, [9])

        assert _book(client, contact_email="not-an-email").status_code == 422


class TestLifecycle:
    def test_confirm_complete_flow(self, client, slot_store, clock):
        seed_available(slot_store, NEXT_MONDAY, [9])
        booking_id = _book(client).json()["id"]

        confirmed = client.post(f"{BOOKINGS}/{booking_id}/confirm", headers=headers(TUTOR))
        assert confirmed.status_code == 200
        assert confirmed.json()["status"] == "CONFIRMED"

        too_early = client.post(f"{BOOKINGS}/{booking_id}/complete", headers=headers(TUTOR))
        assert too_early.status_code == 422

        clock.set(local_instant(NEXT_MONDAY, 9, 30))
        completed = client.post(f"{BOOKINGS}/{booking_id}/complete", headers=headers(TUTOR))
        assert completed.status_code == 200
        assert completed.json()["status"] == "COMPLETED"

    def test_learner_cannot_confirm(self, client, slot_store):
        seed_available(slot_store, NEXT_MONDAY, [9])
        booking_id = _book(client).json()["id"]

        response = client.post(f"{BOOKINGS}/{booking_id}/confirm", headers=headers(LEARNER))

        assert response.status_code == 403

    def test_cancel_frees_slot_for_rebooking(self, client, slot_store):
        seed_available(slot_store, NEXT_MONDAY, [9])
        booking_id = _book(client).json()["id"]

        cancelled = client.post(
            f"{BOOKINGS}/{booking_id}/cancel",
            json={"reason": "change of plans"},
            headers=headers(LEARNER),
        )

        assert cancelled.status_code == 200
        assert cancelled.json()["status"] == "CANCELLED"
        assert cancelled.json()["cancellation_reason"] == "change of plans"
        assert _book(client, actor=OTHER_LEARNER).status_code == 201

    def test_cancel_without_body(self, client, slot_store):
        seed_available(slot_store, NEXT_MONDAY, [9])
        booking_id = _book(client).json()["id"]

        response = client.post(f"{BOOKINGS}/{booking_id}/cancel", headers=headers(TUTOR))

        assert response.status_code == 200
        assert response.json()["cancelled_by"] == TUTOR_ID

    def test_cancel_twice_is_invalid(self, client, slot_store):
        seed_available(slot_store, NEXT_MONDAY, [9])
        booking_id = _book(client).json()["id"]
        client.post(f"{BOOKINGS}/{booking_id}/cancel", headers=headers(LEARNER))

        response = client.post(f"{BOOKINGS}/{booking_id}/cancel", headers=headers(LEARNER))

        assert response.status_code == 422
        assert response.json()["detail"]["code"] == "INVALID_TRANSITION"


class TestReads:
    def test_parties_can_read_booking(self, client, slot_store):
        seed_available(slot_store, NEXT_MONDAY, [9])
        booking_id = _book(client).json()["id"]

        assert client.get(f"{BOOKINGS}/{booking_id}", headers=headers(LEARNER)).status_code == 200
        assert client.get(f"{BOOKINGS}/{booking_id}", headers=headers(TUTOR)).status_code == 200
        assert client.get(f"{BOOKINGS}/{booking_id}", headers=headers(ADMIN)).status_code == 200

    def test_outsiders_are_denied(self, client, slot_store):
        seed_available(slot_store, NEXT_MONDAY, [9])
        booking_id = _book(client).json()["id"]

        for outsider in (OTHER_LEARNER, OTHER_TUTOR):
            response = client.get(f"{BOOKINGS}/{booking_id}", headers=headers(outsider))
            assert response.status_code == 403
            assert response.json()["detail"]["message"] == "Access denied"

    def test_unknown_booking_is_not_found(self, client):
        response = client.get(f"{BOOKINGS}/01JX0000000000000000000001", headers=headers(LEARNER))

        assert response.status_code == 404

    def test_malformed_booking_id_is_rejected(self, client):
        response = client.get(f"{BOOKINGS}/not-a-ulid", headers=headers(LEARNER))

        assert response.status_code == 422

    def test_list_only_own_bookings(self, client, slot_store, clock):
        seed_available(slot_store, NEXT_MONDAY, [9, 10])
        _book(client, hour=9)
        clock.advance(timedelta(minutes=1))
        _book(client, actor=OTHER_LEARNER, hour=10)

        mine = client.get(BOOKINGS, headers=headers(LEARNER)).json()
        tutor_view = client.get(BOOKINGS, headers=headers(TUTOR)).json()
        admin_view = client.get(
            BOOKINGS, params={"status": "PENDING"}, headers=headers(ADMIN)
        ).json()

        assert mine["total"] == 1
        assert tutor_view["total"] == 2
        assert admin_view["total"] == 2
