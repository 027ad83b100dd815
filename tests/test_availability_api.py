"""Tests for provider availability windows over HTTP."""

from marketplace.models import Provider, User, UserRole
from marketplace.services import availability_service

from conftest import auth_headers

BASE = "/api/v1/providers/availabilities"


class TestCreate:
    async def test_create_window(self, create_window, marketplace):
        response = await create_window("2030-01-07T08:00:00", "2030-01-07T12:00:00")
        assert response.status_code == 201
        body = response.json()
        assert body["message"] == "Availability created"
        window = body["availability"]
        assert window["providerId"] == marketplace.provider.id
        assert window["startDatetime"] == "2030-01-07T08:00:00"
        assert window["endDatetime"] == "2030-01-07T12:00:00"
        assert window["isActive"] is True

    async def test_timezone_offset_is_stored_as_utc(self, create_window):
        response = await create_window("2030-01-07T10:00:00+02:00", "2030-01-07T12:00:00+02:00")
        assert response.status_code == 201
        assert response.json()["availability"]["startDatetime"] == "2030-01-07T08:00:00"

    async def test_overlapping_window_rejected(self, create_window):
        await create_window("2030-01-07T08:00:00", "2030-01-07T12:00:00")
        response = await create_window("2030-01-07T11:00:00", "2030-01-07T13:00:00")
        assert response.status_code == 400
        detail = response.json()["detail"]
        assert detail["error"] == "An availability already exists in this period"
        assert detail["overlapping"] == {"start": "2030-01-07T08:00:00", "end": "2030-01-07T12:00:00"}

    async def test_contained_window_rejected(self, create_window):
        await create_window("2030-01-07T08:00:00", "2030-01-07T12:00:00")
        response = await create_window("2030-01-07T09:00:00", "2030-01-07T10:00:00")
        assert response.status_code == 400

    async def test_adjacent_windows_accepted(self, create_window):
        first = await create_window("2030-01-07T08:00:00", "2030-01-07T12:00:00")
        second = await create_window("2030-01-07T12:00:00", "2030-01-07T14:00:00")
        assert first.status_code == 201
        assert second.status_code == 201

    async def test_start_must_be_before_end(self, create_window):
        response = await create_window("2030-01-07T12:00:00", "2030-01-07T12:00:00")
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "Start must be before end"

    async def test_window_in_the_past_rejected(self, create_window):
        response = await create_window("2020-01-07T08:00:00", "2020-01-07T12:00:00")
        assert response.status_code == 400

    async def test_missing_field_is_400(self, client, marketplace):
        response = await client.post(BASE, json={"startDatetime": "2030-01-07T08:00:00"}, headers=marketplace.provider_headers)
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "Invalid request"

    async def test_requires_token(self, client, marketplace):
        response = await client.post(
            BASE, json={"startDatetime": "2030-01-07T08:00:00", "endDatetime": "2030-01-07T09:00:00"}
        )
        assert response.status_code == 401

    async def test_client_cannot_create(self, client, marketplace):
        response = await client.post(
            BASE,
            json={"startDatetime": "2030-01-07T08:00:00", "endDatetime": "2030-01-07T09:00:00"},
            headers=marketplace.client_headers,
        )
        assert response.status_code == 403


class TestListAndUpdate:
    async def test_list_ordered_by_start(self, client, create_window, marketplace):
        await create_window("2030-01-08T08:00:00", "2030-01-08T12:00:00")
        await create_window("2030-01-07T08:00:00", "2030-01-07T12:00:00")
        response = await client.get(BASE, headers=marketplace.provider_headers)
        assert response.status_code == 200
        body = response.json()
        assert body["count"] == 2
        assert [a["startDatetime"] for a in body["availabilities"]] == [
            "2030-01-07T08:00:00",
            "2030-01-08T08:00:00",
        ]

    async def test_move_onto_other_window_rejected(self, client, create_window, marketplace):
        await create_window("2030-01-07T08:00:00", "2030-01-07T10:00:00")
        second = (await create_window("2030-01-07T12:00:00", "2030-01-07T14:00:00")).json()["availability"]
        response = await client.put(
            f"{BASE}/{second['id']}",
            json={"startDatetime": "2030-01-07T09:00:00"},
            headers=marketplace.provider_headers,
        )
        assert response.status_code == 400
        assert response.json()["detail"]["overlapping"]["start"] == "2030-01-07T08:00:00"

    async def test_inactive_window_does_not_block(self, client, create_window, marketplace):
        first = (await create_window("2030-01-07T08:00:00", "2030-01-07T12:00:00")).json()["availability"]
        response = await client.put(
            f"{BASE}/{first['id']}", json={"isActive": False}, headers=marketplace.provider_headers
        )
        assert response.status_code == 200
        assert response.json()["availability"]["isActive"] is False

        second = await create_window("2030-01-07T09:00:00", "2030-01-07T10:00:00")
        assert second.status_code == 201

        # Coming back to life would overlap the new window
        response = await client.put(
            f"{BASE}/{first['id']}", json={"isActive": True}, headers=marketplace.provider_headers
        )
        assert response.status_code == 400

    async def test_other_provider_cannot_edit(self, client, create_window, session_maker):
        window = (await create_window("2030-01-07T08:00:00", "2030-01-07T12:00:00")).json()["availability"]
        async with session_maker() as session:
            user = User(name="Rita Rival", email="rita@example.com", role=UserRole.PROVIDER)
            session.add(user)
            await session.flush()
            session.add(Provider(user_id=user.id))
            await session.commit()

        response = await client.put(
            f"{BASE}/{window['id']}", json={"isActive": False}, headers=auth_headers(user)
        )
        assert response.status_code == 403

    async def test_unknown_window_is_404(self, client, marketplace):
        response = await client.put(f"{BASE}/999", json={"isActive": False}, headers=marketplace.provider_headers)
        assert response.status_code == 404


class TestDelete:
    async def test_delete_free_window(self, client, create_window, marketplace):
        window = (await create_window("2030-01-07T08:00:00", "2030-01-07T12:00:00")).json()["availability"]
        response = await client.delete(f"{BASE}/{window['id']}", headers=marketplace.provider_headers)
        assert response.status_code == 200
        listing = await client.get(BASE, headers=marketplace.provider_headers)
        assert listing.json()["count"] == 0

    async def test_delete_blocked_by_active_booking(self, client, create_window, book, marketplace):
        window = (await create_window("2030-01-07T08:00:00", "2030-01-07T12:00:00")).json()["availability"]
        booking = (await book("2030-01-07T09:00:00")).json()["booking"]

        response = await client.delete(f"{BASE}/{window['id']}", headers=marketplace.provider_headers)
        assert response.status_code == 400
        assert response.json()["detail"]["bookingsCount"] == 1

        await client.patch(f"/api/v1/bookings/{booking['id']}/cancel", headers=marketplace.client_headers)
        response = await client.delete(f"{BASE}/{window['id']}", headers=marketplace.provider_headers)
        assert response.status_code == 200

    async def test_delete_locks_provider_before_counting_bookings(
        self, client, create_window, marketplace, monkeypatch
    ):
        window = (await create_window("2030-01-07T08:00:00", "2030-01-07T12:00:00")).json()["availability"]
        calls = []
        lock = availability_service.lock_provider
        count = availability_service.count_active_bookings_within

        async def recording_lock(session, provider_id):
            calls.append(("lock", provider_id))
            await lock(session, provider_id)

        async def recording_count(session, provider_id, start, end):
            calls.append(("count", provider_id))
            return await count(session, provider_id, start, end)

        monkeypatch.setattr(availability_service, "lock_provider", recording_lock)
        monkeypatch.setattr(availability_service, "count_active_bookings_within", recording_count)

        response = await client.delete(f"{BASE}/{window['id']}", headers=marketplace.provider_headers)
        assert response.status_code == 200
        assert calls == [("lock", marketplace.provider.id), ("count", marketplace.provider.id)]
