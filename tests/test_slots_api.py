"""Tests for the public available-slots endpoint."""


def slots_url(provider_id: int) -> str:
    return f"/api/v1/providers/{provider_id}/available-slots"


class TestAvailableSlots:
    async def test_window_without_bookings_is_one_slot(self, client, create_window, marketplace):
        await create_window("2030-12-15T08:00:00", "2030-12-15T12:00:00")
        response = await client.get(
            slots_url(marketplace.provider.id),
            params={"startDate": "2030-12-15T08:00:00", "endDate": "2030-12-15T12:00:00"},
        )
        assert response.status_code == 200
        body = response.json()
        assert body["provider"] == {"id": marketplace.provider.id, "name": "Paula Provider"}
        assert body["totalSlots"] == 1
        assert body["availableSlots"] == [
            {"start": "2030-12-15T08:00:00", "end": "2030-12-15T12:00:00", "durationMinutes": 240}
        ]

    async def test_booking_splits_window(self, client, create_window, book, marketplace):
        await create_window("2030-12-15T08:00:00", "2030-12-15T12:00:00")
        assert (await book("2030-12-15T09:00:00")).status_code == 201

        response = await client.get(
            slots_url(marketplace.provider.id),
            params={"startDate": "2030-12-15T00:00:00", "endDate": "2030-12-15T23:59:59"},
        )
        slots = response.json()["availableSlots"]
        assert [(s["start"], s["end"], s["durationMinutes"]) for s in slots] == [
            ("2030-12-15T08:00:00", "2030-12-15T09:00:00", 60),
            ("2030-12-15T10:00:00", "2030-12-15T12:00:00", 120),
        ]

    async def test_minimum_duration_filter(self, client, create_window, book, marketplace):
        await create_window("2030-12-15T08:00:00", "2030-12-15T12:00:00")
        await book("2030-12-15T09:00:00")
        response = await client.get(
            slots_url(marketplace.provider.id),
            params={
                "startDate": "2030-12-15T08:00:00",
                "endDate": "2030-12-15T12:00:00",
                "durationMinutes": 90,
            },
        )
        slots = response.json()["availableSlots"]
        assert len(slots) == 1
        assert slots[0]["start"] == "2030-12-15T10:00:00"

    async def test_cancelled_booking_frees_slot(self, client, create_window, book, marketplace):
        await create_window("2030-12-15T08:00:00", "2030-12-15T12:00:00")
        booking = (await book("2030-12-15T09:00:00")).json()["booking"]
        await client.patch(f"/api/v1/bookings/{booking['id']}/cancel", headers=marketplace.client_headers)
        response = await client.get(
            slots_url(marketplace.provider.id),
            params={"startDate": "2030-12-15T08:00:00", "endDate": "2030-12-15T12:00:00"},
        )
        assert response.json()["totalSlots"] == 1

    async def test_booking_outside_query_range_still_subtracted(self, client, create_window, book, marketplace):
        await create_window("2030-12-15T08:00:00", "2030-12-15T12:00:00")
        await book("2030-12-15T11:00:00")
        response = await client.get(
            slots_url(marketplace.provider.id),
            params={"startDate": "2030-12-15T08:00:00", "endDate": "2030-12-15T09:00:00"},
        )
        slots = response.json()["availableSlots"]
        assert [(s["start"], s["end"]) for s in slots] == [("2030-12-15T08:00:00", "2030-12-15T11:00:00")]

    async def test_inactive_window_not_offered(self, client, create_window, marketplace):
        window = (await create_window("2030-12-15T08:00:00", "2030-12-15T12:00:00")).json()["availability"]
        await client.put(
            f"/api/v1/providers/availabilities/{window['id']}",
            json={"isActive": False},
            headers=marketplace.provider_headers,
        )
        response = await client.get(
            slots_url(marketplace.provider.id),
            params={"startDate": "2030-12-15T08:00:00", "endDate": "2030-12-15T12:00:00"},
        )
        assert response.json()["availableSlots"] == []

    async def test_dates_required(self, client, marketplace):
        response = await client.get(slots_url(marketplace.provider.id), params={"startDate": "2030-12-15T08:00:00"})
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "startDate and endDate are required"

    async def test_invalid_date(self, client, marketplace):
        response = await client.get(
            slots_url(marketplace.provider.id), params={"startDate": "tomorrow", "endDate": "2030-12-15T08:00:00"}
        )
        assert response.status_code == 400

    async def test_unknown_provider(self, client, marketplace):
        response = await client.get(
            slots_url(999), params={"startDate": "2030-12-15T08:00:00", "endDate": "2030-12-15T12:00:00"}
        )
        assert response.status_code == 404
