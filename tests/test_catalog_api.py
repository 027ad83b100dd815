"""Tests for services, variations, service types and provider profiles."""

from marketplace.models import Provider, User, UserRole

from conftest import auth_headers


async def create_service(client, marketplace, **overrides):
    payload = {
        "name": "Window washing",
        "description": "Inside and outside window washing",
        "serviceTypeId": marketplace.service_type.id,
    }
    payload.update(overrides)
    return await client.post("/api/v1/services", json=payload, headers=marketplace.provider_headers)


class TestServiceTypes:
    async def test_list_and_get(self, client, marketplace):
        listing = await client.get("/api/v1/service-types")
        assert listing.status_code == 200
        assert [t["name"] for t in listing.json()] == ["Cleaning"]

        one = await client.get(f"/api/v1/service-types/{marketplace.service_type.id}")
        assert one.json()["description"] == "Home cleaning"
        assert (await client.get("/api/v1/service-types/999")).status_code == 404


class TestServices:
    async def test_create_service(self, client, marketplace):
        response = await create_service(client, marketplace, allowsMultipleDays=True)
        assert response.status_code == 201
        service = response.json()["service"]
        assert service["title"] == "Window washing"
        assert service["isMultiday"] is True
        assert service["providerId"] == marketplace.provider.id
        assert service["variations"] == []

    async def test_unknown_service_type(self, client, marketplace):
        response = await create_service(client, marketplace, serviceTypeId=999)
        assert response.status_code == 400
        assert response.json()["detail"]["error"] == "Service type not found"

    async def test_name_too_short(self, client, marketplace):
        response = await create_service(client, marketplace, name="ab")
        assert response.status_code == 400

    async def test_client_cannot_create(self, client, marketplace):
        response = await client.post(
            "/api/v1/services",
            json={
                "name": "Window washing",
                "description": "Inside and outside window washing",
                "serviceTypeId": marketplace.service_type.id,
            },
            headers=marketplace.client_headers,
        )
        assert response.status_code == 403

    async def test_detail_lists_active_variations_cheapest_first(self, client, marketplace):
        response = await client.get(f"/api/v1/services/{marketplace.service.id}")
        assert response.status_code == 200
        variations = response.json()["service"]["variations"]
        assert [v["name"] for v in variations] == ["Standard", "Deep"]

    async def test_list_with_filters_and_pagination(self, client, marketplace):
        await create_service(client, marketplace)
        response = await client.get("/api/v1/services", params={"limit": 1})
        body = response.json()
        assert body["pagination"]["total"] == 2
        assert body["pagination"]["totalPages"] == 2
        assert body["pagination"]["hasNext"] is True
        assert len(body["services"]) == 1

        by_search = await client.get("/api/v1/services", params={"search": "WINDOW"})
        assert [s["title"] for s in by_search.json()["services"]] == ["Window washing"]

        by_city = await client.get("/api/v1/services", params={"city": "lisbon"})
        assert by_city.json()["pagination"]["total"] == 2
        elsewhere = await client.get("/api/v1/services", params={"city": "Porto"})
        assert elsewhere.json()["services"] == []

    async def test_deactivated_service_hidden_and_not_bookable(self, client, create_window, book, marketplace):
        response = await client.delete(f"/api/v1/services/{marketplace.service.id}", headers=marketplace.provider_headers)
        assert response.status_code == 200
        listing = await client.get("/api/v1/services")
        assert listing.json()["pagination"]["total"] == 0

        await create_window("2030-01-07T08:00:00", "2030-01-07T12:00:00")
        booking = await book("2030-01-07T09:00:00")
        assert booking.status_code == 400
        assert booking.json()["detail"]["error"] == "This service is no longer available"

    async def test_update_service(self, client, marketplace):
        response = await client.put(
            f"/api/v1/services/{marketplace.service.id}",
            json={"name": "Apartment deep clean"},
            headers=marketplace.provider_headers,
        )
        assert response.status_code == 200
        assert response.json()["service"]["title"] == "Apartment deep clean"
        assert response.json()["service"]["description"] == "Full apartment cleaning service"

    async def test_other_provider_cannot_update(self, client, marketplace, session_maker):
        async with session_maker() as session:
            user = User(name="Rita Rival", email="rita@example.com", role=UserRole.PROVIDER)
            session.add(user)
            await session.flush()
            session.add(Provider(user_id=user.id))
            await session.commit()
        response = await client.put(
            f"/api/v1/services/{marketplace.service.id}", json={"name": "Hijacked"}, headers=auth_headers(user)
        )
        assert response.status_code == 403

    async def test_my_services_include_inactive_variations(self, client, marketplace):
        await client.delete(
            f"/api/v1/services/{marketplace.service.id}/variations/{marketplace.two_hour_variation.id}",
            headers=marketplace.provider_headers,
        )
        response = await client.get("/api/v1/services/my", headers=marketplace.provider_headers)
        variations = response.json()[0]["variations"]
        assert {v["name"]: v["isActive"] for v in variations} == {"Standard": True, "Deep": False}


class TestVariations:
    async def test_create_and_update(self, client, marketplace):
        url = f"/api/v1/services/{marketplace.service.id}/variations"
        created = await client.post(
            url,
            json={"name": "Express", "price": "30.00", "durationMinutes": 30},
            headers=marketplace.provider_headers,
        )
        assert created.status_code == 201
        variation = created.json()["variation"]
        assert variation["durationMinutes"] == 30

        updated = await client.put(
            f"{url}/{variation['id']}", json={"durationMinutes": 45}, headers=marketplace.provider_headers
        )
        assert updated.status_code == 200
        assert updated.json()["variation"]["durationMinutes"] == 45
        assert updated.json()["variation"]["name"] == "Express"

    async def test_price_and_duration_must_be_positive(self, client, marketplace):
        url = f"/api/v1/services/{marketplace.service.id}/variations"
        zero_price = await client.post(
            url, json={"name": "Free", "price": "0", "durationMinutes": 30}, headers=marketplace.provider_headers
        )
        zero_duration = await client.post(
            url, json={"name": "Instant", "price": "10", "durationMinutes": 0}, headers=marketplace.provider_headers
        )
        assert zero_price.status_code == 400
        assert zero_duration.status_code == 400


class TestProviders:
    async def test_public_profile(self, client, marketplace):
        response = await client.get(f"/api/v1/providers/{marketplace.provider.id}")
        assert response.status_code == 200
        provider = response.json()["provider"]
        assert provider["name"] == "Paula Provider"
        assert provider["city"] == "Lisbon"
        assert [s["title"] for s in provider["services"]] == ["Apartment cleaning"]

    async def test_unknown_provider(self, client, marketplace):
        assert (await client.get("/api/v1/providers/999")).status_code == 404

    async def test_update_profile(self, client, marketplace):
        response = await client.put(
            "/api/v1/providers/profile", json={"city": "Porto"}, headers=marketplace.provider_headers
        )
        assert response.status_code == 200
        provider = response.json()["provider"]
        assert provider["city"] == "Porto"
        assert provider["bio"] == "Ten years of experience"

    async def test_provider_role_without_profile(self, client, session_maker):
        async with session_maker() as session:
            user = User(name="Newbie", email="newbie@example.com", role=UserRole.PROVIDER)
            session.add(user)
            await session.commit()
        response = await client.get("/api/v1/providers/availabilities", headers=auth_headers(user))
        assert response.status_code == 404
        assert response.json()["detail"]["error"] == "Provider profile not found"


async def test_health(client):
    response = await client.get("/health")
    assert response.json() == {"status": "ok"}
