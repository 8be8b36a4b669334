"""
API tests for the customer endpoints: dietary restrictions, session
profiles, the QR menu with safety verdicts, photo matching and chef requests.
"""

import json

import pytest
from conftest import PHOTO_PROMPT, SESSION_HEADERS, STAFF_HEADERS


@pytest.fixture
async def dairy_free_profile(client):
    response = await client.put(
        "/customers/profile",
        json={"dietary_restrictions": ["dairy-free"]},
        headers=SESSION_HEADERS,
    )
    assert response.status_code == 200
    return response.json()


class TestRestrictions:
    async def test_catalogue_is_seeded(self, client):
        response = await client.get("/dietary-restrictions")
        assert response.status_code == 200
        restrictions = {r["name"]: r for r in response.json()}
        assert len(restrictions) == 10
        assert restrictions["Dairy-Free"]["allergens"] == ["Milk"]
        assert "Vegan" in restrictions


class TestSessionToken:
    async def test_missing_token(self, client):
        response = await client.get("/customers/profile")
        assert response.status_code == 400
        assert response.headers["X-Error-Code"] == "INVALID_SESSION"

    async def test_overlong_token(self, client):
        response = await client.get("/customers/profile", headers={"X-Session-Token": "x" * 129})
        assert response.status_code == 400
        assert response.headers["X-Error-Code"] == "INVALID_SESSION"


class TestProfile:
    async def test_default_profile(self, client):
        response = await client.get("/customers/profile", headers=SESSION_HEADERS)
        assert response.json() == {
            "dietary_restrictions": [],
            "custom_allergens": [],
            "severity_level": "moderate",
            "additional_notes": None,
            "effective_allergens": [],
        }

    async def test_put_resolves_restrictions(self, client):
        response = await client.put(
            "/customers/profile",
            json={
                "dietary_restrictions": ["dairy-free", "Made Up Diet"],
                "custom_allergens": ["shrimp", " Shrimp ", "kiwi"],
                "severity_level": "severe",
            },
            headers=SESSION_HEADERS,
        )
        profile = response.json()
        assert profile["dietary_restrictions"] == ["Dairy-Free"]
        assert profile["custom_allergens"] == ["shrimp", "kiwi"]
        assert profile["effective_allergens"] == ["Milk", "Shellfish"]
        assert profile["severity_level"] == "severe"

        fetched = await client.get("/customers/profile", headers=SESSION_HEADERS)
        assert fetched.json() == profile

    async def test_put_replaces(self, client, dairy_free_profile):
        response = await client.put(
            "/customers/profile",
            json={"custom_allergens": ["sesame"]},
            headers=SESSION_HEADERS,
        )
        assert response.json()["dietary_restrictions"] == []
        assert response.json()["effective_allergens"] == ["Sesame"]

    async def test_profiles_are_per_session(self, client, dairy_free_profile):
        other = await client.get("/customers/profile", headers={"X-Session-Token": "another-session"})
        assert other.json()["effective_allergens"] == []

    async def test_delete(self, client, dairy_free_profile):
        response = await client.delete("/customers/profile", headers=SESSION_HEADERS)
        assert response.status_code == 204
        fetched = await client.get("/customers/profile", headers=SESSION_HEADERS)
        assert fetched.json()["dietary_restrictions"] == []

        # Deleting a missing profile is not an error
        again = await client.delete("/customers/profile", headers=SESSION_HEADERS)
        assert again.status_code == 204


class TestCustomerMenu:
    async def test_unknown_qr_code(self, client):
        response = await client.get("/menu/nope", headers=SESSION_HEADERS)
        assert response.status_code == 404
        assert response.headers["X-Error-Code"] == "RESTAURANT_NOT_FOUND"

    async def test_without_profile_everything_is_safe(self, client, restaurant, shrimp_pasta):
        response = await client.get(f"/menu/{restaurant['qr_code']}", headers=SESSION_HEADERS)
        menu = response.json()
        assert menu["restaurant_name"] == "Test Bistro"
        assert menu["effective_allergens"] == []
        [dish] = menu["dishes"]
        assert dish["all_allergens"] == ["Milk", "Shellfish", "Wheat"]
        assert dish["safety"]["status"] == "safe"

    async def test_modifiable_dish(self, client, restaurant, shrimp_pasta, dairy_free_profile):
        response = await client.get(f"/menu/{restaurant['qr_code']}", headers=SESSION_HEADERS)
        safety = response.json()["dishes"][0]["safety"]
        assert safety["status"] == "safe_with_modifications"
        assert safety["label"] == "Safe with modifications"
        assert "Substitute Parmesan with Nutritional Yeast" in safety["suggestions"]
        assert safety["reasons"] == []

    async def test_unsafe_dish(self, client, restaurant, shrimp_pasta):
        await client.put(
            "/customers/profile",
            json={"dietary_restrictions": ["Shellfish Allergy"]},
            headers=SESSION_HEADERS,
        )
        response = await client.get(f"/menu/{restaurant['qr_code']}", headers=SESSION_HEADERS)
        safety = response.json()["dishes"][0]["safety"]
        assert safety["status"] == "unsafe"
        assert safety["reasons"] == ["Shrimp contains Shellfish"]

    async def test_deleted_dishes_are_hidden(self, client, restaurant, shrimp_pasta):
        await client.delete(f"/dishes/{shrimp_pasta['id']}", headers=STAFF_HEADERS)
        response = await client.get(f"/menu/{restaurant['qr_code']}", headers=SESSION_HEADERS)
        assert response.json()["dishes"] == []

    async def test_dish_detail(self, client, restaurant, shrimp_pasta, dairy_free_profile):
        response = await client.get(
            f"/menu/{restaurant['qr_code']}/dishes/{shrimp_pasta['id']}", headers=SESSION_HEADERS
        )
        detail = response.json()
        assert detail["dish"]["name"] == "Shrimp Pasta"
        assert detail["allergens"] == shrimp_pasta["allergens"]
        assert detail["safety"]["status"] == "safe_with_modifications"

    async def test_dish_from_another_restaurant(self, client, shrimp_pasta):
        other = await client.post("/restaurants", json={"name": "Elsewhere"}, headers=STAFF_HEADERS)
        response = await client.get(
            f"/menu/{other.json()['qr_code']}/dishes/{shrimp_pasta['id']}", headers=SESSION_HEADERS
        )
        assert response.status_code == 404
        assert response.headers["X-Error-Code"] == "DISH_NOT_FOUND"


class TestPhotoMatch:
    async def test_items_are_matched(self, client, restaurant, shrimp_pasta, fake_gemini):
        fake_gemini.on(PHOTO_PROMPT, json.dumps({"items": [
            {"name": "Shrimp Pasta", "boundingBox": {"x": 10, "y": 20, "width": 50, "height": 5},
             "confidence": 95},
            {"name": "Chocolate Mousse"},
        ]}))
        response = await client.post(
            f"/menu/{restaurant['qr_code']}/photo-match",
            json={"image": "aGVsbG8="},
            headers=SESSION_HEADERS,
        )
        result = response.json()
        assert result["total_items"] == 2
        assert result["message"] is None
        first, second = result["matches"]
        assert first["dish"]["id"] == shrimp_pasta["id"]
        assert first["score"] == 100
        assert second["dish"] is None

    async def test_unreadable_photo(self, client, restaurant):
        response = await client.post(
            f"/menu/{restaurant['qr_code']}/photo-match",
            json={"image": "aGVsbG8="},
            headers=SESSION_HEADERS,
        )
        result = response.json()
        assert result["matches"] == []
        assert result["message"] == "Could not read the menu photo."


class TestChefRequests:
    async def test_request_round_trip(self, client, restaurant, shrimp_pasta, dairy_free_profile):
        response = await client.post(
            f"/menu/{restaurant['qr_code']}/requests",
            json={"dish_id": shrimp_pasta["id"], "requested_modifications": " No cheese please "},
            headers=SESSION_HEADERS,
        )
        assert response.status_code == 201
        created = response.json()
        assert created["status"] == "pending"
        assert created["dish_name"] == "Shrimp Pasta"
        assert created["requested_modifications"] == "No cheese please"
        assert created["dietary_concerns"] == ["Milk"]

        base = f"/restaurants/{restaurant['id']}/requests"
        pending = await client.get(base, params={"status": "pending"}, headers=STAFF_HEADERS)
        assert [r["id"] for r in pending.json()] == [created["id"]]

        answered = await client.patch(
            f"{base}/{created['id']}",
            json={"status": "approved", "response": "We'll use nutritional yeast"},
            headers=STAFF_HEADERS,
        )
        assert answered.json()["status"] == "approved"
        assert answered.json()["response"] == "We'll use nutritional yeast"

        still_pending = await client.get(base, params={"status": "pending"}, headers=STAFF_HEADERS)
        assert still_pending.json() == []

    async def test_explicit_concerns_win(self, client, restaurant, shrimp_pasta):
        response = await client.post(
            f"/menu/{restaurant['qr_code']}/requests",
            json={
                "dish_id": shrimp_pasta["id"],
                "requested_modifications": "Light on garlic",
                "dietary_concerns": ["Garlic", "garlic"],
            },
            headers={"X-Session-Token": "first-visit"},
        )
        assert response.status_code == 201
        assert response.json()["dietary_concerns"] == ["Garlic"]

    async def test_unknown_request(self, client, restaurant):
        response = await client.patch(
            f"/restaurants/{restaurant['id']}/requests/missing",
            json={"status": "declined"},
            headers=STAFF_HEADERS,
        )
        assert response.status_code == 404
        assert response.headers["X-Error-Code"] == "REQUEST_NOT_FOUND"


class TestHealth:
    async def test_liveness(self, client):
        response = await client.get("/health")
        assert response.json()["status"] == "ok"

    async def test_readiness(self, client):
        response = await client.get("/ready")
        assert response.status_code == 200
        assert response.json() == {"db": "ok", "ai": "unconfigured"}
