"""Tests for the per-resource REST endpoints"""

from unittest.mock import patch

import pytest
from httpx import AsyncClient
from sqlalchemy import select

from app.jobs.tasks import send_entity_notification
from app.models import AuditLog, Menu


@pytest.mark.asyncio
async def test_list_menus(owner_client: AsyncClient, menus):
    response = await owner_client.get("/api/menus", params={"category": "Pizza", "order": "price:desc"})
    assert response.status_code == 200
    body = response.json()
    assert [m["id"] for m in body["data"]] == ["m2", "m1"]
    assert body["totalCount"] == 2


@pytest.mark.asyncio
async def test_list_counts_past_the_page(owner_client: AsyncClient, menus):
    response = await owner_client.get("/api/menus", params={"limit": "1", "relations": "restaurant"})
    body = response.json()
    assert len(body["data"]) == 1
    assert body["data"][0]["restaurant"]["id"] == "r1"
    assert body["totalCount"] == 3


@pytest.mark.asyncio
async def test_search_term(owner_client: AsyncClient, menus):
    response = await owner_client.get(
        "/api/menus",
        params={"searchTerm": "caesar", "searchTermKeys": "name,description"},
    )
    assert [m["id"] for m in response.json()["data"]] == ["m3"]


@pytest.mark.asyncio
async def test_bad_query_value_is_400(owner_client: AsyncClient, menus):
    response = await owner_client.get("/api/menus", params={"limit": "lots"})
    assert response.status_code == 400
    assert response.json()["error"]["prisma"] is True


@pytest.mark.asyncio
async def test_create_menu_records_audit_and_notifies(owner_client: AsyncClient, test_db, restaurant):
    with patch.object(send_entity_notification, "delay") as delay:
        response = await owner_client.post(
            "/api/menus",
            json={"name": "Calzone", "price": 1299, "restaurant_id": "r1"},
        )

    assert response.status_code == 201
    menu = response.json()
    assert menu["name"] == "Calzone"

    entry = (await test_db.execute(select(AuditLog))).scalar_one()
    assert entry.action == "create"
    assert entry.resource_type == "menu"
    assert entry.resource_id == menu["id"]
    assert entry.actor_id == "u-owner"

    delay.assert_called_once()
    entity, record_id, action, recipients = delay.call_args.args
    assert (entity, record_id, action) == ("menu", menu["id"], "create")
    assert recipients == [{"user_id": "u-owner", "phone": "+15550000001"}]


@pytest.mark.asyncio
async def test_create_without_reference_is_rejected(owner_client: AsyncClient, restaurant):
    response = await owner_client.post("/api/menus", json={"name": "Orphan"})
    assert response.status_code == 400
    body = response.json()
    assert "restaurant_id is a required field" in body["message"]
    assert body["details"]


@pytest.mark.asyncio
async def test_get_menu(owner_client: AsyncClient, menus):
    response = await owner_client.get("/api/menus/m1")
    assert response.status_code == 200
    assert response.json()["name"] == "Margherita Pizza"


@pytest.mark.asyncio
async def test_get_with_relations(guest_client: AsyncClient, menus):
    response = await guest_client.get("/api/menus/m1", params={"relations": "restaurant"})
    assert response.status_code == 200
    assert response.json()["restaurant"]["name"] == "Test Trattoria"


@pytest.mark.asyncio
async def test_get_missing_record_is_forbidden(owner_client: AsyncClient, menus):
    response = await owner_client.get("/api/menus/nope")
    assert response.status_code == 403
    assert response.json() == {"message": "Forbidden"}


@pytest.mark.asyncio
async def test_update_menu(owner_client: AsyncClient, menus):
    response = await owner_client.put(
        "/api/menus/m1",
        json={"name": "Margherita", "price": 1399, "restaurant_id": "r1"},
    )
    assert response.status_code == 200
    assert response.json()["price"] == 1399


@pytest.mark.asyncio
async def test_update_validation_error(owner_client: AsyncClient, menus):
    response = await owner_client.put("/api/menus/m1", json={"price": "free"})
    assert response.status_code == 400
    body = response.json()
    assert body["message"].startswith("Validation error:")
    assert {tuple(d["loc"]) for d in body["details"]} >= {("name",), ("price",)}


@pytest.mark.asyncio
async def test_guest_cannot_delete(guest_client: AsyncClient, test_db, menus):
    response = await guest_client.delete("/api/menus/m1")
    assert response.status_code == 403
    assert response.json() == {"message": "Forbidden"}

    assert await test_db.get(Menu, "m1") is not None


@pytest.mark.asyncio
async def test_delete_menu(owner_client: AsyncClient, test_db, menus):
    response = await owner_client.delete("/api/menus/m3")
    assert response.status_code == 200
    assert response.json()["id"] == "m3"

    remaining = (await test_db.execute(select(Menu.id))).scalars().all()
    assert sorted(remaining) == ["m1", "m2"]

    entry = (await test_db.execute(select(AuditLog))).scalar_one()
    assert entry.action == "delete"


@pytest.mark.asyncio
async def test_delete_restaurant_with_menus_is_rejected(owner_client: AsyncClient, menus):
    response = await owner_client.delete("/api/restaurants/r1")
    assert response.status_code == 400
    error = response.json()["error"]
    assert error["code"] == "P2003"


@pytest.mark.asyncio
async def test_unsupported_item_method(owner_client: AsyncClient, menus):
    response = await owner_client.patch("/api/menus/m1", json={"name": "x"})
    assert response.status_code == 405
    assert response.json() == {"message": "Method PATCH not allowed"}


@pytest.mark.asyncio
async def test_users_cannot_be_created(owner_client: AsyncClient):
    response = await owner_client.post("/api/users", json={"first_name": "New"})
    assert response.status_code == 405
    assert response.json() == {"message": "Method POST not allowed"}


@pytest.mark.asyncio
async def test_user_updates_own_profile(guest_client: AsyncClient, owner):
    response = await guest_client.put("/api/users/u-guest", json={"phone": "+15550000009"})
    assert response.status_code == 200
    body = response.json()
    assert body["phone"] == "+15550000009"
    assert "hashed_password" not in body

    response = await guest_client.put("/api/users/u-owner", json={"phone": "+15550000010"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_tenant_scoped_listing(owner_client: AsyncClient, restaurant, other_restaurant):
    response = await owner_client.get("/api/restaurants")
    body = response.json()
    assert [r["id"] for r in body["data"]] == ["r1"]
    assert body["totalCount"] == 1


@pytest.mark.asyncio
async def test_resources_require_authentication(client: AsyncClient):
    response = await client.get("/api/menus")
    assert response.status_code == 401


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [b"{not json", b"\xff\xfe{"])
async def test_malformed_body_is_400(owner_client: AsyncClient, menus, body):
    response = await owner_client.put(
        "/api/menus/m1",
        content=body,
        headers={"Content-Type": "application/json"},
    )
    assert response.status_code == 400
    assert response.json() == {"detail": "invalid request body"}
