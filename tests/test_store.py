"""Tests for the store client and its access policy"""

from datetime import datetime

import pytest

from app.models import Order, User
from app.store import (
    AccessPolicy,
    Entity,
    ErrorCode,
    FailureReason,
    KnownRequestError,
    Operation,
    OperationKind,
    QueryValidationError,
    StoreClient,
)


def scoped(test_db, model_meta, user):
    return StoreClient(test_db, model_meta, AccessPolicy(user.id, user.tenant_id, user.roles))


@pytest.mark.asyncio
async def test_find_many_with_filters(store, menus):
    records = await store.delegate(Entity.MENU).find_many({
        "where": {"category": "Pizza", "price": {"gte": 1600}},
        "orderBy": {"name": "asc"},
    })
    assert [r["id"] for r in records] == ["m2"]


@pytest.mark.asyncio
async def test_insensitive_contains(store, menus):
    records = await store.delegate(Entity.MENU).find_many({
        "where": {"name": {"contains": "PIZZA", "mode": "insensitive"}},
        "orderBy": {"price": "desc"},
    })
    assert [r["id"] for r in records] == ["m2", "m1"]


@pytest.mark.asyncio
async def test_or_and_not_combinators(store, menus):
    records = await store.delegate(Entity.MENU).find_many({
        "where": {
            "OR": [{"category": "Salads"}, {"id": "m1"}],
            "NOT": {"id": "m3"},
        },
    })
    assert [r["id"] for r in records] == ["m1"]


@pytest.mark.asyncio
async def test_select_and_include(store, menus):
    delegate = store.delegate(Entity.MENU)

    selected = await delegate.find_unique({"where": {"id": "m1"}, "select": {"name": True}})
    assert selected == {"name": "Margherita Pizza"}

    included = await delegate.find_unique({"where": {"id": "m1"}, "include": {"restaurant": True}})
    assert included["restaurant"]["name"] == "Test Trattoria"


@pytest.mark.asyncio
async def test_relation_filter_and_count(store, menus):
    restaurants = await store.delegate(Entity.RESTAURANT).find_many({
        "where": {"menus": {"some": {"category": "Salads"}}},
        "include": {"_count": {"select": {"menus": True}}},
    })
    assert len(restaurants) == 1
    assert restaurants[0]["_count"] == {"menus": 3}


@pytest.mark.asyncio
async def test_hidden_fields_are_never_returned(store, owner):
    user = await store.delegate(Entity.USER).find_unique({"where": {"id": owner.id}})
    assert "hashed_password" not in user
    assert user["email"] == "owner@example.com"


@pytest.mark.asyncio
async def test_unknown_field_is_a_query_error(store, menus):
    with pytest.raises(QueryValidationError):
        await store.delegate(Entity.MENU).find_many({"where": {"flavour": "spicy"}})


@pytest.mark.asyncio
async def test_count_aggregate_and_group_by(store, menus):
    delegate = store.delegate(Entity.MENU)

    assert await delegate.count({"where": {"category": "Pizza"}}) == 2

    totals = await delegate.aggregate({"_sum": {"price": True}, "_max": {"price": True}, "_count": True})
    assert totals == {"_sum": {"price": 4297}, "_max": {"price": 1699}, "_count": 3}

    groups = await delegate.group_by({"by": ["category"], "_count": {"_all": True}, "orderBy": {"category": "asc"}})
    assert groups == [
        {"category": "Pizza", "_count": {"_all": 2}},
        {"category": "Salads", "_count": {"_all": 1}},
    ]


@pytest.mark.asyncio
async def test_create_with_connect(store, restaurant):
    menu = await store.delegate(Entity.MENU).create({
        "data": {"name": "Calzone", "price": 1299, "restaurant": {"connect": {"id": restaurant.id}}},
    })
    assert menu["restaurant_id"] == "r1"
    assert isinstance(menu["created_at"], datetime)


@pytest.mark.asyncio
async def test_create_with_missing_foreign_key(store, restaurant):
    with pytest.raises(KnownRequestError) as exc_info:
        await store.delegate(Entity.MENU).create({"data": {"name": "Ghost", "restaurant_id": "nope"}})
    assert exc_info.value.code == ErrorCode.FOREIGN_KEY_CONSTRAINT_FAILED
    assert exc_info.value.http_status == 400


@pytest.mark.asyncio
async def test_connect_to_missing_row_is_not_found(store, restaurant):
    with pytest.raises(KnownRequestError) as exc_info:
        await store.delegate(Entity.MENU).create({
            "data": {"name": "Ghost", "restaurant": {"connect": {"id": "nope"}}},
        })
    assert exc_info.value.code == ErrorCode.REQUIRED_CONNECTED_RECORD_NOT_FOUND
    assert exc_info.value.http_status == 404


@pytest.mark.asyncio
async def test_unique_violation(store, restaurant):
    with pytest.raises(KnownRequestError) as exc_info:
        await store.delegate(Entity.RESTAURANT).create({
            "data": {"id": "r1", "name": "Copy", "user_id": "u-owner", "tenant_id": "tenant-a"},
        })
    assert exc_info.value.code == ErrorCode.UNIQUE_CONSTRAINT_FAILED

    with pytest.raises(KnownRequestError) as exc_info:
        await store.execute(Entity.RESTAURANT, Operation.CREATE_MANY, {
            "data": [
                {"id": "dup", "name": "One", "user_id": "u-owner", "tenant_id": "tenant-a"},
                {"id": "dup", "name": "Two", "user_id": "u-owner", "tenant_id": "tenant-a"},
            ],
        })
    assert exc_info.value.code == ErrorCode.UNIQUE_CONSTRAINT_FAILED


@pytest.mark.asyncio
async def test_create_many_can_skip_duplicates(store, restaurant):
    result = await store.execute(Entity.RESTAURANT, Operation.CREATE_MANY, {
        "data": [
            {"id": "r1", "name": "Copy", "user_id": "u-owner", "tenant_id": "tenant-a"},
            {"id": "r5", "name": "Fresh", "user_id": "u-owner", "tenant_id": "tenant-a"},
        ],
        "skipDuplicates": True,
    })
    assert result == {"count": 1}


@pytest.mark.asyncio
async def test_update_and_delete_missing_rows(store, restaurant):
    delegate = store.delegate(Entity.MENU)
    with pytest.raises(KnownRequestError) as exc_info:
        await delegate.update({"where": {"id": "missing"}, "data": {"name": "x"}})
    assert exc_info.value.code == ErrorCode.DEPEND_ON_RECORD_NOT_FOUND
    assert exc_info.value.http_status == 404

    with pytest.raises(KnownRequestError):
        await delegate.delete({"where": {"id": "missing"}})


@pytest.mark.asyncio
async def test_delete_with_dependents_is_rejected(store, menus):
    with pytest.raises(KnownRequestError) as exc_info:
        await store.delegate(Entity.RESTAURANT).delete({"where": {"id": "r1"}})
    assert exc_info.value.code == ErrorCode.FOREIGN_KEY_CONSTRAINT_FAILED


@pytest.mark.asyncio
async def test_upsert_reports_whether_it_created(store, restaurant):
    delegate = store.delegate(Entity.MENU)
    args = {
        "where": {"id": "m9"},
        "create": {"id": "m9", "name": "Focaccia", "restaurant_id": "r1"},
        "update": {"price": 650},
    }

    record, created = await delegate.upsert(args)
    assert created is True
    assert record["price"] is None

    record, created = await delegate.upsert(args)
    assert created is False
    assert record["price"] == 650


@pytest.mark.asyncio
async def test_many_operations_return_counts(store, menus):
    delegate = store.delegate(Entity.MENU)
    assert await delegate.update_many({"where": {"category": "Pizza"}, "data": {"category": "Pizzas"}}) == {"count": 2}
    assert await delegate.delete_many({"where": {"category": "Pizzas"}}) == {"count": 2}
    assert await delegate.count() == 1


@pytest.mark.asyncio
async def test_tenant_member_sees_only_their_tenant(test_db, model_meta, owner, menus, other_restaurant):
    client = scoped(test_db, model_meta, owner)
    restaurants = await client.delegate(Entity.RESTAURANT).find_many()
    assert [r["id"] for r in restaurants] == ["r1"]


@pytest.mark.asyncio
async def test_guest_reads_public_entities_everywhere(test_db, model_meta, guest, menus, other_restaurant):
    client = scoped(test_db, model_meta, guest)
    restaurants = await client.delegate(Entity.RESTAURANT).find_many({"orderBy": {"id": "asc"}})
    assert [r["id"] for r in restaurants] == ["r1", "r2"]
    assert await client.delegate(Entity.MENU).count() == 3


@pytest.mark.asyncio
async def test_guest_sees_only_own_orders(test_db, model_meta, guest, other_owner, restaurant):
    test_db.add_all([
        Order(id="o1", total_price=100, user_id=guest.id, restaurant_id="r1"),
        Order(id="o2", total_price=200, user_id=other_owner.id, restaurant_id="r1"),
    ])
    await test_db.commit()

    client = scoped(test_db, model_meta, guest)
    orders = await client.delegate(Entity.ORDER).find_many()
    assert [o["id"] for o in orders] == ["o1"]


@pytest.mark.asyncio
async def test_guest_write_is_a_policy_violation(test_db, model_meta, guest, restaurant):
    client = scoped(test_db, model_meta, guest)
    with pytest.raises(KnownRequestError) as exc_info:
        await client.delegate(Entity.MENU).create({"data": {"name": "Free lunch", "restaurant_id": "r1"}})
    assert exc_info.value.code == ErrorCode.CONSTRAINT_FAILED
    assert exc_info.value.reason == FailureReason.ACCESS_POLICY_VIOLATION
    assert exc_info.value.http_status == 403

    # nothing was written
    assert await StoreClient(test_db, model_meta).delegate(Entity.MENU).count() == 0


@pytest.mark.asyncio
async def test_owner_cannot_move_menu_to_foreign_tenant(test_db, model_meta, owner, menus, other_restaurant):
    client = scoped(test_db, model_meta, owner)
    with pytest.raises(KnownRequestError) as exc_info:
        await client.delegate(Entity.MENU).update({"where": {"id": "m1"}, "data": {"restaurant_id": "r2"}})
    assert exc_info.value.reason == FailureReason.ACCESS_POLICY_VIOLATION

    menu = await StoreClient(test_db, model_meta).delegate(Entity.MENU).find_unique({"where": {"id": "m1"}})
    assert menu["restaurant_id"] == "r1"


@pytest.mark.asyncio
async def test_has_access(test_db, model_meta, owner, guest, menus):
    owner_menus = scoped(test_db, model_meta, owner).delegate(Entity.MENU)
    guest_menus = scoped(test_db, model_meta, guest).delegate(Entity.MENU)

    assert await owner_menus.has_access("m1", OperationKind.DELETE) is True
    assert await guest_menus.has_access("m1", OperationKind.READ) is True
    assert await guest_menus.has_access("m1", OperationKind.DELETE) is False
    assert await owner_menus.has_access("missing", OperationKind.READ) is False


@pytest.mark.asyncio
async def test_users_can_update_their_own_profile(test_db, model_meta, guest, owner):
    users = scoped(test_db, model_meta, guest).delegate(Entity.USER)
    updated = await users.update({"where": {"id": guest.id}, "data": {"phone": "+15550000002"}})
    assert updated["phone"] == "+15550000002"

    with pytest.raises(KnownRequestError):
        await users.update({"where": {"id": "u-owner"}, "data": {"phone": "+15550000003"}})


@pytest.mark.asyncio
async def test_users_cannot_change_their_own_roles(test_db, model_meta, guest, owner):
    # a rejected write rolls the session back and expires the fixtures
    guest_users = scoped(test_db, model_meta, guest).delegate(Entity.USER)
    owner_users = scoped(test_db, model_meta, owner).delegate(Entity.USER)

    with pytest.raises(KnownRequestError) as exc_info:
        await guest_users.update({"where": {"id": "u-guest"}, "data": {"roles": ["Owner"], "tenant_id": "tenant-a"}})
    assert exc_info.value.reason == FailureReason.ACCESS_POLICY_VIOLATION

    with pytest.raises(KnownRequestError) as exc_info:
        await owner_users.update({"where": {"id": "u-owner"}, "data": {"tenant_id": "tenant-b"}})
    assert exc_info.value.reason == FailureReason.ACCESS_POLICY_VIOLATION

    users = StoreClient(test_db, model_meta).delegate(Entity.USER)
    assert (await users.find_unique({"where": {"id": "u-owner"}}))["tenant_id"] == "tenant-a"
    assert (await users.find_unique({"where": {"id": "u-guest"}}))["roles"] == ["Guest"]


@pytest.mark.asyncio
async def test_owner_manages_roles_of_tenant_users(test_db, model_meta, owner):
    test_db.add(User(id="u-staff", tenant_id="tenant-a", email="staff@example.com",
                     hashed_password="x", roles=["Guest"]))
    await test_db.commit()

    users = scoped(test_db, model_meta, owner).delegate(Entity.USER)
    updated = await users.update({"where": {"id": "u-staff"}, "data": {"roles": ["Manager"]}})
    assert updated["roles"] == ["Manager"]

    with pytest.raises(QueryValidationError):
        await users.update({"where": {"id": "u-staff"}, "data": {"roles": "Owner"}})
    with pytest.raises(QueryValidationError):
        await users.update({"where": {"id": "u-staff"}, "data": {"roles": ["Owner", 1]}})
