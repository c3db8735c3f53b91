from datetime import datetime, timedelta, timezone

from bson import ObjectId

from app.core.exceptions import StoreFailure
from utils.constants import MAX_PAGE


# ----------------------------------------------------------------------
# POST /api/users/bulk-create
# ----------------------------------------------------------------------

def test_bulk_create_all_valid(client, store, user_factory):
    users = [user_factory(n) for n in range(5)]

    response = client.post("/api/users/bulk-create", json=users)

    assert response.status_code == 201
    data = response.json()
    assert data["success"] is True
    assert data["statusCode"] == 201
    assert data["count"] == 5
    assert data["message"] == "Successfully created 5 users"
    assert len(data["data"]) == 5

    ids = {user["_id"] for user in data["data"]}
    assert len(ids) == 5
    assert all(ObjectId.is_valid(user_id) for user_id in ids)
    assert len(store.documents) == 5


def test_bulk_create_applies_defaults_and_normalization(client, user_factory):
    user = user_factory(1, fullName="  Jane Doe  ", email="Jane.Doe@Example.COM")

    response = client.post("/api/users/bulk-create", json=[user])

    assert response.status_code == 201
    created = response.json()["data"][0]
    assert created["fullName"] == "Jane Doe"
    assert created["email"] == "jane.doe@example.com"
    assert created["role"] == "user"
    assert created["walletBalance"] == 0
    assert created["isBlocked"] is False
    assert created["kycStatus"] == "Pending"
    assert created["createdAt"] == created["updatedAt"]


def test_bulk_create_accepts_single_object(client, user_factory):
    response = client.post("/api/users/bulk-create", json=user_factory(1))

    assert response.status_code == 201
    assert response.json()["count"] == 1


def test_bulk_create_ignores_client_timestamps_and_unknown_fields(client, user_factory):
    user = user_factory(1, updatedAt="2001-01-01T00:00:00Z", nickname="jd")

    created = client.post("/api/users/bulk-create", json=[user]).json()["data"][0]

    assert not created["updatedAt"].startswith("2001")
    assert "nickname" not in created


def test_bulk_create_partial_duplicate(client, user_factory):
    users = [user_factory(n) for n in range(4)]
    users.append(user_factory(9, email="user2@example.com"))

    response = client.post("/api/users/bulk-create", json=users)

    assert response.status_code == 207
    data = response.json()
    assert data["success"] is False
    assert data["statusCode"] == 207
    assert data["insertedCount"] == 4
    assert data["failedCount"] == 1
    assert len(data["insertedDocs"]) == 4
    assert data["errors"][0]["index"] == 4
    assert "duplicate key" in data["errors"][0]["errmsg"]


def test_bulk_create_partial_reports_original_indexes(client, user_factory):
    users = [
        user_factory(0),
        user_factory(1, phone="12ab"),
        user_factory(2),
        user_factory(3, email="user0@example.com"),
    ]

    response = client.post("/api/users/bulk-create", json=users)

    assert response.status_code == 207
    data = response.json()
    assert data["insertedCount"] == 2
    assert data["failedCount"] == 2
    assert [error["index"] for error in data["errors"]] == [1, 3]
    assert "Phone number must contain only digits" in data["errors"][0]["errmsg"]


def test_bulk_create_single_duplicate_is_conflict(client, user_factory):
    client.post("/api/users/bulk-create", json=[user_factory(1)])

    response = client.post("/api/users/bulk-create", json=[user_factory(2, phone="9876500001")])

    assert response.status_code == 409
    data = response.json()
    assert data["success"] is False
    assert data["message"] == "phone already exists"


def test_bulk_create_single_invalid_is_validation_error(client):
    response = client.post("/api/users/bulk-create", json={"email": "not-an-email"})

    assert response.status_code == 400
    data = response.json()
    assert data["message"] == "Validation error"
    assert "Full name is required" in data["errors"]
    assert "Please provide a valid email address" in data["errors"]
    assert "Password is required" in data["errors"]
    assert "Phone number is required" in data["errors"]


def test_bulk_create_empty_array(client):
    response = client.post("/api/users/bulk-create", json=[])

    assert response.status_code == 400
    assert response.json()["message"] == "Array cannot be empty"


def test_bulk_create_non_object_body(client):
    response = client.post("/api/users/bulk-create", json="hello")

    assert response.status_code == 400
    assert response.json()["message"] == "Request body must be an array of user objects"


def test_bulk_create_invalid_json(client):
    response = client.post(
        "/api/users/bulk-create",
        content=b"{not json",
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["message"] == "Request body must be valid JSON"


# ----------------------------------------------------------------------
# PUT /api/users/bulk-update
# ----------------------------------------------------------------------

def seed(client, user_factory, count):
    users = [user_factory(n) for n in range(count)]
    return client.post("/api/users/bulk-create", json=users).json()["data"]


def test_bulk_update_one(client, store, user_factory):
    seed(client, user_factory, 1)
    operations = [{
        "updateOne": {
            "filter": {"email": "user0@example.com"},
            "update": {"walletBalance": 50, "updatedAt": "1999-01-01T00:00:00Z"},
        }
    }]

    response = client.put("/api/users/bulk-update", json=operations)

    assert response.status_code == 200
    data = response.json()
    assert data["success"] is True
    assert data["message"] == "Bulk update completed successfully"
    assert data["data"] == {
        "matched": 1,
        "modified": 1,
        "upserted": 0,
        "deletedCount": 0,
        "insertedCount": 0,
    }

    stored = store.documents[0]
    assert stored["walletBalance"] == 50
    # client-supplied updatedAt is overridden by the server
    assert isinstance(stored["updatedAt"], datetime)
    assert stored["updatedAt"] >= stored["createdAt"]


def test_bulk_update_many(client, user_factory):
    seed(client, user_factory, 3)
    operations = [{"updateMany": {"filter": {"kycStatus": "Pending"}, "update": {"kycStatus": "Approved"}}}]

    data = client.put("/api/users/bulk-update", json=operations).json()["data"]

    assert data["matched"] == 3
    assert data["modified"] == 3


def test_bulk_update_by_id(client, store, user_factory):
    created = seed(client, user_factory, 2)
    operations = [{"updateOne": {"filter": {"_id": created[1]["_id"]}, "update": {"isBlocked": True}}}]

    response = client.put("/api/users/bulk-update", json=operations)

    assert response.json()["data"]["matched"] == 1
    assert store.documents[1]["isBlocked"] is True
    assert store.documents[0]["isBlocked"] is False


def test_repeated_update_reports_modified(client, user_factory, monkeypatch):
    seed(client, user_factory, 1)
    ticks = iter(datetime(2026, 1, 1, tzinfo=timezone.utc) + timedelta(seconds=n) for n in range(10))
    monkeypatch.setattr("app.services.user_service.utc_now", lambda: next(ticks))
    operations = [{"updateOne": {"filter": {"email": "user0@example.com"}, "update": {"walletBalance": 50}}}]

    first = client.put("/api/users/bulk-update", json=operations).json()["data"]
    second = client.put("/api/users/bulk-update", json=operations).json()["data"]

    assert (first["matched"], first["modified"]) == (1, 1)
    # updatedAt is rewritten every time
    assert (second["matched"], second["modified"]) == (1, 1)


def test_bulk_update_raw_operations(client, store, user_factory):
    seed(client, user_factory, 3)
    operations = [
        {"deleteOne": {"filter": {"email": "user0@example.com"}}},
        {"insertOne": {"document": {"fullName": "Raw Insert", "email": "raw@example.com",
                                    "password": "x", "phone": "1234567890"}}},
    ]

    response = client.put("/api/users/bulk-update", json=operations)

    assert response.status_code == 200
    data = response.json()["data"]
    assert data["deletedCount"] == 1
    assert data["insertedCount"] == 1
    assert len(store.documents) == 3
    # raw operations are not stamped
    assert "updatedAt" not in store.documents[-1]


def test_bulk_update_partial_failure(client, user_factory):
    seed(client, user_factory, 2)
    operations = [
        {"updateOne": {"filter": {"email": "user0@example.com"}, "update": {"walletBalance": 10}}},
        {"updateOne": {"filter": {"email": "user1@example.com"}, "update": {"email": "user0@example.com"}}},
        {"updateOne": {"filter": {"email": "user1@example.com"}, "update": {"walletBalance": -5}}},
    ]

    response = client.put("/api/users/bulk-update", json=operations)

    assert response.status_code == 207
    data = response.json()
    assert data["success"] is False
    assert data["message"] == "Partial bulk update - some operations failed"
    assert data["data"]["matched"] == 1
    assert data["data"]["modified"] == 1
    assert [error["index"] for error in data["errors"]] == [1, 2]
    assert data["errors"][0]["code"] == 11000
    assert data["errors"][1]["code"] == 121


def test_bulk_update_rejects_object_body(client):
    response = client.put("/api/users/bulk-update", json={"updateOne": {"filter": {}, "update": {}}})

    assert response.status_code == 400
    assert response.json()["message"] == "Request body must be an array of update operations"


def test_bulk_update_rejects_empty_array(client):
    response = client.put("/api/users/bulk-update", json=[])

    assert response.status_code == 400
    assert response.json()["message"] == "Operations array cannot be empty"


def test_bulk_update_rejects_unknown_operation(client):
    response = client.put("/api/users/bulk-update", json=[{"dropCollection": {}}])

    assert response.status_code == 400
    data = response.json()
    assert data["message"] == "Invalid bulk operation"
    assert "index 0" in data["errors"][0]


# ----------------------------------------------------------------------
# GET /api/users
# ----------------------------------------------------------------------

def test_list_users_second_page(client, user_factory):
    seed(client, user_factory, 12)

    response = client.get("/api/users?page=2&limit=5")

    assert response.status_code == 200
    data = response.json()
    assert [user["email"] for user in data["data"]] == [f"user{n}@example.com" for n in range(5, 10)]
    assert data["pagination"] == {"currentPage": 2, "limit": 5, "total": 12, "pages": 3}


def test_list_users_defaults(client, user_factory):
    seed(client, user_factory, 12)

    data = client.get("/api/users").json()

    assert len(data["data"]) == 10
    assert data["pagination"] == {"currentPage": 1, "limit": 10, "total": 12, "pages": 2}


def test_list_users_invalid_params_fall_back(client, user_factory):
    seed(client, user_factory, 3)

    data = client.get("/api/users?page=-4&limit=abc").json()

    assert data["pagination"]["currentPage"] == 1
    assert data["pagination"]["limit"] == 10


def test_list_users_limit_is_capped(client):
    data = client.get("/api/users?limit=5000").json()

    assert data["pagination"]["limit"] == 100
    assert data["pagination"]["pages"] == 0


def test_list_users_huge_page_is_capped(client, store, monkeypatch):
    offsets = []
    find = store.find

    async def recording_find(skip, limit):
        offsets.append(skip)
        return await find(skip, limit)

    monkeypatch.setattr(store, "find", recording_find)

    response = client.get("/api/users?page=99999999999999999999")

    assert response.status_code == 200
    data = response.json()
    assert data["data"] == []
    assert data["pagination"]["currentPage"] == MAX_PAGE
    assert offsets == [(MAX_PAGE - 1) * 10]
    assert offsets[0] < 2 ** 63


# ----------------------------------------------------------------------
# GET /api/users/{id}
# ----------------------------------------------------------------------

def test_get_user_by_id(client, user_factory):
    created = seed(client, user_factory, 2)[1]

    response = client.get(f"/api/users/{created['_id']}")

    assert response.status_code == 200
    assert response.json()["data"]["email"] == created["email"]


def test_get_user_not_found(client):
    response = client.get(f"/api/users/{ObjectId()}")

    assert response.status_code == 404
    assert response.json() == {"success": False, "statusCode": 404, "message": "User not found"}


def test_get_user_malformed_id(client):
    response = client.get("/api/users/not-an-id")

    assert response.status_code == 400
    assert response.json()["message"] == "Invalid ID format"


def test_store_failure_goes_through_classifier(client, store):
    async def broken_find(skip, limit):
        raise StoreFailure("connection reset")

    store.find = broken_find

    response = client.get("/api/users")

    assert response.status_code == 500
    assert response.json() == {"success": False, "statusCode": 500, "message": "connection reset"}
