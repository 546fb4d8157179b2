import random
from datetime import date

import pytest

from finboard.routers import profile as profile_router
from finboard.routers.insights import get_random


def _create_category(client, headers, name="Snacks", type="expense", **extra):
    resp = client.post("/api/v1/categories", json={"name": name, "type": type, **extra}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


def _create_transaction(client, headers, category_id, amount, on, title="Purchase"):
    resp = client.post("/api/v1/transactions", json={
        "title": title,
        "amount": amount,
        "category_id": category_id,
        "transaction_date": on.isoformat(),
    }, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()["data"]


@pytest.fixture(params=["relational", "document"])
def headers(request, auth_headers, document_headers, client):
    if request.param == "document":
        # Switching stores creates the Firestore profile
        client.put("/api/v1/settings/database", json={"backend": "document"}, headers=auth_headers)
        return document_headers
    return auth_headers


def test_health(client):
    assert client.get("/healthz").json() == {"status": "ok"}


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/api/v1/nothing-here")
    assert resp.status_code == 404
    assert resp.json() == {
        "success": False,
        "data": None,
        "error": {"code": "NOT_FOUND", "message": "Not Found", "details": {}},
    }


def test_unknown_backend_header(client, auth_headers):
    resp = client.get("/api/v1/categories", headers={**auth_headers, "X-Database-Backend": "graph"})
    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


class TestCategoriesApi:

    def test_defaults_are_listed(self, client, auth_headers):
        resp = client.get("/api/v1/categories", headers=auth_headers)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert len(data) == 12
        assert all(cat["is_default"] for cat in data)

        income = client.get("/api/v1/categories", params={"type": "income"}, headers=auth_headers).json()["data"]
        assert {cat["name"] for cat in income} == {"Salary", "Freelance"}

    def test_defaults_are_read_only(self, client, auth_headers):
        default = client.get("/api/v1/categories", headers=auth_headers).json()["data"][0]
        resp = client.patch(f"/api/v1/categories/{default['id']}", json={"name": "Mine"}, headers=auth_headers)
        assert resp.status_code == 403
        assert resp.json()["error"]["code"] == "FORBIDDEN"

    def test_crud(self, client, headers):
        created = _create_category(client, headers, icon="food", color="#EF4444")
        assert created["icon"] == "food"

        duplicate = client.post("/api/v1/categories", json={"name": "SNACKS", "type": "expense"}, headers=headers)
        assert duplicate.status_code == 409

        resp = client.patch(f"/api/v1/categories/{created['id']}", json={"color": None, "name": "Treats"}, headers=headers)
        assert resp.json()["data"]["name"] == "Treats"
        assert resp.json()["data"]["color"] is None

        resp = client.delete(f"/api/v1/categories/{created['id']}", headers=headers)
        assert resp.json()["data"] == {"id": created["id"], "deleted": True}
        assert client.get(f"/api/v1/categories/{created['id']}", headers=headers).status_code == 404

    def test_bad_color(self, client, auth_headers):
        resp = client.post("/api/v1/categories", json={"name": "Odd", "type": "expense", "color": "red"}, headers=auth_headers)
        assert resp.status_code == 422

    def test_names_are_trimmed(self, client, headers):
        created = _create_category(client, headers, name="  Snacks ")
        assert created["name"] == "Snacks"

        resp = client.patch(f"/api/v1/categories/{created['id']}", json={"name": " Treats"}, headers=headers)
        assert resp.json()["data"]["name"] == "Treats"

        blank = client.post("/api/v1/categories", json={"name": "   ", "type": "expense"}, headers=headers)
        assert blank.status_code == 422


class TestTransactionsApi:

    def test_crud(self, client, headers):
        snacks = _create_category(client, headers)
        created = _create_transaction(client, headers, snacks["id"], 12.5, date(2024, 3, 2), title="Lunch")
        assert created["amount"] == -12.5
        assert created["category"]["name"] == "Snacks"

        resp = client.patch(
            f"/api/v1/transactions/{created['id']}",
            json={"title": None, "notes": "with friends"},
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["title"] == "Lunch"
        assert resp.json()["data"]["notes"] == "with friends"

        resp = client.get(f"/api/v1/transactions/{created['id']}", headers=headers)
        assert resp.json()["data"]["notes"] == "with friends"

        assert client.delete(f"/api/v1/transactions/{created['id']}", headers=headers).status_code == 200
        missing = client.get(f"/api/v1/transactions/{created['id']}", headers=headers)
        assert missing.status_code == 404
        assert missing.json()["error"]["code"] == "NOT_FOUND"

    def test_listing(self, client, headers):
        snacks = _create_category(client, headers)
        for day in (1, 2, 3):
            _create_transaction(client, headers, snacks["id"], 10 * day, date(2024, 3, day), title=f"Item {day}")

        resp = client.get("/api/v1/transactions", params={"page_size": 2}, headers=headers)
        page = resp.json()["data"]
        assert [item["title"] for item in page["items"]] == ["Item 3", "Item 2"]
        assert page["has_next"] is True
        assert page["page_size"] == 2

        resp = client.get("/api/v1/transactions", params={"search": "item 1"}, headers=headers)
        assert [item["title"] for item in resp.json()["data"]["items"]] == ["Item 1"]

    def test_list_total_depends_on_backend(self, client, auth_headers, document_headers):
        snacks = _create_category(client, auth_headers)
        _create_transaction(client, auth_headers, snacks["id"], 5, date(2024, 3, 1))
        relational = client.get("/api/v1/transactions", headers=auth_headers).json()["data"]
        assert relational["total"] == 1

        document = client.get("/api/v1/transactions", headers=document_headers).json()["data"]
        assert document["total"] is None
        assert document["items"] == []

    def test_validation(self, client, auth_headers):
        snacks = _create_category(client, auth_headers)
        zero = client.post("/api/v1/transactions", json={
            "title": "Nothing",
            "amount": 0,
            "category_id": snacks["id"],
            "transaction_date": "2024-03-01",
        }, headers=auth_headers)
        assert zero.status_code == 422

        unknown = client.post("/api/v1/transactions", json={
            "title": "Ghost",
            "amount": 5,
            "category_id": "5f0c6f52-8f1e-4a39-9d1c-3f4f7a0c9e11",
            "transaction_date": "2024-03-01",
        }, headers=auth_headers)
        assert unknown.status_code == 400
        assert unknown.json()["error"]["message"] == "Unknown category"

    @pytest.mark.parametrize("field, value", [
        ("amount", "1000000.01"),
        ("amount", "-1000000.01"),
        ("title", "X"),
        ("title", "X" * 101),
        ("notes", "n" * 501),
    ])
    def test_field_limits(self, client, auth_headers, field, value):
        snacks = _create_category(client, auth_headers)
        payload = {
            "title": "Laptop",
            "amount": "25",
            "category_id": snacks["id"],
            "transaction_date": "2024-03-01",
        }
        resp = client.post("/api/v1/transactions", json={**payload, field: value}, headers=auth_headers)
        assert resp.status_code == 422
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"

    def test_largest_amount_is_accepted(self, client, auth_headers):
        snacks = _create_category(client, auth_headers)
        resp = client.post("/api/v1/transactions", json={
            "title": "Laptop",
            "amount": "1000000",
            "category_id": snacks["id"],
            "transaction_date": "2024-03-01",
            "notes": "n" * 500,
        }, headers=auth_headers)
        assert resp.status_code == 201
        assert resp.json()["data"]["amount"] == -1000000.0

    def test_csv_upload(self, client, headers):
        _create_category(client, headers)
        content = b"title,amount,category,date\nChips,3.50,snacks,2024-03-01\nGhost,1,Nope,2024-03-01\n"
        resp = client.post(
            "/api/v1/transactions/import",
            files={"file": ("transactions.csv", content, "text/csv")},
            headers=headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"] == {
            "success": 1,
            "failed": 1,
            "total": 2,
            "errors": ['Category "Nope" not found for transaction "Ghost"'],
        }

    def test_csv_upload_missing_columns(self, client, auth_headers):
        resp = client.post(
            "/api/v1/transactions/import",
            files={"file": ("transactions.csv", b"title\nChips\n", "text/csv")},
            headers=auth_headers,
        )
        assert resp.status_code == 400
        assert resp.json()["error"]["details"]["missing"] == ["amount", "category", "date"]


class TestBudgetApi:

    def test_goal_crud_and_progress(self, client, headers):
        snacks = _create_category(client, headers)
        resp = client.post("/api/v1/budget-goals", json={
            "category_id": snacks["id"],
            "amount": 100,
            "start_date": "2024-03-01",
        }, headers=headers)
        assert resp.status_code == 201
        goal = resp.json()["data"]
        assert goal["end_date"] == "2024-03-31"
        assert goal["period"] == "monthly"

        _create_transaction(client, headers, snacks["id"], 45, date(2024, 3, 10))
        progress = client.get(
            "/api/v1/budget/progress", params={"date": "2024-03-15", "period": "monthly"}, headers=headers,
        ).json()["data"]
        assert progress[0]["spent"] == 45.0
        assert progress[0]["percentage"] == 45.0

        resp = client.patch(f"/api/v1/budget-goals/{goal['id']}", json={"amount": 150}, headers=headers)
        assert resp.json()["data"]["amount"] == 150.0

        listed = client.get("/api/v1/budget-goals", params={"period": "monthly"}, headers=headers).json()["data"]
        assert [item["id"] for item in listed] == [goal["id"]]

        assert client.delete(f"/api/v1/budget-goals/{goal['id']}", headers=headers).status_code == 200
        assert client.get(f"/api/v1/budget-goals/{goal['id']}", headers=headers).status_code == 404

    def test_goal_needs_expense_category(self, client, auth_headers):
        wages = _create_category(client, auth_headers, name="Wages", type="income")
        resp = client.post("/api/v1/budget-goals", json={"category_id": wages["id"], "amount": 100}, headers=auth_headers)
        assert resp.status_code == 400

    def test_summary_and_alerts_use_current_month(self, client, auth_headers):
        snacks = _create_category(client, auth_headers)
        client.post("/api/v1/budget-goals", json={"category_id": snacks["id"], "amount": 100}, headers=auth_headers)
        _create_transaction(client, auth_headers, snacks["id"], 95, date.today())

        summary = client.get("/api/v1/budget/summary", headers=auth_headers).json()["data"]
        assert summary["total_budget"] == 100.0
        assert summary["total_spent"] == 95.0
        assert summary["remaining"] == 5.0

        alerts = client.get("/api/v1/budget/alerts", headers=auth_headers).json()["data"]
        assert [(a["category_name"], a["percentage"], a["critical"]) for a in alerts] == [("Snacks", 95, True)]


class TestDashboardApi:

    def test_full_dashboard(self, client, headers):
        snacks = _create_category(client, headers)
        wages = _create_category(client, headers, name="Wages", type="income")
        today = date.today()
        _create_transaction(client, headers, wages["id"], 1000, today, title="Salary")
        _create_transaction(client, headers, snacks["id"], 40, today, title="Chips")

        resp = client.get("/api/v1/dashboard", headers=headers)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["summary"] == {"income": 1000.0, "expenses": 40.0, "balance": 960.0}
        assert len(data["monthly"]) == 6
        assert len(data["trends"]) == 30
        assert data["categories"]["categories"][0]["name"] == "Snacks"
        assert {item["title"] for item in data["recent"]} == {"Salary", "Chips"}
        assert data["budget_progress"] == []

    def test_failing_store_renders_empty_dashboard(self, client, document_headers, firestore_client):
        firestore_client.available = False
        resp = client.get("/api/v1/dashboard", headers=document_headers)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["summary"] == {"income": 0.0, "expenses": 0.0, "balance": 0.0}
        assert data["recent"] == []
        assert data["categories"]["categories"] == []

        trends = client.get("/api/v1/dashboard/trends", headers=document_headers)
        assert trends.status_code == 503
        assert trends.json()["error"]["code"] == "BACKEND_ERROR"

    def test_widgets(self, client, auth_headers):
        snacks = _create_category(client, auth_headers)
        _create_transaction(client, auth_headers, snacks["id"], 25, date(2024, 3, 2))

        custom = client.get(
            "/api/v1/dashboard/summary",
            params={"period": "custom", "start": "2024-03-01", "end": "2024-03-31"},
            headers=auth_headers,
        ).json()["data"]
        assert custom["expenses"] == 25.0

        all_time = client.get("/api/v1/dashboard/categories", params={"period": "allTime"}, headers=auth_headers)
        assert all_time.json()["data"]["total"] == 25.0

        assert len(client.get("/api/v1/dashboard/trends", params={"range": "12m"}, headers=auth_headers).json()["data"]) == 12
        assert len(client.get("/api/v1/dashboard/monthly", params={"months": 3}, headers=auth_headers).json()["data"]) == 3
        assert len(client.get("/api/v1/dashboard/recent", params={"limit": 1}, headers=auth_headers).json()["data"]) == 1
        assert client.get("/api/v1/dashboard/budget-progress", headers=auth_headers).json()["data"] == []

    def test_bad_parameters(self, client, auth_headers):
        assert client.get("/api/v1/dashboard/trends", params={"range": "5y"}, headers=auth_headers).status_code == 422
        resp = client.get("/api/v1/dashboard/summary", params={"period": "custom"}, headers=auth_headers)
        assert resp.status_code == 400
        assert resp.json()["error"]["code"] == "VALIDATION_ERROR"


class TestInsightsApi:

    @pytest.fixture(autouse=True)
    def seeded_random(self, app):
        app.dependency_overrides[get_random] = lambda: random.Random(0)

    def test_basic(self, client, auth_headers):
        resp = client.get("/api/v1/insights", headers=auth_headers)
        assert resp.status_code == 200
        data = resp.json()["data"]
        assert data["summary"].startswith("You haven't recorded any transactions")
        assert data["top_category"] == "None"

    def test_enhanced(self, client, headers):
        snacks = _create_category(client, headers)
        _create_transaction(client, headers, snacks["id"], 60, date.today())
        data = client.get("/api/v1/insights/enhanced", headers=headers).json()["data"]
        assert data["summary"]["total_spent"] == 60.0
        assert data["summary"]["top_category"] == "Snacks"
        assert data["tips"][0]["title"] == "Optimize Your Snacks Spending"


class TestSettingsApi:

    def test_switch_backend(self, client, auth_headers, firestore_client, user):
        resp = client.get("/api/v1/settings/database", headers=auth_headers)
        assert resp.json()["data"] == {"backend": "relational", "available": ["relational", "document"]}

        resp = client.put("/api/v1/settings/database", json={"backend": "document"}, headers=auth_headers)
        assert resp.json()["data"]["backend"] == "document"
        assert str(user.id) in firestore_client.docs("users")

        assert client.get("/api/v1/auth/me", headers=auth_headers).json()["data"]["backend"] == "document"
        # Reads now go to the (empty) document store
        assert client.get("/api/v1/categories", headers=auth_headers).json()["data"] == []

    def test_unknown_backend(self, client, auth_headers):
        resp = client.put("/api/v1/settings/database", json={"backend": "graph"}, headers=auth_headers)
        assert resp.status_code == 422

    def test_migrate(self, client, auth_headers, document_headers):
        snacks = _create_category(client, auth_headers)
        txn = _create_transaction(client, auth_headers, snacks["id"], 20, date(2024, 3, 1))

        resp = client.post("/api/v1/settings/database/migrate", headers=auth_headers)
        assert resp.status_code == 200
        result = resp.json()["data"]
        assert result["success"] is True
        assert result["counts"]["categories"] == 13
        assert result["backend"] == "document"

        copied = client.get(f"/api/v1/transactions/{txn['id']}", headers=document_headers).json()["data"]
        assert copied["amount"] == -20.0
        assert copied["category"]["name"] == "Snacks"


class TestProfileApi:

    def test_read_and_update(self, client, headers):
        assert client.get("/api/v1/profile", headers=headers).json()["data"]["full_name"] == "Ada Lovelace"

        resp = client.patch("/api/v1/profile", json={"full_name": "Ada King"}, headers=headers)
        assert resp.status_code == 200
        assert resp.json()["data"]["full_name"] == "Ada King"

    def test_validation(self, client, auth_headers):
        assert client.patch("/api/v1/profile", json={"full_name": "A"}, headers=auth_headers).status_code == 422
        assert client.patch("/api/v1/profile", json={"email": "nope"}, headers=auth_headers).status_code == 422

    def test_avatar_upload_url(self, client, auth_headers, monkeypatch):
        def fake_upload_url(user_id, filename, content_type):
            object_name = f"finboard/avatars/{user_id}/abc.png"
            return "https://signed.example/upload", object_name, f"https://cdn.example/{object_name}"

        monkeypatch.setattr(profile_router, "generate_avatar_upload_url", fake_upload_url)
        resp = client.post(
            "/api/v1/profile/avatar-upload-url",
            json={"filename": "me.png", "content_type": "image/png"},
            headers=auth_headers,
        )
        assert resp.status_code == 200
        assert resp.json()["data"]["upload_url"] == "https://signed.example/upload"

    def test_avatar_upload_needs_bucket(self, client, auth_headers):
        resp = client.post(
            "/api/v1/profile/avatar-upload-url",
            json={"filename": "me.png", "content_type": "image/png"},
            headers=auth_headers,
        )
        assert resp.status_code == 503
        assert resp.json()["error"]["code"] == "BACKEND_ERROR"

    def test_avatar_rejects_non_images(self, client, auth_headers):
        resp = client.post(
            "/api/v1/profile/avatar-upload-url",
            json={"filename": "me.exe", "content_type": "application/octet-stream"},
            headers=auth_headers,
        )
        assert resp.status_code == 422
