"""
HTTP surface through FastAPI's TestClient (SQLite DB, mocked Spoonacular).
"""
from __future__ import annotations

import httpx
import pytest
from fastapi.testclient import TestClient

from main import app
from services.auth import create_token
from services.spoonacular import SpoonacularClient


def _auth(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_token(user_id)}"}


@pytest.fixture
def client():
    with TestClient(app) as c:
        yield c


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_missing_identity_is_structured_failure(client):
    r = client.get("/api/v1/reminders")
    assert r.status_code == 200
    assert r.json() == {"message": "User not found", "success": False}

    r = client.get("/api/v1/reminders", headers={"Authorization": "Bearer not-a-jwt"})
    assert r.json()["success"] is False


def test_reminder_lifecycle(client):
    h = _auth("api-user-1")
    body = {"type": "water", "title": "Hydrate", "message": "drink", "time": "2099-05-01T10:00:00", "repeat": "daily"}

    r = client.post("/api/v1/reminders", json=body, headers=h)
    assert r.status_code == 200
    created = r.json()
    assert created["success"] is True
    assert created["message"] == "Reminder created successfully"
    assert created["data"]["time"] == "2099-05-01T04:30:00Z"
    rid = created["data"]["id"]
    assert rid in app.state.scheduler.jobs

    r = client.post(
        "/api/v1/reminders",
        json={"type": "medication", "message": "pill", "time": "2099-05-01T21:00:00"},
        headers=h,
    )
    assert r.json()["success"] is True

    r = client.put(
        "/api/v1/reminders",
        json={"type": "water", "message": "drink again", "time": "2099-05-01T16:00:00"},
        headers=h,
    )
    assert r.json()["message"] == "Reminder updated successfully"

    listed = client.get("/api/v1/reminders", headers=h).json()
    assert listed["success"] is True
    assert [x["message"] for x in listed["data"]["water"]] == ["drink", "drink again"]
    assert len(listed["data"]["medication"]) == 1

    r = client.patch(f"/api/v1/reminders/{rid}", json={"message": "drink more"}, headers=h)
    assert r.json()["data"]["message"] == "drink more"

    r = client.delete("/api/v1/reminders", headers=h)
    assert r.json() == {"message": "Reminder deleted successfully", "success": True}
    assert rid not in app.state.scheduler.jobs

    r = client.get("/api/v1/reminders", headers=h)
    assert r.json() == {"message": "Reminders not found", "success": False}


def test_reminder_validation_failures(client):
    h = _auth("api-user-2")
    r = client.post("/api/v1/reminders", json={"type": "water"}, headers=h)
    assert r.status_code == 200
    assert r.json()["success"] is False
    assert "message" in r.json()["message"]

    r = client.post(
        "/api/v1/reminders",
        json={"type": "water", "message": "m", "time": "someday"},
        headers=h,
    )
    assert r.json() == {"message": "Invalid reminder time", "success": False}

    r = client.put(
        "/api/v1/reminders",
        json={"type": "water", "message": "m", "time": "2099-01-01T00:00:00"},
        headers=h,
    )
    assert r.json() == {"message": "Reminder not found", "success": False}


def test_device_token_registration(client):
    r = client.put("/api/v1/devices/token", json={"token": "abc", "platform": "ios"}, headers=_auth("api-user-3"))
    assert r.json() == {"message": "Device token saved", "success": True}


def test_meal_plan_endpoints(client):
    h = _auth("api-user-4")

    r = client.post("/api/v1/mealplan/generate", params={"timeFrame": "day"}, headers=h)
    assert r.json() == {"message": "data not received", "success": False}

    bad = {"timeFrame": "day", "targetCalories": "abc", "diet": "vegetarian"}
    r = client.post("/api/v1/mealplan/generate", params=bad, headers=h)
    assert r.status_code == 200
    assert r.json() == {"message": "data not received", "success": False}

    r = client.get("/api/v1/mealplan", headers=h)
    assert r.json()["success"] is False

    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/users/connect":
            return httpx.Response(200, json={"username": "owner", "hash": "h"})
        return httpx.Response(200, json={"meals": [{"id": 1, "title": "Oats"}]})

    service = app.state.meal_plans
    service.client = SpoonacularClient("k", "https://api.test", transport=httpx.MockTransport(handler))

    params = {"timeFrame": "day", "targetCalories": 2000, "diet": "vegetarian", "exclude": "nuts"}
    r = client.post("/api/v1/mealplan/generate", params=params, headers=h)
    assert r.json() == {"message": "meal Added Successfully", "success": True}

    r = client.get("/api/v1/mealplan", headers=h)
    assert r.json()["data"] == [{"mealPlan": {"meals": [{"id": 1, "title": "Oats"}]}}]


def test_meal_plan_upstream_failure_is_500(client):
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(401)

    app.state.meal_plans.client = SpoonacularClient(
        "k", "https://api.test", transport=httpx.MockTransport(handler)
    )
    params = {"timeFrame": "day", "targetCalories": 2000, "diet": "vegetarian"}
    r = client.post("/api/v1/mealplan/generate", params=params, headers=_auth("api-user-5"))
    assert r.status_code == 500
    assert r.json() == {"error": "Failed to generate meal plan"}
