"""Tests for the HTTP API."""

import base64
from uuid import uuid4

from fastapi.testclient import TestClient

from meal_diary.api.app import create_app
from meal_diary.containers import AppContainer
from tests.conftest import FakeInferenceClient, InMemoryDiaryRepository

JPEG_BASE64 = base64.b64encode(b"\xff\xd8\xff\xe0fake-jpeg").decode()


def _client(container: AppContainer) -> tuple[TestClient, dict[str, str]]:
    return TestClient(create_app(container)), {"X-User-Id": str(uuid4())}


def _start(client: TestClient, headers: dict[str, str]) -> dict[str, object]:
    response = client.post(
        "/analysis/sessions",
        json={"goal": "satiety", "image": f"data:image/jpeg;base64,{JPEG_BASE64}"},
        headers=headers,
    )
    assert response.status_code == 201
    return response.json()


def test_health(container: AppContainer) -> None:
    client, _headers = _client(container)

    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_photo_to_calendar_flow(container: AppContainer) -> None:
    client, headers = _client(container)

    session = _start(client, headers)
    assert session["phase"] == "confirming"
    assert session["foods"] == [{"name": "rice", "category": "carbohydrate"}]
    base = f"/analysis/sessions/{session['id']}"

    response = client.post(
        f"{base}/foods",
        json={"name": "kimchi", "category": "vegetable"},
        headers=headers,
    )
    assert len(response.json()["foods"]) == 2

    response = client.post(f"{base}/confirm", headers=headers)
    assert response.status_code == 200
    result = response.json()["result"]
    assert [food["name"] for food in result["foods"]] == ["rice", "kimchi"]
    assert result["total_nutrition"] == {"carbs": 48.75, "protein": 5.0, "fat": 0.75}

    dinner = {"meal_slot": "dinner"}
    response = client.post(f"{base}/save", json=dinner, headers=headers)
    assert response.status_code == 201
    record = response.json()
    assert record["meal_slot"] == "dinner"
    assert [step["order"] for step in record["eating_order"]["steps"]] == [1, 2]

    response = client.post(f"{base}/save", json=dinner, headers=headers)
    assert response.status_code == 409

    calendar = client.get("/diary/calendar/2024/3", headers=headers).json()
    assert calendar["days"] == {"2024-03-15": ["dinner"]}
    assert calendar["stats"]["total_meals"] == 1

    day = client.get("/diary/days/2024-03-15", headers=headers).json()
    assert [entry["id"] for entry in day["meals"]["dinner"]] == [record["id"]]


def test_update_and_delete_entry(container: AppContainer) -> None:
    client, headers = _client(container)
    session = _start(client, headers)
    base = f"/analysis/sessions/{session['id']}"
    client.post(f"{base}/confirm", headers=headers)
    record = client.post(f"{base}/save", json={}, headers=headers).json()
    assert record["meal_slot"] == "lunch"

    response = client.patch(
        f"/diary/{record['id']}",
        json={"feedback": {"digestion": "good", "satiety": "normal", "energy": "bad"}},
        headers=headers,
    )
    assert response.status_code == 200
    assert response.json()["feedback"] == {
        "digestion": "good",
        "satiety": "normal",
        "energy": "bad",
    }

    recent = client.get("/diary/recent", headers=headers).json()
    assert [entry["id"] for entry in recent["records"]] == [record["id"]]

    response = client.delete(f"/diary/{record['id']}", headers=headers)
    assert response.status_code == 204
    day = client.get("/diary/days/2024-03-15", headers=headers).json()
    assert day["meals"] == {}

    response = client.delete(f"/diary/{record['id']}", headers=headers)
    assert response.status_code == 404


def test_requests_need_a_user(container: AppContainer) -> None:
    client, _headers = _client(container)

    assert client.get("/diary/recent").status_code == 401
    assert (
        client.get("/diary/recent", headers={"X-User-Id": "not-a-uuid"}).status_code
        == 401
    )


def test_sessions_of_other_users_are_hidden(container: AppContainer) -> None:
    client, headers = _client(container)
    session = _start(client, headers)

    response = client.get(
        f"/analysis/sessions/{session['id']}", headers={"X-User-Id": str(uuid4())}
    )

    assert response.status_code == 404


def test_food_edit_errors_are_422(container: AppContainer) -> None:
    client, headers = _client(container)
    session = _start(client, headers)
    base = f"/analysis/sessions/{session['id']}"

    assert client.delete(f"{base}/foods/0", headers=headers).status_code == 422
    response = client.patch(f"{base}/foods/0", json={"name": " "}, headers=headers)
    assert response.status_code == 422
    assert client.get(base, headers=headers).json()["foods"][0]["name"] == "rice"


def test_detection_failure_is_bad_gateway(
    container: AppContainer, inference_client: FakeInferenceClient
) -> None:
    inference_client.detection_error = RuntimeError("boom")
    client, headers = _client(container)

    response = client.post(
        "/analysis/sessions",
        json={"goal": "energy", "image": JPEG_BASE64},
        headers=headers,
    )

    assert response.status_code == 502
    assert response.json()["phase"] == "error"


def test_analysis_failure_keeps_foods(
    container: AppContainer, inference_client: FakeInferenceClient
) -> None:
    client, headers = _client(container)
    session = _start(client, headers)
    inference_client.analysis_error = RuntimeError("timeout")

    response = client.post(
        f"/analysis/sessions/{session['id']}/confirm", headers=headers
    )

    assert response.status_code == 502
    body = response.json()
    assert body["phase"] == "confirming"
    assert body["foods"] == [{"name": "rice", "category": "carbohydrate"}]
    assert body["error"] == "Nutrition analysis failed"


def test_save_failure_is_retryable(
    container: AppContainer, diary_repository: InMemoryDiaryRepository
) -> None:
    client, headers = _client(container)
    session = _start(client, headers)
    base = f"/analysis/sessions/{session['id']}"
    client.post(f"{base}/confirm", headers=headers)
    diary_repository.failing.add("create")

    response = client.post(f"{base}/save", json={"meal_slot": "lunch"}, headers=headers)

    assert response.status_code == 503
    assert response.json()["session"]["save_error"] == "Failed to save the diary entry"
    assert response.json()["session"]["phase"] == "done"

    diary_repository.failing.clear()
    response = client.post(f"{base}/save", json={"meal_slot": "lunch"}, headers=headers)
    assert response.status_code == 201


def test_invalid_input_is_rejected(container: AppContainer) -> None:
    client, headers = _client(container)

    assert client.get("/diary/calendar/2024/13", headers=headers).status_code == 422
    response = client.post(
        "/analysis/sessions",
        json={"goal": "satiety", "image": "not base64!"},
        headers=headers,
    )
    assert response.status_code == 422
    response = client.post(
        "/analysis/sessions",
        json={"goal": "longevity", "image": JPEG_BASE64},
        headers=headers,
    )
    assert response.status_code == 422
    response = client.patch(f"/diary/{uuid4()}", json={}, headers=headers)
    assert response.status_code == 422


def test_discarded_session_is_gone(container: AppContainer) -> None:
    client, headers = _client(container)
    session = _start(client, headers)
    base = f"/analysis/sessions/{session['id']}"

    assert client.delete(base, headers=headers).status_code == 204
    assert client.get(base, headers=headers).status_code == 404
