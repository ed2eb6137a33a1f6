"""HTTP surface smoke tests."""

from __future__ import annotations

from typing import Iterator

import pytest
from fastapi.testclient import TestClient

from mirror_app.app import DailyMirrorService
from mirror_app.config import MirrorConfig
from models.context import WeatherContext
from models.taxonomy import WeatherCondition
from server.api import create_app
from tools.data_source import InMemoryDataSource

WARDROBE = [
    {"item_id": "white-shirt", "category": "top", "colors": ["white"], "tags": ["business"]},
    {"item_id": "navy-trousers", "category": "bottom", "colors": ["navy"], "tags": ["business"]},
    {"item_id": "brown-shoes", "category": "shoes", "colors": ["brown"]},
]


@pytest.fixture
def client() -> Iterator[TestClient]:
    data_source = InMemoryDataSource(
        wardrobe={"user-1": WARDROBE},
        weather=WeatherContext(temperature_c=22.0, condition=WeatherCondition.SUNNY, location="Lisbon"),
    )
    service = DailyMirrorService.from_data_source(
        data_source, MirrorConfig(max_retries=0, per_call_timeout_seconds=None, soft_deadline_seconds=2.0)
    )
    with TestClient(create_app(service)) as test_client:
        yield test_client
    service.close()


def test_healthcheck(client: TestClient) -> None:
    response = client.get("/healthz")
    assert response.status_code == 200
    assert response.json()["status"] == "ok"


def test_recommendations_endpoint(client: TestClient) -> None:
    response = client.post("/recommendations", json={"user_id": "user-1", "date": "2025-06-02", "location": "Lisbon"})

    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "ok"
    assert len(body["recommendations"]) == 1
    assert set(body["recommendations"][0]["item_ids"]) == {"white-shirt", "navy-trousers", "brown-shoes"}
    assert body["degradation"] == {"weather": "LIVE", "calendar": "LIVE", "profile": "LIVE", "wardrobe": "LIVE"}


def test_recommendations_endpoint_rejects_bad_input(client: TestClient) -> None:
    assert client.post("/recommendations", json={"user_id": "user-1", "date": "2025-13-40"}).status_code == 422
    assert client.post("/recommendations", json={"user_id": " ", "date": "2025-06-02"}).status_code == 422


def test_feedback_endpoint(client: TestClient) -> None:
    response = client.post(
        "/feedback",
        json={
            "user_id": "user-1",
            "item_ids": ["white-shirt", "navy-trousers", "brown-shoes"],
            "rating": 5,
            "emotional_response": {"primary": "powerful", "intensity": 7},
        },
    )

    assert response.status_code == 200
    assert response.json() == {
        "status": "ok",
        "persisted": True,
        "persistence_level": "LIVE",
        "feedback_cycle": 1,
    }


def test_feedback_endpoint_rejects_out_of_range_rating(client: TestClient) -> None:
    response = client.post("/feedback", json={"user_id": "user-1", "item_ids": ["white-shirt"], "rating": 9})
    assert response.status_code == 422


def test_circuits_endpoint(client: TestClient) -> None:
    client.post("/recommendations", json={"user_id": "user-1", "date": "2025-06-02"})
    circuits = client.get("/circuits").json()["circuits"]
    assert circuits["weather"]["state"] == "CLOSED"


def test_favorites_endpoints(client: TestClient) -> None:
    payload = {"user_id": "user-1", "item_ids": ["white-shirt", "brown-shoes"], "confidence_note": "Ready.", "score": 0.7}

    saved = client.post("/favorites", json=payload)
    listed = client.get("/favorites/user-1")

    assert saved.status_code == 200
    assert saved.json()["favorite"]["item_ids"] == ["white-shirt", "brown-shoes"]
    assert listed.json()["favorites"] == [saved.json()["favorite"]]
    assert client.post("/favorites", json={**payload, "score": 3}).status_code == 422


def test_share_endpoint(client: TestClient) -> None:
    response = client.post("/share", json={"user_id": "user-1", "item_ids": ["navy-trousers"], "score": 0.9})

    assert response.status_code == 200
    assert response.json()["description"] == "Feeling confident in my navy trousers! Confidence level: High."
    assert client.post("/share", json={"user_id": "user-1", "item_ids": ["unknown"]}).status_code == 422
