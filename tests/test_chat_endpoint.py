from __future__ import annotations

import pytest
from fastapi.testclient import TestClient

from app.config import Settings, get_settings
from app.main import create_app
from app.services.chat_service import build_chat_service


@pytest.fixture
def client(settings: Settings) -> TestClient:
    app = create_app(settings=settings, chat_service=build_chat_service(settings))
    app.dependency_overrides[get_settings] = lambda: settings
    with TestClient(app) as test_client:
        yield test_client


def test_health(client: TestClient) -> None:
    response = client.get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_chat_product_search(client: TestClient) -> None:
    response = client.post(
        "/api/chatbot/chat",
        json={"message": "I need a gaming laptop under 70000", "sessionId": "web-1"},
    )

    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["success"] is True
    assert payload["sessionId"] == "web-1"
    assert payload["intent"] == "PRODUCT_SEARCH"
    assert payload["source"] == "rule-based"
    assert payload["entities"]["category"] == "laptop"
    assert payload["entities"]["budget"] == 70000
    assert payload["response"]["message"]
    assert payload["response"]["quickReplies"]
    assert payload["traceId"]


def test_chat_keeps_context_per_session(client: TestClient) -> None:
    client.post("/api/chatbot/chat", json={"message": "I need a laptop under 70000", "sessionId": "web-1"})
    response = client.post("/api/chatbot/chat", json={"message": "Something from Dell", "sessionId": "web-1"})
    other = client.post("/api/chatbot/chat", json={"message": "Hello", "sessionId": "web-2"})

    assert response.json()["context"]["category"] == "laptop"
    assert response.json()["context"]["brand"] == "Dell"
    assert "category" not in other.json()["context"]


def test_empty_message_is_bad_request(client: TestClient) -> None:
    response = client.post("/api/chatbot/chat", json={"message": "   ", "sessionId": "web-1"})

    assert response.status_code == 400
    payload = response.json()
    assert payload["success"] is False
    assert payload["error"]["reason"] == "empty_message"


def test_missing_session_id_is_rejected(client: TestClient) -> None:
    response = client.post("/api/chatbot/chat", json={"message": "Hello"})

    assert response.status_code == 422
    assert response.json()["error"]["code"] == "BAD_REQUEST"


def test_quick_replies(client: TestClient) -> None:
    payload = client.get("/api/chatbot/quick-replies").json()

    assert payload["success"] is True
    assert "PRODUCT_SEARCH" in payload["quickReplies"]
    assert "default" in payload["quickReplies"]


def test_faqs(client: TestClient) -> None:
    payload = client.get("/api/chatbot/faqs").json()

    assert payload["success"] is True
    assert {"category", "question", "answer"} <= set(payload["faqs"][0])


def test_provider_status_lists_disabled_providers(client: TestClient) -> None:
    payload = client.get("/api/chatbot/provider-status").json()

    assert payload["success"] is True
    providers = {item["name"]: item for item in payload["providers"]}
    assert set(providers) == {"sambanova", "openai"}
    assert providers["sambanova"]["status"] == "disabled"
    assert providers["sambanova"]["breakerState"] == "closed"


def test_single_provider_status(client: TestClient) -> None:
    response = client.get("/api/chatbot/provider-status/openai")

    assert response.status_code == 200
    payload = response.json()
    assert payload["success"] is True
    assert payload["provider"]["name"] == "openai"
    assert payload["provider"]["status"] == "disabled"


def test_unknown_provider_is_not_found(client: TestClient) -> None:
    response = client.get("/api/chatbot/provider-status/dialogflow")

    assert response.status_code == 404
    assert response.json()["error"]["code"] == "NOT_FOUND"


def test_compare_products(client: TestClient) -> None:
    response = client.post(
        "/api/chatbot/compare-products",
        json={"productIds": ["PHN-001", "PHN-004"], "preferences": {"budget": 30000, "budgetType": "max"}},
    )

    assert response.status_code == 200, response.text
    payload = response.json()
    assert payload["success"] is True
    assert payload["bestMatch"] == "PHN-001"
    assert payload["missingIds"] == []
    assert len(payload["products"]) == 2


def test_compare_products_requires_ids(client: TestClient) -> None:
    response = client.post("/api/chatbot/compare-products", json={"productIds": []})

    assert response.status_code == 422


def test_recommendations(client: TestClient) -> None:
    response = client.post(
        "/api/chatbot/recommendations",
        json={"query": "wireless headphones", "limit": 1},
    )

    assert response.status_code == 200, response.text
    assert response.json()["success"] is True
    products = response.json()["products"]
    assert len(products) == 1
    assert products[0]["category"] == "headphones"


def test_delete_session(client: TestClient) -> None:
    client.post("/api/chatbot/chat", json={"message": "Hello", "sessionId": "web-1"})

    assert client.delete("/api/chatbot/sessions/web-1").status_code == 204
    assert client.delete("/api/chatbot/sessions/web-1").status_code == 404


def test_metrics_count_turns(client: TestClient) -> None:
    client.post("/api/chatbot/chat", json={"message": "Hello", "sessionId": "web-1"})

    payload = client.get("/api/chatbot/metrics").json()

    assert payload["success"] is True
    assert payload["metrics"]["turns_total"] == 1
    assert payload["metrics"]["intents"] == {"GREETING": 1}


def test_smoke_route(client: TestClient) -> None:
    assert client.get("/api/chatbot/test").json()["success"] is True
