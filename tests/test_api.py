import inspect

import pytest
from fastapi.testclient import TestClient

from gemini_chat.api.main import create_app
from gemini_chat.api.routers import analytics
from gemini_chat.services.llm_service import TextContent

PNG = b"\x89PNG\r\n\x1a\n" + b"\x00" * 32


@pytest.fixture
def llm(make_llm):
    return make_llm(listed=["gemini-pro-vision", "gemini-2.0-flash"])


@pytest.fixture
def client(settings, llm):
    app = create_app(settings, llm=llm)
    with TestClient(app) as test_client:
        yield test_client


def test_health(client):
    assert client.get("/health").json() == {"status": "ok"}


def test_api_test_reports_discovered_models(client):
    body = client.get("/api/test").json()

    assert body["status"] == "Server is running"
    assert body["apiKeySet"] is True
    assert body["timestamp"].endswith("Z")
    assert body["availableModels"] == {
        "text": "gemini-2.0-flash",
        "vision": "gemini-pro-vision",
        "allModels": ["gemini-pro-vision", "gemini-2.0-flash"],
    }


def test_api_test_without_models(settings, make_llm):
    app = create_app(settings, llm=make_llm(list_error=RuntimeError("API key not valid")))
    with TestClient(app) as client:
        body = client.get("/api/test").json()

    assert body["availableModels"]["text"] == "None detected"
    assert body["availableModels"]["vision"] == "None detected"


def test_chat_success(client, llm):
    llm.replies = [TextContent(text="Hello there!")]

    resp = client.post(
        "/api/chat",
        json={"messages": [{"role": "user", "content": "Hi"}], "max_tokens": 1000},
    )

    assert resp.status_code == 200
    assert resp.json() == {
        "content": [{"type": "text", "text": "Hello there!"}],
        "model": "gemini-2.0-flash",
    }
    assert llm.calls[0][2] == 1000


def test_chat_empty_messages_rejected(client, llm):
    resp = client.post("/api/chat", json={"messages": []})

    assert resp.status_code == 400
    assert resp.json()["details"] == "Invalid messages format"
    assert llm.calls == []


def test_chat_upstream_quota_error(client, llm):
    llm.replies = [RuntimeError("429 RESOURCE_EXHAUSTED. Quota exceeded")]

    resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "Hi"}]})

    assert resp.status_code == 429
    assert resp.json() == {
        "error": "An error occurred while processing your request",
        "details": "API quota exceeded. Please try again later or check your usage limits.",
    }


def test_chat_unknown_model_is_404(client, llm):
    llm.replies = [
        RuntimeError(
            "404 NOT_FOUND. models/gemini-9 is not found for API version v1beta, "
            "or is not supported for generateContent."
        )
    ]

    resp = client.post(
        "/api/chat",
        json={"model": "gemini-9", "messages": [{"role": "user", "content": "Hi"}]},
    )

    assert resp.status_code == 404
    assert resp.json()["details"] == "The requested model was not found. Please check your model name."


def test_chat_without_text_model(settings, make_llm):
    app = create_app(settings, llm=make_llm(listed=[]))
    with TestClient(app) as client:
        resp = client.post("/api/chat", json={"messages": [{"role": "user", "content": "Hi"}]})

    assert resp.status_code == 503
    assert resp.json()["error"] == "No working text model available"


def test_analyze_image_success(client, llm):
    llm.replies = [TextContent(text="A tiny black square.")]

    resp = client.post(
        "/api/analyze-image",
        files={"image": ("pixel.png", PNG, "image/png")},
        data={"prompt": "What is this?"},
    )

    assert resp.status_code == 200
    assert resp.json() == {
        "content": [{"type": "text", "text": "A tiny black square."}],
        "model": "gemini-pro-vision",
    }


def test_analyze_image_rejects_non_images(client, llm):
    resp = client.post(
        "/api/analyze-image",
        files={"image": ("notes.txt", b"hello", "text/plain")},
    )

    assert resp.status_code == 415
    body = resp.json()
    assert body["details"] == "Only image files are allowed!"
    assert body["troubleshooting"]
    assert llm.calls == []


def test_analyze_image_rejects_large_files(settings, llm):
    settings.max_upload_bytes = 16
    app = create_app(settings, llm=llm)
    with TestClient(app) as client:
        resp = client.post("/api/analyze-image", files={"image": ("big.png", PNG, "image/png")})

    assert resp.status_code == 413
    assert resp.json()["error"] == "File too large"
    assert llm.calls == []


def test_analyze_image_requires_file(client):
    resp = client.post("/api/analyze-image", data={"prompt": "hi"})

    assert resp.status_code == 400
    assert resp.json()["details"] == "No image uploaded"


def test_diagnostics(client):
    body = client.get("/api/diagnostics").json()

    assert set(body) == {"server", "api"}
    assert body["server"]["uptime"] >= 0
    assert body["api"]["key_configured"] is True
    assert body["api"]["models"]["vision"] == "gemini-pro-vision"
    assert {m["name"] for m in body["api"]["discovered"]} == {"gemini-pro-vision", "gemini-2.0-flash"}


def test_analytics_flow(client):
    client.post("/api/analytics/user-message", json={"text": "hello"})
    client.post("/api/analytics/image-upload")
    body = client.post("/api/analytics/ai-response", json={"text": "hi there"}).json()

    stats = body["stats"]
    assert stats["totalMessages"] == 2
    assert stats["imageCounts"] == 1
    assert len(stats["responseTimeHistory"]) == 1
    assert body["summary"]["messageCount"] == 2

    history = client.get("/api/analytics/history").json()
    assert len(history) == 1
    assert history[0]["total"] == 2

    charts = client.get("/api/analytics/charts", params={"time_filter": "today"}).json()
    assert charts["messageRatio"] == {"user": 1, "ai": 1}

    export = client.get("/api/analytics/export")
    assert export.status_code == 200
    assert export.headers["content-type"].startswith("text/csv")
    assert "chat_analytics_" in export.headers["content-disposition"]
    assert export.text.startswith("Summary Statistics\r\nTotal Messages,2\r\n")

    reset = client.post("/api/analytics/reset").json()
    assert reset["stats"]["totalMessages"] == 0


def test_analytics_rejects_unknown_time_filter(client):
    assert client.get("/api/analytics/charts", params={"time_filter": "year"}).status_code == 422


def test_theme_preference(client):
    assert client.get("/api/preferences/theme").json() == {"theme": None}
    assert client.put("/api/preferences/theme", json={"theme": "dark"}).json() == {"theme": "dark"}
    assert client.get("/api/preferences/theme").json() == {"theme": "dark"}
    assert client.put("/api/preferences/theme", json={"theme": "sepia"}).status_code == 422


def test_store_backed_routes_run_in_threadpool():
    routes = analytics.router.routes + analytics.preferences_router.routes
    assert routes
    assert not [route.path for route in routes if inspect.iscoroutinefunction(route.endpoint)]
