import httpx
import pytest
from fastapi.testclient import TestClient

from chat_gateway.adapter_remote import SIMULATED_RESPONSE
from chat_gateway.config import Settings
from chat_gateway.main import create_app


def _daemon_handler(request: httpx.Request) -> httpx.Response:
    path = request.url.path
    if path == "/api/version":
        return httpx.Response(200, json={"version": "0.5.0"})
    if path == "/api/tags":
        return httpx.Response(200, json={"models": [{"name": "llama3:8b"}]})
    if path == "/api/generate":
        return httpx.Response(200, json={"response": "from the daemon"})
    return httpx.Response(404)


def _daemon_down(request: httpx.Request) -> httpx.Response:
    raise httpx.ConnectError("Connection refused", request=request)


@pytest.fixture
def settings(models_dir, workspace_dir):
    return Settings(
        models_dir=str(models_dir),
        workspace_dir=str(workspace_dir),
        gemini_api_key=None,
        simulated_delay_seconds=0,
        process_timeout_seconds=10,
    )


@pytest.fixture
def client(settings, make_runner):
    runner = make_runner('echo "local: $(cat "$PROMPT_FILE")"')
    app = create_app(settings, transport=httpx.MockTransport(_daemon_handler), executable=runner.path)
    with TestClient(app) as test_client:
        yield test_client


def test_unified_chat_remote_without_key(client):
    resp = client.post("/api/chat", json={"backendKind": "RemoteAPI", "modelName": "", "prompt": "hi"})
    assert resp.status_code == 200
    assert resp.json() == {"text": SIMULATED_RESPONSE}


def test_unified_chat_process_model(client, workspace_dir):
    resp = client.post("/api/chat", json={"backendKind": "Process", "modelName": "tiny.gguf", "prompt": "abc"})
    assert resp.status_code == 200
    assert resp.json() == {"text": "local: abc\n"}
    assert list(workspace_dir.iterdir()) == []


def test_unified_chat_accepts_route_aliases(client):
    resp = client.post("/api/chat", json={"backendKind": "ollama", "modelName": "llama3:8b", "prompt": "x"})
    assert resp.status_code == 200
    assert resp.json() == {"text": "from the daemon"}


def test_unified_chat_rejects_unknown_backend(client):
    resp = client.post("/api/chat", json={"backendKind": "carrier-pigeon", "modelName": "x", "prompt": "x"})
    assert resp.status_code == 422


def test_unknown_gguf_model_is_404(client):
    resp = client.post("/api/gguf/nope.gguf", json={"message": "hello"})
    assert resp.status_code == 404
    body = resp.json()
    assert body["errorKind"] == "ModelNotFound"
    assert "nope.gguf" in body["message"]
    assert body["hint"]


def test_legacy_routes_use_response_field(client):
    assert client.post("/api/gguf/tiny.gguf", json={"message": "q"}).json() == {"response": "local: q\n"}
    assert client.post("/api/ollama/llama3:8b", json={"message": "q"}).json() == {"response": "from the daemon"}
    assert client.post("/api/gemini", json={"message": "q"}).json() == {"response": SIMULATED_RESPONSE}


def test_empty_message_is_rejected(client):
    assert client.post("/api/gemini", json={"message": ""}).status_code == 422


def test_model_listings(client, models_dir):
    (models_dir / "added.GGUF").write_bytes(b"x")

    local = client.get("/api/gguf/models").json()["models"]
    assert [m["name"] for m in local] == ["added.GGUF", "tiny.gguf"]
    assert local[0]["backendKind"] == "Process"

    daemon = client.get("/api/ollama/models").json()["models"]
    assert daemon == [{"name": "llama3:8b", "backendKind": "Daemon", "locator": "llama3:8b"}]

    merged = client.get("/api/models").json()["models"]
    assert {m["name"] for m in merged} == {"added.GGUF", "tiny.gguf", "llama3:8b"}
    assert [m["name"] for m in client.get("/api/models", params={"kind": "Daemon"}).json()["models"]] == [
        "llama3:8b"
    ]
    assert client.get("/api/models", params={"kind": "fax"}).status_code == 422


def test_test_assistant(client):
    resp = client.post("/api/test", json={"message": "What is your name?"})
    assert resp.json() == {"response": "My name is TestBot, a simulated AI assistant."}


def test_health_reports_components(client, settings):
    body = client.get("/health").json()
    assert body["status"] == "healthy"
    assert body["runner"]["available"] is True
    assert body["catalog"]["local"] == 1
    assert body["remote"]["configured"] is False
    assert body["models_dir"] == settings.resolved_models_dir


def test_daemon_down_maps_to_503(settings, make_runner):
    app = create_app(settings, transport=httpx.MockTransport(_daemon_down), executable=make_runner("true").path)
    with TestClient(app) as test_client:
        chat = test_client.post("/api/ollama/llama3:8b", json={"message": "hi"})
        assert chat.status_code == 503
        assert chat.json()["errorKind"] == "BackendUnavailable"

        listing = test_client.get("/api/ollama/models")
        assert listing.status_code == 503
        assert "ollama serve" in listing.json()["hint"]

        assert test_client.get("/health").json()["status"] == "degraded"
