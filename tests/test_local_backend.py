import io
import json
from urllib import error

import pytest

from swarmverse.errors import LocalBackendError, NetworkError
from swarmverse.oracle.local import _perform_chat_request, call_local_model


@pytest.mark.asyncio
async def test_call_local_model_builds_payload(monkeypatch):
    captured: dict[str, object] = {}

    def fake_request(payload, base_url, timeout):
        captured["payload"] = payload
        captured["base_url"] = base_url
        captured["timeout"] = timeout
        return '{"stratagem_name":"x"}'

    monkeypatch.setattr("swarmverse.oracle.local._perform_chat_request", fake_request)

    result = await call_local_model(
        system_prompt="System context",
        user_prompt="User payload",
        llm_model="qwen3:8b",
        base_url="http://localhost:11434/",
        timeout=30,
    )

    assert result == '{"stratagem_name":"x"}'
    payload = captured["payload"]
    assert payload["model"] == "qwen3:8b"
    assert payload["messages"][0] == {"role": "system", "content": "System context"}
    assert payload["messages"][1] == {"role": "user", "content": "User payload"}
    assert payload["format"] == "json"
    assert payload["stream"] is False
    assert payload["temperature"] == 0.9
    assert captured["base_url"] == "http://localhost:11434"
    assert captured["timeout"] == 30


@pytest.mark.asyncio
async def test_call_local_model_falls_back_to_env_base_url(monkeypatch):
    captured: dict[str, object] = {}

    def fake_request(payload, base_url, timeout):
        captured["base_url"] = base_url
        return "{}"

    monkeypatch.setenv("OLLAMA_BASE_URL", "http://gpu-box:11434")
    monkeypatch.setattr("swarmverse.oracle.local._perform_chat_request", fake_request)

    await call_local_model(system_prompt="s", user_prompt="u", llm_model="mistral:7b")

    assert captured["base_url"] == "http://gpu-box:11434"


class _FakeResponse:
    def __init__(self, body: str):
        self._body = body.encode("utf-8")

    def read(self):
        return self._body

    def __enter__(self):
        return self

    def __exit__(self, *exc_info):
        return False


def test_perform_chat_request_returns_assistant_content(monkeypatch):
    seen = {}

    def fake_urlopen(req, timeout):
        seen["url"] = req.full_url
        seen["body"] = json.loads(req.data.decode("utf-8"))
        return _FakeResponse(json.dumps({"choices": [{"message": {"content": '{"a": 1}'}}]}))

    monkeypatch.setattr("swarmverse.oracle.local.request.urlopen", fake_urlopen)

    content = _perform_chat_request({"model": "qwen3:8b"}, "http://localhost:11434", 5)

    assert content == '{"a": 1}'
    assert seen["url"] == "http://localhost:11434/v1/chat/completions"
    assert seen["body"] == {"model": "qwen3:8b"}


def test_perform_chat_request_surfaces_status_and_body(monkeypatch):
    def fake_urlopen(req, timeout):
        raise error.HTTPError(
            req.full_url, 404, "Not Found", {}, io.BytesIO(b'model "qwen3:8b" not found')
        )

    monkeypatch.setattr("swarmverse.oracle.local.request.urlopen", fake_urlopen)

    with pytest.raises(LocalBackendError) as excinfo:
        _perform_chat_request({}, "http://localhost:11434", 5)

    assert 'status 404: model "qwen3:8b" not found' in str(excinfo.value)


def test_perform_chat_request_connection_refused_is_network_error(monkeypatch):
    def fake_urlopen(req, timeout):
        raise error.URLError("Connection refused")

    monkeypatch.setattr("swarmverse.oracle.local.request.urlopen", fake_urlopen)

    with pytest.raises(NetworkError) as excinfo:
        _perform_chat_request({}, "http://localhost:11434", 5)

    assert "Is it running?" in str(excinfo.value)


def test_perform_chat_request_rejects_response_without_content(monkeypatch):
    monkeypatch.setattr(
        "swarmverse.oracle.local.request.urlopen",
        lambda req, timeout: _FakeResponse('{"choices": []}'),
    )

    with pytest.raises(LocalBackendError):
        _perform_chat_request({}, "http://localhost:11434", 5)
