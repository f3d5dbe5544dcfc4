from fastapi.testclient import TestClient

from chat_relay.api.rest_app import create_rest_app
from chat_relay.api.service import ChatRelay
from chat_relay.domain.exceptions import ApiError, UpstreamTimeoutError


def make_client(settings, provider):
    return TestClient(create_rest_app(relay=ChatRelay(settings, provider)))


def test_post_returns_reply_with_snake_case_usage(stub_settings, make_provider):
    provider = make_provider(content="hi")
    client = make_client(stub_settings, provider)

    resp = client.post(
        "/",
        json={
            "message": "hello",
            "conversationHistory": [{"role": "assistant", "content": "earlier"}],
        },
    )

    assert resp.status_code == 200
    assert resp.json() == {
        "success": True,
        "message": "hi",
        "usage": {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5},
    }
    assert resp.headers["access-control-allow-origin"] == "*"
    assert [m.role for m in provider.requests[0].messages] == ["assistant", "user"]


def test_api_chat_path_is_an_alias(stub_settings, make_provider):
    client = make_client(stub_settings, make_provider())
    resp = client.post("/api/chat", json={"message": "hello"})
    assert resp.status_code == 200
    assert resp.json()["success"] is True


def test_empty_message_is_400(stub_settings, make_provider):
    provider = make_provider()
    client = make_client(stub_settings, provider)

    for body in ({"message": ""}, {"message": "  "}, {}):
        resp = client.post("/", json=body)
        assert resp.status_code == 400
        assert resp.json()["success"] is False
    assert provider.requests == []


def test_invalid_body_is_400(stub_settings, make_provider):
    client = make_client(stub_settings, make_provider())

    resp = client.post("/", content=b"not json", headers={"Content-Type": "application/json"})
    assert resp.status_code == 400

    resp = client.post("/", json={"message": "hi", "conversationHistory": "nope"})
    assert resp.status_code == 400


def test_get_is_405(stub_settings, make_provider):
    client = make_client(stub_settings, make_provider())
    resp = client.get("/")
    assert resp.status_code == 405
    assert resp.json()["success"] is False
    assert client.put("/api/chat").status_code == 405


def test_options_on_any_path_is_200_without_body(stub_settings, make_provider):
    client = make_client(stub_settings, make_provider())
    for path in ("/", "/api/chat", "/anything/else"):
        resp = client.options(path)
        assert resp.status_code == 200
        assert resp.content == b""
        assert resp.headers["access-control-allow-origin"] == "*"
        assert resp.headers["access-control-allow-credentials"] == "true"
        assert "POST" in resp.headers["access-control-allow-methods"]
        assert "Content-Type" in resp.headers["access-control-allow-headers"]


def test_upstream_failure_is_500_with_details(stub_settings, make_provider):
    error = ApiError(code="API_ERROR", message="rate limited", upstream_status=429)
    client = make_client(stub_settings, make_provider(error=error))

    resp = client.post("/", json={"message": "hello"})

    assert resp.status_code == 500
    body = resp.json()
    assert body["success"] is False
    assert body["error"]
    assert body["details"] == "rate limited"
    assert resp.headers["access-control-allow-origin"] == "*"


def test_timeout_is_500(stub_settings, make_provider):
    error = UpstreamTimeoutError(code="TIMEOUT", message="timed out")
    client = make_client(stub_settings, make_provider(error=error))
    resp = client.post("/", json={"message": "hello"})
    assert resp.status_code == 500
    assert resp.json()["details"] == "timed out"


def test_missing_api_key_is_500(stub_settings, make_provider):
    stub_settings.deepseek_api_key = None
    provider = make_provider()
    client = make_client(stub_settings, provider)

    resp = client.post("/", json={"message": "hello"})

    assert resp.status_code == 500
    assert "DEEPSEEK_API_KEY" in resp.json()["details"]
    assert provider.requests == []


def test_unexpected_error_is_500_with_cors(stub_settings, make_provider):
    client = make_client(stub_settings, make_provider(error=RuntimeError("boom")))

    resp = client.post("/", json={"message": "hello"})

    assert resp.status_code == 500
    assert resp.json()["success"] is False
    assert resp.json()["details"] == "boom"
    assert resp.headers["access-control-allow-origin"] == "*"


def test_unknown_default_model_is_500(stub_settings):
    stub_settings.default_model = "reasoner"
    client = TestClient(create_rest_app(relay=ChatRelay(stub_settings)))

    resp = client.post("/", json={"message": "hello"})

    assert resp.status_code == 500
    assert "reasoner" in resp.json()["details"]
    assert resp.headers["access-control-allow-origin"] == "*"
