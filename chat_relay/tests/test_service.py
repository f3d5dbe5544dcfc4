import asyncio

import pytest

from chat_relay.api.service import ChatRelay
from chat_relay.domain.exceptions import ApiError, ConfigurationError, ValidationError
from chat_relay.domain.models import KNOWN_ROLES, ChatMessage


def test_send_message_appends_current_message_after_history(stub_settings, make_provider):
    provider = make_provider()
    relay = ChatRelay(stub_settings, provider)
    history = [
        {"role": "system", "content": "be brief"},
        {"role": "user", "content": "hello"},
        {"role": "assistant", "content": "hi there"},
    ]

    asyncio.run(relay.send_message("how are you?", history))

    req = provider.requests[0]
    assert [m.to_payload() for m in req.messages] == history + [{"role": "user", "content": "how are you?"}]
    assert req.model == "chat"


def test_send_message_drops_extra_history_fields(stub_settings, make_provider):
    provider = make_provider()
    relay = ChatRelay(stub_settings, provider)
    history = [{"role": "user", "content": "a", "id": "m1", "timestamp": "2024-01-01"}]

    asyncio.run(relay.send_message("b", history))

    assert provider.requests[0].messages[0].to_payload() == {"role": "user", "content": "a"}


def test_send_message_accepts_objects_in_history(stub_settings, make_provider):
    provider = make_provider()
    relay = ChatRelay(stub_settings, provider)

    asyncio.run(relay.send_message("b", [ChatMessage(role="assistant", content="a")]))

    assert provider.requests[0].messages[0] == ChatMessage(role="assistant", content="a")


def test_send_message_default_history_is_empty(stub_settings, make_provider):
    provider = make_provider()
    relay = ChatRelay(stub_settings, provider)

    asyncio.run(relay.send_message("only"))

    assert [m.to_payload() for m in provider.requests[0].messages] == [{"role": "user", "content": "only"}]


def test_send_message_maps_result(stub_settings, make_provider):
    relay = ChatRelay(stub_settings, make_provider(content="hi"))

    reply = asyncio.run(relay.send_message("hello"))

    assert reply.message == "hi"
    assert reply.usage.to_camel() == {"promptTokens": 3, "completionTokens": 2, "totalTokens": 5}
    assert reply.usage.to_dict() == {"prompt_tokens": 3, "completion_tokens": 2, "total_tokens": 5}


@pytest.mark.parametrize("message", ["", "   ", None, 42])
def test_send_message_rejects_empty_message_without_network(stub_settings, make_provider, message):
    provider = make_provider()
    relay = ChatRelay(stub_settings, provider)

    with pytest.raises(ValidationError) as exc:
        asyncio.run(relay.send_message(message))

    assert exc.value.code == "INVALID_ARGUMENT"
    assert exc.value.http_status == 400
    assert provider.requests == []


def test_send_message_requires_api_key_without_network(stub_settings, make_provider):
    stub_settings.deepseek_api_key = None
    provider = make_provider()
    relay = ChatRelay(stub_settings, provider)

    with pytest.raises(ConfigurationError) as exc:
        asyncio.run(relay.send_message("hello"))

    assert exc.value.code == "MISSING_API_KEY"
    assert provider.requests == []


def test_send_message_propagates_upstream_failure(stub_settings, make_provider):
    error = ApiError(code="API_ERROR", message="rate limited", upstream_status=500)
    relay = ChatRelay(stub_settings, make_provider(error=error))

    with pytest.raises(ApiError) as exc:
        asyncio.run(relay.send_message("hello"))

    assert "rate limited" in exc.value.message


def test_send_message_passes_unknown_roles_by_default(stub_settings, make_provider):
    provider = make_provider()
    relay = ChatRelay(stub_settings, provider)

    asyncio.run(relay.send_message("b", [{"role": "narrator", "content": "a"}]))

    assert provider.requests[0].messages[0].role == "narrator"


def test_send_message_strict_roles(stub_settings, make_provider):
    stub_settings.strict_roles = True
    provider = make_provider()
    relay = ChatRelay(stub_settings, provider)

    with pytest.raises(ValidationError):
        asyncio.run(relay.send_message("b", [{"role": "narrator", "content": "a"}]))
    with pytest.raises(ValidationError):
        asyncio.run(relay.send_message("b", [{"role": "user", "content": ""}]))
    assert provider.requests == []

    asyncio.run(relay.send_message("b", [{"role": "system", "content": "a"}]))
    assert len(provider.requests) == 1


def test_known_roles_follow_role_type():
    assert set(KNOWN_ROLES) == {"user", "assistant", "system"}


@pytest.mark.parametrize("history", ["not a list", {"role": "user", "content": "a"}, ["plain string"]])
def test_send_message_rejects_malformed_history(stub_settings, make_provider, history):
    provider = make_provider()
    relay = ChatRelay(stub_settings, provider)

    with pytest.raises(ValidationError):
        asyncio.run(relay.send_message("b", history))
    assert provider.requests == []


def test_clear_conversation_always_succeeds(stub_settings, make_provider):
    relay = ChatRelay(stub_settings, make_provider())
    assert relay.clear_conversation() == {"success": True}
    asyncio.run(relay.send_message("hello"))
    assert relay.clear_conversation() == {"success": True}
