import pytest

from chat_relay.domain.models import ChatChoice, ChatMessage, ChatResult, ChatUsage


class SettingsStub:
    deepseek_api_key = "sk-test"
    deepseek_base_url = "https://api.deepseek.com/v1"
    default_model = "chat"
    http_timeout = 1.0
    strict_roles = False


class FakeProvider:
    """记录收到的 ChatRequest，按预设返回结果或抛错。"""

    name = "deepseek"

    def __init__(self, content="hi", error=None):
        self.content = content
        self.error = error
        self.requests = []

    async def chat(self, req):
        self.requests.append(req)
        if self.error is not None:
            raise self.error
        return ChatResult(
            provider=self.name,
            model=req.model,
            choices=[ChatChoice(index=0, message=ChatMessage(role="assistant", content=self.content))],
            usage=ChatUsage(prompt_tokens=3, completion_tokens=2, total_tokens=5),
        )


@pytest.fixture
def stub_settings():
    return SettingsStub()


@pytest.fixture
def make_provider():
    return FakeProvider
