from types import SimpleNamespace

import pytest


class FakeOpenAI:
    """Stands in for openai.OpenAI: canned completions and image URLs, no network."""

    def __init__(self, replies=None, image_url="https://img.example/dish.png", fail_images=False):
        self.replies = list(replies or [])
        self.image_url = image_url
        self.fail_images = fail_images
        self.completion_calls = []
        self.image_calls = []
        self.options = []
        self.chat = SimpleNamespace(completions=SimpleNamespace(create=self._create))
        self.images = SimpleNamespace(generate=self._generate)

    def _create(self, **kwargs):
        self.completion_calls.append(kwargs)
        reply = self.replies.pop(0) if self.replies else ""
        if isinstance(reply, Exception):
            raise reply
        message = SimpleNamespace(content=reply)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])

    def _generate(self, **kwargs):
        self.image_calls.append(kwargs)
        if self.fail_images:
            raise TimeoutError("image service timed out")
        return SimpleNamespace(data=[SimpleNamespace(url=self.image_url)])

    def with_options(self, **kwargs):
        self.options.append(kwargs)
        return self


@pytest.fixture
def fake_openai():
    return FakeOpenAI


@pytest.fixture
def settings(tmp_path, monkeypatch):
    from smart_lunch.config import Settings

    monkeypatch.setenv("DATA_DIR", str(tmp_path / "data"))
    monkeypatch.setenv("STORE_BACKEND", "json")
    monkeypatch.setenv("AUTH_MODE", "header")
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    return Settings()
