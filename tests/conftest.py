"""
Shared pytest fixtures: a fake Gemini client, tiny image files and a dispatcher
wired to temporary directories.
"""

import base64

import pytest

from nanobanana_utils.configStore import ServerSettings
from nanobanana_utils.toolDispatcher import createDispatcher

PNG_BYTES = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR\x00\x00\x00\x01\x00\x00\x00\x01\x08\x06\x00\x00\x00\x1f\x15\xc4\x89"


class FakeGeminiClient:
    """Stands in for GeminiClient; outcomes map a model id to a response dict or an exception."""

    def __init__(self, outcomes=None, default=None):
        self.outcomes = dict(outcomes or {})
        self.default = default
        self.calls = []

    def generateContent(self, model, contents):
        self.calls.append((model, contents))
        outcome = self.outcomes.get(model, self.default)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome

    @property
    def models(self):
        return [model for model, _ in self.calls]


def build_image_response(*payloads, text=None):
    parts = []
    if text is not None:
        parts.append({"text": text})
    for payload in payloads:
        parts.append({"inlineData": {"mimeType": "image/png", "data": base64.b64encode(payload).decode()}})
    return {"candidates": [{"content": {"parts": parts}}]}


@pytest.fixture
def png_bytes():
    return PNG_BYTES


@pytest.fixture
def image_response():
    return build_image_response


@pytest.fixture
def fake_client_factory():
    return FakeGeminiClient


@pytest.fixture
def fake_client():
    return FakeGeminiClient(default=build_image_response(PNG_BYTES))


@pytest.fixture
def png_file(tmp_path):
    path = tmp_path / "input.png"
    path.write_bytes(PNG_BYTES)
    return path


@pytest.fixture
def images_dir(tmp_path):
    return tmp_path / "generated_imgs"


@pytest.fixture
def settings(tmp_path):
    return ServerSettings(config_path=str(tmp_path / ".nano-banana-config.json"))


@pytest.fixture
def make_dispatcher(settings, images_dir, fake_client):
    """Build a dispatcher whose Gemini client is `client` (defaults to fake_client)."""

    def _make(environ=None, client=None):
        client = client or fake_client
        return createDispatcher(
            settings=settings,
            environ=environ if environ is not None else {},
            clientFactory=lambda apiKey: client,
            imagesDirectory=lambda: str(images_dir),
        )

    return _make
