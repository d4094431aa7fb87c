import pytest
from fastapi.testclient import TestClient

from iger import auth, chat, config, geocoding
from main import app


class FakeResponse:
    def __init__(self, status_code=200, payload=None, text=None):
        self.status_code = status_code
        self._payload = payload
        self.text = text if text is not None else str(payload)

    @property
    def ok(self):
        return 200 <= self.status_code < 400

    def json(self):
        if isinstance(self._payload, Exception):
            raise self._payload
        return self._payload


@pytest.fixture
def client():
    return TestClient(app)


@pytest.fixture(autouse=True)
def isolated_state(monkeypatch):
    monkeypatch.setattr(config, "GEMINI_API_KEY", None)
    monkeypatch.setattr(config, "FISH_CLASSIFIER_URL", "https://classifier.test/predict")
    monkeypatch.setattr(config, "NOMINATIM_URL", "https://nominatim.test")
    monkeypatch.setattr(config, "APPWRITE_ENDPOINT", "https://appwrite.test/v1")
    monkeypatch.setattr(config, "APPWRITE_PROJECT_ID", "iger-test")
    monkeypatch.setattr(chat, "client", None)
    geocoding.reverse_cache.clear()
    auth.session_cache.clear()
    yield
    geocoding.reverse_cache.clear()
    auth.session_cache.clear()
