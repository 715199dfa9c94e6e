"""
Shared fixtures: fake AI provider, test settings and app clients.
"""

import json
from typing import Any, Dict, Optional

import httpx
import pytest
from fastapi.testclient import TestClient

from consult_scribe.config import Environment, Settings
from consult_scribe.main import create_app
from consult_scribe.services.llm_service import GenerativeProvider
from consult_scribe.services.stt_service import TranscriptionService
from consult_scribe.services.webhook_service import WebhookService

TOKEN = "abc123"

BASIC_RESPONSE: Dict[str, Any] = {
    "patientId": "P-1001",
    "consultationDate": "2024-05-01",
    "transcript": [
        {"speaker": "Doctor", "line": "Good morning, what brings you in today?", "timestamp": "00:00:01"},
        {"speaker": "Patient", "line": "I've had headaches for about two weeks.", "timestamp": "00:00:05"},
        {"speaker": "Doctor", "line": "Are they worse in the morning?", "timestamp": "00:00:11"},
    ],
}

ENHANCED_RESPONSE: Dict[str, Any] = {
    **BASIC_RESPONSE,
    "mentalStatusExam": {
        "appearance": "Well groomed, casually dressed",
        "behavior": "Good eye contact, cooperative",
        "affect": "Mildly anxious, congruent with content",
        "speech": "Normal rate and volume",
    },
    "clinicalObservations": [
        {"timestamp": "00:00:05", "observation": "Patient rubs temples while describing pain"},
    ],
}


class FakeProvider(GenerativeProvider):
    """Records calls and answers with a canned response or error."""

    name = "Fake"
    model = "fake-model"

    def __init__(self, response: Optional[str] = None, error: Optional[Exception] = None):
        self.response = json.dumps(BASIC_RESPONSE) if response is None else response
        self.error = error
        self.calls = []

    async def generate(self, prompt, schema, media=None, temperature=None):
        self.calls.append({"prompt": prompt, "schema": schema, "media": media, "temperature": temperature})
        if self.error is not None:
            raise self.error
        return self.response


def make_settings(**overrides) -> Settings:
    values = {
        "environment": Environment.PRODUCTION,
        "ingest_enabled": True,
        "ingest_token": TOKEN,
        "gemini_api_key": None,
        "gemini_demo_api_key": None,
        "openai_api_key": None,
        "scribe_webhook": None,
        "log_level": "WARNING",
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def fake_provider():
    return FakeProvider()


@pytest.fixture
def provider_factory():
    return FakeProvider


@pytest.fixture
def settings_factory():
    return make_settings


@pytest.fixture
def webhook_calls():
    return []


@pytest.fixture
def client_factory(webhook_calls):
    """Builds a TestClient around create_app with fakes injected."""

    def _factory(provider=None, webhook_handler=None, **setting_overrides):
        settings = make_settings(**setting_overrides)
        provider = provider or FakeProvider()

        def default_handler(request: httpx.Request) -> httpx.Response:
            webhook_calls.append(json.loads(request.content))
            return httpx.Response(200, json={"received": True})

        transport = httpx.MockTransport(webhook_handler or default_handler)
        app = create_app(
            settings=settings,
            transcription_service=TranscriptionService(provider, temperature=settings.ingest_temperature),
            webhook_service=WebhookService(timeout=1.0, transport=transport),
        )
        return TestClient(app)

    return _factory


@pytest.fixture
def auth_headers():
    return {"Authorization": f"Bearer {TOKEN}", "Content-Type": "audio/m4a"}


@pytest.fixture
def basic_response():
    return json.loads(json.dumps(BASIC_RESPONSE))


@pytest.fixture
def enhanced_response():
    return json.loads(json.dumps(ENHANCED_RESPONSE))
