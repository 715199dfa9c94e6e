"""
Generative AI providers.

A provider takes a prompt, an output schema and optional inline media and
returns the model's JSON text. Parsing and validation live in the
transcription service so any structured-output-capable model can be swapped in.
"""

import base64
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional

from google import genai
from google.genai import types
from openai import AsyncOpenAI

from consult_scribe.config import Settings, TextProvider
from consult_scribe.core.errors import ConfigurationError, ProviderError
from consult_scribe.core.logging import get_logger
from consult_scribe.models.requests import MediaPayload
from consult_scribe.services.schemas import to_json_schema

logger = get_logger(__name__)


class GenerativeProvider(ABC):
    """Schema-constrained generation capability"""

    name: str = "AI"
    model: str = ""

    @abstractmethod
    async def generate(
        self,
        prompt: str,
        schema: Dict[str, Any],
        media: Optional[MediaPayload] = None,
        temperature: Optional[float] = None,
    ) -> str:
        """Returns the raw JSON text produced by the model."""
        raise NotImplementedError


class GeminiProvider(GenerativeProvider):
    """Google Gemini via the google-genai SDK. Accepts inline audio/video."""

    name = "Gemini"

    def __init__(self, api_key: Optional[str], model: str, key_name: str = "GEMINI_API_KEY"):
        self.api_key = api_key
        self.model = model
        self.key_name = key_name
        self._client: Optional[genai.Client] = None

    def _get_client(self) -> genai.Client:
        if not self.api_key:
            raise ConfigurationError(f"{self.key_name} environment variable is not set")
        if self._client is None:
            self._client = genai.Client(api_key=self.api_key)
        return self._client

    async def generate(
        self,
        prompt: str,
        schema: Dict[str, Any],
        media: Optional[MediaPayload] = None,
        temperature: Optional[float] = None,
    ) -> str:
        client = self._get_client()

        contents: list = [prompt]
        if media is not None:
            # The SDK takes raw bytes and applies its own transport encoding
            contents.append(
                types.Part.from_bytes(data=base64.b64decode(media.data), mime_type=media.mime_type)
            )

        config = types.GenerateContentConfig(
            response_mime_type="application/json",
            response_schema=schema,
            temperature=temperature,
        )

        logger.info(
            f"Calling Gemini model {self.model}",
            media_type=media.mime_type if media else None,
            temperature=temperature,
        )
        response = await client.aio.models.generate_content(
            model=self.model,
            contents=contents,
            config=config,
        )
        return (response.text or "").strip()


class OpenAIProvider(GenerativeProvider):
    """OpenAI chat completions with a JSON-schema response format. Text only."""

    name = "OpenAI"

    def __init__(self, api_key: Optional[str], model: str, timeout: float = 300.0):
        self.api_key = api_key
        self.model = model
        self.timeout = timeout
        self._client: Optional[AsyncOpenAI] = None

    def _get_client(self) -> AsyncOpenAI:
        if not self.api_key:
            raise ConfigurationError("OPENAI_API_KEY environment variable is not set")
        if self._client is None:
            self._client = AsyncOpenAI(api_key=self.api_key, timeout=self.timeout)
        return self._client

    async def generate(
        self,
        prompt: str,
        schema: Dict[str, Any],
        media: Optional[MediaPayload] = None,
        temperature: Optional[float] = None,
    ) -> str:
        if media is not None:
            raise ProviderError("OpenAI provider only supports text transcripts, not inline media")

        client = self._get_client()
        request: Dict[str, Any] = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "response_format": {
                "type": "json_schema",
                "json_schema": {
                    "name": "consultation_transcript",
                    "schema": to_json_schema(schema),
                    "strict": False,
                },
            },
        }
        if temperature is not None:
            request["temperature"] = temperature

        logger.info(f"Calling OpenAI model {self.model}", temperature=temperature)
        completion = await client.chat.completions.create(**request)
        return (completion.choices[0].message.content or "").strip()


def build_ingest_provider(settings: Settings) -> GenerativeProvider:
    """Trusted server-side provider"""
    return GeminiProvider(api_key=settings.gemini_api_key, model=settings.gemini_ingest_model)


def build_demo_provider(settings: Settings) -> GenerativeProvider:
    """Demo provider using the separate client-exposed key"""
    return GeminiProvider(
        api_key=settings.gemini_demo_api_key,
        model=settings.gemini_demo_model,
        key_name="GEMINI_DEMO_API_KEY",
    )


def build_text_provider(settings: Settings) -> GenerativeProvider:
    """Provider for pasted text transcripts, chosen by configuration"""
    if settings.text_transcript_provider == TextProvider.OPENAI:
        return OpenAIProvider(api_key=settings.openai_api_key, model=settings.openai_text_model)
    return GeminiProvider(
        api_key=settings.gemini_demo_api_key,
        model=settings.gemini_demo_model,
        key_name="GEMINI_DEMO_API_KEY",
    )
