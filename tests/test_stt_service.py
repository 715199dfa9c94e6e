"""
Transcription service tests.
"""

import json
import re

import pytest

from consult_scribe.core.errors import (
    ConfigurationError,
    EmptyPayloadError,
    MalformedResponseError,
    ProviderError,
    UnsupportedMediaTypeError,
)
from consult_scribe.models.requests import MediaPayload, TranscriptionContext
from consult_scribe.models.transcript import EnhancedTranscriptData, TranscriptData
from consult_scribe.services.stt_service import TranscriptionService, resolve_context

MEDIA = MediaPayload(mime_type="audio/m4a", data="AAEC")


def test_resolve_context_defaults():
    context = resolve_context(None)

    assert context.patient_id == "UNKNOWN"
    assert re.fullmatch(r"\d{4}-\d{2}-\d{2}", context.consultation_date)


def test_resolve_context_keeps_given_values():
    context = resolve_context(TranscriptionContext(patient_id="P-9", consultation_date="2023-01-02"))

    assert context.patient_id == "P-9"
    assert context.consultation_date == "2023-01-02"


@pytest.mark.asyncio
async def test_basic_transcription(provider_factory, basic_response):
    provider = provider_factory()
    service = TranscriptionService(provider, temperature=0.2)

    transcript = await service.transcribe(MEDIA, TranscriptionContext(patient_id="P-1001"))

    assert isinstance(transcript, TranscriptData)
    assert [entry.speaker for entry in transcript.transcript] == ["Doctor", "Patient", "Doctor"]
    call = provider.calls[0]
    assert call["media"] is MEDIA
    assert call["temperature"] == 0.2
    assert "mentalStatusExam" not in call["schema"]["properties"]
    assert '"Doctor" and "Patient"' in call["prompt"]
    assert "HH:MM:SS" in call["prompt"]
    assert "P-1001" in call["prompt"]


@pytest.mark.asyncio
async def test_enhanced_transcription(provider_factory, enhanced_response):
    provider = provider_factory(response=json.dumps(enhanced_response))
    service = TranscriptionService(provider, temperature=0.2)

    transcript = await service.transcribe(
        MediaPayload(mime_type="video/mp4", data="AAEC"), enhanced=True
    )

    assert isinstance(transcript, EnhancedTranscriptData)
    assert transcript.mental_status_exam.affect == "Mildly anxious, congruent with content"
    assert len(transcript.clinical_observations) == 1
    call = provider.calls[0]
    assert call["temperature"] is None
    assert "mentalStatusExam" in call["schema"]["required"]
    for axis in ("APPEARANCE", "BEHAVIOR", "AFFECT", "SPEECH"):
        assert axis in call["prompt"]


@pytest.mark.asyncio
async def test_enhanced_without_observations_defaults_to_empty(provider_factory, enhanced_response):
    del enhanced_response["clinicalObservations"]
    service = TranscriptionService(provider_factory(response=json.dumps(enhanced_response)))

    transcript = await service.transcribe(MEDIA, enhanced=True)

    assert transcript.clinical_observations == []


@pytest.mark.asyncio
async def test_rejects_non_media_mime_type(provider_factory):
    provider = provider_factory()
    service = TranscriptionService(provider)

    with pytest.raises(UnsupportedMediaTypeError):
        await service.transcribe(MediaPayload(mime_type="image/png", data="AAEC"))
    assert provider.calls == []


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "raw",
    [
        "not json",
        "",
        "[]",
        json.dumps({"patientId": "P", "consultationDate": "2024-01-01"}),
        json.dumps({"patientId": "P", "consultationDate": "2024-01-01", "transcript": "hello"}),
        json.dumps({"patientId": "P", "consultationDate": "2024-01-01", "transcript": []}),
        json.dumps({"patientId": "P", "consultationDate": "2024-01-01", "transcript": [{"line": "hi"}]}),
    ],
)
async def test_malformed_responses(provider_factory, raw):
    service = TranscriptionService(provider_factory(response=raw))

    with pytest.raises(MalformedResponseError) as exc_info:
        await service.transcribe(MEDIA)
    assert "Invalid transcript format" in exc_info.value.message


@pytest.mark.asyncio
async def test_incomplete_mental_status_exam_is_malformed(provider_factory, enhanced_response):
    del enhanced_response["mentalStatusExam"]["speech"]
    service = TranscriptionService(provider_factory(response=json.dumps(enhanced_response)))

    with pytest.raises(MalformedResponseError):
        await service.transcribe(MEDIA, enhanced=True)


@pytest.mark.asyncio
async def test_enhanced_response_without_mental_status_exam_is_malformed(provider_factory, enhanced_response):
    del enhanced_response["mentalStatusExam"]
    service = TranscriptionService(provider_factory(response=json.dumps(enhanced_response)))

    with pytest.raises(MalformedResponseError) as exc_info:
        await service.transcribe(MEDIA, enhanced=True)
    assert exc_info.value.message == "Invalid transcript format received from AI"


@pytest.mark.asyncio
async def test_missing_header_fields_filled_from_context(provider_factory, basic_response):
    del basic_response["patientId"]
    service = TranscriptionService(provider_factory(response=json.dumps(basic_response)))

    transcript = await service.transcribe(MEDIA, TranscriptionContext(patient_id="P-55"))

    assert transcript.patient_id == "P-55"


@pytest.mark.asyncio
async def test_provider_exception_wrapped(provider_factory):
    service = TranscriptionService(provider_factory(error=ConnectionError("network down")))

    with pytest.raises(ProviderError) as exc_info:
        await service.transcribe(MEDIA)
    assert exc_info.value.message == "Fake API Error: network down"


@pytest.mark.asyncio
async def test_configuration_error_passes_through(provider_factory):
    service = TranscriptionService(provider_factory(error=ConfigurationError("GEMINI_API_KEY environment variable is not set")))

    with pytest.raises(ConfigurationError):
        await service.transcribe(MEDIA)


@pytest.mark.asyncio
async def test_single_attempt_per_call(provider_factory):
    provider = provider_factory(error=TimeoutError("timed out"))
    service = TranscriptionService(provider)

    with pytest.raises(ProviderError):
        await service.transcribe(MEDIA)
    assert len(provider.calls) == 1


@pytest.mark.asyncio
async def test_text_transcription_uses_text_provider(provider_factory):
    media_provider = provider_factory()
    text_provider = provider_factory()
    service = TranscriptionService(media_provider, temperature=0.2, text_provider=text_provider)

    transcript = await service.transcribe_text("Hi, how are you?\nNot great, doctor.")

    assert isinstance(transcript, TranscriptData)
    assert media_provider.calls == []
    call = text_provider.calls[0]
    assert call["media"] is None
    assert "Not great, doctor." in call["prompt"]
    assert "estimate" in call["prompt"]


@pytest.mark.asyncio
async def test_text_transcription_rejects_blank_text(provider_factory):
    service = TranscriptionService(provider_factory())

    with pytest.raises(EmptyPayloadError):
        await service.transcribe_text("   \n")
