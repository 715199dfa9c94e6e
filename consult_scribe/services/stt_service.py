"""
Transcription service.

Builds the diarization prompt, sends media or text plus the output schema to
a generative provider and validates the returned JSON. One attempt per call,
no retries.
"""

import json
import time
from datetime import datetime, timezone
from typing import Any, Dict, Optional

import pydantic

from consult_scribe.core.errors import (
    EmptyPayloadError,
    MalformedResponseError,
    ProviderError,
    ScribeError,
    UnsupportedMediaTypeError,
)
from consult_scribe.core.logging import get_logger
from consult_scribe.models.requests import MediaPayload, TranscriptionContext
from consult_scribe.models.transcript import (
    EnhancedTranscriptData,
    Transcript,
    TranscriptData,
    load_transcript,
)
from consult_scribe.services.llm_service import GenerativeProvider
from consult_scribe.services.media_encoder import is_media_type
from consult_scribe.services.schemas import get_transcript_schema

logger = get_logger(__name__)

UNKNOWN_PATIENT_ID = "UNKNOWN"
INVALID_FORMAT_MESSAGE = "Invalid transcript format received from AI"

_OUTPUT_RULE = (
    "Format the entire output as a single JSON object that adheres to the provided schema. "
    "Do not include any other text or markdown formatting outside of the JSON object."
)


def resolve_context(context: Optional[TranscriptionContext]) -> TranscriptionContext:
    """Fills in the patient ID sentinel and today's UTC date"""
    context = context or TranscriptionContext()
    return TranscriptionContext(
        patient_id=context.patient_id or UNKNOWN_PATIENT_ID,
        consultation_date=context.consultation_date
        or datetime.now(timezone.utc).strftime("%Y-%m-%d"),
    )


def build_media_prompt(context: TranscriptionContext) -> str:
    return f"""You are an expert medical transcriptionist AI. Your task is to analyze this audio/video of a doctor-patient consultation. Create a complete and accurate transcript.

- Identify the two primary speakers and label them as "Doctor" and "Patient".
- Include timestamps for each line of dialogue in HH:MM:SS format.
- The patient's ID is {context.patient_id} and the consultation date is {context.consultation_date}.
- {_OUTPUT_RULE}"""


def build_mse_prompt(context: TranscriptionContext) -> str:
    return f"""You are an expert medical transcriptionist and clinical observer AI. Your task is to analyze this video of a doctor-patient psychiatric consultation and provide comprehensive documentation.

ANALYSIS REQUIREMENTS:

1. TRANSCRIPT - Create a complete speaker-diarized transcript:
   - Identify the two primary speakers and label them as "Doctor" and "Patient"
   - Include timestamps for each line of dialogue in HH:MM:SS format
   - Capture all spoken content accurately

2. MENTAL STATUS EXAM - Document objective observations:

   APPEARANCE:
   - Grooming and hygiene
   - Dress and attire appropriateness
   - Physical presentation
   - Notable features

   BEHAVIOR:
   - Eye contact (good, poor, avoidant, intense)
   - Psychomotor activity (normal, agitated, restless, slowed)
   - Cooperation and engagement level
   - Posture and body positioning
   - Gestures and mannerisms

   AFFECT:
   - Range (full, restricted, blunted, flat)
   - Appropriateness to content
   - Intensity (normal, heightened, diminished)
   - Quality (euthymic, anxious, sad, irritable, euphoric)
   - Congruence with mood

   SPEECH:
   - Rate (normal, pressured, slow)
   - Volume (normal, loud, soft)
   - Articulation and clarity
   - Fluency and coherence

3. CLINICAL OBSERVATIONS - Note significant moments:
   - Visible distress or emotional reactions
   - Changes in demeanor during session
   - Non-verbal cues that inform clinical understanding
   - Therapeutic alliance indicators

PATIENT INFORMATION:
- Patient ID: {context.patient_id}
- Consultation Date: {context.consultation_date}

FORMAT: Be objective, clinical, and thorough in observations. {_OUTPUT_RULE}"""


def build_text_prompt(text: str, context: TranscriptionContext) -> str:
    return f"""You are an expert medical transcriptionist AI. The following is a plain-text transcript of a doctor-patient consultation (for example exported from Google Meet or Zoom).

- Attribute every line of dialogue to one of the two primary speakers, labelled "Doctor" or "Patient".
- Keep the original wording of each line.
- Keep timestamps present in the text in HH:MM:SS format; estimate them when they are missing.
- The patient's ID is {context.patient_id} and the consultation date is {context.consultation_date}.
- {_OUTPUT_RULE}

TRANSCRIPT:
{text}"""


def parse_transcript_response(
    raw_text: str, context: TranscriptionContext, enhanced: bool = False
) -> Transcript:
    """
    Parses and validates model output. Any deviation from the schema fails
    the whole call; there is no partial recovery.
    """
    try:
        payload = json.loads(raw_text)
    except (json.JSONDecodeError, TypeError) as e:
        raise MalformedResponseError(f"{INVALID_FORMAT_MESSAGE}: response is not valid JSON") from e

    if not isinstance(payload, dict):
        raise MalformedResponseError(f"{INVALID_FORMAT_MESSAGE}: expected a JSON object")

    entries = payload.get("transcript")
    if not isinstance(entries, list) or not entries:
        raise MalformedResponseError(INVALID_FORMAT_MESSAGE)

    # The prompt states both values; a model that omits them gets the ones it was given
    payload.setdefault("patientId", context.patient_id)
    payload.setdefault("consultationDate", context.consultation_date)

    try:
        if enhanced:
            return EnhancedTranscriptData.model_validate(payload)
        return load_transcript(payload)
    except pydantic.ValidationError as e:
        raise MalformedResponseError(
            INVALID_FORMAT_MESSAGE,
            details={"validation_errors": e.error_count()},
        ) from e


class TranscriptionService:
    """Requests diarized transcripts from a generative provider."""

    def __init__(
        self,
        provider: GenerativeProvider,
        temperature: Optional[float] = None,
        text_provider: Optional[GenerativeProvider] = None,
    ):
        self.provider = provider
        self.temperature = temperature
        self.text_provider = text_provider or provider

    async def transcribe(
        self,
        media: MediaPayload,
        context: Optional[TranscriptionContext] = None,
        enhanced: bool = False,
        request_id: Optional[str] = None,
    ) -> Transcript:
        """
        Transcribes audio/video. Size enforcement is the caller's job.
        The basic path runs at the configured low temperature; the enhanced
        (mental status exam) path uses the provider default.
        """
        if not is_media_type(media.mime_type):
            raise UnsupportedMediaTypeError(
                f"Invalid content type '{media.mime_type}'. Must be audio/* or video/*"
            )

        context = resolve_context(context)
        prompt = build_mse_prompt(context) if enhanced else build_media_prompt(context)
        temperature = None if enhanced else self.temperature

        logger.info(
            f"[{request_id}] Requesting {'enhanced' if enhanced else 'basic'} transcript",
            mime_type=media.mime_type,
            patient_id=context.patient_id,
        )
        return await self._request(
            self.provider, prompt, get_transcript_schema(enhanced), context, media, temperature, request_id,
            enhanced=enhanced,
        )

    async def transcribe_text(
        self,
        text: str,
        context: Optional[TranscriptionContext] = None,
        request_id: Optional[str] = None,
    ) -> TranscriptData:
        """Diarizes a pasted plain-text transcript"""
        if not text or not text.strip():
            raise EmptyPayloadError("Transcript text is empty")

        context = resolve_context(context)
        transcript = await self._request(
            self.text_provider,
            build_text_prompt(text.strip(), context),
            get_transcript_schema(enhanced=False),
            context,
            None,
            self.temperature,
            request_id,
        )
        return transcript

    async def _request(
        self,
        provider: GenerativeProvider,
        prompt: str,
        schema: Dict[str, Any],
        context: TranscriptionContext,
        media: Optional[MediaPayload],
        temperature: Optional[float],
        request_id: Optional[str],
        enhanced: bool = False,
    ) -> Transcript:
        start = time.time()
        try:
            raw_text = await provider.generate(prompt, schema, media=media, temperature=temperature)
        except ScribeError:
            raise
        except Exception as e:
            logger.error(f"[{request_id}] Error calling {provider.name} API: {e}", exc_info=True)
            raise ProviderError(f"{provider.name} API Error: {e}") from e

        transcript = parse_transcript_response(raw_text, context, enhanced)
        logger.info(
            f"[{request_id}] Transcript received",
            entries=len(transcript.transcript),
            processing_time_ms=int((time.time() - start) * 1000),
        )
        return transcript
