"""
Transcript data model.

Basic and enhanced transcripts form a tagged union discriminated by the
presence of ``mentalStatusExam``; use ``load_transcript`` to build one from
wire data.
"""

from typing import Any, Dict, List, Union

from pydantic import BaseModel, ConfigDict, Field


class _WireModel(BaseModel):
    """camelCase on the wire, snake_case in Python, immutable."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)


class TranscriptEntry(_WireModel):
    """One line of diarized dialogue"""
    speaker: str = Field(description='Speaker of the line, "Doctor" or "Patient"')
    line: str = Field(description="Transcribed dialogue text")
    timestamp: str = Field(description="When the line was spoken, HH:MM:SS")


class TranscriptData(_WireModel):
    """Basic transcript"""
    patient_id: str = Field(alias="patientId")
    consultation_date: str = Field(alias="consultationDate", description="YYYY-MM-DD")
    transcript: List[TranscriptEntry] = Field(min_length=1)


class MentalStatusExam(_WireModel):
    appearance: str
    behavior: str
    affect: str
    speech: str


class ClinicalObservation(_WireModel):
    timestamp: str
    observation: str


class EnhancedTranscriptData(_WireModel):
    """Transcript plus mental status exam and clinical observations"""
    patient_id: str = Field(alias="patientId")
    consultation_date: str = Field(alias="consultationDate", description="YYYY-MM-DD")
    transcript: List[TranscriptEntry] = Field(min_length=1)
    mental_status_exam: MentalStatusExam = Field(alias="mentalStatusExam")
    clinical_observations: List[ClinicalObservation] = Field(
        default_factory=list, alias="clinicalObservations"
    )


Transcript = Union[TranscriptData, EnhancedTranscriptData]


def load_transcript(payload: Dict[str, Any]) -> Transcript:
    """
    Builds the matching transcript variant from camelCase wire data.
    Raises pydantic.ValidationError on shape mismatches.
    """
    if payload.get("mentalStatusExam") is not None:
        return EnhancedTranscriptData.model_validate(payload)
    basic = {k: v for k, v in payload.items() if k not in ("mentalStatusExam", "clinicalObservations")}
    return TranscriptData.model_validate(basic)


def is_enhanced(transcript: Transcript) -> bool:
    return isinstance(transcript, EnhancedTranscriptData)


def transcript_to_wire(transcript: Transcript) -> Dict[str, Any]:
    """camelCase dict of the full object graph"""
    return transcript.model_dump(mode="json", by_alias=True)
