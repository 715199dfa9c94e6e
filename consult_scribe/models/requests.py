"""
Pydantic models for transcription inputs
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MediaPayload(BaseModel):
    """Request-scoped media, base64 encoded for the AI request. Never persisted."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    mime_type: str = Field(alias="mimeType", description="audio/* or video/* MIME type")
    data: str = Field(description="Base64 encoded media bytes")

    def __repr__(self) -> str:
        return f"MediaPayload(mime_type={self.mime_type!r}, data=<{len(self.data)} chars>)"

    __str__ = __repr__


class TranscriptionContext(BaseModel):
    """Optional caller metadata, passed through as opaque strings"""
    patient_id: Optional[str] = Field(default=None, description="Patient identifier")
    consultation_date: Optional[str] = Field(default=None, description="Consultation date, YYYY-MM-DD")
