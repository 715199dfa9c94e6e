"""
Pydantic models for API responses
"""

from typing import Any, Dict, Literal, Optional
from datetime import datetime

from pydantic import BaseModel, Field


class IngestResponse(BaseModel):
    """Successful ingest envelope"""
    status: Literal["ok"] = "ok"
    transcript: Dict[str, Any] = Field(description="Transcript in camelCase wire form")


class WebhookPayload(BaseModel):
    """Body POSTed to the scribe webhook"""
    status: Literal["completed"] = "completed"
    transcript: Dict[str, Any]


class ErrorResponse(BaseModel):
    """Request rejected before transcription"""
    error: str = Field(description="Error description")


class IngestFailedResponse(BaseModel):
    """Transcription failed"""
    error: Literal["ingest_failed"] = "ingest_failed"
    message: str = Field(description="Inner failure message")


class HealthCheckResponse(BaseModel):
    """Health Check Response"""
    status: str = Field(description="Service status (healthy/unhealthy)")
    timestamp: datetime = Field(description="Check time")
    version: str = Field(description="Service version")
    uptime_seconds: int = Field(description="Uptime in seconds")
    ingest_enabled: bool = Field(description="Whether the ingest endpoint accepts uploads")
    details: Optional[Dict[str, Any]] = Field(default=None)
