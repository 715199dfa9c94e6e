"""
Structured logging setup for Consult Scribe
"""

import logging
from datetime import datetime, timezone
from typing import Optional

import structlog

from consult_scribe.config import Environment, Settings, settings as default_settings


def setup_logging(settings: Optional[Settings] = None):
    """Configures structured logging"""
    settings = settings or default_settings

    processors = [
        structlog.processors.add_log_level,
        structlog.processors.TimeStamper(fmt="ISO"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
    ]

    if settings.environment == Environment.DEVELOPMENT:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))
    else:
        processors.extend([
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer()
        ])

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level.upper(), logging.INFO)
        ),
        # Loggers resolve sys.stdout on each call so redirected streams are honored
        cache_logger_on_first_use=False,
    )


def get_logger(name: str = None):
    """Returns a configured logger"""
    return structlog.get_logger(name or __name__)


class AuditLogger:
    """Logger for audit events. Never receives media bytes or raw tokens."""

    def __init__(self):
        self.logger = get_logger("audit")

    def log_ingest_request(
        self,
        request_id: str,
        content_type: str,
        size_bytes: int,
        token_hash: str = None,
        patient_id: str = None,
        **kwargs
    ):
        self.logger.info(
            "ingest_request",
            request_id=request_id,
            content_type=content_type,
            size_bytes=size_bytes,
            token_hash=token_hash,
            patient_id=patient_id,
            timestamp=datetime.now(timezone.utc).isoformat(),
            **kwargs
        )

    def log_transcription(
        self,
        request_id: str,
        provider: str,
        model_used: str,
        enhanced: bool,
        entries: int,
        processing_time_ms: int,
        **kwargs
    ):
        self.logger.info(
            "transcription",
            request_id=request_id,
            provider=provider,
            model_used=model_used,
            enhanced=enhanced,
            entries=entries,
            processing_time_ms=processing_time_ms,
            timestamp=datetime.now(timezone.utc).isoformat(),
            **kwargs
        )

    def log_webhook_delivery(
        self,
        request_id: str,
        url: str,
        delivered: bool,
        response_status: Optional[int] = None,
        **kwargs
    ):
        self.logger.info(
            "webhook_delivery",
            request_id=request_id,
            url=url,
            delivered=delivered,
            response_status=response_status,
            timestamp=datetime.now(timezone.utc).isoformat(),
            **kwargs
        )

    def log_error(
        self,
        request_id: str,
        error_type: str,
        error_message: str,
        **kwargs
    ):
        self.logger.error(
            "error_event",
            request_id=request_id,
            error_type=error_type,
            error_message=error_message,
            timestamp=datetime.now(timezone.utc).isoformat(),
            **kwargs
        )


# Global audit logger instance
audit_logger = AuditLogger()
