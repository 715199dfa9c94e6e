"""
Consult Scribe - FastAPI Main Application
"""

import time
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse
from prometheus_client import Counter, Histogram, generate_latest, CONTENT_TYPE_LATEST
from starlette.responses import Response

from consult_scribe.config import Settings, settings as default_settings
from consult_scribe.core.errors import (
    REQUEST_ERRORS,
    DeliveryError,
    ScribeError,
    UnsupportedMediaTypeError,
)
from consult_scribe.core.logging import setup_logging, get_logger, audit_logger
from consult_scribe.core.security import SecurityManager, authorize_ingest
from consult_scribe.models.requests import TranscriptionContext
from consult_scribe.models.responses import (
    ErrorResponse,
    HealthCheckResponse,
    IngestFailedResponse,
    IngestResponse,
)
from consult_scribe.models.transcript import transcript_to_wire
from consult_scribe.services.llm_service import build_ingest_provider
from consult_scribe.services.media_encoder import build_media_payload, check_media_size, is_media_type
from consult_scribe.services.stt_service import TranscriptionService
from consult_scribe.services.webhook_service import WebhookService

logger = get_logger(__name__)

# Prometheus metrics
request_count = Counter('http_requests_total', 'Total HTTP requests', ['method', 'endpoint', 'status'])
request_duration = Histogram('http_request_duration_seconds', 'HTTP request duration')
ingest_outcomes = Counter('scribe_ingest_total', 'Ingest requests by outcome', ['outcome'])
transcription_duration = Histogram('scribe_transcription_duration_seconds', 'AI transcription duration')
webhook_deliveries = Counter('scribe_webhook_deliveries_total', 'Webhook deliveries by outcome', ['outcome'])

CORS_PREFLIGHT_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Methods": "POST, OPTIONS",
    "Access-Control-Allow-Headers": "Authorization, Content-Type, x-patient-id, x-consultation-date",
}

router = APIRouter()


def _header_value(request: Request, name: str, max_length: int) -> Optional[str]:
    """Optional opaque metadata header; blank counts as absent"""
    value = (request.headers.get(name) or "").strip()
    return value[:max_length] or None


@router.get("/health", response_model=HealthCheckResponse)
async def health_check(request: Request):
    """Service health check"""
    settings: Settings = request.app.state.settings
    return HealthCheckResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        version=settings.api_version,
        uptime_seconds=int(time.time() - request.app.state.started_at),
        ingest_enabled=settings.ingest_enabled,
    )


@router.get("/metrics")
async def metrics(request: Request):
    """Prometheus metrics"""
    if not request.app.state.settings.enable_metrics:
        raise HTTPException(status_code=404, detail="Metrics disabled")

    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


@router.options("/ingest")
async def ingest_preflight():
    """CORS preflight, answered independently of auth and the feature gate"""
    return Response(status_code=status.HTTP_200_OK, headers=CORS_PREFLIGHT_HEADERS)


@router.post(
    "/ingest",
    response_model=IngestResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        413: {"model": ErrorResponse},
        415: {"model": ErrorResponse},
        500: {"model": IngestFailedResponse},
        503: {"model": ErrorResponse},
    },
)
async def ingest(request: Request, token_hash: str = Depends(authorize_ingest)):
    """
    Accepts a raw audio/video body, transcribes it and forwards the result
    to the scribe webhook when one is configured.
    """
    settings: Settings = request.app.state.settings
    transcription_service: TranscriptionService = request.app.state.transcription_service
    webhook_service: WebhookService = request.app.state.webhook_service
    request_id = request.state.request_id

    # An absent header falls back to the default for validation and transcription alike
    content_type = request.headers.get("content-type") or settings.default_content_type
    if not is_media_type(content_type):
        raise UnsupportedMediaTypeError("Invalid content type. Must be audio/* or video/*")
    mime_type = content_type.split(";")[0].strip()

    body = await request.body()
    check_media_size(len(body), settings.max_file_size_bytes)

    context = TranscriptionContext(
        patient_id=_header_value(request, "x-patient-id", settings.max_metadata_length),
        consultation_date=_header_value(request, "x-consultation-date", settings.max_metadata_length),
    )
    audit_logger.log_ingest_request(
        request_id=request_id,
        content_type=mime_type,
        size_bytes=len(body),
        token_hash=token_hash,
        patient_id=context.patient_id,
    )
    logger.info(f"[{request_id}] Processing {mime_type} file ({len(body) / 1024:.1f}KB)...")

    start = time.time()
    try:
        media = build_media_payload(body, mime_type, settings.max_file_size_bytes)
        transcript = await transcription_service.transcribe(media, context, request_id=request_id)
    except Exception as e:
        message = e.message if isinstance(e, ScribeError) else (str(e) or "Internal server error")
        logger.error(f"[{request_id}] Ingest error: {message}")
        audit_logger.log_error(request_id=request_id, error_type=type(e).__name__, error_message=message)
        ingest_outcomes.labels(outcome="failed").inc()
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=IngestFailedResponse(message=message).model_dump(),
        )

    elapsed = time.time() - start
    transcription_duration.observe(elapsed)
    audit_logger.log_transcription(
        request_id=request_id,
        provider=transcription_service.provider.name,
        model_used=transcription_service.provider.model,
        enhanced=False,
        entries=len(transcript.transcript),
        processing_time_ms=int(elapsed * 1000),
    )

    if settings.scribe_webhook:
        logger.info(f"[{request_id}] Forwarding transcript to webhook: {settings.scribe_webhook}")
        try:
            response_status = await webhook_service.send_transcript(settings.scribe_webhook, transcript)
            webhook_deliveries.labels(outcome="delivered").inc()
            audit_logger.log_webhook_delivery(
                request_id=request_id, url=settings.scribe_webhook, delivered=True, response_status=response_status
            )
        except DeliveryError as e:
            # The transcript is still returned to the caller
            logger.error(f"[{request_id}] Webhook delivery failed: {e.message}")
            webhook_deliveries.labels(outcome="failed").inc()
            audit_logger.log_webhook_delivery(
                request_id=request_id,
                url=settings.scribe_webhook,
                delivered=False,
                response_status=e.details.get("status_code"),
                error=e.message,
            )

    ingest_outcomes.labels(outcome="ok").inc()
    return IngestResponse(transcript=transcript_to_wire(transcript))


def create_app(
    settings: Optional[Settings] = None,
    transcription_service: Optional[TranscriptionService] = None,
    webhook_service: Optional[WebhookService] = None,
) -> FastAPI:
    """
    Builds the application. Configuration and collaborators are fixed at
    construction time and shared read-only by all requests.
    """
    settings = settings or default_settings
    setup_logging(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info("🚀 Consult Scribe starting...")
        logger.info(f"Environment: {settings.environment.value}")
        logger.info(f"Ingest enabled: {settings.ingest_enabled}")
        if settings.ingest_enabled and not settings.ingest_token:
            logger.warning("INGEST_TOKEN is not set; every ingest request will be rejected")
        yield
        logger.info("🛑 Consult Scribe shutting down...")

    app = FastAPI(
        title=settings.api_title,
        description=settings.api_description,
        version=settings.api_version,
        lifespan=lifespan,
        docs_url="/docs" if settings.environment.value == "development" else None,
        redoc_url="/redoc" if settings.environment.value == "development" else None,
        debug=settings.debug,
    )

    app.state.settings = settings
    app.state.started_at = time.time()
    app.state.security_manager = SecurityManager(settings)
    app.state.transcription_service = transcription_service or TranscriptionService(
        build_ingest_provider(settings), temperature=settings.ingest_temperature
    )
    app.state.webhook_service = webhook_service or WebhookService(timeout=settings.webhook_timeout)

    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        """Add security headers to all responses."""
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        if settings.environment.value == "production":
            response.headers.setdefault("Strict-Transport-Security", "max-age=31536000; includeSubDomains")
        return response

    @app.middleware("http")
    async def track_requests(request: Request, call_next):
        """Request tracking and Prometheus metrics"""
        start_time = time.time()
        request_id = app.state.security_manager.generate_request_id()
        request.state.request_id = request_id

        try:
            response = await call_next(request)
        except Exception as e:
            request_count.labels(method=request.method, endpoint=request.url.path, status=500).inc()
            logger.error(f"Request {request_id} failed: {e}")
            return JSONResponse(
                status_code=500,
                content={
                    "error": "internal_server_error",
                    "message": "An internal error occurred",
                    "request_id": request_id,
                },
                headers={"X-Request-ID": request_id},
            )

        duration = time.time() - start_time
        request_count.labels(
            method=request.method,
            endpoint=request.url.path,
            status=response.status_code
        ).inc()
        request_duration.observe(duration)

        response.headers["X-Request-ID"] = request_id
        response.headers["X-Processing-Time"] = f"{duration:.3f}s"
        return response

    @app.exception_handler(ScribeError)
    async def scribe_error_handler(request: Request, exc: ScribeError):
        """Request-level rejections answer with their own status and {"error": message}"""
        if isinstance(exc, REQUEST_ERRORS):
            logger.warning(f"Request rejected: {exc.message}", status=exc.http_status)
            return JSONResponse(status_code=exc.http_status, content=ErrorResponse(error=exc.message).model_dump())

        request_id = getattr(request.state, "request_id", "unknown")
        logger.error(f"Unhandled service error in request {request_id}: {exc.message}")
        return JSONResponse(
            status_code=500,
            content={"error": "internal_server_error", "message": exc.message, "request_id": request_id},
        )

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception):
        """Global exception handler for unhandled errors"""
        request_id = getattr(request.state, "request_id", "unknown")
        logger.error(f"Unhandled error in request {request_id}: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "error": "internal_server_error",
                "message": "An unexpected error occurred",
                "request_id": request_id,
            },
            headers={"X-Request-ID": request_id},
        )

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(
        "consult_scribe.main:app",
        host=default_settings.api_host,
        port=default_settings.api_port,
        reload=default_settings.environment.value == "development"
    )
