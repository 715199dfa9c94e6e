"""
Best-effort forwarding of finished transcripts to the scribe webhook
"""

from typing import Optional

import httpx

from consult_scribe.core.errors import DeliveryError
from consult_scribe.core.logging import get_logger
from consult_scribe.models.responses import WebhookPayload
from consult_scribe.models.transcript import Transcript, transcript_to_wire

logger = get_logger(__name__)


class WebhookService:
    """Single POST per transcript. No retries."""

    def __init__(self, timeout: float = 10.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.timeout = timeout
        self.transport = transport

    async def send_transcript(self, url: str, transcript: Transcript) -> int:
        """
        POSTs {"status": "completed", "transcript": ...} to url.
        Returns the response status, raises DeliveryError on transport
        failures and non-2xx answers.
        """
        payload = WebhookPayload(transcript=transcript_to_wire(transcript))

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(url, json=payload.model_dump())
        except (httpx.HTTPError, httpx.InvalidURL) as e:
            raise DeliveryError(f"Webhook unreachable: {e}", details={"url": url}) from e

        if not response.is_success:
            raise DeliveryError(
                f"Webhook returned {response.status_code}: {response.reason_phrase}",
                details={"url": url, "status_code": response.status_code},
            )

        logger.info(f"Webhook accepted transcript with status {response.status_code}")
        return response.status_code
