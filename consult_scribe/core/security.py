"""
Security and authentication for the ingest endpoint
"""

import hashlib
import secrets
from typing import Optional

from fastapi import Request
from fastapi.security.utils import get_authorization_scheme_param

from consult_scribe.config import Settings
from consult_scribe.core.errors import AuthError, IngestDisabledError
from consult_scribe.core.logging import get_logger

logger = get_logger(__name__)


class SecurityManager:
    """Central security handling, bound to one settings instance"""

    def __init__(self, settings: Settings):
        self.ingest_token = settings.ingest_token

    def hash_token(self, token: str) -> str:
        """Short token hash for audit logging"""
        return hashlib.sha256(token.encode()).hexdigest()[:16]

    def generate_request_id(self) -> str:
        return secrets.token_urlsafe(16)

    def extract_bearer_token(self, auth_header: Optional[str]) -> Optional[str]:
        """Returns the credentials of a Bearer authorization header, or None."""
        if not auth_header:
            return None
        scheme, credentials = get_authorization_scheme_param(auth_header)
        if scheme.lower() != "bearer" or not credentials:
            return None
        return credentials

    def verify_bearer_token(self, auth_header: Optional[str]) -> bool:
        """
        Validates the header against the configured ingest token.
        An unconfigured token never matches.
        """
        if not self.ingest_token:
            logger.error("INGEST_TOKEN is not configured; rejecting all ingest requests")
            return False

        token = self.extract_bearer_token(auth_header)
        if token is None:
            return False

        return secrets.compare_digest(token.encode(), self.ingest_token.encode())


async def authorize_ingest(request: Request) -> str:
    """
    Dependency for the ingest endpoint: feature gate first, then bearer auth.
    Returns the token hash for audit logging.
    """
    settings: Settings = request.app.state.settings
    security_manager: SecurityManager = request.app.state.security_manager

    if not settings.ingest_enabled:
        raise IngestDisabledError()

    auth_header = request.headers.get("Authorization")
    if not security_manager.verify_bearer_token(auth_header):
        logger.warning("Authentication failed: missing or invalid bearer token")
        raise AuthError()

    return security_manager.hash_token(security_manager.extract_bearer_token(auth_header))
