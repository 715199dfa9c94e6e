"""
Central configuration for the Consult Scribe service
"""

from typing import Optional
from enum import Enum

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class ExportFormat(str, Enum):
    JSON = "json"
    TXT = "txt"
    BOTH = "both"


class TextProvider(str, Enum):
    GEMINI = "gemini"
    OPENAI = "openai"


class Settings(BaseSettings):
    # Environment
    environment: Environment = Environment.DEVELOPMENT
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # API Configuration
    api_title: str = Field(default="Consult Scribe API")
    api_description: str = Field(default="Consultation recording transcription and diarization service")
    api_version: str = Field(default="1.0.0")
    api_host: str = Field(default="0.0.0.0")
    api_port: int = Field(default=3001)

    # Ingest endpoint
    ingest_enabled: bool = Field(default=False)
    ingest_token: Optional[str] = Field(default=None)
    default_content_type: str = Field(default="audio/m4a")
    max_file_size_mb: int = Field(default=50)
    max_metadata_length: int = Field(default=128)

    # Generative AI credentials (server-side and demo/client-side are kept apart)
    gemini_api_key: Optional[str] = Field(default=None)
    gemini_demo_api_key: Optional[str] = Field(default=None)
    openai_api_key: Optional[str] = Field(default=None)

    # Model configuration
    gemini_ingest_model: str = Field(default="gemini-2.5-pro")
    gemini_demo_model: str = Field(default="gemini-2.5-pro")
    openai_text_model: str = Field(default="gpt-4o-mini")
    text_transcript_provider: TextProvider = Field(default=TextProvider.GEMINI)
    ingest_temperature: float = Field(default=0.2)

    # Webhook
    scribe_webhook: Optional[str] = Field(default=None)
    webhook_timeout: float = Field(default=10.0)  # seconds

    # Monitoring
    enable_metrics: bool = Field(default=True)

    # CLI exports
    output_dir: str = Field(default="./transcripts")

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    @property
    def max_file_size_bytes(self) -> int:
        return self.max_file_size_mb * 1024 * 1024


# Global settings instance
settings = Settings()
