from __future__ import annotations
"""Application configuration using Pydantic Settings."""

from dataclasses import dataclass
from functools import lru_cache

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """NeoAI orchestrator settings.

    Loaded from environment variables or .env file.
    """

    # --- Application ---
    APP_NAME: str = "NeoAI"
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    HTTP_TIMEOUT: float = 60.0

    # --- fal.ai queue (Image to Video) ---
    FAL_API_KEY: str = ""
    PIKA_BASE_URL: str = "https://queue.fal.run/fal-ai/pika/v2.2/pikascenes"
    PIKA_STATUS_URL: str = "https://queue.fal.run/fal-ai/pika/requests"
    KLING_BASE_URL: str = "https://queue.fal.run/fal-ai/kling-video/v2.5-turbo/pro/image-to-video"
    KLING_STATUS_URL: str = "https://queue.fal.run/fal-ai/kling-video/requests"
    FAL_POLL_INTERVAL: float = 3.0
    FAL_MAX_ATTEMPTS: int = 120

    # --- imgbb (asset staging) ---
    IMGBB_API_KEY: str = ""
    IMGBB_UPLOAD_URL: str = "https://api.imgbb.com/1/upload"

    # --- n8n webhooks ---
    WEBHOOK_BASE_URL: str = "https://n8n-teoxahs8xdqn.blueberry.sumopod.my.id/webhook"
    SOCIAL_MEDIA_WEBHOOK_ID: str = "b30b6761-82f6-4c3d-ae64-f6b3031c0cb9"
    TEXT_TO_SPEECH_WEBHOOK_ID: str = "d996171e-b384-40ec-845e-f91de371710d"
    IMAGE_EDITING_WEBHOOK_ID: str = "3d7c9427-7656-441c-aad7-435df664a1df"
    BRIEF_TO_IMAGES_WEBHOOK_ID: str = "fc9a2362-699a-42f4-b549-8bc4aa20d3ac"
    JOB_WEBHOOK_POLL_INTERVAL: float = 2.0
    JOB_WEBHOOK_MAX_ATTEMPTS: int = 60
    PROMPT_ENHANCE_WEBHOOK_URL: str = (
        "https://n8n-teoxahs8xdqn.blueberry.sumopod.my.id/webhook/fed4e326-fe59-4547-a3a9-8633ff5070db"
    )

    # --- Connectivity probe ---
    PROBE_TIMEOUT: float = 5.0

    # --- Local storage ---
    HISTORY_DIR: str = ".neoai"
    HISTORY_STORE_NAME: str = "generationHistory"
    MEDIA_VOLUME: str = "media_volume"

    def webhook_url(self, webhook_id: str) -> str:
        return f"{self.WEBHOOK_BASE_URL.rstrip('/')}/{webhook_id}"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
    }


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings singleton."""
    return Settings()


# ---------------------------------------------------------------------------
# Per-provider static configuration
# ---------------------------------------------------------------------------

PROVIDER_PIKA = "pika"
PROVIDER_KLING = "kling"
PROVIDER_SOCIAL_MEDIA = "social-media"
PROVIDER_TEXT_TO_SPEECH = "text-to-speech"
PROVIDER_IMAGE_EDITING = "image-editing"
PROVIDER_BRIEF_TO_IMAGES = "brief-to-images"


@dataclass(frozen=True)
class ProviderConfig:
    """Endpoints, credential and polling bounds for one provider."""
    name: str
    base_url: str
    status_url: str | None = None
    credential: str = ""
    poll_interval: float = 0.0
    max_attempts: int = 1
    requires_credential: bool = False

    @property
    def has_credential(self) -> bool:
        return bool(self.credential.strip())


def provider_config(provider: str, settings: Settings | None = None) -> ProviderConfig:
    """Build the immutable ProviderConfig for a provider name.

    Raises KeyError for a provider that has no configuration.
    """
    s = settings or get_settings()

    if provider == PROVIDER_PIKA:
        return ProviderConfig(
            name=provider,
            base_url=s.PIKA_BASE_URL,
            status_url=s.PIKA_STATUS_URL,
            credential=s.FAL_API_KEY,
            poll_interval=s.FAL_POLL_INTERVAL,
            max_attempts=s.FAL_MAX_ATTEMPTS,
            requires_credential=True,
        )
    if provider == PROVIDER_KLING:
        return ProviderConfig(
            name=provider,
            base_url=s.KLING_BASE_URL,
            status_url=s.KLING_STATUS_URL,
            credential=s.FAL_API_KEY,
            poll_interval=s.FAL_POLL_INTERVAL,
            max_attempts=s.FAL_MAX_ATTEMPTS,
            requires_credential=True,
        )
    if provider == PROVIDER_TEXT_TO_SPEECH:
        submit_url = s.webhook_url(s.TEXT_TO_SPEECH_WEBHOOK_ID)
        return ProviderConfig(
            name=provider,
            base_url=submit_url,
            status_url=submit_url.replace("/webhook/", "/status/"),
            poll_interval=s.JOB_WEBHOOK_POLL_INTERVAL,
            max_attempts=s.JOB_WEBHOOK_MAX_ATTEMPTS,
        )

    single_call = {
        PROVIDER_SOCIAL_MEDIA: s.SOCIAL_MEDIA_WEBHOOK_ID,
        PROVIDER_IMAGE_EDITING: s.IMAGE_EDITING_WEBHOOK_ID,
        PROVIDER_BRIEF_TO_IMAGES: s.BRIEF_TO_IMAGES_WEBHOOK_ID,
    }
    if provider in single_call:
        return ProviderConfig(name=provider, base_url=s.webhook_url(single_call[provider]))

    raise KeyError(f"Unknown provider: {provider}")


def mask_key(key: str) -> str:
    """Mask an API key for safe logging: show first 4 and last 4 chars."""
    if len(key) <= 12:
        return "***"
    return f"{key[:4]}...{key[-4:]}"
