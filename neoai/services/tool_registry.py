"""Declarative tool registry.

Maps every supported ``(tool_id, model_variant)`` pair to the provider
family and provider that serve it, plus the inputs the tool requires.
This table is the only place adapter selection happens.

Usage:
    from neoai.services.tool_registry import TOOL_REGISTRY
    spec = TOOL_REGISTRY.resolve("image-to-video", "kling")
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any

from neoai.config import (
    PROVIDER_BRIEF_TO_IMAGES,
    PROVIDER_IMAGE_EDITING,
    PROVIDER_KLING,
    PROVIDER_PIKA,
    PROVIDER_SOCIAL_MEDIA,
    PROVIDER_TEXT_TO_SPEECH,
)
from neoai.errors import ErrorKind, SubmissionError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Types
# ---------------------------------------------------------------------------

# Provider families
FAMILY_SINGLE_CALL = "single_call_webhook"
FAMILY_JOB_WEBHOOK = "job_id_webhook"
FAMILY_QUEUE = "queue"

# Asset requirements
ASSET_NONE = "none"            # tool takes no binary input
ASSET_OPTIONAL = "optional"    # raw bytes forwarded if present
ASSET_REQUIRED_URL = "url"     # required, staged to a public URL first

# Every tool the dashboard knows about, configured or not
KNOWN_TOOL_IDS = (
    "social-media-generator",
    "text-to-speech",
    "image-to-video",
    "ads-generator",
    "image-editing",
    "brief-to-images",
    "moodboard-generator",
    "money-tracking",
    "cv-generator",
    "ai-scraper",
    "image-upscaler",
)


@dataclass(frozen=True)
class ToolSpec:
    """How one tool/model pair is submitted."""
    tool_id: str
    tool_name: str
    family: str
    provider: str
    required_param: str
    model_variant: str | None = None
    asset: str = ASSET_NONE
    probe_first: bool = False
    result_is_input_asset: bool = False
    default_inputs: dict[str, Any] = field(default_factory=dict)

    @property
    def requires_asset(self) -> bool:
        return self.asset == ASSET_REQUIRED_URL

    def with_defaults(self, inputs: dict[str, Any]) -> dict[str, Any]:
        """Overlay user inputs on the tool defaults."""
        merged = dict(self.default_inputs)
        merged.update({k: v for k, v in inputs.items() if v is not None})
        return merged


# ---------------------------------------------------------------------------
# Registry class
# ---------------------------------------------------------------------------

class ToolRegistry:
    """In-memory lookup table of tool/model pairs."""

    def __init__(self) -> None:
        self._specs: dict[tuple[str, str | None], ToolSpec] = {}
        self._default_variant: dict[str, str | None] = {}

    def register(self, spec: ToolSpec, *, default: bool = False) -> None:
        self._specs[(spec.tool_id, spec.model_variant)] = spec
        if default or spec.tool_id not in self._default_variant:
            self._default_variant[spec.tool_id] = spec.model_variant

    def resolve(self, tool_id: str, model_variant: str | None = None) -> ToolSpec:
        """Return the ToolSpec for a pair or raise SubmissionError(UnconfiguredTool)."""
        if tool_id not in self._default_variant:
            raise SubmissionError(ErrorKind.UNCONFIGURED_TOOL, f"Tool not configured: {tool_id}")
        variant = model_variant or self._default_variant[tool_id]
        spec = self._specs.get((tool_id, variant))
        if spec is None:
            raise SubmissionError(
                ErrorKind.UNCONFIGURED_TOOL,
                f"Tool {tool_id} has no model variant '{variant}'",
            )
        return spec

    def has_variants(self, tool_id: str) -> bool:
        return any(t == tool_id and v is not None for t, v in self._specs)

    def pairs(self) -> list[tuple[str, str | None]]:
        return list(self._specs.keys())


# ---------------------------------------------------------------------------
# Build the global registry
# ---------------------------------------------------------------------------

_IMAGE_TO_VIDEO_DEFAULTS: dict[str, Any] = {
    "negative_prompt": "",
    "aspect_ratio": "1:1",
    "resolution": "720p",
    "duration": 5,
    "ingredients_mode": "creative",
    "cfg_scale": 0.5,
}

TOOL_REGISTRY = ToolRegistry()

# fal.ai queue
TOOL_REGISTRY.register(ToolSpec(
    "image-to-video", "Image to Video", FAMILY_QUEUE, PROVIDER_PIKA, "prompt",
    model_variant="pika", asset=ASSET_REQUIRED_URL,
    default_inputs=_IMAGE_TO_VIDEO_DEFAULTS,
), default=True)
TOOL_REGISTRY.register(ToolSpec(
    "image-to-video", "Image to Video", FAMILY_QUEUE, PROVIDER_KLING, "prompt",
    model_variant="kling", asset=ASSET_REQUIRED_URL,
    default_inputs=_IMAGE_TO_VIDEO_DEFAULTS,
))

# n8n job-id webhook
TOOL_REGISTRY.register(ToolSpec(
    "text-to-speech", "Text to Speech", FAMILY_JOB_WEBHOOK, PROVIDER_TEXT_TO_SPEECH, "prompt",
    probe_first=True,
))

# n8n single-call webhooks
TOOL_REGISTRY.register(ToolSpec(
    "brief-to-images", "Brief to Images", FAMILY_SINGLE_CALL, PROVIDER_BRIEF_TO_IMAGES, "prompt",
    result_is_input_asset=True,
    default_inputs={"AR": "1:1"},
))
TOOL_REGISTRY.register(ToolSpec(
    "social-media-generator", "Social Media Generator", FAMILY_SINGLE_CALL, PROVIDER_SOCIAL_MEDIA,
    "image_prompt", asset=ASSET_OPTIONAL,
))
TOOL_REGISTRY.register(ToolSpec(
    "image-editing", "Image Editing", FAMILY_SINGLE_CALL, PROVIDER_IMAGE_EDITING,
    "image_prompt", asset=ASSET_OPTIONAL, default_inputs={"aspect_ratio": "1:1"},
))


logger.debug(
    "Tool registry initialized: %d tool/model pairs",
    len(TOOL_REGISTRY.pairs()),
)
