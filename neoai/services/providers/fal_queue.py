"""fal.ai queue providers (Pika 2.2 scenes, Kling 2.5 turbo image-to-video).

Async task pattern:
1. POST {base_url} with a JSON body -> request id (``request_id`` | ``id`` | ``data.request_id``)
2. GET  {status_url}/{request_id}   -> ``status``/``state`` plus the produced video

Both backends share the polling shape; they differ only in the submission body.
"""

from __future__ import annotations

import logging
from abc import abstractmethod
from typing import Any

from neoai.config import mask_key
from neoai.errors import ErrorKind, SubmissionError
from neoai.services.providers.base import (
    Asset,
    PollState,
    ProviderAdapter,
    StatusCheck,
    Submission,
)
from neoai.services.result_normalizer import (
    REQUEST_ID_PATHS,
    VIDEO_RULES,
    error_message,
    first_match,
    first_present,
)

logger = logging.getLogger(__name__)


def _as_int(value: Any, default: int) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _as_float(value: Any, default: float) -> float:
    try:
        return float(value)
    except (TypeError, ValueError):
        return default


class FalQueueAdapter(ProviderAdapter):
    """Shared submit/poll logic for fal.ai queue backends."""

    def auth_headers(self) -> dict[str, str]:
        # fal auth uses Authorization: Key <FAL_KEY>
        return {
            "Authorization": f"Key {self.config.credential}",
            "Content-Type": "application/json",
        }

    @abstractmethod
    def build_payload(self, inputs: dict[str, Any], image_url: str) -> dict[str, Any]:
        """Provider-specific JSON submission body."""
        ...

    async def submit(
        self,
        inputs: dict[str, Any],
        *,
        asset: Asset | None = None,
        asset_url: str | None = None,
    ) -> Submission:
        if not asset_url:
            raise SubmissionError(ErrorKind.VALIDATION_FAILED, f"{self.name} needs a staged image URL")

        body = self.build_payload(inputs, asset_url)
        logger.info(
            "Submitting %s request (key=%s)", self.name, mask_key(self.config.credential),
        )
        response = await self._post(self.config.base_url, json=body, headers=self.auth_headers())

        try:
            data = response.json()
        except ValueError as e:
            raise SubmissionError(ErrorKind.SUBMISSION_REJECTED, f"Invalid JSON from {self.name}: {e}") from e

        request_id = first_present(data, REQUEST_ID_PATHS)
        if not request_id:
            raise SubmissionError(ErrorKind.SUBMISSION_REJECTED, "No request_id found in response")

        logger.info("%s request queued: %s", self.name, request_id)
        return Submission(request_id=request_id)

    async def check_status(self, request_id: str) -> Any:
        status_base = (self.config.status_url or "").rstrip("/")
        return await self._get_json(f"{status_base}/{request_id}", headers=self.auth_headers())

    def classify(self, payload: Any) -> StatusCheck:
        if not isinstance(payload, dict):
            return StatusCheck(PollState.PENDING)

        status = str(payload.get("status") or payload.get("state") or "").lower()
        message = payload.get("message") if isinstance(payload.get("message"), str) else None

        if status == "completed":
            return StatusCheck(PollState.SUCCEEDED, payload=payload)
        if status == "failed":
            return StatusCheck(PollState.FAILED, payload=payload, message=error_message(payload, "Processing failed"))
        # IN_QUEUE / IN_PROGRESS / unknown => keep polling
        return StatusCheck(PollState.PENDING, payload=payload, message=message)

    def extract_result(self, payload: Any) -> Any:
        video_url = first_match(payload, VIDEO_RULES)
        if video_url:
            return {"video_url": video_url, "type": "video/mp4"}
        return payload


class PikaQueueAdapter(FalQueueAdapter):
    def build_payload(self, inputs: dict[str, Any], image_url: str) -> dict[str, Any]:
        return {
            "image_urls": [image_url],
            "prompt": inputs.get("prompt", ""),
            "negative_prompt": inputs.get("negative_prompt") or "",
            "aspect_ratio": inputs.get("aspect_ratio") or "1:1",
            "resolution": inputs.get("resolution") or "720p",
            "duration": _as_int(inputs.get("duration"), 5),
            "ingredients_mode": inputs.get("ingredients_mode") or "creative",
        }


class KlingQueueAdapter(FalQueueAdapter):
    def build_payload(self, inputs: dict[str, Any], image_url: str) -> dict[str, Any]:
        return {
            "prompt": inputs.get("prompt", ""),
            "image_url": image_url,
            "duration": str(_as_int(inputs.get("duration"), 5)),
            "negative_prompt": inputs.get("negative_prompt") or "",
            "cfg_scale": _as_float(inputs.get("cfg_scale"), 0.5),
        }
