"""Job-id webhook provider (n8n text-to-speech).

Async task pattern:
1. POST multipart to the webhook -> JSON ``{jobId|id, status?}`` or a direct result
2. GET  the status endpoint (``/webhook/`` replaced by ``/status/``) with ``?jobId=``
3. Terminal on ``completed`` with a ``result`` or on ``failed``
"""

from __future__ import annotations

import logging
from typing import Any

from neoai.errors import ErrorKind, SubmissionError
from neoai.services.providers.base import (
    Asset,
    PollState,
    ProviderAdapter,
    StatusCheck,
    Submission,
    multipart,
    read_body,
)
from neoai.services.result_normalizer import error_message

logger = logging.getLogger(__name__)


class JobWebhookAdapter(ProviderAdapter):
    async def submit(
        self,
        inputs: dict[str, Any],
        *,
        asset: Asset | None = None,
        asset_url: str | None = None,
    ) -> Submission:
        response = await self._post(
            self.config.base_url,
            files=multipart(inputs, asset),
            headers={"Accept": "*/*"},
        )
        payload, content_type = read_body(response)

        if not isinstance(payload, dict):
            return Submission(request_id=None, terminal=True, payload=payload, content_type=content_type)

        job_id = payload.get("jobId") or payload.get("id")
        if not job_id and payload.get("status") != "processing":
            # Backend answered synchronously
            return Submission(request_id=None, terminal=True, payload=payload, content_type=content_type)
        if not job_id:
            raise SubmissionError(
                ErrorKind.SUBMISSION_REJECTED,
                "Backend reported processing but returned no jobId",
            )

        logger.info("Webhook job accepted: %s (provider=%s)", job_id, self.name)
        return Submission(request_id=str(job_id))

    async def check_status(self, request_id: str) -> Any:
        return await self._get_json(
            self.config.status_url or self.config.base_url.replace("/webhook/", "/status/"),
            params={"jobId": request_id},
            headers={"Accept": "application/json"},
        )

    def classify(self, payload: Any) -> StatusCheck:
        if not isinstance(payload, dict):
            return StatusCheck(PollState.PENDING)

        status = payload.get("status")
        message = payload.get("message") if isinstance(payload.get("message"), str) else None

        if status == "completed" and payload.get("result"):
            return StatusCheck(PollState.SUCCEEDED, payload=payload)
        if status == "failed":
            return StatusCheck(PollState.FAILED, payload=payload, message=error_message(payload, "Processing failed"))
        if status == "processing":
            return StatusCheck(PollState.PENDING, payload=payload, message=message)
        return StatusCheck(PollState.PENDING, payload=payload, message=message or f"Status: {status}")

    def extract_result(self, payload: Any) -> Any:
        if isinstance(payload, dict) and "result" in payload:
            return payload["result"]
        return payload
