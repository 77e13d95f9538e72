"""Single-call webhook provider.

One multipart POST; the response body is the result (JSON or a binary
file whose content type is sniffed from the headers). No polling phase.
"""

from __future__ import annotations

import logging
from typing import Any

from neoai.services.providers.base import (
    Asset,
    PollState,
    ProviderAdapter,
    StatusCheck,
    Submission,
    multipart,
    read_body,
)

logger = logging.getLogger(__name__)


class SingleCallWebhookAdapter(ProviderAdapter):
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
        logger.info(
            "Webhook %s responded (%s, %d bytes)",
            self.name, content_type or "unknown", len(response.content),
        )
        return Submission(request_id=None, terminal=True, payload=payload, content_type=content_type)

    async def check_status(self, request_id: str) -> Any:
        # Synchronous provider: the result arrived with the submission
        return None

    def classify(self, payload: Any) -> StatusCheck:
        return StatusCheck(PollState.SUCCEEDED, payload=payload)
