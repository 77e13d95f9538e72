"""Prompt enhancement via an n8n webhook that answers with plain text."""

from __future__ import annotations

import logging

import httpx

from neoai.errors import ErrorKind, SubmissionError

logger = logging.getLogger(__name__)


class PromptEnhancer:
    def __init__(self, http_client: httpx.AsyncClient, webhook_url: str) -> None:
        self.client = http_client
        self.webhook_url = webhook_url

    async def enhance(self, prompt: str) -> str:
        """Return the enhanced prompt, trimmed.

        Raises:
            SubmissionError: ValidationFailed for an empty prompt,
                SubmissionRejected for transport errors, non-2xx or an empty body.
        """
        if not prompt or not prompt.strip():
            raise SubmissionError(
                ErrorKind.VALIDATION_FAILED,
                "Please enter a prompt first before enhancing",
            )

        try:
            response = await self.client.post(
                self.webhook_url,
                files={"prompt": (None, prompt)},
                headers={"Accept": "*/*"},
            )
        except httpx.HTTPError as e:
            raise SubmissionError(ErrorKind.SUBMISSION_REJECTED, f"Failed to enhance prompt: {e}") from e

        if not response.is_success:
            raise SubmissionError(
                ErrorKind.SUBMISSION_REJECTED,
                f"Failed to enhance prompt: {response.status_code}",
            )

        enhanced = response.text.strip()
        if not enhanced:
            raise SubmissionError(ErrorKind.SUBMISSION_REJECTED, "Empty response from enhancement service")

        logger.info("Prompt enhanced (%d -> %d chars)", len(prompt), len(enhanced))
        return enhanced
