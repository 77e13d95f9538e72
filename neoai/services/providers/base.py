"""Provider adapter capability interface.

Every provider family implements the same four steps:
  submit -> check_status -> classify (is it terminal?) -> extract_result
so the dispatcher and poller never branch on which provider they drive.
"""

from __future__ import annotations

import enum
import json
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any

import httpx

from neoai.config import ProviderConfig
from neoai.errors import ErrorKind, PollingTransportError, SubmissionError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Asset:
    """A local binary input (e.g. an uploaded image)."""
    data: bytes
    filename: str = "upload.png"
    content_type: str = "image/png"


class PollState(str, enum.Enum):
    PENDING = "pending"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class Submission:
    """Outcome of the initial submission call.

    ``terminal`` submissions carry their payload directly and skip polling;
    otherwise ``request_id`` is the handle used for status checks.
    """
    request_id: str | None
    terminal: bool = False
    payload: Any = None
    content_type: str | None = None


@dataclass(frozen=True)
class StatusCheck:
    """Classification of one status payload."""
    state: PollState
    payload: Any = None
    message: str | None = None


class ProviderAdapter(ABC):
    """Abstract base class for all provider families."""

    def __init__(self, config: ProviderConfig, http_client: httpx.AsyncClient) -> None:
        self.config = config
        self.client = http_client

    @property
    def name(self) -> str:
        return self.config.name

    def auth_headers(self) -> dict[str, str]:
        return {}

    @abstractmethod
    async def submit(
        self,
        inputs: dict[str, Any],
        *,
        asset: Asset | None = None,
        asset_url: str | None = None,
    ) -> Submission:
        """Issue the submission call; raises SubmissionError(SubmissionRejected)."""
        ...

    @abstractmethod
    async def check_status(self, request_id: str) -> Any:
        """Fetch one status payload; raises PollingTransportError on transient failure."""
        ...

    @abstractmethod
    def classify(self, payload: Any) -> StatusCheck:
        """Decide whether a status payload is pending, succeeded or failed."""
        ...

    def extract_result(self, payload: Any) -> Any:
        """Reduce a terminal success payload to what the normalizer classifies."""
        return payload

    # -- shared HTTP helpers -------------------------------------------------

    async def _post(self, url: str, **kwargs: Any) -> httpx.Response:
        try:
            response = await self.client.post(url, **kwargs)
        except httpx.HTTPError as e:
            raise SubmissionError(
                ErrorKind.SUBMISSION_REJECTED,
                f"Failed to submit request: {type(e).__name__}: {e}",
            ) from e
        if not response.is_success:
            raise SubmissionError(
                ErrorKind.SUBMISSION_REJECTED,
                f"Failed to submit request: {response.status_code} - {response.text}",
            )
        return response

    async def _get_json(self, url: str, **kwargs: Any) -> Any:
        """GET a status payload, mapping every transport/HTTP/decoding failure
        to PollingTransportError so the poller retries it."""
        try:
            response = await self.client.get(url, **kwargs)
        except httpx.HTTPError as e:
            raise PollingTransportError(f"{type(e).__name__}: {e}") from e
        if not response.is_success:
            raise PollingTransportError(f"status check returned HTTP {response.status_code}")
        try:
            return response.json()
        except (json.JSONDecodeError, UnicodeDecodeError) as e:
            raise PollingTransportError(f"status check returned invalid JSON: {e}") from e


def read_body(response: httpx.Response) -> tuple[Any, str | None]:
    """Return (payload, content_type); JSON bodies are decoded, others kept as bytes."""
    content_type = response.headers.get("content-type")
    if content_type and "application/json" in content_type:
        try:
            return response.json(), content_type
        except (json.JSONDecodeError, UnicodeDecodeError):
            logger.warning("Response declared JSON but did not decode; keeping raw bytes")
    return response.content, content_type


def multipart(inputs: dict[str, Any], asset: Asset | None = None) -> list[tuple[str, tuple[Any, ...]]]:
    """Multipart parts: the asset under ``image`` plus every non-null input
    as a text field, so the body is multipart even without a file."""
    parts: list[tuple[str, tuple[Any, ...]]] = []
    if asset is not None:
        parts.append(("image", (asset.filename, asset.data, asset.content_type)))
    for key, value in inputs.items():
        if value is not None:
            parts.append((key, (None, str(value))))
    return parts
