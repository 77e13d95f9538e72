"""Status poller — bounded, fixed-interval polling of a provider job.

States per cycle: Scheduled -> Checking -> {Scheduled (retry) | Terminal}.

* transport/HTTP error : progress min(95, attempts/max*100), retry
* pending payload      : progress min(90, attempts/max*100), retry
* terminal success     : progress 100, return the raw payload
* terminal failure     : stop immediately with the provider message
* ceiling reached      : PollingError(TimeoutExceeded)

The loop is iterative and owns its attempt counter; a Job is never resumed
mid-way, a new Job starts a new loop.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from neoai.errors import ErrorKind, PollingError, PollingTransportError
from neoai.schemas.job import Job
from neoai.services.providers.base import PollState, ProviderAdapter

logger = logging.getLogger(__name__)

TRANSPORT_PROGRESS_CAP = 95.0
PENDING_PROGRESS_CAP = 90.0
TIMEOUT_MESSAGE = "Processing timeout - maximum polling attempts reached"
DEFAULT_FAILURE_MESSAGE = "Processing failed"

ProgressCallback = Callable[[Job], None]
Sleeper = Callable[[float], Awaitable[Any]]


@dataclass
class PollConfig:
    """Polling bounds for one provider."""
    interval: float
    max_attempts: int

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be at least 1")
        if self.interval < 0:
            raise ValueError("interval must not be negative")


def estimate_progress(attempts: int, max_attempts: int, cap: float) -> float:
    return min(cap, attempts / max_attempts * 100)


class StatusPoller:
    """Drives ``adapter.check_status`` until a terminal state or the ceiling."""

    def __init__(
        self,
        config: PollConfig,
        *,
        sleep: Sleeper = asyncio.sleep,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.config = config
        self._sleep = sleep
        self._on_progress = on_progress

    async def poll(self, job: Job, adapter: ProviderAdapter) -> Any:
        """Poll until terminal; returns the raw success payload.

        Raises:
            PollingError: ProviderReportedFailure or TimeoutExceeded.
        """
        if not job.provider_request_id:
            raise PollingError(ErrorKind.SUBMISSION_REJECTED, "Job has no provider request id")

        max_attempts = self.config.max_attempts
        job.max_attempts = max_attempts

        while True:
            attempt = job.record_attempt()
            try:
                payload = await adapter.check_status(job.provider_request_id)
            except PollingTransportError as e:
                logger.warning(
                    "%s status check %d/%d failed: %s",
                    adapter.name, attempt, max_attempts, e.message,
                )
                self._report(
                    job,
                    estimate_progress(attempt, max_attempts, TRANSPORT_PROGRESS_CAP),
                    f"Checking status... ({attempt}/{max_attempts})",
                )
                if attempt >= max_attempts:
                    raise PollingError(ErrorKind.TIMEOUT_EXCEEDED, f"{TIMEOUT_MESSAGE}: {e.message}") from e
                await self._sleep(self.config.interval)
                continue

            check = adapter.classify(payload)

            if check.state == PollState.SUCCEEDED:
                logger.info("%s job %s completed after %d checks", adapter.name, job.provider_request_id, attempt)
                return check.payload

            if check.state == PollState.FAILED:
                message = check.message or DEFAULT_FAILURE_MESSAGE
                logger.info("%s job %s failed: %s", adapter.name, job.provider_request_id, message)
                raise PollingError(ErrorKind.PROVIDER_REPORTED_FAILURE, message)

            logger.debug("%s job %s pending (%d/%d)", adapter.name, job.provider_request_id, attempt, max_attempts)
            self._report(
                job,
                estimate_progress(attempt, max_attempts, PENDING_PROGRESS_CAP),
                check.message or f"Processing... ({attempt}/{max_attempts})",
            )
            if attempt >= max_attempts:
                raise PollingError(ErrorKind.TIMEOUT_EXCEEDED, TIMEOUT_MESSAGE)
            await self._sleep(self.config.interval)

    def _report(self, job: Job, percent: float, status_line: str) -> None:
        job.advance_progress(percent, status_line)
        if self._on_progress is not None:
            self._on_progress(job)
