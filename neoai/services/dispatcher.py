"""Job submission and orchestration.

Control flow for one Job:
    JobDispatcher.prepare   (lookup + validation, no side effects)
    JobDispatcher.dispatch  (probe → stage → adapter.submit)
    StatusPoller.poll       (unless the provider answered synchronously)
    normalize → MediaStore.persist → HistoryStore.append

``JobOrchestrator`` owns the single active Job of a workspace; a second
submission while one is in flight is rejected with ``Busy``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Any, Callable

import httpx

from neoai.config import ProviderConfig, Settings, get_settings, provider_config
from neoai.errors import ErrorKind, GenerationError, StagingError, SubmissionError
from neoai.schemas.job import ErrorResult, HistoryEntry, Job, JobStatus, downloadable_url
from neoai.services.asset_stager import AssetStager
from neoai.services.connectivity import probe
from neoai.services.history import HistoryStore
from neoai.services.media_store import MediaStore
from neoai.services.prompt_enhancer import PromptEnhancer
from neoai.services.providers import build_adapter
from neoai.services.providers.base import Asset, ProviderAdapter, Submission
from neoai.services.result_normalizer import normalize
from neoai.services.status_poller import PollConfig, ProgressCallback, Sleeper, StatusPoller
from neoai.services.tool_registry import TOOL_REGISTRY, ToolRegistry, ToolSpec

logger = logging.getLogger(__name__)

WarningCallback = Callable[[str], None]

LEAVE_WARNING = "A generation process is currently running. Are you sure you want to leave?"

# Pre-poll progress milestones
PROGRESS_STAGING = 10.0
PROGRESS_STAGED = 30.0
PROGRESS_SUBMITTING = 40.0
PROGRESS_SUBMITTED = 50.0


@dataclass
class JobHandle:
    """Everything needed to drive one submitted Job to a terminal state."""
    job: Job
    spec: ToolSpec
    config: ProviderConfig
    adapter: ProviderAdapter
    submission: Submission | None = None


class JobDispatcher:
    """Selects the adapter for a tool, stages inputs and submits the job."""

    def __init__(
        self,
        http_client: httpx.AsyncClient,
        *,
        settings: Settings | None = None,
        registry: ToolRegistry = TOOL_REGISTRY,
        stager: AssetStager | None = None,
        on_progress: ProgressCallback | None = None,
        on_warning: WarningCallback | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.client = http_client
        self.registry = registry
        self.stager = stager or AssetStager(http_client, self.settings)
        self._on_progress = on_progress
        self._on_warning = on_warning

    def prepare(
        self,
        tool_id: str,
        inputs: dict[str, Any],
        *,
        model_variant: str | None = None,
        asset: Asset | None = None,
    ) -> JobHandle:
        """Resolve the adapter and check preconditions; performs no I/O.

        Raises:
            SubmissionError: UnconfiguredTool or ValidationFailed.
        """
        if model_variant is None and self.registry.has_variants(tool_id):
            model_variant = inputs.get("model")
        spec = self.registry.resolve(tool_id, model_variant)
        try:
            config = provider_config(spec.provider, self.settings)
        except KeyError as e:
            raise SubmissionError(ErrorKind.UNCONFIGURED_TOOL, str(e)) from e

        merged = spec.with_defaults(inputs)
        if spec.model_variant is not None:
            merged["model"] = spec.model_variant
        validate_preconditions(spec, config, merged, asset)

        job = Job.create(spec.tool_id, merged, spec.model_variant)
        adapter = build_adapter(spec, config, self.client)
        return JobHandle(job=job, spec=spec, config=config, adapter=adapter)

    async def dispatch(self, handle: JobHandle, asset: Asset | None = None) -> JobHandle:
        """Probe, stage and submit a prepared Job.

        Raises:
            SubmissionError: AssetUploadFailed or SubmissionRejected.
        """
        job, spec = handle.job, handle.spec
        job.transition(JobStatus.SUBMITTING)

        if spec.probe_first:
            self._report(job, 0.0, "Checking backend connection...")
            result = await probe(handle.config.base_url, self.client, timeout=self.settings.PROBE_TIMEOUT)
            if not result.reachable and self._on_warning is not None:
                self._on_warning(f"Backend may be unreachable: {result.detail}")

        asset_url: str | None = None
        if spec.requires_asset:
            self._report(job, PROGRESS_STAGING, "Uploading image...")
            try:
                asset_url = await self.stager.stage(asset)
            except StagingError as e:
                raise SubmissionError(ErrorKind.ASSET_UPLOAD_FAILED, e.message) from e
            job.input_asset_url = asset_url
            self._report(job, PROGRESS_STAGED, "Image uploaded")

        self._report(job, PROGRESS_SUBMITTING, f"Submitting request ({handle.adapter.name})...")
        forward_asset = None if spec.requires_asset else asset
        submission = await handle.adapter.submit(job.inputs, asset=forward_asset, asset_url=asset_url)
        handle.submission = submission

        if not submission.terminal:
            job.provider_request_id = submission.request_id
            job.transition(JobStatus.PROCESSING)
        self._report(job, PROGRESS_SUBMITTED, "Processing your request...")
        logger.info(
            "Job %s submitted to %s (request=%s, sync=%s)",
            job.id, handle.adapter.name, submission.request_id, submission.terminal,
        )
        return handle

    async def submit(
        self,
        tool_id: str,
        inputs: dict[str, Any],
        *,
        model_variant: str | None = None,
        asset: Asset | None = None,
    ) -> JobHandle:
        """Prepare and dispatch in one call."""
        handle = self.prepare(tool_id, inputs, model_variant=model_variant, asset=asset)
        return await self.dispatch(handle, asset)

    def _report(self, job: Job, percent: float, status_line: str) -> None:
        job.advance_progress(percent, status_line)
        if self._on_progress is not None:
            self._on_progress(job)


def validate_preconditions(
    spec: ToolSpec,
    config: ProviderConfig,
    inputs: dict[str, Any],
    asset: Asset | None,
) -> None:
    """Credential, then asset, then the required text parameter."""
    if config.requires_credential and not config.has_credential:
        raise SubmissionError(
            ErrorKind.VALIDATION_FAILED,
            f"API key missing for provider '{config.name}'",
        )
    if spec.requires_asset and (asset is None or not asset.data):
        raise SubmissionError(ErrorKind.VALIDATION_FAILED, "Please upload an image first")
    value = inputs.get(spec.required_param)
    if value is None or not str(value).strip():
        label = spec.required_param.replace("_", " ")
        article = "an" if label[:1] in "aeiou" else "a"
        raise SubmissionError(ErrorKind.VALIDATION_FAILED, f"Please enter {article} {label}")


class JobOrchestrator:
    """Runs Jobs end to end and records every terminal outcome."""

    def __init__(
        self,
        dispatcher: JobDispatcher,
        history: HistoryStore,
        *,
        media_store: MediaStore | None = None,
        enhancer: PromptEnhancer | None = None,
        sleep: Sleeper = asyncio.sleep,
        on_progress: ProgressCallback | None = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.history = history
        self.media_store = media_store
        self.enhancer = enhancer
        self._sleep = sleep
        self._on_progress = on_progress
        self._active: Job | None = None

    @property
    def is_busy(self) -> bool:
        return self._active is not None

    def leave_warning(self) -> str | None:
        """Advisory message for a navigation guard while a Job runs."""
        return LEAVE_WARNING if self.is_busy else None

    async def run(
        self,
        tool_id: str,
        inputs: dict[str, Any],
        *,
        model_variant: str | None = None,
        asset: Asset | None = None,
    ) -> Job:
        """Submit, poll, normalize and record one Job; returns it in a terminal state.

        Raises:
            SubmissionError: Busy, UnconfiguredTool or ValidationFailed. These
                are raised before anything is recorded; every later failure is
                returned as a Failed Job instead.
        """
        if self._active is not None:
            raise SubmissionError(ErrorKind.BUSY, "Please wait for the current generation to complete")

        handle = self.dispatcher.prepare(tool_id, inputs, model_variant=model_variant, asset=asset)
        job = handle.job
        self._active = job
        try:
            try:
                await self.dispatcher.dispatch(handle, asset)
                raw, content_type = await self._await_payload(handle)
                self._finish(handle, raw, content_type)
            except GenerationError as e:
                logger.warning("Job %s failed (%s): %s", job.id, e.kind.value, e.message)
                job.fail(e.kind, e.message)
            self.history.append(HistoryEntry.from_job(job, handle.spec.tool_name))
            return job
        finally:
            self._active = None

    async def enhance_prompt(self, prompt: str) -> str:
        if self.is_busy:
            raise SubmissionError(ErrorKind.BUSY, "Please wait for the current operation to complete")
        if self.enhancer is None:
            raise SubmissionError(ErrorKind.UNCONFIGURED_TOOL, "Prompt enhancement is not configured")
        return await self.enhancer.enhance(prompt)

    async def _await_payload(self, handle: JobHandle) -> tuple[Any, str | None]:
        submission = handle.submission
        if submission is not None and submission.terminal:
            return submission.payload, submission.content_type

        poller = StatusPoller(
            PollConfig(interval=handle.config.poll_interval, max_attempts=handle.config.max_attempts),
            sleep=self._sleep,
            on_progress=self._on_progress,
        )
        return await poller.poll(handle.job, handle.adapter), None

    def _finish(self, handle: JobHandle, raw: Any, content_type: str | None) -> None:
        job = handle.job
        result = normalize(handle.adapter.extract_result(raw), content_type)
        if self.media_store is not None:
            result = self.media_store.persist(job.id, result)

        if isinstance(result, ErrorResult):
            job.fail(result.kind, result.message)
            return
        if handle.spec.result_is_input_asset:
            job.input_asset_url = downloadable_url(result) or job.input_asset_url
        job.complete(result)
        logger.info("Job %s completed: %s", job.id, result.type)
