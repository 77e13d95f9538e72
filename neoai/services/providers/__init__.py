"""Provider adapter implementations.

Each adapter implements the same capability interface:
  submit → check_status → classify → extract_result

``build_adapter`` is the static lookup from a ToolSpec to its adapter.
"""

from __future__ import annotations

import httpx

from neoai.config import PROVIDER_KLING, PROVIDER_PIKA, ProviderConfig
from neoai.errors import ErrorKind, SubmissionError
from neoai.services.providers.base import ProviderAdapter
from neoai.services.providers.fal_queue import KlingQueueAdapter, PikaQueueAdapter
from neoai.services.providers.job_webhook import JobWebhookAdapter
from neoai.services.providers.webhook import SingleCallWebhookAdapter
from neoai.services.tool_registry import (
    FAMILY_JOB_WEBHOOK,
    FAMILY_QUEUE,
    FAMILY_SINGLE_CALL,
    ToolSpec,
)

_QUEUE_ADAPTERS: dict[str, type[ProviderAdapter]] = {
    PROVIDER_PIKA: PikaQueueAdapter,
    PROVIDER_KLING: KlingQueueAdapter,
}

_FAMILY_ADAPTERS: dict[str, type[ProviderAdapter]] = {
    FAMILY_SINGLE_CALL: SingleCallWebhookAdapter,
    FAMILY_JOB_WEBHOOK: JobWebhookAdapter,
}


def adapter_class(spec: ToolSpec) -> type[ProviderAdapter]:
    if spec.family == FAMILY_QUEUE:
        cls = _QUEUE_ADAPTERS.get(spec.provider)
    else:
        cls = _FAMILY_ADAPTERS.get(spec.family)
    if cls is None:
        raise SubmissionError(
            ErrorKind.UNCONFIGURED_TOOL,
            f"No adapter for {spec.tool_id} ({spec.family}/{spec.provider})",
        )
    return cls


def build_adapter(spec: ToolSpec, config: ProviderConfig, http_client: httpx.AsyncClient) -> ProviderAdapter:
    return adapter_class(spec)(config, http_client)
