"""Pydantic v2 schemas for Jobs, canonical Results and history entries."""

from __future__ import annotations

import copy
import enum
import uuid
from datetime import datetime, timezone
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, field_validator
from pydantic.alias_generators import to_camel

from neoai.errors import ErrorKind, JobStateError


class JobStatus(str, enum.Enum):
    """Job lifecycle statuses."""

    IDLE = "Idle"
    SUBMITTING = "Submitting"
    PROCESSING = "Processing"
    COMPLETED = "Completed"
    FAILED = "Failed"


TERMINAL_STATUSES = frozenset({JobStatus.COMPLETED, JobStatus.FAILED})

# Forward-only transitions; Processing may be skipped by synchronous providers
_ALLOWED_TRANSITIONS: dict[JobStatus, frozenset[JobStatus]] = {
    JobStatus.IDLE: frozenset({JobStatus.SUBMITTING}),
    JobStatus.SUBMITTING: frozenset({JobStatus.PROCESSING, JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.PROCESSING: frozenset({JobStatus.COMPLETED, JobStatus.FAILED}),
    JobStatus.COMPLETED: frozenset(),
    JobStatus.FAILED: frozenset(),
}


class _CanonicalModel(BaseModel):
    """Base for persisted shapes: camelCase on the wire, base64 for bytes."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        frozen=True,
        ser_json_bytes="base64",
        val_json_bytes="base64",
    )


# ---------------------------------------------------------------------------
# Canonical Result (tagged union)
# ---------------------------------------------------------------------------

class VideoResult(_CanonicalModel):
    type: Literal["video"] = "video"
    url: str


class ImageResult(_CanonicalModel):
    type: Literal["image"] = "image"
    url: str


class AudioResult(_CanonicalModel):
    type: Literal["audio"] = "audio"
    url: str


class RawBlobResult(_CanonicalModel):
    """Opaque payload kept for diagnostic display (binary or JSON)."""

    type: Literal["raw_blob"] = "raw_blob"
    data: bytes = Field(alias="bytes")
    mime_type: str = "application/octet-stream"


class ErrorResult(_CanonicalModel):
    type: Literal["error"] = "error"
    kind: ErrorKind
    message: str


Result = Annotated[
    Union[VideoResult, ImageResult, AudioResult, RawBlobResult, ErrorResult],
    Field(discriminator="type"),
]
RESULT_ADAPTER: TypeAdapter[Any] = TypeAdapter(Result)
RESULT_TYPES = (VideoResult, ImageResult, AudioResult, RawBlobResult, ErrorResult)
RESULT_TAGS = frozenset({"video", "image", "audio", "raw_blob", "error"})
MEDIA_RESULT_TYPES = (VideoResult, ImageResult, AudioResult)


def downloadable_url(result: Any) -> str | None:
    """Return the url a user can download for a media result, else None."""
    if isinstance(result, MEDIA_RESULT_TYPES):
        return result.url
    return None


# ---------------------------------------------------------------------------
# Job
# ---------------------------------------------------------------------------

def new_job_id() -> str:
    return uuid.uuid4().hex


class Job(BaseModel):
    """One generation attempt from submission to terminal state.

    Mutated only through its methods; any mutation after a terminal state
    raises JobStateError.
    """

    id: str = Field(default_factory=new_job_id)
    tool_id: str
    model_variant: str | None = None
    provider_request_id: str | None = None
    status: JobStatus = JobStatus.IDLE
    attempts: int = 0
    max_attempts: int = 0
    progress_percent: float = 0.0
    status_line: str = ""
    inputs: dict[str, Any] = Field(default_factory=dict)
    input_asset_url: str | None = None
    result: Result | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))

    @classmethod
    def create(cls, tool_id: str, inputs: dict[str, Any], model_variant: str | None = None) -> Job:
        return cls(tool_id=tool_id, model_variant=model_variant, inputs=copy.deepcopy(dict(inputs)))

    def __setattr__(self, name: str, value: Any) -> None:
        if self.__dict__.get("status") in TERMINAL_STATUSES:
            raise JobStateError(f"Job {self.id} is {self.status.value} and can no longer change")
        super().__setattr__(name, value)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def transition(self, new_status: JobStatus) -> None:
        if new_status not in _ALLOWED_TRANSITIONS[self.status]:
            raise JobStateError(
                f"Illegal job transition {self.status.value} -> {new_status.value}"
            )
        self.status = new_status

    def record_attempt(self) -> int:
        if self.status != JobStatus.PROCESSING:
            raise JobStateError(f"Attempts only count while Processing (job is {self.status.value})")
        self.attempts += 1
        return self.attempts

    def advance_progress(self, percent: float, status_line: str | None = None) -> None:
        """Raise the progress estimate; never lowers it and never reaches 100."""
        capped = max(0.0, min(float(percent), 99.0))
        if capped > self.progress_percent:
            self.progress_percent = capped
        if status_line is not None:
            self.status_line = status_line

    def complete(self, result: Any) -> None:
        self.result = result
        self.progress_percent = 100.0
        self.status_line = ""
        self.transition(JobStatus.COMPLETED)

    def fail(self, kind: ErrorKind, message: str) -> None:
        self.result = ErrorResult(kind=kind, message=message)
        self.status_line = ""
        self.transition(JobStatus.FAILED)


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------

class HistoryEntry(_CanonicalModel):
    """Durable record of one terminal Job."""

    id: str
    tool_id: str
    tool_name: str
    timestamp: datetime
    status: JobStatus
    inputs_snapshot: dict[str, Any]
    result: Result
    input_asset_url: str | None = None

    @field_validator("status")
    @classmethod
    def _terminal_only(cls, value: JobStatus) -> JobStatus:
        if value not in TERMINAL_STATUSES:
            raise ValueError("history entries record terminal jobs only")
        return value

    @classmethod
    def from_job(cls, job: Job, tool_name: str) -> HistoryEntry:
        if not job.is_terminal or job.result is None:
            raise JobStateError(f"Job {job.id} is not terminal; nothing to record")
        return cls(
            id=job.id,
            tool_id=job.tool_id,
            tool_name=tool_name,
            timestamp=datetime.now(timezone.utc),
            status=job.status,
            inputs_snapshot=copy.deepcopy(job.inputs),
            result=job.result,
            input_asset_url=job.input_asset_url,
        )


HISTORY_ADAPTER: TypeAdapter[list[HistoryEntry]] = TypeAdapter(list[HistoryEntry])
