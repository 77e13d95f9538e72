"""Error taxonomy shared by the dispatcher, adapters and poller."""

from __future__ import annotations

import enum


class ErrorKind(str, enum.Enum):
    """Kinds of generation failure."""

    VALIDATION_FAILED = "ValidationFailed"
    UNCONFIGURED_TOOL = "UnconfiguredTool"
    ASSET_UPLOAD_FAILED = "AssetUploadFailed"
    SUBMISSION_REJECTED = "SubmissionRejected"
    POLLING_TRANSPORT_ERROR = "PollingTransportError"
    TIMEOUT_EXCEEDED = "TimeoutExceeded"
    PROVIDER_REPORTED_FAILURE = "ProviderReportedFailure"
    BUSY = "Busy"
    MEDIA_WRITE_FAILED = "MediaWriteFailed"


class GenerationError(RuntimeError):
    """Base error carrying an ErrorKind and a human-readable message."""

    def __init__(self, kind: ErrorKind, message: str) -> None:
        super().__init__(message)
        self.kind = kind
        self.message = message

    def __repr__(self) -> str:
        return f"{type(self).__name__}(kind={self.kind.value!r}, message={self.message!r})"


class SubmissionError(GenerationError):
    """Raised by the dispatcher before or during the submission call."""


class StagingError(GenerationError):
    """Raised when an asset could not be staged to a public URL."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorKind.ASSET_UPLOAD_FAILED, message)


class PollingTransportError(GenerationError):
    """Transient transport/HTTP failure during a status check."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorKind.POLLING_TRANSPORT_ERROR, message)


class PollingError(GenerationError):
    """Terminal polling outcome: timeout or provider-reported failure."""


class MediaStoreError(GenerationError):
    """An inline result could not be written to the media volume."""

    def __init__(self, message: str) -> None:
        super().__init__(ErrorKind.MEDIA_WRITE_FAILED, message)


class JobStateError(RuntimeError):
    """Illegal Job status transition or mutation of a terminal Job."""
