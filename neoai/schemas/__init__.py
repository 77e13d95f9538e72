"""Pydantic v2 schemas package."""

from neoai.schemas.job import (
    AudioResult,
    ErrorResult,
    HistoryEntry,
    ImageResult,
    Job,
    JobStatus,
    RawBlobResult,
    Result,
    VideoResult,
    downloadable_url,
)

__all__ = [
    "AudioResult",
    "ErrorResult",
    "HistoryEntry",
    "ImageResult",
    "Job",
    "JobStatus",
    "RawBlobResult",
    "Result",
    "VideoResult",
    "downloadable_url",
]
