"""Result normalizer — maps raw provider payloads to one canonical Result.

Classification order (first match wins):
1. explicit error envelope            -> ErrorResult
2. video URL (ordered field paths)    -> VideoResult
3. image URL                          -> ImageResult
4. audio URL                          -> AudioResult
5. binary body with video/image/audio content type -> typed result (data: URI)
6. anything else                      -> RawBlobResult for diagnostic display

``normalize`` never raises; an unrecognized shape degrades to RawBlobResult.
"""

from __future__ import annotations

import base64
import json
import logging
from dataclasses import dataclass
from typing import Any

from pydantic import ValidationError

from neoai.errors import ErrorKind
from neoai.schemas.job import (
    RESULT_ADAPTER,
    RESULT_TAGS,
    RESULT_TYPES,
    AudioResult,
    ErrorResult,
    ImageResult,
    RawBlobResult,
    VideoResult,
)

logger = logging.getLogger(__name__)

DEFAULT_ERROR_MESSAGE = "Generation failed"


# ---------------------------------------------------------------------------
# Extraction rules
# ---------------------------------------------------------------------------

def lookup_path(payload: Any, path: tuple[str | int, ...]) -> Any:
    """Walk a dict/list payload along ``path``; None when any step is missing."""
    node = payload
    for step in path:
        if isinstance(step, int):
            if not isinstance(node, list) or not -len(node) <= step < len(node):
                return None
            node = node[step]
        else:
            if not isinstance(node, dict):
                return None
            node = node.get(step)
        if node is None:
            return None
    return node


@dataclass(frozen=True)
class ExtractionRule:
    """One candidate location of a produced asset URL.

    When ``mime_prefix`` is set the rule only matches if the payload's
    ``type`` field starts with it (the ``{url, type}`` shape).
    """
    kind: str
    path: tuple[str | int, ...]
    mime_prefix: str | None = None

    def apply(self, payload: Any) -> str | None:
        if self.mime_prefix is not None:
            declared = payload.get("type") if isinstance(payload, dict) else None
            if not isinstance(declared, str) or not declared.startswith(self.mime_prefix):
                return None
        value = lookup_path(payload, self.path)
        if isinstance(value, str) and value.strip():
            return value
        return None


VIDEO_RULES = (
    ExtractionRule("video", ("video", "url")),
    ExtractionRule("video", ("video_url",)),
    ExtractionRule("video", ("data", "video", "url")),
    ExtractionRule("video", ("data", "video_url")),
    ExtractionRule("video", ("url",), mime_prefix="video/"),
)

IMAGE_RULES = (
    ExtractionRule("image", ("image", "url")),
    ExtractionRule("image", ("image_url",)),
    ExtractionRule("image", ("data", "image", "url")),
    ExtractionRule("image", ("data", "image_url")),
    ExtractionRule("image", ("images", 0, "url")),
    ExtractionRule("image", ("url",), mime_prefix="image/"),
)

AUDIO_RULES = (
    ExtractionRule("audio", ("audio", "url")),
    ExtractionRule("audio", ("audio_url",)),
    ExtractionRule("audio", ("data", "audio", "url")),
    ExtractionRule("audio", ("data", "audio_url")),
    ExtractionRule("audio", ("url",), mime_prefix="audio/"),
)

# Request identifiers returned by queue submissions
REQUEST_ID_PATHS: tuple[tuple[str, ...], ...] = (
    ("request_id",),
    ("id",),
    ("data", "request_id"),
)

_MEDIA_RULES = (
    (VIDEO_RULES, VideoResult),
    (IMAGE_RULES, ImageResult),
    (AUDIO_RULES, AudioResult),
)

_MEDIA_MIME_TYPES = (
    ("video/", VideoResult),
    ("image/", ImageResult),
    ("audio/", AudioResult),
)


def first_match(payload: Any, rules: tuple[ExtractionRule, ...]) -> str | None:
    for rule in rules:
        value = rule.apply(payload)
        if value is not None:
            return value
    return None


def first_present(payload: Any, paths: tuple[tuple[str | int, ...], ...]) -> str | None:
    """First non-empty value among ``paths``, stringified."""
    for path in paths:
        value = lookup_path(payload, path)
        if value not in (None, ""):
            return str(value)
    return None


def error_message(payload: dict[str, Any], default: str = DEFAULT_ERROR_MESSAGE) -> str:
    """Human-readable message from a failure payload: ``error`` then ``message``."""
    err = payload.get("error")
    if isinstance(err, dict):
        err = err.get("message") or err.get("detail")
    if isinstance(err, str) and err.strip():
        return err
    msg = payload.get("message")
    if isinstance(msg, str) and msg.strip():
        return msg
    return default


# ---------------------------------------------------------------------------
# normalize
# ---------------------------------------------------------------------------

def normalize(raw: Any, content_type: str | None = None) -> Any:
    """Classify a raw terminal payload into a canonical Result."""
    try:
        return _classify(raw, content_type)
    except Exception:
        logger.warning("Result normalization fell back to raw blob", exc_info=True)
        return RawBlobResult(data=repr(raw).encode("utf-8"), mime_type="text/plain")


def _classify(raw: Any, content_type: str | None) -> Any:
    if isinstance(raw, RESULT_TYPES):
        return raw

    if isinstance(raw, dict):
        if raw.get("type") in RESULT_TAGS:
            try:
                return RESULT_ADAPTER.validate_python(raw)
            except ValidationError:
                pass

        if raw.get("error"):
            return _error_from_envelope(raw)

        for rules, result_cls in _MEDIA_RULES:
            url = first_match(raw, rules)
            if url is not None:
                return result_cls(url=url)

        return _json_blob(raw)

    if isinstance(raw, (bytes, bytearray)):
        mime = _mime(content_type)
        for prefix, result_cls in _MEDIA_MIME_TYPES:
            if mime.startswith(prefix):
                return result_cls(url=to_data_uri(bytes(raw), mime))
        return RawBlobResult(data=bytes(raw), mime_type=mime)

    if isinstance(raw, str):
        return RawBlobResult(data=raw.encode("utf-8"), mime_type="text/plain")

    return _json_blob(raw)


def _error_from_envelope(raw: dict[str, Any]) -> ErrorResult:
    try:
        kind = ErrorKind(raw.get("kind"))
    except ValueError:
        kind = ErrorKind.PROVIDER_REPORTED_FAILURE
    message = raw.get("message")
    if not isinstance(message, str) or not message.strip():
        message = error_message(raw)
    return ErrorResult(kind=kind, message=message)


def _json_blob(raw: Any) -> RawBlobResult:
    body = json.dumps(raw, ensure_ascii=False, default=str).encode("utf-8")
    return RawBlobResult(data=body, mime_type="application/json")


def _mime(content_type: str | None) -> str:
    if not content_type:
        return "application/octet-stream"
    return content_type.split(";", 1)[0].strip().lower() or "application/octet-stream"


def to_data_uri(data: bytes, mime: str) -> str:
    return f"data:{mime};base64,{base64.b64encode(data).decode('ascii')}"
