"""Writes inline (``data:`` URI) media results to the media volume so the
history log stores a file reference instead of the bytes."""

from __future__ import annotations

import base64
import logging
import mimetypes
import os
from typing import Any

from neoai.errors import MediaStoreError
from neoai.schemas.job import MEDIA_RESULT_TYPES

logger = logging.getLogger(__name__)


class MediaStore:
    def __init__(self, root: str) -> None:
        self.root = root

    def persist(self, job_id: str, result: Any) -> Any:
        """Return ``result`` with any inline data URI replaced by a file URI.

        Raises:
            MediaStoreError: the media volume is not writable.
        """
        if not isinstance(result, MEDIA_RESULT_TYPES) or not result.url.startswith("data:"):
            return result

        header, _, encoded = result.url.partition(",")
        mime = header[len("data:"):].split(";", 1)[0] or "application/octet-stream"
        ext = mimetypes.guess_extension(mime) or ".bin"

        filepath = os.path.abspath(os.path.join(self.root, f"{job_id}{ext}"))
        try:
            os.makedirs(self.root, exist_ok=True)
            with open(filepath, "wb") as f:
                f.write(base64.b64decode(encoded))
        except OSError as e:
            raise MediaStoreError(f"Failed to save media to {self.root}: {e}") from e

        logger.info("Media saved: %s", filepath)
        return result.model_copy(update={"url": f"file://{filepath}"})
