"""Asset staging — uploads a local image to imgbb so queue providers can
reference it by a public URL.

The returned URL lives only as long as imgbb keeps the upload.
"""

from __future__ import annotations

import logging

import httpx

from neoai.config import Settings, get_settings
from neoai.errors import StagingError
from neoai.services.providers.base import Asset

logger = logging.getLogger(__name__)


class AssetStager:
    """Uploads binaries to the image-hosting endpoint."""

    def __init__(self, http_client: httpx.AsyncClient, settings: Settings | None = None) -> None:
        s = settings or get_settings()
        self.client = http_client
        self.upload_url = s.IMGBB_UPLOAD_URL
        self.api_key = s.IMGBB_API_KEY

    async def stage(self, asset: Asset) -> str:
        """Upload ``asset`` and return its public URL.

        Raises:
            StagingError: transport failure, non-2xx, ``success=false`` or a
                success envelope without ``data.url``.
        """
        files = {
            "key": (None, self.api_key),
            "image": (asset.filename, asset.data, asset.content_type),
        }
        try:
            response = await self.client.post(self.upload_url, files=files)
        except httpx.HTTPError as e:
            raise StagingError(f"Failed to upload image to imgbb: {e}") from e

        if not response.is_success:
            raise StagingError(f"Failed to upload image to imgbb: HTTP {response.status_code}")

        try:
            envelope = response.json()
        except ValueError as e:
            raise StagingError(f"Failed to get image URL from imgbb: {e}") from e

        if not isinstance(envelope, dict) or not envelope.get("success"):
            raise StagingError("imgbb reported an unsuccessful upload")
        data = envelope.get("data")
        url = data.get("url") if isinstance(data, dict) else None
        if not isinstance(url, str) or not url:
            raise StagingError("Failed to get image URL from imgbb")

        logger.info("Staged %s (%d bytes) -> %s", asset.filename, len(asset.data), url)
        return url
