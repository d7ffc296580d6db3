"""Resolve a layer's image reference into decoded pixels.

References come in two flavours:

- remote URLs (``http://`` / ``https://``), fetched with httpx;
- local references such as ``/uploads/<name>.png`` as returned by the upload
  endpoint, resolved under the configured asset root.

Every failure (network, HTTP status, missing file, path outside the root,
undecodable bytes) is raised as :class:`LoadError`. Images are fully decoded
before they are returned so the compositor never sees partial pixel data.
"""

from __future__ import annotations

import asyncio
import logging
import os
from typing import Optional
from urllib.parse import urlparse

import httpx
from PIL import Image, UnidentifiedImageError  # type: ignore[import]

from shirt_designer.errors import LoadError
from shirt_designer.image_ops import open_image

logger = logging.getLogger(__name__)

REMOTE_SCHEMES = ("http", "https")


def is_remote(reference: str) -> bool:
    return urlparse(reference.strip()).scheme.lower() in REMOTE_SCHEMES


class ImageLoader:
    def __init__(
        self,
        asset_root: str = ".",
        timeout: float = 15.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.asset_root = os.path.realpath(asset_root)
        self.timeout = timeout
        # An injected client is owned by the caller and never closed here.
        self.client = client

    async def load(self, reference: str) -> Image.Image:
        if is_remote(reference):
            data = await self._fetch_remote(reference.strip())
        else:
            data = await self._read_local(reference)
        try:
            return open_image(data)
        except (UnidentifiedImageError, Image.DecompressionBombError, OSError, ValueError) as e:
            raise LoadError(f"Could not decode image {reference!r}: {e}") from e

    def resolve_local(self, reference: str) -> str:
        """Absolute path for a local reference, refusing anything outside the root."""
        relative = reference.strip().lstrip("/\\")
        if not relative:
            raise LoadError("Empty image reference")
        try:
            path = os.path.realpath(os.path.join(self.asset_root, relative))
        except ValueError as e:
            raise LoadError(f"Invalid image reference {reference!r}: {e}") from e
        if os.path.commonpath([self.asset_root, path]) != self.asset_root:
            raise LoadError(f"Image reference escapes the asset root: {reference!r}")
        return path

    async def _read_local(self, reference: str) -> bytes:
        path = self.resolve_local(reference)
        try:
            return await asyncio.to_thread(_read_bytes, path)
        except (OSError, ValueError) as e:
            raise LoadError(f"Could not read image {reference!r}: {e}") from e

    async def _fetch_remote(self, url: str) -> bytes:
        logger.debug("Fetching remote image %s", url)
        try:
            if self.client is not None:
                response = await self.client.get(url, timeout=self.timeout)
            else:
                async with httpx.AsyncClient(follow_redirects=True, timeout=self.timeout) as client:
                    response = await client.get(url)
            response.raise_for_status()
        except httpx.HTTPError as e:
            raise LoadError(f"Could not fetch image {url!r}: {e}") from e
        return response.content


def _read_bytes(path: str) -> bytes:
    with open(path, "rb") as f:
        return f.read()
