"""
Figma API client.

Thin pass-through to the Figma REST API (https://www.figma.com/developers/api).
Responses are returned as raw JSON; nothing here touches the ticketing core.
"""

from typing import Any, Optional, Sequence
import logging
import re

import httpx

from eventcore.config import settings

logger = logging.getLogger(__name__)

_FILE_ID_PATTERN = re.compile(r"/file/([a-zA-Z0-9]+)")

EXPORT_FORMATS = ("jpg", "png", "svg", "pdf")


def extract_file_id_from_url(url: str) -> Optional[str]:
    """Return the file key from a Figma URL.

    ``https://www.figma.com/file/ABC123/My-Design`` gives ``ABC123``.
    """
    match = _FILE_ID_PATTERN.search(url)
    return match.group(1) if match else None


class FigmaAPIError(Exception):
    """Non-success response from the Figma API."""

    def __init__(self, status_code: int, text: str):
        super().__init__(f"Figma API error: {status_code} {text}")
        self.status_code = status_code
        self.text = text


class FigmaClient:
    def __init__(
        self,
        token: Optional[str] = None,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.token = token or settings.FIGMA_TOKEN
        if not self.token:
            raise ValueError("A Figma token is required (set FIGMA_TOKEN)")
        self.base_url = (base_url or settings.FIGMA_API_BASE).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.FIGMA_TIMEOUT
        self._transport = transport
        self._client: httpx.AsyncClient | None = None

    async def _get_client(self) -> httpx.AsyncClient:
        if self._client is None or self._client.is_closed:
            self._client = httpx.AsyncClient(
                base_url=self.base_url,
                headers={"X-Figma-Token": self.token, "Accept": "application/json"},
                timeout=httpx.Timeout(self.timeout),
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._client and not self._client.is_closed:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "FigmaClient":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    async def _get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        client = await self._get_client()
        response = await client.get(path, params=params)
        if response.is_error:
            logger.warning(f"Figma API returned {response.status_code} for {path}")
            raise FigmaAPIError(response.status_code, response.reason_phrase or response.text)
        return response.json()

    async def get_file(self, file_id: str) -> Any:
        """Complete file structure: document tree, components, styles."""
        return await self._get(f"/files/{file_id}")

    async def get_components(self, file_id: str) -> Any:
        return await self._get(f"/files/{file_id}/components")

    async def get_styles(self, file_id: str) -> Any:
        return await self._get(f"/files/{file_id}/styles")

    async def export_images(
        self,
        file_id: str,
        node_ids: Sequence[str],
        format: str = "png",
        scale: float = 2,
    ) -> Any:
        """Render nodes and return the download URLs Figma hands back."""
        if format not in EXPORT_FORMATS:
            raise ValueError(f"Unsupported export format {format!r}; expected one of {EXPORT_FORMATS}")
        params = {
            "ids": ",".join(node_ids),
            "format": format,
            "scale": str(scale),
        }
        return await self._get(f"/images/{file_id}", params=params)
