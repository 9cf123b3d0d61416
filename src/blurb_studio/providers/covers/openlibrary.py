import logging

import httpx

from blurb_studio.config import Settings

logger = logging.getLogger(__name__)


class OpenLibraryCovers:
    """HEAD probe against the Open Library cover host."""

    def __init__(self, settings: Settings, transport: httpx.AsyncBaseTransport | None = None) -> None:
        self.settings = settings
        self.base_url = settings.cover_base_url
        self.timeout = settings.cover_timeout_seconds
        self.transport = transport

    def cover_url(self, isbn: str) -> str:
        return f"{self.base_url}/{isbn}-L.jpg"

    async def has_cover(self, isbn: str) -> bool:
        """True only for a 200 with an image content type; redirects count as missing.

        ``default=false`` makes the host answer 404 instead of a blank placeholder.
        Transport and timeout errors propagate as ``httpx`` exceptions.
        """
        url = self.cover_url(isbn)
        async with httpx.AsyncClient(
            timeout=self.timeout,
            follow_redirects=False,
            transport=self.transport,
        ) as client:
            response = await client.head(url, params={"default": "false"})
        content_type = response.headers.get("content-type", "").split(";", 1)[0].strip().lower()
        found = response.status_code == 200 and content_type.startswith("image/")
        logger.info(
            "cover.probe isbn=%s status=%d content_type=%s found=%s",
            isbn,
            response.status_code,
            content_type or "none",
            found,
        )
        return found
