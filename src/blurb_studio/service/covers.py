import logging

import httpx

from blurb_studio.config import Settings, get_settings
from blurb_studio.errors import AppError, ErrorCode
from blurb_studio.providers.covers.openlibrary import OpenLibraryCovers
from blurb_studio.security.sanitizer import is_valid_isbn, normalize_isbn

logger = logging.getLogger(__name__)


class CoverLookupService:
    def __init__(
        self,
        settings: Settings | None = None,
        covers: OpenLibraryCovers | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.covers = covers or OpenLibraryCovers(self.settings)

    async def lookup(self, raw_isbn: str | None) -> str:
        """Return a stable cover URL for a checksum-valid ISBN.

        Invalid input is rejected before any outbound request, and the probed
        URL is built from the validated digits only.
        """
        if not (raw_isbn or "").strip():
            raise AppError(ErrorCode.ISBN_REQUIRED)
        isbn = normalize_isbn(raw_isbn)
        if not is_valid_isbn(isbn):
            raise AppError(ErrorCode.INVALID_ISBN, detail=f"isbn={isbn!r}")

        try:
            found = await self.covers.has_cover(isbn)
        except httpx.TimeoutException as exc:
            logger.warning("cover.timeout isbn=%s", isbn)
            raise AppError(ErrorCode.COVER_TIMEOUT) from exc
        except httpx.HTTPError as exc:
            logger.warning("cover.unreachable isbn=%s type=%s detail=%s", isbn, exc.__class__.__name__, exc)
            raise AppError(ErrorCode.COVER_UNAVAILABLE) from exc

        if not found:
            raise AppError(ErrorCode.COVER_NOT_FOUND, detail=f"isbn={isbn}")
        return self.covers.cover_url(isbn)
