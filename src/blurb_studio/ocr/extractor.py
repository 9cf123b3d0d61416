import asyncio
import logging
import os
import re
import tempfile
import time
from typing import Protocol

from blurb_studio.config import Settings
from blurb_studio.errors import AppError, ErrorCode
from blurb_studio.ocr.gate import ConcurrencyGate
from blurb_studio.security.sanitizer import IMAGE_EXTENSIONS, sniff_image_format

logger = logging.getLogger(__name__)
ERROR_LOG_LIMIT = 300

_HYPHEN_BREAK = re.compile(r"(\w)-[ \t]*\r?\n[ \t]*(\w)")


class OcrEngine(Protocol):
    def recognize(self, path: str) -> str: ...


def clean_ocr_text(raw: str, limit: int) -> str:
    """Join words split across lines, flatten whitespace, clamp."""
    text = _HYPHEN_BREAK.sub(r"\1\2", raw or "")
    text = " ".join(text.split())
    if len(text) <= limit:
        return text
    return text[:limit].rstrip()


class TextExtractor:
    """Image bytes to plain text, bounded by a timeout and a shared FIFO gate."""

    def __init__(
        self,
        settings: Settings,
        engine: OcrEngine | None = None,
        gate: ConcurrencyGate | None = None,
    ) -> None:
        self.settings = settings
        if engine is None:
            from blurb_studio.providers.ocr.tesseract import TesseractEngine

            engine = TesseractEngine(settings)
        self.engine = engine
        self.gate = gate or ConcurrencyGate(settings.ocr_concurrency)

    async def extract(self, data: bytes) -> str:
        if not data:
            raise AppError(ErrorCode.OCR_EMPTY_BUFFER)
        if len(data) > self.settings.max_upload_bytes:
            raise AppError(ErrorCode.IMAGE_TOO_LARGE, detail=f"size={len(data)}")
        image_format = sniff_image_format(data)
        if image_format is None:
            raise AppError(ErrorCode.OCR_INVALID_IMAGE, detail="magic number mismatch")

        path = self._write_temp(data, IMAGE_EXTENSIONS[image_format])
        try:
            raw = await self._recognize(path)
        finally:
            self._unlink(path)

        text = clean_ocr_text(str(raw or ""), self.settings.ocr_max_chars)
        logger.info("ocr.done format=%s bytes=%d chars=%d", image_format, len(data), len(text))
        return text

    async def _recognize(self, path: str) -> str:
        timeout = self.settings.ocr_timeout_seconds
        started = time.monotonic()
        # queueing for a slot counts against the same deadline as the run
        try:
            await asyncio.wait_for(self.gate.acquire(), timeout=timeout)
        except asyncio.TimeoutError as exc:
            logger.warning("ocr.queue_timeout waited=%.1fs waiting=%d", time.monotonic() - started, self.gate.waiting)
            raise AppError(ErrorCode.OCR_TIMEOUT, detail="no free ocr slot") from exc
        remaining = timeout - (time.monotonic() - started)
        if remaining <= 0:
            self.gate.release()
            raise AppError(ErrorCode.OCR_TIMEOUT, detail="no time left after queueing")

        logger.info("ocr.start in_use=%d waiting=%d", self.gate.in_use, self.gate.waiting)
        task = asyncio.ensure_future(asyncio.to_thread(self.engine.recognize, path))
        # the slot stays taken until the thread really finishes
        task.add_done_callback(self._on_engine_done)
        try:
            return await asyncio.wait_for(asyncio.shield(task), timeout=remaining)
        except asyncio.TimeoutError as exc:
            logger.warning(
                "ocr.timeout after=%.1fs limit=%.1fs",
                time.monotonic() - started,
                timeout,
            )
            raise AppError(ErrorCode.OCR_TIMEOUT) from exc
        except Exception as exc:
            logger.warning(
                "ocr.failed type=%s detail=%s",
                exc.__class__.__name__,
                str(exc)[:ERROR_LOG_LIMIT],
            )
            raise AppError(ErrorCode.OCR_FAILED, detail=str(exc)[:ERROR_LOG_LIMIT]) from exc

    def _on_engine_done(self, task: asyncio.Future) -> None:
        self.gate.release()
        if not task.cancelled():
            # marks the exception as retrieved when nobody awaits an abandoned run
            task.exception()

    def _write_temp(self, data: bytes, suffix: str) -> str:
        fd, path = tempfile.mkstemp(prefix="cover-", suffix=suffix, dir=self.settings.ocr_tmp_dir or None)
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(data)
        except OSError as exc:
            self._unlink(path)
            raise AppError(ErrorCode.OCR_FAILED, detail=f"temp write failed: {exc}") from exc
        return path

    @staticmethod
    def _unlink(path: str) -> None:
        try:
            os.unlink(path)
        except FileNotFoundError:
            pass
        except OSError as exc:
            logger.warning("ocr.cleanup_failed path=%s detail=%s", path, exc)
