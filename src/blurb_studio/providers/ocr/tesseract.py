import logging

import pytesseract

from blurb_studio.config import Settings

logger = logging.getLogger(__name__)


class TesseractEngine:
    """Blocking Tesseract call tuned for short back-cover blurbs."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.lang = settings.ocr_lang
        # the process is killed slightly after the caller stops waiting
        self.process_timeout = settings.ocr_timeout_seconds + 5
        if settings.tesseract_cmd:
            pytesseract.pytesseract.tesseract_cmd = settings.tesseract_cmd

    @property
    def config(self) -> str:
        parts = [f"--oem {self.settings.ocr_oem}", f"--psm {self.settings.ocr_psm}"]
        if self.settings.tessdata_dir:
            parts.append(f'--tessdata-dir "{self.settings.tessdata_dir}"')
        return " ".join(parts)

    def recognize(self, path: str) -> str:
        logger.info("tesseract.run lang=%s config=%s", self.lang, self.config)
        return pytesseract.image_to_string(
            path,
            lang=self.lang,
            config=self.config,
            timeout=self.process_timeout,
        )
