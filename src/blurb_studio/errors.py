from enum import Enum


class ErrorCode(str, Enum):
    """Closed set of failures that may cross into the HTTP layer."""

    RATE_LIMITED = "rate_limited"
    MALFORMED_BODY = "malformed_body"
    INVALID_MODE = "invalid_mode"
    MISSING_AUTHOR = "missing_author"
    MISSING_TITLE = "missing_title"
    MISSING_TEXT = "missing_text"
    MISSING_API_KEY = "missing_api_key"

    UNSUPPORTED_MEDIA_TYPE = "unsupported_media_type"
    IMAGE_TOO_LARGE = "image_too_large"
    OCR_EMPTY_BUFFER = "ocr_empty_buffer"
    OCR_INVALID_IMAGE = "ocr_invalid_image"
    OCR_TIMEOUT = "ocr_timeout"
    OCR_FAILED = "ocr_failed"
    OCR_NO_TEXT = "ocr_no_text"

    MODEL_TIMEOUT = "model_timeout"
    MODEL_RATE_LIMITED = "model_rate_limited"
    MODEL_UNAVAILABLE = "model_unavailable"
    MODEL_FAILED = "model_failed"

    ISBN_REQUIRED = "isbn_required"
    INVALID_ISBN = "invalid_isbn"
    COVER_NOT_FOUND = "cover_not_found"
    COVER_TIMEOUT = "cover_timeout"
    COVER_UNAVAILABLE = "cover_unavailable"

    INTERNAL = "internal"


class AppError(Exception):
    """Failure carrying an ErrorCode; ``detail`` is for logs only."""

    def __init__(self, code: ErrorCode, detail: str | None = None) -> None:
        super().__init__(detail or code.value)
        self.code = code
        self.detail = detail or ""

    def __repr__(self) -> str:
        return f"AppError(code={self.code.value!r}, detail={self.detail!r})"
