import re

from blurb_studio.errors import AppError, ErrorCode

ISBN_MAX_CHARS = 13
ALLOWED_IMAGE_TYPES = frozenset({"image/jpeg", "image/png", "image/webp"})
IMAGE_EXTENSIONS = {"jpeg": ".jpg", "png": ".png", "webp": ".webp"}

_ISBN_STRIP = re.compile(r"[^0-9Xx]")
_ISBN10 = re.compile(r"^\d{9}[\dX]$")
_ISBN13 = re.compile(r"^\d{13}$")
_PNG_SIGNATURE = b"\x89PNG\r\n\x1a\n"


def normalize_isbn(raw: str | None) -> str:
    """Keep digits and X, uppercase, truncate. Never rejects."""
    if not raw:
        return ""
    return _ISBN_STRIP.sub("", str(raw)).upper()[:ISBN_MAX_CHARS]


def is_valid_isbn10(value: str) -> bool:
    if not _ISBN10.match(value):
        return False
    total = 0
    for position, char in enumerate(value):
        digit = 10 if char == "X" else int(char)
        total += digit * (10 - position)
    return total % 11 == 0


def is_valid_isbn13(value: str) -> bool:
    if not _ISBN13.match(value):
        return False
    total = sum(int(char) * (1 if position % 2 == 0 else 3) for position, char in enumerate(value[:12]))
    check = (10 - total % 10) % 10
    return check == int(value[12])


def is_valid_isbn(value: str) -> bool:
    if len(value) == 10:
        return is_valid_isbn10(value)
    if len(value) == 13:
        return is_valid_isbn13(value)
    return False


def sniff_image_format(data: bytes) -> str | None:
    """Identify JPEG/PNG/WEBP from the leading bytes, ignoring any declared type."""
    if len(data) < 12:
        return None
    head = bytes(data[:12])
    if head[:3] == b"\xff\xd8\xff":
        return "jpeg"
    if head[:8] == _PNG_SIGNATURE:
        return "png"
    if head[:4] == b"RIFF" and head[8:12] == b"WEBP":
        return "webp"
    return None


def is_likely_image(data: bytes) -> bool:
    return sniff_image_format(data) is not None


def base_content_type(content_type: str | None) -> str:
    return (content_type or "").split(";", 1)[0].strip().lower()


def check_declared_upload(content_type: str | None, size: int | None, max_bytes: int) -> None:
    """Gate an upload on its declared type and size before reading its bytes."""
    if base_content_type(content_type) not in ALLOWED_IMAGE_TYPES:
        raise AppError(ErrorCode.UNSUPPORTED_MEDIA_TYPE, detail=f"content_type={content_type!r}")
    if size is not None and size > max_bytes:
        raise AppError(ErrorCode.IMAGE_TOO_LARGE, detail=f"size={size} max={max_bytes}")


def clamp(text: str, limit: int) -> str:
    normalized = text.strip()
    if len(normalized) <= limit:
        return normalized
    return normalized[:limit].rstrip()
