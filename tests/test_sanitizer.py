import pytest

from blurb_studio.errors import AppError, ErrorCode
from blurb_studio.security.sanitizer import (
    check_declared_upload,
    is_likely_image,
    is_valid_isbn,
    is_valid_isbn10,
    is_valid_isbn13,
    normalize_isbn,
    sniff_image_format,
)

PNG_HEADER = b"\x89PNG\r\n\x1a\n\x00\x00\x00\rIHDR"
JPEG_HEADER = b"\xff\xd8\xff\xe0\x00\x10JFIF\x00\x01"
WEBP_HEADER = b"RIFF\x24\x00\x00\x00WEBPVP8 "


def test_normalize_isbn_strips_separators_and_uppercases() -> None:
    assert normalize_isbn(" 2-07-036024-x ") == "207036024X"
    assert normalize_isbn("978-2-07-036024-1") == "9782070360241"
    assert normalize_isbn("ISBN 978 2070360241 1234") == "9782070360241"
    assert normalize_isbn("") == ""
    assert normalize_isbn(None) == ""


def test_known_isbn10() -> None:
    assert is_valid_isbn10("2070360245") is True
    assert is_valid_isbn10("2070360246") is False


def test_known_isbn13() -> None:
    assert is_valid_isbn13("9782070360246") is True
    assert is_valid_isbn13("9782070360241") is False


def test_isbn10_with_x_check_digit() -> None:
    assert is_valid_isbn10("080442957X") is True
    assert is_valid_isbn10("0804429579") is False
    assert is_valid_isbn10("X804429570") is False


@pytest.mark.parametrize("valid", ["2070360245", "080442957X", "0306406152"])
def test_isbn10_single_digit_mutation_breaks_checksum(valid: str) -> None:
    for position in range(10):
        replacements = [digit for digit in "0123456789" if digit != valid[position]]
        broken = [
            candidate
            for candidate in (valid[:position] + digit + valid[position + 1 :] for digit in replacements)
            if not is_valid_isbn10(candidate)
        ]
        assert broken, f"no replacement at position {position} breaks {valid}"


def test_is_valid_isbn_dispatches_on_length() -> None:
    assert is_valid_isbn("2070360245") is True
    assert is_valid_isbn("9782070360246") is True
    assert is_valid_isbn("97820703602") is False
    assert is_valid_isbn("") is False
    assert is_valid_isbn("978207036024X") is False


def test_sniff_image_format() -> None:
    assert sniff_image_format(JPEG_HEADER) == "jpeg"
    assert sniff_image_format(PNG_HEADER) == "png"
    assert sniff_image_format(WEBP_HEADER) == "webp"
    assert sniff_image_format(b"GIF89a\x01\x00\x01\x00\x00\x00") is None
    assert sniff_image_format(b"%PDF-1.7\n%\xe2\xe3\xcf\xd3") is None


def test_short_buffers_are_never_images() -> None:
    assert is_likely_image(b"\xff\xd8\xff") is False
    assert is_likely_image(b"") is False
    assert is_likely_image(JPEG_HEADER) is True


def test_check_declared_upload_rejects_type_then_size() -> None:
    check_declared_upload("image/jpeg", 100, max_bytes=1000)
    check_declared_upload("IMAGE/PNG; name=x", None, max_bytes=1000)

    with pytest.raises(AppError) as bad_type:
        check_declared_upload("image/gif", 10, max_bytes=1000)
    assert bad_type.value.code is ErrorCode.UNSUPPORTED_MEDIA_TYPE

    with pytest.raises(AppError) as too_big:
        check_declared_upload("image/webp", 1001, max_bytes=1000)
    assert too_big.value.code is ErrorCode.IMAGE_TOO_LARGE
