import pytesseract

from blurb_studio.config import Settings
from blurb_studio.providers.ocr.tesseract import TesseractEngine


def _capture(monkeypatch) -> list[tuple[str, dict]]:
    for name in ("OCR_LANG", "OCR_OEM", "OCR_PSM", "OCR_TIMEOUT_SECONDS", "TESSDATA_DIR", "TESSERACT_CMD"):
        monkeypatch.delenv(name, raising=False)
    calls: list[tuple[str, dict]] = []

    def fake_image_to_string(image, **kwargs):
        calls.append((image, kwargs))
        return "Texte reconnu"

    monkeypatch.setattr(pytesseract, "image_to_string", fake_image_to_string)
    return calls


def test_recognize_passes_language_modes_and_process_timeout(monkeypatch) -> None:
    calls = _capture(monkeypatch)
    engine = TesseractEngine(Settings(OCR_LANG="fra+eng", OCR_OEM=3, OCR_PSM=4, OCR_TIMEOUT_SECONDS=10))

    assert engine.recognize("/tmp/cover-abc.png") == "Texte reconnu"

    path, kwargs = calls[0]
    assert path == "/tmp/cover-abc.png"
    assert kwargs["lang"] == "fra+eng"
    assert kwargs["config"] == "--oem 3 --psm 4"
    assert kwargs["timeout"] == 15


def test_defaults_match_back_cover_layout(monkeypatch) -> None:
    calls = _capture(monkeypatch)
    engine = TesseractEngine(Settings())

    engine.recognize("/tmp/cover.jpg")

    kwargs = calls[0][1]
    assert kwargs["lang"] == "fra"
    assert kwargs["config"] == "--oem 1 --psm 6"
    assert kwargs["timeout"] == 20


def test_tessdata_dir_is_quoted_into_config(monkeypatch) -> None:
    calls = _capture(monkeypatch)
    engine = TesseractEngine(Settings(TESSDATA_DIR="/opt/tess data"))

    engine.recognize("/tmp/cover.jpg")

    assert calls[0][1]["config"] == '--oem 1 --psm 6 --tessdata-dir "/opt/tess data"'


def test_tesseract_cmd_override(monkeypatch) -> None:
    monkeypatch.setattr(pytesseract.pytesseract, "tesseract_cmd", "tesseract")

    TesseractEngine(Settings(TESSERACT_CMD="/usr/local/bin/tesseract"))

    assert pytesseract.pytesseract.tesseract_cmd == "/usr/local/bin/tesseract"


def test_tesseract_cmd_left_alone_when_unset(monkeypatch) -> None:
    monkeypatch.setattr(pytesseract.pytesseract, "tesseract_cmd", "tesseract")

    TesseractEngine(Settings(TESSERACT_CMD=""))

    assert pytesseract.pytesseract.tesseract_cmd == "tesseract"
