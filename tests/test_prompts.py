import pytest

from blurb_studio.errors import AppError, ErrorCode
from blurb_studio.prompts.builder import SECTION_MARKERS, Mode, build_prompt


def test_mode_parse_accepts_aliases_and_defaults_to_fiche() -> None:
    assert Mode.parse("fiche") is Mode.FICHE
    assert Mode.parse(" Critique ") is Mode.CRITIQUE
    assert Mode.parse("traduction") is Mode.TRADUCTION
    assert Mode.parse("product-sheet") is Mode.FICHE
    assert Mode.parse("translation") is Mode.TRADUCTION
    assert Mode.parse("") is Mode.FICHE
    assert Mode.parse(None) is Mode.FICHE


def test_mode_parse_rejects_unknown_values() -> None:
    with pytest.raises(AppError) as exc_info:
        Mode.parse("poem")
    assert exc_info.value.code is ErrorCode.INVALID_MODE


def test_fiche_prompt_carries_output_contract_in_order() -> None:
    prompt = build_prompt(Mode.FICHE, "Un homme tue un Arabe sur une plage.", "L'Étranger", "Albert Camus")

    assert '"L\'Étranger"' in prompt
    assert "Albert Camus" in prompt
    assert "Un homme tue un Arabe sur une plage." in prompt
    lines = prompt.splitlines()
    positions = [lines.index(f"{marker}:") for marker in SECTION_MARKERS]
    assert positions == sorted(positions)


def test_blank_title_and_author_use_placeholders() -> None:
    prompt = build_prompt(Mode.CRITIQUE, "Résumé.", "  ", "")

    assert "ce livre" in prompt
    assert "un auteur non précisé" in prompt
    assert "700 caractères" in prompt


def test_translation_prompt_has_no_section_markers() -> None:
    prompt = build_prompt(Mode.TRADUCTION, "Aujourd'hui, maman est morte.", "L'Étranger", "Albert Camus")

    assert "anglais" in prompt
    assert "Aujourd'hui, maman est morte." in prompt
    assert not any(f"{marker}:" in prompt for marker in SECTION_MARKERS)
