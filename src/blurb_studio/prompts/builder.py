from enum import Enum

from blurb_studio.errors import AppError, ErrorCode

SECTION_MARKERS = ("FICHE", "META", "NEWSLETTER")


class Mode(str, Enum):
    FICHE = "fiche"
    CRITIQUE = "critique"
    TRADUCTION = "traduction"

    @classmethod
    def parse(cls, raw: str | None) -> "Mode":
        value = (raw or "").strip().lower()
        if not value:
            return cls.FICHE
        value = _MODE_ALIASES.get(value, value)
        try:
            return cls(value)
        except ValueError as exc:
            raise AppError(ErrorCode.INVALID_MODE, detail=f"mode={value!r}") from exc


_MODE_ALIASES = {
    "product-sheet": "fiche",
    "translation": "traduction",
    "review": "critique",
}


def build_prompt(mode: Mode, text: str, title: str, author: str) -> str:
    book_title = f'"{title.strip()}"' if title and title.strip() else "ce livre"
    book_author = author.strip() if author and author.strip() else "un auteur non précisé"
    source = text.strip()

    if mode is Mode.FICHE:
        return _fiche_prompt(source, book_title, book_author)
    if mode is Mode.CRITIQUE:
        return _critique_prompt(source, book_title, book_author)
    return _traduction_prompt(source)


def _fiche_prompt(source: str, book_title: str, book_author: str) -> str:
    return "\n".join(
        [
            "Tu es un assistant spécialisé en librairie indépendante.",
            "",
            "À partir du texte fourni ci-dessous, génère trois contenus distincts, "
            "chacun avec un ton adapté au canal concerné :",
            "",
            "1. FICHE PRODUIT",
            "Format : 7 à 10 lignes.",
            "But : présenter le livre de façon informative, pour un site e-commerce de librairie.",
            'Ton : sobre, précis, sans formules publicitaires ni injonctions ("découvrez", "plongez", etc.).',
            "Contenu : genre, sujet principal, tonalité, époque, personnages ou thématiques, style d'écriture.",
            "",
            "2. META DESCRIPTION SEO",
            "Format : 160 caractères maximum.",
            "Ton : descriptif, neutre, sans accroche publicitaire.",
            "Contenu : le sujet, l'auteur et le titre avec des mots-clés utiles pour une recherche.",
            "",
            "3. TEXTE POUR NEWSLETTER",
            "Format : 5 à 7 lignes.",
            "Ton : informatif, élégant, fluide.",
            "Consigne : n'utilise jamais de formule publicitaire type « à ne pas manquer ».",
            "",
            f"Le livre s'intitule : {book_title}",
            f"Son auteur est : {book_author}",
            "",
            "Texte source à analyser :",
            '"""',
            source,
            '"""',
            "",
            "Réponds exactement dans ce format, chaque marqueur seul sur sa ligne, dans cet ordre :",
            "",
            f"{SECTION_MARKERS[0]}:",
            "[contenu]",
            "",
            f"{SECTION_MARKERS[1]}:",
            "[contenu]",
            "",
            f"{SECTION_MARKERS[2]}:",
            "[contenu]",
        ]
    )


def _critique_prompt(source: str, book_title: str, book_author: str) -> str:
    return "\n".join(
        [
            "Tu es libraire dans une librairie indépendante à Paris, passionné de littérature contemporaine.",
            "",
            "À partir du texte fourni (4e de couverture ou résumé), rédige une note critique personnelle "
            "destinée à un blog, une newsletter ou une page d'accueil de librairie.",
            "",
            f"Le livre s'intitule : {book_title}",
            f"Son auteur est : {book_author}",
            "",
            "Consignes :",
            "- Format : 700 caractères maximum, espaces compris.",
            "- Structure : 1 ou 2 paragraphes.",
            "- Ton : subjectif, engagé, littéraire ; style concis et élégant.",
            "- Le « je » ou le « nous » est bienvenu si naturel.",
            "- Évoque le sujet, l'ambiance, l'originalité ; un lien avec d'autres œuvres si pertinent.",
            "",
            "Texte source :",
            '"""',
            source,
            '"""',
            "Réponds uniquement par le texte critique, sans titre ni balise.",
        ]
    )


def _traduction_prompt(source: str) -> str:
    return "\n".join(
        [
            "Tu es traducteur littéraire professionnel.",
            "Traduis le texte suivant du français vers l'anglais, avec un style fluide, fidèle et naturel.",
            "Respecte le ton, la syntaxe et les images de l'original.",
            "",
            "Consignes :",
            "- Ne commente pas, ne reformule pas.",
            "- Retourne uniquement la traduction, en un seul bloc.",
            "- Aucune mention du texte source.",
            "",
            "Texte à traduire :",
            '"""',
            source,
            '"""',
        ]
    )
