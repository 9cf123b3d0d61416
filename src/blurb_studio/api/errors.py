from fastapi.responses import JSONResponse

from blurb_studio.errors import ErrorCode

ERROR_TABLE: dict[ErrorCode, tuple[int, str]] = {
    ErrorCode.RATE_LIMITED: (429, "Trop de requêtes. Réessayez dans une minute."),
    ErrorCode.MALFORMED_BODY: (400, "Requête illisible."),
    ErrorCode.INVALID_MODE: (400, "Mode inconnu. Choisissez fiche, critique ou traduction."),
    ErrorCode.MISSING_AUTHOR: (400, "L'auteur est requis."),
    ErrorCode.MISSING_TITLE: (400, "Le titre est requis."),
    ErrorCode.MISSING_TEXT: (400, "Texte vide."),
    ErrorCode.MISSING_API_KEY: (500, "Service de génération non configuré."),
    ErrorCode.UNSUPPORTED_MEDIA_TYPE: (415, "Format d'image non pris en charge (JPEG, PNG ou WEBP)."),
    ErrorCode.IMAGE_TOO_LARGE: (413, "Image trop volumineuse."),
    ErrorCode.OCR_EMPTY_BUFFER: (400, "Image vide."),
    ErrorCode.OCR_INVALID_IMAGE: (400, "Le fichier envoyé n'est pas une image valide."),
    ErrorCode.OCR_TIMEOUT: (408, "La lecture de l'image a pris trop de temps. Réessayez avec une photo plus nette."),
    ErrorCode.OCR_FAILED: (422, "Impossible de lire le texte de l'image."),
    ErrorCode.OCR_NO_TEXT: (422, "Aucun texte lisible sur l'image."),
    ErrorCode.MODEL_TIMEOUT: (504, "La génération a expiré. Réessayez."),
    ErrorCode.MODEL_RATE_LIMITED: (503, "Service de génération saturé. Réessayez plus tard."),
    ErrorCode.MODEL_UNAVAILABLE: (503, "Service de génération indisponible. Réessayez plus tard."),
    ErrorCode.MODEL_FAILED: (502, "La génération a échoué. Réessayez."),
    ErrorCode.ISBN_REQUIRED: (400, "ISBN requis."),
    ErrorCode.INVALID_ISBN: (400, "ISBN invalide."),
    ErrorCode.COVER_NOT_FOUND: (404, "Pas de couverture trouvée pour cet ISBN."),
    ErrorCode.COVER_TIMEOUT: (504, "Le service de couvertures ne répond pas. Réessayez."),
    ErrorCode.COVER_UNAVAILABLE: (503, "Service de couvertures indisponible. Réessayez plus tard."),
    ErrorCode.INTERNAL: (500, "Erreur interne. Réessayez."),
}


def status_for(code: ErrorCode) -> int:
    return ERROR_TABLE.get(code, ERROR_TABLE[ErrorCode.INTERNAL])[0]


def error_response(code: ErrorCode, retry_after: int | None = None) -> JSONResponse:
    status_code, message = ERROR_TABLE.get(code, ERROR_TABLE[ErrorCode.INTERNAL])
    headers = {"Retry-After": str(retry_after)} if retry_after is not None else None
    return JSONResponse(status_code=status_code, content={"error": message}, headers=headers)
