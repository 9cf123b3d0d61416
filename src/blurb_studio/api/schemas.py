from pydantic import BaseModel, ConfigDict, Field, StrictStr


class GenerateJsonBody(BaseModel):
    """JSON form of a generation request; every field must be a string if present."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    input: StrictStr | None = Field(default=None, description="Back-cover text or summary.")
    text_source: StrictStr | None = Field(default=None, alias="textSource")
    mode: StrictStr | None = Field(default=None, description="fiche, critique or traduction.")
    title: StrictStr | None = None
    author: StrictStr | None = None


class GenerateResponse(BaseModel):
    ficheText: str = ""
    metaText: str = ""
    newsletterText: str = ""
    critiqueText: str = ""
    translationText: str = ""


class CoverResponse(BaseModel):
    thumbnailUrl: str


class ErrorResponse(BaseModel):
    error: str
