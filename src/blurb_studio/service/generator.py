import logging
import time

from blurb_studio.config import Settings, get_settings
from blurb_studio.errors import AppError, ErrorCode
from blurb_studio.security.sanitizer import clamp
from blurb_studio.workflow.generation import GenerationRequest, GenerationResult, GenerationWorkflow

logger = logging.getLogger(__name__)


class GenerateService:
    def __init__(self, workflow: GenerationWorkflow | None = None, settings: Settings | None = None) -> None:
        self.settings = settings or get_settings()
        self.workflow = workflow or GenerationWorkflow(self.settings)

    async def generate(self, request: GenerationRequest) -> GenerationResult:
        """Validate a parsed request, then run the generation workflow.

        Author and title are checked before any OCR or model work; the text
        and credential checks happen inside the workflow, after OCR.
        """
        author = clamp(request.author, self.settings.author_max_chars)
        if not author:
            raise AppError(ErrorCode.MISSING_AUTHOR)
        title = clamp(request.title, self.settings.title_max_chars)
        if not title:
            raise AppError(ErrorCode.MISSING_TITLE)

        request.author = author
        request.title = title
        if request.cover_image is not None and request.source_text:
            logger.info("generate.text_ignored reason=image_present chars=%d", len(request.source_text))
            request.source_text = ""

        started = time.monotonic()
        result = await self.workflow.run(request)
        logger.info(
            "generate.done mode=%s source=%s elapsed=%.2fs fiche=%d meta=%d newsletter=%d critique=%d translation=%d",
            request.mode.value,
            "image" if request.cover_image is not None else "text",
            time.monotonic() - started,
            len(result.fiche_text),
            len(result.meta_text),
            len(result.newsletter_text),
            len(result.critique_text),
            len(result.translation_text),
        )
        return result
