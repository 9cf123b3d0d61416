import logging
import re
from dataclasses import dataclass
from typing import Any, TypedDict

from blurb_studio.config import Settings, get_settings
from blurb_studio.errors import AppError, ErrorCode
from blurb_studio.ocr.extractor import TextExtractor
from blurb_studio.prompts.builder import SECTION_MARKERS, Mode, build_prompt
from blurb_studio.providers.llm.chat import ChatModelProvider
from blurb_studio.security.sanitizer import clamp

logger = logging.getLogger(__name__)


@dataclass
class CoverImage:
    data: bytes
    content_type: str = ""
    filename: str = ""


@dataclass
class GenerationRequest:
    mode: Mode
    title: str
    author: str
    source_text: str = ""
    cover_image: CoverImage | None = None


@dataclass
class GenerationResult:
    fiche_text: str = ""
    meta_text: str = ""
    newsletter_text: str = ""
    critique_text: str = ""
    translation_text: str = ""

    def as_response(self) -> dict[str, str]:
        return {
            "ficheText": self.fiche_text,
            "metaText": self.meta_text,
            "newsletterText": self.newsletter_text,
            "critiqueText": self.critique_text,
            "translationText": self.translation_text,
        }


class WorkflowState(TypedDict):
    mode: Mode
    title: str
    author: str
    text: str
    image: CoverImage | None
    prompt: str
    completion: str
    result: GenerationResult | None


def _marker_pattern(name: str) -> re.Pattern[str]:
    return re.compile(rf"^[ \t>*#_]*{name}[ \t*_]*:[ \t*_]*", re.MULTILINE)


_MARKER_PATTERNS = {name: _marker_pattern(name) for name in SECTION_MARKERS}


def parse_sections(completion: str, markers: tuple[str, ...] = SECTION_MARKERS) -> dict[str, str]:
    """Split a marked-up completion into sections.

    Each section runs from its marker to the next marker found after it, or to
    the end of the text. A missing marker yields an empty string.
    """
    text = completion or ""
    spans: dict[str, tuple[int, int]] = {}
    for name in markers:
        pattern = _MARKER_PATTERNS.get(name) or _marker_pattern(name)
        match = pattern.search(text)
        if match:
            spans[name] = (match.start(), match.end())

    starts = sorted(start for start, _ in spans.values())
    sections: dict[str, str] = {}
    for name in markers:
        if name not in spans:
            sections[name] = ""
            continue
        start, body_start = spans[name]
        body_end = next((other for other in starts if other > start), len(text))
        sections[name] = text[body_start:body_end].strip()
    return sections


def result_from_completion(mode: Mode, completion: str) -> GenerationResult:
    if mode is Mode.CRITIQUE:
        critique = completion.strip()
        return GenerationResult(fiche_text=critique, critique_text=critique)
    if mode is Mode.TRADUCTION:
        return GenerationResult(translation_text=completion.strip())
    sections = parse_sections(completion)
    fiche_marker, meta_marker, newsletter_marker = SECTION_MARKERS
    return GenerationResult(
        fiche_text=sections[fiche_marker],
        meta_text=sections[meta_marker],
        newsletter_text=sections[newsletter_marker],
    )


class GenerationWorkflow:
    """Generation pipeline implemented with LangGraph nodes:
    (extract) -> validate -> prompt -> complete -> parse.
    """

    def __init__(
        self,
        settings: Settings | None = None,
        extractor: TextExtractor | None = None,
        llm: ChatModelProvider | None = None,
    ) -> None:
        self.settings = settings or get_settings()
        self.extractor = extractor or TextExtractor(self.settings)
        self.llm = llm or ChatModelProvider(self.settings)
        self._graph: Any | None = None

    async def run(self, request: GenerationRequest) -> GenerationResult:
        graph = self._get_graph()
        final_state = await graph.ainvoke(
            {
                "mode": request.mode,
                "title": request.title,
                "author": request.author,
                "text": "" if request.cover_image is not None else request.source_text,
                "image": request.cover_image,
                "prompt": "",
                "completion": "",
                "result": None,
            }
        )
        result = final_state.get("result")
        if result is None:
            raise AppError(ErrorCode.INTERNAL, detail="workflow ended without a result")
        return result

    def max_tokens_for(self, mode: Mode) -> int:
        if mode is Mode.CRITIQUE:
            return self.settings.llm_max_tokens_critique
        if mode is Mode.TRADUCTION:
            return self.settings.llm_max_tokens_traduction
        return self.settings.llm_max_tokens_fiche

    async def _extract_node(self, state: WorkflowState) -> dict[str, Any]:
        image = state["image"]
        logger.info("extract")
        text = await self.extractor.extract(image.data if image else b"")
        if not text:
            raise AppError(ErrorCode.OCR_NO_TEXT)
        return {"text": text}

    async def _validate_node(self, state: WorkflowState) -> dict[str, Any]:
        logger.info("validate")
        text = clamp(state["text"], self.settings.text_max_chars)
        if not text:
            raise AppError(ErrorCode.MISSING_TEXT)
        if not self.llm.configured:
            raise AppError(ErrorCode.MISSING_API_KEY)
        return {"text": text}

    async def _prompt_node(self, state: WorkflowState) -> dict[str, Any]:
        logger.info("prompt")
        return {"prompt": build_prompt(state["mode"], state["text"], state["title"], state["author"])}

    async def _complete_node(self, state: WorkflowState) -> dict[str, Any]:
        logger.info("complete")
        completion = await self.llm.complete(state["prompt"], max_tokens=self.max_tokens_for(state["mode"]))
        return {"completion": completion}

    async def _parse_node(self, state: WorkflowState) -> dict[str, Any]:
        logger.info("parse")
        result = result_from_completion(state["mode"], state["completion"])
        if state["mode"] is Mode.FICHE and not (result.fiche_text and result.meta_text and result.newsletter_text):
            logger.warning(
                "parse.partial fiche=%d meta=%d newsletter=%d",
                len(result.fiche_text),
                len(result.meta_text),
                len(result.newsletter_text),
            )
        return {"result": result}

    @staticmethod
    def _route_input(state: WorkflowState) -> str:
        return "extract" if state["image"] is not None else "validate"

    def _get_graph(self):
        if self._graph is None:
            from langgraph.graph import END, START, StateGraph

            graph = StateGraph(WorkflowState)
            graph.add_node("extract_step", self._extract_node)
            graph.add_node("validate_step", self._validate_node)
            graph.add_node("prompt_step", self._prompt_node)
            graph.add_node("complete_step", self._complete_node)
            graph.add_node("parse_step", self._parse_node)
            graph.add_conditional_edges(
                START,
                self._route_input,
                {"extract": "extract_step", "validate": "validate_step"},
            )
            graph.add_edge("extract_step", "validate_step")
            graph.add_edge("validate_step", "prompt_step")
            graph.add_edge("prompt_step", "complete_step")
            graph.add_edge("complete_step", "parse_step")
            graph.add_edge("parse_step", END)
            self._graph = graph.compile()
        return self._graph
