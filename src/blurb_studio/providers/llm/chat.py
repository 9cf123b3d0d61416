import asyncio
import logging
from typing import Any

import openai

from blurb_studio.config import Settings
from blurb_studio.errors import AppError, ErrorCode

logger = logging.getLogger(__name__)
ERROR_LOG_LIMIT = 1000


class ChatModelProvider:
    """OpenAI-compatible chat completion through langchain's ChatOpenAI."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self.model = self._strip_provider_prefix(settings.openai_model)
        self._llms: dict[int, Any] = {}

    @property
    def configured(self) -> bool:
        return bool(self.settings.openai_api_key)

    async def complete(self, prompt: str, max_tokens: int) -> str:
        if not self.configured:
            raise AppError(ErrorCode.MISSING_API_KEY)
        llm = self._get_llm(max_tokens)
        timeout = self.settings.llm_timeout_seconds
        logger.info(
            "llm.call model=%s timeout=%.1fs max_tokens=%d prompt_chars=%d",
            self.model,
            timeout,
            max_tokens,
            len(prompt),
        )
        try:
            response = await asyncio.wait_for(llm.ainvoke(prompt), timeout=timeout)
        except (asyncio.TimeoutError, openai.APITimeoutError) as exc:
            logger.warning("llm.timeout model=%s limit=%.1fs", self.model, timeout)
            raise AppError(ErrorCode.MODEL_TIMEOUT) from exc
        except openai.RateLimitError as exc:
            logger.warning("llm.rate_limited model=%s detail=%s", self.model, self._extract_error_detail(exc))
            raise AppError(ErrorCode.MODEL_RATE_LIMITED) from exc
        except openai.APIConnectionError as exc:
            logger.warning("llm.unreachable model=%s detail=%s", self.model, self._extract_error_detail(exc))
            raise AppError(ErrorCode.MODEL_UNAVAILABLE) from exc
        except Exception as exc:
            logger.error(
                "llm.error model=%s type=%s detail=%s",
                self.model,
                exc.__class__.__name__,
                self._extract_error_detail(exc),
            )
            raise AppError(ErrorCode.MODEL_FAILED) from exc

        text = self._message_text(getattr(response, "content", response))
        logger.info("llm.response model=%s chars=%d", self.model, len(text))
        return text

    def _get_llm(self, max_tokens: int):
        llm = self._llms.get(max_tokens)
        if llm is None:
            from langchain_openai import ChatOpenAI

            llm = ChatOpenAI(
                model=self.model,
                api_key=self.settings.openai_api_key or None,
                base_url=self.settings.openai_base_url,
                timeout=self.settings.llm_timeout_seconds,
                max_retries=self.settings.llm_num_retries,
                temperature=self.settings.llm_temperature,
                max_tokens=max_tokens,
            )
            self._llms[max_tokens] = llm
        return llm

    @staticmethod
    def _message_text(content: Any) -> str:
        if isinstance(content, str):
            return content.strip()
        if isinstance(content, list):
            parts: list[str] = []
            for item in content:
                if isinstance(item, dict):
                    parts.append(str(item.get("text", "")))
                else:
                    parts.append(str(item))
            return "\n".join(parts).strip()
        return str(content).strip()

    @staticmethod
    def _clip(text: str, limit: int) -> str:
        normalized = " ".join(text.split()).strip()
        if len(normalized) <= limit:
            return normalized
        return f"{normalized[:limit]}...(truncated)"

    def _extract_error_detail(self, exc: Exception) -> str:
        status_code = getattr(exc, "status_code", None)
        message = getattr(exc, "message", None) or str(exc)
        details = [f"status_code={status_code}" if status_code is not None else ""]
        details.append(f"message={message}")
        return self._clip(" ".join([part for part in details if part]).strip(), ERROR_LOG_LIMIT)

    @staticmethod
    def _strip_provider_prefix(model: str) -> str:
        stripped = model.strip()
        if "/" not in stripped:
            return stripped
        return stripped.split("/", 1)[1]
