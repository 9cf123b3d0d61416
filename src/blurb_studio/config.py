from functools import lru_cache
from typing import Any

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    openai_api_key: str = Field(default="", alias="OPENAI_API_KEY")
    openai_base_url: str = Field(default="https://api.openai.com/v1", alias="OPENAI_BASE_URL")
    openai_model: str = Field(default="gpt-4o-mini", alias="OPENAI_MODEL")
    llm_timeout_seconds: float = Field(default=25.0, alias="LLM_TIMEOUT_SECONDS")
    llm_num_retries: int = Field(default=0, alias="LLM_NUM_RETRIES")
    llm_temperature: float = Field(default=0.3, alias="LLM_TEMPERATURE")
    llm_max_tokens_fiche: int = Field(default=1200, alias="LLM_MAX_TOKENS_FICHE")
    llm_max_tokens_critique: int = Field(default=450, alias="LLM_MAX_TOKENS_CRITIQUE")
    llm_max_tokens_traduction: int = Field(default=1200, alias="LLM_MAX_TOKENS_TRADUCTION")

    generate_rate_limit: int = Field(default=20, alias="GENERATE_RATE_LIMIT")
    cover_rate_limit: int = Field(default=60, alias="COVER_RATE_LIMIT")
    rate_limit_window_seconds: float = Field(default=60.0, alias="RATE_LIMIT_WINDOW_SECONDS")
    rate_limit_retry_after_seconds: int = Field(default=60, alias="RATE_LIMIT_RETRY_AFTER_SECONDS")
    rate_limit_max_keys: int = Field(default=5000, alias="RATE_LIMIT_MAX_KEYS")
    rate_limit_sweep_every: int = Field(default=100, alias="RATE_LIMIT_SWEEP_EVERY")

    max_upload_bytes: int = Field(default=6 * 1024 * 1024, alias="MAX_UPLOAD_BYTES")
    title_max_chars: int = Field(default=140, alias="TITLE_MAX_CHARS")
    author_max_chars: int = Field(default=120, alias="AUTHOR_MAX_CHARS")
    text_max_chars: int = Field(default=9000, alias="TEXT_MAX_CHARS")

    ocr_lang: str = Field(default="fra", alias="OCR_LANG")
    ocr_oem: int = Field(default=1, alias="OCR_OEM")
    ocr_psm: int = Field(default=6, alias="OCR_PSM")
    ocr_timeout_seconds: float = Field(default=15.0, alias="OCR_TIMEOUT_SECONDS")
    ocr_concurrency: int = Field(default=2, alias="OCR_CONCURRENCY")
    ocr_max_chars: int = Field(default=9000, alias="OCR_MAX_CHARS")
    ocr_tmp_dir: str = Field(default="", alias="OCR_TMP_DIR")
    tesseract_cmd: str = Field(default="", alias="TESSERACT_CMD")
    tessdata_dir: str = Field(default="", alias="TESSDATA_DIR")

    cover_base_url: str = Field(default="https://covers.openlibrary.org/b/isbn", alias="COVER_BASE_URL")
    cover_timeout_seconds: float = Field(default=5.0, alias="COVER_TIMEOUT_SECONDS")
    cover_cache_seconds: int = Field(default=3600, alias="COVER_CACHE_SECONDS")

    def model_post_init(self, __context: Any) -> None:  # type: ignore[override]
        self.openai_api_key = self.openai_api_key.strip()
        self.cover_base_url = self.cover_base_url.rstrip("/")
        self.ocr_lang = self.ocr_lang.strip() or "fra"
        self.ocr_concurrency = max(self.ocr_concurrency, 1)
        self.rate_limit_sweep_every = max(self.rate_limit_sweep_every, 1)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
