from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings


BUILTIN_PRESETS_DIR = Path(__file__).resolve().parent / "presets" / "builtin"


class Settings(BaseSettings):
    """
    Centralized application settings leveraging environment overrides.
    """

    app_name: str = "Text Summarizer"
    environment: str = Field("local", validation_alias="ENVIRONMENT")
    log_level: str = Field("INFO", description="Root log level")
    allow_origins: List[str] = Field(default_factory=lambda: ["*"])
    max_payload_bytes: int = Field(1024 * 1024, ge=1024)  # 1 MB soft limit
    presets_dir: Path = Field(default=BUILTIN_PRESETS_DIR)

    # Summary constraints
    summary_model: str = Field("openai/gpt-4.1-nano", min_length=1)
    # 80 words is roughly 110-130 tokens, leave some headroom
    summary_max_tokens: int = Field(160, ge=16, le=4000)
    summary_min_words: int = Field(60, ge=1)
    summary_max_words: int = Field(80, ge=1)
    summary_line_count: int = Field(8, ge=0, le=50, description="0 = one paragraph")
    summary_expand_retries: int = Field(1, ge=0, le=5)
    summary_input_char_limit: int = Field(12000, ge=100)
    summary_temperature: float = Field(0.2, ge=0.0, le=2.0)
    summary_top_p: float = Field(0.9, gt=0.0, le=1.0)

    # Cache and bulk dispatch
    cache_capacity: int = Field(500, ge=0)
    cache_ttl_seconds: float = Field(24 * 60 * 60, gt=0)
    bulk_concurrency: int = Field(4, ge=1, le=64)
    bulk_max_items: int = Field(100, ge=1)

    # Completion endpoint
    completion_base_url: str = Field("https://openrouter.ai/api/v1")
    openrouter_api_key: Optional[str] = Field(None, validation_alias="OPENROUTER_API_KEY")
    completion_timeout_seconds: float = Field(30.0, gt=0, le=300)

    @model_validator(mode="after")
    def check_word_window(self) -> "Settings":
        if self.summary_min_words > self.summary_max_words:
            raise ValueError("summary_min_words must not exceed summary_max_words")
        return self

    class Config:
        env_file = ".env"
        case_sensitive = False


@lru_cache
def get_settings() -> Settings:
    return Settings()
