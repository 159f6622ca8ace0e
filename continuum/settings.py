from __future__ import annotations
import os
from typing import Literal
from pydantic import BaseModel, Field
import dotenv

from .types import ModelOptions

ApiProvider = Literal["openai", "openrouter", "gemini"]


class OpenAISettings(BaseModel):
    key: str = ""
    url: str = "https://api.openai.com/v1/responses"
    model: str = "gpt-4o-mini"


class OpenRouterSettings(BaseModel):
    key: str = ""
    url: str = "https://openrouter.ai/api/v1/chat/completions"
    model: str = "openai/gpt-4o-mini"
    site_url: str | None = None
    app_title: str | None = None


class GeminiSettings(BaseModel):
    key: str = ""
    model: str = "gemini-2.5-flash"


class Settings(BaseModel):
    api_provider: ApiProvider = "gemini"
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    openrouter: OpenRouterSettings = Field(default_factory=OpenRouterSettings)
    gemini: GeminiSettings = Field(default_factory=GeminiSettings)

    model_options: ModelOptions = Field(default_factory=ModelOptions)
    system_message: str = (
        "You continue a writer's document from where it left off. "
        "Only provide the continuation text that comes after the existing text. "
        "Do NOT repeat any of the existing text. Match the tone and style."
    )
    user_message_template: str = (
        "Continue writing from where this text left off. Write 2-3 sentences that "
        "naturally flow from the last sentence.\n\n"
        "Existing text:\n{{ text }}\n\n"
        "Continuation (only new text):"
    )

    # Pre/Post settings
    max_text_char_limit: int = 5000
    request_timeout_s: float = 30.0
    debug_mode: bool = False

    # Editor session settings
    type_interval_ms: int = 30
    history_limit: int = 10

    host: str = "127.0.0.1"
    port: int = 3001
    log_level: str = "INFO"

    def model_name(self) -> str:
        if self.api_provider == "openai":
            return self.openai.model
        if self.api_provider == "openrouter":
            return self.openrouter.model
        return self.gemini.model

    @classmethod
    def from_env(cls) -> "Settings":
        """Defaults overlaid with `.env` / process environment."""
        dotenv.load_dotenv()
        env = os.environ
        s = cls()
        s.api_provider = env.get("CONTINUUM_API_PROVIDER", s.api_provider)  # type: ignore[assignment]
        s.gemini.key = env.get("GEMINI_API_KEY") or env.get("GOOGLE_API_KEY", "")
        s.gemini.model = env.get("CONTINUUM_GEMINI_MODEL", s.gemini.model)
        s.openai.key = env.get("OPENAI_API_KEY", "")
        s.openai.model = env.get("CONTINUUM_OPENAI_MODEL", s.openai.model)
        s.openrouter.key = env.get("OPENROUTER_API_KEY", "")
        s.openrouter.model = env.get("CONTINUUM_OPENROUTER_MODEL", s.openrouter.model)
        if "CONTINUUM_MAX_TEXT_CHARS" in env:
            s.max_text_char_limit = int(env["CONTINUUM_MAX_TEXT_CHARS"])
        if "CONTINUUM_TIMEOUT_S" in env:
            s.request_timeout_s = float(env["CONTINUUM_TIMEOUT_S"])
        if "CONTINUUM_TYPE_INTERVAL_MS" in env:
            s.type_interval_ms = int(env["CONTINUUM_TYPE_INTERVAL_MS"])
        s.debug_mode = env.get("CONTINUUM_DEBUG", "").lower() in ("1", "true", "yes")
        s.host = env.get("HOST", s.host)
        s.port = int(env.get("PORT", s.port))
        s.log_level = env.get("CONTINUUM_LOG_LEVEL", s.log_level).upper()
        # re-validate so a bad provider name fails here, not on first request
        return cls.model_validate(s.model_dump())
