from __future__ import annotations
import asyncio
import logging
from typing import List
from jinja2 import Environment, BaseLoader, StrictUndefined

from ..types import ApiClient, ContinuationService, ChatMessage
from ..settings import Settings
from ..errors import EmptyInputError, UpstreamError, classify_error

from ..pre_processors.length_limiter import LengthLimiter
from ..post_processors.remove_echo import RemoveEcho

from ..api_clients.openai_client import OpenAIClient
from ..api_clients.openrouter_client import OpenRouterClient
from ..api_clients.gemini_client import GeminiClient

logger = logging.getLogger("continuum")


def client_from_settings(s: Settings) -> ApiClient:
    if s.api_provider == "openai":
        return OpenAIClient.from_settings(s)
    if s.api_provider == "openrouter":
        return OpenRouterClient.from_settings(s)
    if s.api_provider == "gemini":
        return GeminiClient.from_settings(s)
    raise ValueError("Invalid API provider")


class ContinuationWriter(ContinuationService):
    """
    The one place that talks to the provider. Each call is a single attempt:
    failures come back as a classified `UpstreamError` and retrying is left
    to the user.
    """

    def __init__(
        self,
        client: ApiClient,
        system_message: str,
        user_message_template: str,
        limiter: LengthLimiter,
        timeout_s: float = 30.0,
        debug_mode: bool = False,
    ):
        self.client = client
        self.system_message = system_message
        self.template = Environment(
            loader=BaseLoader(), autoescape=False, undefined=StrictUndefined
        ).from_string(user_message_template)
        self.limiter = limiter
        self.post_processor = RemoveEcho()
        self.timeout_s = timeout_s
        self.debug_mode = debug_mode

    @classmethod
    def from_settings(cls, s: Settings, client: ApiClient | None = None) -> "ContinuationWriter":
        return cls(
            client=client or client_from_settings(s),
            system_message=s.system_message,
            user_message_template=s.user_message_template,
            limiter=LengthLimiter(s.max_text_char_limit),
            timeout_s=s.request_timeout_s,
            debug_mode=s.debug_mode,
        )

    def is_configured(self) -> bool:
        return self.client.is_configured()

    def build_messages(self, text: str) -> List[ChatMessage]:
        return [
            ChatMessage(role="system", content=self.system_message),
            ChatMessage(role="user", content=self.template.render(text=text)),
        ]

    async def request_continuation(self, text: str) -> str:
        if not text.strip():
            raise EmptyInputError()

        shown = self.limiter.process(text)
        messages = self.build_messages(shown)
        if self.debug_mode:
            logger.debug("ContinuationWriter messages: %s", [m.model_dump() for m in messages])

        try:
            result = await asyncio.wait_for(self.client.query_chat_model(messages), timeout=self.timeout_s)
        except asyncio.TimeoutError as e:
            raise UpstreamError(f"provider timed out after {self.timeout_s}s") from e

        if result.is_err():
            failure = classify_error(result.error)
            if logger.isEnabledFor(logging.INFO):
                logger.info("continuation failed kind=%s detail=%s", type(failure).__name__, getattr(failure, "detail", ""))
            raise failure

        raw = (result.value or "").strip()
        if self.debug_mode:
            logger.debug("ContinuationWriter raw response: %r", raw)
        cleaned = self.post_processor.process(shown, raw)
        if logger.isEnabledFor(logging.INFO):
            logger.info("continuation ok raw=%d cleaned=%d", len(raw), len(cleaned))
        return cleaned
