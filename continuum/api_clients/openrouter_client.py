from __future__ import annotations
from typing import List
from ..types import ApiClient, ChatMessage
from ..utils import make_api_request, Result, ok, err
from ..errors import UpstreamError
from ..settings import Settings


class OpenRouterClient(ApiClient):
    def __init__(self, key: str, url: str, model: str, model_options, site_url: str | None, app_title: str | None):
        self.key = key
        self.url = url
        self.model = model
        self.model_options = model_options
        self.site_url = site_url
        self.app_title = app_title

    @classmethod
    def from_settings(cls, s: Settings) -> "OpenRouterClient":
        return cls(
            s.openrouter.key, s.openrouter.url, s.openrouter.model,
            s.model_options, s.openrouter.site_url, s.openrouter.app_title,
        )

    def is_configured(self) -> bool:
        return bool(self.key and self.url)

    async def query_chat_model(self, messages: List[ChatMessage]) -> Result[str]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.key}",
        }
        if self.site_url:
            headers["HTTP-Referer"] = self.site_url
        if self.app_title:
            headers["X-Title"] = self.app_title

        body = {
            "model": self.model,
            "messages": [m.model_dump() for m in messages],
            "stream": False,
            "temperature": self.model_options.temperature,
            "top_p": self.model_options.top_p,
            "frequency_penalty": self.model_options.frequency_penalty,
            "presence_penalty": self.model_options.presence_penalty,
            "max_tokens": self.model_options.max_tokens,
        }
        data = await make_api_request(self.url, "POST", body, headers)
        if data.is_err():
            return data
        try:
            return ok(data.value["choices"][0]["message"]["content"] or "")
        except (KeyError, IndexError, TypeError) as e:
            return err(UpstreamError(f"Malformed chat completion payload: {e!r}"))
