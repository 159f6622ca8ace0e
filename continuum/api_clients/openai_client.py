from __future__ import annotations
from typing import List
from ..types import ApiClient, ChatMessage
from ..utils import make_api_request, Result, ok, err
from ..errors import UpstreamError
from ..settings import Settings


def _to_input_items(messages: List[ChatMessage]) -> list[dict]:
    items = []
    for m in messages:
        items.append({
            "role": m.role,
            "content": [{"type": "input_text", "text": m.content}],
        })
    return items


def _extract_output_text(payload: dict) -> str:
    # Prefer aggregated field if present
    if isinstance(payload.get("output_text"), str):
        return payload["output_text"]

    out = payload.get("output", []) or []
    texts: list[str] = []
    for item in out:
        if item.get("type") == "output_text" and "text" in item:
            texts.append(item["text"])
        if item.get("type") == "message":
            for c in item.get("content", []) or []:
                if isinstance(c, dict) and "text" in c:
                    texts.append(c["text"])
    return "".join(texts)


class OpenAIClient(ApiClient):
    def __init__(self, api_key: str, url: str, model: str, model_options):
        self.api_key = api_key
        self.url = url
        self.model = model
        self.model_options = model_options

    @classmethod
    def from_settings(cls, s: Settings) -> "OpenAIClient":
        return cls(s.openai.key, s.openai.url, s.openai.model, s.model_options)

    def is_configured(self) -> bool:
        return bool(self.api_key and self.url)

    async def query_chat_model(self, messages: List[ChatMessage]) -> Result[str]:
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }
        body = {
            "model": self.model,
            "input": _to_input_items(messages),
            "temperature": self.model_options.temperature,
            "top_p": self.model_options.top_p,
            "max_output_tokens": self.model_options.max_tokens,
        }
        data = await make_api_request(self.url, "POST", body, headers)
        if data.is_err(): return data
        if not isinstance(data.value, dict):
            return err(UpstreamError("Malformed Responses API payload"))
        return ok(_extract_output_text(data.value))
