from __future__ import annotations
from typing import List, Any, Tuple

from ..types import ApiClient, ChatMessage
from ..utils import Result, ok, err
from ..errors import classify_error
from ..settings import Settings

# SDK: pip add google-genai
from google import genai  # type: ignore
from google.genai import types as gtypes  # type: ignore


def _extract_gemini_text(resp: Any) -> str:
    # 1) Fast path
    text = getattr(resp, "text", None)
    if isinstance(text, str) and text.strip():
        return text

    # 2) Candidates/parts path
    candidates = getattr(resp, "candidates", None) or []
    for c in candidates:
        content = getattr(c, "content", None)
        parts = getattr(content, "parts", None) or []
        buf = []
        for p in parts:
            t = getattr(p, "text", None)
            if isinstance(t, str):
                buf.append(t)
        s = "".join(buf).strip()
        if s:
            return s

    # 3) Nothing usable
    return ""


def _to_contents(messages: List[ChatMessage]) -> Tuple[str, list[Any]]:
    """Convert chat-style messages into Gemini contents and system instruction."""
    system_texts: list[str] = []
    contents: list[Any] = []
    for m in messages:
        if m.role == "system":
            if m.content:
                system_texts.append(m.content)
        elif m.role == "user":
            contents.append(gtypes.Content(role="user", parts=[gtypes.Part(text=m.content or "")]))
        else:  # assistant
            contents.append(gtypes.Content(role="model", parts=[gtypes.Part(text=m.content or "")]))
    system_instruction = "\n\n".join(system_texts).strip()
    return system_instruction, contents


class GeminiClient(ApiClient):
    def __init__(self, key: str, model: str, model_options):
        self.key = key
        self.client = genai.Client(api_key=key) if key else None
        self.model = model
        self.model_options = model_options

    @classmethod
    def from_settings(cls, s: Settings) -> "GeminiClient":
        return cls(s.gemini.key, s.gemini.model, s.model_options)

    def is_configured(self) -> bool:
        return bool(self.key)

    async def query_chat_model(self, messages: List[ChatMessage]) -> Result[str]:
        if self.client is None:
            return err(classify_error(RuntimeError("Gemini API key is not set")))
        try:
            system_instruction, contents = _to_contents(messages)
            resp = await self.client.aio.models.generate_content(
                model=self.model,
                contents=contents if contents else (messages[-1].content if messages else ""),
                config=gtypes.GenerateContentConfig(
                    temperature=self.model_options.temperature,
                    top_p=self.model_options.top_p,
                    presence_penalty=self.model_options.presence_penalty,
                    frequency_penalty=self.model_options.frequency_penalty,
                    max_output_tokens=self.model_options.max_tokens,
                    candidate_count=1,
                    system_instruction=system_instruction or None,
                ),
            )
            text = _extract_gemini_text(resp)
            if text is None or not text.strip():
                return ok("")
            return ok(text.strip())
        except Exception as e:
            # google.genai.errors.APIError carries the HTTP code on `.code`
            return err(classify_error(e))
