from __future__ import annotations
from typing import Awaitable, Callable, List, Protocol, Literal
from pydantic import BaseModel

Role = Literal["user", "assistant", "system"]


class ChatMessage(BaseModel):
    content: str
    role: Role


class ModelOptions(BaseModel):
    temperature: float = 0.7
    top_p: float = 1.0
    frequency_penalty: float = 0.0
    presence_penalty: float = 0.0
    max_tokens: int = 256


class ApiClient(Protocol):
    async def query_chat_model(self, messages: List[ChatMessage]) -> "Result[str]": ...
    def is_configured(self) -> bool: ...


class ContinuationService(Protocol):
    async def request_continuation(self, text: str) -> str: ...


RequestContinuation = Callable[[str], Awaitable[str]]
