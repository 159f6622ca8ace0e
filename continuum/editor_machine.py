from __future__ import annotations
import asyncio
import logging
from collections import deque
from dataclasses import dataclass, replace
from typing import Annotated, Any, Callable, Deque, List, Literal, Optional, Union

from pydantic import BaseModel, Field, TypeAdapter

from .errors import classify_error
from .settings import Settings
from .types import RequestContinuation
from .utils import count_words

logger = logging.getLogger("continuum")


# --- states -----------------------------------------------------------------

@dataclass(frozen=True)
class Idle:
    name = "idle"


@dataclass(frozen=True)
class Loading:
    generation: int
    name = "loading"


@dataclass(frozen=True)
class Typing:
    generation: int
    pending: str
    reveal_index: int = 0
    name = "typing"


@dataclass(frozen=True)
class Failed:
    message: str
    name = "error"


State = Union[Idle, Loading, Typing, Failed]
IDLE = Idle()


# --- events -----------------------------------------------------------------

class Update(BaseModel):
    type: Literal["UPDATE"] = "UPDATE"
    text: str = ""


class Continue(BaseModel):
    type: Literal["CONTINUE"] = "CONTINUE"


class Undo(BaseModel):
    type: Literal["UNDO"] = "UNDO"


class Clear(BaseModel):
    type: Literal["CLEAR"] = "CLEAR"


class Retry(BaseModel):
    type: Literal["RETRY"] = "RETRY"


class StopTyping(BaseModel):
    type: Literal["STOP_TYPING"] = "STOP_TYPING"


class TypeNextChar(BaseModel):
    type: Literal["TYPE_NEXT_CHAR"] = "TYPE_NEXT_CHAR"


Event = Annotated[
    Union[Update, Continue, Undo, Clear, Retry, StopTyping, TypeNextChar],
    Field(discriminator="type"),
]
_event_adapter: TypeAdapter[Any] = TypeAdapter(Event)


def parse_event(payload: Any) -> Event:
    """Validate a raw UI payload such as `{"type": "UPDATE", "text": "..."}`."""
    return _event_adapter.validate_python(payload)


class EditorSnapshot(BaseModel):
    text: str
    word_count: int
    char_count: int
    history: List[str]
    last_error: Optional[str] = None
    state: str
    is_revealing: bool


# --- machine ----------------------------------------------------------------

class EditorMachine:
    """
    One editing session: the document text, its undo history and the
    continuation cycle idle -> loading -> typing -> idle (or -> error).

    `dispatch` runs one transition to completion and must be called from the
    event loop thread. The provider call and the reveal ticker are tasks
    owned by the machine. Every request is tagged with a generation and its
    result is dropped unless the machine is still loading that generation;
    the ticker carries a token that any exit from typing invalidates.
    """

    def __init__(
        self,
        request_continuation: RequestContinuation,
        *,
        history_limit: int = 10,
        type_interval_s: float = 0.03,
        auto_reveal: bool = True,
        skip_duplicate_snapshots: bool = False,
        on_change: Callable[[EditorSnapshot], None] | None = None,
    ) -> None:
        self._request = request_continuation
        self.type_interval_s = type_interval_s
        self.auto_reveal = auto_reveal
        self.skip_duplicate_snapshots = skip_duplicate_snapshots
        self.on_change = on_change

        self.text = ""
        self.word_count = 0
        self.char_count = 0
        self.history: Deque[str] = deque(maxlen=history_limit)
        self.last_error: str | None = None
        self.state: State = IDLE

        self._generation = 0
        self._reveal_token = 0
        self._request_task: asyncio.Task | None = None
        self._reveal_task: asyncio.Task | None = None

    @classmethod
    def from_settings(cls, s: Settings, request_continuation: RequestContinuation, **kwargs) -> "EditorMachine":
        return cls(
            request_continuation,
            history_limit=s.history_limit,
            type_interval_s=s.type_interval_ms / 1000.0,
            **kwargs,
        )

    # -- read side --

    @property
    def state_name(self) -> str:
        return self.state.name

    @property
    def is_revealing(self) -> bool:
        return isinstance(self.state, Typing)

    @property
    def pending_continuation(self) -> str | None:
        return self.state.pending if isinstance(self.state, Typing) else None

    @property
    def reveal_index(self) -> int:
        return self.state.reveal_index if isinstance(self.state, Typing) else 0

    def snapshot(self) -> EditorSnapshot:
        return EditorSnapshot(
            text=self.text,
            word_count=self.word_count,
            char_count=self.char_count,
            history=list(self.history),
            last_error=self.last_error,
            state=self.state_name,
            is_revealing=self.is_revealing,
        )

    # -- write side --

    def dispatch(self, event: Event) -> EditorSnapshot:
        self.handle(event)
        return self.snapshot()

    def handle(self, event: Event) -> bool:
        """Run one transition; False when the current state ignores `event`."""
        if not self._transition(event):
            return False
        self._notify()
        return True

    def _transition(self, event: Event) -> bool:
        state = self.state

        if isinstance(state, Idle):
            if isinstance(event, Update):
                self._set_text(event.text)
                self.last_error = None
                return True
            if isinstance(event, Continue):
                if not self.text.strip():
                    return self._ignore(event, "no text")
                self._enter_loading()
                return True
            if isinstance(event, Undo):
                if not self.history:
                    return self._ignore(event, "empty history")
                self._set_text(self.history.pop())
                return True
            if isinstance(event, Clear):
                self._reset()
                return True

        elif isinstance(state, Loading):
            if isinstance(event, Clear):
                # the request keeps running; its generation no longer matches
                self._reset()
                return True

        elif isinstance(state, Typing):
            if isinstance(event, TypeNextChar):
                self._type_next(state)
                return True
            if isinstance(event, StopTyping):
                self._set_text(self.text + state.pending[state.reveal_index:])
                self._leave_typing()
                return True
            if isinstance(event, Clear):
                self._leave_typing()
                self._reset()
                return True

        elif isinstance(state, Failed):
            if isinstance(event, Retry):
                self._enter_loading()
                return True
            if isinstance(event, Update):
                self._set_text(event.text)
                self.last_error = None
                self.state = IDLE
                return True
            if isinstance(event, Clear):
                self._reset()
                return True

        return self._ignore(event, "not handled in this state")

    def _ignore(self, event: Event, why: str) -> bool:
        if logger.isEnabledFor(logging.DEBUG):
            logger.debug("ignored %s in %s: %s", event.type, self.state_name, why)
        return False

    def _set_text(self, text: str) -> None:
        self.text = text
        self.word_count = count_words(text)
        self.char_count = len(text)

    def _reset(self) -> None:
        self._generation += 1
        self._set_text("")
        self.last_error = None
        self.state = IDLE

    def _enter_loading(self) -> None:
        loop = asyncio.get_running_loop()
        if not (self.skip_duplicate_snapshots and self.history and self.history[-1] == self.text):
            self.history.append(self.text)
        self._generation += 1
        gen = self._generation
        self.last_error = None
        self.state = Loading(gen)
        if logger.isEnabledFor(logging.INFO):
            logger.info("continue gen=%d chars=%d history=%d", gen, self.char_count, len(self.history))
        self._request_task = loop.create_task(self._run_request(gen, self.text))

    async def _run_request(self, gen: int, text: str) -> None:
        try:
            continuation = await self._request(text)
        except asyncio.CancelledError:
            raise
        except Exception as e:
            self._resolve(gen, error=classify_error(e))
            return
        self._resolve(gen, continuation=continuation)

    def _resolve(self, gen: int, continuation: str | None = None, error: Exception | None = None) -> None:
        state = self.state
        if not isinstance(state, Loading) or state.generation != gen:
            if logger.isEnabledFor(logging.INFO):
                logger.info("discarding stale result gen=%d current=%d", gen, self._generation)
            return
        if error is not None:
            self.last_error = str(error) or "An error occurred"
            self.state = Failed(self.last_error)
            if logger.isEnabledFor(logging.INFO):
                logger.info("continue failed gen=%d err=%s", gen, self.last_error)
        elif not continuation:
            logger.info("continue gen=%d produced no new content", gen)
            self.state = IDLE
        else:
            self._enter_typing(gen, continuation)
        self._notify()

    def _enter_typing(self, gen: int, pending: str) -> None:
        self.state = Typing(gen, pending)
        self._reveal_token += 1
        if self.auto_reveal:
            loop = asyncio.get_running_loop()
            self._reveal_task = loop.create_task(self._reveal(self._reveal_token))

    def _type_next(self, state: Typing) -> None:
        if state.reveal_index >= len(state.pending):
            self._leave_typing()
            return
        self._set_text(self.text + state.pending[state.reveal_index])
        state = replace(state, reveal_index=state.reveal_index + 1)
        self.state = state
        if state.reveal_index == len(state.pending):
            self._leave_typing()

    def _leave_typing(self) -> None:
        self._reveal_token += 1
        task, self._reveal_task = self._reveal_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        self.state = IDLE

    async def _reveal(self, token: int) -> None:
        while token == self._reveal_token and isinstance(self.state, Typing):
            await asyncio.sleep(self.type_interval_s)
            if token != self._reveal_token:
                return
            self.dispatch(TypeNextChar())

    def _notify(self) -> None:
        if self.on_change is not None:
            self.on_change(self.snapshot())

    # -- lifecycle --

    async def wait_settled(self) -> None:
        """Wait until no request or reveal owned by this machine is running."""
        while True:
            tasks = [t for t in (self._request_task, self._reveal_task) if t is not None and not t.done()]
            if not tasks:
                return
            await asyncio.gather(*tasks, return_exceptions=True)

    def close(self) -> None:
        self._generation += 1
        self._reveal_token += 1
        for task in (self._request_task, self._reveal_task):
            if task is not None and not task.done():
                task.cancel()
        self._request_task = self._reveal_task = None
