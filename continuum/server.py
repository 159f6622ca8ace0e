from __future__ import annotations
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from contextlib import asynccontextmanager
from typing import Any, Dict
import asyncio
import json
import logging
from pydantic import BaseModel, ValidationError
import uvicorn

from .settings import Settings
from .errors import ContinuumError, EmptyInputError, UpstreamError
from .editor_machine import EditorMachine, EditorSnapshot, TypeNextChar, Update, parse_event
from .prediction_services.continue_writing import ContinuationWriter
from .utils import init_http_client, close_http_client


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_http_client(timeout=settings.request_timeout_s)
    try:
        yield
    finally:
        await close_http_client()


settings = Settings.from_env()
writer = ContinuationWriter.from_settings(settings)

app = FastAPI(title="Continuum Writing Assistant", lifespan=lifespan)
logger = logging.getLogger("continuum")
if not logger.handlers:
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
logger.setLevel(settings.log_level)

# Enable simple, permissive CORS for local testing UI
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


class ContinueRequest(BaseModel):
    text: str = ""


class ContinueResponse(BaseModel):
    success: bool = True
    text: str
    continuation: str


class HealthResponse(BaseModel):
    status: str
    message: str
    configured: bool
    api_provider: str
    model: str


@app.exception_handler(ContinuumError)
async def continuum_error_handler(request: Request, exc: ContinuumError):
    if isinstance(exc, EmptyInputError):
        return JSONResponse(status_code=400, content={"error": str(exc)})
    status = exc.status_code if isinstance(exc, UpstreamError) else 500
    logger.error("continuation error path=%s kind=%s detail=%s", request.url.path, type(exc).__name__, getattr(exc, "detail", ""))
    return JSONResponse(status_code=status, content={"error": str(exc)})


@app.post("/api/continue-writing", response_model=ContinueResponse)
async def continue_writing(req: ContinueRequest):
    if logger.isEnabledFor(logging.INFO):
        logger.info("/api/continue-writing chars=%d", len(req.text))
    text = await writer.request_continuation(req.text)
    return ContinueResponse(text=text, continuation=text)


@app.get("/api/health", response_model=HealthResponse)
async def health():
    return HealthResponse(
        status="ok",
        message="Continuum API is running",
        configured=writer.is_configured(),
        api_provider=settings.api_provider,
        model=settings.model_name(),
    )


def _snapshot_message(snap: EditorSnapshot, ack: int, ignored: str | None = None) -> Dict[str, Any]:
    msg = {"type": "snapshot", "ack": ack, **snap.model_dump()}
    if ignored:
        msg["ignored"] = ignored
    return msg


@app.websocket("/api/ws/editor")
async def editor_socket(websocket: WebSocket):
    """
    One editing session per connection: events in, snapshots out.

    Every snapshot carries `ack`, the `seq` of the newest UPDATE received, so
    the page can tell a stale snapshot from one that reflects its typing. An
    event the session ignores is answered with the unchanged snapshot and
    `ignored` set to the event type.
    """
    await websocket.accept()
    outbox: asyncio.Queue[Dict[str, Any]] = asyncio.Queue()
    ack = 0

    async def request(text: str) -> str:
        return await writer.request_continuation(text)

    machine = EditorMachine.from_settings(
        settings, request, on_change=lambda snap: outbox.put_nowait(_snapshot_message(snap, ack))
    )

    async def pump() -> None:
        while True:
            msg = await outbox.get()
            await websocket.send_json(msg)

    sender = asyncio.create_task(pump())
    outbox.put_nowait(_snapshot_message(machine.snapshot(), ack))
    logger.info("editor session opened")
    try:
        while True:
            raw = await websocket.receive_text()
            try:
                payload = json.loads(raw)
                event = parse_event(payload)
            except (ValueError, ValidationError) as e:
                outbox.put_nowait({"type": "invalid", "detail": str(e)})
                continue
            if isinstance(event, TypeNextChar):
                outbox.put_nowait({"type": "invalid", "detail": "TYPE_NEXT_CHAR is driven by the server"})
                continue
            seq = payload.get("seq")
            if isinstance(event, Update) and isinstance(seq, int):
                ack = max(ack, seq)
            if not machine.handle(event):
                if logger.isEnabledFor(logging.INFO):
                    logger.info("editor ignored %s in %s", event.type, machine.state_name)
                outbox.put_nowait(_snapshot_message(machine.snapshot(), ack, ignored=event.type))
    except WebSocketDisconnect:
        logger.info("editor session closed")
    finally:
        machine.close()
        sender.cancel()


@app.get("/ui", response_class=HTMLResponse)
async def ui():
    html = r"""<!doctype html>
<meta charset="utf-8" />
<title>Continuum — Smoke Test</title>
<style>
  body { font: 15px/1.5 ui-sans-serif, system-ui, -apple-system, Segoe UI, Roboto; margin: 2rem; }
  textarea { width: 780px; min-height: 240px; padding: 14px; border-radius: 12px; box-sizing: border-box;
    border: 1px solid #d0d7de; font: inherit; }
  .bar { margin: .5rem 0; display: flex; gap: .5rem; }
  .meta { color: #6b7280; }
  .error { color: #b91c1c; }
  li { cursor: pointer; color: #475569; }
</style>
<div class="bar">
  <button id="continue">Continue Writing</button>
  <button id="stop">Stop</button>
  <button id="undo">Undo</button>
  <button id="clear">Clear</button>
  <button id="retry" hidden>Retry</button>
</div>
<textarea id="box" spellcheck="false" placeholder="Start writing…"></textarea>
<div class="meta" id="meta"></div>
<div class="error" id="error"></div>
<ol id="history"></ol>
<script>
const box = document.getElementById('box');
const meta = document.getElementById('meta');
const errorEl = document.getElementById('error');
const historyEl = document.getElementById('history');
const retry = document.getElementById('retry');
const ws = new WebSocket(`${location.protocol === 'https:' ? 'wss' : 'ws'}://${location.host}/api/ws/editor`);
let state = 'idle';
let sent = 0;  // seq of the newest UPDATE sent

function send(type, extra) { ws.send(JSON.stringify(Object.assign({type}, extra || {}))); }

ws.onmessage = (ev) => {
  const msg = JSON.parse(ev.data);
  if (msg.type !== 'snapshot') { console.warn(msg); return; }
  state = msg.state;
  // an older snapshot must not overwrite typing the server has not seen yet
  if (msg.ack >= sent && box.value !== msg.text) box.value = msg.text;
  box.readOnly = state === 'loading' || state === 'typing';
  meta.textContent = `${msg.word_count} words • ${msg.char_count} chars • ${state}`;
  errorEl.textContent = msg.last_error ? `⚠ ${msg.last_error}`
    : msg.ignored === 'UPDATE' ? 'Edit not applied while the AI is writing.' : '';
  retry.hidden = state !== 'error';
  historyEl.innerHTML = '';
  msg.history.slice().reverse().forEach((h) => {
    const li = document.createElement('li');
    li.textContent = h.slice(0, 80) || '(empty)';
    li.onclick = () => send('UPDATE', {text: h, seq: ++sent});
    historyEl.appendChild(li);
  });
};

box.addEventListener('input', () => send('UPDATE', {text: box.value, seq: ++sent}));
document.getElementById('continue').onclick = () => {
  if (box.value.trim()) box.readOnly = true;
  send('CONTINUE');
};
document.getElementById('stop').onclick = () => send('STOP_TYPING');
document.getElementById('undo').onclick = () => send('UNDO');
document.getElementById('clear').onclick = () => send('CLEAR');
retry.onclick = () => send('RETRY');
</script>"""
    return HTMLResponse(content=html)


def main() -> None:
    if not writer.is_configured():
        logger.warning("no API key configured for provider %s", settings.api_provider)
    logger.info("serving on http://%s:%d", settings.host, settings.port)
    uvicorn.run(app, host=settings.host, port=settings.port, log_level=settings.log_level.lower())


if __name__ == "__main__":
    main()
