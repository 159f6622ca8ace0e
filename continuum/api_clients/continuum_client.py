from __future__ import annotations
import httpx

from ..errors import (
    EmptyInputError,
    UpstreamAuthError,
    UpstreamError,
    UpstreamQuotaError,
)
from ..utils import get_http_client

_BY_STATUS = {
    401: UpstreamAuthError,
    403: UpstreamAuthError,
    429: UpstreamQuotaError,
}


class ContinuumClient:
    """
    Public adapter: `request_continuation` over HTTP, for a UI talking to a
    remote continuum server. Status codes are mapped back onto the local
    error types, so an instance's `request_continuation` can be handed to
    `EditorMachine` in place of a local `ContinuationWriter`.
    """

    def __init__(self, base_url: str, http: httpx.AsyncClient | None = None):
        self.url = base_url.rstrip("/") + "/api/continue-writing"
        self._http = http

    async def request_continuation(self, text: str) -> str:
        if not text.strip():
            raise EmptyInputError()
        client = self._http or await get_http_client()
        try:
            resp = await client.post(self.url, json={"text": text})
        except httpx.HTTPError as e:
            raise UpstreamError(f"{e.__class__.__name__}: {e}") from e

        try:
            payload = resp.json()
        except ValueError:
            payload = None
        message = payload.get("error") if isinstance(payload, dict) else None

        if resp.status_code == 400:
            raise EmptyInputError(message or "Text is required to continue writing")
        if resp.status_code >= 400:
            cls = _BY_STATUS.get(resp.status_code, UpstreamError)
            raise cls(f"status {resp.status_code}", message=message)
        if not isinstance(payload, dict) or not isinstance(payload.get("text"), str):
            raise UpstreamError("Malformed continue-writing response")
        return payload["text"]
