from __future__ import annotations
from typing import Any, Dict, Generic, TypeVar
import httpx

from .errors import UpstreamError, classify_status

T = TypeVar("T")


class Result(Generic[T]):
    __slots__ = ("_ok", "_value", "_error")

    def __init__(self, ok: bool, value: T | None = None, error: Exception | None = None):
        self._ok, self._value, self._error = ok, value, error

    def is_ok(self) -> bool:
        return self._ok

    def is_err(self) -> bool:
        return not self._ok

    @property
    def value(self) -> T:
        if not self._ok:
            raise self._error  # type: ignore[misc]
        return self._value  # type: ignore[return-value]

    @property
    def error(self) -> Exception:
        if self._ok:
            raise RuntimeError("No error")
        return self._error  # type: ignore[return-value]


def ok(value: T) -> Result[T]:
    return Result(True, value=value)


def err(error: Exception) -> Result[Any]:
    return Result(False, error=error)


def count_words(text: str) -> int:
    return len(text.split())


_HTTP_CLIENT: httpx.AsyncClient | None = None


async def init_http_client(timeout: float = 30.0) -> None:
    global _HTTP_CLIENT
    if _HTTP_CLIENT is None:
        # single attempt per request
        transport = httpx.AsyncHTTPTransport(retries=0)
        _HTTP_CLIENT = httpx.AsyncClient(timeout=timeout, transport=transport)


async def get_http_client() -> httpx.AsyncClient:
    if _HTTP_CLIENT is None:
        await init_http_client()
    assert _HTTP_CLIENT is not None
    return _HTTP_CLIENT


async def close_http_client() -> None:
    global _HTTP_CLIENT
    if _HTTP_CLIENT is not None:
        try:
            await _HTTP_CLIENT.aclose()
        finally:
            _HTTP_CLIENT = None


def _error_detail(json_body: Any) -> str:
    if not isinstance(json_body, dict):
        return ""
    e = json_body.get("error")
    if isinstance(e, dict):
        return str(e.get("message") or e.get("status") or "")
    return str(e or "")


async def make_api_request(
    url: str,
    method: str,
    body: Dict[str, Any],
    headers: Dict[str, str] | None = None,
) -> Result[Any]:
    """
    Send one JSON request. Never raises: transport failures and non-2xx
    replies come back as `err(UpstreamError...)`, already classified.
    """
    headers = headers or {"Content-Type": "application/json"}
    try:
        client = await get_http_client()
        resp = await client.request(method, url, json=body, headers=headers)
    except httpx.HTTPError as e:
        return err(UpstreamError(f"{e.__class__.__name__}: {e}"))
    json_body = None
    try:
        json_body = resp.json()
    except ValueError:
        pass
    if resp.status_code >= 400:
        msg = f"API returned status code {resp.status_code}"
        detail = _error_detail(json_body)
        if detail:
            msg += f": {detail}"
        return err(classify_status(resp.status_code, msg))
    if json_body is None:
        return err(UpstreamError("API returned a non-JSON body"))
    return ok(json_body)
