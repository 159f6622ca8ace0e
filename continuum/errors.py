from __future__ import annotations


class ContinuumError(Exception):
    """Base class for every failure raised by continuum."""


class EmptyInputError(ContinuumError):
    def __init__(self, message: str = "Text is required to continue writing"):
        super().__init__(message)


class UpstreamError(ContinuumError):
    """
    The provider call failed. `str(exc)` is the user-facing message; the
    provider's own wording is kept on `detail` for logs.
    """

    default_message = "Failed to generate continuation. Please try again."
    status_code = 500

    def __init__(self, detail: str = "", message: str | None = None):
        super().__init__(message or self.default_message)
        self.detail = detail


class UpstreamAuthError(UpstreamError):
    default_message = "Invalid API key. Please check your API key."
    status_code = 401


class UpstreamQuotaError(UpstreamError):
    default_message = "API quota exceeded. Please try again later."
    status_code = 429


_AUTH_STATUS = {401, 403}
_QUOTA_STATUS = {429}
_AUTH_HINTS = ("api key", "api_key", "unauthenticated", "permission_denied", "unauthorized")
_QUOTA_HINTS = ("quota", "resource_exhausted", "rate limit")


def _status_of(exc: BaseException) -> int | None:
    for attr in ("status_code", "code", "status"):
        v = getattr(exc, attr, None)
        if isinstance(v, int):
            return v
    return None


def classify_status(status: int | None, detail: str = "") -> UpstreamError:
    # the status code decides; message hints only when it says nothing
    if status in _AUTH_STATUS:
        return UpstreamAuthError(detail)
    if status in _QUOTA_STATUS:
        return UpstreamQuotaError(detail)
    low = detail.lower()
    if any(h in low for h in _AUTH_HINTS):
        return UpstreamAuthError(detail)
    if any(h in low for h in _QUOTA_HINTS):
        return UpstreamQuotaError(detail)
    return UpstreamError(detail)


def classify_error(exc: BaseException) -> ContinuumError:
    """Map any exception from a provider call onto the error taxonomy."""
    if isinstance(exc, ContinuumError):
        return exc
    detail = str(exc) or exc.__class__.__name__
    return classify_status(_status_of(exc), detail)
