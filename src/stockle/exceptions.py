from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Optional


class LibraryError(Exception):
    """Base class for every error raised by stockle."""


class ValidationError(LibraryError):
    """
    Malformed input: bad URL, empty tag name, out-of-domain status value.

    `field` names the input that was rejected so the caller can attach the
    message to the right form field.
    """

    def __init__(self, field: str, message: str) -> None:
        self.field = field
        self.message = message
        super().__init__(f"{field}: {message}")


class NotFoundError(LibraryError):
    """An operation referenced an article id absent from the collection."""

    def __init__(self, article_id: str) -> None:
        self.article_id = article_id
        super().__init__(f"Article {article_id!r} not found")


@dataclass
class APIError(LibraryError):
    """
    Base error raised when the article backend rejects a request.

    Mirrors the backend error body:
        {
          "error": "not_found",
          "message": "Article not found"
        }
    """

    status_code: int
    detail: str = ""
    code: Optional[str] = None          # e.g. "not_found"
    extra: Dict[str, Any] = None        # other keys of the error body
    response_body: Any = None           # raw parsed JSON of the response

    def __post_init__(self) -> None:
        if self.extra is None:
            self.extra = {}
        msg = self.detail or self.code or f"HTTP {self.status_code}"
        super().__init__(msg)

    @property
    def retryable(self) -> bool:
        """Whether a retry might make sense (for client backoff logic)."""
        return (
            self.status_code in (429, 503, 504)
            or 500 <= self.status_code < 600
        )


# -------------------------------------------------
# Typed transport exceptions
# -------------------------------------------------

class InvalidError(APIError):
    pass


class AuthenticationError(APIError):
    pass


class AuthorizationError(APIError):
    pass


class ResourceNotFoundError(APIError):
    pass


class ConflictError(APIError):
    pass


class RateLimitError(APIError):
    pass


class InternalError(APIError):
    pass


class ServiceUnavailableError(APIError):
    pass


# -------------------------------------------------
# Mapping helpers
# -------------------------------------------------

# Map backend `error` code → specific exception
_CODE_TO_EXCEPTION = {
    "invalid_request": InvalidError,
    "unauthorized": AuthenticationError,
    "forbidden": AuthorizationError,
    "not_found": ResourceNotFoundError,
    "duplicate_article": ConflictError,
    "rate_limited": RateLimitError,
    "scraping_failed": InternalError,
    "tag_creation_failed": InternalError,
    "save_failed": InternalError,
    "update_failed": InternalError,
    "delete_failed": InternalError,
    "fetch_failed": InternalError,
    "search_failed": InternalError,
}

# Fallback mapping by HTTP status code
_STATUS_TO_EXCEPTION = {
    400: InvalidError,
    401: AuthenticationError,
    403: AuthorizationError,
    404: ResourceNotFoundError,
    409: ConflictError,
    422: InvalidError,
    429: RateLimitError,
    500: InternalError,
    503: ServiceUnavailableError,
}


def _pick_exception_class(status_code: int, code: Optional[str]) -> type[APIError]:
    if code and code in _CODE_TO_EXCEPTION:
        return _CODE_TO_EXCEPTION[code]
    if status_code in _STATUS_TO_EXCEPTION:
        return _STATUS_TO_EXCEPTION[status_code]
    return APIError


def error_from_response(response) -> APIError:
    """
    Build a concrete APIError subclass from a `requests.Response`.

    If the body is not JSON or has no `error` key we still build a generic
    APIError (or the status-mapped subclass) with whatever we can recover.
    """
    status_code = response.status_code

    try:
        body = response.json()
    except ValueError:
        exc_cls = _pick_exception_class(status_code, None)
        return exc_cls(
            status_code=status_code,
            detail=response.text or f"HTTP {status_code}",
        )

    if not isinstance(body, dict) or "error" not in body:
        exc_cls = _pick_exception_class(status_code, None)
        return exc_cls(
            status_code=status_code,
            detail=str(body),
            response_body=body,
        )

    code = body.get("error")
    if not isinstance(code, str):
        code = None
    detail = body.get("message") or ""
    extra = {k: v for k, v in body.items() if k not in {"error", "message"}}

    exc_cls = _pick_exception_class(status_code, code)
    return exc_cls(
        status_code=status_code,
        detail=detail,
        code=code,
        extra=extra,
        response_body=body,
    )


def raise_for_api_error(response) -> None:
    """
    Raise a suitable APIError subclass if `response` is an HTTP error.

    2xx and 3xx responses return silently.
    """
    if response.status_code >= 400:
        raise error_from_response(response)
