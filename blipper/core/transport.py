"""JSON request/response helper with response shape validation."""

import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Generic, TypeVar

import requests
from pydantic import TypeAdapter, ValidationError

logger = logging.getLogger(__name__)

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Failure categories surfaced by remote and codec operations."""

    MISSING_CREDENTIAL = "missing-credential"
    TRANSPORT_FAILURE = "transport-failure"
    DECODE_FAILURE = "decode-failure"
    SHAPE_INVALID = "shape-invalid"
    NOT_FOUND = "not-found"
    EMPTY_RESULT = "empty-result"
    CONCURRENCY_CONFLICT = "concurrency-conflict"
    ENCODE_FAILURE = "encode-failure"
    UNAUTHORIZED = "unauthorized"
    HTTP_ERROR = "http-error"


class BlipperAPIError(Exception):
    """Error describing why a remote or codec operation failed."""

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        status_code: int | None = None,
        response: Any = None,
    ) -> None:
        super().__init__(message)
        self.kind = kind
        self.status_code = status_code
        self.response = response

    def __repr__(self) -> str:
        return f"BlipperAPIError({self.kind.value!r}, {str(self)!r})"


@dataclass(frozen=True)
class ApiResult(Generic[T]):
    """Uniform success/failure result.

    Exactly one of ``value`` (when ``ok``) or ``error`` (when not ``ok``)
    is meaningful.
    """

    ok: bool
    value: T | None = None
    error: BlipperAPIError | None = None

    @classmethod
    def success(cls, value: T) -> "ApiResult[T]":
        return cls(ok=True, value=value)

    @classmethod
    def failure(
        cls,
        kind: ErrorKind | BlipperAPIError,
        message: str = "",
        status_code: int | None = None,
    ) -> "ApiResult[T]":
        if isinstance(kind, BlipperAPIError):
            return cls(ok=False, error=kind)
        return cls(ok=False, error=BlipperAPIError(kind, message, status_code))

    @property
    def error_kind(self) -> ErrorKind | None:
        return self.error.kind if self.error is not None else None


def _status_kind(status_code: int) -> ErrorKind:
    if status_code == 404:
        return ErrorKind.NOT_FOUND
    if status_code in (401, 403):
        return ErrorKind.UNAUTHORIZED
    return ErrorKind.HTTP_ERROR


class HttpTransport:
    """Performs HTTP calls and validates JSON bodies against an expected shape.

    No retries happen here; callers own any retry policy.
    """

    def __init__(
        self,
        session: requests.Session | None = None,
        timeout: float = 30,
    ) -> None:
        """Initialize transport.

        Args:
            session: requests Session to use (a new one is created if not provided)
            timeout: Per-request timeout in seconds
        """
        self.session = session or requests.Session()
        self.timeout = timeout

    def _request(
        self,
        method: str,
        url: str,
        body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> Any:
        """Perform the call and return the parsed JSON body.

        Raises:
            BlipperAPIError: On network failure, HTTP error status or
                an unparseable body
        """
        request_headers = {"Accept": "application/json"}
        if body is not None:
            request_headers["Content-Type"] = "application/json"
        request_headers.update(headers or {})

        try:
            response = self.session.request(
                method=method,
                url=url,
                headers=request_headers,
                json=body,
                timeout=self.timeout,
            )
        except requests.RequestException as e:
            raise BlipperAPIError(ErrorKind.TRANSPORT_FAILURE, f"Request failed: {e}") from e

        logger.debug("%s %s -> %s", method, url, response.status_code)

        if response.status_code >= 400:
            error_msg = f"API error {response.status_code}: {response.text[:500]}"
            raise BlipperAPIError(
                _status_kind(response.status_code),
                error_msg,
                response.status_code,
                response,
            )

        try:
            return response.json()
        except ValueError as e:
            raise BlipperAPIError(
                ErrorKind.DECODE_FAILURE,
                f"Response body is not valid JSON: {e}",
                response.status_code,
                response,
            ) from e

    def request(
        self,
        method: str,
        url: str,
        shape: Any,
        body: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> ApiResult[Any]:
        """Perform a call and validate its JSON body.

        Args:
            method: HTTP method
            url: Fully-qualified URL
            shape: Expected response type (pydantic model or typing construct)
            body: Optional JSON body
            headers: Extra request headers

        Returns:
            ApiResult holding the validated value or the failure
        """
        try:
            data = self._request(method, url, body=body, headers=headers)
        except BlipperAPIError as e:
            return ApiResult.failure(e)

        try:
            value = TypeAdapter(shape).validate_python(data)
        except ValidationError as e:
            return ApiResult.failure(
                ErrorKind.SHAPE_INVALID,
                f"Unexpected response shape from {url}: {e.error_count()} error(s)\n{e}",
            )
        return ApiResult.success(value)

    def get(self, url: str, shape: Any, headers: dict[str, str] | None = None) -> ApiResult[Any]:
        """Make a GET request."""
        return self.request("GET", url, shape, headers=headers)

    def put(
        self,
        url: str,
        body: dict[str, Any],
        shape: Any,
        headers: dict[str, str] | None = None,
    ) -> ApiResult[Any]:
        """Make a PUT request."""
        return self.request("PUT", url, shape, body=body, headers=headers)

