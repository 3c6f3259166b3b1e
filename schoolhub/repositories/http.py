"""
Shared httpx plumbing for the REST-backed collaborators.

Maps transport failures onto the application's error taxonomy: timeouts
and 5xx responses are transient, 404 is not-found, 409/412 is a version
conflict and any other 4xx is a non-retryable external service error.
"""

from typing import Any, Callable, Dict, Optional

import httpx

from schoolhub.core.exceptions import (
    BaseAppException,
    ErrorCode,
    TimeoutIOError,
    TransientIOError,
)
from schoolhub.core.logging import get_logger

logger = get_logger(__name__)


class RestClient:
    """Thin synchronous httpx wrapper with per-call timeouts."""

    def __init__(
        self,
        base_url: str,
        api_key: Optional[str] = None,
        default_timeout: float = 10.0,
        transport: Optional[httpx.BaseTransport] = None,
    ):
        headers = {"Accept": "application/json"}
        if api_key:
            headers["X-API-Key"] = api_key
        self.default_timeout = default_timeout
        self._client = httpx.Client(
            base_url=base_url,
            headers=headers,
            timeout=default_timeout,
            transport=transport,
        )

    def request(
        self,
        method: str,
        path: str,
        operation: str,
        timeout: Optional[float] = None,
        on_status: Optional[Dict[int, Callable[[httpx.Response], Exception]]] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Send a request and translate failures.

        Args:
            method: HTTP method
            path: Path relative to the base URL
            operation: Name used in logs and error details
            timeout: Seconds for this call (defaults to the client timeout)
            on_status: Status code -> exception factory for caller-specific codes

        Raises:
            TimeoutIOError: the call exceeded its timeout
            TransientIOError: network failure or 5xx response
            BaseAppException: any other unsuccessful response
        """
        effective_timeout = timeout if timeout is not None else self.default_timeout
        try:
            response = self._client.request(method, path, timeout=effective_timeout, **kwargs)
        except httpx.TimeoutException as e:
            logger.warning(
                f"{operation} timed out after {effective_timeout}s",
                extra={"operation": operation, "timeout": effective_timeout},
            )
            raise TimeoutIOError(operation, effective_timeout) from e
        except httpx.TransportError as e:
            logger.warning(f"{operation} transport error: {e}", extra={"operation": operation})
            raise TransientIOError(f"Network error during {operation}: {e}", operation=operation) from e

        if response.is_success:
            return response

        if on_status and response.status_code in on_status:
            raise on_status[response.status_code](response)

        if response.status_code >= 500:
            raise TransientIOError(
                f"{operation} failed with HTTP {response.status_code}",
                operation=operation,
                details={"status_code": response.status_code},
            )

        raise BaseAppException(
            f"{operation} rejected with HTTP {response.status_code}",
            ErrorCode.EXTERNAL_SERVICE_ERROR,
            {"operation": operation, "status_code": response.status_code},
            502,
        )

    def close(self) -> None:
        self._client.close()


def json_body(response: httpx.Response) -> Any:
    """Decode a JSON response body, treating garbage as a transient failure."""
    try:
        return response.json()
    except ValueError as e:
        raise TransientIOError(
            "Response body is not valid JSON",
            operation=str(response.request.url) if response.request else None,
        ) from e


def optional_json_body(response: httpx.Response) -> Optional[Any]:
    """Decode a JSON body when there is one; ``None`` for empty or non-JSON bodies."""
    if not response.content or not response.content.strip():
        return None
    try:
        return response.json()
    except ValueError:
        logger.debug(
            "Ignoring non-JSON response body",
            extra={"status_code": response.status_code},
        )
        return None
