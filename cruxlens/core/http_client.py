import asyncio
from typing import Any, Dict, Optional

import httpx
from httpx import HTTPStatusError, TimeoutException

from cruxlens.core.exceptions import APIClientError, APITimeoutError, RemoteNotFoundError
from cruxlens.utils.logging import get_logger

LOGGER = get_logger(__name__)


class OpenAIHTTPClient:
    """Base client for OpenAI REST interactions.

    Handles authentication headers, JSON and multipart bodies, timeout
    management, error classification and logging. Retries are opt-in
    (``max_retries=1`` means a single attempt) and only apply to 429, 5xx
    and transport failures.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str,
        timeout: int = 60,
        max_retries: int = 1,
        retry_delay: int = 2,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """Initialize the HTTP client.

        Args:
            api_key: API key for authentication
            base_url: Base URL for the API (e.g. https://api.openai.com/v1)
            timeout: Request timeout in seconds
            max_retries: Maximum number of attempts
            retry_delay: Base delay for exponential backoff
            transport: Optional httpx transport (used by tests)
        """
        self.api_key = api_key
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.max_retries = max(1, max_retries)
        self.retry_delay = retry_delay
        self.transport = transport
        self.logger = LOGGER

    def _build_url(self, path: str) -> str:
        return f"{self.base_url}{'' if path.startswith('/') else '/'}{path}"

    async def call_api(
        self,
        path: str,
        method: str = "POST",
        payload: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
        files: Optional[Dict[str, Any]] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> Optional[Dict[str, Any]]:
        """Call the API.

        Args:
            path: API path appended to base_url
            method: HTTP method (GET, POST, DELETE)
            payload: JSON payload
            headers: Additional headers
            files: Multipart files (mutually exclusive with payload)
            data: Multipart form fields

        Returns:
            Parsed JSON response, or None when the body is not JSON

        Raises:
            RemoteNotFoundError: If the resource does not exist (404)
            APIClientError: If the API call fails
            APITimeoutError: If the API call times out
        """
        url = self._build_url(path)

        request_headers = {"Authorization": f"Bearer {self.api_key}"}
        if headers:
            request_headers.update(headers)

        self.logger.debug(
            f"Calling OpenAI API: {method} {path}",
            extra={"method": method, "timeout": self.timeout}
        )

        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            for attempt in range(self.max_retries):
                try:
                    response = await client.request(
                        method.upper(),
                        url,
                        headers=request_headers,
                        json=payload if files is None else None,
                        files=files,
                        data=data,
                    )
                    response.raise_for_status()
                    return self._parse_json(response)

                except HTTPStatusError as e:
                    await self._handle_http_error(e, attempt, method, path)

                except TimeoutException as e:
                    await self._handle_timeout_error(e, attempt, method, path)

                except httpx.RequestError as e:
                    await self._handle_transport_error(e, attempt, method, path)

        raise APIClientError(f"Failed to call API {method} {path} after {self.max_retries} attempts")

    @staticmethod
    def _parse_json(response: httpx.Response) -> Optional[Dict[str, Any]]:
        try:
            return response.json()
        except ValueError:
            return None

    async def _handle_http_error(self, error: HTTPStatusError, attempt: int, method: str, path: str):
        """Handle HTTP status errors."""
        response = error.response
        status_code = response.status_code
        request_id = response.headers.get("x-request-id") or response.headers.get("x-request_id")

        body = self._parse_json(response)
        message = None
        if isinstance(body, dict) and isinstance(body.get("error"), dict):
            message = body["error"].get("message")
        message = message or f"OpenAI API error ({status_code}) calling {method} {path}"

        self.logger.error(
            f"OpenAI API request failed: {method} {path} status={status_code} "
            f"requestId={request_id or 'n/a'} (Attempt {attempt + 1}/{self.max_retries})"
        )

        if status_code == 404:
            raise RemoteNotFoundError(
                message, original_error=error, status_code=status_code, request_id=request_id
            ) from error

        # Don't retry on client errors (4xx) unless it's rate limiting (429)
        retryable = status_code == 429 or status_code >= 500
        if retryable and attempt < self.max_retries - 1:
            await self._wait_before_retry(attempt)
            return

        raise APIClientError(
            message, original_error=error, status_code=status_code, request_id=request_id
        ) from error

    async def _handle_timeout_error(self, error: TimeoutException, attempt: int, method: str, path: str):
        """Handle timeout errors."""
        self.logger.warning(
            f"API Timeout (Attempt {attempt + 1}/{self.max_retries})",
            extra={"method": method, "path": path}
        )

        if attempt < self.max_retries - 1:
            await self._wait_before_retry(attempt)
        else:
            raise APITimeoutError(
                f"API Timeout after {self.max_retries} attempts", original_error=error
            ) from error

    async def _handle_transport_error(self, error: httpx.RequestError, attempt: int, method: str, path: str):
        """Handle connection-level errors."""
        self.logger.warning(
            f"API Transport Error (Attempt {attempt + 1}/{self.max_retries})",
            extra={"method": method, "path": path, "error": str(error)}
        )

        if attempt < self.max_retries - 1:
            await self._wait_before_retry(attempt)
        else:
            raise APIClientError(f"API Error: {str(error)}", original_error=error) from error

    async def _wait_before_retry(self, attempt: int):
        """Exponential backoff wait."""
        wait_time = self.retry_delay * (2 ** attempt)
        await asyncio.sleep(wait_time)
