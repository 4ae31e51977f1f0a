"""API client for the CodeGPT agent files and plugs endpoints."""

from __future__ import annotations

import logging
import random
import time
from typing import Any
from urllib.parse import quote

import httpx

from .config import config
from .exceptions import (
    AuthenticationError,
    ConfigError,
    InvalidResponseError,
    NetworkError,
    NotFoundError,
    PermissionDeniedError,
    RateLimitError,
    RemoteError,
)
from .utils import DEFAULT_MAX_RETRIES, DEFAULT_RETRY_DELAY, DEFAULT_TIMEOUT

logger = logging.getLogger(__name__)


class PlugClient:
    """Client for uploading file content and attaching plugs to it."""

    def __init__(
        self,
        api_key: str | None,
        api_url: str | None = None,
        max_retries: int = DEFAULT_MAX_RETRIES,
        retry_delay: float = DEFAULT_RETRY_DELAY,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """Initialize the API client.

        Args:
            api_key: Bearer credential
            api_url: Optional API URL (uses config if not provided)
            max_retries: Maximum number of retry attempts (default: 3)
            retry_delay: Initial delay between retries in seconds (default: 1.0)
            timeout: Per-request timeout in seconds (default: 30.0)
        """
        if not api_key:
            raise ConfigError("API key not configured.")

        self.api_key = api_key
        self.api_url = (api_url or config.api_url).rstrip("/")
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.timeout = timeout

        self._client: httpx.Client | None = None

    def __enter__(self) -> PlugClient:
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def _get_client(self) -> httpx.Client:
        """Get or create the httpx client."""
        if self._client is None or self._client.is_closed:
            self._client = httpx.Client(
                headers={"Authorization": f"Bearer {self.api_key}"},
                timeout=httpx.Timeout(self.timeout),
                follow_redirects=True,
            )
        return self._client

    def close(self) -> None:
        """Close the client and release connections."""
        if self._client is not None and not self._client.is_closed:
            self._client.close()
            self._client = None

    def _calculate_retry_delay(self, attempt: int) -> float:
        """Calculate delay before next retry using exponential backoff.

        Args:
            attempt: Current attempt number (0-based)

        Returns:
            Delay in seconds
        """
        base_delay = self.retry_delay * (2**attempt)
        # +/- 25% jitter
        jitter = base_delay * 0.25 * (2 * random.random() - 1)
        return max(0.0, base_delay + jitter)

    def _handle_http_error(
        self, e: httpx.HTTPStatusError, attempt: int
    ) -> tuple[RemoteError, bool]:
        """Map an HTTP error to a RemoteError and decide whether to retry.

        Args:
            e: The HTTP error exception
            attempt: Current attempt number

        Returns:
            Tuple of (exception to raise, should_retry)
        """
        status_code = e.response.status_code

        if status_code == 401:
            return (
                AuthenticationError(
                    "Invalid API key or unauthorized access", status_code
                ),
                False,
            )
        if status_code == 403:
            return (
                PermissionDeniedError(
                    "Access forbidden - check your permissions", status_code
                ),
                False,
            )
        if status_code == 404:
            return (NotFoundError("Resource not found", status_code), False)
        if status_code == 429:
            error: RemoteError = RateLimitError(
                "Rate limit exceeded - please try again later", status_code
            )
            return (error, attempt < self.max_retries)

        error_msg = f"API request failed with status {status_code}"
        try:
            if e.response.content:
                error_data = e.response.json()
                if isinstance(error_data, dict):
                    msg = (
                        error_data.get("message")
                        or error_data.get("error")
                        or error_data.get("detail")
                    )
                    if msg:
                        error_msg = f"{error_msg}: {msg}"
        except ValueError:
            # Body is not JSON, keep the status-based message
            pass

        error = RemoteError(error_msg, status_code)
        should_retry = 500 <= status_code < 600 and attempt < self.max_retries
        return (error, should_retry)

    def _request(self, method: str, endpoint: str, **kwargs: Any) -> Any:
        """Make an API request with retry logic.

        Args:
            method: HTTP method
            endpoint: API endpoint path
            **kwargs: Additional arguments passed to httpx

        Returns:
            Response JSON data

        Raises:
            RemoteError: If the request fails after all retries
        """
        url = f"{self.api_url}/{endpoint.lstrip('/')}"
        client = self._get_client()

        for attempt in range(self.max_retries + 1):
            try:
                response = client.request(method, url, **kwargs)
                response.raise_for_status()
            except httpx.HTTPStatusError as e:
                error, should_retry = self._handle_http_error(e, attempt)
                if not should_retry:
                    raise error from e

                delay = self._calculate_retry_delay(attempt)
                if isinstance(error, RateLimitError):
                    retry_after = e.response.headers.get("Retry-After")
                    if retry_after and retry_after.isdigit():
                        delay = float(retry_after)
                logger.debug(
                    f"{method} {url} failed ({error}), "
                    f"retry {attempt + 1}/{self.max_retries} in {delay:.2f}s"
                )
                time.sleep(delay)
                continue
            except httpx.RequestError as e:
                error = NetworkError(f"Network error: {e}")
                if attempt >= self.max_retries:
                    raise error from e
                delay = self._calculate_retry_delay(attempt)
                logger.debug(
                    f"{method} {url} failed ({error}), "
                    f"retry {attempt + 1}/{self.max_retries} in {delay:.2f}s"
                )
                time.sleep(delay)
                continue

            if not response.content:
                return {}
            try:
                return response.json()
            except ValueError as e:
                raise InvalidResponseError(
                    "Invalid JSON response from server", response.status_code
                ) from e

        # Unreachable: the last attempt either returns or raises
        raise RemoteError("Request failed after all retry attempts")

    @staticmethod
    def _extract_id(data: Any, what: str) -> str:
        """Pull the ``id`` field out of a response body.

        Raises:
            InvalidResponseError: If the body has no usable ``id``
        """
        if not isinstance(data, dict):
            raise InvalidResponseError(f"Unexpected {what} response: {data!r}")
        value = data.get("id")
        if isinstance(value, int) and not isinstance(value, bool):
            value = str(value)
        if not isinstance(value, str) or not value:
            raise InvalidResponseError(f"{what} response has no 'id' field")
        return value

    # =========================
    # Sync Operations
    # =========================

    def upload_content(self, filename: str, content: str) -> str:
        """Upload file content.

        Args:
            filename: Name under which the content is stored (the local path)
            content: File text

        Returns:
            Content reference (``id`` of the stored agent file)

        Raises:
            RemoteError: On non-success status or malformed response
        """
        data = self._request(
            "POST", "/agents/files", json={"name": filename, "content": content}
        )
        content_ref = self._extract_id(data, "upload")
        logger.info(f"Uploaded {filename}: {content_ref}")
        return content_ref

    def attach_reference(
        self,
        filename: str,
        content_ref: str,
        existing_remote_ref: str | None = None,
    ) -> str:
        """Point a plug at uploaded content.

        Creates a new plug when ``existing_remote_ref`` is None, otherwise
        updates that plug in place.

        Args:
            filename: Plug name, used only when creating
            content_ref: Content reference returned by upload_content
            existing_remote_ref: Plug to update, if the file was synced before

        Returns:
            Remote reference (``id`` of the plug)

        Raises:
            RemoteError: On non-success status or malformed response
        """
        if existing_remote_ref:
            data = self._request(
                "PUT",
                f"/agents/plugs/{quote(existing_remote_ref, safe='')}",
                json={"file_id": content_ref},
            )
        else:
            data = self._request(
                "POST",
                "/agents/plugs",
                json={"name": filename, "file_id": content_ref},
            )
        remote_ref = self._extract_id(data, "plug")
        action = "Updated" if existing_remote_ref else "Created"
        logger.info(f"{action} plug for {filename}: {remote_ref}")
        return remote_ref

    def sync_file(
        self,
        filename: str,
        content: str,
        existing_remote_ref: str | None = None,
    ) -> tuple[str, str]:
        """Upload content, then create or update the file's plug.

        Returns:
            Tuple of (content_ref, remote_ref)
        """
        content_ref = self.upload_content(filename, content)
        remote_ref = self.attach_reference(filename, content_ref, existing_remote_ref)
        return content_ref, remote_ref
