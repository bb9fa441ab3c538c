"""Base adapter class with shared functionality for all provider adapters.

This module provides the abstract base class that all postal code adapters must
implement, along with the shared request/read/decode/normalize pipeline.
"""

import json
import logging
import socket
import threading
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, Optional, Type

import requests
from pydantic import BaseModel, ValidationError
from urllib3.exceptions import ReadTimeoutError

from cepfinder.domain.models import (
    CanonicalAddress,
    ProviderFailure,
    ProviderOutcome,
    ProviderSuccess,
)
from cepfinder.logging import get_logger

from .exceptions import (
    AdapterBodyReadError,
    AdapterCancelledError,
    AdapterConfigurationError,
    AdapterDecodeError,
    AdapterError,
    AdapterHTTPError,
    AdapterTimeoutError,
    AdapterTransportError,
)

logger = get_logger(__name__, component="adapter")


def _abort(response: requests.Response) -> None:
    """Shut down the socket under a streamed response to wake a blocked read.

    Closing the response itself would wait for the read in progress to finish.
    """
    connection = getattr(response.raw, "connection", None)
    sock = getattr(connection, "sock", None)
    if sock is None:
        response.close()
        return
    try:
        sock.shutdown(socket.SHUT_RDWR)
    except OSError as e:
        logger.debug(
            "Connection already closed",
            extra={"event": "adapter.fetch.abort", "error": str(e)},
        )


def _is_read_timeout(error: requests.exceptions.RequestException) -> bool:
    """requests wraps a socket read timeout hit while streaming in a ConnectionError."""
    return isinstance(error, requests.exceptions.Timeout) or any(
        isinstance(arg, ReadTimeoutError) for arg in error.args
    )


class BaseAdapter(ABC):
    """Base class for all postal code adapters.

    Provides the shared HTTP request handling, body reading, JSON decoding and
    error management. Subclasses describe their provider through:

    - PROVIDER_NAME: identifier stamped on every record they produce
    - DEFAULT_BASE_URL: scheme and host of the upstream service
    - RESPONSE_MODEL: pydantic model of the provider's JSON body
    - build_url(): endpoint for a postal code
    - _to_address(): field mapping into CanonicalAddress

    Attributes:
        timeout: Per-request timeout in seconds
        user_agent: User-Agent header for HTTP requests
        base_url: Upstream base URL (no trailing slash)
        check_status: Whether a non-2xx status is reported as a failure
    """

    PROVIDER_NAME: str = ""
    DEFAULT_BASE_URL: str = ""
    RESPONSE_MODEL: Optional[Type[BaseModel]] = None
    CHUNK_SIZE = 8192

    def __init__(
        self,
        timeout: float = 1.0,
        user_agent: str = "cepfinder/1.0",
        base_url: Optional[str] = None,
        check_status: bool = True,
    ) -> None:
        """Initialize adapter with configuration.

        Args:
            timeout: Per-request timeout in seconds (range 0.01-300)
            user_agent: User-Agent header for requests
            base_url: Override for the provider base URL
            check_status: Report non-2xx responses as http_status failures

        Raises:
            AdapterConfigurationError: If timeout is outside valid range or user_agent is empty
        """
        if not 0.01 <= timeout <= 300:
            raise AdapterConfigurationError(
                f"Timeout must be between 0.01 and 300 seconds, got: {timeout}"
            )
        if not user_agent or not user_agent.strip():
            raise AdapterConfigurationError("user_agent cannot be empty")

        self.timeout = timeout
        self.user_agent = user_agent.strip()
        self.base_url = (base_url or self.DEFAULT_BASE_URL).rstrip("/")
        self.check_status = check_status

        # One session per adapter, never shared between race tasks
        self._session = requests.Session()
        self._session.headers.update({"User-Agent": self.user_agent})

    @property
    def provider_name(self) -> str:
        return self.PROVIDER_NAME

    @abstractmethod
    def build_url(self, postal_code: str) -> str:
        """Return the lookup URL for a postal code.

        The postal code is passed through untouched; malformed codes are left
        for the upstream service to reject.
        """
        pass

    @abstractmethod
    def _to_address(self, payload: BaseModel) -> CanonicalAddress:
        """Map a validated provider payload into a CanonicalAddress."""
        pass

    def lookup(
        self, postal_code: str, cancel_event: Optional[threading.Event] = None
    ) -> ProviderOutcome:
        """Resolve a postal code through this provider.

        Issues one GET, reads the full body, decodes it and normalizes it.
        Never raises for expected failures: every AdapterError is returned as
        a ProviderFailure carrying its reason.

        Args:
            postal_code: Postal code to look up
            cancel_event: Optional token; once set the lookup stops as soon as
                it reaches a checkpoint and reports a cancelled failure

        Returns:
            ProviderSuccess with the normalized record, or ProviderFailure
        """
        url = self.build_url(postal_code)
        started = time.monotonic()

        logger.info(
            f"Looking up postal code on {self.PROVIDER_NAME}",
            extra={
                "event": "adapter.lookup.started",
                "provider": self.PROVIDER_NAME,
                "url": url,
            },
        )

        try:
            payload = self._fetch_json(url, cancel_event)
            address = self._normalize(payload)
        except AdapterError as e:
            elapsed = time.monotonic() - started
            logger.warning(
                f"{self.PROVIDER_NAME} lookup failed: {e}",
                extra={
                    "event": "adapter.lookup.failed",
                    "provider": self.PROVIDER_NAME,
                    "reason": e.reason.value,
                    "elapsed_seconds": round(elapsed, 4),
                },
            )
            return ProviderFailure(provider=self.PROVIDER_NAME, reason=e.reason, message=str(e))

        elapsed = time.monotonic() - started
        logger.info(
            f"{self.PROVIDER_NAME} lookup succeeded",
            extra={
                "event": "adapter.lookup.succeeded",
                "provider": self.PROVIDER_NAME,
                "elapsed_seconds": round(elapsed, 4),
            },
        )
        return ProviderSuccess(address=address, elapsed_seconds=elapsed)

    def _fetch_json(self, url: str, cancel_event: Optional[threading.Event] = None) -> Any:
        """Make the HTTP request and decode the JSON body.

        The timeout bounds the whole exchange, body included: requests only
        applies it to the connect and to each socket read, so a watchdog
        shuts the connection down once the budget is spent.

        Handles:
        - Connection errors and timeouts
        - HTTP error status codes (when check_status is enabled)
        - Body read errors
        - Invalid JSON responses
        - Cancellation checkpoints before the request and between body chunks

        Args:
            url: URL to request
            cancel_event: Optional cancellation token

        Returns:
            Parsed JSON document

        Raises:
            AdapterTimeoutError: When the request or the body read outlives the timeout
            AdapterTransportError: On connection or DNS failure
            AdapterHTTPError: On non-2xx status
            AdapterBodyReadError: If the body cannot be fully read
            AdapterDecodeError: On invalid JSON
            AdapterCancelledError: If cancel_event is set
        """
        self._check_cancelled(cancel_event)
        started = time.monotonic()

        try:
            logger.debug(
                f"HTTP GET request to {url}",
                extra={
                    "event": "adapter.fetch.request",
                    "url": url,
                    "timeout": self.timeout,
                },
            )
            response = self._session.get(url, timeout=self.timeout, stream=True)

        except requests.exceptions.Timeout as e:
            raise self._timeout_error(url) from e
        except requests.exceptions.RequestException as e:
            raise AdapterTransportError(f"Request to {url} failed: {e}", url=url) from e

        remaining = self.timeout - (time.monotonic() - started)
        if remaining <= 0:
            response.close()
            raise self._timeout_error(url)

        expired = threading.Event()

        def expire() -> None:
            expired.set()
            _abort(response)

        watchdog = threading.Timer(remaining, expire)
        watchdog.daemon = True
        watchdog.start()

        try:
            if self.check_status and not 200 <= response.status_code < 300:
                logger.log(
                    logging.WARNING if response.status_code >= 500 else logging.INFO,
                    f"HTTP {response.status_code} from {url}",
                    extra={
                        "event": "adapter.fetch.error",
                        "status_code": response.status_code,
                        "url": url,
                    },
                )
                raise AdapterHTTPError(
                    f"HTTP {response.status_code}: {response.reason}",
                    status_code=response.status_code,
                    url=url,
                )

            body = self._read_body(response, url, cancel_event, expired)
        finally:
            watchdog.cancel()
            response.close()

        return self._decode_json(body, url)

    def _read_body(
        self,
        response: requests.Response,
        url: str,
        cancel_event: Optional[threading.Event] = None,
        expired: Optional[threading.Event] = None,
    ) -> bytes:
        """Read the whole response body, checking for cancellation per chunk.

        Once expired is set the connection has been shut down under the reader,
        so a read error or a short body is reported as a timeout.
        """
        expired = expired or threading.Event()
        chunks = []
        try:
            for chunk in response.iter_content(chunk_size=self.CHUNK_SIZE):
                if expired.is_set():
                    raise self._timeout_error(url)
                self._check_cancelled(cancel_event)
                chunks.append(chunk)
        except requests.exceptions.RequestException as e:
            if expired.is_set() or _is_read_timeout(e):
                raise self._timeout_error(url) from e
            logger.error(
                f"Failed to read response body from {url}",
                extra={
                    "event": "adapter.fetch.error",
                    "error_type": type(e).__name__,
                    "url": url,
                },
            )
            raise AdapterBodyReadError(f"Failed to read response body from {url}: {e}") from e
        except (OSError, ValueError, AttributeError) as e:
            # Raised by the socket layer once the watchdog shut it down mid-read
            if not expired.is_set():
                raise
            raise self._timeout_error(url) from e

        if expired.is_set():
            raise self._timeout_error(url)

        return b"".join(chunks)

    def _timeout_error(self, url: str) -> AdapterTimeoutError:
        return AdapterTimeoutError(
            f"Request to {url} timed out after {self.timeout} seconds",
            url=url,
        )

    def _decode_json(self, body: bytes, url: str) -> Any:
        try:
            return json.loads(body)
        except ValueError as e:
            raise AdapterDecodeError(f"Failed to parse JSON response from {url}: {e}") from e

    def _normalize(self, payload: Any) -> CanonicalAddress:
        """Validate a decoded body against the provider schema and map it.

        Raises:
            AdapterDecodeError: If the body does not match the schema or the
                mapped record is missing postal code, city or region
        """
        if not isinstance(payload, dict):
            raise AdapterDecodeError(
                f"Expected JSON object response, got {type(payload).__name__}"
            )

        self._check_payload(payload)

        try:
            model = self.RESPONSE_MODEL.model_validate(payload)
            return self._to_address(model)
        except ValidationError as e:
            fields = ", ".join(
                ".".join(str(loc) for loc in error["loc"]) or "body" for error in e.errors()
            )
            raise AdapterDecodeError(
                f"{self.PROVIDER_NAME} response does not match the expected schema ({fields})"
            ) from e

    def _check_payload(self, payload: Dict[str, Any]) -> None:
        """Hook for provider-specific error bodies. Default: no check."""
        return None

    def _check_cancelled(self, cancel_event: Optional[threading.Event]) -> None:
        if cancel_event is not None and cancel_event.is_set():
            raise AdapterCancelledError(f"{self.PROVIDER_NAME} lookup cancelled")

    def close(self) -> None:
        """Release the underlying HTTP session."""
        self._session.close()
