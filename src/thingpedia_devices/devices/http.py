"""
Shared HTTP client for device adapters.

A thin synchronous HTTPX wrapper: every upstream call is a single request
whose transport errors, non-2xx responses and undecodable bodies surface as
:class:`~thingpedia_devices.devices.base.UpstreamError` with the original
exception chained. Retries are available through tenacity but disabled by
default (``max_attempts=1``).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from logging import LoggerAdapter
from typing import Any, Mapping, MutableMapping, Optional

import httpx
from tenacity import RetryError, retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from ..config import DEFAULT_HTTP_TIMEOUT
from ..core.logging import get_logger
from .base import UpstreamError


@dataclass(slots=True)
class BaseAPIClient:
    """
    Base synchronous HTTP client.

    Parameters
    ----------
    base_url:
        Root URL for the upstream service.
    timeout:
        Request timeout in seconds.
    default_headers:
        Headers attached to every request (e.g. ``Authorization``).
    default_params:
        Query parameters attached to every request (e.g. an ``api_key``).
    max_attempts:
        Total attempts per request; ``1`` disables retries.
    transport:
        Optional HTTPX transport, used by tests to stub the upstream.
    """

    base_url: str = ""
    timeout: float = DEFAULT_HTTP_TIMEOUT
    default_headers: MutableMapping[str, str] = field(default_factory=dict)
    default_params: MutableMapping[str, str] = field(default_factory=dict)
    max_attempts: int = 1
    transport: Optional[httpx.BaseTransport] = field(default=None, repr=False)
    logger: LoggerAdapter = field(init=False, repr=False)

    def __post_init__(self) -> None:
        self.logger = get_logger(
            f"{self.__class__.__module__}.{self.__class__.__name__}",
            extra={"base_url": self.base_url or None},
        )

    def _build_client(self) -> httpx.Client:
        return httpx.Client(
            base_url=self.base_url,
            timeout=self.timeout,
            headers=dict(self.default_headers),
            params=dict(self.default_params),
            follow_redirects=True,
            transport=self.transport,
        )

    @staticmethod
    def _raise_for_status(response: httpx.Response) -> None:
        try:
            response.raise_for_status()
        except httpx.HTTPStatusError as exc:
            raise UpstreamError(f"HTTP {exc.response.status_code} error for {exc.request.method} {exc.request.url}") from exc

    def _request(self, method: str, url: str, **kwargs: Any) -> httpx.Response:
        self.logger.debug("HTTP request", extra={"method": method, "url": url})

        @retry(
            retry=retry_if_exception_type(httpx.TransportError),
            wait=wait_exponential(multiplier=1, min=1, max=8),
            stop=stop_after_attempt(max(1, self.max_attempts)),
            reraise=True,
        )
        def _send() -> httpx.Response:
            with self._build_client() as client:
                return client.request(method, url, **kwargs)

        try:
            response = _send()
        except RetryError as exc:
            self.logger.error("HTTP request failed after retries", extra={"method": method, "url": url, "error": str(exc)})
            raise UpstreamError(f"Failed to call {method} {url} after {self.max_attempts} attempts") from exc
        except httpx.HTTPError as exc:
            self.logger.error("HTTP error during request", extra={"method": method, "url": url, "error": str(exc)})
            raise UpstreamError(f"HTTP error while calling {method} {url}") from exc

        self._raise_for_status(response)
        self.logger.debug("HTTP response", extra={"status_code": response.status_code, "url": url})
        return response

    @staticmethod
    def _decode(response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as exc:
            raise UpstreamError(f"Failed to decode JSON from {response.request.url.path}") from exc

    def _get_json(
        self,
        url: str,
        *,
        params: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        return self._decode(self._request("GET", url, params=params, headers=headers))

    def _post_json(
        self,
        url: str,
        *,
        json_body: Optional[Mapping[str, Any]] = None,
        headers: Optional[Mapping[str, str]] = None,
    ) -> Any:
        response = self._request("POST", url, json=json_body, headers=headers)
        if not response.content:
            return None
        return self._decode(response)


def bearer_headers(access_token: str) -> MutableMapping[str, str]:
    """Headers for OAuth2 bearer-authenticated JSON APIs."""

    return {"Authorization": f"Bearer {access_token}", "Accept": "application/json"}
