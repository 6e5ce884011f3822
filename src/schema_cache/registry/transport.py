import logging
import os
import time
from typing import Any
from urllib.parse import quote

import httpx
from opentelemetry import trace

from schema_cache.core.exceptions import (
    ConfigurationError,
    ConflictError,
    NotFoundError,
    RegistryError,
    TransportError,
)
from schema_cache.metrics import record_request
from schema_cache.settings import RegistrySettings

logger = logging.getLogger(__name__)

_tracer = trace.get_tracer(__name__)

CONTENT_TYPE = "application/vnd.schemaregistry.v1+json"


def quote_subject(subject: str) -> str:
    """Percent-encode a subject name for use as a single path segment."""
    return quote(subject, safe="")


class Transport:
    """Performs one HTTP request against the schema registry per call.

    Base URLs are tried in order; the next one is used only when the previous
    could not be reached at all. An HTTP error status from any registry is
    final. No retries or backoff happen here.
    """

    def __init__(
        self,
        base_urls: list[str],
        timeout: float = 10.0,
        auth: httpx.Auth | tuple[str, str] | None = None,
        headers: dict[str, str] | None = None,
        verify: bool | str = True,
        cert: tuple[str, str] | str | None = None,
    ):
        if not base_urls:
            raise ValueError("At least one base URL is required")
        self.base_urls = [u.rstrip("/") for u in base_urls]
        self.timeout = timeout
        self._client = httpx.Client(
            timeout=timeout,
            auth=auth,
            headers={"Accept": CONTENT_TYPE, **(headers or {})},
            verify=verify,
            cert=cert,
        )

    @classmethod
    def from_settings(cls, settings: RegistrySettings) -> "Transport":
        for name in ("ssl_ca_location", "ssl_certificate_location", "ssl_key_location"):
            path = getattr(settings, name)
            if path and not os.path.isfile(path):
                raise ConfigurationError(
                    f"{name} points to a missing file: {path}",
                    details={"setting": name, "path": path},
                )

        auth: tuple[str, str] | None = None
        headers: dict[str, str] = {}
        if settings.basic_auth_user_info:
            user, _, password = settings.basic_auth_user_info.partition(":")
            auth = (user, password)
        elif settings.bearer_token:
            headers["Authorization"] = f"Bearer {settings.bearer_token}"

        verify: bool | str = settings.ssl_verify
        if settings.ssl_verify and settings.ssl_ca_location:
            verify = settings.ssl_ca_location

        cert: tuple[str, str] | str | None = None
        if settings.ssl_certificate_location:
            cert = (
                (settings.ssl_certificate_location, settings.ssl_key_location)
                if settings.ssl_key_location
                else settings.ssl_certificate_location
            )

        return cls(
            settings.url_list,
            timeout=settings.timeout_seconds,
            auth=auth,
            headers=headers,
            verify=verify,
            cert=cert,
        )

    def request(
        self,
        method: str,
        path: str,
        body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Send one request and return the decoded JSON body.

        Raises:
            NotFoundError: registry answered 404
            ConflictError: registry answered 409
            RegistryError: any other non-2xx status, or a non-JSON body
            TransportError: no base URL could be reached
        """
        last_error: httpx.TransportError | None = None

        with _tracer.start_as_current_span("schema_registry.request") as span:
            span.set_attribute("http.request.method", method)
            span.set_attribute("url.path", path)

            for base_url in self.base_urls:
                url = f"{base_url}{path}"
                start_time = time.perf_counter()
                try:
                    response = self._client.request(
                        method,
                        url,
                        json=body,
                        params=params,
                        headers={"Content-Type": CONTENT_TYPE} if body is not None else None,
                    )
                except httpx.TransportError as e:
                    record_request(method, "transport_error", time.perf_counter() - start_time)
                    logger.warning(
                        f"Schema registry unreachable at {base_url}: {e}",
                        extra={"url": base_url},
                    )
                    last_error = e
                    continue

                latency = time.perf_counter() - start_time
                span.set_attribute("http.response.status_code", response.status_code)
                if response.is_success:
                    record_request(method, "ok", latency)
                    return self._json(response)

                record_request(method, "http_error", latency)
                raise self._error_for(response)

        raise TransportError(
            f"Schema registry unreachable: {method} {path}: {last_error}",
            details={"urls": self.base_urls, "method": method, "path": path},
        ) from last_error

    def _json(self, response: httpx.Response) -> Any:
        try:
            return response.json()
        except ValueError as e:
            raise RegistryError(
                f"Schema registry returned a non-JSON body for {response.request.url.path}",
                status_code=response.status_code,
            ) from e

    def _error_for(self, response: httpx.Response) -> RegistryError:
        error_code: int | None = None
        message = response.text or response.reason_phrase
        try:
            data = response.json()
        except ValueError:
            data = None
        if isinstance(data, dict):
            error_code = data.get("error_code")
            message = data.get("message", message)

        details = {"path": response.request.url.path, "method": response.request.method}
        text = f"Schema registry error {response.status_code}: {message}"

        if response.status_code == 404:
            return NotFoundError(text, status_code=404, error_code=error_code, details=details)
        if response.status_code == 409:
            return ConflictError(text, status_code=409, error_code=error_code, details=details)
        return RegistryError(
            text, status_code=response.status_code, error_code=error_code, details=details
        )

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "Transport":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()
