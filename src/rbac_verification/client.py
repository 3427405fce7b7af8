"""Weaviate REST client used by the verification runner and data scripts.

Thin synchronous wrapper over the handful of ``/v1`` endpoints the course
touches. HTTP status codes and transport failures are mapped onto a small
exception hierarchy so callers never have to parse error text:

    connect error / connect timeout -> WeaviateConnectionError
    401                             -> AuthenticationError
    403                             -> PermissionDeniedError
    other transport error           -> TransportFailure
    other status >= 400             -> UnexpectedResponseError
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from typing import Any

import httpx

logger = logging.getLogger(__name__)

# Constants
DEFAULT_TIMEOUT = 10.0
DEFAULT_PAGE_SIZE = 100
TEXT_DATA_TYPE = "text"


class WeaviateError(Exception):
    """Base exception for Weaviate client operations."""


class WeaviateConnectionError(WeaviateError, ConnectionError):
    """The service could not be reached at all."""


class AuthenticationError(WeaviateError):
    """The credential was rejected (401)."""


class PermissionDeniedError(WeaviateError):
    """The credential is valid but not allowed to do this (403)."""


class TransportFailure(WeaviateError):
    """The connection broke while a request was in flight."""


class UnexpectedResponseError(WeaviateError):
    """Any other error status returned by the server."""

    def __init__(self, status_code: int, body: str, path: str = ""):
        self.status_code = status_code
        self.body = body
        self.path = path
        super().__init__(f"{path} returned {status_code}: {body[:200]}")


def text_property(name: str) -> dict[str, Any]:
    """Schema property definition for a plain text field."""
    return {"name": name, "dataType": [TEXT_DATA_TYPE]}


class WeaviateClient:
    """Client for the Weaviate REST API.

    One instance is one authenticated session. Use it as a context manager
    so the underlying connection pool is always released.
    """

    def __init__(
        self,
        base_url: str,
        token: str | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        """Initialize Weaviate client.

        Args:
            base_url: Scheme, host and port, e.g. http://localhost:8080
            token: Bearer token (API key); None sends no Authorization header
            timeout: Request timeout in seconds
        """
        self.base_url = base_url.rstrip("/")
        self.token = token
        self.timeout = timeout
        self._client: httpx.Client | None = None

    @property
    def headers(self) -> dict[str, str]:
        """Build request headers."""
        headers = {"Accept": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def __enter__(self) -> WeaviateClient:
        self._client = httpx.Client(
            base_url=self.base_url,
            headers=self.headers,
            timeout=self.timeout,
        )
        return self

    def __exit__(self, *args) -> None:
        self.close()

    def close(self) -> None:
        if self._client:
            self._client.close()
            self._client = None

    @property
    def client(self) -> httpx.Client:
        """Get HTTP client, creating if needed."""
        if self._client is None:
            self._client = httpx.Client(
                base_url=self.base_url,
                headers=self.headers,
                timeout=self.timeout,
            )
        return self._client

    def _request(self, method: str, path: str, **kwargs: Any) -> httpx.Response:
        logger.debug(f"{method} {path}")
        try:
            response = self.client.request(method, path, **kwargs)
        except (httpx.ConnectError, httpx.ConnectTimeout) as e:
            raise WeaviateConnectionError(f"Cannot reach {self.base_url}: {e}") from e
        except httpx.TransportError as e:
            raise TransportFailure(f"{method} {path} failed in flight: {e!r}") from e

        if response.status_code == 401:
            raise AuthenticationError(f"{method} {path}: credential rejected")
        if response.status_code == 403:
            raise PermissionDeniedError(f"{method} {path}: forbidden")
        if response.status_code >= 400:
            raise UnexpectedResponseError(response.status_code, response.text, path)
        return response

    def _json(self, response: httpx.Response, expected: type = dict) -> Any:
        """Decode a JSON body, which must be an instance of ``expected``.

        An empty body decodes to an empty ``expected``. Anything else that is
        not the documented shape (an HTML proxy page, a bare list where an
        object belongs) raises UnexpectedResponseError.
        """
        if not response.content:
            return expected()
        path = response.request.url.path
        try:
            data = response.json()
        except ValueError as e:
            raise UnexpectedResponseError(response.status_code, response.text, path) from e
        if not isinstance(data, expected):
            raise UnexpectedResponseError(
                response.status_code,
                f"expected a JSON {expected.__name__}, got {type(data).__name__}",
                path,
            )
        return data

    # ------------------------------------------------------------------
    # Meta
    # ------------------------------------------------------------------

    def get_meta(self) -> dict[str, Any]:
        """Return server metadata (hostname, version, modules)."""
        return self._json(self._request("GET", "/v1/meta"))

    def is_ready(self) -> bool:
        """Readiness probe; unauthenticated on a stock server."""
        try:
            response = self.client.get("/v1/.well-known/ready")
        except httpx.TransportError:
            return False
        return response.status_code == 200

    # ------------------------------------------------------------------
    # Schema
    # ------------------------------------------------------------------

    def collection_exists(self, name: str) -> bool:
        try:
            self._request("GET", f"/v1/schema/{name}")
        except UnexpectedResponseError as e:
            if e.status_code == 404:
                return False
            raise
        return True

    def create_collection(
        self,
        name: str,
        properties: list[dict[str, Any]],
        vectorizer: str = "none",
    ) -> dict[str, Any]:
        body = {"class": name, "properties": properties, "vectorizer": vectorizer}
        return self._json(self._request("POST", "/v1/schema", json=body))

    def delete_collection(self, name: str) -> None:
        self._request("DELETE", f"/v1/schema/{name}")

    # ------------------------------------------------------------------
    # Objects
    # ------------------------------------------------------------------

    def insert_object(
        self,
        collection: str,
        properties: dict[str, Any],
        object_id: str | None = None,
    ) -> dict[str, Any]:
        """Insert one object and return the stored representation."""
        body: dict[str, Any] = {"class": collection, "properties": properties}
        if object_id:
            body["id"] = object_id
        return self._json(self._request("POST", "/v1/objects", json=body))

    def fetch_objects(
        self,
        collection: str,
        limit: int = DEFAULT_PAGE_SIZE,
        after: str | None = None,
    ) -> list[dict[str, Any]]:
        """Fetch up to ``limit`` objects, optionally after a cursor id."""
        params: dict[str, Any] = {"class": collection, "limit": limit}
        if after:
            params["after"] = after
        data = self._json(self._request("GET", "/v1/objects", params=params))
        return data.get("objects") or []

    def iter_objects(
        self,
        collection: str,
        page_size: int = DEFAULT_PAGE_SIZE,
    ) -> Iterator[list[dict[str, Any]]]:
        """Yield pages of objects using cursor pagination."""
        after: str | None = None
        while True:
            page = self.fetch_objects(collection, limit=page_size, after=after)
            if not page:
                return
            yield page
            if len(page) < page_size:
                return
            after = page[-1]["id"]

    def batch_insert(self, objects: list[dict[str, Any]]) -> list[dict[str, Any]]:
        """Insert many objects; returns the per-object results list."""
        return self._json(
            self._request("POST", "/v1/batch/objects", json={"objects": objects}),
            expected=list,
        )

    # ------------------------------------------------------------------
    # Backups
    # ------------------------------------------------------------------

    def create_backup(
        self,
        backend: str,
        backup_id: str,
        include: list[str] | None = None,
    ) -> dict[str, Any]:
        body: dict[str, Any] = {"id": backup_id}
        if include:
            body["include"] = include
        return self._json(self._request("POST", f"/v1/backups/{backend}", json=body))

    def get_backup_status(self, backend: str, backup_id: str) -> dict[str, Any]:
        return self._json(self._request("GET", f"/v1/backups/{backend}/{backup_id}"))
