"""HTTP transport for the GoHighLevel / LeadConnector APIs.

Two API generations are in use:

- generation 1 (rest.gohighlevel.com/v1): location scoping via a
  ``LocationId`` header
- generation 2 (services.leadconnectorhq.com): a ``Version`` header, and the
  location id as a query parameter on reads / a body field on writes

Both get the location id injected into the query string (GET) or the JSON
body (POST/PUT) when the caller has not already set it.
"""

import logging
from enum import Enum
from typing import Any

import httpx

logger = logging.getLogger(__name__)

LOCATION_PARAM = "locationId"


class ApiGeneration(str, Enum):
    """CRM API generation."""

    V1 = "v1"
    V2 = "v2"


class RemoteCallFailed(Exception):
    """A CRM call returned a non-2xx status or never got a response.

    ``status`` is 0 for network-level failures.
    """

    def __init__(self, status: int, body: str, method: str = "", url: str = "") -> None:
        self.status = status
        self.body = body
        self.method = method
        self.url = url
        super().__init__(f"{method} {url} failed with status {status}: {body[:500]}")


class CrmClient:
    """Thin async HTTP wrapper that authenticates and location-scopes calls.

    No retries: callers decide whether a failure skips, aborts or continues.
    """

    def __init__(
        self,
        api_key: str,
        location_id: str,
        base_url: str,
        generation: ApiGeneration = ApiGeneration.V2,
        api_version: str = "2021-07-28",
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        if not api_key:
            raise ValueError("CRM API key must be provided")
        self.location_id = location_id
        self.generation = generation

        headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
            "Accept": "application/json",
        }
        if generation == ApiGeneration.V2:
            headers["Version"] = api_version
        else:
            headers["LocationId"] = location_id

        self._client = httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "CrmClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close the underlying HTTP connection pool."""
        await self._client.aclose()

    def _scope_params(self, method: str, params: dict[str, Any] | None) -> dict[str, Any] | None:
        if method != "GET" or not self.location_id:
            return params
        params = dict(params or {})
        params.setdefault(LOCATION_PARAM, self.location_id)
        return params

    def _scope_body(self, method: str, body: dict[str, Any] | None) -> dict[str, Any] | None:
        if method not in ("POST", "PUT") or body is None or not self.location_id:
            return body
        if LOCATION_PARAM in body:
            return body
        return {**body, LOCATION_PARAM: self.location_id}

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        body: dict[str, Any] | None = None,
    ) -> Any:
        """Send a request and return the parsed JSON body.

        Args:
            method: HTTP method
            path: Path relative to the API base URL
            params: Query parameters
            body: JSON body for POST/PUT

        Returns:
            Parsed JSON response ({} for an empty body)

        Raises:
            RemoteCallFailed: On a non-2xx response or a network error
        """
        method = method.upper()
        params = self._scope_params(method, params)
        body = self._scope_body(method, body)

        logger.debug(
            f"CRM {self.generation.value} {method} {path}",
            extra={"params": params, "body": body},
        )

        try:
            response = await self._client.request(method, path, params=params, json=body)
        except httpx.RequestError as e:
            logger.warning(f"CRM {method} {path} network error: {e}")
            raise RemoteCallFailed(0, str(e), method, path) from e

        if not response.is_success:
            logger.warning(f"CRM {method} {path} failed {response.status_code}: {response.text[:500]}")
            raise RemoteCallFailed(response.status_code, response.text, method, path)

        if not response.content:
            return {}
        try:
            return response.json()
        except ValueError as e:
            raise RemoteCallFailed(response.status_code, f"Invalid JSON: {response.text[:200]}", method, path) from e
