"""
Tool: Graph Client
Purpose: Authenticated, synchronous Microsoft Graph calls with nextLink pagination

Usage:
    from presence_sync.graph.client import GraphClient

    with GraphClient(access_token) as client:
        users = client.fetch_all("/users", params={"$select": "id,displayName"})

Pagination:
    Graph returns at most one page per request. A page carrying
    "@odata.nextLink" is followed by another GET against that link after a
    fixed throttle delay; the "value" arrays are concatenated in page order.
    A failed page raises TransportError and nothing is retried here.

Dependencies:
    - httpx (pip install httpx)
"""

import logging
import time
from collections.abc import Callable
from typing import Any

import httpx

from presence_sync.errors import TransportError

logger = logging.getLogger(__name__)


# Microsoft Graph API endpoints
GRAPH_API_BASE = "https://graph.microsoft.com/v1.0"
NEXT_LINK_KEY = "@odata.nextLink"
DEFAULT_PAGE_DELAY_SECONDS = 3.0


class GraphClient:
    """
    Bearer-authenticated Graph client for one pass.

    The token is read-only for the client's lifetime. Owns its httpx.Client
    unless one is injected.
    """

    def __init__(
        self,
        access_token: str,
        base_url: str = GRAPH_API_BASE,
        http_client: httpx.Client | None = None,
        page_delay_seconds: float = DEFAULT_PAGE_DELAY_SECONDS,
        sleep: Callable[[float], None] = time.sleep,
        timeout: float = 30.0,
    ):
        self.access_token = access_token
        self.base_url = base_url.rstrip("/")
        self.page_delay_seconds = page_delay_seconds
        self._sleep = sleep
        self._owns_client = http_client is None
        self._http = http_client or httpx.Client(timeout=timeout)

    def __enter__(self) -> "GraphClient":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    def close(self) -> None:
        if self._owns_client:
            self._http.close()

    def _get_headers(self) -> dict[str, str]:
        """Get authorization headers for API requests."""
        return {
            "Authorization": f"Bearer {self.access_token}",
            "Content-Type": "application/json",
        }

    def url(self, path: str) -> str:
        """Resolve a Graph path against the base URL; absolute URLs pass through."""
        if path.startswith("http://") or path.startswith("https://"):
            return path
        return f"{self.base_url}/{path.lstrip('/')}"

    def request(
        self,
        method: str,
        path: str,
        json_body: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """
        Make an authenticated API request.

        Args:
            method: HTTP method
            path: Graph path or absolute URL
            json_body: Request body (for POST)
            params: Query parameters

        Returns:
            The raw httpx.Response, whatever its status

        Raises:
            TransportError: If the request could not be sent
        """
        url = self.url(path)
        try:
            return self._http.request(
                method,
                url,
                headers=self._get_headers(),
                json=json_body,
                params=params,
            )
        except httpx.HTTPError as e:
            raise TransportError(f"Request failed: {e!s}", url=url) from e

    def get_json(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        """
        GET a single Graph resource.

        Raises:
            TransportError: On non-2xx status or a body that is not a JSON object
        """
        resp = self.request("GET", path, params=params)
        return _handle_response(resp)

    def fetch_all(self, path: str, params: dict[str, Any] | None = None) -> list[dict[str, Any]]:
        """
        Walk every page of a Graph collection.

        Args:
            path: Collection path or absolute URL of the first page
            params: Query parameters for the first request only; the nextLink
                already embeds them

        Returns:
            Records from every page's "value", in page-arrival order

        Raises:
            TransportError: If any page fails or is malformed
        """
        records: list[dict[str, Any]] = []
        next_uri: str | None = path
        page_params = params
        pages = 0

        while next_uri:
            payload = self.get_json(next_uri, params=page_params)
            page_params = None
            pages += 1

            value = payload.get("value")
            if not isinstance(value, list):
                raise TransportError("Malformed page: missing 'value' array", url=self.url(next_uri))
            records.extend(value)
            logger.debug(f"Fetched page {pages} of {path} ({len(value)} records)")

            next_uri = payload.get(NEXT_LINK_KEY)
            if next_uri:
                # Throttle between pages to stay under Graph rate limits
                self._sleep(self.page_delay_seconds)

        return records


def _handle_response(resp: httpx.Response) -> dict[str, Any]:
    """Handle API response."""
    url = str(resp.request.url)

    if resp.status_code == 401:
        raise TransportError("Authentication failed - token may be expired", 401, url)
    if resp.status_code == 403:
        raise TransportError("Permission denied - insufficient application permissions", 403, url)
    if resp.status_code == 404:
        raise TransportError("Resource not found", 404, url)
    if not 200 <= resp.status_code < 300:
        raise TransportError(graph_error_message(resp), resp.status_code, url)

    try:
        data = resp.json()
    except ValueError as e:
        raise TransportError("Malformed payload: body is not JSON", resp.status_code, url) from e
    if not isinstance(data, dict):
        raise TransportError("Malformed payload: expected a JSON object", resp.status_code, url)
    return data


def graph_error_message(resp: httpx.Response) -> str:
    """Extract Graph's error.message, falling back to the HTTP status."""
    try:
        data = resp.json()
    except ValueError:
        data = {}
    if isinstance(data, dict):
        error = data.get("error")
        if isinstance(error, dict) and error.get("message"):
            return f"HTTP {resp.status_code}: {error['message']}"
    return f"HTTP {resp.status_code}"
