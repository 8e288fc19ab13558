"""
Shared HTTP plumbing for external APIs.
"""

import logging
from typing import Any, Dict, Optional
import httpx

from ...core.exceptions import ExternalAPIError

logger = logging.getLogger(__name__)


class NotFoundResponse(ExternalAPIError):
    """The remote API answered 404."""
    pass


class ApiClient:
    """Thin async JSON client with uniform error translation."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        headers: Optional[Dict[str, str]] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self.headers = headers or {}
        self.transport = transport

    async def _make_request(
        self,
        method: str,
        url: str,
        json: Optional[Dict[str, Any]] = None,
        params: Optional[Dict[str, Any]] = None,
        headers: Optional[Dict[str, str]] = None,
    ) -> Dict[str, Any]:
        """Make HTTP request with error handling."""
        merged = {**self.headers, **(headers or {})}
        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.request(
                    method=method,
                    url=url,
                    json=json,
                    params=params,
                    headers=merged,
                )
                response.raise_for_status()
                if not response.content:
                    return {}
                return response.json()
        except httpx.TimeoutException as e:
            raise ExternalAPIError(f"Request to {url} timed out") from e
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise NotFoundResponse(f"Not found: {url}") from e
            raise ExternalAPIError(f"HTTP error {e.response.status_code} from {url}") from e
        except httpx.HTTPError as e:
            raise ExternalAPIError(f"Request to {url} failed: {e}") from e
        except ValueError as e:
            raise ExternalAPIError(f"Malformed JSON from {url}") from e

    def url(self, path: str) -> str:
        return f"{self.base_url}/{path.lstrip('/')}"
