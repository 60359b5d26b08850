"""HTTP client for the PostgREST backend."""

import logging
from typing import Any, Optional

import httpx

logger = logging.getLogger(__name__)


class BackendError(Exception):
    """A backend request failed."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class NotFoundError(BackendError):
    """A write matched no row."""


def _eq(filters: dict[str, Any]) -> dict[str, str]:
    """Turn {'id': 'x'} into PostgREST query params {'id': 'eq.x'}."""
    return {column: f"eq.{value}" for column, value in filters.items()}


class BackendClient:
    """Thin async wrapper over the PostgREST table API."""

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        headers = {"User-Agent": "sitehub-mcp/1.0 (Sitehub MCP Server)"}
        if api_key:
            headers["apikey"] = api_key
            headers["Authorization"] = f"Bearer {api_key}"
        self.http_client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            follow_redirects=True,
            headers=headers,
            transport=transport,
        )

    async def _request(self, method: str, table: str, **kwargs) -> list[dict]:
        try:
            response = await self.http_client.request(method, f"/{table}", **kwargs)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            message = _error_message(e.response)
            logger.error("%s /%s failed with HTTP %s: %s", method, table, e.response.status_code, message)
            raise BackendError(
                f"HTTP error {e.response.status_code} on {table}: {message}",
                status_code=e.response.status_code,
            )
        except httpx.TimeoutException:
            logger.error("%s /%s timed out", method, table)
            raise BackendError(f"Timeout on {table}")
        except httpx.HTTPError as e:
            logger.error("%s /%s failed: %s", method, table, e)
            raise BackendError(f"Error on {table}: {str(e)}")

        if not response.content:
            return []
        return response.json()

    async def select(self, table: str, params: Optional[dict[str, Any]] = None) -> list[dict]:
        """GET rows. params are passed through as PostgREST query parameters."""
        return await self._request("GET", table, params=params or {})

    async def insert(self, table: str, row: dict[str, Any]) -> list[dict]:
        return await self._request(
            "POST", table, json=row, headers={"Prefer": "return=representation"}
        )

    async def update(self, table: str, filters: dict[str, Any], values: dict[str, Any]) -> list[dict]:
        return await self._request(
            "PATCH",
            table,
            params=_eq(filters),
            json=values,
            headers={"Prefer": "return=representation"},
        )

    async def delete(self, table: str, filters: dict[str, Any]) -> list[dict]:
        return await self._request(
            "DELETE", table, params=_eq(filters), headers={"Prefer": "return=representation"}
        )

    async def aclose(self) -> None:
        await self.http_client.aclose()


def _error_message(response: httpx.Response) -> str:
    """Pull PostgREST's `message` out of an error body, falling back to raw text."""
    try:
        body = response.json()
    except ValueError:
        return response.text
    if isinstance(body, dict):
        return body.get("message") or response.text
    return response.text
