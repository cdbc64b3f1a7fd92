"""
Async HTTP client for the mirror API.

Transport failures and 5xx answers mean the mirror is unavailable; 400 and
409 mean the mirror refused the payload. Nothing here retries.
"""

import logging
from typing import Any, Dict, List, Optional

import httpx

from config import settings

logger = logging.getLogger(__name__)


class MirrorError(Exception):
    """Base exception for mirror client failures."""
    pass


class MirrorUnavailableError(MirrorError):
    """Mirror could not be reached or failed internally."""
    pass


class MirrorRejectedError(MirrorError):
    """Mirror rejected the request (validation failure or completion conflict)."""

    def __init__(self, message: str, status_code: int):
        super().__init__(message)
        self.status_code = status_code


class MirrorClient:
    """Client for the mirror's JSON endpoints."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.base_url = (base_url or settings.mirror_api_url).rstrip("/")
        self.timeout = timeout if timeout is not None else settings.mirror_timeout_seconds
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=transport,
        )

    async def close(self):
        await self._client.aclose()

    async def __aenter__(self) -> "MirrorClient":
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self.close()

    # ==================== WRITES ====================

    async def upsert_circle(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/circles/upsert", json=payload)

    async def upsert_member(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/members/upsert", json=payload)

    async def upsert_task(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        return await self._request("POST", "/tasks/upsert", json=payload)

    # ==================== READS ====================

    async def get_circle(self, circle_id: int) -> Optional[Dict[str, Any]]:
        return await self._request("GET", f"/circles/{circle_id}")

    async def get_circles_by_owner(self, address: str) -> List[Dict[str, Any]]:
        return await self._request("GET", f"/circles/owner/{address}")

    async def get_members(self, circle_id: int) -> List[Dict[str, Any]]:
        return await self._request("GET", f"/circles/{circle_id}/members")

    async def get_tasks(self, circle_id: int) -> List[Dict[str, Any]]:
        return await self._request("GET", f"/circles/{circle_id}/tasks")

    async def get_task(self, task_id: int) -> Optional[Dict[str, Any]]:
        return await self._request("GET", f"/tasks/{task_id}")

    async def get_assigned_tasks(self, address: str) -> List[Dict[str, Any]]:
        return await self._request("GET", f"/tasks/assigned/{address}")

    async def get_stats(self, circle_id: int) -> Dict[str, Any]:
        return await self._request("GET", f"/circles/{circle_id}/stats")

    async def get_global_stats(self) -> Dict[str, Any]:
        return await self._request("GET", "/stats")

    async def health(self) -> Dict[str, Any]:
        return await self._request("GET", "/health")

    # ==================== TRANSPORT ====================

    async def _request(self, method: str, path: str, json: Optional[Dict[str, Any]] = None) -> Any:
        try:
            response = await self._client.request(method, path, json=json)
        except httpx.HTTPError as e:
            logger.warning(f"Mirror {method} {path} failed: {e!r}")
            raise MirrorUnavailableError(f"Mirror unreachable at {self.base_url}: {e}") from e

        if response.status_code >= 500:
            logger.warning(f"Mirror {method} {path} answered {response.status_code}")
            raise MirrorUnavailableError(
                f"Mirror error {response.status_code} on {method} {path}"
            )

        if response.status_code >= 400:
            message = self._error_message(response)
            logger.warning(f"Mirror rejected {method} {path} ({response.status_code}): {message}")
            raise MirrorRejectedError(message, response.status_code)

        try:
            return response.json()
        except ValueError as e:
            logger.warning(f"Mirror {method} {path} returned a non-JSON body: {e}")
            raise MirrorUnavailableError(
                f"Mirror returned an unreadable response on {method} {path}"
            ) from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            return response.text or f"HTTP {response.status_code}"
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return f"HTTP {response.status_code}"
