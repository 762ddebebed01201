"""
HTTP Transport for the Restaurant Backend

Thin wrapper around httpx.AsyncClient that turns transport failures and
non-2xx answers into the workflow error taxonomy:
    - timeouts, refused connections, DNS failures -> NetworkError
    - any non-2xx status -> ApiError(status), message from the body's
      "error" field when present

Author: Khalil Bannouri
Version: 1.0.0
"""

import logging
from typing import Any, Optional

import httpx

from restaurant_ops.core.exceptions import ApiError, NetworkError

logger = logging.getLogger(__name__)


class HttpTransport:
    """
    JSON transport bound to one backend base URL.

    Example:
        >>> transport = HttpTransport("http://localhost:8080")
        >>> orders = await transport.get("/api/orders")
        >>> await transport.close()
    """

    def __init__(
        self,
        base_url: str,
        timeout: float = 30.0,
        client: Optional[httpx.AsyncClient] = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = client or httpx.AsyncClient(
            base_url=self.base_url,
            timeout=timeout,
            headers={"Content-Type": "application/json"},
        )

    async def close(self) -> None:
        await self._client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        params: Optional[dict[str, Any]] = None,
        json: Any = None,
    ) -> Any:
        """
        Send a request and return the decoded JSON body.

        Returns None for empty bodies (e.g. 204 No Content).

        Raises:
            NetworkError: The request never got an HTTP answer
            ApiError: The backend answered with a non-2xx status
        """
        try:
            response = await self._client.request(method, path, params=params, json=json)
        except httpx.TimeoutException as e:
            logger.warning(f"{method} {path} timed out")
            raise NetworkError("Request timed out - please check your connection") from e
        except httpx.TransportError as e:
            logger.warning(f"{method} {path} failed: {e}")
            raise NetworkError(
                "Unable to connect to server - please check if the backend is running"
            ) from e

        if not response.is_success:
            raise ApiError(response.status_code, self._error_message(response))

        if not response.content:
            return None
        try:
            return response.json()
        except ValueError as e:
            raise ApiError(response.status_code, "Backend returned an invalid JSON body") from e

    @staticmethod
    def _error_message(response: httpx.Response) -> str:
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            return str(body["error"])
        return f"HTTP {response.status_code}: {response.reason_phrase}"

    async def get(self, path: str, params: Optional[dict[str, Any]] = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json: Any = None) -> Any:
        return await self.request("POST", path, json=json)

    async def put(self, path: str, json: Any = None) -> Any:
        return await self.request("PUT", path, json=json)

    async def patch(self, path: str, json: Any = None) -> Any:
        return await self.request("PATCH", path, json=json)

    async def delete(self, path: str) -> Any:
        return await self.request("DELETE", path)
