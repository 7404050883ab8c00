"""
REST HTTP client for the LocalForge server (``/api/...``).
"""

from typing import Any, Optional

import httpx

from forge_watch.errors import ServerError, TransportError

DEFAULT_PORT = 3826
DEFAULT_BASE_URL = f"http://localhost:{DEFAULT_PORT}"


class HttpClient:
    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = 30.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self._base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=f"{self._base_url}/api",
            headers={"User-Agent": "forge-watch/0.1.0", "Accept": "application/json"},
            timeout=timeout,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self._base_url

    @staticmethod
    def _check(resp: httpx.Response) -> Any:
        if resp.status_code >= 400:
            message = resp.text[:200]
            try:
                body = resp.json()
                if isinstance(body, dict) and body.get("error"):
                    message = str(body["error"])
            except ValueError:
                pass
            raise ServerError(
                f"HTTP {resp.status_code}: {message}",
                details={"status_code": resp.status_code, "url": str(resp.request.url)},
            )
        if not resp.content:
            return None
        return resp.json()

    async def _request(self, method: str, path: str, **kwargs: Any) -> Any:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            raise TransportError(f"{method} {path} failed: {e}", code="http_error")
        return self._check(resp)

    async def get(self, path: str, params: Optional[dict[str, str]] = None) -> Any:
        return await self._request("GET", path, params=params)

    async def post(
        self, path: str, body: Optional[dict[str, Any]] = None, params: Optional[dict[str, str]] = None,
    ) -> Any:
        return await self._request("POST", path, json=body, params=params)

    async def close(self) -> None:
        await self._client.aclose()
