"""
Cal.com API client. One call per invocation: no retries, status code and body returned as-is.
"""
import logging
from dataclasses import dataclass
from typing import Any

import httpx

from calcom_proxy.config import CALCOM_API_BASE
from calcom_proxy.errors import UpstreamError

logger = logging.getLogger(__name__)


@dataclass
class CalcomResponse:
    status_code: int
    data: Any


def _query_value(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def build_query(query: dict[str, Any] | None) -> list[tuple[str, str]]:
    """Drop None and empty-string values; keep insertion order."""
    if not query:
        return []
    return [(key, _query_value(value)) for key, value in query.items() if value is not None and value != ""]


class CalcomClient:
    def __init__(self, http: httpx.AsyncClient, base_url: str = CALCOM_API_BASE):
        self._http = http
        self.base_url = base_url.rstrip("/")

    async def call(
        self,
        endpoint: str,
        api_key: str,
        query: dict[str, Any] | None = None,
        method: str = "GET",
        body: Any = None,
    ) -> CalcomResponse:
        """
        Send method to base_url + endpoint with the mentor's API key as Bearer.
        A body that is not JSON becomes {}. Transport failures raise UpstreamError.
        """
        url = f"{self.base_url}{endpoint}"
        headers = {"Authorization": f"Bearer {api_key}"}
        kwargs: dict[str, Any] = {"params": build_query(query), "headers": headers}
        if body is not None:
            # httpx sets Content-Type: application/json
            kwargs["json"] = body
        try:
            response = await self._http.request(method, url, **kwargs)
        except httpx.HTTPError as e:
            logger.error("Cal.com %s %s failed: %s", method, endpoint, e)
            raise UpstreamError(f"Cal.com request failed: {e}") from e

        try:
            data = response.json()
        except ValueError:
            data = {}
        return CalcomResponse(status_code=response.status_code, data=data)

    async def aclose(self) -> None:
        await self._http.aclose()
