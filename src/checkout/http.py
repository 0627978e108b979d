"""HTTP client for the storefront backend's ``{success, data, message}`` envelope.

All HTTP adapters share one ``httpx.AsyncClient``. Transport errors, non-2xx
responses and ``success: false`` envelopes become ``CollaboratorUnavailable``
so callers deal with a single failure type.
"""

from typing import Any

import httpx
import structlog

from checkout.exceptions import CollaboratorUnavailable

logger = structlog.get_logger(__name__)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return (response.text or "")[:300] or "(empty response body)"
    if isinstance(body, dict):
        if body.get("message"):
            return str(body["message"])
        if "detail" in body:
            return str(body["detail"])[:300]
        if "error" in body:
            return str(body["error"])[:300]
    return str(body)[:300]


class EnvelopeClient:
    def __init__(self, client: httpx.AsyncClient) -> None:
        self.client = client

    @classmethod
    def create(cls, base_url: str, timeout: float = 10.0, **kwargs) -> "EnvelopeClient":
        return cls(httpx.AsyncClient(base_url=base_url, timeout=timeout, **kwargs))

    async def aclose(self) -> None:
        await self.client.aclose()

    async def request(
        self,
        method: str,
        path: str,
        *,
        operation: str,
        json: Any = None,
        headers: dict[str, str] | None = None,
        allow_not_found: bool = False,
    ) -> Any:
        """Send a request and return the envelope's ``data``.

        With ``allow_not_found`` a 404 returns ``None`` instead of raising.
        """
        try:
            response = await self.client.request(method, path, json=json, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning("Collaborator request failed", operation=operation, error=str(exc))
            raise CollaboratorUnavailable(operation, str(exc) or type(exc).__name__) from exc

        if allow_not_found and response.status_code == 404:
            return None

        if response.is_error:
            detail = _error_detail(response)
            logger.warning(
                "Collaborator returned an error",
                operation=operation,
                status_code=response.status_code,
                detail=detail,
            )
            raise CollaboratorUnavailable(operation, detail, status_code=response.status_code)

        if response.status_code == 204 or not response.content:
            return None

        try:
            body = response.json()
        except ValueError as exc:
            raise CollaboratorUnavailable(operation, "Response body is not JSON", response.status_code) from exc

        if isinstance(body, dict) and "success" in body:
            if not body["success"]:
                raise CollaboratorUnavailable(operation, body.get("message") or "Request failed", response.status_code)
            return body.get("data")
        return body
