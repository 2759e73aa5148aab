"""
Action Protocol Client

Two-phase exchange against a canonical action endpoint:

    GET  <url>                      -> ActionMetadata
    POST <url> {"account", ...}     -> ActionTransaction

Each call makes exactly one attempt with a bounded timeout; retrying is the
caller's decision, since a POST against a stateful endpoint is not safe to
repeat blindly. Endpoint quirks (amounts baked into the path, etc.) are the
Protocol Catalog's concern, not this client's.
"""

import json
import logging
from typing import Any, Dict, Mapping, Optional

import httpx

from . import config
from .errors import ActionFetchError, ActionSchemaError, ActionTimeoutError
from .models import ActionMetadata, ActionTransaction, ParamValue
from .resolver import CanonicalUrl

logger = logging.getLogger(__name__)

DEFAULT_HEADERS = {
    "Accept": "application/json",
    "User-Agent": config.USER_AGENT,
}


def _error_message(response: httpx.Response) -> Optional[str]:
    """Actions report failures as {"message": "..."}; surface it if present."""
    try:
        data = response.json()
    except ValueError:
        return None
    if isinstance(data, dict):
        message = data.get("message")
        if isinstance(message, str) and message:
            return message
        error = data.get("error")
        if isinstance(error, dict) and isinstance(error.get("message"), str):
            return error["message"]
        if isinstance(error, str) and error:
            return error
    return None


class ActionsClient:
    """
    Client for action endpoints.

    Pass an httpx.AsyncClient to share connections (or to inject a mock
    transport in tests); otherwise a client is created per call.
    """

    def __init__(
        self,
        timeout: float = config.ACTION_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.timeout = timeout
        self._client = client

    async def get_metadata(self, url: CanonicalUrl) -> ActionMetadata:
        data = await self._request("GET", url)
        metadata = ActionMetadata.from_dict(data, url=str(url))
        logger.debug("Fetched metadata from %s: %s", url, metadata.title)
        return metadata

    async def get_transaction(
        self,
        url: CanonicalUrl,
        account: str,
        params: Optional[Mapping[str, ParamValue]] = None
    ) -> ActionTransaction:
        body: Dict[str, Any] = dict(params or {})
        body["account"] = account
        data = await self._request("POST", url, body)
        return ActionTransaction.from_response(data, str(url))

    async def _request(self, method: str, url: CanonicalUrl, body: Optional[Dict[str, Any]] = None) -> Any:
        if self._client is not None:
            return await self._send(self._client, method, url, body)
        async with httpx.AsyncClient() as client:
            return await self._send(client, method, url, body)

    async def _send(
        self,
        client: httpx.AsyncClient,
        method: str,
        url: CanonicalUrl,
        body: Optional[Dict[str, Any]]
    ) -> Any:
        headers = dict(DEFAULT_HEADERS)
        if body is not None:
            headers["Content-Type"] = "application/json"
        logger.debug("%s %s", method, url)
        try:
            response = await client.request(
                method,
                str(url),
                json=body,
                headers=headers,
                timeout=self.timeout,
            )
        except httpx.TimeoutException as e:
            raise ActionTimeoutError(str(url), self.timeout) from e
        except httpx.RequestError as e:
            raise ActionFetchError(str(url), message=f"Request to {url} failed: {e}") from e

        if not response.is_success:
            message = _error_message(response)
            raise ActionFetchError(
                str(url),
                status_code=response.status_code,
                body=response.text,
                message=(
                    f"Action endpoint returned HTTP {response.status_code}: {message}"
                    if message else None
                ),
            )

        try:
            return response.json()
        except (json.JSONDecodeError, ValueError) as e:
            raise ActionSchemaError(f"Response is not valid JSON: {e}", url=str(url)) from e


async def get_action(url: str, client: Optional[httpx.AsyncClient] = None) -> ActionMetadata:
    """One-off metadata fetch for an already-canonical https URL."""
    return await ActionsClient(client=client).get_metadata(CanonicalUrl(url))


async def post_action(
    url: str,
    account: str,
    params: Optional[Mapping[str, ParamValue]] = None,
    client: Optional[httpx.AsyncClient] = None
) -> ActionTransaction:
    """One-off transaction fetch for an already-canonical https URL."""
    return await ActionsClient(client=client).get_transaction(CanonicalUrl(url), account, params)
