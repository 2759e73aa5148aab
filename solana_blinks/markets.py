"""
Markets and token discovery.

- MarketsClient: market listings, wallet positions and best-yield search from
  the Dialect markets API. Each market carries blink URLs per action, which
  feed straight into the execution pipeline.
- Token list lookup and search over the Jupiter verified token list.
"""

import logging
from typing import Any, Dict, List, Optional, Sequence

import httpx

from . import config
from .errors import ActionFetchError, ActionSchemaError, ActionTimeoutError

logger = logging.getLogger(__name__)

MARKET_ACTIONS = ("deposit", "withdraw", "borrow", "repay", "claimRewards")


async def _get_json(
    client: Optional[httpx.AsyncClient],
    url: str,
    params: Optional[Dict[str, str]],
    timeout: float
) -> Any:
    if client is None:
        async with httpx.AsyncClient() as own:
            return await _get_json(own, url, params, timeout)
    logger.debug("GET %s %s", url, params or "")
    try:
        response = await client.get(
            url,
            params=params,
            timeout=timeout,
            headers={"Accept": "application/json", "User-Agent": config.USER_AGENT},
        )
    except httpx.TimeoutException as e:
        raise ActionTimeoutError(url, timeout) from e
    except httpx.RequestError as e:
        raise ActionFetchError(url, message=f"Request to {url} failed: {e}") from e
    if not response.is_success:
        raise ActionFetchError(url, status_code=response.status_code, body=response.text)
    try:
        return response.json()
    except ValueError as e:
        raise ActionSchemaError(f"Response is not valid JSON: {e}", url=url) from e


class MarketsClient:
    """Client for the markets API."""

    def __init__(
        self,
        base_url: str = config.MARKETS_API_BASE,
        timeout: float = config.MARKETS_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client

    async def _fetch(self, endpoint: str, params: Optional[Dict[str, str]] = None) -> Any:
        return await _get_json(self._client, f"{self.base_url}{endpoint}", params, self.timeout)

    async def list_markets(
        self,
        provider: Optional[str] = None,
        type: Optional[str] = None,
        token: Optional[str] = None,
        limit: Optional[int] = None
    ) -> List[Dict[str, Any]]:
        params: Dict[str, str] = {}
        if provider:
            params["provider"] = provider
        if type:
            params["type"] = type
        if token:
            params["token"] = token
        if limit:
            params["limit"] = str(limit)
        data = await self._fetch("/markets", params)
        markets = data.get("markets") if isinstance(data, dict) else None
        if not isinstance(markets, list):
            raise ActionSchemaError("'markets' must be a list", url=f"{self.base_url}/markets", path="markets")
        return markets

    async def get_positions(
        self,
        wallet_address: str,
        provider: Optional[str] = None,
        type: Optional[str] = None
    ) -> List[Dict[str, Any]]:
        params = {"wallet": wallet_address}
        if provider:
            params["provider"] = provider
        if type:
            params["type"] = type
        data = await self._fetch("/positions", params)
        positions = data.get("positions") if isinstance(data, dict) else None
        if not isinstance(positions, list):
            raise ActionSchemaError("'positions' must be a list", url=f"{self.base_url}/positions", path="positions")
        return positions

    async def find_best_yield(
        self,
        token_symbol: str,
        min_apy: Optional[float] = None,
        min_tvl: Optional[float] = None,
        providers: Optional[Sequence[str]] = None
    ) -> List[Dict[str, Any]]:
        """Yield markets for a token, filtered, highest deposit APY first."""
        markets = await self.list_markets(token=token_symbol, type="yield")

        def keep(m: Dict[str, Any]) -> bool:
            if min_apy and float(m.get("depositApy") or 0) < min_apy:
                return False
            if min_tvl and float(m.get("totalDepositUsd") or 0) < min_tvl:
                return False
            if providers and (m.get("provider") or {}).get("id") not in providers:
                return False
            return True

        return sorted(
            (m for m in markets if keep(m)),
            key=lambda m: float(m.get("depositApy") or 0),
            reverse=True,
        )

    @staticmethod
    def get_blink_url(market: Dict[str, Any], action: str) -> Optional[str]:
        """Blink URL for a market action, with any blink: marker removed."""
        entry = (market.get("actions") or {}).get(action)
        if not entry or not entry.get("blinkUrl"):
            return None
        url = entry["blinkUrl"]
        return url[len("blink:"):] if url.startswith("blink:") else url


# ============================================================
# Token Discovery
# ============================================================

async def get_token_list(
    kind: str = "strict",
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = 15.0
) -> List[Dict[str, Any]]:
    """Verified ('strict') or full ('all') token list."""
    if kind not in ("strict", "all"):
        raise ValueError(f"kind must be 'strict' or 'all', got {kind!r}")
    url = f"{config.TOKEN_LIST_URL.rstrip('/')}/{kind}"
    data = await _get_json(client, url, None, timeout)
    if not isinstance(data, list):
        raise ActionSchemaError("token list must be a list", url=url)
    return data


async def search_token(
    query: str,
    client: Optional[httpx.AsyncClient] = None,
    limit: int = 20
) -> List[Dict[str, Any]]:
    """Substring match on symbol or name, exact match on address."""
    tokens = await get_token_list("strict", client=client)
    q = query.lower()
    matches = [
        t for t in tokens
        if q in str(t.get("symbol", "")).lower()
        or q in str(t.get("name", "")).lower()
        or str(t.get("address", "")).lower() == q
    ]
    return matches[:limit]
