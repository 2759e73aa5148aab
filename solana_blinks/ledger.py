"""
Ledger RPC client.

JSON-RPC over HTTP to a Solana node: simulation, submission with
confirmation polling, and health queries. Every call carries the same
bounded-timeout discipline as the action client.
"""

import asyncio
import base64
import itertools
import logging
import time
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

import httpx

from . import config
from .errors import RpcError, RpcTimeoutError
from .models import ActionTransaction, SimulationResult

logger = logging.getLogger(__name__)

CONFIRMED_STATUSES = ("confirmed", "finalized")


class LedgerClient(ABC):
    """Remote ledger capabilities consumed by the execution pipeline."""

    @abstractmethod
    async def simulate(self, transaction: ActionTransaction) -> SimulationResult:
        pass

    @abstractmethod
    async def submit(self, signed_transaction: bytes) -> str:
        """Submit signed wire bytes and return the transaction signature."""
        pass

    @abstractmethod
    async def health(self) -> Dict[str, Any]:
        pass


class SolanaRpcClient(LedgerClient):
    """
    Solana JSON-RPC client.

    Usage:
        rpc = SolanaRpcClient("https://api.mainnet-beta.solana.com")
        sim = await rpc.simulate(tx)
        sig = await rpc.submit(signed_bytes)
    """

    def __init__(
        self,
        url: str = config.SOLANA_RPC_URL,
        timeout: float = config.RPC_TIMEOUT,
        confirm_timeout: float = config.CONFIRM_TIMEOUT,
        poll_interval: float = 1.0,
        commitment: str = "confirmed",
        client: Optional[httpx.AsyncClient] = None
    ):
        self.url = url
        self.timeout = timeout
        self.confirm_timeout = confirm_timeout
        self.poll_interval = poll_interval
        self.commitment = commitment
        self._client = client
        self._ids = itertools.count(1)

    async def call(self, method: str, params: Optional[List[Any]] = None) -> Any:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._ids),
            "method": method,
            "params": params or [],
        }
        if self._client is not None:
            return await self._post(self._client, method, payload)
        async with httpx.AsyncClient() as client:
            return await self._post(client, method, payload)

    async def _post(self, client: httpx.AsyncClient, method: str, payload: Dict[str, Any]) -> Any:
        try:
            response = await client.post(
                self.url,
                json=payload,
                timeout=self.timeout,
                headers={"User-Agent": config.USER_AGENT},
            )
        except httpx.TimeoutException as e:
            raise RpcTimeoutError(method, self.timeout) from e
        except httpx.RequestError as e:
            raise RpcError(method, f"RPC request failed: {e}") from e

        if not response.is_success:
            raise RpcError(method, f"RPC returned HTTP {response.status_code}", data=response.text[:500])
        try:
            data = response.json()
        except ValueError as e:
            raise RpcError(method, f"RPC response is not JSON: {e}") from e

        if not isinstance(data, dict):
            raise RpcError(method, "RPC response is not an object")
        error = data.get("error")
        if error:
            if isinstance(error, dict):
                raise RpcError(method, str(error.get("message", error)), rpc_code=error.get("code"), data=error.get("data"))
            raise RpcError(method, str(error))
        return data.get("result")

    async def simulate(self, transaction: ActionTransaction) -> SimulationResult:
        result = await self.call("simulateTransaction", [
            transaction.encoded_transaction,
            {
                "encoding": "base64",
                "sigVerify": False,
                "replaceRecentBlockhash": True,
                "commitment": self.commitment,
            },
        ])
        value = (result or {}).get("value") or {}
        err = value.get("err")
        return SimulationResult(
            success=err is None,
            units_consumed=value.get("unitsConsumed"),
            error=err,
            logs=tuple(value.get("logs") or ()),
        )

    async def submit(self, signed_transaction: bytes) -> str:
        encoded = base64.b64encode(signed_transaction).decode("ascii")
        signature = await self.call("sendTransaction", [
            encoded,
            {"encoding": "base64", "preflightCommitment": self.commitment},
        ])
        if not isinstance(signature, str):
            raise RpcError("sendTransaction", "RPC did not return a signature")
        logger.info("Submitted transaction %s", signature)
        await self.confirm(signature)
        return signature

    async def confirm(self, signature: str) -> Dict[str, Any]:
        """Poll until the signature reaches the configured commitment."""
        deadline = time.monotonic() + self.confirm_timeout
        while True:
            result = await self.call("getSignatureStatuses", [[signature], {"searchTransactionHistory": False}])
            statuses = (result or {}).get("value") or [None]
            status = statuses[0]
            if status:
                if status.get("err"):
                    raise RpcError("getSignatureStatuses", "Transaction failed on-chain", data=status.get("err"))
                if status.get("confirmationStatus") in CONFIRMED_STATUSES:
                    return status
            if time.monotonic() >= deadline:
                raise RpcTimeoutError("confirmTransaction", self.confirm_timeout)
            await asyncio.sleep(self.poll_interval)

    async def health(self) -> Dict[str, Any]:
        """Probe the node; an unreachable node reports healthy=False, never raises."""
        healthy = (await self._probe("getHealth")) == "ok"
        slot = await self._probe("getSlot")
        version = await self._probe("getVersion")
        return {
            "url": self.url,
            "healthy": healthy,
            "slot": slot,
            "version": (version or {}).get("solana-core"),
        }

    async def _probe(self, method: str) -> Any:
        try:
            return await self.call(method)
        except RpcError as e:
            logger.warning("RPC %s failed: %s", method, e)
            return None

    async def get_balance(self, address: str) -> int:
        """Balance in lamports."""
        result = await self.call("getBalance", [address, {"commitment": self.commitment}])
        return int((result or {}).get("value", 0))
