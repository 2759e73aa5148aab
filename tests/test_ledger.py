"""
Ledger RPC client tests.
"""

import base64
import json
import unittest

import httpx

from solana_blinks.errors import RpcError, RpcTimeoutError
from solana_blinks.ledger import SolanaRpcClient
from solana_blinks.models import ActionTransaction

from fakes import mock_client

RPC = "https://rpc.test"


class RpcStub:
    """Answers JSON-RPC calls from a method -> result (or callable) table."""

    def __init__(self, results):
        self.results = results
        self.calls = []

    def __call__(self, request):
        payload = json.loads(request.content)
        self.calls.append(payload)
        result = self.results[payload["method"]]
        if callable(result):
            result = result(payload)
        if isinstance(result, httpx.Response):
            return result
        return httpx.Response(200, json={"jsonrpc": "2.0", "id": payload["id"], **result})

    def methods(self):
        return [c["method"] for c in self.calls]


class TestSimulate(unittest.IsolatedAsyncioTestCase):

    async def test_success(self):
        stub = RpcStub({"simulateTransaction": {"result": {
            "context": {"slot": 1},
            "value": {"err": None, "unitsConsumed": 5000, "logs": ["Program log: ok"]},
        }}})
        async with mock_client(stub) as client:
            result = await SolanaRpcClient(RPC, client=client).simulate(ActionTransaction("AQID"))

        self.assertTrue(result.success)
        self.assertEqual(result.units_consumed, 5000)
        self.assertEqual(result.logs, ("Program log: ok",))
        params = stub.calls[0]["params"]
        self.assertEqual(params[0], "AQID")
        self.assertEqual(params[1]["encoding"], "base64")
        self.assertFalse(params[1]["sigVerify"])
        self.assertTrue(params[1]["replaceRecentBlockhash"])

    async def test_failure_is_a_result(self):
        stub = RpcStub({"simulateTransaction": {"result": {
            "value": {"err": {"InstructionError": [0, {"Custom": 1}]}, "unitsConsumed": 200},
        }}})
        async with mock_client(stub) as client:
            result = await SolanaRpcClient(RPC, client=client).simulate(ActionTransaction("AQID"))
        self.assertFalse(result.success)
        self.assertEqual(result.error, {"InstructionError": [0, {"Custom": 1}]})

    async def test_rpc_error(self):
        stub = RpcStub({"simulateTransaction": {"error": {"code": -32602, "message": "invalid transaction"}}})
        async with mock_client(stub) as client:
            with self.assertRaises(RpcError) as ctx:
                await SolanaRpcClient(RPC, client=client).simulate(ActionTransaction("AQID"))
        self.assertEqual(ctx.exception.rpc_code, -32602)
        self.assertEqual(ctx.exception.code, 502)

    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("slow", request=request)

        async with mock_client(handler) as client:
            with self.assertRaises(RpcTimeoutError) as ctx:
                await SolanaRpcClient(RPC, client=client).simulate(ActionTransaction("AQID"))
        self.assertEqual(ctx.exception.code, 504)


class TestSubmit(unittest.IsolatedAsyncioTestCase):

    async def test_submit_waits_for_confirmation(self):
        statuses = iter([
            {"result": {"value": [None]}},
            {"result": {"value": [{"confirmationStatus": "processed", "err": None}]}},
            {"result": {"value": [{"confirmationStatus": "confirmed", "err": None}]}},
        ])
        stub = RpcStub({
            "sendTransaction": {"result": "SiG"},
            "getSignatureStatuses": lambda payload: next(statuses),
        })
        async with mock_client(stub) as client:
            rpc = SolanaRpcClient(RPC, poll_interval=0, client=client)
            signature = await rpc.submit(b"\x01\x02")

        self.assertEqual(signature, "SiG")
        self.assertEqual(stub.methods(), ["sendTransaction"] + ["getSignatureStatuses"] * 3)
        self.assertEqual(stub.calls[0]["params"][0], base64.b64encode(b"\x01\x02").decode())

    async def test_on_chain_failure(self):
        stub = RpcStub({
            "sendTransaction": {"result": "SiG"},
            "getSignatureStatuses": {"result": {"value": [{"err": {"InsufficientFunds": None}}]}},
        })
        async with mock_client(stub) as client:
            with self.assertRaises(RpcError):
                await SolanaRpcClient(RPC, poll_interval=0, client=client).submit(b"\x01")

    async def test_confirmation_timeout(self):
        stub = RpcStub({
            "sendTransaction": {"result": "SiG"},
            "getSignatureStatuses": {"result": {"value": [None]}},
        })
        async with mock_client(stub) as client:
            rpc = SolanaRpcClient(RPC, confirm_timeout=0, poll_interval=0, client=client)
            with self.assertRaises(RpcTimeoutError):
                await rpc.submit(b"\x01")


class TestHealth(unittest.IsolatedAsyncioTestCase):

    async def test_health(self):
        stub = RpcStub({
            "getHealth": {"result": "ok"},
            "getSlot": {"result": 123},
            "getVersion": {"result": {"solana-core": "1.18.0"}},
        })
        async with mock_client(stub) as client:
            health = await SolanaRpcClient(RPC, client=client).health()
        self.assertEqual(health, {"url": RPC, "healthy": True, "slot": 123, "version": "1.18.0"})

    async def test_unhealthy_node(self):
        stub = RpcStub({
            "getHealth": {"error": {"code": -32005, "message": "Node is behind"}},
            "getSlot": {"result": 1},
            "getVersion": {"result": {"solana-core": "1.18.0"}},
        })
        async with mock_client(stub) as client:
            health = await SolanaRpcClient(RPC, client=client).health()
        self.assertFalse(health["healthy"])

    async def test_unreachable_node_reports_unhealthy(self):
        def handler(request):
            raise httpx.ConnectError("connection refused", request=request)

        async with mock_client(handler) as client:
            health = await SolanaRpcClient(RPC, client=client).health()
        self.assertEqual(health, {"url": RPC, "healthy": False, "slot": None, "version": None})

    async def test_balance(self):
        stub = RpcStub({"getBalance": {"result": {"context": {"slot": 1}, "value": 2_500_000_000}}})
        async with mock_client(stub) as client:
            lamports = await SolanaRpcClient(RPC, client=client).get_balance("addr")
        self.assertEqual(lamports, 2_500_000_000)


if __name__ == "__main__":
    unittest.main()
