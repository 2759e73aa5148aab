"""
Action Protocol Client Test Suite

Tests the GET/POST exchange and its error mapping.
"""

import json
import unittest

import httpx

from solana_blinks.actions import ActionsClient
from solana_blinks.errors import (
    ActionFetchError,
    ActionSchemaError,
    ActionTimeoutError,
    ActionTransactionError,
)
from solana_blinks.resolver import CanonicalUrl

from fakes import JITO_METADATA, mock_client

URL = CanonicalUrl("https://jito.dial.to/stake")
ACCOUNT = "So11111111111111111111111111111111111111112"


class TestGetMetadata(unittest.IsolatedAsyncioTestCase):

    async def fetch(self, handler):
        async with mock_client(handler) as client:
            return await ActionsClient(client=client).get_metadata(URL)

    async def test_parses_metadata(self):
        metadata = await self.fetch(lambda request: httpx.Response(200, json=JITO_METADATA))
        self.assertEqual(metadata.title, "Stake SOL with Jito")
        self.assertEqual(metadata.icon_url, "https://jito.dial.to/icon.png")
        self.assertEqual(len(metadata.actions), 2)
        self.assertEqual(metadata.actions[1].parameters[0].name, "amount")
        self.assertTrue(metadata.actions[1].parameters[0].required)

    async def test_sends_json_accept_header(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json=JITO_METADATA)

        await self.fetch(handler)
        self.assertEqual(seen[0].method, "GET")
        self.assertEqual(seen[0].headers["accept"], "application/json")

    async def test_not_found_is_fetch_error_with_status(self):
        with self.assertRaises(ActionFetchError) as ctx:
            await self.fetch(lambda request: httpx.Response(404, text="no such action"))
        err = ctx.exception
        self.assertEqual(err.status_code, 404)
        self.assertEqual(err.code, 404)
        self.assertEqual(err.body, "no such action")
        self.assertEqual(err.details["url"], str(URL))

    async def test_endpoint_error_message_surfaced(self):
        with self.assertRaises(ActionFetchError) as ctx:
            await self.fetch(lambda request: httpx.Response(400, json={"message": "amount too low"}))
        self.assertIn("amount too low", ctx.exception.message)

    async def test_long_body_is_truncated(self):
        with self.assertRaises(ActionFetchError) as ctx:
            await self.fetch(lambda request: httpx.Response(500, text="x" * 2000))
        self.assertEqual(len(ctx.exception.body), 503)

    async def test_timeout(self):
        def handler(request):
            raise httpx.ReadTimeout("timed out", request=request)

        with self.assertRaises(ActionTimeoutError) as ctx:
            await self.fetch(handler)
        self.assertEqual(ctx.exception.code, 504)

    async def test_connection_failure_has_no_status(self):
        def handler(request):
            raise httpx.ConnectError("refused", request=request)

        with self.assertRaises(ActionFetchError) as ctx:
            await self.fetch(handler)
        self.assertIsNone(ctx.exception.status_code)
        self.assertEqual(ctx.exception.code, 502)

    async def test_invalid_json_is_schema_error(self):
        with self.assertRaises(ActionSchemaError):
            await self.fetch(lambda request: httpx.Response(200, text="<html>"))

    async def test_missing_title_is_schema_error(self):
        body = dict(JITO_METADATA)
        del body["title"]
        with self.assertRaises(ActionSchemaError) as ctx:
            await self.fetch(lambda request: httpx.Response(200, json=body))
        self.assertEqual(ctx.exception.path, "title")

    async def test_malformed_links_is_schema_error(self):
        body = dict(JITO_METADATA, links={"actions": [{"label": "Stake"}]})
        with self.assertRaises(ActionSchemaError) as ctx:
            await self.fetch(lambda request: httpx.Response(200, json=body))
        self.assertEqual(ctx.exception.path, "links.actions[0].href")

    async def test_no_links_means_no_actions(self):
        body = {"title": "Donate", "icon": "https://x.example/i.png", "label": "Donate"}
        metadata = await self.fetch(lambda request: httpx.Response(200, json=body))
        self.assertIsNone(metadata.actions)


class TestGetTransaction(unittest.IsolatedAsyncioTestCase):

    async def post(self, handler, params=None):
        async with mock_client(handler) as client:
            return await ActionsClient(client=client).get_transaction(URL, ACCOUNT, params)

    async def test_posts_account_and_params(self):
        bodies = []

        def handler(request):
            bodies.append(json.loads(request.content))
            return httpx.Response(200, json={"transaction": "AQID", "message": "Staked"})

        tx = await self.post(handler, {"amount": 1})
        self.assertEqual(bodies, [{"amount": 1, "account": ACCOUNT}])
        self.assertEqual(tx.encoded_transaction, "AQID")
        self.assertEqual(tx.message, "Staked")

    async def test_missing_transaction(self):
        with self.assertRaises(ActionTransactionError) as ctx:
            await self.post(lambda request: httpx.Response(200, json={"message": "Nothing to do"}))
        self.assertEqual(ctx.exception.code, 422)
        self.assertIn("Nothing to do", ctx.exception.message)

    async def test_blank_transaction(self):
        with self.assertRaises(ActionTransactionError):
            await self.post(lambda request: httpx.Response(200, json={"transaction": "  "}))

    async def test_non_object_response(self):
        with self.assertRaises(ActionSchemaError):
            await self.post(lambda request: httpx.Response(200, json=["AQID"]))

    async def test_server_error(self):
        with self.assertRaises(ActionFetchError) as ctx:
            await self.post(lambda request: httpx.Response(503, text="busy"))
        self.assertEqual(ctx.exception.status_code, 503)


if __name__ == "__main__":
    unittest.main()
