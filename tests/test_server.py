import pytest
from fastapi.testclient import TestClient

from solana_blinks.actions import ActionsClient
from solana_blinks.pipeline import ExecutionPipeline
from solana_blinks.registry import StaticRegistrySource, TrustRegistry
from solana_blinks.server import app
from solana_blinks.wallet import Wallet

from fakes import JITO_METADATA, CountingLedger, RecordingTransport, build_transaction

JITO = "https://jito.dial.to/stake"

client = TestClient(app)


@pytest.fixture
def wallet():
    return Wallet.generate()


@pytest.fixture
def transport(wallet):
    return RecordingTransport({
        ("GET", JITO): (200, JITO_METADATA),
        ("POST", JITO): (200, {"transaction": build_transaction([wallet.public_key]), "message": "ok"}),
    })


@pytest.fixture
def ledger():
    return CountingLedger()


@pytest.fixture(autouse=True)
def pipeline(transport, ledger):
    app.state.pipeline = ExecutionPipeline(
        actions_client=ActionsClient(client=transport.client()),
        registry=TrustRegistry(StaticRegistrySource(trusted=["jito.dial.to"], malicious=["evil.example"])),
        ledger=ledger,
    )
    yield app.state.pipeline
    app.state.pipeline = None


def test_health():
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json()["status"] == "ok"


def test_inspect():
    r = client.get("/inspect", params={"url": f"blink:{JITO}"})
    assert r.status_code == 200
    body = r.json()
    assert body["canonicalUrl"] == JITO
    assert body["trustStatus"] == "trusted"


def test_inspect_invalid_url_is_400():
    r = client.get("/inspect", params={"url": "ftp://jito.dial.to"})
    assert r.status_code == 400
    assert r.json()["error"]["kind"] == "InvalidUrlKind"


def test_execute_dry_run(wallet, ledger):
    r = client.post("/execute", json={"url": JITO, "account": wallet.address, "params": {"amount": 1}, "dry_run": True})
    assert r.status_code == 200
    assert r.json()["simulationResult"]["success"] is True
    assert ledger.submitted == []


def test_execute_malicious_is_403(wallet, transport):
    r = client.post("/execute", json={"url": "https://evil.example/x", "account": wallet.address, "dry_run": True})
    assert r.status_code == 403
    assert r.json()["error"]["kind"] == "UntrustedHostBlocked"
    assert transport.requests == []


def test_execute_upstream_404_passes_status(wallet, transport):
    transport.routes[("POST", JITO)] = (404, {"message": "gone"})
    r = client.post("/execute", json={"url": JITO, "account": wallet.address, "dry_run": True})
    assert r.status_code == 404
    assert r.json()["error"]["kind"] == "ActionFetchError"


def test_live_execute_needs_matching_wallet(wallet, ledger):
    r = client.post("/execute", json={"url": JITO, "account": wallet.address})
    assert r.status_code == 500
    assert r.json()["error"]["kind"] == "SigningError"
    assert ledger.submitted == []


def test_live_execute_with_wallet(wallet, ledger, pipeline):
    pipeline.signer = wallet
    r = client.post("/execute", json={"url": JITO, "account": wallet.address, "params": {"amount": 1}})
    assert r.status_code == 200
    assert r.json()["signature"] == ledger.signature


def test_invalid_param_is_400(wallet):
    r = client.post("/execute", json={"url": JITO, "account": wallet.address, "params": {"amount": [1]}, "dry_run": True})
    assert r.status_code == 400
    assert r.json()["error"]["kind"] == "InvalidRequest"


def test_protocols():
    r = client.get("/protocols")
    assert r.status_code == 200
    assert any(p["id"] == "jito" for p in r.json()["protocols"])
