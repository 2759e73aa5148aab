"""
Command surface tests: JSON on stdout, structured error on stderr, exit 0/1.
"""

import json

import pytest

from solana_blinks import cli
from solana_blinks.actions import ActionsClient
from solana_blinks.pipeline import ExecutionPipeline
from solana_blinks.registry import StaticRegistrySource, TrustRegistry
from solana_blinks.wallet import Wallet

from fakes import JITO_METADATA, CountingLedger, RecordingTransport, build_transaction

JITO = "https://jito.dial.to/stake"


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
def offline(monkeypatch, transport, ledger):
    def build_pipeline(args, http, signer=None):
        return ExecutionPipeline(
            actions_client=ActionsClient(client=transport.client()),
            registry=TrustRegistry(StaticRegistrySource(
                trusted=["jito.dial.to"], malicious=["evil.example"],
            )),
            ledger=ledger,
            signer=signer,
        )

    monkeypatch.setattr(cli, "build_pipeline", build_pipeline)
    monkeypatch.setattr(cli, "configure_logging", lambda **kwargs: None)


def run(capsys, *argv):
    code = cli.main(list(argv))
    out, err = capsys.readouterr()
    return code, out, err


def error_of(err):
    # stderr may also carry log lines; the error document is printed last
    return json.loads(err[err.index('{\n  "error"'):])["error"]


def test_inspect(capsys):
    code, out, _ = run(capsys, "inspect", f"solana-action:{JITO}")
    assert code == 0
    data = json.loads(out)
    assert data["canonicalUrl"] == JITO
    assert data["trusted"] is True
    assert data["actions"][0]["href"] == "https://jito.dial.to/stake?amount=1"


def test_inspect_not_found_exits_1(capsys, transport):
    transport.routes[("GET", JITO)] = (404, {"message": "no such action"})
    code, out, err = run(capsys, "inspect", f"solana-action:{JITO}")
    assert code == 1
    assert out == ""
    error = error_of(err)
    assert error["kind"] == "ActionFetchError"
    assert error["details"]["status_code"] == 404


def test_execute_dry_run(capsys, wallet, transport, ledger):
    code, out, _ = run(capsys, "execute", JITO, "--amount", "1", "--dry-run", "--account", wallet.address)
    assert code == 0
    data = json.loads(out)
    assert data["dryRun"] is True
    assert data["simulationResult"]["success"] is True
    assert transport.bodies("POST") == [{"amount": "1", "account": wallet.address}]
    assert ledger.submitted == []


def test_execute_params_json(capsys, wallet, transport):
    code, _, _ = run(
        capsys, "execute", JITO, "-p", "memo=hi", "--params", '{"amount": 2}',
        "--dry-run", "--account", wallet.address,
    )
    assert code == 0
    assert transport.bodies("POST") == [{"memo": "hi", "amount": 2, "account": wallet.address}]


def test_execute_not_found_exits_1(capsys, wallet, transport):
    transport.routes[("POST", JITO)] = (404, {"message": "gone"})
    code, out, err = run(capsys, "execute", JITO, "--dry-run", "--account", wallet.address)
    assert code == 1
    assert out == ""
    error = error_of(err)
    assert error["kind"] == "ActionFetchError"
    assert error["code"] == 404
    assert error["details"]["status_code"] == 404


def test_execute_malicious_exits_1(capsys, wallet, transport):
    code, _, err = run(capsys, "execute", "https://evil.example/x", "--dry-run", "--account", wallet.address)
    assert code == 1
    assert error_of(err)["kind"] == "UntrustedHostBlocked"
    assert transport.requests == []


def test_live_execute_requires_wallet(capsys, transport):
    code, _, err = run(capsys, "execute", JITO)
    assert code == 1
    assert error_of(err)["kind"] == "WalletError"
    assert transport.requests == []


def test_live_execute_with_env_wallet(capsys, monkeypatch, wallet, ledger):
    secret = bytes(wallet._sk) + wallet.public_key
    monkeypatch.setenv("SOLANA_PRIVATE_KEY", json.dumps(list(secret)))
    code, out, _ = run(capsys, "execute", JITO, "--amount", "1")
    assert code == 0
    data = json.loads(out)
    assert data["signature"] == ledger.signature
    assert data["explorer"].endswith(ledger.signature)
    assert len(ledger.submitted) == 1


def test_invalid_url_exits_1(capsys, wallet):
    code, _, err = run(capsys, "inspect", "http://jito.dial.to/stake")
    assert code == 1
    assert error_of(err)["kind"] == "InvalidUrlKind"


def test_invalid_account_exits_1(capsys):
    code, _, err = run(capsys, "execute", JITO, "--dry-run", "--account", "nope")
    assert code == 1
    assert error_of(err)["kind"] == "InvalidRequest"


def test_non_finite_param_exits_1(capsys, wallet, transport):
    code, out, err = run(
        capsys, "execute", JITO, "--params", '{"amount": NaN}', "--dry-run", "--account", wallet.address,
    )
    assert code == 1
    assert out == ""
    error = error_of(err)
    assert error["kind"] == "InvalidRequest"
    assert error["details"]["field"] == "params.amount"
    assert transport.requests == []


def test_build(capsys, transport):
    code, out, _ = run(capsys, "build", "kamino", "deposit", "-p", "vault=usdc-prime", "-p", "amount=10")
    assert code == 0
    assert json.loads(out)["url"] == "https://kamino.dial.to/api/v0/lend/usdc-prime/deposit?amount=10"
    assert transport.requests == []


def test_build_missing_parameter(capsys):
    code, _, err = run(capsys, "build", "kamino", "deposit")
    assert code == 1
    error = error_of(err)
    assert error["kind"] == "MissingTemplateParameter"
    assert error["details"]["missing"] == ["vault"]


def test_bad_param_syntax(capsys):
    code, _, err = run(capsys, "build", "jito", "stake", "-p", "amount")
    assert code == 1
    assert error_of(err)["kind"] == "InvalidRequest"


def test_run_builds_then_executes(capsys, wallet, transport, ledger):
    code, out, _ = run(
        capsys, "run", "jito", "stake", "-p", "amount=1", "--dry-run", "--account", wallet.address,
    )
    assert code == 0
    assert json.loads(out)["dryRun"] is True
    assert transport.bodies("POST") == [{"amount": "1", "account": wallet.address}]
    assert ledger.submitted == []


def test_trusted_hosts(capsys):
    code, out, _ = run(capsys, "trusted-hosts")
    assert code == 0
    data = json.loads(out)
    assert data["trustedHosts"] == ["jito.dial.to"]
    assert data["maliciousHosts"] == ["evil.example"]


def test_protocols(capsys):
    code, out, _ = run(capsys, "protocols")
    assert code == 0
    ids = [p["id"] for p in json.loads(out)["protocols"]]
    assert "kamino" in ids and "jupiter" in ids


def test_no_command(capsys):
    code, _, _ = run(capsys)
    assert code == 1
