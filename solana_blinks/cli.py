#!/usr/bin/env python3
"""
Solana Blinks Command Line Interface

Usage:
    blinks inspect <url>
    blinks execute <url> [--amount N] [-p key=value ...] [--params JSON] [--dry-run]
    blinks build <service> <action> [-p key=value ...]
    blinks run <service> <action> [-p key=value ...] [--dry-run]
    blinks protocols | trusted-hosts | status
    blinks wallet address | wallet balance [--wallet ADDR]
    blinks markets | positions <wallet> | best-yield <token> | tokens search <query>

Results are printed to stdout as JSON. Errors are printed to stderr as
{"error": {"kind", "code", "message", "details"}} with exit code 1.
"""

import argparse
import asyncio
import json
import sys
from typing import Any, Dict, List, Optional

import httpx

from . import __version__, config
from .actions import ActionsClient
from .catalog import get_kamino_lend_vaults, get_service, list_protocols
from .errors import BlinkError, InvalidRequest, WalletError
from .ledger import SolanaRpcClient
from .logging_config import configure_logging, set_run_id
from .markets import MarketsClient, search_token
from .models import ExecutionRequest
from .pipeline import ExecutionPipeline
from .registry import DialectRegistrySource, TrustRegistry
from .wallet import Wallet


def emit(data: Any) -> None:
    """Print a JSON result to stdout."""
    print(json.dumps(data, indent=2, default=str))


def emit_error(error: BlinkError) -> int:
    print(json.dumps(error.to_dict(), indent=2, default=str), file=sys.stderr)
    return 1


def parse_params(pairs: Optional[List[str]], params_json: Optional[str] = None) -> Dict[str, Any]:
    """Merge repeated key=value options and a JSON object into one dict."""
    params: Dict[str, Any] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise InvalidRequest(f"Expected key=value, got {pair!r}", field="params")
        params[key.strip()] = value
    if params_json:
        try:
            extra = json.loads(params_json)
        except json.JSONDecodeError as e:
            raise InvalidRequest(f"--params is not valid JSON: {e}", field="params")
        if not isinstance(extra, dict):
            raise InvalidRequest("--params must be a JSON object", field="params")
        params.update(extra)
    return params


def build_pipeline(
    args: argparse.Namespace,
    http: httpx.AsyncClient,
    signer: Optional[Wallet] = None
) -> ExecutionPipeline:
    """Wire the pipeline's collaborators onto one shared HTTP client."""
    return ExecutionPipeline(
        actions_client=ActionsClient(client=http),
        registry=TrustRegistry(DialectRegistrySource(client=http)),
        ledger=SolanaRpcClient(url=args.rpc, client=http),
        signer=signer,
    )


def _resolve_account(args: argparse.Namespace) -> Dict[str, Any]:
    """Pick the executing account and, when not a dry run, the signing wallet."""
    wallet = Wallet.try_from_env()
    if not args.dry_run and wallet is None:
        raise WalletError(
            f"Execution requires a wallet: set {config.PRIVATE_KEY_ENV} or {config.KEYPAIR_PATH_ENV}"
        )
    account = args.account or (wallet.address if wallet else None)
    if not account:
        raise WalletError("Dry run needs --account or a configured wallet")
    return {"account": account, "wallet": wallet}


async def _execute(args: argparse.Namespace, url: str, params: Dict[str, Any]) -> int:
    who = _resolve_account(args)
    request = ExecutionRequest(raw_url=url, account=who["account"], params=params, dry_run=args.dry_run)
    async with httpx.AsyncClient() as http:
        pipeline = build_pipeline(args, http, signer=who["wallet"])
        result = await pipeline.execute(request)
    data = result.to_dict()
    if result.signature:
        data["explorer"] = config.EXPLORER_TX_URL.format(signature=result.signature)
    emit(data)
    return 0


async def cmd_inspect(args: argparse.Namespace) -> int:
    async with httpx.AsyncClient() as http:
        pipeline = build_pipeline(args, http)
        result = await pipeline.inspect(args.url)
    emit(result.to_dict())
    return 0


async def cmd_execute(args: argparse.Namespace) -> int:
    params = parse_params(args.param, args.params)
    if args.amount is not None:
        params["amount"] = args.amount
    return await _execute(args, args.url, params)


async def cmd_build(args: argparse.Namespace) -> int:
    rendered = get_service(args.service).render(args.action, parse_params(args.param))
    emit({"url": rendered.url, "params": rendered.body_params})
    return 0


async def cmd_run(args: argparse.Namespace) -> int:
    rendered = get_service(args.service).render(args.action, parse_params(args.param))
    return await _execute(args, rendered.url, rendered.body_params)


async def cmd_protocols(args: argparse.Namespace) -> int:
    emit({"protocols": list_protocols(), "kaminoVaults": get_kamino_lend_vaults()})
    return 0


async def cmd_trusted_hosts(args: argparse.Namespace) -> int:
    async with httpx.AsyncClient() as http:
        registry = build_pipeline(args, http).registry
        snapshot = await registry.get_snapshot()
        emit({
            "registry": registry.stats(),
            "trustedHosts": sorted(snapshot.trusted),
            "maliciousHosts": sorted(snapshot.malicious),
        })
    return 0


async def cmd_status(args: argparse.Namespace) -> int:
    wallet = Wallet.try_from_env()
    async with httpx.AsyncClient() as http:
        rpc = SolanaRpcClient(url=args.rpc, client=http)
        health = await rpc.health()
        registry = build_pipeline(args, http).registry
        await registry.get_snapshot()
        emit({
            "version": __version__,
            "rpc": health,
            "wallet": wallet.address if wallet else "Not configured",
            "registry": registry.stats(),
            "protocols": sorted(p["id"] for p in list_protocols()),
            "config": config.validate_config(),
        })
    return 0


async def cmd_wallet(args: argparse.Namespace) -> int:
    if args.wallet_command == "address":
        emit({"address": Wallet.from_env().address})
        return 0
    address = args.wallet or Wallet.from_env().address
    async with httpx.AsyncClient() as http:
        lamports = await SolanaRpcClient(url=args.rpc, client=http).get_balance(address)
    emit({"address": address, "lamports": lamports, "sol": lamports / 1_000_000_000})
    return 0


async def cmd_markets(args: argparse.Namespace) -> int:
    markets = await MarketsClient().list_markets(
        provider=args.provider, type=args.type, token=args.token, limit=args.limit
    )
    emit({"markets": markets})
    return 0


async def cmd_positions(args: argparse.Namespace) -> int:
    emit({"positions": await MarketsClient().get_positions(args.wallet)})
    return 0


async def cmd_best_yield(args: argparse.Namespace) -> int:
    markets = await MarketsClient().find_best_yield(args.token, min_apy=args.min_apy, min_tvl=args.min_tvl)
    emit({"markets": markets})
    return 0


async def cmd_tokens(args: argparse.Namespace) -> int:
    emit({"tokens": await search_token(args.query)})
    return 0


def _add_execution_options(p: argparse.ArgumentParser) -> None:
    p.add_argument("-p", "--param", action="append", help="Action parameter key=value (repeatable)")
    p.add_argument("--dry-run", action="store_true", help="Simulate without signing or submitting")
    p.add_argument("--account", help="Executing account (defaults to configured wallet)")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="blinks",
        description="Solana Blinks CLI - resolve, inspect and execute Solana Actions",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  blinks inspect solana-action:https://jito.dial.to/stake
  blinks execute https://jito.dial.to/stake --amount 1 --dry-run
  blinks run kamino deposit -p vault=usdc-prime -p amount=10 --dry-run
  blinks build jupiter swap -p input=SOL -p output=USDC -p amount=0.5
        """
    )
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("-r", "--rpc", default=config.SOLANA_RPC_URL, help="Solana RPC URL")
    parser.add_argument("--log-level", default=config.LOG_LEVEL, help="Log level")
    parser.add_argument("-q", "--quiet", action="store_true", help="Only log warnings and errors")

    subparsers = parser.add_subparsers(dest="command", help="Commands")

    inspect_parser = subparsers.add_parser("inspect", help="Fetch metadata and available actions")
    inspect_parser.add_argument("url", help="Action URL (any supported encoding)")

    execute_parser = subparsers.add_parser("execute", help="Execute an action")
    execute_parser.add_argument("url", help="Action URL (any supported encoding)")
    execute_parser.add_argument("--amount", help="Amount parameter")
    execute_parser.add_argument("--params", help="Additional params as a JSON object")
    _add_execution_options(execute_parser)

    build_parser_ = subparsers.add_parser("build", help="Build an Action URL from the protocol catalog")
    build_parser_.add_argument("service", help="Service id (see 'protocols')")
    build_parser_.add_argument("action", help="Action name")
    build_parser_.add_argument("-p", "--param", action="append", help="Template parameter key=value")

    run_parser = subparsers.add_parser("run", help="Build a catalog Action URL and execute it")
    run_parser.add_argument("service", help="Service id (see 'protocols')")
    run_parser.add_argument("action", help="Action name")
    _add_execution_options(run_parser)

    subparsers.add_parser("protocols", help="List catalog services and their actions")
    subparsers.add_parser("trusted-hosts", help="Show the action host registry")
    subparsers.add_parser("status", help="Check RPC, wallet and registry status")

    wallet_parser = subparsers.add_parser("wallet", help="Wallet operations")
    wallet_sub = wallet_parser.add_subparsers(dest="wallet_command", required=True)
    wallet_sub.add_parser("address", help="Show configured wallet address")
    balance_parser = wallet_sub.add_parser("balance", help="Show SOL balance")
    balance_parser.add_argument("-w", "--wallet", help="Wallet address (defaults to configured)")

    markets_parser = subparsers.add_parser("markets", help="List markets")
    markets_parser.add_argument("--provider", help="Provider id")
    markets_parser.add_argument("--type", help="Market type (yield, lending, ...)")
    markets_parser.add_argument("--token", help="Token symbol")
    markets_parser.add_argument("--limit", type=int, help="Maximum results")

    positions_parser = subparsers.add_parser("positions", help="List wallet positions")
    positions_parser.add_argument("wallet", help="Wallet address")

    yield_parser = subparsers.add_parser("best-yield", help="Best yield markets for a token")
    yield_parser.add_argument("token", help="Token symbol")
    yield_parser.add_argument("--min-apy", type=float, help="Minimum deposit APY")
    yield_parser.add_argument("--min-tvl", type=float, help="Minimum TVL in USD")

    tokens_parser = subparsers.add_parser("tokens", help="Token discovery")
    tokens_sub = tokens_parser.add_subparsers(dest="tokens_command", required=True)
    search_parser = tokens_sub.add_parser("search", help="Search verified tokens")
    search_parser.add_argument("query", help="Symbol, name or mint")

    return parser


COMMANDS = {
    "inspect": cmd_inspect,
    "execute": cmd_execute,
    "build": cmd_build,
    "run": cmd_run,
    "protocols": cmd_protocols,
    "trusted-hosts": cmd_trusted_hosts,
    "status": cmd_status,
    "wallet": cmd_wallet,
    "markets": cmd_markets,
    "positions": cmd_positions,
    "best-yield": cmd_best_yield,
    "tokens": cmd_tokens,
}


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if not args.command:
        parser.print_help()
        return 1

    if args.quiet:
        level = "WARNING"
    elif config.is_debug():
        level = "DEBUG"
    else:
        level = args.log_level
    configure_logging(
        level=level,
        json_format=config.LOG_JSON,
    )
    set_run_id()

    try:
        return asyncio.run(COMMANDS[args.command](args))
    except BlinkError as e:
        return emit_error(e)


if __name__ == "__main__":
    sys.exit(main())
