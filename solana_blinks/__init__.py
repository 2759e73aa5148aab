"""
Solana Blinks

Resolve, inspect and execute Solana Actions ("blinks") from any of their
encodings, with a trust gate on the action host and a dry-run path that
simulates without signing.

An Action URL arrives in one of several shapes:
    solana-action:https://jito.dial.to/stake
    blink:https://jito.dial.to/stake
    https://dial.to/?action=solana-action:https://jito.dial.to/stake
    https://jito.dial.to/stake

All of them resolve to the same canonical https endpoint, which is then
GET (metadata) and POSTed (transaction) per the Actions protocol.

Usage:
    from solana_blinks import ExecutionPipeline, ExecutionRequest, SolanaRpcClient

    pipeline = ExecutionPipeline(ledger=SolanaRpcClient())

    info = await pipeline.inspect("solana-action:https://jito.dial.to/stake")
    for action in info.actions:
        print(action.label, action.href)

    result = await pipeline.execute(ExecutionRequest(
        raw_url="https://jito.dial.to/stake",
        account="<base58 address>",
        params={"amount": 1},
        dry_run=True,
    ))
    print(result.simulation.success)
"""

__version__ = "1.0.0"

# Errors
from .errors import (
    BlinkError,
    InvalidUrlKind,
    InvalidRequest,
    ActionFetchError,
    ActionTimeoutError,
    ActionSchemaError,
    ActionTransactionError,
    UntrustedHostBlocked,
    MissingTemplateParameter,
    RpcError,
    RpcTimeoutError,
    LedgerUnavailable,
    WalletError,
    SigningError,
)

# Data model
from .models import (
    TrustStatus,
    TrustRecord,
    ActionParameter,
    LinkedAction,
    ActionMetadata,
    ActionTransaction,
    InspectResult,
    SimulationResult,
    ExecutionRequest,
    ExecutionResult,
)

# URL resolution
from .resolver import CanonicalUrl, UrlResolver, resolve_url

# Trust registry
from .registry import (
    TrustRegistry,
    RegistrySnapshot,
    RegistryState,
    DialectRegistrySource,
    StaticRegistrySource,
    get_registry,
    set_registry,
)

# Clients
from .actions import ActionsClient, get_action, post_action
from .ledger import LedgerClient, SolanaRpcClient
from .markets import MarketsClient, get_token_list, search_token

# Catalog
from .catalog import (
    COMMON_TOKENS,
    build_action_url,
    get_service,
    list_protocols,
    resolve_token_mint,
)

# Signing and orchestration
from .wallet import Signer, Wallet, is_valid_address
from .pipeline import ExecutionPipeline, flatten_actions


__all__ = [
    # Version
    "__version__",

    # Errors
    "BlinkError",
    "InvalidUrlKind",
    "InvalidRequest",
    "ActionFetchError",
    "ActionTimeoutError",
    "ActionSchemaError",
    "ActionTransactionError",
    "UntrustedHostBlocked",
    "MissingTemplateParameter",
    "RpcError",
    "RpcTimeoutError",
    "LedgerUnavailable",
    "WalletError",
    "SigningError",

    # Data model
    "TrustStatus",
    "TrustRecord",
    "ActionParameter",
    "LinkedAction",
    "ActionMetadata",
    "ActionTransaction",
    "InspectResult",
    "SimulationResult",
    "ExecutionRequest",
    "ExecutionResult",

    # URL resolution
    "CanonicalUrl",
    "UrlResolver",
    "resolve_url",

    # Trust registry
    "TrustRegistry",
    "RegistrySnapshot",
    "RegistryState",
    "DialectRegistrySource",
    "StaticRegistrySource",
    "get_registry",
    "set_registry",

    # Clients
    "ActionsClient",
    "get_action",
    "post_action",
    "LedgerClient",
    "SolanaRpcClient",
    "MarketsClient",
    "get_token_list",
    "search_token",

    # Catalog
    "COMMON_TOKENS",
    "build_action_url",
    "get_service",
    "list_protocols",
    "resolve_token_mint",

    # Signing and orchestration
    "Signer",
    "Wallet",
    "is_valid_address",
    "ExecutionPipeline",
    "flatten_actions",
]
