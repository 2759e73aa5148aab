"""
Execution Pipeline

Single orchestration point behind the inspect and execute operations:

    inspect:  resolve -> trust lookup -> GET metadata -> flatten actions
    execute:  resolve -> trust gate -> POST transaction -> simulate | sign+submit

Steps run strictly in order and any failure aborts at that step; nothing is
signed or submitted after an error. Trust is advisory except for one hard
gate: execute refuses a host on the malicious list before any action
endpoint is contacted. A dry run simulates and never signs or submits, and
the pipeline never chains a simulation into a submission on its own.
"""

import logging
from typing import Optional, Tuple

from .actions import ActionsClient
from .errors import LedgerUnavailable, SigningError, UntrustedHostBlocked
from .ledger import LedgerClient
from .logging_config import events
from .models import (
    ActionMetadata,
    ExecutionRequest,
    ExecutionResult,
    InspectResult,
    LinkedAction,
    TrustStatus,
)
from .registry import TrustRegistry, get_registry
from .resolver import CanonicalUrl, UrlResolver
from .wallet import Signer

logger = logging.getLogger(__name__)


def flatten_actions(metadata: ActionMetadata, canonical_url: CanonicalUrl) -> Tuple[LinkedAction, ...]:
    """
    Normalize metadata.links.actions, resolving relative hrefs against the
    canonical URL's origin. An endpoint without links is its own single
    action.
    """
    if metadata.actions is None:
        return (LinkedAction(label=metadata.label or metadata.title, href=str(canonical_url)),)
    return tuple(
        LinkedAction(
            label=action.label,
            href=canonical_url.join(action.href),
            parameters=action.parameters,
        )
        for action in metadata.actions
    )


class ExecutionPipeline:
    """
    Usage:
        pipeline = ExecutionPipeline(ledger=SolanaRpcClient(), signer=Wallet.from_env())
        result = await pipeline.inspect("solana-action:https://jito.dial.to/stake")
        outcome = await pipeline.execute(ExecutionRequest(url, account, {"amount": 1}, dry_run=True))
    """

    def __init__(
        self,
        actions_client: Optional[ActionsClient] = None,
        registry: Optional[TrustRegistry] = None,
        ledger: Optional[LedgerClient] = None,
        signer: Optional[Signer] = None,
        resolver: Optional[UrlResolver] = None
    ):
        self.actions_client = actions_client or ActionsClient()
        self._registry = registry
        self.ledger = ledger
        self.signer = signer
        self.resolver = resolver or UrlResolver()

    @property
    def registry(self) -> TrustRegistry:
        return self._registry if self._registry is not None else get_registry()

    def resolve(self, raw_url: str) -> CanonicalUrl:
        canonical, rule = self.resolver.resolve_with_rule(raw_url)
        events.url_resolved(raw_url, str(canonical), rule)
        return canonical

    async def inspect(self, raw_url: str) -> InspectResult:
        canonical = self.resolve(raw_url)
        # Inspection is read-only: a malicious host is reported, not refused
        status = await self.registry.is_trusted(canonical.host)
        metadata = await self.actions_client.get_metadata(canonical)
        actions = flatten_actions(metadata, canonical)
        events.metadata_fetched(str(canonical), metadata.title, len(actions))
        return InspectResult(
            canonical_url=str(canonical),
            trusted=status == TrustStatus.TRUSTED,
            trust_status=status,
            metadata=metadata,
            actions=actions,
        )

    async def execute(self, request: ExecutionRequest) -> ExecutionResult:
        canonical = self.resolve(request.raw_url)
        status = await self.registry.is_trusted(canonical.host)
        if status == TrustStatus.MALICIOUS:
            events.execution_blocked(str(canonical), canonical.host, "malicious host")
            raise UntrustedHostBlocked(canonical.host)
        trusted = status == TrustStatus.TRUSTED
        if not trusted:
            logger.warning("%s is not a verified trusted host", canonical.host)

        if self.ledger is None:
            raise LedgerUnavailable("execute")
        if not request.dry_run:
            self._check_signer(request.account)

        transaction = await self.actions_client.get_transaction(canonical, request.account, request.params)
        events.transaction_received(str(canonical), request.account, transaction.message is not None)

        if request.dry_run:
            simulation = await self.ledger.simulate(transaction)
            events.simulation_result(str(canonical), simulation.success, simulation.units_consumed)
            return ExecutionResult(
                canonical_url=str(canonical),
                trusted=trusted,
                trust_status=status,
                dry_run=True,
                message=transaction.message,
                simulation=simulation,
            )

        signed = self.signer.sign(transaction)
        signature = await self.ledger.submit(signed)
        events.transaction_submitted(str(canonical), signature)
        return ExecutionResult(
            canonical_url=str(canonical),
            trusted=trusted,
            trust_status=status,
            dry_run=False,
            message=transaction.message,
            signature=signature,
        )

    def _check_signer(self, account: str) -> None:
        if self.signer is None:
            raise SigningError("No wallet configured; use dry run or configure a signing key")
        if self.signer.address != account:
            raise SigningError(
                f"Account {account} does not match wallet {self.signer.address}",
                details={"account": account, "wallet": self.signer.address},
            )
