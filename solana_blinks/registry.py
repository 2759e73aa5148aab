"""
Action Host Trust Registry

Answers "is this host trusted, known-malicious, or unknown?" from an
in-memory snapshot of the action registry.

Lifecycle:
    UNINITIALIZED -> LOADING -> READY

- The first query fetches the host list. Concurrent callers share the one
  in-flight fetch instead of issuing their own.
- A READY snapshot serves every query until it expires (TTL). The next query
  after expiry refreshes, either blocking on the shared fetch or, in
  background mode, returning the stale snapshot while the fetch runs.
- A refresh replaces the snapshot reference wholesale; readers never see a
  mix of old and new entries.
- A failed fetch never blocks execution. The last-known-good snapshot (or
  the built-in first-party host list when there is none) is re-installed
  with a short lifetime. Trust is advisory: Unknown means warn, not deny.
"""

import asyncio
import logging
import threading
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Dict, FrozenSet, Iterable, List, Optional

import httpx

from . import config
from .logging_config import events
from .models import TrustRecord, TrustStatus

logger = logging.getLogger(__name__)


# First-party hosts trusted when the registry cannot be reached
DEFAULT_TRUSTED_HOSTS: FrozenSet[str] = frozenset({
    "dial.to",
    "jito.dial.to",
    "kamino.dial.to",
    "lulo.dial.to",
    "sanctum.dial.to",
    "tensor.dial.to",
    "marginfi.dial.to",
    "meteora.dial.to",
    "jito.network",
    "worker.jup.ag",
    "jup.ag",
    "share.raydium.io",
    "app.drift.trade",
    "api-mainnet.magiceden.dev",
})


class RegistryState(str, Enum):
    UNINITIALIZED = "UNINITIALIZED"
    LOADING = "LOADING"
    READY = "READY"


class RefreshMode(str, Enum):
    BLOCKING = "blocking"
    BACKGROUND = "background"


@dataclass(frozen=True)
class HostList:
    """Result of one registry fetch."""
    trusted: FrozenSet[str]
    malicious: FrozenSet[str]

    @classmethod
    def of(cls, trusted: Iterable[str] = (), malicious: Iterable[str] = ()) -> 'HostList':
        return cls(
            trusted=frozenset(h.strip().lower() for h in trusted if h and h.strip()),
            malicious=frozenset(h.strip().lower() for h in malicious if h and h.strip()),
        )


@dataclass(frozen=True)
class RegistrySnapshot:
    """Immutable view of the registry at one point in time."""
    trusted: FrozenSet[str]
    malicious: FrozenSet[str]
    loaded_at: float
    expires_at: float
    source: str  # remote | stale | builtin | seeded

    def expired(self, now: float) -> bool:
        return now >= self.expires_at

    def status(self, host: str) -> TrustStatus:
        host = (host or "").strip().lower()
        if host in self.malicious:
            return TrustStatus.MALICIOUS
        if host in self.trusted:
            return TrustStatus.TRUSTED
        return TrustStatus.UNKNOWN


class RegistrySource(ABC):
    """Where the authoritative host list comes from."""

    @abstractmethod
    async def fetch_host_list(self) -> HostList:
        pass


class DialectRegistrySource(RegistrySource):
    """
    Fetches the public action registry.

    Response shape:
        {"actions": [{"host": "...", "state": "trusted" | "malicious" | "unknown"}, ...],
         "websites": [...], "interstitials": [...]}

    Only the "actions" section classifies action endpoints.
    """

    def __init__(
        self,
        url: str = config.REGISTRY_URL,
        timeout: float = config.REGISTRY_TIMEOUT,
        client: Optional[httpx.AsyncClient] = None
    ):
        self.url = url
        self.timeout = timeout
        self._client = client

    async def fetch_host_list(self) -> HostList:
        if self._client is not None:
            return await self._fetch(self._client)
        async with httpx.AsyncClient(headers={"User-Agent": config.USER_AGENT}) as client:
            return await self._fetch(client)

    async def _fetch(self, client: httpx.AsyncClient) -> HostList:
        response = await client.get(
            self.url,
            timeout=self.timeout,
            headers={"Accept": "application/json"},
        )
        response.raise_for_status()
        return self.parse(response.json())

    @staticmethod
    def parse(data: Any) -> HostList:
        if not isinstance(data, dict) or not isinstance(data.get("actions"), list):
            raise ValueError("registry response has no 'actions' list")
        trusted: List[str] = []
        malicious: List[str] = []
        for entry in data["actions"]:
            if not isinstance(entry, dict) or not isinstance(entry.get("host"), str):
                continue
            state = str(entry.get("state", "")).lower()
            if state == "trusted":
                trusted.append(entry["host"])
            elif state == "malicious":
                malicious.append(entry["host"])
        return HostList.of(trusted, malicious)


class StaticRegistrySource(RegistrySource):
    """Fixed host list, for offline use and tests."""

    def __init__(self, trusted: Iterable[str] = (), malicious: Iterable[str] = ()):
        self.host_list = HostList.of(trusted, malicious)

    async def fetch_host_list(self) -> HostList:
        return self.host_list


class TrustRegistry:
    """
    Cached, single-flight trust registry.

    Usage:
        registry = TrustRegistry(DialectRegistrySource())
        status = await registry.is_trusted("jito.dial.to")
    """

    def __init__(
        self,
        source: Optional[RegistrySource] = None,
        ttl: float = config.REGISTRY_TTL,
        retry_after: float = config.REGISTRY_RETRY,
        refresh_mode: str = config.REGISTRY_REFRESH,
        fallback_hosts: Iterable[str] = DEFAULT_TRUSTED_HOSTS,
        clock: Callable[[], float] = time.monotonic
    ):
        self.source = source or DialectRegistrySource()
        self.ttl = ttl
        self.retry_after = retry_after
        self.refresh_mode = RefreshMode(refresh_mode)
        self.fallback_hosts = frozenset(h.lower() for h in fallback_hosts)
        self._clock = clock
        self._snapshot: Optional[RegistrySnapshot] = None
        self._last_good: Optional[RegistrySnapshot] = None
        self._inflight: Optional[asyncio.Future] = None
        self._start_lock = threading.Lock()
        self.fetch_count = 0

    @property
    def state(self) -> RegistryState:
        if self._snapshot is not None:
            return RegistryState.READY
        if self._inflight is not None and not self._inflight.done():
            return RegistryState.LOADING
        return RegistryState.UNINITIALIZED

    @property
    def snapshot(self) -> Optional[RegistrySnapshot]:
        return self._snapshot

    def seed(self, trusted: Iterable[str] = (), malicious: Iterable[str] = (), ttl: Optional[float] = None) -> None:
        """Install a snapshot directly, skipping the first fetch."""
        now = self._clock()
        hosts = HostList.of(trusted, malicious)
        self._snapshot = RegistrySnapshot(
            trusted=hosts.trusted,
            malicious=hosts.malicious,
            loaded_at=now,
            expires_at=now + (self.ttl if ttl is None else ttl),
            source="seeded",
        )
        self._last_good = self._snapshot

    def clear(self) -> None:
        """Drop the cached snapshot; the next query refetches."""
        self._snapshot = None
        self._last_good = None

    async def lookup(self, host: str) -> TrustRecord:
        snapshot = await self.get_snapshot()
        status = snapshot.status(host)
        events.trust_decision(host, status.value, snapshot.source)
        return TrustRecord(host=(host or "").lower(), status=status)

    async def is_trusted(self, host: str) -> TrustStatus:
        """Classify host as TRUSTED, MALICIOUS or UNKNOWN."""
        return (await self.lookup(host)).status

    async def get_snapshot(self) -> RegistrySnapshot:
        snapshot = self._snapshot
        if snapshot is not None and not snapshot.expired(self._clock()):
            return snapshot
        if snapshot is not None and self.refresh_mode == RefreshMode.BACKGROUND:
            self._start_refresh()
            return snapshot
        # shield: one caller being cancelled must not cancel the shared fetch
        return await asyncio.shield(self._start_refresh())

    async def refresh(self) -> RegistrySnapshot:
        """Force a refresh now (still single-flight)."""
        return await asyncio.shield(self._start_refresh())

    def stats(self) -> Dict[str, Any]:
        snapshot = self._snapshot
        data: Dict[str, Any] = {"state": self.state.value, "fetches": self.fetch_count}
        if snapshot is not None:
            now = self._clock()
            data.update({
                "source": snapshot.source,
                "trusted": len(snapshot.trusted),
                "malicious": len(snapshot.malicious),
                "expired": snapshot.expired(now),
                "expires_in": max(0, int(snapshot.expires_at - now)),
            })
        return data

    def _start_refresh(self) -> asyncio.Future:
        with self._start_lock:
            if self._inflight is None or self._inflight.done():
                self._inflight = asyncio.ensure_future(self._refresh())
            return self._inflight

    async def _refresh(self) -> RegistrySnapshot:
        self.fetch_count += 1
        try:
            hosts = await self.source.fetch_host_list()
        except Exception as e:
            snapshot = self._fallback_snapshot(e)
        else:
            now = self._clock()
            snapshot = RegistrySnapshot(
                trusted=hosts.trusted,
                malicious=hosts.malicious,
                loaded_at=now,
                expires_at=now + self.ttl,
                source="remote",
            )
            self._last_good = snapshot
            events.registry_refresh(len(hosts.trusted), len(hosts.malicious), int(self.ttl))
        self._snapshot = snapshot
        return snapshot

    def _fallback_snapshot(self, error: Exception) -> RegistrySnapshot:
        now = self._clock()
        if self._last_good is not None:
            base, source = self._last_good, "stale"
            trusted, malicious = base.trusted, base.malicious
        else:
            source = "builtin"
            trusted, malicious = self.fallback_hosts, frozenset()
        events.registry_fallback(f"{type(error).__name__}: {error}", source)
        logger.debug("Registry fetch failed", exc_info=error)
        return RegistrySnapshot(
            trusted=trusted,
            malicious=malicious,
            loaded_at=now,
            expires_at=now + self.retry_after,
            source=source,
        )


# ============================================================
# Process-wide registry
# ============================================================

_registry: Optional[TrustRegistry] = None
_registry_lock = threading.Lock()


def get_registry() -> TrustRegistry:
    """Return the process-wide registry, creating it lazily."""
    global _registry
    with _registry_lock:
        if _registry is None:
            _registry = TrustRegistry()
        return _registry


def set_registry(registry: Optional[TrustRegistry]) -> None:
    """Replace the process-wide registry (None resets to lazy default)."""
    global _registry
    with _registry_lock:
        _registry = registry
