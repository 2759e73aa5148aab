"""
Protocol Catalog

Static mapping of well-known services to their action endpoint templates.
Builds Action URLs from human-friendly identifiers (vault slugs, token
symbols) so callers never hand-assemble raw paths.

Rendering is pure string templating:
- {name} placeholders in the template are required
- query parameters are appended only when supplied
- token-valued parameters accept a symbol (SOL, USDC, jitoSOL) or a mint
- any parameter the template does not consume is returned as a POST body
  parameter for the action endpoint
"""

import string
from dataclasses import dataclass, field
from typing import Any, Dict, List, Mapping, Optional, Tuple
from urllib.parse import quote, urlencode

from .errors import InvalidRequest, MissingTemplateParameter


# ============================================================
# Tokens and Vaults
# ============================================================

COMMON_TOKENS: Dict[str, str] = {
    # Native
    "SOL": "So11111111111111111111111111111111111111112",

    # Stablecoins
    "USDC": "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v",
    "USDT": "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB",
    "PYUSD": "2b1kV6DkPAnxd5ixfnxCpjxmKwqjjaYmCZfHsFu24GXo",
    "UXD": "7kbnvuGBxxj8AG9qp8Scn56muWGaRaFqxg1FsRp3PaFT",

    # LSTs
    "jitoSOL": "J1toso1uCk3RLmjorhTtrVwY9HJ7X8V9yYac6Y7kGCPn",
    "mSOL": "mSoLzYCxHdYgdzU16g5QSh3i5K3z3KZK7ytfqcJm7So",
    "bSOL": "bSo13r4TkiE4KumL71LsHTPpL2euBYLFx6h9HP3piy1",
    "INF": "5oVNBeEEQvYi1cX3ir8Dx5n1P7pdxydbGF2X4TxVusJm",

    # DeFi
    "JUP": "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN",
    "RAY": "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R",
    "ORCA": "orcaEKTdK7LKz57vaAYr9QeNsVEPfiu6QeMU1kektZE",
    "MNDE": "MNDEFzGvMt87ueuHvVU9VcTqsAP5b3fTGPsHuuPA5ey",
    "JLP": "27G8MtK7VtTcCHkpASjSDdkWWYfoqT6ggEuKidVJidD4",

    # Meme
    "BONK": "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263",
    "WIF": "EKpQGSJtjMFqKZ9KQanSqYXRcF8fBopzLHYxdM65zcjm",
    "POPCAT": "7GCihgDB8fe6KNjn2MYtkzZcRjQy3t9GHdC8uHYmW2hr",
    "MYRO": "HhJpBhRRn4g56VsyLuT8DL5Bv31HkXqsrahTTUCZeZg4",

    # Infrastructure
    "PYTH": "HZ1JovNiVvGrGNiiYvEozEVgZ58xaU3RKwX8eACQBCt3",
    "HNT": "hntyVP6YFm1Hg25TN9WGLqM12b8TQmcknKrdu1oxWux",
    "RENDER": "rndrizKT3MK1iimdxRdWabcF7Zg7AR5T4nud4EkHBof",
    "W": "85VBFQZC9TZkfaptBWjvUw7YbZjy52A6mjtPGjstQAmQ",
}

_TOKENS_BY_UPPER = {symbol.upper(): mint for symbol, mint in COMMON_TOKENS.items()}


def resolve_token_mint(token_or_mint: str) -> str:
    """Map a known symbol (any case) to its mint; anything else passes through."""
    return _TOKENS_BY_UPPER.get(str(token_or_mint).upper(), str(token_or_mint))


KAMINO_LEND_VAULTS: Dict[str, Dict[str, str]] = {
    "usdc-prime": {"name": "USDC Prime", "token": "USDC"},
    "usdc-main": {"name": "USDC Main", "token": "USDC"},
    "sol-main": {"name": "SOL Main", "token": "SOL"},
    "sol-jlp": {"name": "SOL JLP", "token": "SOL"},
    "jlp-core": {"name": "JLP Core", "token": "JLP"},
    "usdt-main": {"name": "USDT Main", "token": "USDT"},
    "jitosol-main": {"name": "jitoSOL Main", "token": "jitoSOL"},
    "msol-main": {"name": "mSOL Main", "token": "mSOL"},
    "bsol-main": {"name": "bSOL Main", "token": "bSOL"},
    "pyusd-main": {"name": "PYUSD Main", "token": "PYUSD"},
}


def get_kamino_lend_vaults() -> List[Dict[str, str]]:
    return [{"slug": slug, **info} for slug, info in KAMINO_LEND_VAULTS.items()]


# ============================================================
# Templates
# ============================================================

@dataclass(frozen=True)
class RenderedAction:
    url: str
    body_params: Dict[str, Any]


@dataclass(frozen=True)
class ActionTemplate:
    """One endpoint template of a service."""
    template: str
    query: Tuple[str, ...] = ()
    tokens: Tuple[str, ...] = ()
    defaults: Mapping[str, str] = field(default_factory=dict)
    description: str = ""

    @property
    def placeholders(self) -> Tuple[str, ...]:
        return tuple(
            name for _, name, _, _ in string.Formatter().parse(self.template)
            if name
        )

    def to_dict(self) -> Dict[str, Any]:
        return {
            "template": self.template,
            "required": list(self.placeholders),
            "optional": list(self.query),
            "description": self.description,
        }


@dataclass(frozen=True)
class ServiceEntry:
    service_id: str
    display_name: str
    category: str
    actions: Mapping[str, ActionTemplate]

    def render(self, action: str, params: Optional[Mapping[str, Any]] = None) -> RenderedAction:
        template = self.actions.get(action)
        if template is None:
            raise InvalidRequest(
                f"Unknown action '{action}' for {self.service_id}; "
                f"available: {', '.join(sorted(self.actions))}",
                field="action",
            )

        values: Dict[str, Any] = dict(template.defaults)
        values.update({k: v for k, v in (params or {}).items() if v is not None and v != ""})
        for name in template.tokens:
            if name in values:
                values[name] = resolve_token_mint(values[name])

        missing = [name for name in template.placeholders if name not in values]
        if missing:
            raise MissingTemplateParameter(self.service_id, action, missing)

        url = template.template.format(**{
            name: quote(str(values[name]), safe="") for name in template.placeholders
        })
        query = [(name, str(values[name])) for name in template.query if name in values]
        if query:
            url += ("&" if "?" in url else "?") + urlencode(query)

        consumed = set(template.placeholders) | set(template.query)
        body = {k: v for k, v in values.items() if k not in consumed}
        return RenderedAction(url=url, body_params=body)

    def endpoint_template(self, action: str, params: Optional[Mapping[str, Any]] = None) -> str:
        return self.render(action, params).url

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.service_id,
            "displayName": self.display_name,
            "category": self.category,
            "actions": {name: t.to_dict() for name, t in self.actions.items()},
        }


SOL_MINT = COMMON_TOKENS["SOL"]

PROTOCOLS: Dict[str, ServiceEntry] = {
    "kamino": ServiceEntry("kamino", "Kamino Finance", "lending", {
        "deposit": ActionTemplate(
            "https://kamino.dial.to/api/v0/lend/{vault}/deposit",
            query=("amount",),
            description="Deposit to a Kamino Lend vault",
        ),
        "withdraw": ActionTemplate(
            "https://kamino.dial.to/api/v0/lend/{vault}/withdraw",
            query=("amount",),
            description="Withdraw from a Kamino Lend vault",
        ),
        "borrow": ActionTemplate(
            "https://kamino.dial.to/api/v0/lending/reserve/{market}/{reserve}/borrow",
            description="Borrow from a Kamino lending reserve",
        ),
        "repay": ActionTemplate(
            "https://kamino.dial.to/api/v0/lending/reserve/{market}/{reserve}/repay",
            description="Repay a Kamino loan",
        ),
        "multiply": ActionTemplate(
            "https://kamino.dial.to/api/v0/multiply/{market}/deposit"
            "?collTokenMint={coll_token}&debtTokenMint={debt_token}",
            tokens=("coll_token", "debt_token"),
            description="Open a Kamino multiply position",
        ),
    }),
    "jupiter": ServiceEntry("jupiter", "Jupiter", "dex", {
        "swap": ActionTemplate(
            "https://worker.jup.ag/blinks/swap/{input}/{output}/{amount}",
            tokens=("input", "output"),
            description="Swap tokens via Jupiter",
        ),
    }),
    "raydium": ServiceEntry("raydium", "Raydium", "dex", {
        "swap": ActionTemplate(
            "https://share.raydium.io/dialect/actions/swap/tx"
            "?inputMint={input}&outputMint={output}&amount={amount}",
            tokens=("input", "output"),
            defaults={"input": "SOL"},
            description="Swap tokens via Raydium",
        ),
    }),
    "jito": ServiceEntry("jito", "Jito", "liquid-staking", {
        "stake": ActionTemplate(
            "https://jito.dial.to/stake",
            description="Stake SOL for JitoSOL",
        ),
    }),
    "lulo": ServiceEntry("lulo", "Lulo", "yield", {
        "deposit": ActionTemplate(
            "https://lulo.dial.to/api/v0/deposit",
            tokens=("token",),
            description="Deposit to Lulo",
        ),
        "withdraw": ActionTemplate(
            "https://lulo.dial.to/api/v0/withdraw",
            tokens=("token",),
            description="Withdraw from Lulo",
        ),
    }),
    "drift": ServiceEntry("drift", "Drift", "perps", {
        "vault-deposit": ActionTemplate(
            "https://app.drift.trade/api/actions/vault/deposit?vault={vault}",
            description="Deposit to a Drift strategy vault",
        ),
        "vault-withdraw": ActionTemplate(
            "https://app.drift.trade/api/actions/vault/withdraw?vault={vault}",
            description="Withdraw from a Drift strategy vault",
        ),
    }),
    "sanctum": ServiceEntry("sanctum", "Sanctum", "liquid-staking", {
        "stake": ActionTemplate(
            "https://sanctum.dial.to/api/v0/stake",
            tokens=("outputMint",),
            defaults={"inputMint": SOL_MINT},
            description="Stake SOL for an LST",
        ),
    }),
    "magiceden": ServiceEntry("magiceden", "Magic Eden", "nft", {
        "buy": ActionTemplate(
            "https://api-mainnet.magiceden.dev/actions/buyNow/{mint}",
            description="Buy a listed NFT",
        ),
    }),
    "tensor": ServiceEntry("tensor", "Tensor", "nft", {
        "buy-floor": ActionTemplate(
            "https://tensor.dial.to/buy-floor/{collection}",
            description="Buy the floor NFT of a collection",
        ),
    }),
}


def get_service(service_id: str) -> ServiceEntry:
    entry = PROTOCOLS.get((service_id or "").strip().lower())
    if entry is None:
        raise InvalidRequest(
            f"Unknown service '{service_id}'; available: {', '.join(sorted(PROTOCOLS))}",
            field="service",
        )
    return entry


def build_action_url(service_id: str, action: str, **params: Any) -> str:
    """Render a catalog Action URL, e.g. build_action_url("kamino", "deposit", vault="usdc-prime")."""
    return get_service(service_id).endpoint_template(action, params)


def list_protocols() -> List[Dict[str, Any]]:
    return [entry.to_dict() for entry in PROTOCOLS.values()]


# ============================================================
# URL Builders
# ============================================================

def build_jupiter_swap_url(input_token: str, output_token: str, amount: Optional[float] = None) -> str:
    """
    Jupiter swap URL for any token.

    With an amount the mint-path form is used; without one, a symbol pair
    (SOL-USDC) when both tokens are known symbols, else a mint pair.
    """
    base = "https://worker.jup.ag/blinks/swap"
    input_mint = resolve_token_mint(input_token)
    output_mint = resolve_token_mint(output_token)
    if amount:
        return f"{base}/{input_mint}/{output_mint}/{amount}"
    if input_token.upper() in _TOKENS_BY_UPPER and output_token.upper() in _TOKENS_BY_UPPER:
        return f"{base}/{input_token.upper()}-{output_token.upper()}"
    return f"{base}/{input_mint}-{output_mint}"


def build_raydium_swap_url(input_token: str, output_token: str, amount: float) -> str:
    return build_action_url("raydium", "swap", input=input_token, output=output_token, amount=amount)


def build_kamino_deposit_url(vault_slug: str, amount: Optional[float] = None) -> str:
    return build_action_url("kamino", "deposit", vault=vault_slug, amount=amount)


def build_kamino_withdraw_url(vault_slug: str, amount: Optional[float] = None) -> str:
    return build_action_url("kamino", "withdraw", vault=vault_slug, amount=amount)


def build_jito_stake_url(amount: Optional[float] = None) -> str:
    if amount:
        return f"https://jito.network/stake/amount/{amount}"
    return "https://jito.network/stake"


def build_magic_eden_buy_url(nft_mint: str) -> str:
    return build_action_url("magiceden", "buy", mint=nft_mint)


def build_tensor_buy_floor_url(collection: str) -> str:
    return build_action_url("tensor", "buy-floor", collection=collection)
