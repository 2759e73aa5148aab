"""
Configuration module for Solana Blinks.

Centralizes all configuration with environment variable support.
Components take these values as constructor defaults, so tests can pass
explicit values instead of touching the environment.
"""

import os
from pathlib import Path
from typing import Dict

# ============================================================
# Network Endpoints
# ============================================================

SOLANA_RPC_URL = os.getenv("SOLANA_RPC_URL", "https://api.mainnet-beta.solana.com")
REGISTRY_URL = os.getenv("BLINKS_REGISTRY_URL", "https://registry.dial.to/v1/list")
MARKETS_API_BASE = os.getenv("BLINKS_MARKETS_API", "https://api.dialect.to/v1")
TOKEN_LIST_URL = os.getenv("BLINKS_TOKEN_LIST_URL", "https://token.jup.ag")

USER_AGENT = os.getenv("BLINKS_USER_AGENT", "SolanaBlinksPy/1.0")

# ============================================================
# Timeouts (seconds)
# ============================================================

ACTION_TIMEOUT = float(os.getenv("BLINKS_ACTION_TIMEOUT", "15"))
RPC_TIMEOUT = float(os.getenv("BLINKS_RPC_TIMEOUT", "30"))
CONFIRM_TIMEOUT = float(os.getenv("BLINKS_CONFIRM_TIMEOUT", "60"))
REGISTRY_TIMEOUT = float(os.getenv("BLINKS_REGISTRY_TIMEOUT", "10"))
MARKETS_TIMEOUT = float(os.getenv("BLINKS_MARKETS_TIMEOUT", "30"))

# ============================================================
# Trust Registry
# ============================================================

# Lifetime of a successfully fetched snapshot
REGISTRY_TTL = int(os.getenv("BLINKS_REGISTRY_TTL", "3600"))
# Lifetime of a fallback snapshot installed after a failed fetch
REGISTRY_RETRY = int(os.getenv("BLINKS_REGISTRY_RETRY", "60"))
# blocking | background
REGISTRY_REFRESH = os.getenv("BLINKS_REGISTRY_REFRESH", "blocking")

# ============================================================
# Wallet
# ============================================================

PRIVATE_KEY_ENV = "SOLANA_PRIVATE_KEY"
KEYPAIR_PATH_ENV = "SOLANA_KEYPAIR_PATH"

# ============================================================
# Logging
# ============================================================

LOG_LEVEL = os.getenv("BLINKS_LOG_LEVEL", "INFO")
LOG_JSON = os.getenv("BLINKS_LOG_JSON", "1").lower() in ("1", "true", "yes")

EXPLORER_TX_URL = "https://solscan.io/tx/{signature}"


# ============================================================
# Validation
# ============================================================

def validate_config() -> Dict[str, bool]:
    """
    Check the parts of the configuration that can be verified offline.
    Returns dict of check name -> ok.
    """
    checks = {
        "rpc_url_https": SOLANA_RPC_URL.startswith(("https://", "http://localhost", "http://127.0.0.1")),
        "registry_url_https": REGISTRY_URL.startswith("https://"),
        "registry_refresh_mode": REGISTRY_REFRESH in ("blocking", "background"),
        "wallet_configured": bool(os.getenv(PRIVATE_KEY_ENV) or os.getenv(KEYPAIR_PATH_ENV)),
    }
    keypair_path = os.getenv(KEYPAIR_PATH_ENV)
    if keypair_path:
        checks["keypair_file_exists"] = Path(keypair_path).expanduser().exists()
    return checks


# ============================================================
# Feature Flags
# ============================================================

def is_debug() -> bool:
    """Check if debug mode is enabled."""
    return os.getenv("BLINKS_DEBUG", "").lower() in ("1", "true", "yes")
