"""
Wallet and signer.

The pipeline only needs something that turns an unsigned ActionTransaction
into signed wire bytes. Wallet does that locally with an Ed25519 key
(PyNaCl); key material is loaded from the environment or a keypair file.
"""

import base64
import binascii
import json
import os
from abc import ABC, abstractmethod
from pathlib import Path
from typing import TYPE_CHECKING, Optional

import base58
from nacl.exceptions import BadSignatureError
from nacl.signing import SigningKey, VerifyKey

from . import config
from .errors import SigningError, WalletError
from .transaction import WireTransaction

if TYPE_CHECKING:
    from .models import ActionTransaction


def is_valid_address(address: str) -> bool:
    """A ledger address is base58 encoding 32 bytes."""
    if not isinstance(address, str) or not 32 <= len(address) <= 44:
        return False
    try:
        return len(base58.b58decode(address)) == 32
    except ValueError:
        return False


def verify_signature(address: str, message: bytes, signature: bytes) -> bool:
    """Verify an Ed25519 signature against a base58 address."""
    try:
        VerifyKey(base58.b58decode(address)).verify(message, signature)
        return True
    except (BadSignatureError, ValueError):
        return False


class Signer(ABC):
    """Local, offline signer consumed by the execution pipeline."""

    @property
    @abstractmethod
    def address(self) -> str:
        pass

    @abstractmethod
    def sign(self, transaction: 'ActionTransaction') -> bytes:
        """Return signed wire bytes. Must not modify the transaction."""
        pass


class Wallet(Signer):
    """Ed25519 keypair wallet."""

    def __init__(self, signing_key: SigningKey):
        self._sk = signing_key
        self._address = base58.b58encode(bytes(signing_key.verify_key)).decode("ascii")

    @property
    def address(self) -> str:
        return self._address

    @property
    def public_key(self) -> bytes:
        return bytes(self._sk.verify_key)

    @classmethod
    def generate(cls) -> 'Wallet':
        return cls(SigningKey.generate())

    @classmethod
    def from_secret_key(cls, secret: bytes) -> 'Wallet':
        """
        Accept a 32-byte seed or a 64-byte secret key (seed || public key).
        For 64-byte keys the embedded public key must match the seed.
        """
        if len(secret) == 32:
            return cls(SigningKey(secret))
        if len(secret) == 64:
            sk = SigningKey(secret[:32])
            if bytes(sk.verify_key) != secret[32:]:
                raise WalletError("Secret key public half does not match its seed")
            return cls(sk)
        raise WalletError(f"Secret key must be 32 or 64 bytes, got {len(secret)}")

    @classmethod
    def from_string(cls, value: str) -> 'Wallet':
        """Parse a base58 secret key or a JSON byte array."""
        value = value.strip()
        if value.startswith("["):
            try:
                raw = bytes(json.loads(value))
            except (ValueError, TypeError) as e:
                raise WalletError(f"Invalid JSON keypair: {e}")
            return cls.from_secret_key(raw)
        try:
            return cls.from_secret_key(base58.b58decode(value))
        except ValueError as e:
            raise WalletError(f"Invalid base58 secret key: {e}")

    @classmethod
    def from_file(cls, path: str) -> 'Wallet':
        p = Path(path).expanduser()
        try:
            return cls.from_string(p.read_text(encoding="utf-8"))
        except OSError as e:
            raise WalletError(f"Cannot read keypair file {p}: {e}")

    @classmethod
    def from_env(cls) -> 'Wallet':
        secret = os.getenv(config.PRIVATE_KEY_ENV)
        if secret:
            return cls.from_string(secret)
        path = os.getenv(config.KEYPAIR_PATH_ENV)
        if path:
            return cls.from_file(path)
        raise WalletError(
            f"No wallet configured: set {config.PRIVATE_KEY_ENV} or {config.KEYPAIR_PATH_ENV}"
        )

    @classmethod
    def try_from_env(cls) -> Optional['Wallet']:
        try:
            return cls.from_env()
        except WalletError:
            return None

    def sign_message(self, message: bytes) -> bytes:
        return self._sk.sign(message).signature

    def sign(self, transaction: 'ActionTransaction') -> bytes:
        try:
            raw = base64.b64decode(transaction.encoded_transaction, validate=True)
        except (binascii.Error, ValueError) as e:
            raise SigningError(f"Transaction is not valid base64: {e}")
        try:
            wire = WireTransaction.from_bytes(raw)
        except ValueError as e:
            raise SigningError(f"Malformed transaction: {e}")
        if self.public_key not in wire.signer_keys:
            raise SigningError(
                f"Wallet {self.address} is not a required signer of this transaction",
                details={"address": self.address},
            )
        signature = self.sign_message(wire.message)
        return wire.with_signature(self.public_key, signature).serialize()
