"""
Ledger transaction wire format.

Just enough of the Solana transaction layout to place a signature:

    compact-u16 signature count
    signature count x 64-byte signatures
    message:
        [0x80 | version]            (versioned messages only)
        3-byte header               (num_required_signatures, readonly signed, readonly unsigned)
        compact-u16 account count
        account count x 32-byte keys
        ... (blockhash, instructions, lookups: carried through untouched)

The message bytes are what gets signed; everything after the account keys is
opaque here.
"""

from dataclasses import dataclass
from typing import Optional, Tuple

SIGNATURE_LENGTH = 64
PUBKEY_LENGTH = 32
VERSION_PREFIX_MASK = 0x80


def decode_compact_u16(data: bytes, offset: int = 0) -> Tuple[int, int]:
    """Decode a compact-u16 at offset. Returns (value, next_offset)."""
    value = 0
    for i in range(3):
        if offset + i >= len(data):
            raise ValueError("truncated compact-u16")
        byte = data[offset + i]
        value |= (byte & 0x7f) << (7 * i)
        if not byte & 0x80:
            return value, offset + i + 1
    raise ValueError("compact-u16 longer than 3 bytes")


def encode_compact_u16(value: int) -> bytes:
    if not 0 <= value <= 0xffff:
        raise ValueError(f"compact-u16 out of range: {value}")
    out = bytearray()
    while True:
        byte = value & 0x7f
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


@dataclass(frozen=True)
class WireTransaction:
    signatures: Tuple[bytes, ...]
    message: bytes
    version: Optional[int]
    num_required_signatures: int
    account_keys: Tuple[bytes, ...]

    @classmethod
    def from_bytes(cls, raw: bytes) -> 'WireTransaction':
        count, offset = decode_compact_u16(raw, 0)
        end = offset + count * SIGNATURE_LENGTH
        if end > len(raw):
            raise ValueError("truncated signature section")
        signatures = tuple(
            raw[offset + i * SIGNATURE_LENGTH: offset + (i + 1) * SIGNATURE_LENGTH]
            for i in range(count)
        )
        message = raw[end:]
        if not message:
            raise ValueError("missing message")

        cursor = 0
        version = None
        if message[0] & VERSION_PREFIX_MASK:
            version = message[0] & 0x7f
            cursor = 1
        if cursor + 3 > len(message):
            raise ValueError("truncated message header")
        num_required = message[cursor]
        cursor += 3

        key_count, cursor = decode_compact_u16(message, cursor)
        if cursor + key_count * PUBKEY_LENGTH > len(message):
            raise ValueError("truncated account keys")
        keys = tuple(
            message[cursor + i * PUBKEY_LENGTH: cursor + (i + 1) * PUBKEY_LENGTH]
            for i in range(key_count)
        )
        if num_required > key_count:
            raise ValueError("header requires more signers than account keys")
        if count != num_required:
            raise ValueError(f"expected {num_required} signature slots, found {count}")

        return cls(
            signatures=signatures,
            message=message,
            version=version,
            num_required_signatures=num_required,
            account_keys=keys,
        )

    @property
    def signer_keys(self) -> Tuple[bytes, ...]:
        return self.account_keys[:self.num_required_signatures]

    def with_signature(self, pubkey: bytes, signature: bytes) -> 'WireTransaction':
        """Return a copy with signature placed in pubkey's slot."""
        if len(signature) != SIGNATURE_LENGTH:
            raise ValueError("signature must be 64 bytes")
        try:
            index = self.signer_keys.index(pubkey)
        except ValueError:
            raise ValueError("key is not a required signer of this transaction")
        signatures = list(self.signatures)
        signatures[index] = signature
        return WireTransaction(
            signatures=tuple(signatures),
            message=self.message,
            version=self.version,
            num_required_signatures=self.num_required_signatures,
            account_keys=self.account_keys,
        )

    def serialize(self) -> bytes:
        return (
            encode_compact_u16(len(self.signatures))
            + b"".join(self.signatures)
            + self.message
        )
