"""Signature utilities built on EIP-191 ``personal_sign`` recovery."""
from __future__ import annotations

import binascii
import secrets

from eth_account import Account
from eth_account.messages import encode_defunct
from eth_keys.exceptions import BadSignature
from eth_keys.exceptions import ValidationError as KeyValidationError
from eth_utils import ValidationError

SIGNATURE_LENGTH_BYTES = 65


def decode_signature(signature_hex: str) -> bytes:
    """Decode a hex signature, with or without the ``0x`` prefix.

    Raises:
        ValueError: If the value is not hex or not a 65-byte (r, s, v) signature.
    """
    cleaned = signature_hex.strip()
    if cleaned[:2].lower() == "0x":
        cleaned = cleaned[2:]
    try:
        raw = binascii.unhexlify(cleaned)
    except (binascii.Error, ValueError) as err:
        raise ValueError(f"Invalid hex encoding: {err}") from err
    if len(raw) != SIGNATURE_LENGTH_BYTES:
        raise ValueError(f"Signatures must be {SIGNATURE_LENGTH_BYTES} bytes")
    return raw


def recover_address(message: str, signature_hex: str) -> str:
    """Recover the lowercased address that signed ``message``.

    Args:
        message: Exact text the wallet signed.
        signature_hex: Hex-encoded 65-byte signature.

    Raises:
        ValueError: If the signature cannot be decoded or recovered.
    """
    signature = decode_signature(signature_hex)
    signable = encode_defunct(text=message)
    try:
        recovered: str = Account.recover_message(signable, signature=signature)
    except (ValueError, BadSignature, KeyValidationError, ValidationError) as err:
        raise ValueError(f"Signature recovery failed: {err}") from err
    return recovered.lower()


def addresses_match(left: str, right: str) -> bool:
    """Compare two addresses case-insensitively in constant time."""
    return secrets.compare_digest(left.lower().encode(), right.lower().encode())
