"""Hex codecs for wallet addresses and client order ids."""

import re
from typing import Optional


WALLET_ADDRESS_LEN = 20
CLOID_LEN = 16

_WALLET_RE = re.compile(r"0[xX]([0-9a-fA-F]{40})")
_CLOID_RE = re.compile(r"0[xX]([0-9a-fA-F]{32})")


def parse_wallet_address(text: str) -> Optional[bytes]:
    """
    Parse a 0x-prefixed wallet address into its 20 raw bytes.

    Returns None on a missing prefix, wrong length or non-hex characters.
    """
    if not isinstance(text, str):
        return None
    m = _WALLET_RE.fullmatch(text)
    if m is None:
        return None
    return bytes.fromhex(m.group(1))


def format_wallet_address(raw: bytes) -> str:
    """Format 20 raw bytes as a lowercase 0x-prefixed address."""
    if len(raw) != WALLET_ADDRESS_LEN:
        raise ValueError(f"wallet address must be {WALLET_ADDRESS_LEN} bytes, got {len(raw)}")
    return "0x" + bytes(raw).hex()


def parse_cloid(text: str) -> Optional[bytes]:
    """
    Parse a 0x-prefixed client order id into its 16 raw bytes.

    Malformed input returns None, the same policy as wallet addresses.
    """
    if not isinstance(text, str):
        return None
    m = _CLOID_RE.fullmatch(text)
    if m is None:
        return None
    return bytes.fromhex(m.group(1))


def format_cloid(raw: bytes) -> str:
    """Format 16 raw bytes as a lowercase 0x-prefixed client order id."""
    if len(raw) != CLOID_LEN:
        raise ValueError(f"cloid must be {CLOID_LEN} bytes, got {len(raw)}")
    return "0x" + bytes(raw).hex()
