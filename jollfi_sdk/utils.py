"""
Utility functions for the Jollfi SDK.
"""
import base64
import hashlib
from typing import Any, Union

import base58

U64_MAX = 2**64 - 1
DIGEST_LENGTH = 32


def is_u64(value: Any) -> bool:
    """Return True if value is an int (not bool) within the u64 range."""
    return isinstance(value, int) and not isinstance(value, bool) and 0 <= value <= U64_MAX


def to_u64_string(value: int) -> str:
    """
    Render an unsigned 64-bit integer as the decimal string Move calls expect.

    Raises:
        ValueError: If value is not an integer in [0, 2**64 - 1]
    """
    if not is_u64(value):
        raise ValueError(f"value must be an integer between 0 and {U64_MAX}, got {value!r}")
    return str(value)


def parse_u64(value: Union[str, int]) -> int:
    """
    Parse a decimal string (or int) returned by the node into an int.

    Raises:
        ValueError: If the value is not a valid u64
    """
    if isinstance(value, bool):
        raise ValueError(f"invalid u64 value: {value!r}")
    if isinstance(value, str):
        value = value.strip()
        if not value.isdigit():
            raise ValueError(f"invalid u64 value: {value!r}")
        value = int(value)
    if not is_u64(value):
        raise ValueError(f"invalid u64 value: {value!r}")
    return value


def is_valid_digest(digest: Any) -> bool:
    """
    Check that a transaction digest is a base58 encoding of 32 bytes.
    """
    if not isinstance(digest, str) or not digest:
        return False
    try:
        return len(base58.b58decode(digest)) == DIGEST_LENGTH
    except ValueError:
        return False


def digest_for(tx_bytes: bytes) -> str:
    """Derive a deterministic base58 digest for transaction bytes."""
    return base58.b58encode(hashlib.blake2b(tx_bytes, digest_size=DIGEST_LENGTH).digest()).decode("ascii")


def b64encode(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def redact(value: Any, keep: int = 6) -> str:
    """
    Shorten an identifier for logging.

    Args:
        value: Value to redact
        keep: Number of leading characters to keep

    Returns:
        The first ``keep`` characters followed by an ellipsis, or the value
        itself if it is already short.
    """
    text = str(value)
    if len(text) <= keep * 2:
        return text
    return f"{text[:keep]}...{text[-4:]}"
