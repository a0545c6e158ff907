"""
Hex string helpers shared by the ABI codec, the transport and the operation layer.
"""

import re
from typing import Any, Union

from .errors import EncodingError, InvalidParameterError, MalformedHexError

ADDRESS_PATTERN = re.compile(r"^0x[a-fA-F0-9]{40}$")
HASH_PATTERN = re.compile(r"^0x[a-fA-F0-9]{64}$")
_HEX_BODY = re.compile(r"[0-9a-fA-F]*")
_DECIMAL = re.compile(r"[0-9]+")


def strip_0x(value: str) -> str:
    if value.startswith(("0x", "0X")):
        return value[2:]
    return value


def is_hex(value: Any) -> bool:
    return isinstance(value, str) and re.fullmatch(r"0x[a-fA-F0-9]*", value) is not None


def pad_left(hex_digits: str, length: int) -> str:
    """Left-pad ``hex_digits`` with zeros to ``length`` characters."""
    if len(hex_digits) > length:
        raise EncodingError(f"Hex value of {len(hex_digits)} digits does not fit in {length} digits.")
    return hex_digits.rjust(length, "0")


def to_hex_quantity(value: Union[int, str]) -> str:
    """
    Convert an integer, a decimal string or a 0x string to a minimal 0x quantity.
    0x-prefixed input is returned unchanged.
    """
    if isinstance(value, bool):
        raise MalformedHexError("Quantity cannot be a boolean.")
    if isinstance(value, int):
        if value < 0:
            raise MalformedHexError("Quantity must be non-negative.")
        return hex(value)
    if not isinstance(value, str):
        raise MalformedHexError("Quantity must be an int or a string.")

    candidate = value.strip()
    if candidate.startswith("0x"):
        if not _HEX_BODY.fullmatch(candidate[2:]) or len(candidate) == 2:
            raise MalformedHexError(f"Invalid hex quantity '{value}'.")
        return candidate
    if not _DECIMAL.fullmatch(candidate):
        raise MalformedHexError(f"Quantity '{value}' must be a decimal integer or 0x-prefixed hex.")
    return hex(int(candidate, 10))


def from_hex_quantity(value: str) -> int:
    """Parse a 0x-prefixed hex quantity; unprefixed input is rejected."""
    if not isinstance(value, str):
        raise MalformedHexError("Hex quantity must be a string.")
    candidate = value.strip()
    body = candidate[2:]
    if not candidate.startswith("0x") or not body or not _HEX_BODY.fullmatch(body):
        raise MalformedHexError(f"Invalid hex quantity '{value}'.")
    return int(body, 16)


def hex_to_bytes(value: str) -> bytes:
    if not isinstance(value, str):
        raise MalformedHexError("Value must be a hex string.")
    body = strip_0x(value.strip())
    if not _HEX_BODY.fullmatch(body):
        raise MalformedHexError("Value must be a hex string.")
    if len(body) % 2 != 0:
        raise MalformedHexError(f"Hex value '{value}' has an odd number of digits.")
    return bytes.fromhex(body)


def is_valid_address(address: Any) -> bool:
    return isinstance(address, str) and ADDRESS_PATTERN.match(address) is not None


def is_valid_transaction_hash(tx_hash: Any) -> bool:
    return isinstance(tx_hash, str) and HASH_PATTERN.match(tx_hash) is not None


def normalize_address(address: Any, field: str = "address") -> str:
    if not isinstance(address, str):
        raise InvalidParameterError(f"{field} must be a string.")

    candidate = address.strip()
    if not candidate.startswith("0x"):
        candidate = f"0x{candidate}"
    if not ADDRESS_PATTERN.match(candidate):
        raise InvalidParameterError(f"Invalid {field} format. Expected 0x-prefixed 40 hex characters.")
    return candidate.lower()


def normalize_hash(value: Any, field: str = "hash") -> str:
    if not isinstance(value, str):
        raise InvalidParameterError(f"{field} must be a string.")
    candidate = value.strip().lower()
    if not candidate.startswith("0x"):
        candidate = f"0x{candidate}"
    if not HASH_PATTERN.match(candidate):
        raise InvalidParameterError(f"{field} must be 0x-prefixed 64 hex characters.")
    return candidate


def truncate_address(address: str, chars: int = 4) -> str:
    normalized = normalize_address(address)
    return f"{normalized[:chars + 2]}...{normalized[-chars:]}"
