"""
Exact conversions between base units (wei) and human decimal amounts.

Everything is integer arithmetic on Python ints; floats never enter the path.
"""

import re
from typing import Any, Dict, Union

from .errors import InvalidAmountError

DEFAULT_DECIMALS = 18

UNIT_DECIMALS: Dict[str, int] = {
    "wei": 0,
    "gwei": 9,
    "celo": 18,
}

_DIGITS = re.compile(r"[0-9]+")
_HEX_AMOUNT = re.compile(r"0x[0-9a-fA-F]+")


def _parse_decimals(decimals: Any) -> int:
    if isinstance(decimals, bool) or not isinstance(decimals, int) or decimals < 0:
        raise InvalidAmountError("decimals must be a non-negative integer.")
    return decimals


def _parse_base_amount(value: Union[int, str]) -> int:
    if isinstance(value, bool):
        raise InvalidAmountError("Amount cannot be a boolean.")
    if isinstance(value, int):
        ivalue = value
    elif isinstance(value, str):
        candidate = value.strip()
        if candidate.startswith("0x"):
            if not _HEX_AMOUNT.fullmatch(candidate):
                raise InvalidAmountError(f"Invalid hex amount '{value}'.")
            ivalue = int(candidate, 16)
        elif _DIGITS.fullmatch(candidate):
            ivalue = int(candidate, 10)
        else:
            raise InvalidAmountError(f"Amount '{value}' must be a non-negative integer.")
    else:
        raise InvalidAmountError("Amount must be an int or a string.")
    if ivalue < 0:
        raise InvalidAmountError("Amount must be non-negative.")
    return ivalue


def format_units(base_amount: Union[int, str], decimals: int = DEFAULT_DECIMALS) -> str:
    """
    Render a base-unit amount as a decimal string with ``decimals`` places.

    >>> format_units("1500000000000000000")
    '1.5'
    """
    value = _parse_base_amount(base_amount)
    scale = _parse_decimals(decimals)
    if value == 0:
        return "0"

    integer_part, fractional_part = divmod(value, 10**scale)
    if fractional_part == 0:
        return str(integer_part)

    fraction = str(fractional_part).rjust(scale, "0").rstrip("0")
    return f"{integer_part}.{fraction}"


def parse_units(major_amount: Union[int, str], decimals: int = DEFAULT_DECIMALS) -> str:
    """
    Parse a human decimal amount into base units, returned as a decimal string.

    Digits beyond ``decimals`` are truncated toward zero, not rounded.
    """
    scale = _parse_decimals(decimals)
    if isinstance(major_amount, bool):
        raise InvalidAmountError("Amount cannot be a boolean.")
    if isinstance(major_amount, int):
        if major_amount < 0:
            raise InvalidAmountError("Amount must be non-negative.")
        return str(major_amount * 10**scale)
    if not isinstance(major_amount, str):
        raise InvalidAmountError("Amount must be a decimal string.")

    candidate = major_amount.strip()
    if candidate.count(".") > 1:
        raise InvalidAmountError(f"Amount '{major_amount}' has more than one decimal point.")
    whole, _, frac = candidate.partition(".")
    if not whole and not frac:
        raise InvalidAmountError("Amount must be a decimal number.")
    if (whole and not _DIGITS.fullmatch(whole)) or (frac and not _DIGITS.fullmatch(frac)):
        raise InvalidAmountError(f"Amount '{major_amount}' must be a non-negative decimal number.")

    padded = frac.ljust(scale, "0")[:scale]
    return str(int((whole or "0") + padded))


def convert_units(value: Union[int, str], from_unit: str) -> Dict[str, str]:
    """Express ``value`` (given in wei, gwei or celo) in all three units."""
    unit = (from_unit or "").strip().lower()
    if unit not in UNIT_DECIMALS:
        raise InvalidAmountError(f"Unknown unit '{from_unit}'. Expected wei|gwei|celo.")

    wei = int(parse_units(value, UNIT_DECIMALS[unit]))
    return {
        "wei": str(wei),
        "gwei": str(wei // 10 ** UNIT_DECIMALS["gwei"]),
        "celo": format_units(wei, UNIT_DECIMALS["celo"]),
    }


def calculate_percentage(part: Union[int, str], total: Union[int, str]) -> str:
    part_value = _parse_base_amount(part)
    total_value = _parse_base_amount(total)
    if total_value == 0:
        return "0"
    basis_points = part_value * 10000 // total_value
    whole, cents = divmod(basis_points, 100)
    return f"{whole}.{cents:02d}"
