"""
Phone number identifiers.

``hash_phone_number`` is a plain SHA-256 placeholder. It is NOT the ODIS
oblivious-PRF protocol and gives no privacy guarantee; results will not match
identifiers registered through the real attestation service.
"""

import hashlib
import re
from typing import Any, Dict, Optional

from .errors import InvalidParameterError


def normalize_phone_number(phone_number: str) -> str:
    """Normalize to E.164; ten-digit numbers without a country code are assumed +1."""
    if not isinstance(phone_number, str):
        raise InvalidParameterError("phone_number must be a string.")
    normalized = re.sub(r"[^0-9+]", "", phone_number)
    digits = normalized.lstrip("+")
    if not re.fullmatch(r"[0-9]+", digits):
        raise InvalidParameterError(f"Invalid phone number '{phone_number}'.")
    if normalized.startswith("+"):
        return "+" + digits
    if len(digits) == 10:
        return "+1" + digits
    return "+" + digits


def hash_phone_number(phone_number: str, pepper: Optional[str] = None) -> Dict[str, Any]:
    normalized = normalize_phone_number(phone_number)
    data = f"{normalized}{pepper}" if pepper else normalized
    digest = hashlib.sha256(data.encode("utf-8")).hexdigest()
    return {
        "original": phone_number,
        "normalized": normalized,
        "hash": "0x" + digest,
        "pepper": pepper,
        "placeholder": True,
    }
