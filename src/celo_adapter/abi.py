"""
Minimal Solidity ABI codec for the primitive types used by the Celo operations.

Calldata is ``0x`` + 4-byte selector + 32-byte words. Static parameters occupy one
head word each; ``string`` and ``bytes`` put an offset in the head and append a
length-prefixed, word-padded payload to the tail.
"""

import re
from typing import Any, Dict, List, Sequence, Tuple

from Crypto.Hash import keccak

from .errors import EncodingError, MalformedHexError, UnsupportedTypeError
from .hexcodec import ADDRESS_PATTERN, hex_to_bytes, strip_0x

WORD_SIZE = 32
UINT256_MAX = 2**256 - 1

STATIC_TYPES = {"address", "uint256", "bool", "bytes32"}
DYNAMIC_TYPES = {"string", "bytes"}
SUPPORTED_TYPES = STATIC_TYPES | DYNAMIC_TYPES

# name -> input types, for the ERC-20 calls issued by the token operations
KNOWN_FUNCTIONS: Dict[str, List[str]] = {
    "balanceOf": ["address"],
    "transfer": ["address", "uint256"],
    "approve": ["address", "uint256"],
    "allowance": ["address", "address"],
    "totalSupply": [],
    "decimals": [],
    "name": [],
    "symbol": [],
}

_NAME_RE = re.compile(r"[A-Za-z_][A-Za-z0-9_]*")


def keccak256(data: bytes) -> bytes:
    hasher = keccak.new(digest_bits=256)
    hasher.update(data)
    return hasher.digest()


def canonical_type(typ: str) -> str:
    candidate = (typ or "").strip()
    if candidate == "uint":
        return "uint256"
    if candidate == "int":
        return "int256"
    return candidate


def parse_function_signature(signature: str) -> Tuple[str, List[str]]:
    text = (signature or "").strip()
    if "(" not in text or not text.endswith(")"):
        raise EncodingError("function must be in the form name(type1,type2,...)")
    name, rest = text.split("(", 1)
    fn = name.strip()
    if not _NAME_RE.fullmatch(fn):
        raise EncodingError(f"Invalid function name '{fn}'.")
    params = rest[:-1]
    types = [canonical_type(t) for t in params.split(",")] if params.strip() else []
    if any(not t or " " in t for t in types):
        raise EncodingError(f"Invalid parameter list in signature '{signature}'.")
    return fn, types


def function_signature(name: str, types: Sequence[str]) -> str:
    return f"{name}({','.join(canonical_type(t) for t in types)})"


def function_selector(signature: str) -> str:
    """First 4 bytes of keccak256 of the canonical signature, 0x-prefixed."""
    fn, types = parse_function_signature(signature)
    canonical = function_signature(fn, types)
    return "0x" + keccak256(canonical.encode()).hex()[:8]


def event_topic(signature: str) -> str:
    canonical = re.sub(r"\s+", "", signature or "")
    if not canonical:
        raise EncodingError("Event signature must be a non-empty string.")
    return "0x" + keccak256(canonical.encode()).hex()


def _pad32(b: bytes) -> bytes:
    if len(b) > WORD_SIZE:
        raise EncodingError("Encoded value exceeds 32 bytes.")
    return b.rjust(WORD_SIZE, b"\x00")


def _to_uint(value: Any) -> int:
    if isinstance(value, bool):
        raise EncodingError("uint256 value cannot be a boolean.")
    if isinstance(value, int):
        ivalue = value
    elif isinstance(value, str):
        candidate = value.strip()
        try:
            if re.fullmatch(r"0x[0-9a-fA-F]+", candidate):
                ivalue = int(candidate, 16)
            elif re.fullmatch(r"-?[0-9]+", candidate):
                ivalue = int(candidate, 10)
            else:
                raise ValueError(candidate)
        except ValueError as exc:
            raise EncodingError(f"uint256 value '{value}' is not an integer.") from exc
    else:
        raise EncodingError("uint256 value must be an integer or numeric string.")
    if ivalue < 0 or ivalue > UINT256_MAX:
        raise EncodingError("uint256 value out of range.")
    return ivalue


def _to_bool(value: Any) -> int:
    if isinstance(value, bool):
        return 1 if value else 0
    if isinstance(value, int) and value in (0, 1):
        return value
    if isinstance(value, str) and value.strip().lower() in {"true", "false"}:
        return 1 if value.strip().lower() == "true" else 0
    raise EncodingError("bool value must be true/false or 0/1.")


def _to_bytes(value: Any, field: str) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    if isinstance(value, str):
        try:
            return hex_to_bytes(value)
        except MalformedHexError as exc:
            raise EncodingError(f"{field} must be an even-length hex string or bytes.") from exc
    raise EncodingError(f"{field} must be a hex string or bytes.")


def _encode_dynamic_bytes(data: bytes) -> bytes:
    length_word = len(data).to_bytes(WORD_SIZE, "big")
    padded = data + b"\x00" * ((WORD_SIZE - (len(data) % WORD_SIZE)) % WORD_SIZE)
    return length_word + padded


def encode_value(typ: str, value: Any) -> Tuple[bytes, bool]:
    """Encode one value. Returns the encoding and whether it belongs in the tail."""
    base_type = canonical_type(typ)
    if base_type not in SUPPORTED_TYPES:
        raise UnsupportedTypeError(f"Unsupported ABI type '{typ}'.")

    if base_type == "address":
        if not isinstance(value, str):
            raise EncodingError("address value must be a string.")
        candidate = value.strip()
        if not candidate.startswith("0x"):
            candidate = f"0x{candidate}"
        if not ADDRESS_PATTERN.match(candidate):
            raise EncodingError(f"Invalid address value '{value}'.")
        return _pad32(bytes.fromhex(candidate[2:].lower())), False

    if base_type == "uint256":
        return _to_uint(value).to_bytes(WORD_SIZE, "big"), False

    if base_type == "bool":
        return _to_bool(value).to_bytes(WORD_SIZE, "big"), False

    if base_type == "bytes32":
        data = _to_bytes(value, "bytes32")
        if len(data) > WORD_SIZE:
            raise EncodingError("bytes32 value exceeds 32 bytes.")
        return data.ljust(WORD_SIZE, b"\x00"), False

    if base_type == "bytes":
        return _encode_dynamic_bytes(_to_bytes(value, "bytes")), True

    if not isinstance(value, str):
        raise EncodingError("string value must be a string.")
    return _encode_dynamic_bytes(value.encode("utf-8")), True


def encode_parameters(types: Sequence[str], values: Sequence[Any]) -> str:
    """Encode the argument block as bare hex digits (no 0x, no selector)."""
    if len(types) != len(values):
        raise EncodingError(f"Argument count mismatch: expected {len(types)}, got {len(values)}.")

    head_parts: List[bytes] = []
    tail_parts: List[bytes] = []
    dynamic_offset = WORD_SIZE * len(types)

    for typ, value in zip(types, values):
        enc, dynamic = encode_value(typ, value)
        if dynamic:
            head_parts.append(dynamic_offset.to_bytes(WORD_SIZE, "big"))
            tail_parts.append(enc)
            dynamic_offset += len(enc)
        else:
            head_parts.append(enc)

    return b"".join(head_parts + tail_parts).hex()


def encode_function_call(name: str, types: Sequence[str], values: Sequence[Any]) -> str:
    selector = function_selector(function_signature(name, types))
    return selector + encode_parameters(types, values)


def encode_function_data(function_name: str, params: Sequence[Any]) -> str:
    """Calldata for one of the ERC-20 functions in KNOWN_FUNCTIONS."""
    types = KNOWN_FUNCTIONS.get(function_name)
    if types is None:
        raise UnsupportedTypeError(
            f"Unknown function '{function_name}'. Known: {', '.join(sorted(KNOWN_FUNCTIONS))}."
        )
    return encode_function_call(function_name, types, list(params))


def _result_body(hex_result: str) -> str:
    if not isinstance(hex_result, str):
        raise MalformedHexError("Result must be a hex string.")
    body = strip_0x(hex_result.strip())
    if not re.fullmatch(r"[0-9a-fA-F]*", body):
        raise MalformedHexError("Result must be a hex string.")
    return body


def _read_word(body: str, offset: int) -> str:
    start = offset * 2
    end = start + WORD_SIZE * 2
    if offset < 0 or end > len(body):
        raise MalformedHexError("Result shorter than expected for ABI decoding.")
    return body[start:end]


def decode_value(hex_result: str, abi_type: str, offset: int = 0) -> Any:
    """Decode the static value stored in the word at byte ``offset``."""
    base_type = canonical_type(abi_type)
    if base_type in DYNAMIC_TYPES:
        raise UnsupportedTypeError(f"Decoding '{abi_type}' by word is not supported; use decode_string.")
    if base_type not in STATIC_TYPES:
        raise UnsupportedTypeError(f"Unsupported ABI type '{abi_type}'.")

    word = _read_word(_result_body(hex_result), offset)
    if base_type == "address":
        return "0x" + word[-40:].lower()
    if base_type == "uint256":
        return str(int(word, 16))
    if base_type == "bool":
        return int(word, 16) & 1 == 1
    return "0x" + word


def decode_result(hex_result: str, types: Sequence[str]) -> List[Any]:
    return [decode_value(hex_result, typ, idx * WORD_SIZE) for idx, typ in enumerate(types)]


def decode_uint256(hex_result: str) -> str:
    return decode_value(hex_result, "uint256")


def decode_address(hex_result: str) -> str:
    return decode_value(hex_result, "address")


def decode_bool(hex_result: str) -> bool:
    return decode_value(hex_result, "bool")


def decode_string(hex_result: str) -> str:
    """
    Decode an ABI ``string`` return value. Results shorter than offset + length
    (e.g. tokens that return ``bytes32`` names) are read as NUL-padded UTF-8.
    """
    body = _result_body(hex_result)
    if len(body) >= WORD_SIZE * 4:
        offset = int(_read_word(body, 0), 16)
        length = int(_read_word(body, offset), 16)
        start = (offset + WORD_SIZE) * 2
        end = start + length * 2
        if end > len(body):
            raise MalformedHexError("String payload shorter than its declared length.")
        return bytes.fromhex(body[start:end]).decode("utf-8", errors="replace")
    if len(body) % 2 != 0:
        raise MalformedHexError("Result must contain whole bytes.")
    return bytes.fromhex(body).decode("utf-8", errors="replace").replace("\x00", "")


def address_word(address: str) -> str:
    """32-byte left-padded hex word for an address, as used by indexed topics."""
    enc, _ = encode_value("address", address)
    return "0x" + enc.hex()
