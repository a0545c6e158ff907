import pytest

from celo_adapter.errors import EncodingError, InvalidParameterError, MalformedHexError
from celo_adapter.hexcodec import (
    from_hex_quantity,
    hex_to_bytes,
    is_hex,
    is_valid_address,
    is_valid_transaction_hash,
    normalize_address,
    normalize_hash,
    pad_left,
    to_hex_quantity,
    truncate_address,
)


def test_pad_left_pads_with_zeros():
    assert pad_left("1", 4) == "0001"
    assert pad_left("abcd", 4) == "abcd"


def test_pad_left_rejects_overlong_input_instead_of_truncating():
    with pytest.raises(EncodingError):
        pad_left("12345", 4)


@pytest.mark.parametrize(
    "value, expected",
    [
        (0, "0x0"),
        (255, "0xff"),
        ("255", "0xff"),
        ("0xff", "0xff"),
        (2**256 - 1, "0x" + "f" * 64),
    ],
)
def test_to_hex_quantity(value, expected):
    assert to_hex_quantity(value) == expected


@pytest.mark.parametrize("value", [0, 1, "42", "0x2a", 10**30])
def test_to_hex_quantity_is_idempotent(value):
    once = to_hex_quantity(value)
    assert to_hex_quantity(once) == once


@pytest.mark.parametrize("value", [-1, "-5", "12a", "", True, 1.5, "0xzz", "0x", "\u0661\u0662", "\uff11\uff12"])
def test_to_hex_quantity_rejects_bad_input(value):
    with pytest.raises(MalformedHexError):
        to_hex_quantity(value)


def test_from_hex_quantity():
    assert from_hex_quantity("0x0") == 0
    assert from_hex_quantity("0xde0b6b3a7640000") == 10**18
    assert from_hex_quantity("0x" + "f" * 64) == 2**256 - 1


@pytest.mark.parametrize("value", ["0xg1", "0x", "", "hello", "ff", "0x\u0661"])
def test_from_hex_quantity_rejects_non_hex(value):
    with pytest.raises(MalformedHexError):
        from_hex_quantity(value)


def test_hex_to_bytes():
    assert hex_to_bytes("0xabcd") == b"\xab\xcd"
    assert hex_to_bytes("0x") == b""


@pytest.mark.parametrize("value", ["0xnope", "0xabc"])
def test_hex_to_bytes_rejects_bad_and_odd_length_input(value):
    with pytest.raises(MalformedHexError):
        hex_to_bytes(value)


def test_is_hex():
    assert is_hex("0x")
    assert is_hex("0xABCdef")
    assert not is_hex("abc")
    assert not is_hex(12)


def test_address_validation_and_normalization():
    mixed = "0x765DE816845861e75A25fCA122bb6898B8B1282a"
    assert is_valid_address(mixed)
    assert not is_valid_address("0x1234")
    assert normalize_address(mixed) == mixed.lower()
    assert normalize_address(mixed[2:]) == mixed.lower()
    with pytest.raises(InvalidParameterError):
        normalize_address("0x123")


def test_hash_validation_and_normalization():
    tx_hash = "0x" + "AB" * 32
    assert is_valid_transaction_hash(tx_hash)
    assert not is_valid_transaction_hash("0x" + "ab" * 31)
    assert normalize_hash(tx_hash) == tx_hash.lower()
    with pytest.raises(InvalidParameterError):
        normalize_hash("0x1234", "tx_hash")


def test_truncate_address():
    assert truncate_address("0x765DE816845861e75A25fCA122bb6898B8B1282a") == "0x765d...282a"
