import pytest

from celo_adapter.errors import InvalidAmountError
from celo_adapter.units import calculate_percentage, convert_units, format_units, parse_units


@pytest.mark.parametrize(
    "base, decimals, expected",
    [
        ("0", 18, "0"),
        ("1000000000000000000", 18, "1"),
        ("1500000000000000000", 18, "1.5"),
        ("1", 18, "0.000000000000000001"),
        (123456789, 6, "123.456789"),
        ("0x0de0b6b3a7640000", 18, "1"),
        ("12345", 0, "12345"),
    ],
)
def test_format_units(base, decimals, expected):
    assert format_units(base, decimals) == expected


def test_format_units_beyond_float_precision():
    value = 2**200 + 1
    formatted = format_units(value, 18)
    whole, frac = formatted.split(".")
    assert int(whole) == value // 10**18
    assert frac.rstrip("0") == str(value % 10**18).rjust(18, "0").rstrip("0")


@pytest.mark.parametrize(
    "amount, decimals, expected",
    [
        ("0.1", 18, "100000000000000000"),
        ("1", 18, "1000000000000000000"),
        ("1.5", 6, "1500000"),
        (".5", 2, "50"),
        ("7.", 2, "700"),
        ("0", 18, "0"),
        (3, 2, "300"),
    ],
)
def test_parse_units(amount, decimals, expected):
    assert parse_units(amount, decimals) == expected


def test_parse_units_truncates_toward_zero():
    assert parse_units("1.999", 2) == "199"
    assert parse_units("0.0000001", 6) == "0"


@pytest.mark.parametrize("amount", ["1.2.3", "abc", "-1", "1e18", "", ".", " 1 . 2", "\u0661\u0662", "1.\u0665"])
def test_parse_units_rejects_malformed_amounts(amount):
    with pytest.raises(InvalidAmountError):
        parse_units(amount)


@pytest.mark.parametrize("value", [0, 1, 10**18, 1234567890123456789, 10**40 + 7])
def test_format_then_parse_is_identity(value):
    assert parse_units(format_units(value, 18), 18) == str(value)


def test_format_units_rejects_negative_and_bad_decimals():
    with pytest.raises(InvalidAmountError):
        format_units(-1)
    with pytest.raises(InvalidAmountError):
        format_units("12", -1)
    with pytest.raises(InvalidAmountError):
        format_units("1.5")


def test_convert_units_from_celo():
    assert convert_units("1", "celo") == {
        "wei": "1000000000000000000",
        "gwei": "1000000000",
        "celo": "1",
    }


def test_convert_units_from_gwei_and_wei():
    assert convert_units("2.5", "gwei") == {"wei": "2500000000", "gwei": "2", "celo": "0.0000000025"}
    assert convert_units(1, "WEI") == {"wei": "1", "gwei": "0", "celo": "0.000000000000000001"}


def test_convert_units_rejects_unknown_unit():
    with pytest.raises(InvalidAmountError):
        convert_units("1", "ether")


def test_calculate_percentage():
    assert calculate_percentage("1", "3") == "33.33"
    assert calculate_percentage("5", "5") == "100.00"
    assert calculate_percentage("5", "0") == "0"


@pytest.mark.parametrize("base", ["١٢", "0x1_0", "0x١"])
def test_format_units_rejects_non_ascii_and_underscored_amounts(base):
    with pytest.raises(InvalidAmountError):
        format_units(base)
