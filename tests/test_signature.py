from typing import Any

import pytest

from siwe_gate.core.security import addresses_match, decode_signature, recover_address
from tests.conftest import sign_text


def test_recover_address_round_trip(wallet: Any) -> None:
    """Recovery returns the lowercased signer with or without the 0x prefix."""
    signature = sign_text(wallet, "hello")
    assert recover_address("hello", signature) == wallet.address.lower()
    assert recover_address("hello", signature[2:]) == wallet.address.lower()


def test_recover_address_differs_for_other_text(wallet: Any) -> None:
    signature = sign_text(wallet, "hello")
    assert recover_address("hello!", signature) != wallet.address.lower()


@pytest.mark.parametrize("value", ["zz", "0x" + "aa" * 10])
def test_recover_address_rejects_bad_encoding(value: str) -> None:
    with pytest.raises(ValueError):
        recover_address("msg", value)


@pytest.mark.parametrize(
    "value",
    [
        "0x" + "00" * 65,
        "0x" + "ff" * 65,
        "0x" + "11" * 64 + "05",
    ],
)
def test_recover_address_reports_unrecoverable_signatures_as_value_error(value: str) -> None:
    with pytest.raises(ValueError):
        recover_address("msg", value)


@pytest.mark.parametrize("value", ["", "0x", "nothex", "0x" + "11" * 64, "0x" + "11" * 66])
def test_decode_signature_rejects(value: str) -> None:
    with pytest.raises(ValueError):
        decode_signature(value)


def test_decode_signature_accepts_upper_prefix() -> None:
    assert decode_signature("0X" + "ab" * 65) == bytes.fromhex("ab" * 65)


def test_addresses_match_is_case_insensitive() -> None:
    assert addresses_match("0xABCdef", "0xabcDEF")
    assert not addresses_match("0xabc", "0xabd")
