"""Tests for Stellar account ID encoding."""

import pytest

from payeasy_auth.core.strkey import (
    decode_public_key,
    encode_public_key,
    is_valid_public_key,
)

ZERO_ACCOUNT = "GAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAAWHF"


def test_encode_zero_key_matches_known_address() -> None:
    assert encode_public_key(b"\x00" * 32) == ZERO_ACCOUNT


def test_round_trip() -> None:
    raw = bytes(range(32))
    address = encode_public_key(raw)
    assert address.startswith("G")
    assert len(address) == 56
    assert decode_public_key(address) == raw


def test_decode_rejects_bad_checksum() -> None:
    address = encode_public_key(bytes(range(32)))
    tampered = address[:-1] + ("A" if address[-1] != "A" else "B")
    with pytest.raises(ValueError):
        decode_public_key(tampered)


def test_decode_rejects_wrong_length_and_alphabet() -> None:
    with pytest.raises(ValueError):
        decode_public_key("GABC")
    with pytest.raises(ValueError):
        decode_public_key("G" + "1" * 55)


def test_decode_rejects_secret_seed_version() -> None:
    # Same payload as the zero account but with the secret-seed version byte ("S...").
    import base64
    import binascii
    import struct

    payload = bytes([18 << 3]) + b"\x00" * 32
    seed = base64.b32encode(payload + struct.pack("<H", binascii.crc_hqx(payload, 0))).decode()
    assert seed.startswith("S")
    with pytest.raises(ValueError, match="version byte"):
        decode_public_key(seed)


def test_encode_requires_32_bytes() -> None:
    with pytest.raises(ValueError):
        encode_public_key(b"\x01" * 31)


def test_is_valid_public_key() -> None:
    assert is_valid_public_key(ZERO_ACCOUNT) is True
    assert is_valid_public_key(ZERO_ACCOUNT.lower()) is False
    assert is_valid_public_key("") is False
    assert is_valid_public_key(None) is False
    assert is_valid_public_key(ZERO_ACCOUNT[:-1] + "A") is False
