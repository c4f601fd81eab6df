"""Stellar account ID (strkey) encoding for Ed25519 public keys.

Account IDs are the base32 encoding of a version byte, the 32-byte public key
and a little-endian CRC16-XModem checksum of the first two parts, which yields
the familiar 56-character ``G...`` addresses.
"""

from __future__ import annotations

import base64
import binascii
import re
import struct

ACCOUNT_ID_VERSION_BYTE = 6 << 3
PUBKEY_LENGTH_BYTES = 32
ACCOUNT_ID_LENGTH = 56
_DECODED_LENGTH = 1 + PUBKEY_LENGTH_BYTES + 2

ACCOUNT_ID_PATTERN = re.compile(r"^G[A-Z2-7]{55}$")


def _checksum(payload: bytes) -> bytes:
    return struct.pack("<H", binascii.crc_hqx(payload, 0))


def encode_public_key(pubkey_bytes: bytes) -> str:
    """Encode a raw Ed25519 public key as a Stellar account ID."""
    if len(pubkey_bytes) != PUBKEY_LENGTH_BYTES:
        raise ValueError("Ed25519 public keys must be 32 bytes")
    payload = bytes([ACCOUNT_ID_VERSION_BYTE]) + pubkey_bytes
    return base64.b32encode(payload + _checksum(payload)).decode("ascii")


def decode_public_key(account_id: str) -> bytes:
    """Decode a Stellar account ID into the raw 32-byte Ed25519 public key.

    Raises:
        ValueError: If the address is not a well-formed account ID.
    """
    if not isinstance(account_id, str) or len(account_id) != ACCOUNT_ID_LENGTH:
        raise ValueError("Stellar account IDs must be 56 characters long")
    try:
        decoded = base64.b32decode(account_id, casefold=False)
    except binascii.Error as err:
        raise ValueError(f"Invalid base32 encoding: {err}") from err

    if len(decoded) != _DECODED_LENGTH:
        raise ValueError("Invalid account ID length")
    if decoded[0] != ACCOUNT_ID_VERSION_BYTE:
        raise ValueError("Invalid version byte for an account ID")

    payload, checksum = decoded[:-2], decoded[-2:]
    if _checksum(payload) != checksum:
        raise ValueError("Invalid account ID checksum")
    return payload[1:]


def is_valid_public_key(account_id: object) -> bool:
    """Return True if ``account_id`` is a well-formed Stellar account ID."""
    if not isinstance(account_id, str) or not ACCOUNT_ID_PATTERN.match(account_id):
        return False
    try:
        decode_public_key(account_id)
    except ValueError:
        return False
    return True
