"""Signature utilities built on Ed25519 primitives."""
from __future__ import annotations

import base64
import binascii

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import Ed25519PublicKey

from payeasy_auth.core.strkey import decode_public_key

SIGNATURE_LENGTH_BYTES = 64


def verify_signature(public_key: str, signature: str, message: str) -> bool:
    """Verify a wallet signature over a challenge message.

    Args:
        public_key: Stellar account ID (``G...``) of the claimed signer.
        signature: Base64-encoded 64-byte Ed25519 signature.
        message: Exact text that was signed on the client (UTF-8 encoded before verifying).

    Returns:
        True if the signature is valid for `message` under `public_key`; False otherwise,
        including for empty or malformed inputs.
    """
    if not public_key or not signature or not message:
        return False
    if not all(isinstance(value, str) for value in (public_key, signature, message)):
        return False
    try:
        pubkey_bytes = decode_public_key(public_key)
        signature_bytes = base64.b64decode(signature, validate=True)
        if len(signature_bytes) != SIGNATURE_LENGTH_BYTES:
            return False
        verify_key = Ed25519PublicKey.from_public_bytes(pubkey_bytes)
        verify_key.verify(signature_bytes, message.encode("utf-8"))
        return True
    except (InvalidSignature, ValueError, binascii.Error, UnicodeEncodeError):
        return False
