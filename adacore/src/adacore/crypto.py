"""
Hashing and ed25519 primitives for Cardano.
"""

from __future__ import annotations

import hashlib

import libnacl

from adacore.constants import ED25519_SIGNATURE_SIZE, ED25519_VKEY_SIZE


class CryptoError(ValueError):
    pass


def blake2b_256(data: bytes) -> bytes:
    """Hash used for transaction ids and auxiliary data hashes."""
    return hashlib.blake2b(data, digest_size=32).digest()


def blake2b_224(data: bytes) -> bytes:
    """Hash used for key hashes (payment and stake credentials)."""
    return hashlib.blake2b(data, digest_size=28).digest()


def keypair_from_seed(seed: bytes) -> tuple[bytes, bytes]:
    """
    Derive an ed25519 keypair from a 32-byte seed.

    Returns:
        (verification_key, signing_key) - 32 and 64 bytes respectively
    """
    if len(seed) != 32:
        raise CryptoError("Seed must be 32 bytes")
    vkey, skey = libnacl.crypto_sign_seed_keypair(seed)
    return vkey, skey


def sign_message(message: bytes, signing_key: bytes) -> bytes:
    """Produce a detached ed25519 signature."""
    return libnacl.crypto_sign_detached(message, signing_key)


def verify_signature(vkey: bytes, signature: bytes, message: bytes) -> bool:
    """Verify a detached ed25519 signature. Returns False instead of raising."""
    if len(vkey) != ED25519_VKEY_SIZE or len(signature) != ED25519_SIGNATURE_SIZE:
        return False
    try:
        libnacl.crypto_sign_verify_detached(signature, message, vkey)
    except ValueError:
        return False
    return True
