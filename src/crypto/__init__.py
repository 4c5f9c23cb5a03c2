# Crypto Module
"""
Client-side OpenPGP handling for encrypted disks:
- Key ring builder with scoped private key unlock - keyring.py
- CryptoInfo resolver for per-disk key material - crypto_info.py

Security features:
- Private key only unlocked inside a with-block, wiped on exit
- Encryption uses the public key alone
- Passphrase and unlocked key never sent to the server
"""

from .keyring import (
    PublicKeyRing,
    PrivateKeyRing,
    load_public_key,
    load_private_key,
    build_public_key_ring,
    unlocked_key_rings,
)

from .crypto_info import (
    CryptoInfo,
    get_crypto_info,
)

__all__ = [
    # Key rings
    'PublicKeyRing',
    'PrivateKeyRing',
    'load_public_key',
    'load_private_key',
    'build_public_key_ring',
    'unlocked_key_rings',
    # Resolver
    'CryptoInfo',
    'get_crypto_info',
]
