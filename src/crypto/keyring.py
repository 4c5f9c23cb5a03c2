"""
Key Ring Builder

Turns armored OpenPGP key material into usable key rings:
- Public key ring: encrypts content for a disk (never needs a passphrase)
- Private key ring: decrypts content, only while unlocked

The private key stays passphrase-protected in memory. unlocked_key_rings()
unlocks it for the duration of a with-block and clears the decrypted
secret parameters on every exit path, including exceptions raised inside
the block.

Example:
    >>> with unlocked_key_rings(public_armored, private_armored, passphrase) as (pub, priv):
    ...     plaintext = priv.decrypt(ciphertext)
"""

from contextlib import ExitStack, contextmanager
from typing import Iterator, Tuple, Union

import pgpy
from pgpy.errors import PGPDecryptionError, PGPEncryptionError, PGPError

from ..errors import CryptoError


# Exceptions pgpy raises for unparseable blobs
_PARSE_ERRORS = (PGPError, ValueError, TypeError)
_CRYPT_ERRORS = (PGPError, PGPDecryptionError, PGPEncryptionError, ValueError, TypeError)


def load_public_key(armored: str) -> pgpy.PGPKey:
    """
    Parse an armored public key.

    A private key is accepted and reduced to its public half.

    Raises:
        CryptoError: If the key cannot be parsed
    """
    if not armored or not armored.strip():
        raise CryptoError("malformed public key")
    try:
        key, _ = pgpy.PGPKey.from_blob(armored)
    except _PARSE_ERRORS as exc:
        raise CryptoError("malformed public key") from exc
    if not key.is_public:
        key = key.pubkey
    return key


def load_private_key(armored: str) -> pgpy.PGPKey:
    """
    Parse an armored, usually passphrase-protected, private key.

    Raises:
        CryptoError: If the blob is malformed or holds only a public key
    """
    if not armored or not armored.strip():
        raise CryptoError("failed to decrypt private key")
    try:
        key, _ = pgpy.PGPKey.from_blob(armored)
    except _PARSE_ERRORS as exc:
        raise CryptoError("failed to decrypt private key") from exc
    if key.is_public:
        raise CryptoError("failed to decrypt private key")
    return key


def _message_bytes(payload: Union[str, bytes, bytearray]) -> bytes:
    # Literal packets in text mode come back as str
    if isinstance(payload, str):
        return payload.encode("utf-8")
    return bytes(payload)


class PublicKeyRing:
    """Encrypts content for the holder of the matching private key."""

    def __init__(self, key: pgpy.PGPKey):
        self._key = key

    @property
    def fingerprint(self) -> str:
        return str(self._key.fingerprint)

    def encrypt(self, data: bytes) -> bytes:
        """
        Encrypt bytes into a binary OpenPGP message.

        Raises:
            CryptoError: If the key cannot encrypt
        """
        try:
            message = pgpy.PGPMessage.new(bytes(data))
            encrypted = self._key.encrypt(message)
        except _CRYPT_ERRORS as exc:
            raise CryptoError("failed to encrypt content") from exc
        return bytes(encrypted)


class PrivateKeyRing:
    """
    Decrypts OpenPGP messages with an unlocked private key.

    Instances are only handed out by unlocked_key_rings() and stop working
    once that block exits.
    """

    def __init__(self, key: pgpy.PGPKey):
        self._key = key

    @property
    def fingerprint(self) -> str:
        return str(self._key.fingerprint)

    def decrypt(self, data: bytes) -> bytes:
        """
        Decrypt a binary or armored OpenPGP message.

        The message comes from the server and is treated as untrusted:
        pgpy reports damaged packets with arbitrary exception types
        (NotImplementedError for unknown tags, IndexError for truncated
        headers), so every parse or decrypt failure becomes a CryptoError.

        Raises:
            CryptoError: If the message is malformed, not encrypted, or not
                encrypted for this key
        """
        try:
            message = pgpy.PGPMessage.from_blob(bytes(data))
            is_encrypted = message.is_encrypted
        except Exception as exc:
            raise CryptoError("malformed encrypted message") from exc
        if not is_encrypted:
            raise CryptoError("message is not encrypted")

        try:
            plaintext = self._key.decrypt(message).message
        except Exception as exc:
            raise CryptoError("failed to decrypt message") from exc
        return _message_bytes(plaintext)


def build_public_key_ring(public_armored: str) -> PublicKeyRing:
    """Public key ring for encryption only."""
    return PublicKeyRing(load_public_key(public_armored))


@contextmanager
def unlocked_key_rings(public_armored: str, private_armored: str,
                       passphrase: str) -> Iterator[Tuple[PublicKeyRing, PrivateKeyRing]]:
    """
    Build both key rings and keep the private one unlocked for the block.

    Args:
        public_armored: Armored public key; when empty, the public half of
            the private key is used
        private_armored: Armored private key, passphrase-protected
        passphrase: Passphrase of the private key

    Yields:
        (PublicKeyRing, PrivateKeyRing)

    Raises:
        CryptoError: "malformed public key" or "failed to decrypt private key"
    """
    if public_armored:
        public_ring = build_public_key_ring(public_armored)
        private_key = load_private_key(private_armored)
    else:
        private_key = load_private_key(private_armored)
        public_ring = PublicKeyRing(private_key.pubkey)

    with ExitStack() as scope:
        if private_key.is_protected:
            try:
                # pgpy wipes the decrypted key material when its unlock scope closes
                scope.enter_context(private_key.unlock(passphrase))
            except _CRYPT_ERRORS as exc:
                raise CryptoError("failed to decrypt private key") from exc
        yield public_ring, PrivateKeyRing(private_key)
