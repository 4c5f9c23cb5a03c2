"""
CryptoInfo Resolver

Tracks whether a disk's key material is usable locally and resolves it on
demand:
- password: supplied by the caller, memory only
- encrypted_crypto_key / public_key: fetched from the disk if missing
- raw_crypto_key: set once the password is proven to unlock the key

Only the disk id is ever sent to the server. The password and the
unlocked key never leave the process.

A CryptoInfo is mutated in place while resolving, so one instance must not
be shared between concurrent transfers without external locking.
"""

from dataclasses import dataclass, field
from typing import Optional

from .keyring import unlocked_key_rings
from ..errors import CredentialError


@dataclass
class CryptoInfo:
    """Key material and passphrase for one disk."""
    password: str = field(default="", repr=False)
    encrypted_crypto_key: str = field(default="", repr=False)
    public_key: str = field(default="", repr=False)
    raw_crypto_key: str = field(default="", repr=False)

    def is_crypto_ready(self) -> bool:
        """Key material has been unlocked with the password at least once."""
        return bool(self.raw_crypto_key)

    def is_resolvable(self) -> bool:
        """Not ready yet, but a password is available to get ready."""
        return not self.is_crypto_ready() and bool(self.password)

    def try_get_ready(self, gateway, disk_id: str) -> None:
        """
        Make the key material usable, fetching it from the disk if needed.

        No-op when already ready. Keys already present are not re-fetched.
        On failure the object is left not ready.

        Args:
            gateway: ApiGateway used to fetch the disk keys
            disk_id: Disk owning the key material

        Raises:
            CredentialError: No password, or the disk has no key material
            CryptoError: The password does not unlock the key
            NetworkError, ServerError, ProtocolError: Fetch failed
        """
        if self.is_crypto_ready():
            return
        if not self.password:
            raise CredentialError("no password provided")

        if not self.encrypted_crypto_key or not self.public_key:
            keys = gateway.get_disk_keys(disk_id)
            self.encrypted_crypto_key = self.encrypted_crypto_key or keys.crypto_key
            self.public_key = self.public_key or keys.public_key

        if not self.encrypted_crypto_key or not self.public_key:
            raise CredentialError(f"disk {disk_id} has no key material")

        # Unlocking proves the password; the unlocked scalars are wiped on exit
        with unlocked_key_rings(self.public_key, self.encrypted_crypto_key, self.password):
            pass
        self.raw_crypto_key = self.encrypted_crypto_key

    def clear(self) -> None:
        """Drop the password and all key material."""
        self.password = ""
        self.encrypted_crypto_key = ""
        self.public_key = ""
        self.raw_crypto_key = ""

    def __enter__(self) -> 'CryptoInfo':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.clear()


def get_crypto_info(gateway, disk_id: str, password: str,
                    public_key: Optional[str] = None,
                    encrypted_crypto_key: Optional[str] = None) -> CryptoInfo:
    """
    Build a CryptoInfo for a disk and resolve it in one call.

    Args:
        gateway: ApiGateway
        disk_id: Disk id
        password: Passphrase of the disk's private key
        public_key: Optional key already known to the caller
        encrypted_crypto_key: Optional key already known to the caller

    Returns:
        A ready CryptoInfo

    Raises:
        Same as CryptoInfo.try_get_ready
    """
    info = CryptoInfo(
        password=password,
        encrypted_crypto_key=encrypted_crypto_key or "",
        public_key=public_key or "",
    )
    info.try_get_ready(gateway, disk_id)
    return info
