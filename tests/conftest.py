"""
Shared fixtures: an OpenPGP disk key pair and an in-memory API gateway.
"""

from contextlib import contextmanager
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import pgpy
import pytest
from pgpy.constants import (
    CompressionAlgorithm, HashAlgorithm, KeyFlags,
    PubKeyAlgorithm, SymmetricKeyAlgorithm,
)

from src.api.config import ClientConfig
from src.api.models import Disk, DiskKeys, FileInfo, FileLookup, FilesPage, UploadTarget
from src.errors import NetworkError, NotFoundError


PASSPHRASE = "correct horse battery staple"


@dataclass
class DiskKeyPair:
    """Armored key material for a test disk."""
    public_key: str
    private_key: str  # protected with PASSPHRASE
    passphrase: str = PASSPHRASE


def generate_key_pair(passphrase: str = PASSPHRASE) -> DiskKeyPair:
    key = pgpy.PGPKey.new(PubKeyAlgorithm.RSAEncryptOrSign, 2048)
    uid = pgpy.PGPUID.new("Test Disk", email="disk@example.com")
    key.add_uid(
        uid,
        usage={KeyFlags.Sign, KeyFlags.EncryptCommunications, KeyFlags.EncryptStorage},
        hashes=[HashAlgorithm.SHA256],
        ciphers=[SymmetricKeyAlgorithm.AES256],
        compression=[CompressionAlgorithm.ZLIB, CompressionAlgorithm.Uncompressed],
    )
    key.protect(passphrase, SymmetricKeyAlgorithm.AES256, HashAlgorithm.SHA256)
    return DiskKeyPair(public_key=str(key.pubkey), private_key=str(key), passphrase=passphrase)


@pytest.fixture(scope="session")
def key_pair() -> DiskKeyPair:
    return generate_key_pair()


@pytest.fixture(scope="session")
def other_key_pair() -> DiskKeyPair:
    return generate_key_pair("another passphrase")


def encrypt_for(public_key: str, data: bytes) -> bytes:
    """Encrypt like the server-side stored blobs are."""
    key, _ = pgpy.PGPKey.from_blob(public_key)
    return bytes(key.encrypt(pgpy.PGPMessage.new(data)))


class FakeGateway:
    """
    In-memory stand-in for ApiGateway.

    Records every call as (method, argument) in self.calls.
    """

    def __init__(self, config: Optional[ClientConfig] = None):
        self.config = config or ClientConfig(token="test-token", default_disk="disk-1")
        self.alive = True
        self.rpc_results: Dict[str, Dict[str, Any]] = {}
        self.files: Dict[str, FileInfo] = {}
        self.contents: Dict[str, bytes] = {}
        self.disks: Dict[str, Disk] = {}
        self.disk_keys: Dict[str, DiskKeys] = {}
        self.calls: List[Tuple[str, Any]] = []
        self.fetch_status = 200
        self.uploads: Dict[str, Dict[str, Any]] = {}
        self.sent: Dict[str, bytes] = {}
        self._next_upload = 0

    # setup helpers

    def add_file(self, file_id: str, name: str, content: bytes, disk: str = "disk-1",
                 encrypted: bool = False, mime: str = "application/octet-stream") -> FileInfo:
        info = FileInfo(id=file_id, name=name, encrypted=encrypted, mime=mime,
                        disk=disk, size=len(content))
        self.files[file_id] = info
        self.contents[file_id] = content
        return info

    def add_disk(self, disk_id: str, keys: Optional[DiskKeyPair] = None,
                 encrypted: Optional[bool] = None) -> Disk:
        disk = Disk(
            id=disk_id,
            name=disk_id,
            encrypted=bool(keys) if encrypted is None else encrypted,
            crypto_key=keys.private_key if keys else "",
            public_key=keys.public_key if keys else "",
        )
        self.disks[disk_id] = disk
        if keys:
            self.disk_keys[disk_id] = DiskKeys(crypto_key=keys.private_key,
                                               public_key=keys.public_key)
        return disk

    def methods(self) -> List[str]:
        return [method for method, _ in self.calls]

    # gateway interface

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        pass

    def ping(self) -> bool:
        self.calls.append(("ping", None))
        return self.alive

    def call(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        self.calls.append(("call", method))
        return self.rpc_results.get(method, {})

    def lookup_file(self, file_id: str) -> FileLookup:
        self.calls.append(("lookup_file", file_id))
        info = self.files.get(file_id)
        return FileLookup(count=1, files=[info]) if info else FileLookup(count=0)

    def list_files(self, disk_id: str, offset: int = 0) -> FilesPage:
        self.calls.append(("list_files", disk_id))
        files = [f for f in self.files.values() if f.disk == disk_id]
        return FilesPage(offset=offset, files=files[offset:])

    def get_download_url(self, file_id: str) -> str:
        self.calls.append(("get_download_url", file_id))
        return f"https://content.example/{file_id}"

    @contextmanager
    def open_content(self, url: str, chunk_size: int = 7):
        self.calls.append(("open_content", url))
        if self.fetch_status != 200:
            raise NetworkError(f"bad response status code: {self.fetch_status}")
        data = self.contents[url.rsplit("/", 1)[-1]]
        yield (data[i:i + chunk_size] for i in range(0, len(data), chunk_size))

    def get_disk(self, disk_id: str) -> Disk:
        self.calls.append(("get_disk", disk_id))
        if disk_id not in self.disks:
            raise NotFoundError(f"disk {disk_id} not found or you have no access to it")
        return self.disks[disk_id]

    def get_disk_keys(self, disk_id: str) -> DiskKeys:
        self.calls.append(("get_disk_keys", disk_id))
        return self.disk_keys.get(disk_id, DiskKeys(crypto_key="", public_key=""))

    def register_upload(self, name, disk_id, folder_id, size, mime="",
                        encrypted=False, checksum="") -> UploadTarget:
        self._next_upload += 1
        file_id = f"up-{self._next_upload}"
        self.calls.append(("register_upload", file_id))
        self.uploads[file_id] = {
            "name": name, "disk": disk_id, "folder": folder_id, "size": size,
            "mime": mime, "encrypted": encrypted, "checksum": checksum,
        }
        return UploadTarget(file_id=file_id, url=f"https://upload.example/{file_id}")

    def send_content(self, target: UploadTarget, payload: bytes) -> None:
        self.calls.append(("send_content", target.file_id))
        self.sent[target.file_id] = payload

    def commit_upload(self, file_id: str) -> FileInfo:
        self.calls.append(("commit_upload", file_id))
        meta = self.uploads[file_id]
        return self.add_file(file_id, meta["name"], self.sent[file_id], disk=meta["disk"],
                             encrypted=meta["encrypted"], mime=meta["mime"])


@pytest.fixture
def gateway() -> FakeGateway:
    return FakeGateway()
