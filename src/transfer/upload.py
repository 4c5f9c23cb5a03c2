"""
Encrypted Upload Pipeline

Uploads content to a disk folder, encrypting it client-side when the disk
requires it:

    policy -> read -> encrypt -> register -> transmit -> commit -> done

- Encryption needs only the disk's public key; the private key is never
  unlocked here.
- No byte leaves the process before encryption has finished.
- The transport is pluggable: any callable taking (UploadTarget, bytes).
  The default sends an HTTP request to the registered target URL.
- Uncommitted uploads are discarded by the server; the client does no
  cleanup.
"""

import mimetypes
from dataclasses import dataclass
from typing import BinaryIO, Callable, Optional

from cryptography.hazmat.primitives import hashes

from . import stages
from .stages import stage
from ..api.models import UploadTarget
from ..crypto.crypto_info import CryptoInfo
from ..crypto.keyring import build_public_key_ring
from ..errors import CredentialError, InputError
from ..integration.event_logger import EventLogger, EventType, emit


DEFAULT_MIME = "application/octet-stream"
READ_CHUNK_SIZE = 1024 * 1024  # 1 MB

Transport = Callable[[UploadTarget, bytes], None]


@dataclass(frozen=True)
class UploadResult:
    """Outcome of a successful upload."""
    file_id: str
    name: str
    disk: str
    folder: str
    size: int  # bytes transmitted
    encrypted: bool
    checksum: str  # SHA-256 hex of the transmitted bytes


def guess_mime(name: str) -> str:
    """MIME type from a file name, octet-stream when unknown."""
    mime, _ = mimetypes.guess_type(name)
    return mime or DEFAULT_MIME


def compute_checksum(data: bytes) -> str:
    """SHA-256 hex digest."""
    digest = hashes.Hash(hashes.SHA256())
    digest.update(data)
    return digest.finalize().hex()


def _read_all(reader: BinaryIO) -> bytes:
    buffer = bytearray()
    while True:
        chunk = reader.read(READ_CHUNK_SIZE)
        if not chunk:
            break
        buffer.extend(chunk)
    return bytes(buffer)


def _resolve_public_key(disk, crypto_info: Optional[CryptoInfo]) -> str:
    public_key = crypto_info.public_key if crypto_info is not None else ""
    public_key = public_key or disk.public_key
    if not public_key:
        raise CredentialError(f"missing public key for disk {disk.id}")
    return public_key


def upload_file(gateway, name: str, reader: BinaryIO, disk_id: str,
                folder_id: str = "",
                crypto_info: Optional[CryptoInfo] = None,
                mime: Optional[str] = None,
                transport: Optional[Transport] = None,
                events: Optional[EventLogger] = None) -> UploadResult:
    """
    Upload content, encrypting it when the disk requires it.

    Args:
        gateway: ApiGateway
        name: Remote file name
        reader: Binary content source
        disk_id: Destination disk
        folder_id: Destination folder (empty for the disk root)
        crypto_info: Optional key material; its public key wins over the
            one published on the disk
        mime: MIME type, guessed from the name when omitted
        transport: Optional replacement for gateway.send_content
        events: Optional observer

    Returns:
        UploadResult

    Raises:
        InputError: Empty name or disk id
        CredentialError: Encrypted disk without a public key
        CryptoError: Encryption failed
        LocalIOError: Reading the source failed
        NetworkError, ServerError, ProtocolError: API or transport failure
    """
    if not name:
        raise InputError("file name is required")
    if not disk_id:
        raise InputError("disk id is required")

    mime = mime or guess_mime(name)
    send = transport or gateway.send_content

    with stage(stages.POLICY, name, events):
        disk = gateway.get_disk(disk_id)
        encrypted = disk.requires_encryption
        public_key = _resolve_public_key(disk, crypto_info) if encrypted else ""
        emit(events, EventType.POLICY,
             "Disk requires encryption" if encrypted else "Disk is not encrypted",
             disk=disk_id, encrypted=encrypted)

    with stage(stages.READ, name, events):
        content = _read_all(reader)

    payload = content
    if encrypted:
        with stage(stages.ENCRYPT, name, events):
            payload = build_public_key_ring(public_key).encrypt(content)
            emit(events, EventType.ENCRYPT,
                 f"Encrypted {len(content)} bytes into {len(payload)}",
                 size=len(content), encrypted_size=len(payload))

    checksum = compute_checksum(payload)

    with stage(stages.REGISTER, name, events):
        target = gateway.register_upload(
            name=name,
            disk_id=disk_id,
            folder_id=folder_id,
            size=len(payload),
            mime=mime,
            encrypted=encrypted,
            checksum=checksum,
        )
        emit(events, EventType.REGISTER, f"Upload registered as {target.file_id}",
             file=target.file_id)

    with stage(stages.TRANSMIT, name, events):
        send(target, payload)
        emit(events, EventType.TRANSMIT, f"Sent {len(payload)} bytes", size=len(payload))

    with stage(stages.COMMIT, name, events):
        stored = gateway.commit_upload(target.file_id)
        emit(events, EventType.COMMIT, f"Upload of {stored.name} finalized", file=stored.id)

    emit(events, EventType.DONE, name, file=stored.id)
    return UploadResult(
        file_id=stored.id,
        name=stored.name or name,
        disk=disk_id,
        folder=folder_id,
        size=len(payload),
        encrypted=encrypted,
        checksum=checksum,
    )
