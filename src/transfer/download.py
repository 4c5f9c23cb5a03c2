"""
Encrypted Download Pipeline

Downloads one file and writes its plaintext to a caller-supplied writer:

    lookup -> auth_check -> url_resolve -> fetch -> deliver -> done

- Plain files are streamed chunk by chunk (constant memory).
- Encrypted files are buffered whole, decrypted with the disk's private
  key, and only then written. OpenPGP framing needs the complete message,
  so the file size is bounded by available memory.
- Decryption material is checked before the download URL is requested.
- Nothing is retried; any failure aborts the call.
"""

from dataclasses import dataclass
from typing import BinaryIO, Optional

from . import stages
from .stages import stage
from ..crypto.crypto_info import CryptoInfo
from ..crypto.keyring import unlocked_key_rings
from ..errors import CredentialError, InputError, NotFoundError
from ..integration.event_logger import EventLogger, EventType, emit


@dataclass(frozen=True)
class DownloadResult:
    """Outcome of a successful download."""
    file_id: str
    name: str
    mime: str
    size: int  # plaintext bytes written
    encrypted: bool


def _check_crypto(gateway, crypto_info: Optional[CryptoInfo], disk_id: str,
                  events: Optional[EventLogger]) -> CryptoInfo:
    """Make sure an encrypted file can be decrypted before fetching it."""
    if crypto_info is None:
        raise CredentialError("file is encrypted and no crypto info was provided")
    if crypto_info.is_crypto_ready():
        return crypto_info
    if not crypto_info.is_resolvable():
        raise CredentialError("file is encrypted and no password or keys were provided")

    crypto_info.try_get_ready(gateway, disk_id)
    emit(events, EventType.KEYS_RESOLVED, "Disk keys unlocked", disk=disk_id)
    return crypto_info


def download_file(gateway, file_id: str, writer: BinaryIO,
                  crypto_info: Optional[CryptoInfo] = None,
                  events: Optional[EventLogger] = None) -> DownloadResult:
    """
    Download a file, decrypting it when its disk is encrypted.

    For encrypted files the caller must pass a CryptoInfo that is either
    ready or holds the passphrase; a passphrase-only CryptoInfo is resolved
    in place against the file's disk.

    Args:
        gateway: ApiGateway
        file_id: Id of the file to download
        writer: Binary destination for the plaintext
        crypto_info: Key material, required for encrypted files
        events: Optional observer

    Returns:
        DownloadResult with the remote file name and bytes written

    Raises:
        InputError: Empty file id
        NotFoundError: No such file, or no access
        CredentialError: Encrypted file without usable key material
        CryptoError: Key unlock or decryption failed
        NetworkError, ServerError, ProtocolError: API or transport failure
        LocalIOError: Writing to the destination failed
    """
    if not file_id:
        raise InputError("file id is required")

    with stage(stages.LOOKUP, file_id, events):
        lookup = gateway.lookup_file(file_id)
        info = lookup.first
        if lookup.count == 0 or info is None:
            raise NotFoundError("file not found or you have no access to it")
        emit(events, EventType.LOOKUP, f"Found {info.name} ({info.mime})",
             file=file_id, encrypted=info.encrypted, size=info.size)

    if info.encrypted:
        with stage(stages.AUTH_CHECK, file_id, events):
            crypto_info = _check_crypto(gateway, crypto_info, info.disk, events)
            emit(events, EventType.AUTH_CHECK, "Decryption keys available", disk=info.disk)

    with stage(stages.URL_RESOLVE, file_id, events):
        url = gateway.get_download_url(file_id)
        emit(events, EventType.URL_RESOLVED, "Download URL resolved", file=file_id)

    with stage(stages.FETCH, file_id, events):
        with gateway.open_content(url) as chunks:
            if info.encrypted:
                emit(events, EventType.FETCH, "File is encrypted, downloading first")
                buffer = bytearray()
                for chunk in chunks:
                    buffer.extend(chunk)
            else:
                emit(events, EventType.FETCH, "File is not encrypted, downloading as-is")
                with stage(stages.DELIVER, file_id, events):
                    written = 0
                    for chunk in chunks:
                        writer.write(chunk)
                        written += len(chunk)

    if info.encrypted:
        with stage(stages.DELIVER, file_id, events):
            emit(events, EventType.DECRYPT, f"Downloaded {len(buffer)} bytes, decrypting",
                 ciphertext_size=len(buffer))
            with unlocked_key_rings(crypto_info.public_key, crypto_info.raw_crypto_key,
                                    crypto_info.password) as (_, private_ring):
                plaintext = private_ring.decrypt(bytes(buffer))
            buffer.clear()
            writer.write(plaintext)
            written = len(plaintext)

    emit(events, EventType.DELIVER, f"Download is done ({written} bytes)", size=written)
    emit(events, EventType.DONE, info.name, file=file_id)
    return DownloadResult(
        file_id=info.id,
        name=info.name,
        mime=info.mime,
        size=written,
        encrypted=info.encrypted,
    )
