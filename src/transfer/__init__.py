# Transfer Module
"""
Download and upload pipelines for plain and encrypted disks:
- Download: lookup, key check, URL, fetch, decrypt, deliver - download.py
- Upload: disk policy, encrypt with public key, register, transmit - upload.py

Security features:
- Keys checked before any ciphertext is fetched
- No plaintext written unless decryption succeeded
- Content encrypted before any byte is transmitted
"""

from .download import (
    DownloadResult,
    download_file,
)

from .upload import (
    UploadResult,
    upload_file,
    guess_mime,
    compute_checksum,
)

__all__ = [
    'DownloadResult',
    'download_file',
    'UploadResult',
    'upload_file',
    'guess_mime',
    'compute_checksum',
]
