"""
API Result Schemas

Typed views of the JSON-RPC results the client consumes. Every schema is
built with from_dict(), which validates field presence and types and
raises ProtocolError on any mismatch, so the transfer code never touches
untyped response data.

Wire field names:
    file:  id, name, encrypted, mime, disk, size, typeDesc
    disk:  id, name, encrypted, cryptoKey, publicKey
    keys:  cryptoKey, publicKey
    upload target: file, url, method, headers
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import ProtocolError


# ============================================================================
# Validation helpers
# ============================================================================

_MISSING = object()


def _expect_dict(data: Any, what: str) -> Dict[str, Any]:
    if not isinstance(data, dict):
        raise ProtocolError(f"{what}: expected an object, got {type(data).__name__}")
    return data


def _field(data: Dict[str, Any], key: str, kind: type, what: str,
           default: Any = _MISSING) -> Any:
    """
    Fetch a typed field from a response object.

    Args:
        data: Response object
        key: Field name on the wire
        kind: Expected type (str, bool, int or list)
        what: Schema name used in error messages
        default: Value used when the field is absent or null

    Returns:
        The field value, coerced for numbers and ids
    """
    value = data.get(key)
    if value is None:
        if default is _MISSING:
            raise ProtocolError(f"{what}: missing field '{key}'")
        return default

    if kind is int:
        # JSON numbers may arrive as floats; bool is an int subclass
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise ProtocolError(f"{what}: field '{key}' must be a number")
        return int(value)
    if kind is str and isinstance(value, (int, float)) and not isinstance(value, bool):
        # numeric ids
        return str(value)
    if not isinstance(value, kind):
        raise ProtocolError(
            f"{what}: field '{key}' must be {kind.__name__}, got {type(value).__name__}"
        )
    return value


# ============================================================================
# Files
# ============================================================================

@dataclass(frozen=True)
class FileInfo:
    """Server-side file metadata snapshot."""
    id: str
    name: str
    encrypted: bool
    mime: str
    disk: str
    size: int
    type_desc: str = ""

    @classmethod
    def from_dict(cls, data: Any) -> 'FileInfo':
        """Validate a file object."""
        obj = _expect_dict(data, "file")
        return cls(
            id=_field(obj, "id", str, "file"),
            name=_field(obj, "name", str, "file"),
            encrypted=_field(obj, "encrypted", bool, "file", False),
            mime=_field(obj, "mime", str, "file", ""),
            disk=_field(obj, "disk", str, "file"),
            size=_field(obj, "size", int, "file", 0),
            type_desc=_field(obj, "typeDesc", str, "file", ""),
        )


def _file_list(obj: Dict[str, Any], what: str) -> List[FileInfo]:
    raw = _field(obj, "list", list, what, [])
    return [FileInfo.from_dict(item) for item in raw]


@dataclass(frozen=True)
class FileLookup:
    """Result of a file lookup by id."""
    count: int
    files: List[FileInfo] = field(default_factory=list)

    @property
    def first(self) -> Optional[FileInfo]:
        """First matching file, if any."""
        return self.files[0] if self.files else None

    @classmethod
    def from_dict(cls, data: Any) -> 'FileLookup':
        obj = _expect_dict(data, "file lookup")
        files = _file_list(obj, "file lookup")
        count = _field(obj, "count", int, "file lookup", len(files))
        return cls(count=count, files=files)


@dataclass(frozen=True)
class FilesPage:
    """One page of a disk file listing."""
    offset: int
    files: List[FileInfo] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any, offset: int = 0) -> 'FilesPage':
        obj = _expect_dict(data, "file listing")
        return cls(offset=offset, files=_file_list(obj, "file listing"))


# ============================================================================
# Disks
# ============================================================================

@dataclass(frozen=True)
class Disk:
    """Server-side encryption domain."""
    id: str
    name: str = ""
    encrypted: bool = False
    crypto_key: str = field(default="", repr=False)
    public_key: str = field(default="", repr=False)

    @property
    def requires_encryption(self) -> bool:
        """Disk content must be encrypted client-side."""
        return self.encrypted or bool(self.public_key)

    @classmethod
    def from_dict(cls, data: Any) -> 'Disk':
        obj = _expect_dict(data, "disk")
        return cls(
            id=_field(obj, "id", str, "disk"),
            name=_field(obj, "name", str, "disk", ""),
            encrypted=_field(obj, "encrypted", bool, "disk", False),
            crypto_key=_field(obj, "cryptoKey", str, "disk", ""),
            public_key=_field(obj, "publicKey", str, "disk", ""),
        )


@dataclass(frozen=True)
class DiskKeys:
    """Encrypted private key and public key of a disk."""
    crypto_key: str = field(repr=False)
    public_key: str = field(repr=False)

    @classmethod
    def from_dict(cls, data: Any) -> 'DiskKeys':
        obj = _expect_dict(data, "disk keys")
        return cls(
            crypto_key=_field(obj, "cryptoKey", str, "disk keys", ""),
            public_key=_field(obj, "publicKey", str, "disk keys", ""),
        )


# ============================================================================
# Transfers
# ============================================================================

@dataclass(frozen=True)
class UploadTarget:
    """Where and how to transmit the bytes of a registered upload."""
    file_id: str
    url: str
    method: str = "PUT"
    headers: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_dict(cls, data: Any) -> 'UploadTarget':
        obj = _expect_dict(data, "upload target")
        headers = _field(obj, "headers", dict, "upload target", {})
        return cls(
            file_id=_field(obj, "file", str, "upload target"),
            url=_field(obj, "url", str, "upload target"),
            method=_field(obj, "method", str, "upload target", "PUT").upper(),
            headers={str(k): str(v) for k, v in headers.items()},
        )
