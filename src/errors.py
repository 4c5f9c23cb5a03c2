"""
Error Taxonomy

Every failure raised by the client derives from KtCloudError:
- InputError: missing required identifier or path
- NotFoundError: no matching file or record
- CredentialError: missing or unusable passphrase/key
- CryptoError: key unlock, encrypt or decrypt failure
- NetworkError: transport failure or non-success HTTP status
- ServerError: non-zero JSON-RPC error code
- ProtocolError: response does not match the expected schema
- LocalIOError: local read/write failure

Pipelines tag errors with the stage and identifier they failed on.
"""

from typing import Optional


class KtCloudError(Exception):
    """Base class for all client errors."""

    def __init__(self, message: str, stage: Optional[str] = None,
                 identifier: Optional[str] = None):
        super().__init__(message)
        self.message = message
        self.stage = stage
        self.identifier = identifier

    def __str__(self) -> str:
        if self.stage and self.identifier:
            return f"{self.stage} [{self.identifier}]: {self.message}"
        if self.stage:
            return f"{self.stage}: {self.message}"
        return self.message


class InputError(KtCloudError):
    """Raised when a required identifier or path is missing."""
    pass


class NotFoundError(KtCloudError):
    """Raised when the server reports no matching record."""
    pass


class CredentialError(KtCloudError):
    """Raised when a passphrase or key is missing or unusable."""
    pass


class CryptoError(KtCloudError):
    """Raised on key unlock, encryption or decryption failure."""
    pass


class NetworkError(KtCloudError):
    """Raised on transport failure or a non-success HTTP status."""
    pass


class ServerError(KtCloudError):
    """Raised when the API answers with a non-zero error code."""

    def __init__(self, code: int, message: str, **kwargs):
        super().__init__(message or f"server error {code}", **kwargs)
        self.code = code


class ProtocolError(KtCloudError):
    """Raised when a response does not match the expected shape."""
    pass


class LocalIOError(KtCloudError):
    """Raised when a local source or destination fails."""
    pass
