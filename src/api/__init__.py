# API Module
"""
KtCloud service access:
- ClientConfig: explicit connection settings - config.py
- Typed result schemas validated at the boundary - models.py
- JSON-RPC gateway and content transport over requests - gateway.py
"""

from .config import (
    ClientConfig,
    DEFAULT_BASE_URL,
    DEFAULT_TIMEOUT,
)

from .models import (
    FileInfo,
    FileLookup,
    FilesPage,
    Disk,
    DiskKeys,
    UploadTarget,
)

from .gateway import (
    ApiGateway,
    CHUNK_SIZE,
)

__all__ = [
    # Config
    'ClientConfig',
    'DEFAULT_BASE_URL',
    'DEFAULT_TIMEOUT',
    # Models
    'FileInfo',
    'FileLookup',
    'FilesPage',
    'Disk',
    'DiskKeys',
    'UploadTarget',
    # Gateway
    'ApiGateway',
    'CHUNK_SIZE',
]
