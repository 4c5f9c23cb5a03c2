"""
Client Configuration

A single explicit configuration value handed to the API gateway and,
through it, to every operation. Nothing here is global.

Environment variables (all optional):
    KTCLOUD_TOKEN    access token
    KTCLOUD_URL      service base URL
    KTCLOUD_TIMEOUT  request timeout in seconds
    KTCLOUD_DISK     default disk id

Passphrases are never read from the environment.
"""

import os
from dataclasses import dataclass, field, replace
from typing import Mapping, Optional

from ..errors import InputError


DEFAULT_BASE_URL = "https://resistance.go-kt.com"
DEFAULT_TIMEOUT = 30.0  # seconds

ENV_TOKEN = "KTCLOUD_TOKEN"
ENV_URL = "KTCLOUD_URL"
ENV_TIMEOUT = "KTCLOUD_TIMEOUT"
ENV_DISK = "KTCLOUD_DISK"


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings for one client."""
    token: str = field(default="", repr=False)
    base_url: str = DEFAULT_BASE_URL
    timeout: float = DEFAULT_TIMEOUT
    default_disk: str = ""

    @property
    def api_url(self) -> str:
        """JSON-RPC endpoint."""
        return self.base_url.rstrip("/") + "/json-rpc"

    @property
    def ping_url(self) -> str:
        """Liveness endpoint."""
        return self.base_url.rstrip("/") + "/ping"

    def with_overrides(self, **overrides) -> 'ClientConfig':
        """Return a copy with every non-None override applied."""
        values = {k: v for k, v in overrides.items() if v is not None}
        return replace(self, **values)

    def disk_or_default(self, disk_id: Optional[str]) -> str:
        """
        Pick the explicit disk id, falling back to the configured default.

        Raises:
            InputError: If neither is set
        """
        disk = (disk_id or self.default_disk or "").strip()
        if not disk:
            raise InputError("disk id is required (set KTCLOUD_DISK or pass --disk)")
        return disk

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None,
                 **overrides) -> 'ClientConfig':
        """
        Build a configuration from environment variables.

        Args:
            environ: Mapping to read from (defaults to os.environ)
            **overrides: Explicit values that win over the environment

        Returns:
            ClientConfig

        Raises:
            InputError: If KTCLOUD_TIMEOUT is not a positive number
        """
        env = os.environ if environ is None else environ

        timeout = DEFAULT_TIMEOUT
        raw_timeout = env.get(ENV_TIMEOUT, "").strip()
        if raw_timeout:
            try:
                timeout = float(raw_timeout)
            except ValueError:
                raise InputError(f"{ENV_TIMEOUT} must be a number, got {raw_timeout!r}") from None
            if timeout <= 0:
                raise InputError(f"{ENV_TIMEOUT} must be positive, got {raw_timeout!r}")

        config = cls(
            token=env.get(ENV_TOKEN, "").strip(),
            base_url=env.get(ENV_URL, "").strip() or DEFAULT_BASE_URL,
            timeout=timeout,
            default_disk=env.get(ENV_DISK, "").strip(),
        )
        return config.with_overrides(**overrides)
