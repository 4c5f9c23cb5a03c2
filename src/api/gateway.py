"""
API Gateway

JSON-RPC client for the KtCloud service over HTTP.

Request:  POST {base_url}/json-rpc
          {"method": <name>, "params": {..., "token": <access token>}}
Response: {"jsonrpc": "2.0", "id": 1,
           "error": {"code": 0, "message": ""},
           "result": {...}}

Error mapping:
- requests exceptions             -> NetworkError
- non-zero error.code             -> ServerError (whatever the HTTP status)
- unparseable body, HTTP non-2xx  -> NetworkError
- unparseable body, HTTP 2xx      -> ProtocolError
- result missing or not an object -> ProtocolError

Typed helpers validate results into the schemas of models.py. Nothing here
retries; callers own retry policy.
"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

import requests

from .config import ClientConfig
from .models import Disk, DiskKeys, FileInfo, FileLookup, FilesPage, UploadTarget
from ..errors import NetworkError, NotFoundError, ProtocolError, ServerError


CONTENT_TYPE = "application/json-rpc"
CHUNK_SIZE = 64 * 1024  # streamed download chunk

# JSON-RPC method names
METHOD_FILE_BY_ID = "files.getById"
METHOD_FILES_LIST = "files.get"
METHOD_DOWNLOAD_URL = "files.download"
METHOD_DISK_BY_ID = "disks.getById"
METHOD_DISK_KEYS = "disks.getCryptoKeys"
METHOD_UPLOAD = "files.upload"
METHOD_UPLOAD_COMPLETE = "files.uploadComplete"


def _is_success(status_code: int) -> bool:
    return 200 <= status_code < 300


class ApiGateway:
    """
    Typed access to the JSON-RPC API and to content URLs.

    Example:
        >>> gateway = ApiGateway(ClientConfig.from_env())
        >>> lookup = gateway.lookup_file("f-1")
    """

    def __init__(self, config: ClientConfig,
                 session: Optional[requests.Session] = None):
        """
        Args:
            config: Connection settings (token, base URL, timeout)
            session: Optional pre-built session, mostly for tests
        """
        self._config = config
        self._session = session or requests.Session()

    @property
    def config(self) -> ClientConfig:
        return self._config

    def close(self) -> None:
        self._session.close()

    def __enter__(self) -> 'ApiGateway':
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    # ========================================================================
    # Raw JSON-RPC
    # ========================================================================

    def call(self, method: str, params: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
        """
        Send one JSON-RPC request and return its result object.

        The access token is added to the params unless the caller already
        put one there.

        Args:
            method: RPC method name
            params: Method parameters

        Returns:
            The "result" object of the response

        Raises:
            NetworkError, ServerError, ProtocolError
        """
        params = dict(params or {})
        params.setdefault("token", self._config.token)
        body = {"method": method, "params": params}

        try:
            response = self._session.post(
                self._config.api_url,
                json=body,
                headers={"Content-Type": CONTENT_TYPE},
                timeout=self._config.timeout,
            )
        except requests.RequestException as exc:
            raise NetworkError(f"{method}: request failed: {exc}") from exc

        try:
            payload = response.json()
        except ValueError as exc:
            if not _is_success(response.status_code):
                raise NetworkError(
                    f"{method}: bad response status {response.status_code}"
                ) from exc
            raise ProtocolError(f"{method}: response is not valid JSON") from exc

        if not isinstance(payload, dict):
            raise ProtocolError(f"{method}: response is not a JSON object")

        error = payload.get("error") or {}
        if not isinstance(error, dict):
            raise ProtocolError(f"{method}: malformed error object")
        code = error.get("code") or 0
        if code:
            raise ServerError(code, str(error.get("message") or ""))

        if not _is_success(response.status_code):
            raise NetworkError(f"{method}: bad response status {response.status_code}")

        result = payload.get("result")
        if not isinstance(result, dict):
            raise ProtocolError(f"{method}: response has no result object")
        return result

    def ping(self) -> bool:
        """True if the service answers its liveness endpoint."""
        try:
            response = self._session.get(self._config.ping_url, timeout=self._config.timeout)
        except requests.RequestException:
            return False
        return response.status_code == 200 or response.text == "Pong!"

    # ========================================================================
    # Typed methods
    # ========================================================================

    def lookup_file(self, file_id: str) -> FileLookup:
        """File metadata by id. A zero count is returned, not raised."""
        return FileLookup.from_dict(self.call(METHOD_FILE_BY_ID, {"file": file_id}))

    def list_files(self, disk_id: str, offset: int = 0) -> FilesPage:
        """One page of the files stored on a disk."""
        result = self.call(METHOD_FILES_LIST, {"disk": disk_id, "offset": offset})
        return FilesPage.from_dict(result, offset=offset)

    def get_download_url(self, file_id: str) -> str:
        """Short-lived content URL for a file."""
        result = self.call(METHOD_DOWNLOAD_URL, {"file": file_id})
        url = result.get("url")
        if not isinstance(url, str) or not url:
            raise ProtocolError(f"{METHOD_DOWNLOAD_URL}: failed to get file url")
        return url

    def get_disk(self, disk_id: str) -> Disk:
        """
        Disk metadata, including its encryption policy.

        Raises:
            NotFoundError: If the server knows no such disk
        """
        result = self.call(METHOD_DISK_BY_ID, {"disk": disk_id})
        raw = result.get("list")
        if raw is None:
            # single-object form
            return Disk.from_dict(result)
        if not isinstance(raw, list):
            raise ProtocolError(f"{METHOD_DISK_BY_ID}: 'list' must be a list")
        if not raw:
            raise NotFoundError(f"disk {disk_id} not found or you have no access to it")
        return Disk.from_dict(raw[0])

    def get_disk_keys(self, disk_id: str) -> DiskKeys:
        """Encrypted private key and public key of a disk."""
        return DiskKeys.from_dict(self.call(METHOD_DISK_KEYS, {"disk": disk_id}))

    def register_upload(self, name: str, disk_id: str, folder_id: str, size: int,
                        mime: str = "", encrypted: bool = False,
                        checksum: str = "") -> UploadTarget:
        """Declare an upload and obtain its transport target."""
        params = {
            "name": name,
            "disk": disk_id,
            "folder": folder_id,
            "size": size,
            "mime": mime,
            "encrypted": encrypted,
            "checksum": checksum,
        }
        return UploadTarget.from_dict(self.call(METHOD_UPLOAD, params))

    def commit_upload(self, file_id: str) -> FileInfo:
        """Finalize a transmitted upload and return the stored file."""
        result = self.call(METHOD_UPLOAD_COMPLETE, {"file": file_id})
        return FileInfo.from_dict(result.get("file"))

    # ========================================================================
    # Content transport
    # ========================================================================

    @contextmanager
    def open_content(self, url: str, chunk_size: int = CHUNK_SIZE) -> Iterator[Iterator[bytes]]:
        """
        Open a streamed GET on a content URL.

        Yields:
            Iterator over the body in chunks

        Raises:
            NetworkError: On transport failure or non-200 status
        """
        try:
            response = self._session.get(url, stream=True, timeout=self._config.timeout)
        except requests.RequestException as exc:
            raise NetworkError(f"content request failed: {exc}") from exc

        with response:
            if response.status_code != 200:
                raise NetworkError(f"bad response status code: {response.status_code}")
            yield self._iter_body(response, chunk_size)

    @staticmethod
    def _iter_body(response: requests.Response, chunk_size: int) -> Iterator[bytes]:
        try:
            for chunk in response.iter_content(chunk_size=chunk_size):
                if chunk:
                    yield chunk
        except requests.RequestException as exc:
            raise NetworkError(f"content transfer interrupted: {exc}") from exc

    def send_content(self, target: UploadTarget, payload: bytes) -> None:
        """
        Transmit upload bytes to a registered target.

        Raises:
            NetworkError: On transport failure or non-2xx status
        """
        headers = {"Content-Type": "application/octet-stream"}
        headers.update(target.headers)
        try:
            response = self._session.request(
                target.method, target.url,
                data=payload, headers=headers, timeout=self._config.timeout,
            )
        except requests.RequestException as exc:
            raise NetworkError(f"upload transfer failed: {exc}") from exc
        with response:
            if not _is_success(response.status_code):
                raise NetworkError(f"upload rejected with status {response.status_code}")
