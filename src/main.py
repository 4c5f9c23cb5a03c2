"""
KtCloud - Command Line Entry Point

Commands:
    ping                       check that the API answers
    download FILE_ID [-o PATH] download (and decrypt) a file
    upload PATH|-              upload (and encrypt) a file or stdin
    files                      list the files on a disk
    keys                       export a disk's armored key pair
    call METHOD [k=v ...]      raw JSON-RPC call

Configuration comes from KTCLOUD_* environment variables and the global
options. Passphrases are only read from an interactive prompt.
"""

import argparse
import getpass
import json
import os
import sys
from typing import Dict, List, Optional

from .api.config import ClientConfig
from .api.gateway import ApiGateway
from .crypto.crypto_info import CryptoInfo, get_crypto_info
from .errors import InputError, KtCloudError
from .integration.event_logger import EventLogger
from .transfer.download import download_file
from .transfer.upload import upload_file


def byte_count(size: int) -> str:
    """Human-readable size (1024-based)."""
    unit = 1024
    if size < unit:
        return f"{size} B"
    div, exp = unit, 0
    n = size // unit
    while n >= unit:
        div *= unit
        exp += 1
        n //= unit
    return f"{size / div:.1f} {'KMGTPE'[exp]}iB"


def parse_key_values(pairs: List[str]) -> Dict[str, str]:
    """Turn ["a=1", "b=2"] into {"a": "1", "b": "2"}."""
    params = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise InputError(f"bad parameter {pair!r}, expected key=value")
        params[key.strip()] = value
    return params


def ask_password(prompt: str = "Disk passphrase: ") -> str:
    """Read a passphrase without echoing it."""
    return getpass.getpass(prompt)


def _crypto_info(args) -> CryptoInfo:
    password = ask_password() if getattr(args, "ask_password", False) else ""
    return CryptoInfo(password=password)


# ============================================================================
# Commands
# ============================================================================

def cmd_ping(gateway: ApiGateway, args) -> int:
    if gateway.ping():
        print("API is alive")
        return 0
    print("API is not alive", file=sys.stderr)
    return 1


def cmd_download(gateway: ApiGateway, args, events: EventLogger) -> int:
    save_path = (args.output or ".").strip()
    if save_path == ".":
        print("Save path is set to current directory. Use -o to change it.", file=sys.stderr)

    part_path = save_path + ".part" if not os.path.isdir(save_path) else None
    if part_path is None:
        # The remote name is only known after the download
        part_path = os.path.join(save_path, f".{args.file_id}.part")

    try:
        with _crypto_info(args) as crypto_info, open(part_path, "wb") as out:
            result = download_file(gateway, args.file_id, out, crypto_info, events)
    except BaseException:
        if os.path.exists(part_path):
            os.remove(part_path)
        raise

    final_path = save_path
    if os.path.isdir(save_path):
        final_path = os.path.join(save_path, os.path.basename(result.name))
    os.replace(part_path, final_path)
    print(f"Saved {result.name} to {final_path} ({byte_count(result.size)})")
    return 0


def cmd_upload(gateway: ApiGateway, args, events: EventLogger) -> int:
    disk_id = gateway.config.disk_or_default(args.disk)

    if args.path == "-":
        if not args.name:
            raise InputError("file name is required for stdin upload, use --name")
        with _crypto_info(args) as crypto_info:
            result = upload_file(gateway, args.name, sys.stdin.buffer, disk_id,
                                 args.folder, crypto_info, args.mime, events=events)
    else:
        if os.path.isdir(args.path):
            raise InputError("directory uploading is not supported")
        name = args.name or os.path.basename(args.path)
        with _crypto_info(args) as crypto_info, open(args.path, "rb") as source:
            result = upload_file(gateway, name, source, disk_id,
                                 args.folder, crypto_info, args.mime, events=events)

    state = "encrypted" if result.encrypted else "plain"
    print(f"Uploaded {result.name} as {result.file_id} ({byte_count(result.size)}, {state})")
    return 0


def cmd_files(gateway: ApiGateway, args) -> int:
    disk_id = gateway.config.disk_or_default(args.disk)
    page = gateway.list_files(disk_id, args.offset)
    if not page.files:
        print("File list is empty", file=sys.stderr)
        return 1

    rows = [("ID", "Name", "Type", "Size")]
    rows += [(f.id, f.name, f.type_desc or f.mime, byte_count(f.size)) for f in page.files]
    widths = [max(len(row[i]) for row in rows) for i in range(4)]
    for row in rows:
        print("  ".join(cell.ljust(width) for cell, width in zip(row, widths)).rstrip())
    return 0


def cmd_keys(gateway: ApiGateway, args) -> int:
    disk_id = gateway.config.disk_or_default(args.disk)
    disk = gateway.get_disk(disk_id)

    with get_crypto_info(gateway, disk.id, ask_password(),
                         public_key=disk.public_key,
                         encrypted_crypto_key=disk.crypto_key) as info:
        for path, content in ((args.public_out, info.public_key),
                              (args.private_out, info.raw_crypto_key)):
            fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o600)
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                f.write(content)

    print(f"Keys exported: {args.public_out}, {args.private_out}")
    return 0


def cmd_call(gateway: ApiGateway, args) -> int:
    result = gateway.call(args.method, parse_key_values(args.params))
    print(json.dumps(result, indent=2 if args.pretty else None, ensure_ascii=False))
    return 0


# ============================================================================
# Entry point
# ============================================================================

def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="ktcloud", description="KtCloud storage client")
    parser.add_argument("--token", help="access token (default: $KTCLOUD_TOKEN)")
    parser.add_argument("--url", help="service base URL (default: $KTCLOUD_URL)")
    parser.add_argument("--timeout", type=float, help="request timeout in seconds")
    parser.add_argument("-v", "--verbose", action="store_true", help="print transfer events")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("ping", help="check that the API answers")

    p = sub.add_parser("download", help="download a file by id")
    p.add_argument("file_id")
    p.add_argument("-o", "--output", default=".", help="file or directory to save to")
    p.add_argument("-P", "--ask-password", action="store_true",
                   help="prompt for the disk passphrase")

    p = sub.add_parser("upload", help="upload a file, or stdin with '-'")
    p.add_argument("path")
    p.add_argument("--name", help="remote file name")
    p.add_argument("--disk", help="destination disk (default: $KTCLOUD_DISK)")
    p.add_argument("--folder", default="", help="destination folder id")
    p.add_argument("--mime", help="MIME type (guessed from the name by default)")
    p.add_argument("-P", "--ask-password", action="store_true",
                   help="prompt for the disk passphrase")

    p = sub.add_parser("files", help="list files on a disk")
    p.add_argument("--disk", help="disk id (default: $KTCLOUD_DISK)")
    p.add_argument("--offset", type=int, default=0)

    p = sub.add_parser("keys", help="export a disk's key pair")
    p.add_argument("--disk", help="disk id (default: $KTCLOUD_DISK)")
    p.add_argument("--public-out", default="public.asc")
    p.add_argument("--private-out", default="private.asc")

    p = sub.add_parser("call", help="raw JSON-RPC call")
    p.add_argument("method")
    p.add_argument("params", nargs="*", metavar="key=value")
    p.add_argument("--pretty", action="store_true")

    return parser


def main(argv: Optional[List[str]] = None) -> int:
    """Run one command and return its exit status."""
    args = build_parser().parse_args(argv)

    events = EventLogger(keep_history=False)
    if args.verbose:
        events.add_callback(lambda event: print(event, file=sys.stderr))

    try:
        config = ClientConfig.from_env(token=args.token, base_url=args.url,
                                       timeout=args.timeout)
        with ApiGateway(config) as gateway:
            if args.command == "ping":
                return cmd_ping(gateway, args)
            if args.command == "download":
                return cmd_download(gateway, args, events)
            if args.command == "upload":
                return cmd_upload(gateway, args, events)
            if args.command == "files":
                return cmd_files(gateway, args)
            if args.command == "keys":
                return cmd_keys(gateway, args)
            return cmd_call(gateway, args)
    except KtCloudError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1
    except OSError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
