"""
Tests for the command line entry point.

The gateway is replaced by the in-memory fake; passphrase prompts are
patched.
"""

import json
import os

import pytest

from src import main as cli
from tests.conftest import FakeGateway, encrypt_for


@pytest.fixture
def fake(monkeypatch):
    gateway = FakeGateway()
    monkeypatch.setattr(cli, "ApiGateway", lambda config: gateway)
    monkeypatch.delenv("KTCLOUD_TIMEOUT", raising=False)
    return gateway


class TestHelpers:
    """Tests for formatting helpers."""

    def test_byte_count(self):
        assert cli.byte_count(512) == "512 B"
        assert cli.byte_count(1024) == "1.0 KiB"
        assert cli.byte_count(5 * 1024 * 1024) == "5.0 MiB"

    def test_parse_key_values(self):
        assert cli.parse_key_values(["a=1", "b=x=y"]) == {"a": "1", "b": "x=y"}

    def test_parse_key_values_bad(self):
        with pytest.raises(cli.InputError):
            cli.parse_key_values(["novalue"])


class TestCommands:
    """End-to-end command runs against the fake gateway."""

    def test_ping(self, fake, capsys):
        assert cli.main(["ping"]) == 0
        assert "alive" in capsys.readouterr().out

    def test_ping_down(self, fake):
        fake.alive = False
        assert cli.main(["ping"]) == 1

    def test_download_to_directory(self, fake, tmp_path):
        """A directory target should receive the remote file name."""
        fake.add_file("f-1", "report.pdf", b"%PDF-1.7")
        assert cli.main(["download", "f-1", "-o", str(tmp_path)]) == 0
        assert (tmp_path / "report.pdf").read_bytes() == b"%PDF-1.7"
        assert not [p for p in os.listdir(tmp_path) if p.endswith(".part")]

    def test_download_encrypted(self, fake, tmp_path, monkeypatch, key_pair):
        fake.add_disk("disk-1", key_pair)
        fake.add_file("f-1", "s.txt", encrypt_for(key_pair.public_key, b"plain"),
                      encrypted=True)
        monkeypatch.setattr(cli, "ask_password", lambda *a: key_pair.passphrase)
        target = tmp_path / "out.txt"
        assert cli.main(["download", "f-1", "-o", str(target), "-P"]) == 0
        assert target.read_bytes() == b"plain"

    def test_download_failure_leaves_nothing(self, fake, tmp_path, capsys, key_pair):
        """A failed download should print the error and leave no file."""
        fake.add_disk("disk-1", key_pair)
        fake.add_file("f-1", "s.txt", encrypt_for(key_pair.public_key, b"plain"),
                      encrypted=True)
        target = tmp_path / "out.txt"
        assert cli.main(["download", "f-1", "-o", str(target)]) == 1
        assert "Error:" in capsys.readouterr().err
        assert os.listdir(tmp_path) == []

    def test_upload_file(self, fake, tmp_path):
        fake.add_disk("disk-1")
        source = tmp_path / "notes.txt"
        source.write_bytes(b"hello")
        assert cli.main(["upload", str(source)]) == 0
        assert fake.uploads["up-1"]["name"] == "notes.txt"
        assert fake.sent["up-1"] == b"hello"

    def test_upload_directory_rejected(self, fake, tmp_path):
        fake.add_disk("disk-1")
        assert cli.main(["upload", str(tmp_path)]) == 1

    def test_upload_stdin_requires_name(self, fake):
        assert cli.main(["upload", "-"]) == 1

    def test_files(self, fake, capsys):
        fake.add_file("f-1", "a.txt", b"12345")
        assert cli.main(["files"]) == 0
        out = capsys.readouterr().out
        assert "a.txt" in out
        assert "5 B" in out

    def test_files_empty(self, fake):
        assert cli.main(["files", "--disk", "other"]) == 1

    def test_keys_export(self, fake, tmp_path, monkeypatch, key_pair):
        fake.add_disk("disk-1", key_pair)
        monkeypatch.setattr(cli, "ask_password", lambda *a: key_pair.passphrase)
        public_out = tmp_path / "pub.asc"
        private_out = tmp_path / "priv.asc"
        assert cli.main(["keys", "--public-out", str(public_out),
                         "--private-out", str(private_out)]) == 0
        assert public_out.read_text() == key_pair.public_key
        assert private_out.read_text() == key_pair.private_key
        assert (private_out.stat().st_mode & 0o777) == 0o600

    def test_keys_wrong_passphrase(self, fake, tmp_path, monkeypatch, key_pair):
        fake.add_disk("disk-1", key_pair)
        monkeypatch.setattr(cli, "ask_password", lambda *a: "wrong")
        assert cli.main(["keys", "--public-out", str(tmp_path / "p"),
                         "--private-out", str(tmp_path / "k")]) == 1
        assert not (tmp_path / "k").exists()

    def test_call(self, fake, capsys):
        fake.rpc_results["user.info"] = {"name": "Ada"}
        assert cli.main(["call", "user.info", "id=1"]) == 0
        assert json.loads(capsys.readouterr().out) == {"name": "Ada"}
