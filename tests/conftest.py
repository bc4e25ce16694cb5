"""Shared test fixtures for freessh."""

import os
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ed25519, rsa

from freessh.crypto.keys import generate_signing_keypair
from freessh.crypto.types import SigningKeypair

ISSUER = "https://accounts.example.com"
CLIENT_ID = "freessh-test-client"
USER_EMAIL = "alice@example.com"

Snapshot = dict[str, tuple[bytes, int]]


class FakeOpenIdProvider:
    """Issues RS256 ID tokens that echo the requested nonce."""

    def __init__(self, email: str | None = USER_EMAIL) -> None:
        self._key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        self.email = email
        self.nonce_override: str | None = None
        self.requested: list[str] = []

    @property
    def public_key(self) -> rsa.RSAPublicKey:
        return self._key.public_key()

    def request_tokens(self, cic_hash: str) -> str:
        self.requested.append(cic_hash)
        now = datetime.now(UTC)
        claims = {
            "iss": ISSUER,
            "sub": "user-1",
            "aud": CLIENT_ID,
            "iat": now,
            "exp": now + timedelta(hours=1),
            "nonce": self.nonce_override or cic_hash,
        }
        if self.email is not None:
            claims["email"] = self.email
        return jwt.encode(
            claims, self._key, algorithm="RS256", headers={"kid": "op-key-1"}
        )


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
    """Keep real settings and the real ~/.ssh out of every test."""
    for name in list(os.environ):
        if name.startswith("FREESSH_"):
            monkeypatch.delenv(name)
    monkeypatch.setenv("HOME", str(tmp_path / "home"))


@pytest.fixture
def ssh_dir(tmp_path: Path) -> Path:
    """An existing, empty SSH directory."""
    path = tmp_path / "ssh"
    path.mkdir(mode=0o700)
    return path


@pytest.fixture
def keypair() -> SigningKeypair:
    return generate_signing_keypair()


@pytest.fixture
def fake_op() -> FakeOpenIdProvider:
    return FakeOpenIdProvider()


@pytest.fixture
def foreign_key_line() -> Callable[[str], bytes]:
    """Build an ssh-ed25519 public key line with the given comment."""

    def _make(comment: str) -> bytes:
        public = ed25519.Ed25519PrivateKey.generate().public_key()
        line = public.public_bytes(
            encoding=serialization.Encoding.OpenSSH,
            format=serialization.PublicFormat.OpenSSH,
        )
        return line + b" " + comment.encode() + b"\n"

    return _make


@pytest.fixture
def write_slot(ssh_dir: Path) -> Callable[..., None]:
    """Populate a key slot with placeholder private key and given public data."""

    def _write(name: str, public: bytes | None) -> None:
        (ssh_dir / name).write_bytes(b"existing private key for " + name.encode())
        if public is not None:
            (ssh_dir / f"{name}.pub").write_bytes(public)

    return _write


def snapshot_tree(root: Path) -> Snapshot:
    """Capture content and mode of every file under ``root``."""
    result: Snapshot = {}
    for path in sorted(root.rglob("*")):
        if path.is_file():
            result[str(path.relative_to(root))] = (
                path.read_bytes(),
                path.stat().st_mode,
            )
    return result


@pytest.fixture
def snapshot() -> Callable[[Path], Snapshot]:
    return snapshot_tree
