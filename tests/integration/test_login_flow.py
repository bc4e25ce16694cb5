"""Integration test: login against a fake provider, then verify the installed files."""

import json
from collections.abc import Callable
from pathlib import Path

import jwt
import pytest
from conftest import CLIENT_ID, USER_EMAIL, FakeOpenIdProvider
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import SSHCertificate

from freessh.commands.login import login
from freessh.core.errors import InstallationSlotExhausted
from freessh.core.settings import LoginSettings
from freessh.install.ownership import parse_authorized_key


def _installed_cert(path: Path) -> SSHCertificate:
    cert = serialization.load_ssh_public_identity(path.read_bytes())
    assert isinstance(cert, SSHCertificate)
    return cert


@pytest.mark.integration
class TestFullLoginFlow:
    """End-to-end login flow."""

    def test_installed_pair_is_consistent(
        self, ssh_dir: Path, fake_op: FakeOpenIdProvider
    ) -> None:
        login(fake_op, LoginSettings(ssh_dir=ssh_dir, principals=["alice"]))

        private = serialization.load_ssh_private_key(
            (ssh_dir / "id_ecdsa").read_bytes(), password=None
        )
        cert = _installed_cert(ssh_dir / "id_ecdsa.pub")
        cert.verify_cert_signature()
        assert cert.public_key().public_bytes(
            serialization.Encoding.OpenSSH, serialization.PublicFormat.OpenSSH
        ) == private.public_key().public_bytes(
            serialization.Encoding.OpenSSH, serialization.PublicFormat.OpenSSH
        )
        assert cert.key_id == USER_EMAIL.encode()
        assert cert.valid_principals == [b"alice"]
        assert parse_authorized_key((ssh_dir / "id_ecdsa.pub").read_bytes()).comment == (
            "openpubkey"
        )

    def test_embedded_proof_verifies_against_provider(
        self, ssh_dir: Path, fake_op: FakeOpenIdProvider
    ) -> None:
        login(fake_op, LoginSettings(ssh_dir=ssh_dir))
        cert = _installed_cert(ssh_dir / "id_ecdsa.pub")
        proof = json.loads(cert.extensions[b"openpubkey-pkt"])
        op_sig, cic_sig = proof["signatures"]

        op_token = f"{op_sig['protected']}.{proof['payload']}.{op_sig['signature']}"
        claims = jwt.decode(
            op_token, fake_op.public_key, algorithms=["RS256"], audience=CLIENT_ID
        )
        assert claims["nonce"] == fake_op.requested[0]

        cic_token = f"{cic_sig['protected']}.{proof['payload']}.{cic_sig['signature']}"
        jwt.api_jws.decode(cic_token, cert.public_key(), algorithms=["ES256"])

    def test_second_login_replaces_own_key(
        self, ssh_dir: Path, fake_op: FakeOpenIdProvider
    ) -> None:
        settings = LoginSettings(ssh_dir=ssh_dir)
        first = login(fake_op, settings)
        first_private = (ssh_dir / "id_ecdsa").read_bytes()

        second = login(fake_op, settings)

        assert first.overwritten is False
        assert second.overwritten is True
        assert second.slot.basename == "id_ecdsa"
        assert (ssh_dir / "id_ecdsa").read_bytes() != first_private
        assert not (ssh_dir / "id_dsa").exists()

    def test_foreign_keys_block_login(
        self,
        ssh_dir: Path,
        fake_op: FakeOpenIdProvider,
        write_slot: Callable[..., None],
        foreign_key_line: Callable[[str], bytes],
        snapshot: Callable[[Path], dict],
    ) -> None:
        write_slot("id_ecdsa", foreign_key_line("user@host"))
        write_slot("id_dsa", foreign_key_line("user@host"))
        before = snapshot(ssh_dir)

        with pytest.raises(InstallationSlotExhausted):
            login(fake_op, LoginSettings(ssh_dir=ssh_dir))

        assert snapshot(ssh_dir) == before
