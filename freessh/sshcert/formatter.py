"""On-disk encodings for the private key and the certificate."""

import asyncssh
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.serialization import SSHCertificate

from freessh.core.errors import CertificateConstructionError
from freessh.crypto.types import SigningKeypair

PRIVATE_KEY_COMMENT = "openpubkey cert"


def format_private_key(
    keypair: SigningKeypair, comment: str = PRIVATE_KEY_COMMENT
) -> bytes:
    """Encode the private key as OpenSSH PEM text with ``comment`` embedded."""
    pkcs8 = keypair.private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )
    try:
        key = asyncssh.import_private_key(pkcs8)
    except asyncssh.KeyImportError as exc:
        raise CertificateConstructionError(f"cannot encode private key: {exc}") from exc
    key.set_comment(comment)
    return key.export_private_key("openssh")


def format_certificate(cert: SSHCertificate) -> bytes:
    """Encode ``cert`` as one authorized-key line without a line terminator."""
    return cert.public_bytes().rstrip(b"\r\n")
