"""Binding identity proofs into SSH user certificates."""

from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ec import EllipticCurvePublicKey
from cryptography.hazmat.primitives.serialization import (
    SSHCertificate,
    SSHCertificateBuilder,
    SSHCertificateType,
)
from pydantic import BaseModel, ConfigDict

from freessh.core.errors import CertificateConstructionError
from freessh.crypto.types import SSH_ALG_ECDSA_P256, IdentityProof, SigningKeypair

PKT_EXTENSION = "openpubkey-pkt"
CERT_TIME_INFINITY = 2**64 - 1
DEFAULT_EXTENSIONS = (
    "permit-X11-forwarding",
    "permit-agent-forwarding",
    "permit-port-forwarding",
    "permit-pty",
    "permit-user-rc",
)


class UnsignedCertificate(BaseModel):
    """User certificate fields before signing.

    An empty ``principals`` tuple means the certificate names no principals
    and the verifying server's policy decides who may log in.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    public_key: EllipticCurvePublicKey
    key_id: str
    principals: tuple[str, ...] = ()
    extensions: dict[str, bytes]
    serial: int = 0
    valid_after: int = 0
    valid_before: int = CERT_TIME_INFINITY


def bind(proof: IdentityProof, principals: list[str]) -> UnsignedCertificate:
    """Embed ``proof`` in a certificate for the key it commits to."""
    extensions = {name: b"" for name in DEFAULT_EXTENSIONS}
    extensions[PKT_EXTENSION] = proof.serialized
    return UnsignedCertificate(
        public_key=proof.public_key,
        key_id=proof.identity,
        principals=tuple(principals),
        extensions=extensions,
    )


def _openssh_public_bytes(key: EllipticCurvePublicKey) -> bytes:
    return key.public_bytes(
        encoding=serialization.Encoding.OpenSSH,
        format=serialization.PublicFormat.OpenSSH,
    )


def sign_certificate(
    cert: UnsignedCertificate,
    keypair: SigningKeypair,
    algorithm: str = SSH_ALG_ECDSA_P256,
) -> SSHCertificate:
    """Self-sign ``cert`` with the keypair it was issued for.

    Only ``algorithm`` is accepted; it must be the keypair's own SSH
    signature algorithm.
    """
    if algorithm != keypair.ssh_algorithm:
        raise CertificateConstructionError(
            f"signature algorithm {algorithm} does not match key algorithm "
            f"{keypair.ssh_algorithm}"
        )
    if _openssh_public_bytes(cert.public_key) != _openssh_public_bytes(
        keypair.public_key
    ):
        raise CertificateConstructionError(
            "certificate key is not the public half of the signing keypair"
        )

    builder = (
        SSHCertificateBuilder()
        .public_key(cert.public_key)
        .serial(cert.serial)
        .type(SSHCertificateType.USER)
        .key_id(cert.key_id.encode())
        .valid_after(cert.valid_after)
        .valid_before(cert.valid_before)
    )
    if cert.principals:
        builder = builder.valid_principals([p.encode() for p in cert.principals])
    else:
        builder = builder.valid_for_all_principals()
    for name, value in sorted(cert.extensions.items()):
        builder = builder.add_extension(name.encode(), value)

    try:
        return builder.sign(keypair.private_key)
    except (TypeError, ValueError) as exc:
        raise CertificateConstructionError(f"failed to sign certificate: {exc}") from exc
