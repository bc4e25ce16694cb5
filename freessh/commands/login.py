"""The login command: prove an identity, certify a fresh key, install it."""

import logging

from freessh.core.settings import LoginSettings
from freessh.crypto.keys import generate_signing_keypair
from freessh.crypto.types import ALG_ES256, SigningKeypair
from freessh.install.installer import InstallResult, install_keys
from freessh.opk.client import OpenIdProvider, OpkClient
from freessh.sshcert.binder import bind, sign_certificate
from freessh.sshcert.formatter import format_certificate, format_private_key

logger = logging.getLogger(__name__)


def create_ssh_cert(
    client: OpkClient,
    keypair: SigningKeypair,
    gq_sign: bool,
    principals: list[str],
) -> tuple[bytes, bytes]:
    """Return (certificate line, private key text) for ``keypair``.

    Nothing is written to disk here, so a failure or cancellation at this
    point leaves the filesystem untouched.
    """
    proof = client.oidc_auth(keypair, keypair.alg, {}, gq_sign)
    unsigned = bind(proof, principals)
    cert = sign_certificate(unsigned, keypair, keypair.ssh_algorithm)
    return format_certificate(cert), format_private_key(keypair)


def login(op: OpenIdProvider, settings: LoginSettings | None = None) -> InstallResult:
    """Run a full login against ``op`` and install the resulting key pair."""
    settings = settings or LoginSettings()

    # An empty principal list leaves principal enforcement to server policy.
    keypair = generate_signing_keypair(ALG_ES256)
    certificate, private_key = create_ssh_cert(
        OpkClient(op), keypair, settings.gq_sign, settings.principals
    )
    result = install_keys(
        settings.ssh_dir, settings.key_basenames, private_key, certificate
    )
    logger.info(
        "installed certificate in %s (%s)",
        result.slot.basename,
        "replaced previous login" if result.overwritten else "new slot",
    )
    return result
