"""Type definitions for the signing keypair, JWKs and identity proofs."""

from cryptography.hazmat.primitives.asymmetric.ec import (
    EllipticCurvePrivateKey,
    EllipticCurvePublicKey,
)
from pydantic import BaseModel, ConfigDict

ALG_ES256 = "ES256"
SSH_ALG_ECDSA_P256 = "ecdsa-sha2-nistp256"


class SigningKeypair(BaseModel):
    """Ephemeral keypair owned by one login run."""

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    alg: str = ALG_ES256
    private_key: EllipticCurvePrivateKey

    @property
    def public_key(self) -> EllipticCurvePublicKey:
        return self.private_key.public_key()

    @property
    def ssh_algorithm(self) -> str:
        return SSH_ALG_ECDSA_P256


class ECJWKEntry(BaseModel):
    """Public half of a P-256 key in JWK form."""

    kty: str = "EC"
    crv: str = "P-256"
    x: str
    y: str


class IdentityProof(BaseModel):
    """Opaque proof from the identity provider, bound to a public key.

    ``serialized`` is passed through untouched. ``public_key`` is the key the
    proof commits to and ``identity`` the label the provider vouches for.
    """

    model_config = ConfigDict(arbitrary_types_allowed=True, frozen=True)

    serialized: bytes
    public_key: EllipticCurvePublicKey
    identity: str
