"""ECDSA signing key generation and JWK conversion."""

import base64

from cryptography.hazmat.primitives.asymmetric import ec

from freessh.core.errors import KeyGenerationError
from freessh.crypto.types import ALG_ES256, ECJWKEntry, SigningKeypair

P256_COORDINATE_SIZE = 32


def generate_signing_keypair(alg: str = ALG_ES256) -> SigningKeypair:
    """Generate a new P-256 keypair for one login run."""
    if alg != ALG_ES256:
        raise KeyGenerationError(f"unsupported key algorithm: {alg}")
    try:
        private_key = ec.generate_private_key(ec.SECP256R1())
    except Exception as exc:
        raise KeyGenerationError(f"failed to generate keypair: {exc}") from exc
    return SigningKeypair(alg=alg, private_key=private_key)


def _int_to_base64url(value: int, size: int) -> str:
    """Encode an integer as fixed-width base64url without padding."""
    raw = value.to_bytes(size, byteorder="big")
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode()


def _base64url_to_int(value: str) -> int:
    padded = value + "=" * (-len(value) % 4)
    return int.from_bytes(base64.urlsafe_b64decode(padded), byteorder="big")


def public_key_to_jwk(public_key: ec.EllipticCurvePublicKey) -> ECJWKEntry:
    """Convert a P-256 public key to JWK format."""
    if not isinstance(public_key.curve, ec.SECP256R1):
        raise ValueError(f"unsupported curve: {public_key.curve.name}")
    numbers = public_key.public_numbers()
    return ECJWKEntry(
        x=_int_to_base64url(numbers.x, P256_COORDINATE_SIZE),
        y=_int_to_base64url(numbers.y, P256_COORDINATE_SIZE),
    )


def jwk_to_public_key(entry: ECJWKEntry) -> ec.EllipticCurvePublicKey:
    """Rebuild a P-256 public key from its JWK form."""
    if entry.kty != "EC" or entry.crv != "P-256":
        raise ValueError(f"unsupported JWK: kty={entry.kty} crv={entry.crv}")
    numbers = ec.EllipticCurvePublicNumbers(
        x=_base64url_to_int(entry.x),
        y=_base64url_to_int(entry.y),
        curve=ec.SECP256R1(),
    )
    return numbers.public_key()
