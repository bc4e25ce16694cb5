"""Client side of the OpenPubkey identity proof.

The OpenID provider signs an ID token whose nonce commits to the client
instance claims (CIC). The client then co-signs the same payload with the
ephemeral key named in the CIC, producing a proof that binds the verified
identity to that key.
"""

import base64
import hashlib
import json
import logging
import secrets
from typing import Any, Protocol

import jwt

from freessh.core.errors import IdentityProofError
from freessh.crypto.keys import jwk_to_public_key, public_key_to_jwk
from freessh.crypto.types import ECJWKEntry, IdentityProof, SigningKeypair

logger = logging.getLogger(__name__)

CIC_TYPE = "CIC"
RZ_BYTES = 32
RESERVED_CIC_CLAIMS = frozenset({"alg", "upk", "rz", "typ"})


class OpenIdProvider(Protocol):
    """Runs the OIDC flow and returns an ID token carrying ``cic_hash`` as nonce."""

    def request_tokens(self, cic_hash: str) -> str: ...


def _b64url(raw: bytes) -> str:
    return base64.urlsafe_b64encode(raw).rstrip(b"=").decode("ascii")


def _b64url_decode(value: str) -> bytes:
    return base64.urlsafe_b64decode(value + "=" * (-len(value) % 4))


def build_cic(
    signer: SigningKeypair, alg: str, extra_claims: dict[str, Any]
) -> dict[str, Any]:
    """Assemble the client instance claims for ``signer``."""
    clash = RESERVED_CIC_CLAIMS.intersection(extra_claims)
    if clash:
        raise IdentityProofError(f"reserved CIC claims supplied: {sorted(clash)}")
    cic: dict[str, Any] = {
        "typ": CIC_TYPE,
        "alg": alg,
        "upk": public_key_to_jwk(signer.public_key).model_dump(),
        "rz": secrets.token_hex(RZ_BYTES),
    }
    cic.update(extra_claims)
    return cic


def encode_cic_header(cic: dict[str, Any]) -> str:
    """Encode the CIC exactly as it appears as the JWS protected header."""
    raw = json.dumps(cic, separators=(",", ":"), sort_keys=True).encode()
    return _b64url(raw)


def commitment(protected_header: str) -> str:
    """SHA3-256 commitment to the CIC header, used as the OIDC nonce."""
    return _b64url(hashlib.sha3_256(protected_header.encode("ascii")).digest())


class OpkClient:
    """Obtains identity proofs from an OpenID provider."""

    def __init__(self, op: OpenIdProvider) -> None:
        self._op = op

    def oidc_auth(
        self,
        signer: SigningKeypair,
        alg: str,
        extra_claims: dict[str, Any],
        gq_sign: bool,
    ) -> IdentityProof:
        """Run the provider flow and bind the resulting ID token to ``signer``."""
        if gq_sign:
            raise IdentityProofError("GQ signatures are not supported")
        if alg != signer.alg:
            raise IdentityProofError(
                f"algorithm {alg} does not match signing key algorithm {signer.alg}"
            )

        cic = build_cic(signer, alg, extra_claims)
        protected = encode_cic_header(cic)
        nonce = commitment(protected)

        try:
            id_token = self._op.request_tokens(nonce)
        except IdentityProofError:
            raise
        except Exception as exc:
            raise IdentityProofError(f"OpenID provider failed: {exc}") from exc

        op_header, payload_segment, op_signature, claims = _split_id_token(id_token)
        if claims.get("nonce") != nonce:
            raise IdentityProofError("ID token nonce does not commit to this key")
        identity = claims.get("email") or claims.get("sub")
        if not identity:
            raise IdentityProofError("ID token has neither email nor sub claim")

        cic_token = jwt.api_jws.encode(
            _b64url_decode(payload_segment),
            signer.private_key,
            algorithm=alg,
            headers={k: v for k, v in cic.items() if k != "alg"},
        )
        cic_header, cic_payload, cic_signature = cic_token.split(".")
        if cic_header != protected or cic_payload != payload_segment:
            raise IdentityProofError("CIC signature does not match the committed header")

        serialized = json.dumps(
            {
                "payload": payload_segment,
                "signatures": [
                    {"protected": op_header, "signature": op_signature},
                    {"protected": cic_header, "signature": cic_signature},
                ],
            },
            separators=(",", ":"),
        ).encode()
        logger.debug("identity proof issued for %s", identity)
        return IdentityProof(
            serialized=serialized,
            public_key=jwk_to_public_key(ECJWKEntry.model_validate(cic["upk"])),
            identity=str(identity),
        )


def _split_id_token(id_token: str) -> tuple[str, str, str, dict[str, Any]]:
    """Split a compact ID token and decode its claims without verifying."""
    token = id_token.strip()
    parts = token.split(".")
    if len(parts) != 3:
        raise IdentityProofError("ID token is not a compact JWS")
    try:
        claims = jwt.decode(token, options={"verify_signature": False})
    except jwt.PyJWTError as exc:
        raise IdentityProofError(f"malformed ID token: {exc}") from exc
    return parts[0], parts[1], parts[2], claims
