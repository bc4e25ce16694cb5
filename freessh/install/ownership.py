"""Ownership tags on installed public key files.

A public key file written by this tool carries a fixed comment. That comment
is the only evidence that a key slot may be overwritten, so the check is a
whole-field, case-sensitive equality and nothing looser.
"""

import re

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives.serialization import (
    SSHCertificate,
    load_ssh_public_identity,
)
from pydantic import BaseModel, ConfigDict

from freessh.core.errors import AuthorizedKeyError

OWNERSHIP_MARKER = "openpubkey"
FIELD_SEPARATORS = " \t"
_FIELD_SPLIT = re.compile(r"[ \t]+")


class Ownership(BaseModel):
    """Provenance tag stamped on installed public key files."""

    model_config = ConfigDict(frozen=True)

    tag: str

    def owns(self, comment: str | None) -> bool:
        """Return True only if ``comment`` is exactly this tag."""
        return comment is not None and comment == self.tag

    def stamp(self, line: bytes) -> bytes:
        """Append the tag as the comment field of an authorized-key line."""
        return line + b" " + self.tag.encode()


TOOL_OWNERSHIP = Ownership(tag=OWNERSHIP_MARKER)


class AuthorizedKey(BaseModel):
    """One parsed ``<type> <base64> [comment]`` entry."""

    model_config = ConfigDict(frozen=True)

    key_type: str
    is_certificate: bool = False
    comment: str | None = None


def parse_authorized_key(data: bytes) -> AuthorizedKey:
    """Parse the first key entry of an authorized-key style file.

    Lines end at ``\n`` (an optional ``\r`` before it is dropped) and fields
    are separated by spaces or tabs only. Blank lines and ``#`` lines are
    skipped. The comment is everything after the key data.
    """
    try:
        text = data.decode("utf-8")
    except UnicodeDecodeError as exc:
        raise AuthorizedKeyError(f"not valid UTF-8: {exc}") from exc

    for raw_line in text.split("\n"):
        line = raw_line.removesuffix("\r").lstrip(FIELD_SEPARATORS)
        if not line or line.startswith("#"):
            continue
        fields = _FIELD_SPLIT.split(line, maxsplit=2)
        if len(fields) < 2:
            raise AuthorizedKeyError("missing key data")
        key_type, key_data = fields[0], fields[1]
        try:
            key = load_ssh_public_identity(f"{key_type} {key_data}".encode())
        except (ValueError, UnsupportedAlgorithm) as exc:
            raise AuthorizedKeyError(f"invalid {key_type} key: {exc}") from exc
        comment = fields[2] if len(fields) == 3 and fields[2] else None
        return AuthorizedKey(
            key_type=key_type,
            is_certificate=isinstance(key, SSHCertificate),
            comment=comment,
        )

    raise AuthorizedKeyError("no key entry found")
