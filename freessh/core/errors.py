"""Exceptions raised by the login pipeline.

Every failure carries the name of the step that produced it so the CLI can
tell the user where the login stopped.
"""

from pathlib import Path

STEP_KEYGEN = "keygen"
STEP_IDENTITY_PROOF = "identity-proof"
STEP_CERTIFICATE = "certificate"
STEP_INSTALL = "install"


class LoginError(Exception):
    """Base class for failures of the login pipeline."""

    step = ""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return f"{self.step}: {self.message}" if self.step else self.message


class KeyGenerationError(LoginError):
    """The signing keypair could not be generated."""

    step = STEP_KEYGEN


class IdentityProofError(LoginError):
    """The OpenID provider did not produce a usable identity proof."""

    step = STEP_IDENTITY_PROOF


class CertificateConstructionError(LoginError):
    """Binding, signing or encoding the SSH certificate failed."""

    step = STEP_CERTIFICATE


class InstallationSlotExhausted(LoginError):
    """Every default key slot holds a key this tool does not own."""

    step = STEP_INSTALL

    def __init__(self, ssh_dir: Path, basenames: list[str]) -> None:
        self.ssh_dir = ssh_dir
        self.basenames = list(basenames)
        names = ", ".join(self.basenames)
        super().__init__(
            f"no default ssh key file free in {ssh_dir} (checked: {names}); "
            "move or delete one of these keys and log in again"
        )


class PartialWriteError(LoginError):
    """The private key was written but its certificate file was not."""

    step = STEP_INSTALL

    def __init__(self, private_path: Path, public_path: Path) -> None:
        self.private_path = private_path
        self.public_path = public_path
        super().__init__(
            f"wrote secret key {private_path} but failed to write "
            f"certificate {public_path}; the pair is inconsistent"
        )


class AuthorizedKeyError(ValueError):
    """An authorized-key style line could not be parsed."""
