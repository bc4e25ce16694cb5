"""OpenID provider adapters."""

import logging
import shlex
import subprocess

from freessh.core.errors import IdentityProofError

logger = logging.getLogger(__name__)


class CommandProvider:
    """Delegates the OIDC flow to an external helper command.

    The helper is invoked as ``<command> <cic_hash>``, must use the hash as the
    OIDC nonce and print the resulting ID token on stdout.
    """

    def __init__(self, command: str, timeout: float) -> None:
        self._argv = shlex.split(command)
        if not self._argv:
            raise IdentityProofError("no identity provider command configured")
        self._timeout = timeout

    def request_tokens(self, cic_hash: str) -> str:
        logger.info("requesting ID token via %s", self._argv[0])
        try:
            result = subprocess.run(
                [*self._argv, cic_hash],
                capture_output=True,
                text=True,
                timeout=self._timeout,
            )
        except subprocess.TimeoutExpired as exc:
            raise IdentityProofError(
                f"identity provider timed out after {self._timeout:g}s"
            ) from exc
        except OSError as exc:
            raise IdentityProofError(f"cannot run identity provider: {exc}") from exc

        if result.returncode != 0:
            raise IdentityProofError(
                f"identity provider exited with {result.returncode}: "
                f"{result.stderr.strip()}"
            )
        id_token = result.stdout.strip()
        if not id_token:
            raise IdentityProofError("identity provider returned no ID token")
        return id_token
