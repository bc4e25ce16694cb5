#!/usr/bin/env python3
"""
freessh command line.

Usage:
    freessh login --provider-command "oidc-helper --issuer https://accounts.example.com"
    freessh login --principal alice --principal deploy
    freessh login --ssh-dir /tmp/ssh --key-name id_ecdsa --key-name id_opk

The provider command receives the nonce to use as its last argument and must
print the ID token on stdout. Every flag falls back to the matching
FREESSH_* environment variable.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from freessh.commands.login import login
from freessh.core.errors import (
    InstallationSlotExhausted,
    LoginError,
    PartialWriteError,
)
from freessh.core.settings import LoginSettings
from freessh.opk.providers import CommandProvider

EXIT_OK = 0
EXIT_LOGIN_FAILED = 1
EXIT_NO_SLOT = 2
EXIT_PARTIAL_WRITE = 3


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="freessh",
        description="Issue an OpenID Connect bound SSH certificate",
    )
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    commands = parser.add_subparsers(dest="command", required=True)

    login_cmd = commands.add_parser("login", help="Log in and install an SSH key")
    login_cmd.add_argument(
        "--provider-command", help="Command that performs the OIDC flow"
    )
    login_cmd.add_argument(
        "--provider-timeout", type=float, help="Seconds to wait for the provider"
    )
    login_cmd.add_argument(
        "--principal",
        action="append",
        dest="principals",
        help="Login name the certificate is valid for (repeatable)",
    )
    login_cmd.add_argument(
        "--ssh-dir", type=Path, help="Directory the key pair is installed into"
    )
    login_cmd.add_argument(
        "--key-name",
        action="append",
        dest="key_basenames",
        help="Candidate key file name, in priority order (repeatable)",
    )
    return parser


def load_settings(args: argparse.Namespace) -> LoginSettings:
    """Merge command line flags over environment settings."""
    overrides: dict[str, Any] = {}
    for field in (
        "provider_command",
        "provider_timeout",
        "principals",
        "ssh_dir",
        "key_basenames",
    ):
        value = getattr(args, field, None)
        if value is not None:
            overrides[field] = value
    if args.verbose:
        overrides["log_level"] = "DEBUG"
    return LoginSettings(**overrides)


def run_login(settings: LoginSettings) -> int:
    try:
        op = CommandProvider(settings.provider_command, settings.provider_timeout)
        result = login(op, settings)
    except InstallationSlotExhausted as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_NO_SLOT
    except PartialWriteError as exc:
        print(f"Error: {exc}", file=sys.stderr)
        return EXIT_PARTIAL_WRITE
    except LoginError as exc:
        print(f"Login failed at {exc}", file=sys.stderr)
        return EXIT_LOGIN_FAILED
    except OSError as exc:
        print(f"Failed to write SSH keys to filesystem: {exc}", file=sys.stderr)
        return EXIT_LOGIN_FAILED

    print(f"Wrote secret key to {result.slot.private_path}")
    print(f"Wrote certificate to {result.slot.public_path}")
    return EXIT_OK


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    try:
        settings = load_settings(args)
    except ValidationError as exc:
        parser.error(str(exc))

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    if args.command == "login":
        return run_login(settings)
    parser.error(f"unknown command: {args.command}")
    return EXIT_LOGIN_FAILED


if __name__ == "__main__":
    sys.exit(main())
