"""Installation of the key and certificate into a default SSH key slot.

Candidate slots are scanned in order. A slot is taken when its private key
file does not exist, or when both files exist and the public file carries
this tool's ownership tag. Anything else belongs to the user and is skipped.
"""

import enum
import logging
import os
from pathlib import Path

from pydantic import BaseModel

from freessh.core.errors import (
    AuthorizedKeyError,
    InstallationSlotExhausted,
    PartialWriteError,
)
from freessh.install.ownership import TOOL_OWNERSHIP, Ownership, parse_authorized_key

logger = logging.getLogger(__name__)

PRIVATE_KEY_MODE = 0o600
PUBLIC_KEY_MODE = 0o644
SSH_DIR_MODE = 0o700


class SlotState(enum.Enum):
    """Outcome of inspecting one candidate slot."""

    FREE = "free"
    OWNED = "owned"
    ORPHANED = "orphaned"
    FOREIGN = "foreign"
    UNREADABLE = "unreadable"

    @property
    def writable(self) -> bool:
        return self in (SlotState.FREE, SlotState.OWNED)


class KeySlot(BaseModel):
    """A private key path and its ``.pub`` companion."""

    basename: str
    private_path: Path
    public_path: Path


class InstallResult(BaseModel):
    """Where the key pair was written."""

    slot: KeySlot
    overwritten: bool


def candidate_slots(ssh_dir: Path, basenames: list[str]) -> list[KeySlot]:
    """Build the ordered slot list under ``ssh_dir``."""
    return [
        KeySlot(
            basename=name,
            private_path=ssh_dir / name,
            public_path=ssh_dir / f"{name}.pub",
        )
        for name in basenames
    ]


def inspect_slot(slot: KeySlot, ownership: Ownership = TOOL_OWNERSHIP) -> SlotState:
    """Classify ``slot`` without modifying anything on disk."""
    if not os.path.lexists(slot.private_path):
        return SlotState.FREE
    if not os.path.lexists(slot.public_path):
        return SlotState.ORPHANED

    try:
        entry = parse_authorized_key(slot.public_path.read_bytes())
    except OSError as exc:
        logger.warning("failed to read %s: %s", slot.public_path, exc)
        return SlotState.UNREADABLE
    except AuthorizedKeyError as exc:
        logger.warning("failed to parse %s: %s", slot.public_path, exc)
        return SlotState.UNREADABLE

    if ownership.owns(entry.comment):
        return SlotState.OWNED
    return SlotState.FOREIGN


def find_slot(
    ssh_dir: Path, basenames: list[str], ownership: Ownership = TOOL_OWNERSHIP
) -> tuple[KeySlot, SlotState] | None:
    """Return the first writable slot, or None when every slot is taken."""
    for slot in candidate_slots(ssh_dir, basenames):
        state = inspect_slot(slot, ownership)
        if state.writable:
            return slot, state
        logger.info("skipping %s: %s", slot.private_path, state.value)
    return None


def _write_file(path: Path, data: bytes, mode: int) -> None:
    """Write ``data`` to ``path`` and force ``mode`` even if the file existed."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    with os.fdopen(fd, "wb") as fh:
        os.fchmod(fh.fileno(), mode)
        fh.write(data)


def write_keys(
    slot: KeySlot,
    private_key: bytes,
    certificate: bytes,
    ownership: Ownership = TOOL_OWNERSHIP,
) -> None:
    """Write the private key, then the stamped certificate, into ``slot``."""
    slot.private_path.parent.mkdir(mode=SSH_DIR_MODE, parents=True, exist_ok=True)

    logger.info("writing secret key to %s", slot.private_path)
    _write_file(slot.private_path, private_key, PRIVATE_KEY_MODE)

    logger.info("writing public key to %s", slot.public_path)
    try:
        _write_file(slot.public_path, ownership.stamp(certificate), PUBLIC_KEY_MODE)
    except OSError as exc:
        raise PartialWriteError(slot.private_path, slot.public_path) from exc


def install_keys(
    ssh_dir: Path,
    basenames: list[str],
    private_key: bytes,
    certificate: bytes,
    ownership: Ownership = TOOL_OWNERSHIP,
) -> InstallResult:
    """Install the key pair into the first slot that is free or ours."""
    found = find_slot(ssh_dir, basenames, ownership)
    if found is None:
        raise InstallationSlotExhausted(ssh_dir, basenames)
    slot, state = found
    write_keys(slot, private_key, certificate, ownership)
    return InstallResult(slot=slot, overwritten=state is SlotState.OWNED)
