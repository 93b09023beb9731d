"""Decide what an install run does, given the installed and available versions."""

import sys
from enum import Enum
from typing import Optional

from sbin.modules.gate.versions import Version


class InstallDecision(Enum):
    INSTALL = "install"                  # nothing usable installed
    UPGRADE = "upgrade"                  # available > installed
    REINSTALL = "reinstall"              # same version, forced
    SKIP = "skip"                        # same version, not forced
    DOWNGRADE_BLOCK = "downgrade-block"  # available < installed

    @property
    def copies(self) -> bool:
        """Whether this decision ends in copying the binary into place."""
        return self in (InstallDecision.INSTALL, InstallDecision.UPGRADE, InstallDecision.REINSTALL)


def decide_install(installed: Optional[Version], available: Version, force: bool = False) -> InstallDecision:
    """
    Classify the run.

    `installed` is None when no binary exists or its version is unknown.
    Force only turns a same-version Skip into a Reinstall; it never allows
    a downgrade.
    """
    if installed is None:
        return InstallDecision.INSTALL
    if available > installed:
        return InstallDecision.UPGRADE
    if available == installed:
        return InstallDecision.REINSTALL if force else InstallDecision.SKIP
    return InstallDecision.DOWNGRADE_BLOCK


def needs_confirmation(decision: InstallDecision, force: bool = False) -> bool:
    """Upgrades ask before replacing the installed binary unless forced."""
    return decision is InstallDecision.UPGRADE and not force


def ask_yes_no(prompt: str) -> bool:
    """
    Interactive y/N prompt on stdin; anything but y/yes (or EOF) is no.

    The question goes to stderr so stdout stays clean for --json output.
    """
    sys.stderr.write(f"{prompt} (y/N) ")
    sys.stderr.flush()
    try:
        answer = input()
    except EOFError:
        return False
    return answer.strip().lower() in ("y", "yes")
