# installer.py
# Install one program from its container image.
#
# Sequence: probe installed -> token -> manifest -> layers -> locate binary
#           -> probe candidate -> decide -> (confirm) -> copy.

import time
from dataclasses import dataclass
from typing import Callable, Optional

import requests

from sbin import config
from sbin.modules.auth import RegistryAuth
from sbin.modules.errors import BinaryNotFound
from sbin.modules.finders.manifests import Platform, resolve_manifest
from sbin.modules.formatters import image_ref_for_program
from sbin.modules.gate import (
    InstallDecision,
    Version,
    ask_yes_no,
    decide_install,
    needs_confirmation,
    probe_candidate_version,
    probe_installed_version,
)
from sbin.modules.keepers.layers import materialize_layers
from sbin.modules.keepers.storage import ensure_output_dir, install_binary, prepare_staging


# =============================================================================
# Data Classes
# =============================================================================

@dataclass
class InstallResult:
    """Result of an install run."""
    program: str
    image: str
    decision: InstallDecision
    available_version: Version
    installed_version: Optional[Version] = None
    installed_path: Optional[str] = None
    declined: bool = False
    layers_applied: int = 0
    elapsed_time: float = 0.0

    @property
    def changed(self) -> bool:
        return self.installed_path is not None

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            "program": self.program,
            "image": self.image,
            "decision": self.decision.value,
            "available_version": str(self.available_version),
            "installed_version": str(self.installed_version) if self.installed_version else None,
            "installed_path": self.installed_path,
            "declined": self.declined,
            "layers_applied": self.layers_applied,
            "elapsed_time": self.elapsed_time,
        }


# =============================================================================
# Main Install Logic
# =============================================================================

def _report_decision(decision: InstallDecision, installed: Optional[Version], available: Version):
    if decision is InstallDecision.INSTALL:
        print(f"[*] Installing version {available}")
    elif decision is InstallDecision.UPGRADE:
        print(f"[*] Upgrade available: {installed} -> {available}")
    elif decision is InstallDecision.REINSTALL:
        print(f"[*] Reinstalling version {available} (forced)")
    elif decision is InstallDecision.SKIP:
        print(f"[+] Version {installed} is already installed; use --force to reinstall")
    else:
        print(f"[!] Installed version {installed} is newer than {available}; not downgrading")


def install_program(
    program: str,
    out_dir=config.DEFAULT_OUT_DIR,
    temp_dir=config.DEFAULT_TEMP_DIR,
    force: bool = False,
    platform: Optional[Platform] = None,
    confirm: Optional[Callable[[str], bool]] = None,
    session: Optional[requests.Session] = None,
    verbose: bool = True,
) -> InstallResult:
    """
    Fetch `program`'s image and install its binary into `out_dir`.

    Args:
        program: Program name (e.g., "bat"), or "namespace/name:tag"
        out_dir: Directory the binary is installed into
        temp_dir: Base directory for the per-program staging tree
        force: Reinstall the same version and skip the upgrade prompt
        platform: Platform to select from multi-arch images (default linux/amd64)
        confirm: Called with a question before upgrading; defaults to a stdin y/N prompt
        session: Optional requests session for registry calls
        verbose: Whether to show detailed progress output

    Returns:
        InstallResult describing the decision taken

    Raises:
        SbinError subclasses for every fatal failure
    """
    start_time = time.time()
    reference = image_ref_for_program(program)
    name = reference.program
    platform = platform or Platform.parse(config.DEFAULT_PLATFORM)
    confirm = confirm or ask_yes_no

    if verbose:
        print(f"[*] Using image: {reference} ({platform})")

    out_path = ensure_output_dir(out_dir)
    target = out_path / name
    installed = probe_installed_version(target, verbose=verbose)
    if verbose and target.exists():
        print(f"[*] Installed version: {installed or 'unknown'}")

    staging = prepare_staging(temp_dir, name)

    auth = RegistryAuth(reference, session=session)
    try:
        if verbose:
            print("[*] Getting auth token...")
        auth.authenticate()
        if verbose:
            print("[+] Got auth token.")

        manifest = resolve_manifest(auth, reference, platform, verbose=verbose)
        if verbose:
            print(f"[+] Manifest lists {len(manifest.layers)} layer(s)")

        materialize_layers(auth, reference, manifest.layers, staging.rootfs, staging.blobs, verbose=verbose)
    finally:
        # Always invalidate auth session when done
        auth.invalidate()

    binary = staging.binary_path(name)
    if not binary.is_file():
        raise BinaryNotFound(binary)

    available = probe_candidate_version(binary)
    decision = decide_install(installed, available, force)
    if verbose:
        _report_decision(decision, installed, available)

    result = InstallResult(
        program=name,
        image=str(reference),
        decision=decision,
        available_version=available,
        installed_version=installed,
        layers_applied=len(manifest.layers),
    )

    if decision.copies and needs_confirmation(decision, force):
        if not confirm(f"Upgrade {name} from {installed} to {available}?"):
            result.declined = True
            if verbose:
                print("[*] Upgrade declined; keeping the installed version")

    if decision.copies and not result.declined:
        installed_path = install_binary(binary, out_path, name)
        result.installed_path = str(installed_path)
        if verbose:
            print(f"[+] Binary installed at {installed_path}")

    result.elapsed_time = time.time() - start_time
    return result
