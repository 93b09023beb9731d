# storage.py - Staging directories and the final install copy
#
# Each program gets its own subtree under the temp dir:
#   <temp>/<program>/blobs/   downloaded layer archives
#   <temp>/<program>/rootfs/  layers applied in order

import os
import shutil
import stat
import tempfile
from dataclasses import dataclass
from pathlib import Path

from sbin import config
from sbin.modules.errors import CopyError


# =============================================================================
# Staging
# =============================================================================

@dataclass
class StagingArea:
    """Disposable per-program working tree for one install run."""
    base: Path
    rootfs: Path
    blobs: Path

    def binary_path(self, program: str) -> Path:
        """Where `program` must be inside the reconstructed filesystem."""
        return self.rootfs.joinpath(*config.BINARY_DIR, program)


def prepare_staging(temp_dir, program: str) -> StagingArea:
    """
    Create a fresh staging tree for `program`.

    A tree left by an earlier run of the same program is removed first so
    layers never apply on top of stale files.

    Raises:
        ValueError: `program` does not name a direct child of `temp_dir`
    """
    base = Path(temp_dir) / program
    if not program or base.resolve().parent != Path(temp_dir).resolve():
        raise ValueError(f"Program name {program!r} does not map to a directory under {temp_dir}")
    if base.exists():
        shutil.rmtree(base)
    rootfs = base / "rootfs"
    blobs = base / "blobs"
    rootfs.mkdir(parents=True)
    blobs.mkdir(parents=True)
    return StagingArea(base=base, rootfs=rootfs, blobs=blobs)


def ensure_output_dir(out_dir) -> Path:
    path = Path(out_dir)
    path.mkdir(parents=True, exist_ok=True)
    return path


# =============================================================================
# Install Copy
# =============================================================================

def make_executable(path):
    """Add execute bits wherever read bits are set (no-op without a permission model)."""
    if os.name == "nt":
        return
    mode = os.stat(path).st_mode
    exec_bits = 0
    if mode & stat.S_IRUSR:
        exec_bits |= stat.S_IXUSR
    if mode & stat.S_IRGRP:
        exec_bits |= stat.S_IXGRP
    if mode & stat.S_IROTH:
        exec_bits |= stat.S_IXOTH
    os.chmod(path, mode | exec_bits | stat.S_IXUSR)


def install_binary(source, target_dir, name=None) -> Path:
    """
    Copy `source` into `target_dir` and mark it executable.

    The bytes go to a temp file in the target directory which is renamed
    over the destination only after the copy and chmod succeed, so an
    interrupted install never leaves a truncated binary behind.

    Returns:
        Path of the installed binary

    Raises:
        CopyError: Copy, chmod or rename failed (temp file is removed)
    """
    source = Path(source)
    target = Path(target_dir) / (name or source.name)

    tmp_path = None
    try:
        fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
        tmp_path = Path(tmp_name)
        with os.fdopen(fd, "wb") as dst, open(source, "rb") as src:
            shutil.copyfileobj(src, dst)
        os.chmod(tmp_path, 0o644)
        make_executable(tmp_path)
        os.replace(tmp_path, target)
    except OSError as e:
        if tmp_path is not None and tmp_path.exists():
            tmp_path.unlink()
        raise CopyError(f"Failed to install {source} to {target}: {e}", target) from e

    return target
