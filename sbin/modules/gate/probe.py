# probe.py
# Ask a binary for its version by running it with --version.
#
# The installed binary is probed on a worker thread with a deadline; any
# failure there means "version unknown". The downloaded candidate is probed
# synchronously and must answer.

import os
import queue
import subprocess
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from sbin import config
from sbin.modules.errors import VersionProbeError
from sbin.modules.gate.versions import Version, parse_version


@dataclass
class ProbeOutput:
    """What a finished probe process printed."""
    returncode: int
    stdout: str
    stderr: str

    @property
    def text(self) -> str:
        """Prefer stdout; some tools print their banner on stderr."""
        return self.stdout if self.stdout.strip() else self.stderr


def _spawn(binary, version_flag: str) -> subprocess.Popen:
    return subprocess.Popen(
        [str(binary), version_flag],
        stdin=subprocess.DEVNULL,
        stdout=subprocess.PIPE,
        stderr=subprocess.PIPE,
        text=True,
        errors="replace",
    )


def probe_installed_version(
    binary,
    timeout: float = config.INSTALLED_PROBE_TIMEOUT,
    version_flag: str = config.VERSION_FLAG,
    verbose: bool = True,
) -> Optional[Version]:
    """
    Version of an already installed binary, or None if it cannot be told.

    A missing binary, spawn failure, non-zero exit, unparsable output and a
    process that does not answer within `timeout` seconds all give None.
    A process still running at the deadline is killed.
    """
    binary = Path(binary)
    if not binary.is_file():
        return None

    try:
        proc = _spawn(binary, version_flag)
    except OSError as e:
        if verbose:
            print(f"  [!] Could not run {binary}: {e}")
        return None

    results: queue.Queue = queue.Queue(maxsize=1)

    def worker():
        try:
            stdout, stderr = proc.communicate()
        except (OSError, ValueError):
            # Queue left empty; the caller reads that as unknown.
            return
        results.put(ProbeOutput(proc.returncode, stdout or "", stderr or ""))

    threading.Thread(target=worker, name=f"probe-{binary.name}", daemon=True).start()

    try:
        output = results.get(timeout=timeout)
    except queue.Empty:
        proc.kill()
        if verbose:
            print(f"  [!] {binary} did not answer {version_flag} within {timeout:g}s")
        return None

    if output.returncode != 0:
        if verbose:
            print(f"  [!] {binary} {version_flag} exited with {output.returncode}")
        return None

    version = parse_version(output.text)
    if version is None and verbose:
        print(f"  [!] Could not parse a version from {binary} output")
    return version


def probe_candidate_version(
    binary,
    timeout: float = config.CANDIDATE_PROBE_TIMEOUT,
    version_flag: str = config.VERSION_FLAG,
) -> Version:
    """
    Version of the freshly extracted binary.

    Raises:
        VersionProbeError: The binary cannot run, times out, exits non-zero
            or prints nothing that parses as a version
    """
    binary = Path(binary)
    try:
        completed = subprocess.run(
            [str(binary), version_flag],
            stdin=subprocess.DEVNULL,
            capture_output=True,
            text=True,
            errors="replace",
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as e:
        raise VersionProbeError(f"{binary} did not answer {version_flag} within {timeout:g}s", binary) from e
    except OSError as e:
        raise VersionProbeError(f"Cannot run {binary}: {e}", binary) from e

    output = ProbeOutput(completed.returncode, completed.stdout or "", completed.stderr or "")
    if output.returncode != 0:
        raise VersionProbeError(
            f"{binary} {version_flag} exited with {output.returncode}: {output.stderr.strip()}", binary
        )

    version = parse_version(output.text)
    if version is None:
        first_line = output.text.strip().splitlines()[0] if output.text.strip() else ""
        raise VersionProbeError(f"Cannot parse a version from {binary} output: {first_line!r}", binary)
    return version


def is_executable(path) -> bool:
    path = Path(path)
    return path.is_file() and os.access(path, os.X_OK)
