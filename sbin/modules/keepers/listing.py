# listing.py - Show the programs present in an install directory

from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from rich.console import Console
from rich.table import Table

from sbin import config
from sbin.modules.formatters import human_readable_size
from sbin.modules.formatters.formatters import _mode_to_string
from sbin.modules.gate import Version, is_executable, probe_installed_version


@dataclass
class InstalledProgram:
    """An executable found in the install directory."""
    name: str
    path: str
    size: int
    mode: int
    version: Optional[Version] = None

    def to_dict(self) -> dict:
        return {
            "name": self.name,
            "path": self.path,
            "size": self.size,
            "mode": _mode_to_string(self.mode),
            "version": str(self.version) if self.version else None,
        }


def list_installed(out_dir=config.DEFAULT_OUT_DIR, probe: bool = True) -> list[InstalledProgram]:
    """
    Executables in `out_dir`, sorted by name.

    Versions are probed the same way as before an install, so a binary that
    hangs or prints no version shows up with an unknown version.
    """
    root = Path(out_dir)
    if not root.is_dir():
        return []

    programs = []
    for path in sorted(root.iterdir(), key=lambda p: p.name):
        if path.name.startswith(".") or not is_executable(path):
            continue
        st = path.stat()
        version = probe_installed_version(path, verbose=False) if probe else None
        programs.append(InstalledProgram(
            name=path.name,
            path=str(path),
            size=st.st_size,
            mode=st.st_mode,
            version=version,
        ))
    return programs


def render_installed_table(programs: list[InstalledProgram], console: Optional[Console] = None):
    console = console or Console()
    if not programs:
        console.print("[*] No installed programs found")
        return

    table = Table(title="Installed programs")
    table.add_column("Name", style="bold")
    table.add_column("Version")
    table.add_column("Mode")
    table.add_column("Size", justify="right")
    table.add_column("Path")
    for program in programs:
        table.add_row(
            program.name,
            str(program.version) if program.version else "unknown",
            _mode_to_string(program.mode),
            human_readable_size(program.size),
            program.path,
        )
    console.print(table)
