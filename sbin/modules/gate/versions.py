"""Parse and order the semantic versions programs report on ``--version``."""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from functools import total_ordering
from typing import Optional


__all__ = [
    "Version",
    "parse_version",
    "parse_version_token",
]


_SEMVER = re.compile(
    r"^v?(?P<major>0|[1-9]\d*)\.(?P<minor>0|[1-9]\d*)\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<pre>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?"
    r"(?:\+(?P<build>[0-9A-Za-z-]+(?:\.[0-9A-Za-z-]+)*))?$"
)

# Punctuation commonly glued to the version in banners like "tool (v1.2.3),"
_STRIP = "()[],;:'\""


@total_ordering
@dataclass(frozen=True)
class Version:
    """A semantic version; ordered by SemVer 2.0 precedence (build metadata ignored)."""

    major: int
    minor: int
    patch: int
    prerelease: tuple[str, ...] = ()
    build: tuple[str, ...] = field(default=(), compare=False)

    def __str__(self) -> str:
        text = f"{self.major}.{self.minor}.{self.patch}"
        if self.prerelease:
            text += "-" + ".".join(self.prerelease)
        if self.build:
            text += "+" + ".".join(self.build)
        return text

    def _key(self):
        # A release sorts after every pre-release of the same core version.
        if not self.prerelease:
            pre: tuple = ((2,),)
        else:
            pre = tuple(
                (0, int(part), "") if part.isdigit() else (1, 0, part)
                for part in self.prerelease
            )
        return (self.major, self.minor, self.patch, pre)

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() == other._key()

    def __lt__(self, other: "Version") -> bool:
        if not isinstance(other, Version):
            return NotImplemented
        return self._key() < other._key()

    def __hash__(self) -> int:
        return hash(self._key())


def parse_version_token(token: str) -> Optional[Version]:
    """Return the version spelled by ``token`` (``1.2.3``, ``v1.2.3-beta``) or ``None``."""

    match = _SEMVER.match(token.strip(_STRIP))
    if match is None:
        return None
    pre = match.group("pre")
    build = match.group("build")
    return Version(
        major=int(match.group("major")),
        minor=int(match.group("minor")),
        patch=int(match.group("patch")),
        prerelease=tuple(pre.split(".")) if pre else (),
        build=tuple(build.split(".")) if build else (),
    )


def parse_version(output: str) -> Optional[Version]:
    """Return the first version token on the first non-empty line of ``output``.

    ``"bat 0.24.0 (fc95468)"`` yields ``0.24.0``; a line without a
    semver-shaped token yields ``None``.
    """

    for line in output.splitlines():
        if not line.strip():
            continue
        for token in line.split():
            version = parse_version_token(token)
            if version is not None:
                return version
        return None
    return None
