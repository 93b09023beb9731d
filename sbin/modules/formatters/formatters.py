import re
from dataclasses import dataclass

from sbin import config


@dataclass(frozen=True)
class ImageReference:
    """Where a program's image lives: <registry>/<namespace>/<program>:<tag>."""
    repository: str
    tag: str
    registry: str = config.REGISTRY_HOST

    @property
    def program(self) -> str:
        return self.repository.rsplit("/", 1)[-1]

    def __str__(self) -> str:
        return f"{self.registry}/{self.repository}:{self.tag}"


def human_readable_size(size):
    for unit in ["B", "KB", "MB", "GB"]:
        if size < 1024.0:
            return f"{size:.1f} {unit}"
        size /= 1024.0
    return f"{size:.1f} TB"


def _mode_to_string(mode: int) -> str:
    """Convert a stat mode to an ls-style permission string (no type char)."""
    perms = ''
    for shift in [6, 3, 0]:
        bits = (mode >> shift) & 0o7
        perms += 'r' if bits & 4 else '-'
        perms += 'w' if bits & 2 else '-'
        perms += 'x' if bits & 1 else '-'
    return perms


## Programs are bare names by default; "ns/name:tag" picks another image on the same host

# Docker Hub grammar for one repository path component, and for tags
_COMPONENT = re.compile(r"^[a-z0-9]+(?:(?:[._]|__|-+)[a-z0-9]+)*$")
_TAG = re.compile(r"^[A-Za-z0-9_][A-Za-z0-9_.-]{0,127}$")


def parse_image_ref(image_ref, namespace=None, tag=None):
    namespace = namespace or config.DEFAULT_NAMESPACE
    tag = tag or config.DEFAULT_TAG
    name = image_ref.strip()
    if ":" in name:
        name, tag = name.rsplit(":", 1)
    if "/" in name:
        namespace, name = name.rsplit("/", 1)
    # name doubles as the staging directory; "." and ".." never match
    if not _COMPONENT.match(name) or not _TAG.match(tag):
        raise ValueError(f"Invalid program reference: {image_ref!r}")
    if not all(_COMPONENT.match(part) for part in namespace.split("/")):
        raise ValueError(f"Invalid program reference: {image_ref!r}")
    return namespace, name, tag


def image_ref_for_program(program, namespace=None, tag=None) -> ImageReference:
    user, repo, tag = parse_image_ref(program, namespace, tag)
    return ImageReference(repository=f"{user}/{repo}", tag=tag)


## Single registry host only (Docker Hub)

def registry_base_url(reference: ImageReference) -> str:
    return f"https://{reference.registry}/v2/{reference.repository}"
