# manifests.py
# Manifest parsing and platform resolution.
#
# Registries serve either a multi-platform index (OCI image index / Docker
# manifest list) or a single manifest depending on how the image was pushed.
# resolve_manifest hides the difference from the caller.

import json
from dataclasses import dataclass, field
from typing import Callable, Optional

from sbin import config
from sbin.modules.auth import RegistryAuth
from sbin.modules.errors import NoMatchingPlatform, RegistryError, UnsupportedManifestType
from sbin.modules.formatters import ImageReference
from sbin.modules.keepers.downloaders import get_manifest, get_manifest_by_digest


# =============================================================================
# Data Classes
# =============================================================================

@dataclass(frozen=True)
class Platform:
    """Target os/architecture pair, e.g. linux/amd64."""
    os: str
    architecture: str

    @classmethod
    def parse(cls, value: str) -> "Platform":
        parts = value.strip().split("/")
        if len(parts) != 2 or not all(parts):
            raise ValueError(f"Platform must look like os/arch, got {value!r}")
        return cls(os=parts[0], architecture=parts[1])

    def __str__(self) -> str:
        return f"{self.os}/{self.architecture}"


@dataclass
class ManifestDescriptor:
    """One entry of a manifest list."""
    digest: str
    media_type: str
    platform: Optional[Platform] = None


@dataclass
class ImageManifest:
    """Config digest plus layer digests in application order (base layer first)."""
    config_digest: str
    layers: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {"config_digest": self.config_digest, "layers": list(self.layers)}


# =============================================================================
# Parsing
# =============================================================================

def is_manifest_list(content_type: str) -> bool:
    return "image.index" in content_type or "manifest.list" in content_type


def is_single_manifest(content_type: str) -> bool:
    return "manifest.v2" in content_type or "image.manifest" in content_type


def _load_json(body: bytes, what: str) -> dict:
    try:
        data = json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        raise RegistryError(f"Malformed {what}: {e}") from e
    if not isinstance(data, dict):
        raise RegistryError(f"Malformed {what}: expected a JSON object")
    return data


def parse_manifest_list(body: bytes) -> list[ManifestDescriptor]:
    data = _load_json(body, "manifest list")
    descriptors = []
    for entry in data.get("manifests") or []:
        if not isinstance(entry, dict) or not entry.get("digest"):
            raise RegistryError("Malformed manifest list: entry without digest")
        plat = entry.get("platform") or {}
        platform = None
        if plat.get("os") and plat.get("architecture"):
            platform = Platform(os=plat["os"], architecture=plat["architecture"])
        descriptors.append(ManifestDescriptor(
            digest=entry["digest"],
            media_type=entry.get("mediaType", ""),
            platform=platform,
        ))
    return descriptors


def parse_image_manifest(body: bytes) -> ImageManifest:
    data = _load_json(body, "manifest")
    config_digest = (data.get("config") or {}).get("digest")
    layers = data.get("layers")
    if not config_digest or not isinstance(layers, list):
        raise RegistryError("Malformed manifest: missing config or layers")

    digests = []
    for layer in layers:
        if not isinstance(layer, dict) or not layer.get("digest"):
            raise RegistryError("Malformed manifest: layer without digest")
        digests.append(layer["digest"])
    return ImageManifest(config_digest=config_digest, layers=digests)


def select_platform(descriptors: list[ManifestDescriptor], platform: Platform) -> ManifestDescriptor:
    """Return the first descriptor built for `platform`."""
    for descriptor in descriptors:
        if descriptor.platform == platform:
            return descriptor
    raise NoMatchingPlatform(
        str(platform),
        available=[str(d.platform) for d in descriptors if d.platform is not None],
    )


# =============================================================================
# Resolution
# =============================================================================

def resolve_manifest_payload(
    body: bytes,
    content_type: str,
    platform: Platform,
    fetch_by_digest: Callable[[str], tuple[bytes, str]],
    verbose: bool = True,
) -> ImageManifest:
    """
    Turn a tag manifest response into a concrete single-platform manifest.

    Args:
        body: Raw manifest bytes
        content_type: Content-Type header of the response
        platform: Platform to pick from a manifest list
        fetch_by_digest: Called with the selected digest for the second hop

    Raises:
        UnsupportedManifestType: Content type is neither a list nor a manifest
        NoMatchingPlatform: Manifest list has no entry for `platform`
        RegistryError: Malformed JSON
    """
    if is_manifest_list(content_type):
        if verbose:
            print("[*] Detected manifest list or OCI image index")
        selected = select_platform(parse_manifest_list(body), platform)
        if verbose:
            print(f"[+] Selected manifest {selected.digest} for platform {selected.platform}")

        single_body, single_type = fetch_by_digest(selected.digest)
        if single_type and is_manifest_list(single_type):
            raise UnsupportedManifestType(single_type)
        return parse_image_manifest(single_body)

    if is_single_manifest(content_type):
        if verbose:
            print("[*] Detected single manifest")
        return parse_image_manifest(body)

    raise UnsupportedManifestType(content_type)


def resolve_manifest(
    auth: RegistryAuth,
    reference: ImageReference,
    platform: Optional[Platform] = None,
    verbose: bool = True,
) -> ImageManifest:
    """Fetch and resolve the manifest for `reference` on `platform`."""
    platform = platform or Platform.parse(config.DEFAULT_PLATFORM)
    body, content_type = get_manifest(auth, reference, verbose=verbose)

    try:
        return resolve_manifest_payload(
            body,
            content_type,
            platform,
            lambda digest: get_manifest_by_digest(auth, reference, digest, verbose=verbose),
            verbose=verbose,
        )
    except RegistryError as e:
        if e.repository is None:
            e.repository = reference.repository
        raise
