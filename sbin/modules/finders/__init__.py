from .manifests import (
    ImageManifest,
    ManifestDescriptor,
    Platform,
    parse_image_manifest,
    parse_manifest_list,
    resolve_manifest,
    resolve_manifest_payload,
    select_platform,
)
