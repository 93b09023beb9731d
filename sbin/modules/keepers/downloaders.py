import hashlib
import requests
from pathlib import Path
from typing import BinaryIO

from sbin import config
from sbin.modules.auth import RegistryAuth
from sbin.modules.errors import BlobError, RegistryError
from sbin.modules.formatters import ImageReference, registry_base_url

# =============================================================================
# Media Types
# =============================================================================

OCI_INDEX = "application/vnd.oci.image.index.v1+json"
OCI_MANIFEST = "application/vnd.oci.image.manifest.v1+json"
DOCKER_MANIFEST_LIST = "application/vnd.docker.distribution.manifest.list.v2+json"
DOCKER_MANIFEST_V2 = "application/vnd.docker.distribution.manifest.v2+json"

# Preference order matters: index/list first so multi-arch images resolve per platform
TAG_ACCEPT = ", ".join([OCI_INDEX, DOCKER_MANIFEST_LIST, DOCKER_MANIFEST_V2, OCI_MANIFEST])
DIGEST_ACCEPT = ", ".join([DOCKER_MANIFEST_V2, OCI_MANIFEST])


# =============================================================================
# Manifest Fetching
# =============================================================================

def _fetch_manifest(auth: RegistryAuth, reference: ImageReference, ref: str, accept: str, verbose: bool):
    url = f"{registry_base_url(reference)}/manifests/{ref}"
    if verbose:
        print(f"[*] Requesting manifest: {url}")

    try:
        resp = auth.get_session().get(url, headers=auth.headers(accept), timeout=config.HTTP_TIMEOUT)
    except requests.RequestException as e:
        raise RegistryError(
            f"Failed to request manifest {reference.repository}@{ref}: {e}",
            reference.repository, ref,
        ) from e

    if not resp.ok:
        raise RegistryError(
            f"Registry returned HTTP {resp.status_code} for manifest {reference.repository}@{ref}",
            reference.repository, ref,
        )

    content_type = resp.headers.get("Content-Type", "")
    if verbose:
        print(f"    Status {resp.status_code}, content type: {content_type or '<none>'}")
    return resp.content, content_type


def get_manifest(auth: RegistryAuth, reference: ImageReference, verbose: bool = True) -> tuple[bytes, str]:
    """
    Fetch the manifest for the reference's tag.

    The registry may answer with a manifest list / image index or with a
    single manifest; callers branch on the returned content type.
    """
    return _fetch_manifest(auth, reference, reference.tag, TAG_ACCEPT, verbose)


def get_manifest_by_digest(
    auth: RegistryAuth, reference: ImageReference, digest: str, verbose: bool = True
) -> tuple[bytes, str]:
    """Fetch a single-platform manifest by digest (second hop after platform selection)."""
    return _fetch_manifest(auth, reference, digest, DIGEST_ACCEPT, verbose)


# =============================================================================
# Blob Download
# =============================================================================

def get_blob(
    auth: RegistryAuth,
    reference: ImageReference,
    digest: str,
    sink: BinaryIO,
    chunk_size: int = config.DOWNLOAD_CHUNK_SIZE,
    verbose: bool = True,
) -> int:
    """
    Stream a blob into a writable binary sink.

    The body is written chunk by chunk as it arrives; sha256 digests are
    verified against the streamed bytes.

    Returns:
        Number of bytes written

    Raises:
        BlobError: On transport failure, error status or digest mismatch
    """
    url = f"{registry_base_url(reference)}/blobs/{digest}"
    if verbose:
        print(f"[*] Requesting blob: {url}")

    algorithm, _, expected = digest.partition(":")
    hasher = hashlib.sha256() if algorithm == "sha256" else None

    written = 0
    try:
        with auth.get_session().get(
            url, headers=auth.headers(), stream=True, timeout=config.HTTP_TIMEOUT
        ) as resp:
            if not resp.ok:
                raise BlobError(
                    f"Registry returned HTTP {resp.status_code} for blob {digest}",
                    reference.repository, digest,
                )
            for chunk in resp.iter_content(chunk_size=chunk_size):
                if chunk:
                    sink.write(chunk)
                    written += len(chunk)
                    if hasher is not None:
                        hasher.update(chunk)
    except requests.RequestException as e:
        raise BlobError(f"Failed to download blob {digest}: {e}", reference.repository, digest) from e

    if hasher is not None and hasher.hexdigest() != expected:
        raise BlobError(
            f"Digest mismatch for blob {digest}: got sha256:{hasher.hexdigest()}",
            reference.repository, digest,
        )
    return written


def download_blob(
    auth: RegistryAuth,
    reference: ImageReference,
    digest: str,
    output_path,
    verbose: bool = True,
) -> Path:
    """
    Stream a blob to disk.
    """
    path = Path(output_path)
    try:
        with open(path, "wb") as f:
            size = get_blob(auth, reference, digest, f, verbose=verbose)
    except OSError as e:
        raise BlobError(f"Failed to write blob {digest} to {path}: {e}", reference.repository, digest) from e

    if verbose:
        print(f"[+] Saved blob {digest[:19]} ({size:,} bytes) to {path}")
    return path
