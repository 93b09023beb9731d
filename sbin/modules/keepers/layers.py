# layers.py
# Apply image layers onto a staging root, in manifest order.
#
# Later layers overwrite earlier ones at the same path. Whiteout markers
# (.wh.*) are not interpreted.

import os
import shutil
import tarfile
from pathlib import Path

from sbin.modules.auth import RegistryAuth
from sbin.modules.errors import ExtractionError
from sbin.modules.formatters import ImageReference
from sbin.modules.keepers.downloaders import download_blob

# Symlinks and hardlinks cannot be created reliably without privileges on Windows
LINKS_SUPPORTED = os.name != "nt"

# Filter refusals for link members that are skipped instead of aborting the layer
_UNSAFE_LINK_ERRORS = (tarfile.AbsoluteLinkError, tarfile.LinkOutsideDestinationError)


def _is_link(member: tarfile.TarInfo) -> bool:
    return member.issym() or member.islnk()


def _clear_target(staging_root: Path, member: tarfile.TarInfo):
    """
    Remove what an earlier layer left where `member` will land.

    Only called with filtered members, so the path is inside the root.
    Directories merge; anything else is replaced, including a directory
    tree replaced by a non-directory entry.
    """
    target = staging_root / member.name
    if not os.path.lexists(target):
        return
    existing_is_dir = target.is_dir() and not target.is_symlink()
    if member.isdir() and existing_is_dir:
        return
    if existing_is_dir:
        shutil.rmtree(target)
    else:
        target.unlink()


def apply_layer(layer_path, staging_root, verbose: bool = True) -> int:
    """
    Extract one gzip-compressed layer archive onto `staging_root`.

    Entries are applied in archive order through the tarfile "data" filter,
    so absolute names are made relative and anything escaping the root is
    refused. Link entries the platform or the filter cannot create safely
    are skipped with a warning.

    Returns:
        Number of entries applied

    Raises:
        ExtractionError: Corrupt archive or an entry that cannot be applied
    """
    layer_path = Path(layer_path)
    staging_root = Path(staging_root)
    dest = str(staging_root)
    if verbose:
        print(f"[*] Applying layer: {layer_path.name}")

    applied = 0
    try:
        with tarfile.open(layer_path, mode="r:gz") as tar:
            for member in tar:
                if _is_link(member) and not LINKS_SUPPORTED:
                    if verbose:
                        print(f"  [!] Skipping link: {member.name}")
                    continue

                try:
                    filtered = tarfile.data_filter(member, dest)
                except _UNSAFE_LINK_ERRORS as e:
                    if verbose:
                        print(f"  [!] Skipping unsafe link: {member.name} ({e})")
                    continue
                except tarfile.FilterError as e:
                    raise ExtractionError(f"Refusing entry {member.name!r}: {e}", member.name) from e
                if filtered is None:
                    continue

                try:
                    _clear_target(staging_root, filtered)
                    tar.extract(filtered, dest, filter="fully_trusted")
                except (tarfile.TarError, OSError) as e:
                    raise ExtractionError(f"Cannot unpack entry {member.name!r}: {e}", member.name) from e
                applied += 1
    except (tarfile.ReadError, tarfile.CompressionError, EOFError) as e:
        raise ExtractionError(f"Cannot read layer archive {layer_path}: {e}") from e
    except OSError as e:
        # gzip raises BadGzipFile (an OSError) mid-stream on corrupt data
        raise ExtractionError(f"Cannot read layer archive {layer_path}: {e}") from e

    return applied


def materialize_layers(
    auth: RegistryAuth,
    reference: ImageReference,
    digests: list[str],
    staging_root,
    blob_dir,
    verbose: bool = True,
) -> list[Path]:
    """
    Download and apply every layer in order.

    Each blob is persisted as <blob_dir>/layer<N>.tar.gz before it is applied.

    Returns:
        Paths of the downloaded layer files, in application order
    """
    blob_dir = Path(blob_dir)
    paths = []
    for idx, digest in enumerate(digests, start=1):
        if verbose:
            print(f"[*] Layer {idx}/{len(digests)}: {digest}")
        layer_path = download_blob(auth, reference, digest, blob_dir / f"layer{idx}.tar.gz", verbose=verbose)
        entries = apply_layer(layer_path, staging_root, verbose=verbose)
        if verbose:
            print(f"[+] Applied layer {idx} ({entries} entries)")
        paths.append(layer_path)
    return paths
