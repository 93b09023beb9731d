from .downloaders import get_manifest, get_manifest_by_digest, get_blob, download_blob
from .layers import apply_layer, materialize_layers
from .storage import (
    StagingArea,
    prepare_staging,
    ensure_output_dir,
    install_binary,
)
