# config.py
# Defaults for sbin. Most can be overridden with an SBIN_* env var.

import os


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if not raw:
        return default
    try:
        return float(raw)
    except ValueError:
        return default


# =============================================================================
# Registry
# =============================================================================

REGISTRY_HOST = "registry-1.docker.io"
AUTH_URL = "https://auth.docker.io/token"
AUTH_SERVICE = "registry.docker.io"

# Images are published as <namespace>/<program>:<tag>
DEFAULT_NAMESPACE = os.environ.get("SBIN_NAMESPACE", "lvillis")
DEFAULT_TAG = os.environ.get("SBIN_TAG", "latest")
DEFAULT_PLATFORM = os.environ.get("SBIN_PLATFORM", "linux/amd64")

HTTP_TIMEOUT = _env_float("SBIN_HTTP_TIMEOUT", 30.0)
DOWNLOAD_CHUNK_SIZE = 65536  # 64KB chunks


# =============================================================================
# Filesystem
# =============================================================================

DEFAULT_OUT_DIR = os.environ.get("SBIN_OUT_DIR", "/usr/local/bin")
DEFAULT_TEMP_DIR = os.environ.get("SBIN_TEMP_DIR", "/tmp/sbin")

# Where the binary lives inside the image
BINARY_DIR = ("usr", "local", "bin")


# =============================================================================
# Version probing
# =============================================================================

VERSION_FLAG = "--version"
INSTALLED_PROBE_TIMEOUT = _env_float("SBIN_PROBE_TIMEOUT", 2.0)
CANDIDATE_PROBE_TIMEOUT = _env_float("SBIN_CANDIDATE_TIMEOUT", 30.0)
