"""Exceptions raised by the sbin install pipeline."""

from typing import Optional


class SbinError(Exception):
    """Base exception for all sbin failures."""

    pass


class AuthError(SbinError):
    """Raised when the pull token exchange fails."""

    def __init__(self, message: str, repository: Optional[str] = None):
        super().__init__(message)
        self.repository = repository


class RegistryError(SbinError):
    """Raised when a manifest request fails or returns malformed data."""

    def __init__(self, message: str, repository: Optional[str] = None, reference: Optional[str] = None):
        super().__init__(message)
        self.repository = repository
        self.reference = reference


class BlobError(RegistryError):
    """Raised when a blob download fails or its content does not match the digest."""

    pass


class UnsupportedManifestType(RegistryError):
    """Raised when the registry answers with a manifest media type we cannot read."""

    def __init__(self, content_type: str, repository: Optional[str] = None):
        super().__init__(f"Unsupported manifest type: {content_type or '<none>'}", repository)
        self.content_type = content_type


class NoMatchingPlatform(RegistryError):
    """Raised when a manifest list has no entry for the target platform."""

    def __init__(self, platform: str, available: Optional[list] = None, repository: Optional[str] = None):
        listed = ", ".join(available or []) or "none"
        super().__init__(f"No suitable platform found for {platform} (available: {listed})", repository)
        self.platform = platform
        self.available = available or []


class ExtractionError(SbinError):
    """Raised when a layer archive is corrupt or one of its entries cannot be applied."""

    def __init__(self, message: str, entry: Optional[str] = None):
        super().__init__(message)
        self.entry = entry


class BinaryNotFound(SbinError):
    """Raised when the expected binary is missing from the staged filesystem."""

    def __init__(self, path):
        super().__init__(f"Binary not found in image at {path}")
        self.path = path


class VersionProbeError(SbinError):
    """Raised when the downloaded binary cannot report a usable version."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path


class CopyError(SbinError):
    """Raised when the final install copy or permission change fails."""

    def __init__(self, message: str, path=None):
        super().__init__(message)
        self.path = path
