"""Exception hierarchy for cloudup."""
from typing import Optional


class CloudupError(Exception):
    """Base class for all cloudup errors."""


class ConfigurationError(CloudupError):
    """Raised when the connection string or configuration is unusable."""


class ContextAffinityError(CloudupError):
    """Raised when an API with loop affinity is called from the wrong thread."""


class ImageEncodeError(CloudupError):
    """Raised when an image cannot be encoded to JPEG."""


class InvalidAssetUrlError(CloudupError, ValueError):
    """Raised when a delivery URL does not have the expected shape."""


class TransportError(CloudupError):
    """Upstream failure: HTTP error, network error or unexpected response."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class VideoExportError(CloudupError):
    """Base class for video export failures."""

    code = 0


class VideoEncodeError(VideoExportError):
    """The encoder ran but did not produce a usable file."""

    code = -100


class ExportSessionUnavailableError(VideoExportError):
    """No encoder could be set up for the requested preset."""

    code = -101


class AssetUrlUnavailableError(VideoExportError):
    """The source asset reference cannot be resolved."""

    code = -102
