"""Services for cloudup."""
from .api_client import CloudinaryTransport
from .encoder import encode_jpeg
from .exporter import VideoExportService, export_video, PRESETS, DEFAULT_PRESET

__all__ = [
    "CloudinaryTransport",
    "encode_jpeg",
    "VideoExportService",
    "export_video",
    "PRESETS",
    "DEFAULT_PRESET",
]
