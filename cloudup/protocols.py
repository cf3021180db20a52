"""
Protocols (Interfaces) for Dependency Inversion.

The coordinator only depends on these small interfaces, so tests and
alternative backends can plug in their own transport or exporter.
"""
from pathlib import Path
from typing import Any, Callable, Dict, Optional, Protocol, Union, runtime_checkable

# (bytes_written, total_bytes_written, total_bytes_expected)
TransportProgressCallback = Callable[[int, int, int], None]


@runtime_checkable
class IMediaTransport(Protocol):
    """Interface for the remote media API."""

    async def upload(
        self,
        payload: Union[bytes, Path],
        options: Dict[str, str],
        progress_callback: Optional[TransportProgressCallback] = None,
    ) -> Dict[str, Any]:
        """Upload payload and return the decoded API response."""
        ...

    async def destroy(self, public_id: str, options: Optional[Dict[str, str]] = None) -> Dict[str, Any]:
        """Delete an asset and its derived variants."""
        ...

    async def aclose(self) -> None:
        """Release network resources."""
        ...


@runtime_checkable
class IVideoExporter(Protocol):
    """Interface for re-encoding a video into an uploadable file."""

    async def export(self, source: Union[str, Path], preset_name: str = "1280x720") -> Path:
        """Export ``source`` to a new temporary file and return its path."""
        ...
