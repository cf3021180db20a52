"""
Video Export Service - Single Responsibility: re-encode videos before upload.

Runs a two-pass H.264 encode with ffmpeg into a temporary MP4 file.
Presets bound the output size (never upscaling):
- 640x480, 960x540, 1280x720 (default), 1920x1080, 3840x2160
"""
import asyncio
import logging
import os
import tempfile
import time
import uuid
from pathlib import Path
from typing import Callable, Dict, NamedTuple, Optional, Union
from urllib.parse import unquote, urlsplit

from ..errors import (
    AssetUrlUnavailableError,
    ExportSessionUnavailableError,
    VideoEncodeError,
    VideoExportError,
)
from ..protocols import IVideoExporter

logger = logging.getLogger(__name__)

DEFAULT_PRESET = "1280x720"


class ExportPreset(NamedTuple):
    width: int
    height: int
    video_bitrate: str


PRESETS: Dict[str, ExportPreset] = {
    "640x480": ExportPreset(640, 480, "1500k"),
    "960x540": ExportPreset(960, 540, "2500k"),
    "1280x720": ExportPreset(1280, 720, "5000k"),
    "1920x1080": ExportPreset(1920, 1080, "8000k"),
    "3840x2160": ExportPreset(3840, 2160, "35000k"),
}

ExportCallback = Callable[[Optional[Path], Optional[VideoExportError]], None]


class VideoExportService:
    """
    Service for exporting videos to an uploadable MP4 file.

    The caller owns the returned file and should delete it once the
    upload has completed.
    """

    def __init__(self, ffmpeg_path: str = "ffmpeg", temp_dir: Optional[Path] = None):
        self._ffmpeg = ffmpeg_path
        self._temp_dir = Path(temp_dir) if temp_dir else Path(tempfile.gettempdir())

    async def export(self, source: Union[str, Path], preset_name: str = DEFAULT_PRESET) -> Path:
        """
        Export ``source`` into a new temporary MP4 file.

        Args:
            source: Local path, file:// URL or http(s):// URL
            preset_name: One of ``PRESETS``

        Returns:
            Path to the exported file

        Raises:
            ExportSessionUnavailableError: unknown preset or ffmpeg missing
            AssetUrlUnavailableError: source cannot be resolved
            VideoEncodeError: ffmpeg failed
        """
        preset = PRESETS.get(preset_name)
        if preset is None:
            raise ExportSessionUnavailableError(f"Unknown export preset: {preset_name}")

        input_ref = self._resolve_source(source)

        # Allocate a temporary file to write to
        token = uuid.uuid4().hex
        output_path = self._temp_dir / f"{token}.mp4"
        passlog = self._temp_dir / f"{token}-pass"

        start_time = time.monotonic()
        try:
            await self._run(self._pass_one(input_ref, preset, passlog))
            await self._run(self._pass_two(input_ref, preset, passlog, output_path))
            if not output_path.exists() or output_path.stat().st_size == 0:
                raise VideoEncodeError("Encoder produced no output")
        except BaseException:
            output_path.unlink(missing_ok=True)
            raise
        finally:
            self._remove_passlogs(passlog)

        logger.debug(f"Video encoding OK, the process took {time.monotonic() - start_time:.2f} seconds")
        logger.debug(f"Video written to: {output_path}")
        return output_path

    @staticmethod
    def _resolve_source(source: Union[str, Path]) -> str:
        if isinstance(source, Path):
            path = source
        else:
            parts = urlsplit(str(source))
            if parts.scheme in ("http", "https"):
                return str(source)
            if parts.scheme == "file":
                path = Path(unquote(parts.path))
            elif parts.scheme and len(parts.scheme) > 1:
                raise AssetUrlUnavailableError(f"Unsupported asset reference: {source}")
            else:
                # plain path (single-letter "scheme" is a Windows drive)
                path = Path(str(source))

        if not path.is_file():
            raise AssetUrlUnavailableError(f"Video asset not found: {path}")
        return str(path)

    @staticmethod
    def _scale_filter(preset: ExportPreset) -> str:
        return (
            f"scale=w='min({preset.width},iw)':h='min({preset.height},ih)'"
            ":force_original_aspect_ratio=decrease,"
            "pad=ceil(iw/2)*2:ceil(ih/2)*2"
        )

    def _pass_one(self, input_ref: str, preset: ExportPreset, passlog: Path) -> list:
        return [
            self._ffmpeg, "-y", "-hide_banner", "-loglevel", "error",
            "-i", input_ref,
            "-vf", self._scale_filter(preset),
            "-c:v", "libx264", "-b:v", preset.video_bitrate,
            "-pass", "1", "-passlogfile", str(passlog),
            "-an", "-f", "null", os.devnull,
        ]

    def _pass_two(self, input_ref: str, preset: ExportPreset, passlog: Path, output_path: Path) -> list:
        return [
            self._ffmpeg, "-y", "-hide_banner", "-loglevel", "error",
            "-i", input_ref,
            "-vf", self._scale_filter(preset),
            "-c:v", "libx264", "-b:v", preset.video_bitrate,
            "-pass", "2", "-passlogfile", str(passlog),
            "-c:a", "aac", "-b:a", "128k",
            "-movflags", "+faststart",
            "-f", "mp4", str(output_path),
        ]

    async def _run(self, cmd: list) -> None:
        logger.debug(f"Running: {' '.join(cmd)}")
        try:
            process = await asyncio.create_subprocess_exec(
                *cmd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except FileNotFoundError as exc:
            raise ExportSessionUnavailableError(f"ffmpeg not found: {self._ffmpeg}") from exc

        try:
            _, stderr = await process.communicate()
        except asyncio.CancelledError:
            if process.returncode is None:
                process.kill()
            raise

        if process.returncode != 0:
            detail = (stderr or b"").decode("utf-8", errors="replace").strip()[-500:]
            raise VideoEncodeError(f"ffmpeg exited with {process.returncode}: {detail}")

    def _remove_passlogs(self, passlog: Path) -> None:
        for leftover in passlog.parent.glob(f"{passlog.name}*"):
            try:
                leftover.unlink()
            except OSError as exc:
                logger.debug(f"Could not remove pass log {leftover}: {exc}")


def export_video(
    source: Union[str, Path],
    completion_callback: ExportCallback,
    preset_name: str = DEFAULT_PRESET,
    exporter: Optional[IVideoExporter] = None,
) -> "asyncio.Task":
    """
    Asynchronously export a video to a temporary MP4 file.

    Must be called from the event loop; ``completion_callback`` is always
    invoked on that loop with either ``(path, None)`` or ``(None, error)``.
    The caller should delete the file at ``path`` once it is no longer needed.
    """
    loop = asyncio.get_running_loop()
    exporter = exporter or VideoExportService()

    async def _export():
        try:
            path = await exporter.export(source, preset_name)
        except VideoExportError as exc:
            logger.debug(f"Video export failed: {exc}")
            completion_callback(None, exc)
            return None
        except Exception as exc:
            logger.exception(f"Video export failed unexpectedly: {exc}")
            completion_callback(None, VideoEncodeError(str(exc)))
            return None
        completion_callback(path, None)
        return path

    return loop.create_task(_export())
