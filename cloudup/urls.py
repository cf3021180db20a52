"""
Delivery URL helpers.

Delivery URLs look like ``.../<resource>/upload/<transformations>/<public_id>.<ext>``.
"""
from dataclasses import dataclass, field
from typing import Tuple, Union

from .errors import InvalidAssetUrlError
from .models import Size

UPLOAD_MARKER = "/upload/"
AUTO_ORIENT_SEGMENT = "a_exif"

KNOWN_EXTENSIONS = (
    ".jpg", ".jpeg", ".png", ".gif", ".webp", ".bmp", ".tiff", ".heic",
    ".mp4", ".mov", ".webm", ".m4v", ".avi", ".mkv",
)


def derive_public_id(url: str) -> str:
    """
    Return the public id of an asset: the last path segment without extension.

    Raises:
        InvalidAssetUrlError: if the url has no path or no known extension
    """
    if not url or "/" not in url:
        raise InvalidAssetUrlError(f"Not a delivery URL: {url!r}")

    path = url.split("?", 1)[0].split("#", 1)[0]
    lowered = path.lower()
    for ext in KNOWN_EXTENSIONS:
        if lowered.endswith(ext):
            path = path[: -len(ext)]
            break
    else:
        raise InvalidAssetUrlError(f"Delivery URL has no known file extension: {url!r}")

    public_id = path.split("/")[-1]
    if not public_id:
        raise InvalidAssetUrlError(f"Delivery URL has no public id: {url!r}")
    return public_id


def resource_type_for(url: str) -> str:
    """Infer the resource type ("image" or "video") from a delivery URL."""
    if "/video" + UPLOAD_MARKER in url:
        return "video"
    return "image"


@dataclass(frozen=True)
class DeliveryUrl:
    """Delivery URL split around the upload marker."""
    prefix: str
    path: str
    transformations: Tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def parse(cls, url: str) -> "DeliveryUrl":
        if UPLOAD_MARKER not in url:
            raise InvalidAssetUrlError(f"Delivery URL has no {UPLOAD_MARKER} segment: {url!r}")
        prefix, path = url.split(UPLOAD_MARKER, 1)
        return cls(prefix=prefix, path=path)

    def with_transformation(self, segment: str) -> "DeliveryUrl":
        """Return a copy with ``segment`` applied before existing transformations."""
        return DeliveryUrl(
            prefix=self.prefix,
            path=self.path,
            transformations=(segment,) + self.transformations,
        )

    def __str__(self) -> str:
        parts = [self.prefix + UPLOAD_MARKER.rstrip("/")]
        parts.extend(self.transformations)
        parts.append(self.path)
        return "/".join(parts)


def scaled_url(
    width: float,
    height: float,
    url: str,
    max_size: Union[Size, Tuple[float, float]],
) -> str:
    """
    Return a delivery URL for an asset so that it is not larger than ``max_size``.

    Assets already smaller than ``max_size`` get the EXIF auto-orientation
    segment only; larger ones get a relative width scale ``w_<scale>``.
    """
    max_size = Size(*max_size)
    if max_size.width <= 0 or max_size.height <= 0:
        raise ValueError(f"max_size must be positive, got {tuple(max_size)}")

    delivery = DeliveryUrl.parse(url)

    if width < max_size.width and height < max_size.height:
        # not scaled; keep the original orientation
        return str(delivery.with_transformation(AUTO_ORIENT_SEGMENT))

    width_ratio = width / max_size.width
    height_ratio = height / max_size.height
    scale = 1.0 / max(width_ratio, height_ratio)
    return str(delivery.with_transformation(f"w_{scale}"))
