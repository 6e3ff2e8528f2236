"""Image normalizer: brings screenshots onto a common canvas before diffing."""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image, ImageOps

from envdiff.errors import MissingArtifactError
from envdiff.models.comparison import CapturedImage

logger = logging.getLogger(__name__)

TRANSPARENT = (0, 0, 0, 0)


def contain(image: Image.Image, width: int, height: int) -> Image.Image:
    """Scale ``image`` to fit inside ``width`` x ``height`` and pad with transparency.

    Aspect ratio is preserved and the scaled image is centred; the returned
    image is always exactly ``width`` x ``height``.
    """
    rgba = image.convert("RGBA")
    if rgba.size == (width, height):
        return rgba.copy()
    fitted = ImageOps.contain(rgba, (width, height), method=Image.Resampling.LANCZOS)
    canvas = Image.new("RGBA", (width, height), TRANSPARENT)
    offset = ((width - fitted.width) // 2, (height - fitted.height) // 2)
    canvas.paste(fitted, offset)
    return canvas


def normalize(path: str | Path, width: int, height: int) -> CapturedImage:
    """Load the image at ``path`` and contain-resize it to the target canvas."""
    if width <= 0 or height <= 0:
        raise ValueError(f"Invalid target size {width}x{height}")
    path = Path(path)
    if not path.exists():
        raise MissingArtifactError(str(path))
    with Image.open(path) as img:
        logger.debug("Normalizing %s from %dx%d to %dx%d", path, img.width, img.height, width, height)
        return CapturedImage.from_pil(contain(img, width, height))


def image_size(path: str | Path) -> tuple[int, int]:
    """Width and height of the image at ``path`` without decoding its pixels."""
    path = Path(path)
    if not path.exists():
        raise MissingArtifactError(str(path))
    with Image.open(path) as img:
        return img.size


def canvas_size(
    sizes: list[tuple[int, int]], max_width: int, max_height: int,
) -> tuple[int, int]:
    """Shared canvas for a pair of captures: the larger of each dimension, capped.

    Captures within the cap are compared at native scale; only those larger
    than ``max_width`` x ``max_height`` are scaled down.
    """
    width = min(max(w for w, _ in sizes), max_width)
    height = min(max(h for _, h in sizes), max_height)
    return width, height
