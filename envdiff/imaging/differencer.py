"""Pixel differencer: perceptual per-pixel comparison of two equal-sized rasters."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from pixelmatch import pixelmatch

from envdiff.models.comparison import CapturedImage
from envdiff.models.config import ComparisonConfig

logger = logging.getLogger(__name__)


@dataclass
class DiffResult:
    mismatched_pixels: int
    diff_image: CapturedImage

    @property
    def total_pixels(self) -> int:
        return self.diff_image.total_pixels

    @property
    def similarity(self) -> float:
        return similarity_percentage(self.total_pixels, self.mismatched_pixels)


def similarity_percentage(total_pixels: int, mismatched_pixels: int) -> float:
    """Share of matching pixels, 0-100. An empty raster counts as identical."""
    if total_pixels <= 0:
        return 100.0
    return (total_pixels - mismatched_pixels) / total_pixels * 100


def diff(
    image_a: CapturedImage,
    image_b: CapturedImage,
    config: ComparisonConfig | None = None,
) -> DiffResult:
    """Count pixels whose colour distance exceeds the threshold and draw a diff image.

    Mismatches where ``image_b`` is darker than ``image_a`` use
    ``diff_color_alt``; the others use ``diff_color``. Matching pixels are
    drawn as a faded copy of ``image_a``, or left transparent when
    ``diff_mask`` is on.

    Raises:
        ValueError: If the two images differ in size. Callers are expected to
            check dimensions and report a size mismatch instead.
    """
    config = config or ComparisonConfig()
    if image_a.size != image_b.size:
        raise ValueError(f"Image sizes differ: {image_a.size} vs {image_b.size}")

    width, height = image_a.size
    output = bytearray(width * height * 4)
    mismatched = pixelmatch(
        image_a.pixels,
        image_b.pixels,
        width,
        height,
        output,
        threshold=config.pixel_threshold,
        includeAA=config.include_anti_aliasing,
        diff_color=config.diff_color,
        diff_mask=config.diff_mask,
    )
    if mismatched:
        _mark_darkened(output, image_a.pixels, image_b.pixels, config.diff_color, config.diff_color_alt)
    logger.debug("Mismatched pixels: %d of %d", mismatched, width * height)
    return DiffResult(
        mismatched_pixels=mismatched,
        diff_image=CapturedImage(width=width, height=height, pixels=bytes(output)),
    )


def _luma(pixels: bytes, pos: int) -> float:
    # YIQ brightness of the pixel blended over white
    alpha = pixels[pos + 3] / 255
    r, g, b = (255 + (pixels[pos + i] - 255) * alpha for i in range(3))
    return r * 0.29889531 + g * 0.58662247 + b * 0.11448223


def _mark_darkened(
    output: bytearray,
    pixels_a: bytes,
    pixels_b: bytes,
    diff_color: tuple[int, int, int],
    diff_color_alt: tuple[int, int, int],
) -> int:
    """Repaint mismatch markers where ``pixels_b`` is darker with ``diff_color_alt``.

    pixelmatch draws every mismatch in ``diff_color``; only those markers
    (on a pixel whose inputs actually differ) are considered.
    """
    marker = bytes(diff_color) + b"\xff"
    alt = bytes(diff_color_alt)
    repainted = 0
    pos = output.find(marker)
    while pos != -1:
        if pos % 4:
            pos = output.find(marker, pos + 1)
            continue
        if pixels_a[pos:pos + 4] != pixels_b[pos:pos + 4] and _luma(pixels_b, pos) < _luma(pixels_a, pos):
            output[pos:pos + 3] = alt
            repainted += 1
        pos = output.find(marker, pos + 4)
    return repainted


def write_diff_image(result: DiffResult, path: str | Path) -> Path:
    """Persist the diff raster as a PNG, creating parent directories."""
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    result.diff_image.to_pil().save(path, format="PNG")
    return path
