"""Per-pixel image comparison backed by Pillow."""

from __future__ import annotations

import logging
from pathlib import Path

from PIL import Image, ImageChops

from vrt.models.comparison import DiffResult, DimensionDelta

logger = logging.getLogger(__name__)

# Per-channel tolerance as a fraction of 255. Independent of the pass threshold.
PIXEL_SENSITIVITY = 0.1

DIFF_COLOR = (255, 0, 0, 255)
# Opacity of the grayscale backdrop in the diff raster
BACKDROP_ALPHA = 0.1


def _changed_mask(before: Image.Image, after: Image.Image) -> Image.Image:
    """Return an ``L`` mask that is 255 where any RGBA channel moved past tolerance."""
    delta = ImageChops.difference(before, after)
    r, g, b, a = delta.split()
    worst = ImageChops.lighter(ImageChops.lighter(r, g), ImageChops.lighter(b, a))
    cutoff = int(PIXEL_SENSITIVITY * 255)
    return worst.point(lambda v: 255 if v > cutoff else 0)


def _render_diff(before: Image.Image, mask: Image.Image) -> Image.Image:
    backdrop = before.convert("L").convert("RGBA")
    white = Image.new("RGBA", before.size, (255, 255, 255, 255))
    faded = Image.blend(white, backdrop, BACKDROP_ALPHA)
    red = Image.new("RGBA", before.size, DIFF_COLOR)
    return Image.composite(red, faded, mask)


def diff_images(
    before: str | Path,
    after: str | Path,
    diff_path: str | Path,
    threshold: float = 0.1,
) -> DiffResult:
    """Compare two screenshots pixel by pixel.

    Images of different sizes are never resized: they count as fully
    different and no diff raster is produced. Otherwise the diff raster is
    always written to ``diff_path``, even when nothing changed.
    """
    with Image.open(before) as raw_before, Image.open(after) as raw_after:
        img_before = raw_before.convert("RGBA")
        img_after = raw_after.convert("RGBA")

    if img_before.size != img_after.size:
        logger.debug(
            "Dimension mismatch: %s is %sx%s, %s is %sx%s",
            before, *img_before.size, after, *img_after.size,
        )
        return DiffResult(
            difference_ratio=1.0,
            passed=False,
            dimension_mismatch=True,
            dimensions=DimensionDelta(
                width=img_before.width - img_after.width,
                height=img_before.height - img_after.height,
            ),
        )

    mask = _changed_mask(img_before, img_after)
    diff_pixels = mask.histogram()[255]
    total_pixels = img_before.width * img_before.height
    ratio = diff_pixels / total_pixels if total_pixels else 0.0

    diff_path = Path(diff_path)
    diff_path.parent.mkdir(parents=True, exist_ok=True)
    _render_diff(img_before, mask).save(diff_path)

    return DiffResult(
        difference_ratio=ratio,
        passed=ratio <= threshold,
        diff_path=str(diff_path),
        diff_pixels=diff_pixels,
        total_pixels=total_pixels,
    )
