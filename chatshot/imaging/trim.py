"""Background-difference trimming for captured chat messages.

The background colour is sampled at the top-left pixel. Pixels whose
Manhattan RGB distance from it exceeds a threshold count as content; the
first and last rows and columns holding content bound the message. Output
keeps the full usable height and a width wide enough for the content but
never narrower than a configured minimum.
"""

import logging
from dataclasses import dataclass
from typing import Optional, Sequence, Tuple

import numpy as np

from .raster import RasterImage, decode_png, encode_png

logger = logging.getLogger(__name__)

DEFAULT_THRESHOLD = 10
DEFAULT_MIN_WIDTH = 500


@dataclass(frozen=True)
class TrimBounds:
    """Inclusive content bounds; all zero when the image is pure background."""
    top: int = 0
    left: int = 0
    bottom: int = 0
    right: int = 0

    @property
    def is_empty(self) -> bool:
        return self.top == self.left == self.bottom == self.right == 0

    @property
    def content_height(self) -> int:
        return self.bottom - self.top

    @property
    def content_width(self) -> int:
        return self.right - self.left


def activity_map(image: RasterImage, background: Sequence[int], threshold: int) -> np.ndarray:
    """Binary map of pixels that differ from the background."""
    rgb = image.pixels[:, :, :3].astype(np.int16)
    bg = np.asarray(background[:3], dtype=np.int16)
    distance = np.abs(rgb - bg).sum(axis=2)
    return (distance > threshold).astype(np.uint8)


def _find_edge(sums: np.ndarray) -> Tuple[int, int]:
    nonzero = np.flatnonzero(sums)
    if nonzero.size == 0:
        return len(sums), len(sums) - 1
    return int(nonzero[0]), int(nonzero[-1])


def find_trim(
    image: RasterImage,
    background: Optional[Sequence[int]] = None,
    threshold: int = DEFAULT_THRESHOLD
) -> TrimBounds:
    """Locate non-background content.

    Args:
        image: Decoded raster
        background: RGB(A) background colour, white if omitted
        threshold: Distances above this count as content

    Returns:
        Content bounds, or zero bounds if no content was found
    """
    if background is None:
        background = (255, 255, 255)

    active = activity_map(image, background, threshold)
    row_sums = active.sum(axis=1)
    col_sums = active.sum(axis=0)

    top, bottom = _find_edge(row_sums)
    left, right = _find_edge(col_sums)

    if top > bottom or left > right:
        return TrimBounds()
    return TrimBounds(top=top, left=left, bottom=bottom, right=right)


class ImageTrimEngine:
    """Trims captured message rasters in place."""

    def __init__(self, threshold: int = DEFAULT_THRESHOLD, min_width: int = DEFAULT_MIN_WIDTH):
        self.threshold = threshold
        self.min_width = min_width

    def trim(self, image: RasterImage) -> RasterImage:
        """Trim ``image`` in place and return it.

        The trailing-row rule only compares column 0, so content that runs
        down the left edge into the last row (a mention or reply border that
        starts below the top row) loses one row on every pass. Trim a capture
        once; repeated trims are idempotent only when the bottom-left pixel
        matches the top-left one.
        """
        if image.width == 0 or image.height == 0:
            return image

        background = image.read_pixel(0, 0)
        last = image.read_pixel(0, image.height - 1)

        # Trailing-edge rendering artifact
        if last != background:
            image.crop(0, 0, image.width, image.height - 1)
            if image.height == 0:
                return image

        bounds = find_trim(image, background=background, threshold=self.threshold)
        new_width = max(bounds.left + bounds.right + 2, self.min_width)

        logger.debug(f"Trim bounds {bounds}, output width {min(new_width, image.width)}")
        image.crop(0, 0, new_width, image.height)
        return image

    def trim_png(self, data: bytes) -> bytes:
        """Decode, trim and re-encode a PNG."""
        image = decode_png(data)
        self.trim(image)
        return encode_png(image)
