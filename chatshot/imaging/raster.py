"""RGBA raster images backed by numpy, with PNG coding through Pillow."""

import io
import logging
from typing import Optional, Tuple

import numpy as np
from PIL import Image

logger = logging.getLogger(__name__)

Pixel = Tuple[int, int, int, int]


class RasterImage:
    """Decoded RGBA image.

    Pixels live in a ``(height, width, 4)`` uint8 array, so the flattened
    buffer always holds ``4 * width * height`` bytes.
    """

    def __init__(self, pixels: np.ndarray):
        if pixels.ndim != 3 or pixels.shape[2] != 4:
            raise ValueError(f"Expected an (height, width, 4) array, got shape {pixels.shape}")
        self.pixels = np.ascontiguousarray(pixels, dtype=np.uint8)

    @classmethod
    def blank(cls, width: int, height: int, color: Pixel = (0, 0, 0, 0)) -> "RasterImage":
        pixels = np.empty((height, width, 4), dtype=np.uint8)
        pixels[:, :] = color
        return cls(pixels)

    @classmethod
    def from_buffer(cls, width: int, height: int, data: bytes) -> "RasterImage":
        if len(data) != 4 * width * height:
            raise ValueError(f"Buffer length {len(data)} does not match {width}x{height} RGBA")
        return cls(np.frombuffer(data, dtype=np.uint8).reshape(height, width, 4).copy())

    @property
    def width(self) -> int:
        return self.pixels.shape[1]

    @property
    def height(self) -> int:
        return self.pixels.shape[0]

    @property
    def data(self) -> bytes:
        return self.pixels.tobytes()

    def read_pixel(self, x: int, y: int) -> Optional[Pixel]:
        """Return the RGBA tuple at (x, y), or None when out of bounds."""
        if x < 0 or x >= self.width or y < 0 or y >= self.height:
            return None
        return tuple(int(c) for c in self.pixels[y, x])

    def set_pixel(self, x: int, y: int, color) -> None:
        if x < 0 or x >= self.width or y < 0 or y >= self.height:
            return
        r, g, b = color[:3]
        a = color[3] if len(color) > 3 else 255
        self.pixels[y, x] = (r, g, b, a)

    def crop(self, left: int, top: int, right: int, bottom: int) -> None:
        """Crop in place to the half-open box [left, right) x [top, bottom).

        The box is clamped to the image; an empty box leaves a zero-sized
        image rather than raising.
        """
        left = max(0, min(left, self.width))
        top = max(0, min(top, self.height))
        right = max(left, min(right, self.width))
        bottom = max(top, min(bottom, self.height))
        self.pixels = np.ascontiguousarray(self.pixels[top:bottom, left:right])

    def copy(self) -> "RasterImage":
        return RasterImage(self.pixels.copy())

    def __eq__(self, other) -> bool:
        if not isinstance(other, RasterImage):
            return NotImplemented
        return self.pixels.shape == other.pixels.shape and bool(np.array_equal(self.pixels, other.pixels))

    def __repr__(self) -> str:
        return f"RasterImage(width={self.width}, height={self.height})"


def decode_png(data: bytes) -> RasterImage:
    """Decode PNG bytes into an RGBA raster."""
    try:
        with Image.open(io.BytesIO(data)) as img:
            rgba = img.convert("RGBA")
    except Exception as e:
        logger.error(f"Error occurred while decoding the image: {e}")
        raise
    return RasterImage(np.array(rgba))


def encode_png(image: RasterImage) -> bytes:
    """Encode an RGBA raster as PNG bytes."""
    if image.width == 0 or image.height == 0:
        raise ValueError("Cannot encode an empty image")
    buffer = io.BytesIO()
    Image.fromarray(image.pixels).save(buffer, format="PNG")
    return buffer.getvalue()

