"""Raster decoding, encoding and trimming."""

from .raster import RasterImage, decode_png, encode_png
from .trim import ImageTrimEngine, TrimBounds, activity_map, find_trim

__all__ = [
    "RasterImage",
    "decode_png",
    "encode_png",
    "ImageTrimEngine",
    "TrimBounds",
    "activity_map",
    "find_trim",
]
