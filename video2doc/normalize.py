"""Decode encoded frames into canonical RGBA byte arrays."""

import io
import logging
from dataclasses import dataclass

import numpy as np
from PIL import Image

from video2doc.errors import RenderingUnavailable


log = logging.getLogger(__name__)


@dataclass(frozen=True, eq=False)
class NormalizedFrame:
    """
    pixels   flat uint8 array, 4 bytes (R, G, B, A) per pixel, row-major
             from the top row down; length is width * height * 4
    image    decoded RGB image of the same size, ready to place on a page
    """
    pixels: np.ndarray
    width: int
    height: int
    image: Image.Image

    @property
    def size(self):
        return self.width, self.height

    def __repr__(self):
        return f"NormalizedFrame({self.width}x{self.height})"


def normalize_frame(data: bytes) -> NormalizedFrame:
    """
    Any decoder failure is raised as RenderingUnavailable. Pillow reports
    broken chunks as SyntaxError and oversized frames as
    DecompressionBombError, neither of which is an OSError.
    """
    try:
        with Image.open(io.BytesIO(data)) as img:
            img.load()
            rgba = img.convert("RGBA")
            page = img.convert("RGB") if img.mode != "RGB" else img.copy()
    except Exception as exc:
        raise RenderingUnavailable(
            f"Cannot decode frame ({len(data)} bytes): {exc}") from exc

    pixels = np.frombuffer(rgba.tobytes(), dtype=np.uint8)
    width, height = rgba.size
    return NormalizedFrame(pixels=pixels, width=width, height=height, image=page)
