"""Grayscale shadow mask produced by the renderer."""

from __future__ import annotations

from dataclasses import dataclass
import hashlib
from typing import Tuple

import cv2
import numpy as np


def _ensure_uint8(gray: np.ndarray) -> np.ndarray:
    if gray.dtype == np.uint8:
        return gray
    max_val = float(np.max(gray)) if gray.size else 0.0
    if max_val <= 1.0:
        gray = (gray.astype(np.float32) * 255.0).clip(0, 255).astype(np.uint8)
    else:
        gray = np.clip(gray, 0, 255).astype(np.uint8)
    return gray


def _gray_from_image(image: np.ndarray) -> np.ndarray:
    if image.ndim == 2:
        return _ensure_uint8(image)
    if image.ndim != 3:
        raise ValueError(f"Unsupported image shape: {image.shape}")
    if image.shape[2] == 4:
        return cv2.cvtColor(_ensure_uint8(image[:, :, :3]), cv2.COLOR_RGB2GRAY)
    if image.shape[2] == 3:
        return cv2.cvtColor(_ensure_uint8(image), cv2.COLOR_RGB2GRAY)
    raise ValueError(f"Unsupported channel count: {image.shape[2]}")


@dataclass(frozen=True, eq=False)
class Mask:
    """Single-channel uint8 raster; dark pixels are shadow.

    The pixel buffer is made read-only on construction.
    """

    pixels: np.ndarray

    def __post_init__(self) -> None:
        pixels = np.asarray(self.pixels)
        if pixels.ndim != 2:
            raise ValueError(f"Mask must be 2D, got shape {pixels.shape}")
        pixels = np.array(_ensure_uint8(pixels), dtype=np.uint8, copy=True)
        pixels.setflags(write=False)
        object.__setattr__(self, "pixels", pixels)

    @classmethod
    def from_image(cls, image: np.ndarray) -> "Mask":
        """Build a mask from a grayscale, RGB or RGBA image array."""
        return cls(_gray_from_image(np.asarray(image)))

    @property
    def resolution(self) -> Tuple[int, int]:
        """(width, height) in pixels."""
        height, width = self.pixels.shape
        return width, height

    @property
    def width(self) -> int:
        return int(self.pixels.shape[1])

    @property
    def height(self) -> int:
        return int(self.pixels.shape[0])

    def digest(self) -> str:
        """Stable content hash, used to compare renders bit for bit."""
        h = hashlib.sha256()
        h.update(np.asarray(self.pixels.shape, dtype=np.int64).tobytes())
        h.update(self.pixels.tobytes())
        return h.hexdigest()

    def shadow_fraction(self, threshold: int = 127) -> float:
        """Fraction of pixels at or below the threshold."""
        if self.pixels.size == 0:
            return 0.0
        return float(np.count_nonzero(self.pixels <= threshold)) / self.pixels.size

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Mask):
            return NotImplemented
        return np.array_equal(self.pixels, other.pixels)

    __hash__ = None  # type: ignore[assignment]


def blank_mask(resolution: Tuple[int, int], value: int = 255) -> Mask:
    """Uniform mask, e.g. a fully lit backdrop."""
    width, height = resolution
    return Mask(np.full((height, width), value, dtype=np.uint8))
