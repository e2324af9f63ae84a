"""Pixel formats and frame buffers shared by the image converters."""

from __future__ import annotations

import enum
from dataclasses import dataclass

_UINT16_MAX = 0xFFFF


class ConversionError(Exception):
    """Raised when an image cannot be converted."""


class PixelFormat(enum.Enum):
    """Pixel layouts a frame buffer may hold."""

    RGB565 = "rgb565"
    YUV422 = "yuv422"
    GRAYSCALE = "grayscale"
    JPEG = "jpeg"
    RGB888 = "rgb888"

    @property
    def bytes_per_pixel(self) -> int | None:
        """Bytes one pixel takes in a raw buffer, or None for compressed data."""
        return _BYTES_PER_PIXEL[self]


_BYTES_PER_PIXEL = {
    PixelFormat.RGB565: 2,
    PixelFormat.YUV422: 2,
    PixelFormat.GRAYSCALE: 1,
    PixelFormat.JPEG: None,
    PixelFormat.RGB888: 3,
}


@dataclass(frozen=True)
class Frame:
    """A captured image: its bytes, dimensions and pixel format."""

    buf: bytes
    width: int
    height: int
    format: PixelFormat

    def __post_init__(self) -> None:
        object.__setattr__(self, "buf", bytes(self.buf))
        object.__setattr__(self, "format", PixelFormat(self.format))
        for name in ("width", "height"):
            value = getattr(self, name)
            if not 0 <= value <= _UINT16_MAX:
                raise ValueError(f"{name} must be between 0 and {_UINT16_MAX}, got {value}")

    def __len__(self) -> int:
        return len(self.buf)