"""Convert raw camera frames to RGB888 and to BMP files."""

from __future__ import annotations

import struct
from collections.abc import Sequence

from camconv.formats import ConversionError, Frame, PixelFormat
from camconv.yuv import iter_yuyv_rgb

BMP_HEADER_LEN = 54
_DIB_HEADER_SIZE = 40
_PIXELS_PER_METER = 0x0B13  # 72 DPI
_PALETTE_SIZE = 4 * 256
_HEADER = struct.Struct("<2sIIIIiiHHIIIIII")

Buffer = bytes | bytearray | memoryview | Sequence[int]


def _rgb565_to_bgr(data: bytes) -> bytes:
    out = bytearray()
    for high, low in zip(data[0::2], data[1::2]):
        out += bytes((
            (low & 0x1F) << 3,
            ((high & 0x07) << 5) | ((low & 0xE0) >> 3),
            high & 0xF8,
        ))
    return bytes(out)


def _yuyv_to_bgr(data: bytes) -> bytes:
    return bytes(channel for r, g, b in iter_yuyv_rgb(data) for channel in (b, g, r))


def fmt2rgb888(src: Buffer, pixel_format: PixelFormat) -> bytes:
    """Convert a raw buffer to packed 24-bit pixels in the BMP (B, G, R) order.

    RGB888 data is returned unchanged.
    """
    fmt = PixelFormat(pixel_format)
    data = bytes(src)
    if fmt is PixelFormat.JPEG:
        raise ConversionError("decoding JPEG data is not supported")
    if fmt is PixelFormat.RGB888:
        return data
    if fmt is PixelFormat.RGB565:
        return _rgb565_to_bgr(data)
    if fmt is PixelFormat.GRAYSCALE:
        return bytes(value for value in data for _ in range(3))
    return _yuyv_to_bgr(data[: len(data) // 4 * 4])


def _required_length(fmt: PixelFormat, pixels: int) -> int:
    if fmt is PixelFormat.YUV422:
        return pixels // 2 * 4
    return pixels * fmt.bytes_per_pixel


def fmt2bmp(src: Buffer, width: int, height: int, pixel_format: PixelFormat) -> bytes:
    """Build a top-down BMP file from a raw buffer.

    Greyscale becomes an 8-bit paletted image; other formats become 24-bit.
    """
    fmt = PixelFormat(pixel_format)
    if fmt is PixelFormat.JPEG:
        raise ConversionError("decoding JPEG data is not supported")
    for name, value in (("width", width), ("height", height)):
        if not 0 <= value <= 0xFFFF:
            raise ValueError(f"{name} must be between 0 and 65535, got {value}")
    data = bytes(src)
    pixels = width * height
    required = _required_length(fmt, pixels)
    if len(data) < required:
        raise ConversionError(f"source too short: need {required} bytes, got {len(data)}")

    grey = fmt is PixelFormat.GRAYSCALE
    bpp = 1 if grey else 3
    palette_size = _PALETTE_SIZE if grey else 0
    image_size = pixels * bpp
    out_size = BMP_HEADER_LEN + palette_size + image_size

    header = _HEADER.pack(
        b"BM",
        out_size,
        0,
        BMP_HEADER_LEN + palette_size,
        _DIB_HEADER_SIZE,
        width,
        -height,
        1,
        bpp * 8,
        0,
        image_size,
        _PIXELS_PER_METER,
        _PIXELS_PER_METER,
        0,
        0,
    )
    palette = b"".join(bytes((i, i, i, 0)) for i in range(256)) if grey else b""
    body = data[:required] if grey else fmt2rgb888(data[:required], fmt)
    body = body.ljust(image_size, b"\x00")
    return header + palette + body


def frame2bmp(frame: Frame) -> bytes:
    """Build a BMP file from a frame."""
    return fmt2bmp(frame.buf, frame.width, frame.height, frame.format)