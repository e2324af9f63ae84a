"""Encode raw camera frames to JPEG."""

from __future__ import annotations

from collections.abc import Callable, Sequence

from camconv.formats import ConversionError, Frame, PixelFormat
from camconv.jpeg_encoder import EncoderError, JpegEncoder
from camconv.jpeg_tables import EncoderParams, Subsampling
from camconv.yuv import iter_yuyv_rgb

JPEG_BUFFER_SIZE = 128 * 1024
"""Capacity of the in-memory output of fmt2jpg; longer output is cut off."""

Buffer = bytes | bytearray | memoryview | Sequence[int]


def convert_line(src: Buffer, pixel_format: PixelFormat, width: int, line: int) -> bytes:
    """Return scanline ``line`` of ``src`` as RGB bytes, or as luminance for greyscale."""
    fmt = PixelFormat(pixel_format)
    data = bytes(src)
    if fmt is PixelFormat.JPEG:
        raise ConversionError("JPEG data cannot be converted line by line")
    if fmt is PixelFormat.GRAYSCALE:
        start = line * width
        row = data[start:start + width]
        _check_row(row, width, line)
        return row
    if fmt is PixelFormat.RGB888:
        length = width * 3
        row = data[length * line:length * line + length]
        _check_row(row, length, line)
        out = bytearray(length)
        out[0::3] = row[2::3]
        out[1::3] = row[1::3]
        out[2::3] = row[0::3]
        return bytes(out)
    length = width * 2
    start = length * line
    if fmt is PixelFormat.RGB565:
        row = data[start:start + length]
        _check_row(row, length, line)
        out = bytearray()
        for high, low in zip(row[0::2], row[1::2]):
            out += bytes((
                high & 0xF8,
                ((high & 0x07) << 5) | ((low & 0xE0) >> 3),
                (low & 0x1F) << 3,
            ))
        return bytes(out)
    # YUV422: pixels come in pairs sharing U and V, so an odd width reads
    # into the group that straddles the end of the line.
    chunk = data[start:start + (length + 3) // 4 * 4]
    _check_row(chunk, length, line)
    if len(chunk) % 4:
        chunk += chunk[-2:]
    pixels = list(iter_yuyv_rgb(chunk))[:width]
    return bytes(channel for pixel in pixels for channel in pixel)


def _check_row(row: bytes, expected: int, line: int) -> None:
    if len(row) < expected:
        raise ConversionError(
            f"source too short for line {line}: need {expected} bytes, got {len(row)}"
        )


def _encode(
    src: Buffer,
    width: int,
    height: int,
    pixel_format: PixelFormat,
    quality: int,
    write: Callable[[bytes], object],
) -> None:
    fmt = PixelFormat(pixel_format)
    if fmt is PixelFormat.JPEG:
        raise ConversionError("source is already JPEG")
    grey = fmt is PixelFormat.GRAYSCALE
    params = EncoderParams(
        quality=min(max(quality, 1), 100),
        subsampling=Subsampling.Y_ONLY if grey else Subsampling.H2V2,
    )
    data = bytes(src)
    try:
        encoder = JpegEncoder(write, width, height, 1 if grey else 3, params)
        for line in range(height):
            encoder.process_scanline(convert_line(data, fmt, width, line))
        encoder.finish()
    except EncoderError as exc:
        raise ConversionError(f"JPEG encoding failed: {exc}") from exc


def fmt2jpg_cb(
    src: Buffer,
    width: int,
    height: int,
    pixel_format: PixelFormat,
    quality: int,
    callback: Callable[[int, bytes], int],
) -> int:
    """Encode an image to JPEG, handing the output to ``callback(index, data)``.

    ``callback`` returns how many bytes it took; ``index`` advances by that
    amount. A final call with ``b""`` marks the end. Returns the final index.
    """
    index = 0

    def write(chunk: bytes) -> bool:
        nonlocal index
        index += callback(index, chunk)
        return True

    _encode(src, width, height, pixel_format, quality, write)
    return index


def fmt2jpg(
    src: Buffer, width: int, height: int, pixel_format: PixelFormat, quality: int
) -> bytes:
    """Encode an image to JPEG bytes, at most JPEG_BUFFER_SIZE of them."""
    out = bytearray()

    def write(chunk: bytes) -> bool:
        room = JPEG_BUFFER_SIZE - len(out)
        out.extend(chunk[:room])
        return True

    _encode(src, width, height, pixel_format, quality, write)
    return bytes(out)


def frame2jpg_cb(frame: Frame, quality: int, callback: Callable[[int, bytes], int]) -> int:
    """Encode a frame to JPEG through a callback; see fmt2jpg_cb."""
    return fmt2jpg_cb(frame.buf, frame.width, frame.height, frame.format, quality, callback)


def frame2jpg(frame: Frame, quality: int) -> bytes:
    """Encode a frame to JPEG bytes."""
    return fmt2jpg(frame.buf, frame.width, frame.height, frame.format, quality)