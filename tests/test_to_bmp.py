import struct

import pytest

from camconv.formats import ConversionError, Frame, PixelFormat
from camconv.to_bmp import BMP_HEADER_LEN, fmt2bmp, fmt2rgb888, frame2bmp
from camconv.yuv import yuv2rgb

HEADER = struct.Struct("<2sIIIIiiHHIIIIII")


def _header(bmp):
    return HEADER.unpack(bmp[:BMP_HEADER_LEN])


def test_rgb888_header_fields():
    src = bytes(range(12))
    bmp = fmt2bmp(src, 2, 2, PixelFormat.RGB888)
    (magic, filesize, reserved, offset, dib, width, height, planes, bits,
     compression, imagesize, ypm, xpm, colours, important) = _header(bmp)
    assert magic == b"BM"
    assert filesize == len(bmp) == BMP_HEADER_LEN + 12
    assert reserved == 0
    assert offset == BMP_HEADER_LEN
    assert dib == 40
    assert (width, height) == (2, -2)
    assert (planes, bits, compression) == (1, 24, 0)
    assert imagesize == 12
    assert ypm == xpm == 0x0B13
    assert colours == important == 0
    assert bmp[BMP_HEADER_LEN:] == src


def test_grayscale_uses_palette():
    src = bytes([0, 64, 128, 255])
    bmp = fmt2bmp(src, 2, 2, PixelFormat.GRAYSCALE)
    header = _header(bmp)
    assert header[3] == BMP_HEADER_LEN + 1024
    assert header[8] == 8
    assert header[1] == len(bmp)
    palette = bmp[BMP_HEADER_LEN:BMP_HEADER_LEN + 1024]
    assert palette[200 * 4:200 * 4 + 4] == bytes([200, 200, 200, 0])
    assert bmp[-4:] == src


def test_rgb565_bmp_matches_rgb888_conversion():
    src = bytes([0xF8, 0x00, 0x00, 0x1F, 0x12, 0x34, 0xAB, 0xCD])
    bmp = fmt2bmp(src, 2, 2, PixelFormat.RGB565)
    assert bmp[BMP_HEADER_LEN:] == fmt2rgb888(src, PixelFormat.RGB565)


def test_rgb565_to_rgb888_is_bgr_ordered():
    assert fmt2rgb888(b"\xf8\x00", PixelFormat.RGB565) == bytes([0, 0, 0xF8])
    assert fmt2rgb888(b"\x00\x1f", PixelFormat.RGB565) == bytes([0xF8, 0, 0])


def test_rgb565_trailing_byte_ignored():
    assert len(fmt2rgb888(b"\x01\x02\x03", PixelFormat.RGB565)) == 3


def test_grayscale_to_rgb888_triplicates():
    assert fmt2rgb888(b"\x05\x09", PixelFormat.GRAYSCALE) == b"\x05\x05\x05\x09\x09\x09"


def test_rgb888_is_unchanged():
    assert fmt2rgb888(b"\x01\x02\x03", PixelFormat.RGB888) == b"\x01\x02\x03"


def test_yuv422_to_rgb888_is_bgr_ordered():
    y0, u, y1, v = 30, 90, 220, 160
    r0, g0, b0 = yuv2rgb(y0, u, v)
    r1, g1, b1 = yuv2rgb(y1, u, v)
    out = fmt2rgb888(bytes([y0, u, y1, v]), PixelFormat.YUV422)
    assert out == bytes([b0, g0, r0, b1, g1, r1])


def test_yuv422_odd_pixel_count_is_padded():
    bmp = fmt2bmp(bytes([100, 128, 100, 128, 50, 128]), 3, 1, PixelFormat.YUV422)
    assert len(bmp) == BMP_HEADER_LEN + 9
    assert bmp[-3:] == b"\x00\x00\x00"


def test_jpeg_is_rejected():
    with pytest.raises(ConversionError):
        fmt2rgb888(b"\xff\xd8", PixelFormat.JPEG)
    with pytest.raises(ConversionError):
        fmt2bmp(b"\xff\xd8", 1, 1, PixelFormat.JPEG)


def test_short_source_is_rejected():
    with pytest.raises(ConversionError):
        fmt2bmp(bytes(5), 2, 2, PixelFormat.RGB565)


def test_oversized_dimension_is_rejected():
    with pytest.raises(ValueError):
        fmt2bmp(b"", 70000, 0, PixelFormat.RGB888)


def test_frame2bmp_matches_fmt2bmp():
    src = bytes(range(27))
    frame = Frame(src, 3, 3, PixelFormat.RGB888)
    assert frame2bmp(frame) == fmt2bmp(src, 3, 3, PixelFormat.RGB888)