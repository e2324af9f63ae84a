import pytest

from camconv.formats import Frame, PixelFormat


def test_frame_copies_buffer_to_bytes():
    data = bytearray(b"\x01\x02\x03\x04")
    frame = Frame(buf=data, width=2, height=1, format=PixelFormat.RGB565)
    data[0] = 0xFF
    assert frame.buf == b"\x01\x02\x03\x04"


def test_frame_length_is_buffer_length():
    frame = Frame(buf=bytes(12), width=2, height=2, format=PixelFormat.RGB888)
    assert len(frame) == len(frame.buf) == 12


def test_frame_coerces_format_value():
    frame = Frame(buf=b"", width=0, height=0, format="jpeg")
    assert frame.format is PixelFormat.JPEG


@pytest.mark.parametrize("width,height", [(-1, 1), (1, -1), (70000, 1), (1, 65536)])
def test_frame_rejects_out_of_range_dimensions(width, height):
    with pytest.raises(ValueError):
        Frame(buf=b"", width=width, height=height, format=PixelFormat.GRAYSCALE)


def test_frame_rejects_unknown_format():
    with pytest.raises(ValueError):
        Frame(buf=b"", width=1, height=1, format="cmyk")


@pytest.mark.parametrize(
    "fmt,expected",
    [
        (PixelFormat.GRAYSCALE, 1),
        (PixelFormat.RGB565, 2),
        (PixelFormat.YUV422, 2),
        (PixelFormat.RGB888, 3),
        (PixelFormat.JPEG, None),
    ],
)
def test_bytes_per_pixel(fmt, expected):
    assert fmt.bytes_per_pixel == expected