# camconv

Pure-Python conversions for raw camera frames. It encodes frames in RGB565,
RGB888, YUV422 (YUYV) or 8-bit grayscale as baseline JPEG or as BMP files.
It can also expand such frames into a packed 24-bit buffer.

The package needs nothing beyond the standard library.

## Installation

```
pip install camconv
```

To run the test suite:

```
pip install "camconv[test]"
pytest
```

## Pixel formats and frames

`camconv.formats` defines:

- `PixelFormat` lists the source layouts `RGB565`, `RGB888`, `YUV422`,
  `GRAYSCALE` and `JPEG`. Its `bytes_per_pixel` property gives 2, 3, 2 or 1
  for the raw layouts. For `JPEG` it gives `None`.
- `Frame(buf, width, height, format)` is a frozen dataclass holding a buffer
  and its dimensions. Width and height must lie between 0 and 65535, or
  `ValueError` is raised. `len(frame)` is the buffer length.
- `ConversionError` is raised when a conversion cannot be done.

RGB888 buffers are taken to hold their bytes in B, G, R order, the same order
that BMP files use.

## Encoding JPEG

```python
from camconv.formats import Frame, PixelFormat
from camconv.to_jpg import fmt2jpg, fmt2jpg_cb, frame2jpg

width, height = 16, 8
gray = bytes(range(128))  # 16 x 8 grayscale ramp

jpeg_bytes = fmt2jpg(gray, width, height, PixelFormat.GRAYSCALE, 80)

frame = Frame(gray, width, height, PixelFormat.GRAYSCALE)
same = frame2jpg(frame, 80)
```

Quality is clamped to the range 1 to 100. Grayscale input produces a
single-component JPEG. Colour input is encoded as YCbCr with 2x2 chroma
subsampling.

`fmt2jpg` keeps at most `JPEG_BUFFER_SIZE` (128 KiB) of output and cuts off
anything longer. To receive all of the output, pass a callback to `fmt2jpg_cb`
or `frame2jpg_cb`. The callback is called as `callback(index, data)` for each
chunk and returns how many bytes it took. `index` advances by that amount. A
last call with `b""` marks the end of the image. Both functions return the
final index.

```python
chunks = bytearray()

def sink(index, data):
    chunks.extend(data)
    return len(data)

fmt2jpg_cb(gray, width, height, PixelFormat.GRAYSCALE, 80, sink)
```

`convert_line(src, pixel_format, width, line)` returns one source scanline in
the form the encoder takes. Colour formats come back as R, G, B bytes and
grayscale comes back as luminance bytes. A source too short for the requested
line raises `ConversionError`, and so does JPEG input.

## Lower-level encoder

`camconv.jpeg_encoder.JpegEncoder(write, width, height, channels, params)`
compresses an image that it is given one row at a time:

- `channels` may be 1, 3 or 4.
- `params` is an `EncoderParams` from `camconv.jpeg_tables`. It defaults to
  quality 85 with `Subsampling.H2V2`.
- Call `process_scanline(row)` once for each row of `width * channels` bytes.
  A row of the wrong length raises `ValueError`.
- Then call `finish()`. Calling `process_scanline(None)` does the same.
- `write` receives the compressed bytes in chunks of at most 512 bytes, and a
  last `b""`. If it returns `False`, the write counts as failed.

`EncoderError` is raised in these cases:

- a bad setup, such as a non-positive size, an unsupported channel count or
  invalid parameters
- a failed write
- use of the encoder after `finish()`

`camconv.jpeg_tables` holds the standard tables and the building blocks:

- `Subsampling` (`Y_ONLY`, `H1V1`, `H2V1`, `H2V2`).
- `EncoderParams` and its `check()` method.
- `quantization_table(base, quality)` scales a base table.
- `huffman_codes(bits, values)` returns `{symbol: (code, length)}`.
- `forward_dct(block)` is the integer DCT of a 64-sample block.
- `rgb_to_ycc`, `rgb_to_y` and `y_to_ycc` convert between colour spaces.

## BMP and 24-bit buffers

```python
from camconv.to_bmp import fmt2bmp, fmt2rgb888, frame2bmp

bmp = fmt2bmp(gray, width, height, PixelFormat.GRAYSCALE)
pixels = fmt2rgb888(gray, PixelFormat.GRAYSCALE)
```

`fmt2rgb888` expands RGB565, YUV422 and grayscale data into packed pixels in
B, G, R order. It returns RGB888 data unchanged.

`fmt2bmp` and `frame2bmp` write top-down BMP files, so the header stores a
negative height:

- Grayscale becomes an 8-bit image with a 256-entry grey palette.
- The other formats become 24-bit images.
- A source shorter than the image needs raises `ConversionError`.

## YUV

`camconv.yuv.yuv2rgb(y, u, v)` converts one sample triple with a table-driven
integer conversion and returns `(r, g, b)`. Values outside 0 to 255 raise
`ValueError`. `camconv.yuv.iter_yuyv_rgb(data)` yields two `(r, g, b)` pixels
for each four-byte YUYV group and ignores a shorter trailing group.

## What it does not do

Nothing in this package decodes JPEG. Passing `PixelFormat.JPEG` data to
`fmt2rgb888`, `fmt2bmp`, `frame2bmp` or the JPEG encoders raises
`ConversionError`. The package also does not capture images. It only works
on buffers that have already been captured.