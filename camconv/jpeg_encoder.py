"""Streaming baseline JPEG encoder fed one scanline at a time."""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

from camconv.jpeg_tables import (
    AC_CHROMA_BITS,
    AC_CHROMA_VAL,
    AC_LUM_BITS,
    AC_LUM_VAL,
    DC_CHROMA_BITS,
    DC_CHROMA_VAL,
    DC_LUM_BITS,
    DC_LUM_VAL,
    M_APP0,
    M_DHT,
    M_DQT,
    M_EOI,
    M_SOF0,
    M_SOI,
    M_SOS,
    STD_CHROMA_QUANT,
    STD_LUM_QUANT,
    ZIGZAG,
    EncoderParams,
    Subsampling,
    forward_dct,
    huffman_codes,
    quantization_table,
    rgb_to_y,
    rgb_to_ycc,
    y_to_ycc,
)

_OUT_BUF_SIZE = 512


class EncoderError(Exception):
    """Raised when the encoder is misused or its output cannot be written."""


@dataclass(frozen=True)
class _Layout:
    components: int
    h_samp: tuple[int, ...]
    v_samp: tuple[int, ...]
    mcu_x: int
    mcu_y: int


_LAYOUTS = {
    Subsampling.Y_ONLY: _Layout(1, (1,), (1,), 8, 8),
    Subsampling.H1V1: _Layout(3, (1, 1, 1), (1, 1, 1), 8, 8),
    Subsampling.H2V1: _Layout(3, (2, 1, 1), (1, 1, 1), 16, 8),
    Subsampling.H2V2: _Layout(3, (2, 1, 1), (2, 1, 1), 16, 16),
}

# Index 0 is luminance, index 1 chrominance.
_DC_TABLES = ((DC_LUM_BITS, DC_LUM_VAL), (DC_CHROMA_BITS, DC_CHROMA_VAL))
_AC_TABLES = ((AC_LUM_BITS, AC_LUM_VAL), (AC_CHROMA_BITS, AC_CHROMA_VAL))


@lru_cache(maxsize=None)
def _code_list(bits: tuple[int, ...], values: tuple[int, ...]) -> tuple[tuple[int, int], ...]:
    table = huffman_codes(bits, values)
    return tuple(table.get(symbol, (0, 0)) for symbol in range(256))


@lru_cache(maxsize=8)
def _quant_tables(quality: int) -> tuple[tuple[int, ...], tuple[int, ...]]:
    return (
        quantization_table(STD_LUM_QUANT, quality),
        quantization_table(STD_CHROMA_QUANT, quality),
    )


class JpegEncoder:
    """Baseline JPEG compressor writing its output through a callable.

    ``write`` receives the compressed bytes in chunks of at most 512 bytes,
    and once more with ``b""`` when the image is complete. If it returns
    ``False`` the write is taken as failed and no further output is written.
    """

    def __init__(
        self,
        write: Callable[[bytes], Any],
        width: int,
        height: int,
        channels: int,
        params: EncoderParams | None = None,
    ) -> None:
        params = EncoderParams() if params is None else params
        if not callable(write):
            raise EncoderError("write must be callable")
        if width < 1 or height < 1:
            raise EncoderError(f"invalid image size {width}x{height}")
        if channels not in (1, 3, 4):
            raise EncoderError(f"channels must be 1, 3 or 4, got {channels}")
        if not params.check():
            raise EncoderError(f"invalid encoder parameters {params!r}")

        self._write = write
        self._params = params
        layout = _LAYOUTS[Subsampling(params.subsampling)]
        self._components = layout.components
        self._h_samp = layout.h_samp
        self._v_samp = layout.v_samp
        self._mcu_x = layout.mcu_x
        self._mcu_y = layout.mcu_y

        self._width = width
        self._height = height
        self._channels = channels
        self._width_mcu = (width + self._mcu_x - 1) & ~(self._mcu_x - 1)
        self._bpl_xlt = width * self._components
        self._bpl_mcu = self._width_mcu * self._components
        self._mcus_per_row = self._width_mcu // self._mcu_x
        self._mcu_lines = [bytearray(self._bpl_mcu) for _ in range(self._mcu_y)]
        self._mcu_y_ofs = 0

        self._quant = _quant_tables(params.quality)
        self._dc_codes = tuple(_code_list(bits, vals) for bits, vals in _DC_TABLES)
        self._ac_codes = tuple(_code_list(bits, vals) for bits, vals in _AC_TABLES)

        self._out = bytearray()
        self._bit_buffer = 0
        self._bits_in = 0
        self._last_dc = [0, 0, 0]
        self._ok = True
        self._finished = False

        self._emit_headers()
        self._check_writes()

    # Public API

    def process_scanline(self, scanline: bytes | bytearray | Sequence[int] | None) -> None:
        """Feed one source row of ``width * channels`` bytes; ``None`` finishes."""
        if scanline is None:
            self.finish()
            return
        self._check_usable()
        data = bytes(scanline)
        expected = self._width * self._channels
        if len(data) != expected:
            raise ValueError(f"scanline must hold {expected} bytes, got {len(data)}")
        self._load_mcu(data)
        self._check_writes()

    def finish(self) -> None:
        """Flush the remaining rows and write the end-of-image marker."""
        self._check_usable()
        if self._mcu_y_ofs:
            last = self._mcu_lines[self._mcu_y_ofs - 1]
            for row in self._mcu_lines[self._mcu_y_ofs:]:
                row[:] = last
            self._process_mcu_row()
        self._put_bits(0x7F, 7)
        self._emit_marker(M_EOI)
        self._flush()
        if self._ok and self._write(b"") is False:
            self._ok = False
        self._finished = True
        self._check_writes()

    # State checks

    def _check_usable(self) -> None:
        if self._finished:
            raise EncoderError("the image has already been finished")
        self._check_writes()

    def _check_writes(self) -> None:
        if not self._ok:
            raise EncoderError("writing the compressed stream failed")

    # Byte and bit output

    def _flush(self) -> None:
        if self._out:
            if self._ok and self._write(bytes(self._out)) is False:
                self._ok = False
            self._out.clear()

    def _emit_byte(self, value: int) -> None:
        self._out.append(value & 0xFF)
        if len(self._out) == _OUT_BUF_SIZE:
            self._flush()

    def _emit_bytes(self, values: Sequence[int]) -> None:
        for value in values:
            self._emit_byte(value)

    def _emit_word(self, value: int) -> None:
        self._emit_byte(value >> 8)
        self._emit_byte(value)

    def _emit_marker(self, marker: int) -> None:
        self._emit_byte(0xFF)
        self._emit_byte(marker)

    def _put_bits(self, bits: int, length: int) -> None:
        self._bits_in += length
        self._bit_buffer = (self._bit_buffer | (bits << (24 - self._bits_in))) & 0xFFFFFFFF
        while self._bits_in >= 8:
            c = (self._bit_buffer >> 16) & 0xFF
            self._emit_byte(c)
            if c == 0xFF:
                self._emit_byte(0)
            self._bit_buffer = (self._bit_buffer << 8) & 0xFFFFFFFF
            self._bits_in -= 8

    # Headers

    def _emit_headers(self) -> None:
        self._emit_marker(M_SOI)
        self._emit_app0()
        self._emit_dqt()
        self._emit_sof()
        self._emit_dhts()
        self._emit_sos()

    def _emit_app0(self) -> None:
        self._emit_marker(M_APP0)
        self._emit_word(2 + 4 + 1 + 2 + 1 + 2 + 2 + 1 + 1)
        self._emit_bytes(b"JFIF\x00")
        self._emit_byte(1)
        self._emit_byte(1)
        self._emit_byte(0)
        self._emit_word(1)
        self._emit_word(1)
        self._emit_byte(0)
        self._emit_byte(0)

    def _emit_dqt(self) -> None:
        for index in range(2 if self._components == 3 else 1):
            self._emit_marker(M_DQT)
            self._emit_word(64 + 1 + 2)
            self._emit_byte(index)
            self._emit_bytes(self._quant[index])

    def _emit_sof(self) -> None:
        self._emit_marker(M_SOF0)
        self._emit_word(3 * self._components + 2 + 5 + 1)
        self._emit_byte(8)
        self._emit_word(self._height)
        self._emit_word(self._width)
        self._emit_byte(self._components)
        for i in range(self._components):
            self._emit_byte(i + 1)
            self._emit_byte((self._h_samp[i] << 4) + self._v_samp[i])
            self._emit_byte(1 if i > 0 else 0)

    def _emit_dht(self, bits: Sequence[int], values: Sequence[int], index: int, ac: bool) -> None:
        self._emit_marker(M_DHT)
        length = sum(bits[1:17])
        self._emit_word(length + 2 + 1 + 16)
        self._emit_byte(index + (0x10 if ac else 0))
        self._emit_bytes(bits[1:17])
        self._emit_bytes(values[:length])

    def _emit_dhts(self) -> None:
        tables = range(2 if self._components == 3 else 1)
        for index in tables:
            self._emit_dht(*_DC_TABLES[index], index, False)
            self._emit_dht(*_AC_TABLES[index], index, True)

    def _emit_sos(self) -> None:
        self._emit_marker(M_SOS)
        self._emit_word(2 * self._components + 2 + 1 + 3)
        self._emit_byte(self._components)
        for i in range(self._components):
            self._emit_byte(i + 1)
            self._emit_byte(0x00 if i == 0 else 0x11)
        self._emit_byte(0)
        self._emit_byte(63)
        self._emit_byte(0)

    # Scanline buffering

    def _load_mcu(self, data: bytes) -> None:
        row = self._mcu_lines[self._mcu_y_ofs]
        if self._components == 1:
            converted = rgb_to_y(data) if self._channels == 3 else data[: self._width]
        else:
            converted = rgb_to_ycc(data) if self._channels == 3 else y_to_ycc(data[: self._width])
        row[: self._bpl_xlt] = converted
        extra = self._width_mcu - self._width
        if self._components == 1:
            row[self._bpl_xlt:] = converted[-1:] * extra
        else:
            row[self._bpl_xlt:] = converted[-3:] * extra

        self._mcu_y_ofs += 1
        if self._mcu_y_ofs == self._mcu_y:
            self._process_mcu_row()
            self._mcu_y_ofs = 0

    # Block extraction

    def _block_8_8_grey(self, x: int) -> list[int]:
        x <<= 3
        return [value - 128 for row in self._mcu_lines[:8] for value in row[x:x + 8]]

    def _block_8_8(self, x: int, y: int, c: int) -> list[int]:
        start = x * 24 + c
        rows = self._mcu_lines[y * 8:y * 8 + 8]
        return [value - 128 for row in rows for value in row[start:start + 24:3]]

    def _block_16_8(self, x: int, c: int) -> list[int]:
        start = x * 48 + c
        out: list[int] = []
        a, b = 0, 2
        for i in range(0, 16, 2):
            top = self._mcu_lines[i][start:start + 48:3]
            bottom = self._mcu_lines[i + 1][start:start + 48:3]
            for k in range(8):
                bias = a if k % 2 == 0 else b
                total = top[2 * k] + top[2 * k + 1] + bottom[2 * k] + bottom[2 * k + 1] + bias
                out.append((total >> 2) - 128)
            a, b = b, a
        return out

    def _block_16_8_8(self, x: int, c: int) -> list[int]:
        start = x * 48 + c
        out: list[int] = []
        for row in self._mcu_lines[:8]:
            samples = row[start:start + 48:3]
            out.extend(((samples[2 * k] + samples[2 * k + 1]) >> 1) - 128 for k in range(8))
        return out

    # Coding

    def _process_mcu_row(self) -> None:
        h, v = self._h_samp[0], self._v_samp[0]
        for i in range(self._mcus_per_row):
            if self._components == 1:
                self._code_block(self._block_8_8_grey(i), 0)
            elif (h, v) == (1, 1):
                for c in range(3):
                    self._code_block(self._block_8_8(i, 0, c), c)
            elif (h, v) == (2, 1):
                self._code_block(self._block_8_8(i * 2, 0, 0), 0)
                self._code_block(self._block_8_8(i * 2 + 1, 0, 0), 0)
                self._code_block(self._block_16_8_8(i, 1), 1)
                self._code_block(self._block_16_8_8(i, 2), 2)
            else:
                self._code_block(self._block_8_8(i * 2, 0, 0), 0)
                self._code_block(self._block_8_8(i * 2 + 1, 0, 0), 0)
                self._code_block(self._block_8_8(i * 2, 1, 0), 0)
                self._code_block(self._block_8_8(i * 2 + 1, 1, 0), 0)
                self._code_block(self._block_16_8(i, 1), 1)
                self._code_block(self._block_16_8(i, 2), 2)

    def _code_block(self, samples: list[int], component: int) -> None:
        coefficients = self._quantize(forward_dct(samples), component)
        self._code_coefficients(coefficients, component)

    def _quantize(self, samples: list[int], component: int) -> list[int]:
        table = self._quant[1 if component > 0 else 0]
        out: list[int] = []
        for position, q in zip(ZIGZAG, table):
            j = samples[position]
            magnitude = abs(j) + (q >> 1)
            if magnitude < q:
                out.append(0)
            else:
                out.append(-(magnitude // q) if j < 0 else magnitude // q)
        return out

    def _code_coefficients(self, coefficients: list[int], component: int) -> None:
        table = 0 if component == 0 else 1
        dc_codes = self._dc_codes[table]
        ac_codes = self._ac_codes[table]

        diff = coefficients[0] - self._last_dc[component]
        self._last_dc[component] = coefficients[0]
        value = diff - 1 if diff < 0 else diff
        nbits = abs(diff).bit_length()
        self._put_bits(*dc_codes[nbits])
        if nbits:
            self._put_bits(value & ((1 << nbits) - 1), nbits)

        run = 0
        for coefficient in coefficients[1:]:
            if coefficient == 0:
                run += 1
                continue
            while run >= 16:
                self._put_bits(*ac_codes[0xF0])
                run -= 16
            value = coefficient - 1 if coefficient < 0 else coefficient
            nbits = abs(coefficient).bit_length()
            self._put_bits(*ac_codes[(run << 4) + nbits])
            self._put_bits(value & ((1 << nbits) - 1), nbits)
            run = 0
        if run:
            self._put_bits(*ac_codes[0])