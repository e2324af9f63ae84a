import pytest
from hypothesis import given
from hypothesis import strategies as st

from camconv.jpeg_tables import (
    AC_CHROMA_BITS,
    AC_CHROMA_VAL,
    AC_LUM_BITS,
    AC_LUM_VAL,
    DC_CHROMA_BITS,
    DC_CHROMA_VAL,
    DC_LUM_BITS,
    DC_LUM_VAL,
    STD_CHROMA_QUANT,
    STD_LUM_QUANT,
    EncoderParams,
    Subsampling,
    forward_dct,
    huffman_codes,
    quantization_table,
    rgb_to_y,
    rgb_to_ycc,
    y_to_ycc,
)

STANDARD_TABLES = [
    (DC_LUM_BITS, DC_LUM_VAL),
    (AC_LUM_BITS, AC_LUM_VAL),
    (DC_CHROMA_BITS, DC_CHROMA_VAL),
    (AC_CHROMA_BITS, AC_CHROMA_VAL),
]


def test_params_defaults():
    params = EncoderParams()
    assert params.quality == 85
    assert params.subsampling == Subsampling.H2V2
    assert params.check() is True


@pytest.mark.parametrize("quality", [0, 101, -5])
def test_params_bad_quality(quality):
    assert EncoderParams(quality=quality).check() is False


@pytest.mark.parametrize("subsampling", [4, -1])
def test_params_bad_subsampling(subsampling):
    assert EncoderParams(subsampling=subsampling).check() is False


@pytest.mark.parametrize("subsampling", list(Subsampling))
def test_params_all_subsamplings_valid(subsampling):
    assert EncoderParams(quality=1, subsampling=subsampling).check() is True


@pytest.mark.parametrize("base", [STD_LUM_QUANT, STD_CHROMA_QUANT])
def test_quality_50_keeps_base(base):
    assert quantization_table(base, 50) == tuple(base)


@pytest.mark.parametrize("base", [STD_LUM_QUANT, STD_CHROMA_QUANT])
def test_quality_100_is_all_ones(base):
    assert quantization_table(base, 100) == (1,) * 64


def test_quality_1_saturates():
    assert quantization_table(STD_LUM_QUANT, 1) == (255,) * 64


@given(st.integers(min_value=1, max_value=99))
def test_quantization_monotonic_in_quality(quality):
    low = quantization_table(STD_LUM_QUANT, quality)
    high = quantization_table(STD_LUM_QUANT, quality + 1)
    assert all(1 <= h <= lo <= 255 for lo, h in zip(low, high))


@pytest.mark.parametrize("quality", [0, 101])
def test_quantization_rejects_bad_quality(quality):
    with pytest.raises(ValueError):
        quantization_table(STD_LUM_QUANT, quality)


@pytest.mark.parametrize("bits,values", STANDARD_TABLES)
def test_huffman_lengths_match_bits(bits, values):
    table = huffman_codes(bits, values)
    for length in range(1, 17):
        assert sum(1 for _, size in table.values() if size == length) == bits[length]


@pytest.mark.parametrize("bits,values", STANDARD_TABLES)
def test_huffman_prefix_free(bits, values):
    codes = [format(code, f"0{size}b") for code, size in huffman_codes(bits, values).values()]
    for a in codes:
        for b in codes:
            if a != b:
                assert not b.startswith(a)


@pytest.mark.parametrize("bits,values", STANDARD_TABLES)
def test_huffman_canonical_order(bits, values):
    table = huffman_codes(bits, values)
    ordered = [table[v] for v in values[: len(table)]]
    assert ordered[0][0] == 0
    for (c1, s1), (c2, s2) in zip(ordered, ordered[1:]):
        assert s2 >= s1
        assert c2 == (c1 + 1) << (s2 - s1)


def test_huffman_known_codes():
    dc = huffman_codes(DC_LUM_BITS, DC_LUM_VAL)
    ac = huffman_codes(AC_LUM_BITS, AC_LUM_VAL)
    assert dc[0] == (0b00, 2)
    assert ac[0x00] == (0b1010, 4)


def test_huffman_rejects_short_bits():
    with pytest.raises(ValueError):
        huffman_codes([0, 1], [0])


def test_huffman_rejects_missing_values():
    with pytest.raises(ValueError):
        huffman_codes(DC_LUM_BITS, DC_LUM_VAL[:5])


def test_dct_zero_block():
    assert forward_dct([0] * 64) == [0] * 64


@given(st.integers(min_value=-128, max_value=127))
def test_dct_constant_block_only_dc(value):
    result = forward_dct([value] * 64)
    assert result[1:] == [0] * 63
    assert (result[0] > 0) == (value > 0)
    assert (result[0] < 0) == (value < 0)


@given(st.lists(st.integers(min_value=-128, max_value=127), min_size=8, max_size=8))
def test_dct_horizontal_variation_stays_in_first_row(row):
    result = forward_dct(row * 8)
    assert result[8:] == [0] * 56


@given(st.lists(st.integers(min_value=-128, max_value=127), min_size=8, max_size=8))
def test_dct_vertical_variation_stays_in_first_column(column):
    block = [v for v in column for _ in range(8)]
    result = forward_dct(block)
    assert all(result[i] == 0 for i in range(64) if i % 8)


def test_dct_rejects_wrong_size():
    with pytest.raises(ValueError):
        forward_dct([0] * 63)


@given(st.lists(st.integers(min_value=0, max_value=255), max_size=20))
def test_gray_pixels_have_neutral_chroma(grays):
    rgb = bytes(v for g in grays for v in (g, g, g))
    assert rgb_to_y(rgb) == bytes(grays)
    assert rgb_to_ycc(rgb) == y_to_ycc(bytes(grays))


def test_y_to_ycc_expands():
    assert y_to_ycc(bytes([0, 255])) == bytes([0, 128, 128, 255, 128, 128])


def test_pure_red_clamps_cr():
    ycc = rgb_to_ycc(bytes([255, 0, 0]))
    assert ycc[2] == 255
    assert ycc[0] == rgb_to_y(bytes([255, 0, 0]))[0]


@given(st.binary(max_size=30).filter(lambda b: len(b) % 3 == 0))
def test_ycc_lengths_and_luma_agree(rgb):
    ycc = rgb_to_ycc(rgb)
    assert len(ycc) == len(rgb)
    assert ycc[0::3] == rgb_to_y(rgb)


def test_rgb_rejects_partial_pixel():
    with pytest.raises(ValueError):
        rgb_to_ycc(b"\x01\x02")
    with pytest.raises(ValueError):
        rgb_to_y(b"\x01")