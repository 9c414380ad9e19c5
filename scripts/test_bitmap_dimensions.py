"""
Tests for the bitmap dimension calculation
"""

import io

import pytest

from bitmap_dimensions import (
    ConfigError, ImageDimensions, bits_cut, check_bit_cut, resolve_dimensions,
)


def test_three_bytes_default_aspect():
    # sqrt(24 * 4/3) = 5.6 -> 0 after rounding to 8, forced to 8
    assert resolve_dimensions(24) == ImageDimensions(8, 3)


def test_width_only():
    assert resolve_dimensions(80, width=16) == (16, 5)


def test_width_not_multiple_of_8():
    with pytest.raises(ConfigError, match="multiple of 8"):
        resolve_dimensions(80, width=17)


@pytest.mark.parametrize("kwargs", [{}, {'width': 8}, {'height': 1}, {'aspect': 2.0}])
def test_empty_input(kwargs):
    with pytest.raises(ConfigError):
        resolve_dimensions(0, **kwargs)


@pytest.mark.parametrize("kwargs", [{'width': 8}, {'height': 4}, {'width': 8, 'height': 4}])
def test_aspect_with_width_or_height(kwargs):
    with pytest.raises(ConfigError, match="Aspect"):
        resolve_dimensions(800, aspect=1.0, **kwargs)


def test_width_and_height_used_as_given():
    assert resolve_dimensions(800, width=16, height=10) == (16, 10)


def test_width_and_height_larger_than_input():
    with pytest.raises(ConfigError, match="input size"):
        resolve_dimensions(80, width=16, height=6)


def test_width_too_large():
    with pytest.raises(ConfigError, match="Width is too large"):
        resolve_dimensions(80, width=88)


def test_height_only():
    # 800 / 7 = 114 -> 112
    assert resolve_dimensions(800, height=7) == (112, 7)


def test_height_too_large():
    with pytest.raises(ConfigError, match="Height is too large"):
        resolve_dimensions(80, height=11)


def test_explicit_aspect():
    # sqrt(8192 * 2) = 128
    assert resolve_dimensions(8192, aspect=2.0) == (128, 64)


def test_default_aspect_large_input():
    # 1 MiB: sqrt(8388608 * 4/3) = 3344.3 -> 3344
    dims = resolve_dimensions(8 * 1024 * 1024)
    assert dims.width == 3344
    assert dims.height == 8 * 1024 * 1024 // 3344


@pytest.mark.parametrize("kwargs", [{'width': 0}, {'height': -1}, {'aspect': -1.5},
                                    {'aspect': float('nan')}, {'aspect': float('inf')}])
def test_non_positive_values(kwargs):
    with pytest.raises(ConfigError):
        resolve_dimensions(800, **kwargs)


@pytest.mark.parametrize("total_bits", [8, 9, 24, 63, 64, 65, 1000, 4097, 123457, 2**40 + 3])
def test_no_hints_fits_input(total_bits):
    dims = resolve_dimensions(total_bits)
    assert dims.width > 0 and dims.width % 8 == 0
    assert dims.height >= 1
    assert dims.width * dims.height <= total_bits


@pytest.mark.parametrize("total_bits", [1, 7])
def test_less_than_one_row(total_bits):
    with pytest.raises(ConfigError, match="smaller than one row"):
        resolve_dimensions(total_bits)


@pytest.mark.parametrize("total_bits,width", [(8, 8), (100, 24), (4096, 64), (99999, 8000)])
def test_width_only_height_is_floor(total_bits, width):
    assert resolve_dimensions(total_bits, width=width).height == total_bits // width


def test_bits_cut():
    assert bits_cut(80, ImageDimensions(16, 5)) == 0
    assert bits_cut(85, ImageDimensions(16, 5)) == 5


def test_check_bit_cut_reports():
    report = io.StringIO()
    assert check_bit_cut(80, ImageDimensions(8, 9), report) == 8
    assert report.getvalue() == "8 bits were cut\n"


def test_check_bit_cut_silent_when_exact():
    report = io.StringIO()
    assert check_bit_cut(80, ImageDimensions(16, 5), report) == 0
    assert report.getvalue() == ""


def test_aspect_too_large_for_input():
    with pytest.raises(ConfigError, match="too large"):
        resolve_dimensions(8, aspect=1e308)
