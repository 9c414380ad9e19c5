#!/usr/bin/env python3
"""
Work out P4 bitmap dimensions from the number of available input bits

One input bit is one pixel, so the image can never be larger than the
input. Width is always a multiple of 8 (one byte = 8 horizontal pixels).
"""

import math
import sys
from collections import namedtuple

# 4:3 is the default aspect ratio
DEFAULT_ASPECT = 4 / 3

ImageDimensions = namedtuple('ImageDimensions', ['width', 'height'])


class ConfigError(ValueError):
    """Invalid or contradictory sizing options"""


def resolve_dimensions(total_bits, aspect=None, width=None, height=None):
    """
    Calculate the dimension of the bitmap

    Args:
        total_bits: Number of input bits (input size in bytes * 8)
        aspect: Optional aspect ratio (width / height)
        width: Optional width in pixels, must be a multiple of 8
        height: Optional height in pixels

    Returns:
        ImageDimensions(width, height)

    Raises:
        ConfigError: If the options contradict each other or the image
            would need more pixels than there are input bits
    """
    if not total_bits:
        raise ConfigError("Input is empty")

    if aspect is not None and not (math.isfinite(aspect) and aspect > 0):
        raise ConfigError(f"Aspect must be a positive number: {aspect}")
    if width is not None and width <= 0:
        raise ConfigError(f"Width must be positive: {width}")
    if height is not None and height <= 0:
        raise ConfigError(f"Height must be positive: {height}")

    if aspect is not None:
        if width or height:
            raise ConfigError("Aspect with width or height is given")
    else:
        aspect = DEFAULT_ASPECT

    if width:
        if width % 8:
            raise ConfigError("Width must be multiple of 8")

        if height:
            # Given width and height are used as they are
            if width * height > total_bits:
                raise ConfigError("Width * height > input size")
        else:
            height = total_bits // width
            if height == 0:
                raise ConfigError("Width is too large")

    elif height:
        width = (total_bits // height) // 8 * 8
        if width == 0:
            raise ConfigError("Height is too large")

    else:
        # Neither width nor height is given, use the aspect only
        area = total_bits * aspect
        if not math.isfinite(area):
            raise ConfigError(f"Aspect is too large: {aspect}")
        width = math.isqrt(int(area)) // 8 * 8
        if width == 0:
            width = 8
        height = total_bits // width
        if height == 0:
            raise ConfigError("Input is smaller than one row")

    return ImageDimensions(width, height)


def bits_cut(total_bits, dims):
    """Number of trailing input bits that do not fill a whole row"""
    return total_bits - dims.width * dims.height


def check_bit_cut(total_bits, dims, report=None):
    """Print how many bits were cut, if any. Returns the count."""
    if report is None:
        report = sys.stderr
    cut = bits_cut(total_bits, dims)
    if cut:
        print(f"{cut} bits were cut", file=report)
    return cut
