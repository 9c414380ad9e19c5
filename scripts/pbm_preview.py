#!/usr/bin/env python3
"""
Read back P4 images written by bitmap2pbm and render them to PNG

The header may contain a space padded dimension field (written when the
input was a stream), so it is parsed token by token like any PBM reader.
"""

import sys
from collections import namedtuple
from pathlib import Path
from PIL import Image

PbmHeader = namedtuple('PbmHeader', ['width', 'height', 'data_offset', 'comments'])

WHITESPACE = b' \t\r\n\x0b\x0c'


def parse_pbm_header(data):
    """
    Parse a P4 header

    Format:
    - "P4" magic
    - whitespace, "#" comments up to end of line
    - width and height as decimal numbers
    - a single whitespace character, then the packed raster

    Returns:
        PbmHeader(width, height, data_offset, comments)
    """
    if data[:2] != b'P4':
        raise ValueError("Not a P4 bitmap (missing magic)")

    pos = 2
    comments = []
    tokens = []

    while len(tokens) < 2:
        if pos >= len(data):
            raise ValueError("Truncated PBM header")

        c = data[pos:pos + 1]
        if c in WHITESPACE:
            pos += 1
        elif c == b'#':
            end = data.find(b'\n', pos)
            if end == -1:
                raise ValueError("Truncated PBM header")
            comments.append(data[pos:end].decode('ascii', 'replace'))
            pos = end + 1
        else:
            start = pos
            while pos < len(data) and data[pos:pos + 1].isdigit():
                pos += 1
            if start == pos:
                raise ValueError(f"Unexpected byte in PBM header at {pos}: {c!r}")
            tokens.append(int(data[start:pos]))

    # Exactly one whitespace ends the header
    if pos >= len(data) or data[pos:pos + 1] not in WHITESPACE:
        raise ValueError("Missing whitespace after PBM dimensions")

    width, height = tokens
    return PbmHeader(width, height, pos + 1, comments)


def raster_size(header):
    """Bytes used by the image rows (rows are padded to whole bytes)"""
    return (header.width + 7) // 8 * header.height


def read_pbm(path):
    """Returns (header, raster bytes, trailing bytes beyond the raster)"""
    with open(path, 'rb') as f:
        data = f.read()

    header = parse_pbm_header(data)
    body = data[header.data_offset:]
    size = raster_size(header)

    if len(body) < size:
        raise ValueError(f"Raster is truncated: {len(body)} of {size} bytes")

    return header, body[:size], body[size:]


def pbm_to_image(header, raster):
    """Make a PIL image from a packed P4 raster (1 = black)"""
    return Image.frombytes('1', (header.width, header.height), raster, 'raw', '1;I')


def preview_pbm(input_path, output_path=None):
    """Convert a .pbm file to PNG"""

    print(f"\nPreviewing: {input_path}")
    print("="*60)

    try:
        header, raster, trailing = read_pbm(input_path)
        print(f"Dimensions: {header.width}x{header.height}")
        for comment in header.comments:
            print(f"Comment: {comment}")
        if trailing:
            print(f"Trailing bytes beyond the raster: {len(trailing)}")

        img = pbm_to_image(header, raster)

        if output_path is None:
            output_path = Path(input_path).with_suffix('.png')

        img.save(output_path)
        print(f"Saved to: {output_path}")
        print("✓ Success!\n")
        return True

    except (OSError, ValueError) as e:
        print(f"✗ Error: {e}\n")
        return False


def main():
    if len(sys.argv) < 2:
        print("Usage:")
        print("  python pbm_preview.py <image.pbm> [output.png]")
        sys.exit(1)

    input_path = Path(sys.argv[1])
    output_path = sys.argv[2] if len(sys.argv) > 2 else None

    if not input_path.is_file():
        print(f"Error: File not found: {input_path}")
        sys.exit(1)

    success = preview_pbm(input_path, output_path)
    sys.exit(0 if success else 1)


if __name__ == '__main__':
    main()
