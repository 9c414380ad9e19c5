#!/usr/bin/env python3
"""
Create a P4 type PBM image from a binary file

Every input bit becomes one pixel (1 = black, 0 = white), which makes it
easy to look at block usage maps and other raw bitmaps.

The input is copied verbatim after the PBM header. If the input size can
be found by seeking, the header is written with its final dimensions right
away. Otherwise a blank dimension field is reserved in the output, the
input is read to the end, and the field is filled in afterwards (this needs
a seekable output).
"""

import argparse
import io
import signal
import sys
import threading
import time
from collections import namedtuple
from contextlib import ExitStack

from bitmap_dimensions import ConfigError, check_bit_cut, resolve_dimensions

VERSION = "1.0.0"
PBM_COMMENT = f"# CREATOR: bitmap2pbm Version {VERSION}"
PBM_HEADER = f"P4\n{PBM_COMMENT}\n".encode('ascii')

DEFAULT_BLOCK_SIZE = 512

# 18446744073709551615 18446744073709551615 (2^64 - 1) for width and height
MAX_DIMENSION = 20 + 1 + 20
# Dimension text plus the space that ends the header
DIMENSION_FIELD = MAX_DIMENSION + 1

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_IO_ERROR = 2


class CapabilityError(RuntimeError):
    """Input size is unknown and the output cannot be rewritten"""


class EncoderIOError(OSError):
    """A read or write did not transfer what it should have"""


class AllocationError(MemoryError):
    """The transfer buffer could not be allocated"""


ProgressSnapshot = namedtuple(
    'ProgressSnapshot',
    ['in_blocks', 'in_bytes', 'out_blocks', 'out_bytes', 'elapsed'])

EncodeResult = namedtuple('EncodeResult', ['dimensions', 'bits_cut', 'streamed', 'cancelled'])


class TransferCounters:
    """Block and byte counters of one encode run"""

    def __init__(self):
        self.reset()

    def reset(self):
        self.in_blocks = 0
        self.in_bytes = 0
        self.out_blocks = 0
        self.out_bytes = 0
        self.start_time = time.monotonic()

    def snapshot(self):
        return ProgressSnapshot(
            self.in_blocks, self.in_bytes,
            self.out_blocks, self.out_bytes,
            time.monotonic() - self.start_time)


def format_progress(snapshot):
    """Format a progress report the way dd does"""
    seconds = snapshot.elapsed
    rate = snapshot.in_bytes / seconds / 1_000_000 if seconds > 0 else 0.0
    return (f"{snapshot.in_blocks} blocks in ({snapshot.in_bytes} bytes)\n"
            f"{snapshot.out_blocks} blocks out ({snapshot.out_bytes} bytes)\n"
            f"{seconds:.0f} s, {rate:.1f} MB/s")


def print_progress(counters, out=None):
    if out is None:
        out = sys.stderr
    print(format_progress(counters.snapshot()), file=out)


def input_size(infile):
    """
    Size of the input in bytes, or None if it cannot be seeked

    The input is left at its start.
    """
    try:
        if not infile.seekable():
            return None
        size = infile.seek(0, io.SEEK_END)
    except (OSError, AttributeError):
        return None
    infile.seek(0, io.SEEK_SET)
    return size


def output_seekable(outfile):
    try:
        return outfile.seekable()
    except (OSError, AttributeError):
        return False


def render_dimension_field(dims, padded):
    """
    Text of the dimension field, ending with the header's final space

    When padded, the text is right-justified in the reserved field so that
    it can overwrite the placeholder without moving the body.
    """
    text = f"{dims.width} {dims.height}"
    if padded:
        text = text.rjust(MAX_DIMENSION)
    return (text + " ").encode('ascii')


def _write(outfile, data):
    written = outfile.write(data)
    if written is not None and written != len(data):
        raise EncoderIOError("Output write has failed")
    return len(data)


def _read_block(infile, buffer, view):
    if hasattr(infile, 'readinto'):
        count = infile.readinto(buffer)
        if count is None:
            raise EncoderIOError("Input read has failed")
        return view[:count]

    data = infile.read(len(buffer))
    if data is None:
        raise EncoderIOError("Input read has failed")
    return data


def allocate_buffer(block_size):
    """Transfer buffer of one block"""
    try:
        return bytearray(block_size)
    except (MemoryError, OverflowError) as e:
        raise AllocationError("Memory allocation has failed.") from e


def drain(infile, outfile, buffer, counters, cancel=None):
    """
    Copy the input to the output one buffer-sized block at a time

    The cancel event is checked between blocks, never in the middle of one.
    Returns True if the copy was cancelled.
    """
    view = memoryview(buffer)

    while True:
        if cancel is not None and cancel.is_set():
            return True

        block = _read_block(infile, buffer, view)
        if not block:
            return False

        counters.in_blocks += 1
        counters.in_bytes += len(block)

        counters.out_bytes += _write(outfile, block)
        counters.out_blocks += 1


def encode(infile, outfile, aspect=None, width=None, height=None,
           block_size=DEFAULT_BLOCK_SIZE, counters=None, cancel=None,
           report=None):
    """
    Write a P4 image of infile's bits to outfile

    Args:
        infile: Binary input stream
        outfile: Binary output stream
        aspect, width, height: Sizing options, see resolve_dimensions()
        block_size: Bytes per read/write
        counters: TransferCounters to update (reset at start)
        cancel: threading.Event that stops the copy at the next block
        report: Text stream for the "bits were cut" notice

    Returns:
        EncodeResult

    Raises:
        ConfigError: Invalid sizing options or block size
        CapabilityError: Neither input nor output is seekable
        AllocationError: No memory for the transfer buffer
        OSError: Any I/O failure
    """
    if report is None:
        report = sys.stderr

    if block_size < 1:
        raise ConfigError(f"Block size must be positive: {block_size}")

    buffer = allocate_buffer(block_size)

    if counters is None:
        counters = TransferCounters()
    counters.reset()

    size = input_size(infile)
    cut = 0

    if size is not None:
        total_bits = size * 8
        dims = resolve_dimensions(total_bits, aspect, width, height)

        _write(outfile, PBM_HEADER)
        _write(outfile, render_dimension_field(dims, padded=False))
    else:
        if not output_seekable(outfile):
            raise CapabilityError(
                "Cannot determine input size and output is not seekable.")

        _write(outfile, PBM_HEADER)
        dim_pos = outfile.tell()
        _write(outfile, b' ' * DIMENSION_FIELD)

    cancelled = drain(infile, outfile, buffer, counters, cancel)

    if size is None:
        total_bits = counters.in_bytes * 8
        dims = resolve_dimensions(total_bits, aspect, width, height)

        field = render_dimension_field(dims, padded=True)
        outfile.seek(dim_pos, io.SEEK_SET)
        _write(outfile, field)

    # No notice for a stopped run
    if not cancelled:
        cut = check_bit_cut(total_bits, dims, report)

    outfile.flush()
    return EncodeResult(dims, cut, size is None, cancelled)


def install_signal_handlers(counters, cancel):
    """
    SIGUSR1 prints progress, SIGINT stops the copy at the next block

    Returns the previous handlers for restore_signal_handlers().
    """
    def on_progress(signum, frame):
        print_progress(counters, sys.stderr)

    def on_interrupt(signum, frame):
        cancel.set()

    previous = {}
    handlers = [(getattr(signal, 'SIGUSR1', None), on_progress),
                (signal.SIGINT, on_interrupt)]
    for signum, handler in handlers:
        if signum is not None:
            previous[signum] = signal.signal(signum, handler)
    return previous


def restore_signal_handlers(previous):
    for signum, handler in previous.items():
        signal.signal(signum, handler)


def positive_int(value):
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an integer: {value}")
    if number <= 0:
        raise argparse.ArgumentTypeError(f"must be positive: {value}")
    return number


class ArgumentParser(argparse.ArgumentParser):
    def error(self, message):
        self.print_usage(sys.stderr)
        self.exit(EXIT_ERROR, f"{self.prog}: error: {message}\n")


def build_parser():
    parser = ArgumentParser(
        prog='bitmap2pbm',
        description='Creates a P4 type PBM image from a binary file.',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Convert a usage map file
  bitmap2pbm --if usagemap.dat --of image.pbm

  # Convert a stream (the output file must be seekable)
  cat usagemap.dat | bitmap2pbm --of image.pbm

  # Fixed width of 1024 pixels
  bitmap2pbm --if usagemap.dat --of image.pbm --width 1024

Signals:
  SIGUSR1 prints the progress, SIGINT stops and finishes the image
        """
    )

    parser.add_argument('--aspect', type=float, default=None,
                        help='Aspect ratio of image (default: 4:3)')
    parser.add_argument('--width', type=positive_int, default=None,
                        help='Image width in pixels (multiple of 8)')
    parser.add_argument('--height', type=positive_int, default=None,
                        help='Image height in pixels')
    parser.add_argument('--if', dest='infile', default=None,
                        help='Input file (default: stdin)')
    parser.add_argument('--of', dest='outfile', default=None,
                        help='Output file (default: stdout)')
    parser.add_argument('--bs', type=positive_int, default=DEFAULT_BLOCK_SIZE,
                        help=f'Block size to read/write (default: {DEFAULT_BLOCK_SIZE})')
    parser.add_argument('--version', action='version', version=f'Version: {VERSION}')
    return parser


def run(argv=None, stdin=None, stdout=None, handle_signals=True):
    """Command line entry point. Returns the exit status."""
    args = build_parser().parse_args(argv)

    # An aspect of 0 means it is not given
    aspect = args.aspect if args.aspect else None

    counters = TransferCounters()
    cancel = threading.Event()

    with ExitStack() as stack:
        try:
            if args.infile:
                infile = stack.enter_context(open(args.infile, 'rb'))
            else:
                infile = stdin if stdin is not None else sys.stdin.buffer
        except OSError:
            print(f"Cannot open input file: {args.infile}", file=sys.stderr)
            return EXIT_ERROR

        try:
            if args.outfile:
                outfile = stack.enter_context(open(args.outfile, 'w+b'))
            else:
                outfile = stdout if stdout is not None else sys.stdout.buffer
        except OSError:
            print(f"Cannot open output file: {args.outfile}", file=sys.stderr)
            return EXIT_ERROR

        if handle_signals:
            previous = install_signal_handlers(counters, cancel)
            stack.callback(restore_signal_handlers, previous)

        try:
            encode(infile, outfile, aspect, args.width, args.height,
                   args.bs, counters, cancel)
        except (ConfigError, CapabilityError, AllocationError) as e:
            print(e, file=sys.stderr)
            print("Fatal error", file=sys.stderr)
            print_progress(counters, sys.stderr)
            return EXIT_ERROR
        except OSError as e:
            print(e, file=sys.stderr)
            print("I/O error", file=sys.stderr)
            print_progress(counters, sys.stderr)
            return EXIT_IO_ERROR

    if args.outfile:
        print_progress(counters, sys.stdout)
    return EXIT_OK


def main():
    sys.exit(run())


if __name__ == '__main__':
    main()
