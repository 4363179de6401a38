import argparse
import os
import shutil
import sys
import threading
import time

from ascii_worker import ConversionObserver, ConversionWorker, RunStatus
from conversion_pipeline import DEFAULT_MAX_SCALE_FACTOR, ConversionConfig, ConversionRequest
from raster_sources import default_raster_source


class ConsoleObserver(ConversionObserver):
    def __init__(self, stream=None, step=0.05):
        self.stream = stream or sys.stderr
        self.step = step
        self.last_reported = 0.0
        self.done = threading.Event()

    def on_progress(self, done_fraction):
        if done_fraction - self.last_reported >= self.step or done_fraction >= 1.0:
            self.last_reported = done_fraction
            self.stream.write(f"\rDecoded {done_fraction * 100:.0f}%")
            self.stream.flush()

    def on_complete(self, text, is_error):
        if self.last_reported > 0:
            self.stream.write("\n")
        self.done.set()

    def on_cancelled(self):
        self.stream.write("\nConversion cancelled.\n")
        self.done.set()


def parse_bounds(value):
    try:
        width, height = (int(part) for part in value.lower().split('x'))
    except ValueError:
        raise argparse.ArgumentTypeError(f"expected WIDTHxHEIGHT, got '{value}'")
    if width <= 0 or height <= 0:
        raise argparse.ArgumentTypeError(f"bounds must be positive, got '{value}'")
    return width, height


def get_display_bounds():
    try:
        term_width, term_height = shutil.get_terminal_size()
        if term_width > 0 and term_height > 0:
            return term_width, term_height
    except OSError as e:
        print(f"Warning: Could not determine terminal size: {e}")
    return 100, 50


def build_request(args):
    config = ConversionConfig(
        enforce_size_limit=not args.no_size_limit,
        invert_ramp=args.invert,
        max_scale_factor=args.max_scale,
        margin_width=args.margin_w,
        margin_height=args.margin_h,
    )
    bounds_width, bounds_height = args.bounds or get_display_bounds()
    return ConversionRequest(
        source=args.input_file,
        scale_factor=args.scale,
        bounds_width=bounds_width,
        bounds_height=bounds_height,
        config=config,
    )


def build_parser():
    parser = argparse.ArgumentParser(description='Convert an image to ASCII art')
    parser.add_argument('input_file', help='Path to the input image')
    parser.add_argument('-o', '--output', help='Write the ASCII art to this file instead of stdout')
    parser.add_argument('-s', '--scale', type=float, default=1.0,
                        help='Scale factor; the higher the factor, the smaller the output (default: 1.0)')
    parser.add_argument('--max-scale', type=float, default=DEFAULT_MAX_SCALE_FACTOR,
                        help=f'Largest accepted scale factor (default: {DEFAULT_MAX_SCALE_FACTOR})')
    parser.add_argument('--invert', action='store_true', help='Reverse the glyph ramp (for light backgrounds)')
    parser.add_argument('--no-size-limit', action='store_true',
                        help='Allow output larger than the display bounds')
    parser.add_argument('--bounds', type=parse_bounds,
                        help='Display bounds as WIDTHxHEIGHT characters (default: terminal size)')
    parser.add_argument('--margin-w', type=int, default=0, help='Columns reserved beside the art (default: 0)')
    parser.add_argument('--margin-h', type=int, default=0, help='Rows reserved around the art (default: 0)')
    parser.add_argument('-c', '--converter', choices=['auto', 'magick', 'local'], default='auto',
                        help='How to turn the image into a grayscale raster (default: auto)')
    return parser


def convert_image(request, raster_source, observer=None):
    observer = observer or ConsoleObserver()
    with ConversionWorker(raster_source, observer) as worker:
        worker.start(request)
        try:
            while not observer.done.wait(0.1):
                pass
        except KeyboardInterrupt:
            worker.cancel()
        try:
            result = worker.wait()
        except Exception:
            # already reported by the worker
            result = None
        return worker.snapshot().status, result


def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    if not os.path.exists(args.input_file):
        print(f"Error: File '{args.input_file}' not found")
        sys.exit(1)
    start_time = time.time()
    request = build_request(args)
    raster_source = default_raster_source(args.converter)
    try:
        status, result = convert_image(request, raster_source)
    finally:
        raster_source.cleanup()
    if status == RunStatus.CANCELLED:
        sys.exit(130)
    if result is None or not result.ok:
        print(result.message if result is not None else "Error: conversion failed")
        sys.exit(1)
    if args.output:
        with open(args.output, "w", encoding='utf-8') as f:
            f.write(result.text)
        print(f"ASCII art saved to {args.output}")
    else:
        sys.stdout.write(result.text)
    total_time = time.time() - start_time
    lines = result.text.splitlines()
    print(f"\n=== Conversion Statistics ===", file=sys.stderr)
    print(f"Total time: {total_time:.2f} seconds", file=sys.stderr)
    print(f"Output size: {len(lines[0]) if lines else 0}x{len(lines)} characters", file=sys.stderr)


if __name__ == "__main__":
    main()
