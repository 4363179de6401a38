"""Streaming decoder for plain (P2) grayscale PGM rasters."""

import re
from dataclasses import dataclass
from itertools import islice

import numpy as np

from charsets import RAMP_MAX_INDEX

PGM_MAGIC = b'P2'
WHITESPACE = b' \t\r\n\v\f'
_SAMPLE_RE = re.compile(rb'\S+')


class MalformedRasterError(ValueError):
    pass


@dataclass
class DecodedRaster:
    width: int
    height: int
    maxval: int
    grid: np.ndarray
    rows_decoded: int
    stopped: bool = False

    @property
    def complete(self):
        return not self.stopped and self.rows_decoded == self.height


def _read_token(data, idx):
    n = len(data)
    while idx < n:
        c = data[idx:idx + 1]
        if c in WHITESPACE:
            idx += 1
            continue
        if c == b'#':
            while idx < n and data[idx:idx + 1] not in b'\r\n':
                idx += 1
            continue
        break
    start = idx
    while idx < n and data[idx:idx + 1] not in WHITESPACE:
        idx += 1
    return data[start:idx], idx


def _header_int(token, name):
    if not token:
        raise MalformedRasterError(f"Missing {name} in PGM header")
    try:
        return int(token)
    except ValueError:
        raise MalformedRasterError(f"Invalid {name} in PGM header: {token!r}") from None


def _as_bytes(data):
    if isinstance(data, str):
        try:
            return data.encode('ascii')
        except UnicodeEncodeError as e:
            raise MalformedRasterError(f"Non-ASCII data in plain PGM: {e}") from None
    return data


def read_header(data):
    """Parse the P2 header.

    Returns ``(width, height, maxval, body_offset)``. The header fields may be
    spread over any number of lines and may contain ``#`` comments.
    """
    data = _as_bytes(data)
    magic, idx = _read_token(data, 0)
    if magic != PGM_MAGIC:
        raise MalformedRasterError(f"Unsupported PGM magic {magic!r} (expected {PGM_MAGIC!r})")
    w_b, idx = _read_token(data, idx)
    h_b, idx = _read_token(data, idx)
    maxv_b, idx = _read_token(data, idx)
    width = _header_int(w_b, 'width')
    height = _header_int(h_b, 'height')
    maxval = _header_int(maxv_b, 'max sample value')
    if width <= 0 or height <= 0:
        raise MalformedRasterError(f"Invalid image dimensions {width}x{height}")
    return width, height, maxval, idx


def decode_pgm(data, on_row=None):
    """Decode a plain PGM raster into a clamped luminance grid.

    Rows are inferred from the declared width, not from newlines in the
    payload. ``on_row(rows_done)`` is called after every completed row; if it
    returns a false value decoding stops and the partial grid is returned with
    ``stopped`` set.
    """
    data = _as_bytes(data)
    width, height, maxval, offset = read_header(data)
    # every sample takes at least one digit and one separator
    room = (len(data) - offset + 1) // 2
    if width * height > room:
        raise MalformedRasterError(f"Truncated pixel data: at most {room} < {width * height} samples")
    grid = np.empty((height, width), dtype=np.int32)
    tokens = _SAMPLE_RE.finditer(data, offset)
    for row in range(height):
        values = [m.group() for m in islice(tokens, width)]
        if len(values) < width:
            got = row * width + len(values)
            raise MalformedRasterError(f"Truncated pixel data: {got} < {width * height} samples")
        try:
            grid[row] = [min(max(int(v), 0), RAMP_MAX_INDEX) for v in values]
        except ValueError as e:
            raise MalformedRasterError(f"Invalid sample in row {row}: {e}") from None
        if on_row is not None and not on_row(row + 1):
            return DecodedRaster(width, height, maxval, grid[:row + 1].copy(), row + 1, stopped=True)
    return DecodedRaster(width, height, maxval, grid, height)
