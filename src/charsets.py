"""Glyph ramp used to turn luminance samples into characters."""

import numpy as np

# Dark to light, each glyph repeated two or three times.
GLYPH_RAMP = (
    "   ```...''':::___,,,^^^===;;;>>><<<+++!!!rrrccc***///zzz???sssLLLTTTvvv"
    ")))JJJ777|||FFFiii{{{CCC}}fffIII333111tttllluuu[[[nnneeeoooZZZ555YYYxxx"
    "jjyyaaa222EEEwwwkkkPPP666hhh999ddd444VVVOOOGGGbbbUUUAAAKKKXXXHHHmmm888RRR"
    "DDD###$$$BBBggg000MMMNNNWWWQQQ%%%&&&@@@"
)

RAMP_SIZE = len(GLYPH_RAMP)
RAMP_MAX_INDEX = RAMP_SIZE - 1


def get_glyph_ramp(invert=False):
    if invert:
        return GLYPH_RAMP[::-1]
    return GLYPH_RAMP


def map_glyph(value, ramp=GLYPH_RAMP):
    return ramp[value]


def render_rows(grid, ramp=GLYPH_RAMP):
    """Render a luminance grid row-major, each row terminated by a newline.

    The ramp is indexed directly by each sample, so the grid must already be
    clamped to ``[0, RAMP_MAX_INDEX]``.
    """
    if len(grid) == 0:
        return ''
    chars_array = np.array(list(ramp))
    ascii_frame = chars_array[np.asarray(grid)]
    return ''.join([''.join(row) + '\n' for row in ascii_frame])
