import math

import numpy as np
from numba import jit


def destination_size(width, height, scale_factor):
    return int(width / scale_factor), int(height / scale_factor)


def axis_ratio(src, dest):
    """Source step per destination sample along one axis.

    Lowered by one source unit when the naive ratio would land past the last
    source sample at the final destination index.
    """
    if dest <= 1 or src <= 1:
        return 0.0
    ratio = (src - 1) / (dest - 1)
    if ratio * (dest - 1) > src - 1:
        ratio = (src - 2) / (dest - 1)
    return ratio


@jit(nopython=True)
def bilinear_resize_numba(lum_map, dest_height, dest_width, xratio, yratio):
    height, width = lum_map.shape
    out = np.empty((dest_height, dest_width), dtype=np.int32)
    for h in range(dest_height):
        y = h * yratio
        ylow = int(math.floor(y))
        yhigh = min(int(math.ceil(y)), height - 1)
        yweight = y - ylow
        for w in range(dest_width):
            x = w * xratio
            xlow = int(math.floor(x))
            xhigh = min(int(math.ceil(x)), width - 1)
            xweight = x - xlow
            v1 = lum_map[ylow, xlow]
            v2 = lum_map[ylow, xhigh]
            v3 = lum_map[yhigh, xlow]
            v4 = lum_map[yhigh, xhigh]
            # v1(1-xw)(1-yw) + v2*xw(1-yw) + v3(1-xw)yw + v4*xw*yw, as nested lerps
            top = v1 + (v2 - v1) * xweight
            bottom = v3 + (v4 - v3) * xweight
            out[h, w] = int(top + (bottom - top) * yweight)
    return out


def resample(lum_map, dest_height, dest_width, scale_factor):
    """Rescale a luminance grid to ``dest_height x dest_width``.

    A scale factor of exactly 1.0 copies the grid unchanged; anything else goes
    through bilinear interpolation. The input grid is never modified.
    """
    if dest_height < 1 or dest_width < 1:
        raise ValueError(f"Invalid destination size {dest_width}x{dest_height}")
    lum_map = np.ascontiguousarray(lum_map, dtype=np.int32)
    if scale_factor == 1.0:
        return lum_map.copy()
    height, width = lum_map.shape
    xratio = axis_ratio(width, dest_width)
    yratio = axis_ratio(height, dest_height)
    return bilinear_resize_numba(lum_map, dest_height, dest_width, xratio, yratio)
