"""
Blend Modes

The pool of blend modes tiles and layers can use, and the per-pixel math
for compositing a colored sprite onto the raster. All arrays are float32
RGB in [0, 1]; `src` is the sprite color, `dst` the pixels underneath.
"""

import numpy as np

BLEND_MODES = [
    "NONE",
    "MULTIPLY",
    "SCREEN",
    "HARD_LIGHT",
    "OVERLAY",
    "SOFT_LIGHT",
    "DARKEST",
    "LIGHTEST",
]

DEFAULT_BLEND_MODE = "NONE"


def normalize_blend_mode(mode):
    return mode if mode in BLEND_MODES else DEFAULT_BLEND_MODE


def pick_blend_mode(rng):
    """Draw one mode from the pool with a seeded stream."""
    return BLEND_MODES[int(rng() * len(BLEND_MODES))]


def _overlay(base, top):
    return np.where(base <= 0.5, 2 * base * top, 1 - 2 * (1 - base) * (1 - top))


def _soft_light(dst, src):
    # W3C compositing formula
    d = np.where(dst <= 0.25, ((16 * dst - 12) * dst + 4) * dst, np.sqrt(dst))
    return np.where(
        src <= 0.5,
        dst - (1 - 2 * src) * dst * (1 - dst),
        dst + (2 * src - 1) * (d - dst),
    )


def blend_colors(mode, dst, src):
    """Blend result before alpha compositing."""
    if mode == "MULTIPLY":
        return dst * src
    if mode == "SCREEN":
        return 1 - (1 - dst) * (1 - src)
    if mode == "OVERLAY":
        return _overlay(dst, src)
    if mode == "HARD_LIGHT":
        return _overlay(src, dst)
    if mode == "SOFT_LIGHT":
        return _soft_light(dst, src)
    if mode == "DARKEST":
        return np.minimum(dst, src)
    if mode == "LIGHTEST":
        return np.maximum(dst, src)
    return np.broadcast_to(src, dst.shape)


def composite(dst, src, alpha, mode):
    """Blend src over dst in place.

    Args:
        dst: (H, W, 3) float32 region of the raster, modified in place
        src: (3,) color or (H, W, 3) color field
        alpha: (H, W) coverage * opacity in [0, 1]
        mode: One of BLEND_MODES
    """
    blended = blend_colors(mode, dst, src)
    a = alpha[..., None]
    dst *= 1 - a
    dst += blended * a
    return dst
