"""
Post Effects

Applied after the tile pass, in fixed order: depth of field (per tile,
resolved here, applied by the surface while drawing), bloom, then noise.
Bloom and noise operate on the full (H, W, 3) float32 frame.
"""

import numpy as np
from scipy.ndimage import gaussian_filter

from .blending import composite

MAX_DOF_BLUR = 48.0          # px at 100% strength
DOF_SKIP_FRACTION = 0.1      # blur below this share of max is skipped
MAX_BLOOM_RADIUS = 50.0      # px at 100% radius

LUMA = np.array([0.299, 0.587, 0.114], dtype=np.float32)

BAYER_4X4 = np.array([
    [0, 8, 2, 10],
    [12, 4, 14, 6],
    [3, 11, 1, 9],
    [15, 7, 13, 5],
], dtype=np.float32)


# ── Depth of field ──────────────────────────────────────────────────────

def size_depth(size, min_size, max_size):
    """Pseudo-z of a tile from its rank between the smallest and largest size."""
    if max_size - min_size <= 1e-6:
        return 0.5
    return min(1.0, max(0.0, (size - min_size) / (max_size - min_size)))


def depth_of_field_blur(size, min_size, max_size, focus, strength):
    """Blur radius in px for one tile.

    Quadratic falloff from the focus plane; radii under 10% of the maximum
    are dropped so most in-focus tiles skip the blur entirely.

    Args:
        size: Tile size in px
        min_size, max_size: Size range over all tiles this frame
        focus: Focus plane, 0-100
        strength: 0-100
    """
    max_blur = strength / 100 * MAX_DOF_BLUR
    if max_blur <= 0:
        return 0.0
    dist = abs(size_depth(size, min_size, max_size) - focus / 100)
    blur = dist * dist * max_blur
    return blur if blur >= max_blur * DOF_SKIP_FRACTION else 0.0


# ── Bloom ───────────────────────────────────────────────────────────────

def apply_bloom(pixels, intensity, threshold, radius):
    """Threshold-extract bright pixels, blur them, screen them back on.

    Args:
        pixels: (H, W, 3) float32 frame, modified in place
        intensity: 0-100, opacity of the glow
        threshold: 0-100, luminance cut-off
        radius: 0-100, maps to 0-50 px blur

    Returns:
        pixels
    """
    alpha = intensity / 100
    if alpha <= 0:
        return pixels
    lum = pixels @ LUMA
    bright = pixels * (lum >= threshold / 100)[..., None]
    if not bright.any():
        return pixels

    r = radius / 100 * MAX_BLOOM_RADIUS
    if r > 0:
        sigma = max(r / 2, 0.5)
        bright = gaussian_filter(bright, sigma=(sigma, sigma, 0))

    coverage = np.full(pixels.shape[:2], alpha, dtype=np.float32)
    composite(pixels, np.clip(bright, 0, 1), coverage, "SCREEN")
    return pixels


# ── Noise ───────────────────────────────────────────────────────────────

def _grain(h, w, s, rng):
    value = 0.5 + (rng.random((h, w), dtype=np.float32) - 0.5) * s
    return value, np.full((h, w), s, dtype=np.float32)


def _crt(h, w, s, rng, seed):
    ys, xs = np.mgrid[0:h, 0:w]
    offset = ((xs + ys + seed) % 3 - 1).astype(np.float32)
    value = 0.5 + offset * s * 127 / 255
    return value, np.full((h, w), s * 180 / 255, dtype=np.float32)


def _bayer(h, w, s, rng):
    reps = (h // 4 + 1, w // 4 + 1)
    matrix = np.tile(BAYER_4X4, reps)[:h, :w]
    on = (matrix / 16) * s > rng.random((h, w), dtype=np.float32)
    value = on.astype(np.float32)
    return value, on * np.float32(s * 200 / 255)


def _static(h, w, s, rng):
    value = (rng.random((h, w), dtype=np.float32) > 0.5).astype(np.float32)
    return value, np.full((h, w), s * 0.5, dtype=np.float32)


def _scanlines(h, w, s, rng):
    value = np.zeros((h, w), dtype=np.float32)
    alpha = np.zeros((h, w), dtype=np.float32)
    alpha[1::2] = s * 0.6
    return value, alpha


NOISE_GENERATORS = {
    "grain": _grain,
    "bayer": _bayer,
    "static": _static,
    "scanlines": _scanlines,
}


def apply_noise(pixels, noise_type, strength, rng=None, seed=0):
    """Overlay a noise texture.

    Args:
        pixels: (H, W, 3) float32 frame, modified in place
        noise_type: grain, crt, bayer, static or scanlines
        strength: 0-100
        rng: numpy Generator; a fresh one when omitted
        seed: Frame counter, shifts the crt pattern

    Returns:
        pixels
    """
    s = strength / 100
    if s <= 0:
        return pixels
    rng = rng if rng is not None else np.random.default_rng()
    h, w = pixels.shape[:2]
    if noise_type == "crt":
        value, alpha = _crt(h, w, s, rng, seed)
    else:
        value, alpha = NOISE_GENERATORS.get(noise_type, _grain)(h, w, s, rng)
    np.clip(value, 0, 1, out=value)
    composite(pixels, value[..., None], alpha, "OVERLAY")
    return pixels
