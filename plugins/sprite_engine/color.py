"""
Color Pipeline for Sprite Tiles

Pure functions over "#rrggbb" strings. Everything routes through HSL
(h in degrees 0-360, s and l in percent 0-100) so hue rotation, variance
jitter and the saturation/brightness/contrast controls all compose the
same way regardless of where in the frame they are applied.

Adjustment order matters: contrast, then saturation, then brightness.
"""

import math


def _clamp(value, lo, hi):
    return min(hi, max(lo, value))


def _round_half_up(value):
    return int(math.floor(value + 0.5))


def _parse_hex(color):
    sanitized = color.lstrip("#")
    if len(sanitized) == 3:
        sanitized = "".join(ch * 2 for ch in sanitized)
    value = int(sanitized[:6], 16)
    return (value >> 16) & 255, (value >> 8) & 255, value & 255


def hex_to_rgb(color):
    """Convert "#rrggbb" to an (r, g, b) tuple of floats in [0, 1]."""
    r, g, b = _parse_hex(color)
    return r / 255.0, g / 255.0, b / 255.0


def rgb_to_hex(r, g, b):
    """Convert floats in [0, 1] to "#rrggbb"."""
    channels = (_clamp(_round_half_up(c * 255), 0, 255) for c in (r, g, b))
    return "#" + "".join(f"{c:02x}" for c in channels)


def hex_to_hsl(color):
    """Convert "#rrggbb" to (h, s, l) with h in [0, 360), s and l in [0, 100]."""
    r, g, b = hex_to_rgb(color)
    hi = max(r, g, b)
    lo = min(r, g, b)
    h = 0.0
    s = 0.0
    l = (hi + lo) / 2

    if hi != lo:
        d = hi - lo
        s = d / (2 - hi - lo) if l > 0.5 else d / (hi + lo)
        if hi == r:
            h = (g - b) / d + (6 if g < b else 0)
        elif hi == g:
            h = (b - r) / d + 2
        else:
            h = (r - g) / d + 4
        h /= 6

    return h * 360, s * 100, l * 100


def _hue_to_rgb(p, q, t):
    if t < 0:
        t += 1
    if t > 1:
        t -= 1
    if t < 1 / 6:
        return p + (q - p) * 6 * t
    if t < 1 / 2:
        return q
    if t < 2 / 3:
        return p + (q - p) * (2 / 3 - t) * 6
    return p


def hsl_to_hex(h, s, l):
    """Convert HSL back to "#rrggbb".

    Hue wraps modulo 360; saturation and lightness are clamped. Zero
    saturation yields an exact gray.
    """
    h = h % 360
    sat = _clamp(s, 0, 100) / 100
    light = _clamp(l, 0, 100) / 100

    if sat == 0:
        return rgb_to_hex(light, light, light)

    q = light * (1 + sat) if light < 0.5 else light + sat - light * sat
    p = 2 * light - q
    return rgb_to_hex(
        _hue_to_rgb(p, q, h / 360 + 1 / 3),
        _hue_to_rgb(p, q, h / 360),
        _hue_to_rgb(p, q, h / 360 - 1 / 3),
    )


def shift_hue(color, degrees):
    """Rotate hue by degrees. Grays (s == 0) have no hue and are left alone."""
    h, s, l = hex_to_hsl(color)
    if s == 0:
        return hsl_to_hex(h, s, l)
    return hsl_to_hex(h + degrees, s, l)


def apply_hue_and_brightness(color, degrees, brightness):
    """Background adjustment: hue rotation plus brightness around 50 = unchanged.

    Args:
        color: "#rrggbb"
        degrees: Hue rotation in degrees
        brightness: 0-100, 50 leaves lightness as-is, 100 doubles it
    """
    h, s, l = hex_to_hsl(color)
    factor = _clamp(brightness, 0, 100) / 50
    adjusted = _clamp(l * factor, 0, 100)
    if s == 0 and (l in (0, 100) or adjusted in (0, 100)):
        return hsl_to_hex(h, s, adjusted)
    return hsl_to_hex(h + degrees, s, adjusted)


def jitter_color(color, variance, rng):
    """Perturb hue, saturation and lightness independently.

    Draws exactly three values from rng so streams stay aligned.

    Args:
        color: "#rrggbb"
        variance: 0-1.5 (hue +/-variance*30 deg, sat +/-variance*25, light +/-variance*20)
        rng: Callable returning floats in [0, 1)
    """
    h, s, l = hex_to_hsl(color)
    hue_shift = (rng() - 0.5) * variance * 60
    sat_shift = (rng() - 0.5) * variance * 50
    light_shift = (rng() - 0.5) * variance * 40
    return hsl_to_hex(h + hue_shift, s + sat_shift, l + light_shift)


def apply_color_adjustments(color, saturation=100, brightness=100, contrast=100):
    """Apply contrast, then saturation, then brightness. 100 is a no-op for each."""
    h, s, l = hex_to_hsl(color)
    l = _clamp(50 + (l - 50) * (contrast / 100), 0, 100)
    s = _clamp(s * (saturation / 100), 0, 100)
    l = _clamp(l * (brightness / 100), 0, 100)
    return hsl_to_hex(h, s, l)


def interpolate_color(color_a, color_b, t):
    """HSL interpolation taking the short way around the hue wheel."""
    h1, s1, l1 = hex_to_hsl(color_a)
    h2, s2, l2 = hex_to_hsl(color_b)
    diff = h2 - h1
    if diff > 180:
        diff -= 360
    elif diff < -180:
        diff += 360
    return hsl_to_hex(
        h1 + diff * t,
        s1 + (s2 - s1) * t,
        l1 + (l2 - l1) * t,
    )


def interpolate_palette_colors(palette_a, palette_b, t):
    """Blend two palettes index by index.

    The shorter palette wraps so differently sized palettes still pair up.
    The endpoints return the source colors untouched.
    """
    t = _clamp(t, 0.0, 1.0)
    size = max(len(palette_a), len(palette_b))
    if t <= 0.0:
        return [palette_a[i % len(palette_a)] for i in range(size)]
    if t >= 1.0:
        return [palette_b[i % len(palette_b)] for i in range(size)]
    return [
        interpolate_color(palette_a[i % len(palette_a)], palette_b[i % len(palette_b)], t)
        for i in range(size)
    ]
