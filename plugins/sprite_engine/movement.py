"""
Movement Library

One pure function per motion mode. Each maps (time, phase, intensity,
layer, size units) to a pixel offset and a scale multiplier; none keep
state, so a tile's position at any time is a function of its stored
randomness and the clock.

Every mode floors its scale multiplier at MIN_SCALE_MULTIPLIER so tiles
never shrink to nothing. The parallax modes (linear, isometric,
triangular) move each tile at a speed proportional to its size relative
to the layer, so small tiles read as further away.

Frequency constants differ wildly between modes; SPEED_MULTIPLIERS is
applied once by the scheduler so 100% motion speed feels comparable in
every mode.
"""

import math
from collections import namedtuple

Movement = namedtuple("Movement", ["offset_x", "offset_y", "scale_multiplier"])

MIN_SCALE_MULTIPLIER = 0.35

DEFAULT_MOVEMENT_MODE = "drift"

# Speed normalization, divided out of the target speed
SPEED_MULTIPLIERS = {
    "drift": 1.625,
    "cascade": 2.5,
    "comet": 3.0,
    "ripple": 3.25,
    "spiral": 7.3,
    "zigzag": 2.2,
    "pulse": 2.7,
    "pulse-meander": 2.7,
    "linear": 8.0,
    "isometric": 8.0,
    "triangular": 8.0,
}

# Sparse-spreading modes get larger sprites...
SCALE_MULTIPLIERS = {
    "spiral": 1.4,
    "comet": 1.3,
    "ripple": 1.15,
    "cascade": 1.1,
}

# ...and more of them
TILE_COUNT_MULTIPLIERS = {
    "spiral": 1.8,
}

_LINEAR_ANGLES = [0.0, math.pi / 2, math.pi, 3 * math.pi / 2]
_HEX_EDGE_ANGLES = [math.pi / 6, 5 * math.pi / 6, 7 * math.pi / 6, 11 * math.pi / 6]
_TRIANGLE_EDGE_ANGLES = [2 * math.pi / 3, 0.0, math.pi / 3]


def _floor_scale(value):
    return max(MIN_SCALE_MULTIPLIER, value)


def speed_multiplier(mode):
    return SPEED_MULTIPLIERS.get(mode, 1.0)


def scale_multiplier(mode):
    return SCALE_MULTIPLIERS.get(mode, 1.0)


def tile_count_multiplier(mode):
    return TILE_COUNT_MULTIPLIERS.get(mode, 1.0)


def parallax_speed(base_unit, layer_tile_size):
    """Speed factor for parallax modes: 0.3 for tiny tiles up to 1.0 at layer size."""
    if layer_tile_size <= 0:
        return 0.3
    return 0.3 + (base_unit / layer_tile_size) * 0.7


# ----- Mode functions -------------------------------------------------------
# Signature: (phased, phase, motion_scale, layer_index, base_unit, layer_tile_size)
# where phased = time * speed_factor + phase.

def _pulse(phased, phase, ms, li, bu, lts):
    pulse = math.sin(phased * 0.08) * ms
    return Movement(0.0, 0.0, _floor_scale(1 + pulse * 0.55))


def _wander(phased, phase, bu, ms, kx, ky):
    x = math.sin(phased * 0.028 + phase * 0.15) * bu * ms * kx
    y = math.cos(phased * 0.024 + phase * 0.12) * bu * ms * ky
    return x, y


def _pulse_meander(phased, phase, ms, li, bu, lts):
    pulse = math.sin(phased * 0.08) * ms
    x, y = _wander(phased, phase, bu, ms, 1.2, 1.3)
    return Movement(x, y, _floor_scale(1 + pulse * 0.55))


def _drift(phased, phase, ms, li, bu, lts):
    x, y = _wander(phased, phase, bu, ms, 0.8, 0.9)
    return Movement(x, y, _floor_scale(1 + math.sin(phased * 0.016) * ms * 0.25))


def _ripple(phased, phase, ms, li, bu, lts):
    wave = math.sin(phased * 0.04 + li * 0.6)
    radius = bu * (0.4 + ms * 0.8) * (0.5 + wave * 0.5)
    angle = phase * 2 * math.pi + phased * 0.02
    return Movement(
        math.cos(angle) * radius * wave,
        math.sin(angle) * radius * wave,
        _floor_scale(1 + wave * ms * 0.5),
    )


def _zigzag(phased, phase, ms, li, bu, lts):
    # Horizontal sweep retraces itself; three sawtooth teeth per sweep
    zig_time = phased * 0.002 + li * 0.02
    cycle = zig_time % 2
    progress = cycle if cycle < 1 else 2 - cycle
    offset_x = (progress - 0.5) * 2 * bu * (1.8 + ms * 3.0) * ms

    saw = (progress * 3) % 1
    zig_y = saw * 2 if saw < 0.5 else 2 - saw * 2
    offset_y = (zig_y - 0.5) * 2 * bu * (0.4 + ms * 0.8) * ms

    scale = 1 + math.cos(zig_time * math.pi * 0.3) * 0.08 * ms
    return Movement(offset_x, offset_y, _floor_scale(scale))


def _cascade(phased, phase, ms, li, bu, lts):
    t = phased * 0.045 + li * 0.2
    wave = math.sin(t)
    fall = ((1 - math.cos(t)) * 0.5) ** 0.7
    offset_y = (fall * 2 - 1) * lts * 0.7 * (1 + li * 0.2) * ms
    offset_x = wave * bu * 0.2 * ms
    # Shrinks toward the bottom of the fall
    scale = 1 - fall * 0.3 + math.sin(t * 1.2 + phase * 0.25) * 0.12 * ms
    return Movement(offset_x, offset_y, _floor_scale(scale))


def _spiral(phased, phase, ms, li, bu, lts):
    radius = bu * (0.45 + li * 0.15 + ms * 0.85)
    angle = phased * (0.04 + li * 0.02)
    breathe = 1 + math.sin(angle * 0.5) * 0.25
    return Movement(
        math.cos(angle) * radius * breathe,
        math.sin(angle) * radius * breathe,
        _floor_scale(1 + math.cos(angle * 0.7) * ms * 0.25),
    )


def _comet(phased, phase, ms, li, bu, lts):
    path = lts * (0.85 + li * 0.28 + ms * 1.2)
    travel = phased * (0.018 + li * 0.005)
    orbital = travel + phase
    tail = (math.sin(travel * 0.9 + phase * 0.6) + 1) * 0.5
    return Movement(
        math.cos(orbital) * path,
        math.sin(orbital * 0.75) * path * 0.48,
        _floor_scale(0.65 + tail * ms * 0.55),
    )


def _parallax(angle, oscillation, ms, bu, lts):
    reach = (lts * 0.7 * ms + bu * 0.5) * parallax_speed(bu, lts)
    travel = oscillation * reach
    return Movement(math.cos(angle) * travel, math.sin(angle) * travel, 1.0)


def _linear(phased, phase, ms, li, bu, lts):
    angle = _LINEAR_ANGLES[int(math.floor((phase * 0.25) % len(_LINEAR_ANGLES)))]
    return _parallax(angle, math.sin(phased * 0.04 + phase * 0.1), ms, bu, lts)


def _isometric(phased, phase, ms, li, bu, lts):
    angle = _HEX_EDGE_ANGLES[int(math.floor((phase * 0.142857) % len(_HEX_EDGE_ANGLES)))]
    return _parallax(angle, math.sin(phased * 0.04), ms, bu, lts)


def _triangular(phased, phase, ms, li, bu, lts):
    idx = int(math.floor((phase * 0.142857) % len(_TRIANGLE_EDGE_ANGLES)))
    return _parallax(_TRIANGLE_EDGE_ANGLES[idx], math.sin(phased * 0.04), ms, bu, lts)


def _fallback(phased, phase, ms, li, bu, lts):
    x, y = _wander(phased, phase, bu, ms, 0.45, 0.5)
    return Movement(x, y, _floor_scale(1 + math.sin(phased * 0.016) * ms * 0.16))


MOVEMENT_MODES = {
    "pulse": _pulse,
    "pulse-meander": _pulse_meander,
    "drift": _drift,
    "ripple": _ripple,
    "zigzag": _zigzag,
    "cascade": _cascade,
    "spiral": _spiral,
    "comet": _comet,
    "linear": _linear,
    "isometric": _isometric,
    "triangular": _triangular,
}

MOVEMENT_ORDER = list(MOVEMENT_MODES.keys())


def compute_movement(mode, time, phase, motion_scale, layer_index,
                     base_unit, layer_tile_size, speed_factor=1.0):
    """Offset and scale for one tile at one instant.

    Args:
        mode: Motion mode name; unknown names get a gentle wander
        time: Scaled animation time (60 Hz frame units)
        phase: Per-tile phase offset
        motion_scale: Motion intensity, 0-1.5
        layer_index: 0, 1 or 2
        base_unit: Tile size in pixels
        layer_tile_size: Layer reference size in pixels
        speed_factor: Extra time multiplier; negative values freeze motion

    Returns:
        Movement(offset_x, offset_y, scale_multiplier)
    """
    velocity = max(speed_factor, 0.0)
    phased = (time * velocity if velocity else 0.0) + phase
    fn = MOVEMENT_MODES.get(mode, _fallback)
    return fn(phased, phase, motion_scale, layer_index, base_unit, layer_tile_size)
