"""
Animation Clocks

Frame-rate independent timelines, in 60 Hz frame units (dt_units = 1.0 at
exactly 60 fps):

    hue        sprite hue rotation, wraps at 10 (one turn per ~10 s at 100%)
    palette    palette cycling, seconds, wraps at 30
    canvas     background hue rotation, wraps at 12
    scaled     motion time, advanced by the smoothed speed factor

A clock only moves while animation is enabled and its own toggle is on;
while stopped it holds its value so re-enabling resumes smoothly.
"""

import math

from .color import interpolate_palette_colors
from .movement import speed_multiplier
from .palettes import all_palette_ids, get_palette
MOTION_SPEED_MAX = 12.5

# Closes 95% of a speed step in one 60 Hz frame, a 0.95 lerp per frame
SPEED_TIME_CONSTANT = 1.0 / (60.0 * math.log(20.0))

HUE_PERIOD = 10.0
PALETTE_PERIOD = 30.0
CANVAS_PERIOD = 12.0

MIN_HUE_SPEED = 0.05
MIN_PALETTE_SPEED = 0.05
MIN_CANVAS_SPEED = 0.001


def ease_in_out_quad(t):
    if t < 0.5:
        return 2 * t * t
    return 1 - ((-2 * t + 2) ** 2) / 2


def target_speed_factor(state):
    """Motion speed as a fraction of max, normalized for the movement mode."""
    if not state.animation_enabled:
        return 0.0
    base = max(state.motion_speed / MOTION_SPEED_MAX, 0.0)
    return base / speed_multiplier(state.movement_mode)


class SpeedSmoother:
    """Eases the motion speed factor toward its target.

    The step is integrated over wall-clock dt, so a slider jump ramps the
    same way at 30 fps as at 144 fps. tau <= 0 jumps straight to target.
    """

    def __init__(self, factor=0.0, tau=SPEED_TIME_CONSTANT):
        self.factor = factor
        self.tau = tau

    def step(self, target, dt_seconds):
        """Move toward target by dt_seconds.

        Returns:
            (previous, current) factors, for trapezoid integration
        """
        previous = self.factor
        if dt_seconds > 0:
            if self.tau <= 0:
                self.factor = target
            else:
                self.factor += (target - self.factor) * -math.expm1(-dt_seconds / self.tau)
        return previous, self.factor

    def snap(self, factor):
        self.factor = factor


class AnimationClocks:
    """All per-frame timelines for one controller.

    Loop override pins scaled time inside a fixed period so exported
    recordings loop seamlessly; with a frame index it becomes fully
    deterministic.
    """

    def __init__(self, state=None):
        self.hue_time = 0.0
        self.palette_time = 0.0
        self.canvas_time = 0.0
        self.animation_time = 0.0
        self.scaled_time = 0.0
        initial = target_speed_factor(state) if state is not None else 0.0
        self.speed = SpeedSmoother(initial)
        self.loop_period = None
        self.loop_frame_index = None
        self.loop_total_frames = 0

    def set_loop_override(self, period_seconds=None, frame_index=None, total_frames=0):
        """Enable (period given) or clear (None) seamless-loop time wrapping."""
        self.loop_period = None if period_seconds is None else max(0.25, period_seconds)
        self.loop_frame_index = frame_index
        self.loop_total_frames = total_frames

    def advance(self, state, dt_seconds):
        """Step every clock by dt_seconds of wall time.

        Returns:
            dt in 60 Hz frame units
        """
        dt = max(dt_seconds, 0.0) * 60.0

        if state.animation_enabled and state.hue_rotation_enabled:
            factor = max(MIN_HUE_SPEED, state.hue_rotation_speed / 100)
            self.hue_time = (self.hue_time + dt * factor * 0.1) % HUE_PERIOD

        if state.animation_enabled and state.palette_cycle_enabled:
            factor = max(MIN_PALETTE_SPEED, state.palette_cycle_speed / 100)
            self.palette_time += dt / 60.0 * factor
            if self.palette_time > PALETTE_PERIOD:
                self.palette_time -= math.floor(self.palette_time / PALETTE_PERIOD) * PALETTE_PERIOD

        if state.animation_enabled and state.canvas_hue_rotation_enabled:
            factor = max(MIN_CANVAS_SPEED, state.canvas_hue_rotation_speed / 100)
            self.canvas_time = (self.canvas_time + dt * factor / 12.0) % CANVAS_PERIOD

        self.animation_time += dt
        previous, current = self.speed.step(target_speed_factor(state), dt_seconds)
        self.scaled_time += dt * (previous + current) / 2

        if self.loop_period is not None:
            if self.loop_frame_index is not None and self.loop_total_frames > 0:
                t = (self.loop_frame_index % self.loop_total_frames) / self.loop_total_frames
                self.scaled_time = t * self.loop_period
            else:
                self.scaled_time %= self.loop_period
        return dt

    def sprite_hue_offset(self, state):
        """Animated sprite hue shift in degrees, 0 when disabled."""
        if not state.hue_rotation_enabled:
            return 0.0
        return (self.hue_time / HUE_PERIOD * 360) % 360

    def canvas_hue_offset(self, state):
        if not state.canvas_hue_rotation_enabled:
            return 0.0
        return (self.canvas_time / CANVAS_PERIOD * 360) % 360

    def cycled_palette(self):
        """Palette blended between the current and next entry in the cycle.

        Returns:
            {"id", "colors"} dict; id is the palette being cycled away from
        """
        ids = all_palette_ids()
        progress = self.palette_time / PALETTE_PERIOD * len(ids)
        fraction = progress - math.floor(progress)
        index = int(math.floor(progress)) % len(ids)
        current = get_palette(ids[index])
        upcoming = get_palette(ids[(index + 1) % len(ids)])
        colors = interpolate_palette_colors(
            current["colors"], upcoming["colors"], ease_in_out_quad(fraction),
        )
        return {"id": current["id"], "colors": colors}

    def reset(self, state=None):
        self.hue_time = 0.0
        self.palette_time = 0.0
        self.canvas_time = 0.0
        self.animation_time = 0.0
        self.scaled_time = 0.0
        self.speed.snap(target_speed_factor(state) if state is not None else 0.0)
