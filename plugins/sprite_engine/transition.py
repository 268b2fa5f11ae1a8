"""
Transition Interpolator

Blends two generator states over a bounded window:

    instant  swap immediately
    fade     global opacity 1 -> 0 -> 1 over 1000 ms; the target layout is
             drawn from the first frame
    smooth   every numeric field (eased) and the palette colors interpolate
             over 2500 ms; tiles are recomputed each frame

Progress is wall-clock based and clamped to [0, 1].
"""

from collections import namedtuple

from .color import interpolate_palette_colors
from .palettes import get_palette

TRANSITION_TYPES = ("instant", "fade", "smooth")

TRANSITION_DURATIONS_MS = {
    "instant": 0,
    "fade": 1000,
    "smooth": 2500,
}

# Numeric fields that blend linearly during a transition
INTERPOLATED_FIELDS = (
    "palette_variance", "hue_shift",
    "scale_percent", "scale_base", "scale_spread",
    "motion_intensity", "motion_speed", "layer_opacity",
    "background_hue_shift", "background_brightness",
    "rotation_amount", "rotation_speed",
    "depth_of_field_focus", "depth_of_field_strength",
    "hue_rotation_speed", "palette_cycle_speed", "canvas_hue_rotation_speed",
    "sprite_gradient_direction", "canvas_gradient_direction",
)

# Modes and flags: switch at the midpoint (smooth) or at once (fade)
DISCRETE_FIELDS = (
    "sprite_mode", "movement_mode", "background_mode", "blend_mode",
    "sprite_fill_mode", "canvas_fill_mode",
    "rotation_enabled", "rotation_animated", "blend_mode_auto", "random_sprites",
    "depth_of_field_enabled", "hue_rotation_enabled", "palette_cycle_enabled",
    "canvas_hue_rotation_enabled", "sprite_gradient_random",
    "sprite_gradient_direction_random",
)

# Always taken from the target
TARGET_FIELDS = (
    "previous_blend_mode", "sprite_collection_id", "sprite_gradient_id",
    "canvas_gradient_mode", "aspect_ratio", "custom_aspect_ratio",
)

Interpolated = namedtuple("Interpolated", ["state", "palette"])


def _lerp(a, b, t):
    return a + (b - a) * t


def ease_in_out(t):
    return 2 * t * t if t < 0.5 else -1 + (4 - 2 * t) * t


def calculate_transition_progress(elapsed_ms, duration_ms):
    if duration_ms <= 0:
        return 1.0
    return min(1.0, max(0.0, elapsed_ms / duration_ms))


def fade_opacity(progress):
    """Global opacity for a fade: 1 at the ends, 0 at the midpoint."""
    if progress < 0.5:
        return 1 - progress * 2
    return (progress - 0.5) * 2


def blend_palettes(palette_a, palette_b, t):
    """Per-index HSL blend of two palettes; the id flips at the midpoint."""
    a = get_palette(palette_a)
    b = get_palette(palette_b)
    return {
        "id": a["id"] if t < 0.5 else b["id"],
        "colors": interpolate_palette_colors(a["colors"], b["colors"], t),
    }


def interpolate_generator_state(from_state, to_state, t, ease=True,
                                interpolate_palettes=True, interpolate_discrete=False):
    """Blend two states at factor t.

    Args:
        from_state: GeneratorState at t=0
        to_state: GeneratorState at t=1
        t: Raw progress, 0-1
        ease: Apply ease_in_out before blending
        interpolate_palettes: Blend palette colors when the ids differ
        interpolate_discrete: Switch discrete fields at the midpoint instead
            of immediately

    Returns:
        Interpolated(state, palette) where palette is an {"id", "colors"}
        override for compute_sprite, or None
    """
    k = ease_in_out(t) if ease else t
    k = min(1.0, max(0.0, k))
    first_half = k < 0.5

    changes = {"seed": from_state.seed if first_half else to_state.seed}
    for name in INTERPOLATED_FIELDS:
        changes[name] = _lerp(getattr(from_state, name), getattr(to_state, name), k)

    palette = None
    if interpolate_palettes and from_state.palette_id != to_state.palette_id:
        palette = blend_palettes(from_state.palette_id, to_state.palette_id, k)
        changes["palette_id"] = palette["id"]
    else:
        changes["palette_id"] = from_state.palette_id if first_half else to_state.palette_id

    for name in DISCRETE_FIELDS:
        if interpolate_discrete and first_half:
            changes[name] = getattr(from_state, name)
        else:
            changes[name] = getattr(to_state, name)

    for name in TARGET_FIELDS:
        changes[name] = getattr(to_state, name)

    return Interpolated(from_state.evolve(**changes), palette)


class Transition:
    """One in-flight transition, sampled by the frame pass.

    Times are milliseconds from whatever monotonic clock the controller
    uses; the transition itself never reads a clock.
    """

    def __init__(self, from_state, to_state, kind, start_ms, duration_ms=None):
        if kind not in TRANSITION_TYPES:
            raise ValueError(f"Unknown transition type: {kind!r}")
        self.from_state = from_state
        self.to_state = to_state
        self.kind = kind
        self.start_ms = start_ms
        if duration_ms is None:
            duration_ms = TRANSITION_DURATIONS_MS[kind]
        self.duration_ms = duration_ms

    def progress(self, now_ms):
        return calculate_transition_progress(now_ms - self.start_ms, self.duration_ms)

    def is_complete(self, now_ms):
        return self.progress(now_ms) >= 1.0

    def opacity(self, now_ms):
        if self.kind != "fade":
            return 1.0
        return fade_opacity(self.progress(now_ms))

    def sample(self, now_ms):
        """Effective state at now_ms (target state once complete)."""
        p = self.progress(now_ms)
        if p >= 1.0:
            return Interpolated(self.to_state, None)
        return interpolate_generator_state(
            self.from_state, self.to_state, p,
            ease=True,
            interpolate_palettes=True,
            interpolate_discrete=self.kind == "smooth",
        )
