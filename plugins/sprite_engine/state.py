"""
Generator State

Every user-tunable parameter in one pydantic model. States are treated as
immutable values: changes go through evolve(), which re-validates so
numeric fields are always stored already clamped to their range.

The persisted shape is JSON with camelCase keys; to_json()/from_json()
round-trip without loss.
"""

from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .blending import DEFAULT_BLEND_MODE, normalize_blend_mode
from .palettes import DEFAULT_PALETTE_ID
from .sprites import DEFAULT_COLLECTION_ID, DEFAULT_SPRITE_REFERENCE, reference_for_mode

MAX_DENSITY_PERCENT = 1800
MAX_ROTATION_DEGREES = 180
MOTION_SPEED_MAX = 12.5

NOISE_TYPES = ["grain", "crt", "bayer", "static", "scanlines"]
ASPECT_RATIOS = ["16:9", "21:9", "16:10", "custom"]
FILL_MODES = ["solid", "gradient"]

# Inclusive (min, max) for every clamped numeric field
FIELD_RANGES = {
    "palette_variance": (0, 150),
    "hue_shift": (0, 100),
    "saturation": (0, 200),
    "brightness": (0, 200),
    "contrast": (0, 200),
    "scale_percent": (0, MAX_DENSITY_PERCENT),
    "scale_base": (0, 100),
    "scale_spread": (0, 100),
    "motion_intensity": (0, 100),
    "motion_speed": (0, MOTION_SPEED_MAX),
    "layer_opacity": (15, 100),
    "background_hue_shift": (0, 100),
    "background_saturation": (0, 200),
    "background_brightness": (0, 100),
    "background_contrast": (0, 200),
    "rotation_amount": (0, MAX_ROTATION_DEGREES),
    "rotation_speed": (1, 100),
    "sprite_gradient_direction": (0, 360),
    "canvas_gradient_direction": (0, 360),
    "depth_of_field_focus": (0, 100),
    "depth_of_field_strength": (0, 100),
    "hue_rotation_speed": (0.1, 100),
    "palette_cycle_speed": (0.1, 100),
    "canvas_hue_rotation_speed": (0.1, 100),
    "outline_stroke_width": (1, 20),
    "outline_balance": (0, 100),
    "filled_opacity": (0, 100),
    "outlined_opacity": (0, 100),
    "bloom_intensity": (0, 100),
    "bloom_threshold": (0, 100),
    "bloom_radius": (0, 100),
    "noise_strength": (0, 100),
}


def clamp(value, lo, hi):
    return min(hi, max(lo, value))


def clamp_field(name, value):
    lo, hi = FIELD_RANGES[name]
    return clamp(value, lo, hi)


class _StateModel(BaseModel):
    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra="ignore",
    )


class Position(_StateModel):
    u: float = 0.5
    v: float = 0.5


class AspectSize(_StateModel):
    width: int = Field(default=1920, ge=1)
    height: int = Field(default=1080, ge=1)


class ThumbnailMode(_StateModel):
    """Overrides layer 0 with one primary tile plus scattered secondaries."""

    primary_color_index: int = 0
    secondary_color_index: int = 1
    primary_scale: float = 1.0
    secondary_scale: float = 0.5
    secondary_count: int = Field(default=7, ge=0)
    primary_position: Optional[Position] = None


class GeneratorState(_StateModel):
    seed: str = "DEADBEEF"

    # ----- Color -----
    palette_id: str = DEFAULT_PALETTE_ID
    palette_variance: float = Field(default=68, description="Per-color jitter, 0-150 (%)")
    hue_shift: float = Field(default=0, description="Global hue shift, 0-100 maps to 0-360 deg")
    saturation: float = 100
    brightness: float = 100
    contrast: float = 100

    # ----- Density & scale -----
    scale_percent: float = Field(default=925, description="Density, 0-1800")
    scale_base: float = 50
    scale_spread: float = 50

    # ----- Motion -----
    motion_intensity: float = 58
    motion_speed: float = 8.5
    movement_mode: str = "drift"
    animation_enabled: bool = True

    # ----- Blend & opacity -----
    blend_mode: str = DEFAULT_BLEND_MODE
    blend_mode_auto: bool = True
    previous_blend_mode: str = DEFAULT_BLEND_MODE
    layer_opacity: float = 74

    # ----- Sprites -----
    sprite_collection_id: str = DEFAULT_COLLECTION_ID
    sprite_mode: str = Field(default="star", description="Legacy single-sprite mode")
    selected_sprites: Optional[List[str]] = Field(
        default_factory=lambda: [DEFAULT_SPRITE_REFERENCE],
    )
    random_sprites: bool = False

    # ----- Background -----
    background_mode: str = "auto"
    background_hue_shift: float = 0
    background_saturation: float = 100
    background_brightness: float = 50
    background_contrast: float = 100
    background_color_index: int = 0

    # ----- Rotation -----
    rotation_enabled: bool = False
    rotation_amount: float = 72
    rotation_speed: float = 48
    rotation_animated: bool = False

    # ----- Gradients -----
    sprite_fill_mode: str = "solid"
    sprite_gradient_id: Optional[str] = None
    sprite_gradient_direction: float = 0
    sprite_gradient_random: bool = False
    sprite_gradient_direction_random: bool = False
    canvas_fill_mode: str = "solid"
    canvas_gradient_mode: str = "auto"
    canvas_gradient_direction: float = 0

    # ----- Depth of field -----
    depth_of_field_enabled: bool = False
    depth_of_field_focus: float = 50
    depth_of_field_strength: float = 50

    # ----- Animation clocks -----
    hue_rotation_enabled: bool = False
    hue_rotation_speed: float = 50
    palette_cycle_enabled: bool = False
    palette_cycle_speed: float = 50
    canvas_hue_rotation_enabled: bool = False
    canvas_hue_rotation_speed: float = 50

    # ----- Aspect ratio -----
    aspect_ratio: str = "16:9"
    custom_aspect_ratio: AspectSize = Field(default_factory=AspectSize)

    # ----- Outline -----
    outline_enabled: bool = False
    outline_stroke_width: float = 2
    outline_mixed: bool = False
    outline_balance: float = 50
    filled_opacity: float = 74
    outlined_opacity: float = 74

    # ----- Reroll suffixes (opaque; changed = reshuffle that stream) -----
    color_seed_suffix: str = ""
    blend_mode_seed_suffix: str = ""
    background_color_seed_suffix: str = ""
    sprite_gradient_color_seed_suffix: str = ""

    # ----- Section toggles -----
    color_adjustments_enabled: bool = True
    gradients_enabled: bool = True
    blend_opacity_enabled: bool = True
    canvas_enabled: bool = True
    density_scale_enabled: bool = True

    # ----- FX -----
    bloom_enabled: bool = False
    bloom_intensity: float = 50
    bloom_threshold: float = 50
    bloom_radius: float = 20
    noise_enabled: bool = False
    noise_type: str = "grain"
    noise_strength: float = 30

    thumbnail_mode: Optional[ThumbnailMode] = None

    @field_validator(*FIELD_RANGES.keys(), mode="before")
    @classmethod
    def _clamp_range(cls, value, info):
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            return value
        return clamp_field(info.field_name, value)

    @field_validator("blend_mode", "previous_blend_mode", mode="before")
    @classmethod
    def _known_blend(cls, value):
        return normalize_blend_mode(value)

    @field_validator("noise_type", mode="before")
    @classmethod
    def _known_noise(cls, value):
        return value if value in NOISE_TYPES else "grain"

    @field_validator("aspect_ratio", mode="before")
    @classmethod
    def _known_aspect(cls, value):
        return value if value in ASPECT_RATIOS else "16:9"

    @field_validator("sprite_fill_mode", "canvas_fill_mode", mode="before")
    @classmethod
    def _known_fill(cls, value):
        return value if value in FILL_MODES else "solid"

    @field_validator("selected_sprites", mode="after")
    @classmethod
    def _migrate_selection(cls, value, info):
        # Older states carry only sprite_mode. An explicit empty list is kept.
        if value is None:
            mode = info.data.get("sprite_mode", "star")
            collection = info.data.get("sprite_collection_id", DEFAULT_COLLECTION_ID)
            return [reference_for_mode(mode, collection)]
        return list(value)

    def evolve(self, **changes):
        """New validated state with changes applied (field names, not aliases)."""
        data = self.model_dump()
        data.update(changes)
        return GeneratorState.model_validate(data)

    def to_json(self):
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, text):
        return cls.model_validate_json(text)


DEFAULT_STATE = GeneratorState()


def default_state(**overrides):
    return DEFAULT_STATE.evolve(**overrides)


# ----- Recompute policy -------------------------------------------------

# Fields read live each frame; changing only these never regenerates tiles
LIVE_FIELDS = frozenset({
    "motion_intensity", "motion_speed", "animation_enabled",
    "blend_mode", "blend_mode_auto", "previous_blend_mode",
    "layer_opacity", "rotation_enabled", "rotation_animated",
    "blend_opacity_enabled", "canvas_enabled",
    "sprite_fill_mode", "sprite_gradient_direction",
    "canvas_fill_mode", "canvas_gradient_mode", "canvas_gradient_direction",
    "depth_of_field_focus", "depth_of_field_strength",
    "outline_enabled", "outline_stroke_width",
    "filled_opacity", "outlined_opacity",
    "bloom_enabled", "bloom_intensity", "bloom_threshold", "bloom_radius",
    "noise_enabled", "noise_type", "noise_strength",
    "hue_rotation_enabled", "hue_rotation_speed",
    "palette_cycle_enabled", "palette_cycle_speed",
    "canvas_hue_rotation_enabled", "canvas_hue_rotation_speed",
    "aspect_ratio", "custom_aspect_ratio",
})


def changed_fields(old, new):
    """Names of fields whose values differ between two states."""
    a = old.model_dump()
    b = new.model_dump()
    return {name for name in b if a.get(name) != b[name]}


def needs_recompute(old, new):
    """True when any changed field affects the prepared tile layout."""
    changed = changed_fields(old, new)
    if not changed:
        return False
    if old.rotation_enabled and new.rotation_enabled:
        changed -= {"rotation_amount", "rotation_speed"}
    return bool(changed - LIVE_FIELDS)
