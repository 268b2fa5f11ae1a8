"""
Composer: GeneratorState -> PreparedSprite

Builds the layered tile list for one state. Every random draw comes from
a named stream (see seeding.py) so that, for example, rerolling colors
never moves a tile:

    color              palette jitter + per-tile palette index
    position           grid jitter, scale, rotation/animation multipliers
    sprite-selection   which selected sprite each tile shows
    blend{suffix}      per-tile auto blend (base stream without suffix)
    blend...-layer{i}  per-layer auto blend

Auto blend picks are always drawn and stored; whether they are used is
decided live from blend_mode_auto, so toggling auto never reshuffles.

Per-tile multipliers are stored rather than resolved so the frame pass can
re-derive rotation, spin and animation timing live from current state.
"""

import logging
import math
import random
from dataclasses import dataclass, field, replace
from typing import List, Optional

from .blending import normalize_blend_mode, pick_blend_mode
from .color import apply_hue_and_brightness, jitter_color, shift_hue
from .movement import scale_multiplier, tile_count_multiplier
from .palettes import get_palette
from .seeding import seeded_stream
from .sprites import find_sprite, resolve_sprite

logger = logging.getLogger(__name__)

MIN_TILE_SCALE = 0.12
MAX_TILE_SCALE = 5.5
MAX_DENSITY_PERCENT = 1800
ROTATION_SPEED_MAX = (math.pi / 2) * 0.05
MIN_ROTATION_SPEED = 0.05

LAYER_THRESHOLDS = (0.0, 0.38, 0.7)
BASE_SIZE_RATIO = 0.22
BASE_MAX_TILES = 50
GRID_ASPECT = 16 / 9

THUMBNAIL_ACCENT = "#2dd4bf"
THUMBNAIL_SECONDARY = "#475569"
_THUMB_MIN_DIST = 0.15
_THUMB_MAX_DIST = 0.45
_THUMB_PADDING = 0.1


def _clamp(value, lo, hi):
    return min(hi, max(lo, value))


def _lerp(a, b, t):
    return a + (b - a) * t


@dataclass
class PreparedTile:
    sprite: str
    tint: str
    palette_color_index: int
    u: float
    v: float
    scale: float
    blend_mode: str
    rotation_base: float
    rotation_direction: int
    rotation_speed: float
    rotation_base_multiplier: float
    rotation_speed_multiplier: float
    animation_time_multiplier: float
    is_outlined: bool = False
    sprite_source: str = "selected"
    role: Optional[str] = None  # "primary" / "secondary" in thumbnail mode


@dataclass
class PreparedLayer:
    tiles: List[PreparedTile]
    tile_count: int
    blend_mode: str
    opacity: float
    base_size_ratio: float


@dataclass
class PreparedSprite:
    layers: List[PreparedLayer]
    background: str
    palette: List[str] = field(default_factory=list)
    background_palette_id: str = ""
    background_index: int = 0

    def tile_count(self):
        return sum(len(layer.tiles) for layer in self.layers)


def background_palette_id(state, active_palette_id=None):
    if state.background_mode == "auto":
        return active_palette_id or state.palette_id
    return state.background_mode


def background_color_index(seed, palette_id, suffix=""):
    """Seeded palette index for the background, independent of tile colors."""
    colors = get_palette(palette_id)["colors"]
    if not colors:
        return 0
    suffix_part = f"-{suffix}" if suffix else ""
    rng = seeded_stream(seed, f"background-color-{palette_id}", suffix_part)
    return int(rng() * len(colors))


def scale_bounds(state):
    """(base, min, max) tile scale from the scale base/spread sliders."""
    base = _lerp(MIN_TILE_SCALE, MAX_TILE_SCALE, _clamp(state.scale_base / 100, 0, 1))
    spread = _clamp(state.scale_spread / 100, 0, 1)
    return base, _lerp(base, MIN_TILE_SCALE, spread), _lerp(base, MAX_TILE_SCALE, spread)


def max_tiles_per_layer(state):
    dof = 0.75 if state.depth_of_field_enabled else 1.0
    return int(math.floor(
        BASE_MAX_TILES * tile_count_multiplier(state.movement_mode) * dof * math.sqrt(GRID_ASPECT) + 0.5
    ))


def rotation_speed_base(state):
    return max(MIN_ROTATION_SPEED, _clamp(state.rotation_speed, 1, 100) / 100)


def prepare_palette(state, palette_colors, color_rng):
    """Hue-shift then jitter each palette color (draws 3 values per color)."""
    variance = _clamp(state.palette_variance / 100, 0, 1.5)
    degrees = state.hue_shift / 100 * 360
    return [jitter_color(shift_hue(c, degrees), variance, color_rng) for c in palette_colors]


def _resolve_background(state):
    pid = background_palette_id(state)
    palette = get_palette(pid)
    index = background_color_index(state.seed, palette["id"], state.background_color_seed_suffix)
    base = palette["colors"][index % len(palette["colors"])] if palette["colors"] else "#000000"
    color = apply_hue_and_brightness(
        base, state.background_hue_shift / 100 * 360, state.background_brightness,
    )
    return color, palette["id"], index


def _layer_blend(state, layer_index):
    suffix = state.blend_mode_seed_suffix
    rng = seeded_stream(state.seed, f"blend{suffix}-layer{layer_index}")
    return pick_blend_mode(rng)


def compute_sprite(state, palette_override=None):
    """Build the full PreparedSprite for a state.

    Args:
        state: GeneratorState
        palette_override: Optional {"id", "colors"} dict (palette cycling,
            smooth transitions) used instead of state.palette_id

    Returns:
        PreparedSprite
    """
    rng = seeded_stream(state.seed)
    if palette_override is not None:
        palette_colors = list(palette_override["colors"])
    else:
        palette_colors = get_palette(state.palette_id)["colors"]

    color_rng = seeded_stream(state.seed, "color", state.color_seed_suffix)
    position_rng = seeded_stream(state.seed, "position")
    selection_rng = seeded_stream(state.seed, "sprite-selection")
    if state.blend_mode_seed_suffix:
        blend_rng = seeded_stream(state.seed, "blend", state.blend_mode_seed_suffix)
    else:
        blend_rng = rng

    chosen = prepare_palette(state, palette_colors, color_rng)
    background, bg_palette_id, bg_index = _resolve_background(state)

    density = _clamp(state.scale_percent / MAX_DENSITY_PERCENT, 0, 1)
    base_scale, min_scale, max_scale = scale_bounds(state)
    scale_range = max(0.0, max_scale - min_scale)
    rotation_range = math.radians(_clamp(state.rotation_amount, 0, 180))
    spin_base = rotation_speed_base(state)
    opacity_base = _clamp(state.layer_opacity / 100, 0.12, 1)
    max_tiles = max_tiles_per_layer(state)
    mode_scale = scale_multiplier(state.movement_mode)
    selected = list(state.selected_sprites or [])
    spiral = state.movement_mode == "spiral"
    outline_threshold = state.outline_balance / 100

    scale_ratio = base_scale / MAX_TILE_SCALE
    if spiral:
        lo_bound = _lerp(0.035, 0.17, scale_ratio)
        hi_bound = _lerp(0.965, 0.83, scale_ratio)
    else:
        lo_bound = _lerp(0.05, 0.2, scale_ratio)
        hi_bound = _lerp(0.95, 0.8, scale_ratio)

    layers = []
    for layer_index, threshold in enumerate(LAYER_THRESHOLDS):
        if layer_index > 0 and density < threshold:
            continue
        if layer_index == 0:
            layer_density = density
        else:
            layer_density = _clamp((density - threshold) / (1 - threshold), 0, 1)

        min_tiles = 1 if layer_index == 0 else 0
        total = max(min_tiles, int(math.floor(1 + layer_density * (max_tiles - 1) + 0.5)))
        if total == 0:
            continue

        layer_blend = _layer_blend(state, layer_index)
        opacity = _clamp(opacity_base + (rng() - 0.5) * 0.35, 0.12, 0.95)
        cols = max(1, int(math.floor(math.sqrt(total * GRID_ASPECT) + 0.5)))
        rows = max(1, int(math.ceil(total / cols)))
        jitter_x = 0.2 if cols == 1 else 0.6
        jitter_y = 0.2 if rows == 1 else 0.6

        tiles = []
        for index in range(total):
            col = index % cols
            row = index // cols
            u = _clamp((col + 0.5 + (position_rng() - 0.5) * jitter_x) / cols, lo_bound, hi_bound)
            v = _clamp((row + 0.5 + (position_rng() - 0.5) * jitter_y) / rows, lo_bound, hi_bound)
            if spiral:
                pull = scale_ratio * 0.12
                u = _clamp(u + (0.5 - u) * pull, lo_bound, hi_bound)
                v = _clamp(v + (0.5 - v) * pull, lo_bound, hi_bound)

            if scale_range < 1e-6:
                scale = base_scale
            else:
                scale = _clamp(min_scale + position_rng() * scale_range, MIN_TILE_SCALE, MAX_TILE_SCALE)

            # Always drawn so kinetic settings never shift the position stream
            base_mult = (position_rng() - 0.5) * 2
            direction = 1 if position_rng() > 0.5 else -1
            spin_mult = 0.6 + position_rng() * 0.6
            anim_mult = 0.85 + position_rng() * 0.3
            outline_roll = position_rng()

            tile_blend = pick_blend_mode(blend_rng)
            palette_index = int(color_rng() * len(chosen))

            if not selected:
                continue
            resolution = resolve_sprite(
                selected, state.sprite_collection_id, int(selection_rng() * len(selected)),
            )
            if resolution.source != "selected":
                logger.debug(f"Sprite fallback ({resolution.source}): {resolution.reference}")

            tiles.append(PreparedTile(
                sprite=resolution.reference,
                tint=chosen[palette_index],
                palette_color_index=palette_index,
                u=u,
                v=v,
                scale=scale,
                blend_mode=normalize_blend_mode(tile_blend),
                rotation_base=rotation_range * base_mult,
                rotation_direction=direction,
                rotation_speed=spin_base * ROTATION_SPEED_MAX * spin_mult,
                rotation_base_multiplier=base_mult,
                rotation_speed_multiplier=spin_mult,
                animation_time_multiplier=anim_mult,
                is_outlined=state.outline_mixed and outline_roll < outline_threshold,
                sprite_source=resolution.source,
            ))

        layers.append(PreparedLayer(
            tiles=tiles,
            tile_count=total,
            blend_mode=normalize_blend_mode(layer_blend),
            opacity=opacity,
            base_size_ratio=BASE_SIZE_RATIO * (1 + layer_index * 0.18) * mode_scale,
        ))

    prepared = PreparedSprite(
        layers=layers,
        background=background,
        palette=chosen,
        background_palette_id=bg_palette_id,
        background_index=bg_index,
    )
    if state.thumbnail_mode is not None:
        apply_thumbnail_mode(prepared, state)
    return prepared


def _scatter(rng, cu, cv):
    angle = rng() * 2 * math.pi
    dist = _THUMB_MIN_DIST + rng() * (_THUMB_MAX_DIST - _THUMB_MIN_DIST)
    u = _clamp(cu + dist * math.cos(angle), _THUMB_PADDING, 1 - _THUMB_PADDING)
    v = _clamp(cv + dist * math.sin(angle), _THUMB_PADDING, 1 - _THUMB_PADDING)
    return u, v


def apply_thumbnail_mode(prepared, state):
    """Rewrite layer 0 as N secondary tiles followed by one primary tile.

    The primary sits at the configured (or centred) position with no blend
    and full opacity; secondaries are scattered around the primary with a
    dedicated seeded stream. Missing tiles are created.
    """
    config = state.thumbnail_mode
    if not prepared.layers or not prepared.layers[0].tiles:
        return prepared

    layer = prepared.layers[0]
    primary = layer.tiles[0]
    secondaries = layer.tiles[1:]

    primary.palette_color_index = config.primary_color_index
    primary.tint = THUMBNAIL_ACCENT
    primary.scale = config.primary_scale
    primary.blend_mode = "NONE"
    primary.role = "primary"
    position = config.primary_position
    primary.u = position.u if position is not None else 0.5
    primary.v = position.v if position is not None else 0.5

    rng = seeded_stream(state.seed, "thumbnail-secondary-positions")
    if len(secondaries) < config.secondary_count:
        selected = state.selected_sprites or []
        reference = selected[0] if selected and find_sprite(selected[0])[1] else "/sprites/default/square.svg"
        template = PreparedTile(
            sprite=reference,
            tint=THUMBNAIL_SECONDARY,
            palette_color_index=config.secondary_color_index,
            u=0.5,
            v=0.5,
            scale=config.secondary_scale,
            blend_mode="NONE",
            rotation_base=0.0,
            rotation_direction=1,
            rotation_speed=0.0,
            rotation_base_multiplier=0.0,
            rotation_speed_multiplier=0.0,
            animation_time_multiplier=1.0,
        )
        while len(secondaries) < config.secondary_count:
            u, v = _scatter(rng, primary.u, primary.v)
            secondaries.append(replace(template, u=u, v=v))

    secondaries = secondaries[:config.secondary_count]
    for tile in secondaries:
        tile.u, tile.v = _scatter(rng, primary.u, primary.v)
        tile.palette_color_index = config.secondary_color_index
        tile.scale = config.secondary_scale
        tile.blend_mode = "NONE"
        tile.tint = THUMBNAIL_SECONDARY
        tile.role = "secondary"

    layer.tiles = secondaries + [primary]
    layer.tile_count = len(layer.tiles)
    logger.debug(f"Thumbnail layer: {len(secondaries)} secondaries")
    return prepared


def reassign_random_shapes(prepared, state, rng=None):
    """Give every tile a fresh sprite from the selection without moving it.

    Args:
        prepared: PreparedSprite, modified in place
        state: GeneratorState supplying the selection
        rng: Callable returning floats in [0, 1); unseeded when omitted
    """
    rng = rng or random.random
    selected = list(state.selected_sprites or [])
    if not selected:
        return prepared
    for layer in prepared.layers:
        for tile in layer.tiles:
            if tile.role is not None:
                continue
            resolution = resolve_sprite(selected, state.sprite_collection_id, int(rng() * len(selected)))
            tile.sprite = resolution.reference
            tile.sprite_source = resolution.source
    return prepared
