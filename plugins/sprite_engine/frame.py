"""
Frame Renderer

One pass over a PreparedSprite: background, every tile resolved live from
its stored multipliers plus the current state and clocks, then bloom and
noise. Nothing here mutates the state or the prepared sprite, so a frame
can be re-rendered at any clock position.
"""

import logging
import math

import numpy as np

from .color import apply_color_adjustments, jitter_color, shift_hue
from .composer import (
    ROTATION_SPEED_MAX,
    THUMBNAIL_ACCENT,
    THUMBNAIL_SECONDARY,
    background_color_index,
    background_palette_id,
    rotation_speed_base,
)
from .effects import apply_bloom, apply_noise, depth_of_field_blur
from .movement import compute_movement
from .palettes import get_palette
from .seeding import position_key, seeded_stream

logger = logging.getLogger(__name__)

LAYER_SIZE_STEP = 0.08
PHASE_STEP = 7


def _clamp(value, lo, hi):
    return min(hi, max(lo, value))


class TileDraw:
    """Fully resolved draw parameters for one tile in one frame."""

    __slots__ = ("tile", "x", "y", "size", "rotation", "color", "gradient",
                 "blend_mode", "opacity", "outline_width", "blur")

    def __init__(self, tile, x, y, size, rotation, color, gradient,
                 blend_mode, opacity, outline_width):
        self.tile = tile
        self.x = x
        self.y = y
        self.size = size
        self.rotation = rotation
        self.color = color
        self.gradient = gradient
        self.blend_mode = blend_mode
        self.opacity = opacity
        self.outline_width = outline_width
        self.blur = 0.0


class FrameRenderer:
    """Draws prepared sprites onto a RenderSurface.

    Args:
        cache: SpriteAssetCache; misses skip the tile and start a load
        black_background: Replace the canvas color with black
        noise_seed: Seed for the noise generator (None = nondeterministic)
    """

    def __init__(self, cache, black_background=False, noise_seed=None):
        self.cache = cache
        self.black_background = black_background
        self.frame_index = 0
        self.skipped = 0
        self._noise_rng = np.random.default_rng(noise_seed)

    # ── Colors ──────────────────────────────────────────────────────────

    def _canvas_color(self, state, color, canvas_offset):
        degrees = state.background_hue_shift / 100 * 360 + canvas_offset
        adjusted = shift_hue(color, degrees)
        if not state.canvas_enabled:
            return adjusted
        return apply_color_adjustments(
            adjusted,
            state.background_saturation,
            state.background_brightness * 2,
            state.background_contrast,
        )

    def _background_source(self, state, palette):
        """(palette dict, start index) feeding the canvas fill."""
        pid = background_palette_id(state)
        if state.canvas_fill_mode == "gradient" and state.canvas_gradient_mode != "auto":
            pid = state.canvas_gradient_mode
        use_cycled = palette is not None and state.background_mode == "auto" and (
            state.canvas_fill_mode != "gradient" or state.canvas_gradient_mode == "auto"
        )
        source = palette if use_cycled else get_palette(pid)
        index = background_color_index(state.seed, source["id"], state.background_color_seed_suffix)
        return source, index

    def draw_background(self, surface, state, clocks, palette=None):
        if state.thumbnail_mode is not None:
            surface.clear(None)
            return
        if self.black_background:
            surface.clear("#000000")
            return

        offset = clocks.canvas_hue_offset(state)
        source, index = self._background_source(state, palette)
        colors = source["colors"] or ["#000000"]
        start = index % len(colors)
        # Monochrome palettes always use their first color
        if all(c == colors[0] for c in colors):
            start = 0

        if state.canvas_fill_mode == "gradient" and state.gradients_enabled:
            stops = [colors[(start + i) % len(colors)] for i in range(3)]
            surface.fill_gradient(
                [self._canvas_color(state, c, offset) for c in stops],
                state.canvas_gradient_direction,
            )
        else:
            surface.clear(self._canvas_color(state, colors[start], offset))

    def tile_color(self, state, tile, clocks, palette=None):
        """Live color for a tile: cycling palette, hue rotation, adjustments."""
        if tile.role == "primary":
            return THUMBNAIL_ACCENT
        if tile.role == "secondary":
            return THUMBNAIL_SECONDARY

        color = tile.tint
        static = state.hue_shift / 100 * 360
        if palette is not None and palette["colors"]:
            base = palette["colors"][tile.palette_color_index % len(palette["colors"])]
            variance = _clamp(state.palette_variance / 100, 0, 1.5)
            rng = seeded_stream(state.seed, f"color{state.color_seed_suffix}-{position_key(tile.u, tile.v)}")
            color = jitter_color(base, variance, rng)
            if not state.hue_rotation_enabled:
                color = shift_hue(color, static)
            else:
                color = shift_hue(color, static + clocks.sprite_hue_offset(state))
        elif state.hue_rotation_enabled:
            # Static shift is already baked into the prepared tint
            color = shift_hue(color, clocks.sprite_hue_offset(state))

        if state.color_adjustments_enabled:
            color = apply_color_adjustments(color, state.saturation, state.brightness, state.contrast)
        return color

    def tile_gradient(self, state, tile, clocks, palette=None):
        """(colors, degrees) for a gradient-filled tile, or None."""
        if not (state.gradients_enabled and state.sprite_fill_mode == "gradient"):
            return None
        if tile.role is not None:
            return None
        source = palette if palette is not None else get_palette(state.palette_id)
        colors = source["colors"]
        if len(colors) < 2:
            return None

        key = position_key(tile.u, tile.v)
        rng = seeded_stream(state.seed, f"gradient-color{state.sprite_gradient_color_seed_suffix}-{key}")
        first = int(rng() * len(colors))
        second = int(rng() * len(colors))
        while second == first:
            second = int(rng() * len(colors))

        degrees = state.hue_shift / 100 * 360 + clocks.sprite_hue_offset(state)
        variance = _clamp(state.palette_variance / 100, 0, 1.5)
        stops = []
        for n, index in enumerate((first, second)):
            jitter_rng = seeded_stream(state.seed, f"color{state.color_seed_suffix}-{key}-{n}")
            c = jitter_color(shift_hue(colors[index], degrees), variance, jitter_rng)
            if state.color_adjustments_enabled:
                c = apply_color_adjustments(c, state.saturation, state.brightness, state.contrast)
            stops.append(c)

        direction = state.sprite_gradient_direction
        if state.sprite_gradient_direction_random:
            direction = seeded_stream(state.seed, f"gradient-direction-{key}")() * 360
        return stops, direction

    # ── Geometry ────────────────────────────────────────────────────────

    def tile_opacity(self, state, tile):
        if tile.role == "primary":
            return 1.0
        if not state.blend_opacity_enabled:
            return 1.0
        if state.outline_enabled and state.outline_mixed:
            value = state.outlined_opacity if tile.is_outlined else state.filled_opacity
            return _clamp(value / 100, 0, 1)
        return _clamp(state.layer_opacity / 100, 0.12, 1)

    def tile_blend(self, state, tile, layer):
        if tile.role == "primary" or not state.blend_opacity_enabled:
            return "NONE"
        if state.blend_mode_auto:
            return tile.blend_mode or layer.blend_mode
        return state.blend_mode

    def tile_rotation(self, state, tile, scaled_time):
        rotation_range = math.radians(_clamp(state.rotation_amount, 0, 180))
        angle = rotation_range * tile.rotation_base_multiplier if state.rotation_enabled else 0.0
        if state.rotation_animated:
            spin = rotation_speed_base(state) * ROTATION_SPEED_MAX * tile.rotation_speed_multiplier
            angle += spin * tile.rotation_direction * scaled_time
        return angle

    def resolve(self, surface, state, prepared, clocks, palette=None):
        """Resolve every tile's draw parameters for the current frame.

        Returns:
            List of TileDraw in draw order, DoF blur filled in
        """
        w, h = surface.width, surface.height
        draw_size = math.sqrt(w * h)
        motion_scale = _clamp(state.motion_intensity / 100, 0, 1.5)
        scaled_time = clocks.scaled_time

        draws = []
        for layer_index, layer in enumerate(prepared.layers):
            if not layer.tiles:
                continue
            base_layer_size = draw_size * layer.base_size_ratio
            for tile_index, tile in enumerate(layer.tiles):
                base_size = base_layer_size * tile.scale * (1 + layer_index * LAYER_SIZE_STEP)
                movement = compute_movement(
                    state.movement_mode,
                    scaled_time * tile.animation_time_multiplier,
                    tile_index * PHASE_STEP,
                    motion_scale,
                    layer_index,
                    base_size,
                    base_layer_size,
                    1.0,
                )
                size = base_size * movement.scale_multiplier
                half = size / 2
                overflow = max(max(w, h) * 0.6, size * 1.25)
                x = _clamp((tile.u % 1) * w + movement.offset_x, half - overflow, w - half + overflow)
                y = _clamp((tile.v % 1) * h + movement.offset_y, half - overflow, h - half + overflow)

                outlined = state.outline_enabled and (tile.is_outlined if state.outline_mixed else True)
                draws.append(TileDraw(
                    tile, x, y, size,
                    self.tile_rotation(state, tile, scaled_time),
                    self.tile_color(state, tile, clocks, palette),
                    self.tile_gradient(state, tile, clocks, palette),
                    self.tile_blend(state, tile, layer),
                    self.tile_opacity(state, tile),
                    state.outline_stroke_width if outlined else 0,
                ))

        if state.depth_of_field_enabled and draws:
            sizes = [d.size for d in draws]
            lo, hi = min(sizes), max(sizes)
            if hi - lo > 0:
                for d in draws:
                    d.blur = depth_of_field_blur(
                        d.size, lo, hi, state.depth_of_field_focus, state.depth_of_field_strength,
                    )
        return draws

    # ── Pass ────────────────────────────────────────────────────────────

    def render(self, surface, state, prepared, clocks, palette=None, opacity=1.0):
        """Draw one complete frame.

        Args:
            surface: RenderSurface to draw on
            state: Effective GeneratorState for this frame
            prepared: PreparedSprite from compute_sprite
            clocks: AnimationClocks, already advanced
            palette: Cycled palette {"id", "colors"} when cycling, else None
            opacity: Global sprite opacity (fade transitions)

        Returns:
            Number of tiles drawn
        """
        self.draw_background(surface, state, clocks, palette)

        surface.global_alpha = opacity
        drawn = 0
        for d in self.resolve(surface, state, prepared, clocks, palette):
            mask = self.cache.get_cached(d.tile.sprite)
            if mask is None:
                self.skipped += 1
                if self.cache.load_async(d.tile.sprite) is not None:
                    logger.debug(f"Sprite not cached, loading: {d.tile.sprite}")
                continue
            if surface.draw_sprite(
                mask, d.x, d.y, d.size,
                rotation=d.rotation,
                color=d.color,
                gradient=d.gradient,
                blend_mode=d.blend_mode,
                opacity=d.opacity,
                outline_width=d.outline_width,
                blur=d.blur,
            ):
                drawn += 1
        surface.global_alpha = 1.0

        if state.bloom_enabled or state.noise_enabled:
            pixels = surface.get_pixels()
            if state.bloom_enabled:
                apply_bloom(pixels, state.bloom_intensity, state.bloom_threshold, state.bloom_radius)
            if state.noise_enabled:
                apply_noise(pixels, state.noise_type, state.noise_strength,
                            self._noise_rng, seed=self.frame_index)
            surface.put_pixels(pixels)

        self.frame_index += 1
        return drawn
