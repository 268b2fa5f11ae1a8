"""
Sprite Controller

Owns the single mutable GeneratorState and PreparedSprite, the animation
clocks, and any in-flight transition. Every setter clamps through the
state model, recomputes tiles only when a layout field changed, and fires
on_state_change.

Hosts either call tick(dt) themselves (viewer, CLI, tests) or call start()
to run a background FrameLoop thread. A lock serialises setters against
the tick; destroy() stops the loop before releasing the surface.
"""

import logging
import random
import threading
import time

from .blending import BLEND_MODES
from .clocks import AnimationClocks
from .composer import compute_sprite, reassign_random_shapes
from .frame import FrameRenderer
from .movement import MOVEMENT_MODES, MOVEMENT_ORDER
from .palettes import all_palette_ids, has_palette
from .presets import get_preset
from .seeding import generate_seed_string
from .sprites import DEFAULT_COLLECTION_ID, DEFAULT_SPRITES, SpriteAssetCache, get_collection
from .state import (
    ASPECT_RATIOS,
    DEFAULT_STATE,
    FILL_MODES,
    GeneratorState,
    needs_recompute,
)
from .transition import TRANSITION_TYPES, Transition

logger = logging.getLogger(__name__)

FPS_SAMPLE_FRAMES = 24

ASPECT_VALUES = {
    "16:9": 16 / 9,
    "21:9": 21 / 9,
    "16:10": 16 / 10,
}


def aspect_size(state, width):
    """Canvas (width, height) for a target width under the state's aspect ratio."""
    if state.aspect_ratio == "custom":
        ratio = state.custom_aspect_ratio.width / state.custom_aspect_ratio.height
    else:
        ratio = ASPECT_VALUES.get(state.aspect_ratio, 16 / 9)
    return int(width), max(1, int(round(width / ratio)))


# ── Background frame loop ───────────────────────────────────────────────

class FrameLoop(threading.Thread):
    """Background thread that ticks a controller at a target framerate."""

    def __init__(self, controller, target_fps=60):
        super().__init__(daemon=True)
        self.controller = controller
        self._running = True
        self._last_time = None
        self._target_fps = target_fps

    def run(self):
        logger.info("Frame loop started")
        while self._running:
            now = time.perf_counter()
            if self._last_time is None:
                dt = 1.0 / self._target_fps
            else:
                dt = now - self._last_time
            dt = max(0.001, min(dt, 0.1))
            self._last_time = now

            try:
                self.controller.tick(dt)
            except Exception:
                logger.exception("Frame loop tick failed")

            elapsed = time.perf_counter() - now
            sleep_time = max(0, (1.0 / self._target_fps) - elapsed)
            if sleep_time > 0:
                time.sleep(sleep_time)
        logger.info("Frame loop stopped")

    def stop(self):
        self._running = False


# ── Controller ──────────────────────────────────────────────────────────

class SpriteController:
    """Frame scheduler and public API of the engine.

    Args:
        surface: RenderSurface to draw on (not created here)
        state: Initial GeneratorState; defaults with a fresh seed when None
        cache: SpriteAssetCache; a new one when None
        on_state_change: Called with the new state after every change
        on_frame_rate: Called with the measured fps every 24 frames
        rng: random.Random used by the randomisers and seed generation
        clock: Monotonic seconds source for transitions
        black_background: Passed to the frame renderer
        noise_seed: Seed for the noise overlay
    """

    def __init__(self, surface, state=None, cache=None, on_state_change=None,
                 on_frame_rate=None, rng=None, clock=None,
                 black_background=False, noise_seed=None):
        self._rng = rng if rng is not None else random.Random()
        self._clock = clock or time.monotonic
        self._lock = threading.RLock()
        self.surface = surface
        self.cache = cache if cache is not None else SpriteAssetCache()
        self.on_state_change = on_state_change
        self.on_frame_rate = on_frame_rate

        if state is None:
            state = DEFAULT_STATE.evolve(seed=generate_seed_string(self._rng))
        self._state = state
        self._prepared = None
        self._transition = None
        self._clocks = AnimationClocks(state)
        self._renderer = FrameRenderer(self.cache, black_background=black_background,
                                       noise_seed=noise_seed)
        self._was_palette_cycling = state.palette_cycle_enabled
        self._render_state = state
        self._loop = None
        self._paused = False
        self._destroyed = False

        self._fps_frames = 0
        self._fps_start = None
        self.fps = 0.0

        self._recompute()

    # ── Internals ───────────────────────────────────────────────────────

    def _now_ms(self):
        return self._clock() * 1000.0

    def _ensure_alive(self):
        if self._destroyed:
            raise RuntimeError("SpriteController has been destroyed")

    def _suffix(self):
        return f"-{int(time.time() * 1000)}-{self._rng.getrandbits(32):08x}"

    def _new_seed(self):
        return generate_seed_string(self._rng)

    def _recompute(self, state=None, palette=None):
        state = state if state is not None else self._state
        if palette is None and state.palette_cycle_enabled:
            palette = self._clocks.cycled_palette()
        self._prepared = compute_sprite(state, palette)
        self.cache.preload(self.sprite_references())
        logger.debug(f"Recomputed {self._prepared.tile_count()} tiles (seed {state.seed})")

    def _notify(self):
        if self.on_state_change is not None:
            self.on_state_change(self._state)

    def _update(self, recompute=None, **changes):
        """Apply field changes; recompute follows the layout policy unless forced."""
        self._ensure_alive()
        with self._lock:
            old = self._state
            self._state = old.evolve(**changes)
            if recompute is None:
                recompute = needs_recompute(old, self._state)
            if recompute:
                self._recompute()
        self._notify()
        return self._state

    # ── Accessors ───────────────────────────────────────────────────────

    def get_state(self):
        return self._state

    def sprite_references(self):
        """Sorted unique sprite references used by the current layout."""
        return sorted({tile.sprite for layer in self._prepared.layers for tile in layer.tiles})

    def load_sprites(self):
        """Load every sprite the layout uses, blocking. Raises on failure."""
        for ref in self.sprite_references():
            if self.cache.get_cached(ref) is None:
                self.cache.load(ref)

    @property
    def prepared(self):
        return self._prepared

    @property
    def clocks(self):
        return self._clocks

    @property
    def transition(self):
        return self._transition

    @property
    def is_running(self):
        return self._loop is not None

    def apply_state(self, state, transition="instant", duration_ms=None):
        """Replace the whole state, optionally through a transition.

        Args:
            state: GeneratorState, or a dict/JSON-shaped mapping of one
            transition: "instant", "fade" or "smooth"
            duration_ms: Override the transition's default duration
        """
        self._ensure_alive()
        if transition not in TRANSITION_TYPES:
            raise ValueError(f"Unknown transition type: {transition!r}")
        if not isinstance(state, GeneratorState):
            state = GeneratorState.model_validate(state)

        with self._lock:
            if transition == "instant":
                self._transition = None
                self._state = state
                self._recompute()
            else:
                self._transition = Transition(
                    self._render_state, state, transition, self._now_ms(), duration_ms,
                )
                self._state = state
                if transition == "fade":
                    self._recompute()
        self._notify()
        return self._state

    # ── Randomisers ─────────────────────────────────────────────────────

    def randomize_all(self):
        """New seed, sprite, palette, motion and background; rotation is kept."""
        sprite = self._rng.choice(DEFAULT_SPRITES)
        return self._update(
            recompute=True,
            seed=self._new_seed(),
            sprite_mode=sprite.id,
            selected_sprites=[sprite.reference],
            sprite_collection_id=DEFAULT_COLLECTION_ID,
            palette_id=self._rng.choice(all_palette_ids()),
            palette_variance=self._rng.randint(32, 128),
            hue_shift=0,
            motion_intensity=self._rng.randint(42, 98),
            movement_mode=self._rng.choice(MOVEMENT_ORDER),
            background_mode="auto",
            background_hue_shift=0,
            background_brightness=50,
            background_color_seed_suffix="",
        )

    def randomize_colors(self):
        return self._update(
            recompute=True,
            seed=self._new_seed(),
            palette_id=self._rng.choice(all_palette_ids()),
            palette_variance=self._rng.randint(32, 126),
            background_color_seed_suffix="",
        )

    def refresh_palette_application(self):
        """Reshuffle which palette color each tile and the background get."""
        return self._update(
            recompute=True,
            color_seed_suffix=self._suffix(),
            background_color_seed_suffix=self._suffix(),
        )

    def randomize_gradient_colors(self):
        return self._update(recompute=True, sprite_gradient_color_seed_suffix=self._suffix())

    def randomize_scale(self):
        return self._update(scale_base=self._rng.randint(50, 88))

    def randomize_scale_range(self):
        return self._update(scale_spread=self._rng.randint(42, 96))

    def randomize_motion(self):
        return self._update(
            motion_intensity=self._rng.randint(40, 98),
            movement_mode=self._rng.choice(MOVEMENT_ORDER),
            motion_speed=self._rng.randint(5, 12),
        )

    def reassign_auto_blend_modes(self):
        return self._update(recompute=True, blend_mode_seed_suffix=self._suffix())

    def randomize_blend_mode(self):
        if self._state.blend_mode_auto:
            return self.reassign_auto_blend_modes()
        mode = self._rng.choice(BLEND_MODES)
        return self._update(blend_mode=mode, previous_blend_mode=mode, blend_mode_auto=False)

    def randomize_sprite_shapes(self):
        """Turn on random sprites, or reshuffle shapes if already on."""
        if not self._state.random_sprites:
            return self._update(recompute=True, random_sprites=True)
        self._ensure_alive()
        with self._lock:
            reassign_random_shapes(self._prepared, self._state, self._rng.random)
        self._notify()
        return self._state

    # ── Color ───────────────────────────────────────────────────────────

    def set_palette_variance(self, value):
        return self._update(palette_variance=value)

    def set_hue_shift(self, value):
        return self._update(hue_shift=value)

    def set_saturation(self, value):
        return self._update(saturation=value)

    def set_brightness(self, value):
        return self._update(brightness=value)

    def set_contrast(self, value):
        return self._update(contrast=value)

    def use_palette(self, palette_id):
        if not has_palette(palette_id):
            logger.warning(f"Unknown palette ignored: {palette_id}")
            return self._state
        return self._update(palette_id=palette_id, background_color_seed_suffix=self._suffix())

    # ----- Section flags -----

    def set_color_adjustments_enabled(self, enabled):
        return self._update(recompute=True, color_adjustments_enabled=bool(enabled))

    def set_gradients_enabled(self, enabled):
        return self._update(recompute=True, gradients_enabled=bool(enabled))

    def set_blend_opacity_enabled(self, enabled):
        return self._update(recompute=True, blend_opacity_enabled=bool(enabled))

    def set_canvas_enabled(self, enabled):
        return self._update(recompute=False, canvas_enabled=bool(enabled))

    def set_density_scale_enabled(self, enabled):
        return self._update(recompute=True, density_scale_enabled=bool(enabled))

    # ── Density & scale ─────────────────────────────────────────────────

    def set_scale_percent(self, value):
        return self._update(scale_percent=value)

    def set_scale_base(self, value):
        return self._update(scale_base=value)

    def set_scale_spread(self, value):
        return self._update(scale_spread=value)

    # ── Motion ──────────────────────────────────────────────────────────

    def set_motion_intensity(self, value):
        return self._update(motion_intensity=value)

    def set_motion_speed(self, value):
        return self._update(motion_speed=value)

    def set_animation_enabled(self, enabled):
        return self._update(animation_enabled=bool(enabled))

    def set_movement_mode(self, mode):
        if mode not in MOVEMENT_MODES:
            logger.warning(f"Unknown movement mode ignored: {mode}")
            return self._state
        return self._update(movement_mode=mode)

    # ── Blend & opacity ─────────────────────────────────────────────────

    def set_blend_mode(self, mode):
        return self._update(blend_mode=mode, previous_blend_mode=mode, blend_mode_auto=False)

    def set_blend_mode_auto(self, enabled):
        if enabled:
            return self._update(blend_mode_auto=True)
        return self._update(blend_mode_auto=False, blend_mode=self._state.previous_blend_mode)

    def set_layer_opacity(self, value):
        return self._update(layer_opacity=value)

    # ── Sprites ─────────────────────────────────────────────────────────

    def set_sprite_mode(self, mode):
        """Select a single sprite by id or reference."""
        collection = get_collection(self._state.sprite_collection_id)
        sprite = collection.find(mode)
        if sprite is None:
            logger.warning(f"Unknown sprite {mode!r} in collection {collection.id}")
            return self._state
        return self._update(sprite_mode=sprite.id, selected_sprites=[sprite.reference])

    def toggle_sprite_selection(self, reference):
        """Add or remove one sprite; an empty selection is allowed."""
        selected = list(self._state.selected_sprites or [])
        if reference in selected:
            selected.remove(reference)
        else:
            selected.append(reference)
        return self._update(selected_sprites=selected)

    def set_random_sprites(self, enabled):
        return self._update(recompute=True, random_sprites=bool(enabled))

    def set_sprite_collection(self, collection_id):
        collection = get_collection(collection_id)
        refs = collection.references()
        return self._update(
            sprite_collection_id=collection.id,
            selected_sprites=refs[:1],
            sprite_mode=collection.sprites[0].id if collection.sprites else self._state.sprite_mode,
        )

    # ── Rotation ────────────────────────────────────────────────────────

    def set_rotation_enabled(self, enabled):
        return self._update(recompute=False, rotation_enabled=bool(enabled))

    def set_rotation_amount(self, value):
        return self._update(rotation_amount=value, rotation_enabled=True)

    def set_rotation_speed(self, value):
        return self._update(rotation_speed=value)

    def set_rotation_animated(self, enabled):
        return self._update(recompute=False, rotation_animated=bool(enabled))

    # ── Background ──────────────────────────────────────────────────────

    def set_background_mode(self, mode):
        if mode != "auto" and not has_palette(mode):
            logger.warning(f"Unknown background palette ignored: {mode}")
            return self._state
        return self._update(background_mode=mode, background_color_seed_suffix=self._suffix())

    def set_background_hue_shift(self, value):
        return self._update(recompute=True, background_hue_shift=value)

    def set_background_brightness(self, value):
        return self._update(recompute=True, background_brightness=value)

    def set_background_saturation(self, value):
        return self._update(recompute=True, background_saturation=value)

    def set_background_contrast(self, value):
        return self._update(recompute=True, background_contrast=value)

    # ── Gradients ───────────────────────────────────────────────────────

    def set_sprite_fill_mode(self, mode):
        if mode not in FILL_MODES:
            return self._state
        return self._update(sprite_fill_mode=mode)

    def set_sprite_gradient_direction(self, degrees):
        return self._update(sprite_gradient_direction=degrees)

    def set_sprite_gradient_random(self, enabled):
        return self._update(recompute=True, sprite_gradient_random=bool(enabled))

    def set_sprite_gradient_direction_random(self, enabled):
        return self._update(recompute=True, sprite_gradient_direction_random=bool(enabled))

    def set_canvas_fill_mode(self, mode):
        if mode not in FILL_MODES:
            return self._state
        changes = {"canvas_fill_mode": mode}
        if mode == "gradient":
            changes["canvas_gradient_mode"] = "auto"
        return self._update(**changes)

    def set_canvas_gradient_mode(self, mode):
        if mode != "auto" and not has_palette(mode):
            return self._state
        return self._update(canvas_gradient_mode=mode)

    def set_canvas_gradient_direction(self, degrees):
        return self._update(canvas_gradient_direction=degrees)

    # ── Depth of field ──────────────────────────────────────────────────

    def set_depth_of_field_enabled(self, enabled):
        # Tile counts shrink while DoF is on
        return self._update(depth_of_field_enabled=bool(enabled))

    def set_depth_of_field_focus(self, value):
        return self._update(depth_of_field_focus=value)

    def set_depth_of_field_strength(self, value):
        return self._update(depth_of_field_strength=value)

    # ── Outline ─────────────────────────────────────────────────────────

    def set_outline_enabled(self, enabled):
        return self._update(outline_enabled=bool(enabled))

    def set_outline_stroke_width(self, value):
        return self._update(outline_stroke_width=value)

    def set_outline_mixed(self, enabled):
        return self._update(recompute=bool(enabled), outline_mixed=bool(enabled))

    def set_outline_balance(self, value):
        return self._update(recompute=True, outline_balance=value)

    def set_filled_opacity(self, value):
        return self._update(filled_opacity=value)

    def set_outlined_opacity(self, value):
        return self._update(outlined_opacity=value)

    # ── FX ──────────────────────────────────────────────────────────────

    def set_bloom_enabled(self, enabled):
        return self._update(bloom_enabled=bool(enabled))

    def set_bloom_intensity(self, value):
        return self._update(bloom_intensity=value)

    def set_bloom_threshold(self, value):
        return self._update(bloom_threshold=value)

    def set_bloom_radius(self, value):
        return self._update(bloom_radius=value)

    def set_noise_enabled(self, enabled):
        return self._update(noise_enabled=bool(enabled))

    def set_noise_type(self, noise_type):
        return self._update(noise_type=noise_type)

    def set_noise_strength(self, value):
        return self._update(noise_strength=value)

    # ── Animation clocks ────────────────────────────────────────────────

    def set_hue_rotation_enabled(self, enabled):
        return self._update(hue_rotation_enabled=bool(enabled))

    def set_hue_rotation_speed(self, value):
        return self._update(hue_rotation_speed=value)

    def set_palette_cycle_enabled(self, enabled):
        # Recompute happens in the next tick, when the toggle is seen
        return self._update(palette_cycle_enabled=bool(enabled))

    def set_palette_cycle_speed(self, value):
        return self._update(palette_cycle_speed=value)

    def set_canvas_hue_rotation_enabled(self, enabled):
        return self._update(canvas_hue_rotation_enabled=bool(enabled))

    def set_canvas_hue_rotation_speed(self, value):
        return self._update(canvas_hue_rotation_speed=value)

    # ── Aspect ratio ────────────────────────────────────────────────────

    def set_aspect_ratio(self, ratio):
        return self._update(aspect_ratio=ratio if ratio in ASPECT_RATIOS else "16:9")

    def set_custom_aspect_ratio(self, width, height):
        return self._update(
            aspect_ratio="custom",
            custom_aspect_ratio={"width": max(1, int(width)), "height": max(1, int(height))},
        )

    # ── Presets ─────────────────────────────────────────────────────────

    def apply_preset(self, name):
        """Apply a named preset on top of the current state with a new seed.

        Raises:
            KeyError: Unknown preset name
        """
        preset = get_preset(name)
        if preset is None:
            raise KeyError(f"Unknown preset: {name}")
        logger.info(f"Applying preset: {preset['name']}")
        return self._update(recompute=True, seed=self._new_seed(), **preset["settings"])

    def apply_single_tile_preset(self):
        return self.apply_preset("single_tile")

    def apply_nebula_preset(self):
        return self.apply_preset("nebula")

    def apply_minimal_grid_preset(self):
        return self.apply_preset("minimal_grid")

    # ── Frame ───────────────────────────────────────────────────────────

    def _effective_state(self, now_ms):
        """(state, palette override, fade opacity) for this frame."""
        transition = self._transition
        if transition is None:
            return self._state, None, 1.0

        if transition.is_complete(now_ms):
            self._transition = None
            self._recompute(self._state)
            return self._state, None, 1.0

        sampled = transition.sample(now_ms)
        if transition.kind == "smooth":
            self._recompute(sampled.state, sampled.palette)
            return sampled.state, sampled.palette, 1.0
        return sampled.state, None, transition.opacity(now_ms)

    def _sample_fps(self):
        now = time.perf_counter()
        if self._fps_start is None:
            self._fps_start = now
            self._fps_frames = 0
            return
        self._fps_frames += 1
        if self._fps_frames >= FPS_SAMPLE_FRAMES:
            elapsed = now - self._fps_start
            if elapsed > 0:
                self.fps = self._fps_frames / elapsed
                if self.on_frame_rate is not None:
                    self.on_frame_rate(self.fps)
            self._fps_start = now
            self._fps_frames = 0

    def tick(self, dt):
        """Advance clocks by dt seconds and render one frame.

        Returns:
            Number of tiles drawn
        """
        self._ensure_alive()
        with self._lock:
            state, palette, opacity = self._effective_state(self._now_ms())
            self._clocks.advance(state, dt)

            if state.palette_cycle_enabled != self._was_palette_cycling:
                self._was_palette_cycling = state.palette_cycle_enabled
                self._recompute(state, palette)

            if palette is None and state.palette_cycle_enabled:
                palette = self._clocks.cycled_palette()

            self._render_state = state
            drawn = self._renderer.render(
                self.surface, state, self._prepared, self._clocks, palette, opacity,
            )
        self._sample_fps()
        return drawn

    def render_still(self, time_seconds=0.0):
        """Render a frame with motion time pinned, for snapshots."""
        self._ensure_alive()
        with self._lock:
            self._clocks.scaled_time = time_seconds * 60.0
            palette = self._clocks.cycled_palette() if self._state.palette_cycle_enabled else None
            return self._renderer.render(
                self.surface, self._state, self._prepared, self._clocks, palette, 1.0,
            )

    def set_loop_override(self, period_seconds=None, frame_index=None, total_frames=0):
        with self._lock:
            self._clocks.set_loop_override(period_seconds, frame_index, total_frames)

    # ── Lifecycle ───────────────────────────────────────────────────────

    def start(self, target_fps=60):
        """Run the tick on a background FrameLoop thread."""
        self._ensure_alive()
        if self._loop is not None:
            return self._loop
        self._loop = FrameLoop(self, target_fps)
        self._loop.start()
        self._paused = False
        logger.info(f"Controller started at {target_fps} fps")
        return self._loop

    def _stop_loop(self):
        loop = self._loop
        self._loop = None
        if loop is not None:
            loop.stop()
            if loop is not threading.current_thread():
                loop.join(timeout=1.0)

    def pause_animation(self):
        self._ensure_alive()
        if self._loop is not None:
            self._paused = True
            self._stop_loop()
            logger.info("Controller paused")

    def resume_animation(self):
        self._ensure_alive()
        if self._paused:
            self._paused = False
            self.start()

    @property
    def is_paused(self):
        return self._paused

    def reset(self):
        """Back to defaults with a new seed."""
        self._ensure_alive()
        with self._lock:
            self._transition = None
            self._state = DEFAULT_STATE.evolve(seed=self._new_seed())
            self._clocks.reset(self._state)
            self._was_palette_cycling = self._state.palette_cycle_enabled
            self._recompute()
        self._notify()
        return self._state

    def destroy(self):
        """Stop the tick, then release the surface and cache."""
        if self._destroyed:
            return
        self._stop_loop()
        with self._lock:
            self._destroyed = True
            self.surface.release()
            self.cache.release()
        logger.info("Controller destroyed")