"""
Tests for the SpriteController: setters, recompute gating, transitions,
frame rendering and lifecycle.
"""

import random

import numpy as np
import pytest

from sprite_engine.composer import compute_sprite
from sprite_engine.controller import SpriteController, aspect_size
from sprite_engine.frame import FrameRenderer
from sprite_engine.state import DEFAULT_STATE, default_state
from sprite_engine.surface import RasterSurface


class FakeClock:
    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


def make_controller(seed="DEADBEEF", **kwargs):
    clock = FakeClock()
    controller = SpriteController(
        RasterSurface(96, 54),
        state=default_state(seed=seed),
        rng=random.Random(7),
        clock=clock,
        noise_seed=0,
        **kwargs,
    )
    controller.load_sprites()
    return controller, clock


@pytest.fixture
def controller():
    c, _ = make_controller()
    yield c
    c.destroy()


# ----- Rendering -------------------------------------------------------------

def test_tick_draws_tiles(controller):
    drawn = controller.tick(1 / 60)
    assert drawn > 0
    assert controller.surface.pixels.std() > 0.0


def test_render_still_is_deterministic():
    a, _ = make_controller()
    b, _ = make_controller()
    a.render_still(1.5)
    b.render_still(1.5)
    assert np.array_equal(a.surface.pixels, b.surface.pixels)
    a.destroy()
    b.destroy()


def test_effects_run_in_frame(controller):
    controller.set_bloom_enabled(True)
    controller.set_noise_enabled(True)
    controller.set_depth_of_field_enabled(True)
    controller.set_outline_enabled(True)
    controller.set_sprite_fill_mode("gradient")
    controller.set_canvas_fill_mode("gradient")
    controller.load_sprites()
    assert controller.tick(1 / 60) > 0
    assert 0.0 <= controller.surface.pixels.min() and controller.surface.pixels.max() <= 1.0


def test_empty_selection_draws_background_only(controller):
    ref = controller.get_state().selected_sprites[0]
    controller.toggle_sprite_selection(ref)
    assert controller.get_state().selected_sprites == []
    assert controller.tick(1 / 60) == 0


def test_frame_rate_callback():
    rates = []
    c, _ = make_controller(on_frame_rate=rates.append)
    for _ in range(25):
        c.tick(1 / 60)
    assert len(rates) == 1
    assert rates[0] > 0
    c.destroy()


# ----- Setters and recompute gating ------------------------------------------

def test_live_setters_keep_layout(controller):
    prepared = controller.prepared
    controller.set_motion_intensity(10)
    controller.set_layer_opacity(40)
    controller.set_blend_mode_auto(False)
    controller.set_bloom_intensity(80)
    assert controller.prepared is prepared


def test_layout_setters_recompute(controller):
    prepared = controller.prepared
    controller.set_scale_base(10)
    assert controller.prepared is not prepared


def test_movement_mode_change_matches_fresh_layout(controller):
    prepared = controller.prepared
    state = controller.set_movement_mode("spiral")
    assert controller.prepared is not prepared
    assert controller.prepared == compute_sprite(state), "Tile count and scale depend on the mode"


def test_setters_clamp(controller):
    assert controller.set_palette_variance(-10).palette_variance == 0
    assert controller.set_palette_variance(1000).palette_variance == 150
    assert controller.set_outline_stroke_width(50).outline_stroke_width == 20
    assert controller.get_state().palette_variance == 150


def test_state_change_callback():
    seen = []
    c, _ = make_controller(on_state_change=seen.append)
    c.set_hue_shift(25)
    assert seen and seen[-1].hue_shift == 25
    c.destroy()


def test_unknown_inputs_are_ignored(controller):
    before = controller.get_state()
    assert controller.use_palette("no-such-palette") is before
    assert controller.set_movement_mode("teleport") is before
    assert controller.set_sprite_mode("no-such-sprite") is before
    assert controller.set_background_mode("no-such-palette") is before


def test_blend_mode_auto_restores_previous(controller):
    controller.set_blend_mode("SCREEN")
    state = controller.get_state()
    assert state.blend_mode == "SCREEN" and not state.blend_mode_auto
    controller.set_blend_mode_auto(True)
    controller.set_blend_mode_auto(False)
    assert controller.get_state().blend_mode == "SCREEN"


def test_rerolls_touch_only_their_suffix(controller):
    seed = controller.get_state().seed
    controller.reassign_auto_blend_modes()
    assert controller.get_state().blend_mode_seed_suffix
    controller.refresh_palette_application()
    assert controller.get_state().color_seed_suffix
    assert controller.get_state().seed == seed


def test_randomize_all_keeps_rotation(controller):
    controller.set_rotation_enabled(True)
    controller.set_rotation_amount(33)
    state = controller.randomize_all()
    assert state.seed != "DEADBEEF"
    assert state.rotation_enabled
    assert state.rotation_amount == 33


def test_randomize_sprite_shapes(controller):
    assert controller.randomize_sprite_shapes().random_sprites
    prepared = controller.prepared
    controller.randomize_sprite_shapes()
    assert controller.prepared is prepared


def test_palette_cycle_recomputes_on_next_tick(controller):
    prepared = controller.prepared
    controller.set_palette_cycle_enabled(True)
    assert controller.prepared is prepared
    controller.tick(1 / 60)
    assert controller.prepared is not prepared


def test_palette_cycle_recolors_tiles_live(controller):
    controller.set_palette_cycle_speed(100)
    controller.set_palette_cycle_enabled(True)
    controller.tick(1 / 60)
    prepared = controller.prepared
    state = controller.get_state()
    tile = prepared.layers[0].tiles[0]
    renderer = FrameRenderer(None)

    def live_color():
        return renderer.tile_color(state, tile, controller.clocks, controller.clocks.cycled_palette())

    first = live_color()
    assert live_color() == first, "Color is stable within a frame"

    for _ in range(600):
        controller.clocks.advance(state, 1 / 60)
    controller.tick(1 / 60)
    assert controller.prepared is prepared, "Cycling never recomputes tiles"
    assert live_color() != first


def test_aspect_ratio(controller):
    assert aspect_size(controller.get_state(), 160) == (160, 90)
    state = controller.set_custom_aspect_ratio(400, 100)
    assert state.aspect_ratio == "custom"
    assert aspect_size(state, 200) == (200, 50)


# ----- Presets and transitions -----------------------------------------------

def test_apply_preset(controller):
    state = controller.apply_nebula_preset()
    assert state.blend_mode == "SCREEN"
    assert not state.blend_mode_auto
    assert controller.apply_minimal_grid_preset().blend_mode == "MULTIPLY"
    assert controller.apply_single_tile_preset().movement_mode == "pulse"
    with pytest.raises(KeyError):
        controller.apply_preset("no-such-preset")


def test_fade_transition_completes():
    c, clock = make_controller()
    target = c.get_state().evolve(seed="0BADF00D", palette_id="ember")
    c.apply_state(target, "fade")
    assert c.transition is not None and c.transition.kind == "fade"
    assert c.get_state() == target

    clock.now = 0.5
    c.tick(1 / 60)
    assert c.transition is not None

    clock.now = 1.5
    c.tick(1 / 60)
    assert c.transition is None
    c.destroy()


def test_smooth_transition_recomputes_each_frame():
    c, clock = make_controller()
    target = c.get_state().evolve(scale_percent=100)
    c.apply_state(target, "smooth", duration_ms=1000)
    clock.now = 0.2
    c.tick(1 / 60)
    first = c.prepared
    clock.now = 0.4
    c.tick(1 / 60)
    assert c.prepared is not first

    clock.now = 2.0
    c.tick(1 / 60)
    assert c.transition is None
    c.destroy()


def test_apply_state_accepts_json_shape(controller):
    data = {"seed": "12345678", "paletteVariance": 12}
    state = controller.apply_state(data)
    assert state.seed == "12345678"
    assert state.palette_variance == 12


def test_unknown_transition_raises(controller):
    with pytest.raises(ValueError):
        controller.apply_state(DEFAULT_STATE, "wipe")


# ----- Lifecycle -------------------------------------------------------------

def test_background_loop_pause_resume():
    c, _ = make_controller()
    c.start(target_fps=30)
    assert c.is_running
    c.pause_animation()
    assert c.is_paused and not c.is_running
    c.resume_animation()
    assert c.is_running and not c.is_paused
    c.destroy()
    assert not c.is_running


def test_reset_returns_to_defaults(controller):
    controller.set_hue_shift(50)
    state = controller.reset()
    assert state.hue_shift == DEFAULT_STATE.hue_shift
    assert state.seed != "DEADBEEF"


def test_destroyed_controller_refuses_work():
    c, _ = make_controller()
    c.destroy()
    c.destroy()
    with pytest.raises(RuntimeError):
        c.tick(1 / 60)
    with pytest.raises(RuntimeError):
        c.set_hue_shift(10)
