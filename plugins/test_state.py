"""
Tests for the generator state model, recompute policy, transitions and clocks.
"""

import json
import math

import pytest

from sprite_engine.clocks import AnimationClocks
from sprite_engine.state import (
    DEFAULT_STATE,
    GeneratorState,
    default_state,
    needs_recompute,
)
from sprite_engine.transition import (
    Transition,
    blend_palettes,
    calculate_transition_progress,
    ease_in_out,
    fade_opacity,
    interpolate_generator_state,
)


# ----- State -----------------------------------------------------------------

def test_numeric_fields_are_clamped():
    state = GeneratorState(palette_variance=-10, layer_opacity=0, motion_speed=99,
                           outline_stroke_width=0, hue_rotation_speed=0)
    assert state.palette_variance == 0
    assert state.layer_opacity == 15
    assert state.motion_speed == 12.5
    assert state.outline_stroke_width == 1
    assert state.hue_rotation_speed == 0.1
    assert DEFAULT_STATE.evolve(scale_percent=5000).scale_percent == 1800


def test_unknown_enums_fall_back():
    state = GeneratorState(blend_mode="COLOR_DODGE", noise_type="vhs",
                           aspect_ratio="4:3", sprite_fill_mode="pattern")
    assert state.blend_mode == "NONE"
    assert state.noise_type == "grain"
    assert state.aspect_ratio == "16:9"
    assert state.sprite_fill_mode == "solid"


def test_json_round_trip_uses_camel_case():
    state = default_state(seed="ABCDEF01", palette_variance=42, thumbnail_mode={"secondary_count": 2})
    text = state.to_json()
    data = json.loads(text)
    assert data["paletteVariance"] == 42
    assert data["thumbnailMode"]["secondaryCount"] == 2
    assert GeneratorState.from_json(text) == state


def test_legacy_sprite_mode_migrates():
    state = GeneratorState.model_validate({"spriteMode": "heart", "selectedSprites": None})
    assert state.selected_sprites == ["/sprites/default/heart.svg"]
    empty = GeneratorState.model_validate({"selectedSprites": []})
    assert empty.selected_sprites == []


def test_evolve_does_not_mutate():
    state = default_state(seed="DEADBEEF")
    changed = state.evolve(hue_shift=40)
    assert state.hue_shift == 0
    assert changed.hue_shift == 40
    assert changed.seed == "DEADBEEF"


def test_recompute_policy():
    state = default_state()
    assert not needs_recompute(state, state)
    assert not needs_recompute(state, state.evolve(motion_intensity=10))
    assert not needs_recompute(state, state.evolve(blend_mode_auto=False))
    assert not needs_recompute(state, state.evolve(bloom_enabled=True))
    assert needs_recompute(state, state.evolve(scale_base=10))
    assert needs_recompute(state, state.evolve(movement_mode="spiral"))
    assert needs_recompute(state, state.evolve(seed="00000000"))


def test_rotation_changes_recompute_only_when_off():
    on = default_state(rotation_enabled=True)
    assert not needs_recompute(on, on.evolve(rotation_amount=10, rotation_speed=90))
    off = default_state(rotation_enabled=False)
    assert needs_recompute(off, off.evolve(rotation_amount=10))


# ----- Transitions -----------------------------------------------------------

def test_progress_and_easing():
    assert calculate_transition_progress(500, 1000) == 0.5
    assert calculate_transition_progress(-5, 1000) == 0.0
    assert calculate_transition_progress(5000, 1000) == 1.0
    assert calculate_transition_progress(10, 0) == 1.0
    assert ease_in_out(0.0) == 0.0
    assert ease_in_out(0.5) == 0.5
    assert ease_in_out(1.0) == 1.0


def test_fade_opacity_dips_to_zero():
    assert fade_opacity(0.0) == 1.0
    assert fade_opacity(0.25) == 0.5
    assert fade_opacity(0.5) == 0.0
    assert fade_opacity(1.0) == 1.0


def test_fade_transition():
    a = default_state(seed="AAAAAAAA")
    b = default_state(seed="BBBBBBBB")
    fade = Transition(a, b, "fade", start_ms=1000)
    assert fade.duration_ms == 1000
    assert fade.opacity(1000) == 1.0
    assert fade.opacity(1500) == 0.0
    assert not fade.is_complete(1999)
    assert fade.is_complete(2000)
    assert fade.sample(2500).state == b


def test_smooth_interpolates_numbers_and_switches_discretes_at_midpoint():
    a = default_state(seed="AAAAAAAA", scale_percent=100, movement_mode="drift")
    b = default_state(seed="BBBBBBBB", scale_percent=900, movement_mode="spiral")

    early = interpolate_generator_state(a, b, 0.25, interpolate_discrete=True).state
    assert math.isclose(early.scale_percent, 100 + 800 * ease_in_out(0.25))
    assert early.movement_mode == "drift"
    assert early.seed == "AAAAAAAA"

    late = interpolate_generator_state(a, b, 0.75, interpolate_discrete=True).state
    assert late.movement_mode == "spiral"
    assert late.seed == "BBBBBBBB"

    immediate = interpolate_generator_state(a, b, 0.25).state
    assert immediate.movement_mode == "spiral"


def test_palette_blend_during_transition():
    a = default_state(palette_id="neon")
    b = default_state(palette_id="oceanic")
    result = interpolate_generator_state(a, b, 0.1)
    assert result.palette is not None
    assert result.palette["id"] == "neon"
    assert blend_palettes("neon", "oceanic", 0.9)["id"] == "oceanic"
    assert interpolate_generator_state(a, a, 0.5).palette is None


def test_unknown_transition_type():
    with pytest.raises(ValueError):
        Transition(DEFAULT_STATE, DEFAULT_STATE, "wipe", 0)


# ----- Clocks ----------------------------------------------------------------

def test_hue_clock_only_runs_when_enabled():
    state = default_state(hue_rotation_enabled=False)
    clocks = AnimationClocks(state)
    clocks.advance(state, 1.0)
    assert clocks.hue_time == 0.0
    assert clocks.sprite_hue_offset(state) == 0.0

    rotating = default_state(hue_rotation_enabled=True, hue_rotation_speed=100)
    clocks.advance(rotating, 1.0)
    assert clocks.hue_time > 0.0
    assert 0.0 < clocks.sprite_hue_offset(rotating) < 360.0


def test_cycled_palette_shape():
    state = default_state(palette_cycle_enabled=True)
    clocks = AnimationClocks(state)
    first = clocks.cycled_palette()
    assert set(first) == {"id", "colors"}
    clocks.advance(state, 5.0)
    assert clocks.palette_time > 0.0
    assert clocks.cycled_palette()["colors"]


def test_loop_override_pins_time():
    state = default_state()
    clocks = AnimationClocks(state)
    clocks.set_loop_override(2.0, frame_index=3, total_frames=12)
    clocks.advance(state, 1 / 60)
    assert math.isclose(clocks.scaled_time, 0.5)

    clocks.set_loop_override(2.0)
    for _ in range(300):
        clocks.advance(state, 1 / 60)
        assert clocks.scaled_time < 2.0

    clocks.set_loop_override(None)
    assert clocks.loop_period is None
