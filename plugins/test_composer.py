"""
Tests for tile composition, movement and presets.
"""

import math

import pytest

from sprite_engine.composer import (
    MAX_TILE_SCALE,
    MIN_TILE_SCALE,
    THUMBNAIL_ACCENT,
    background_color_index,
    compute_sprite,
    reassign_random_shapes,
    scale_bounds,
)
from sprite_engine.movement import (
    MIN_SCALE_MULTIPLIER,
    MOVEMENT_ORDER,
    compute_movement,
    parallax_speed,
)
from sprite_engine.palettes import get_palette
from sprite_engine.presets import PRESET_ORDER, get_preset, list_presets
from sprite_engine.seeding import seeded_stream
from sprite_engine.state import default_state


def positions(prepared):
    return [(t.u, t.v, t.scale, t.rotation_base) for layer in prepared.layers for t in layer.tiles]


# ----- Composer --------------------------------------------------------------

def test_same_state_same_layout():
    state = default_state(seed="DEADBEEF")
    assert compute_sprite(state) == compute_sprite(state)


def test_different_seed_different_layout():
    a = compute_sprite(default_state(seed="DEADBEEF"))
    b = compute_sprite(default_state(seed="0BADF00D"))
    assert positions(a) != positions(b)


def test_color_reroll_keeps_positions():
    state = default_state(seed="DEADBEEF")
    base = compute_sprite(state)
    rerolled = compute_sprite(state.evolve(color_seed_suffix="-1700000000000-abc"))
    assert positions(base) == positions(rerolled)
    tints = lambda p: [t.tint for layer in p.layers for t in layer.tiles]
    assert tints(base) != tints(rerolled)


def test_blend_reroll_keeps_positions_and_colors():
    state = default_state(seed="DEADBEEF")
    base = compute_sprite(state)
    rerolled = compute_sprite(state.evolve(blend_mode_seed_suffix="-1"))
    assert positions(base) == positions(rerolled)
    assert base.palette == rerolled.palette


def test_kinetic_settings_never_shift_streams():
    state = default_state(seed="DEADBEEF", rotation_enabled=False, outline_mixed=False)
    toggled = state.evolve(rotation_enabled=True, outline_mixed=True, blend_mode_auto=False)
    assert positions(compute_sprite(state)) == positions(compute_sprite(toggled))


def test_empty_selection_draws_nothing():
    prepared = compute_sprite(default_state(selected_sprites=[]))
    assert prepared.tile_count() == 0
    assert prepared.layers, "Layers are still planned"
    assert prepared.layers[0].tile_count > 0


def test_density_controls_layers():
    sparse = compute_sprite(default_state(scale_percent=0))
    assert len(sparse.layers) == 1
    assert sparse.tile_count() == 1

    dense = compute_sprite(default_state(scale_percent=1800))
    assert len(dense.layers) == 3
    assert dense.tile_count() > sparse.tile_count()


def test_tiles_stay_in_bounds():
    prepared = compute_sprite(default_state(seed="CAFEBABE", scale_percent=1800))
    for layer in prepared.layers:
        for tile in layer.tiles:
            assert 0.0 <= tile.u <= 1.0
            assert 0.0 <= tile.v <= 1.0
            assert MIN_TILE_SCALE <= tile.scale <= MAX_TILE_SCALE
            assert tile.rotation_direction in (-1, 1)


def test_scale_bounds():
    base, lo, hi = scale_bounds(default_state(scale_base=50, scale_spread=0))
    assert lo == hi == base
    base, lo, hi = scale_bounds(default_state(scale_base=50, scale_spread=100))
    assert math.isclose(lo, MIN_TILE_SCALE)
    assert math.isclose(hi, MAX_TILE_SCALE)


def test_palette_override_is_used():
    override = {"id": "custom", "colors": ["#ff0000"]}
    prepared = compute_sprite(default_state(palette_variance=0), palette_override=override)
    assert prepared.palette == ["#ff0000"]
    assert all(t.tint == "#ff0000" for layer in prepared.layers for t in layer.tiles)


def test_background_index_independent_of_tiles():
    state = default_state(seed="DEADBEEF")
    index = background_color_index(state.seed, state.palette_id)
    assert 0 <= index < len(get_palette(state.palette_id)["colors"])
    rerolled = compute_sprite(state.evolve(color_seed_suffix="-2"))
    assert rerolled.background_index == index


def test_thumbnail_mode():
    state = default_state(thumbnail_mode={"secondary_count": 3})
    layer = compute_sprite(state).layers[0]
    assert len(layer.tiles) == 4
    primary = layer.tiles[-1]
    assert primary.role == "primary"
    assert (primary.u, primary.v) == (0.5, 0.5)
    assert primary.tint == THUMBNAIL_ACCENT
    assert primary.blend_mode == "NONE"
    for tile in layer.tiles[:-1]:
        assert tile.role == "secondary"
        assert 0.1 <= tile.u <= 0.9 and 0.1 <= tile.v <= 0.9


def test_thumbnail_creates_missing_secondaries():
    state = default_state(scale_percent=0, thumbnail_mode={
        "secondary_count": 5, "primary_position": {"u": 0.3, "v": 0.6},
    })
    layer = compute_sprite(state).layers[0]
    assert len(layer.tiles) == 6
    assert (layer.tiles[-1].u, layer.tiles[-1].v) == (0.3, 0.6)


def test_reassign_random_shapes_keeps_positions():
    refs = ["/sprites/default/circle.svg", "/sprites/default/heart.svg"]
    state = default_state(seed="DEADBEEF", selected_sprites=refs, random_sprites=True)
    prepared = compute_sprite(state)
    before = positions(prepared)
    reassign_random_shapes(prepared, state, seeded_stream("test", "shapes"))
    assert positions(prepared) == before
    assert {t.sprite for layer in prepared.layers for t in layer.tiles} <= set(refs)


def test_unknown_sprite_falls_back():
    prepared = compute_sprite(default_state(selected_sprites=["/sprites/nowhere/ghost.png"]))
    tile = prepared.layers[0].tiles[0]
    assert tile.sprite_source == "collection"
    assert tile.sprite.startswith("/sprites/default/")


# ----- Movement --------------------------------------------------------------

@pytest.mark.parametrize("mode", MOVEMENT_ORDER + ["not-a-mode"])
def test_scale_floor(mode):
    for step in range(0, 2000, 37):
        m = compute_movement(mode, step, 3.0, 1.5, 1, 40.0, 40.0)
        assert m.scale_multiplier >= MIN_SCALE_MULTIPLIER


@pytest.mark.parametrize("mode", MOVEMENT_ORDER)
def test_negative_speed_freezes(mode):
    frozen = compute_movement(mode, 500.0, 7.0, 1.0, 0, 40.0, 60.0, speed_factor=-1.0)
    start = compute_movement(mode, 0.0, 7.0, 1.0, 0, 40.0, 60.0)
    assert frozen == start


def test_parallax_speed():
    assert parallax_speed(10, 0) == 0.3
    assert math.isclose(parallax_speed(10, 40), 0.475)
    assert math.isclose(parallax_speed(40, 40), 1.0)


def test_parallax_small_tiles_travel_less():
    small = compute_movement("linear", 40.0, 0.0, 1.0, 0, 10.0, 80.0)
    large = compute_movement("linear", 40.0, 0.0, 1.0, 0, 80.0, 80.0)
    assert abs(small.offset_x) < abs(large.offset_x)


# ----- Presets ---------------------------------------------------------------

def test_presets_apply_cleanly():
    assert [k for k, _, _ in list_presets()] == PRESET_ORDER
    for key in PRESET_ORDER:
        state = default_state().evolve(**get_preset(key)["settings"])
        assert compute_sprite(state).tile_count() >= 1
    assert get_preset("nope") is None
