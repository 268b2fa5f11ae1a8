"""
Tests for seeded streams, the color pipeline and blend math.
"""

import logging
import random

import numpy as np
import pytest

from sprite_engine.blending import BLEND_MODES, blend_colors, composite, normalize_blend_mode, pick_blend_mode
from sprite_engine.color import (
    apply_color_adjustments,
    apply_hue_and_brightness,
    hex_to_hsl,
    hsl_to_hex,
    interpolate_color,
    interpolate_palette_colors,
    jitter_color,
    rgb_to_hex,
    shift_hue,
)
from sprite_engine.palettes import (
    DEFAULT_PALETTE_ID,
    all_palette_ids,
    get_palette,
    has_palette,
    next_palette_id,
    register_palette,
    unregister_palette,
)
from sprite_engine.seeding import (
    SEED_ALPHABET,
    SEED_LENGTH,
    generate_seed_string,
    hash_seed,
    mulberry32,
    position_key,
    seeded_stream,
    stream_key,
)


# ----- Seeding ---------------------------------------------------------------

def test_hash_is_deterministic_and_32_bit():
    for text in ("", "DEADBEEF", "DEADBEEF-color", "ünïcødé"):
        h = hash_seed(text)
        assert h == hash_seed(text)
        assert 0 <= h < 2 ** 32
    assert hash_seed("DEADBEEF") != hash_seed("DEADBEEE")


def test_streams_repeat_and_stay_independent():
    a = seeded_stream("DEADBEEF", "position")
    b = seeded_stream("DEADBEEF", "position")
    seq_a = [a() for _ in range(20)]
    assert seq_a == [b() for _ in range(20)]
    assert all(0.0 <= x < 1.0 for x in seq_a)

    color = seeded_stream("DEADBEEF", "color")
    assert [color() for _ in range(20)] != seq_a

    rerolled = seeded_stream("DEADBEEF", "position", "-1")
    assert [rerolled() for _ in range(20)] != seq_a


def test_stream_keys():
    assert stream_key("ABC") == "ABC"
    assert stream_key("ABC", "color") == "ABC-color"
    assert stream_key("ABC", "color", "-x") == "ABC-color-x"
    assert position_key(0.5, 0.25) == "0.500000-0.250000"


def test_named_streams_are_mulberry32_over_the_key_hash():
    stream = seeded_stream("ABC", "color", "-x")
    direct = mulberry32(hash_seed("ABC-color-x"))
    assert [stream() for _ in range(8)] == [direct() for _ in range(8)]


def test_generate_seed_string():
    seed = generate_seed_string(random.Random(3))
    assert len(seed) == SEED_LENGTH
    assert set(seed) <= set(SEED_ALPHABET)
    assert seed == generate_seed_string(random.Random(3))


# ----- Color -----------------------------------------------------------------

def test_shift_hue_wraps():
    assert shift_hue("#ff0000", 120) == "#00ff00"
    assert shift_hue("#ff0000", -120) == "#0000ff"
    assert shift_hue("#ff0000", 360) == "#ff0000"
    assert shift_hue("#ff0000", 720) == "#ff0000"


def test_grays_have_no_hue():
    assert shift_hue("#808080", 90) == "#808080"
    h, s, l = hex_to_hsl("#808080")
    assert s == 0


def test_short_hex_is_expanded():
    assert hex_to_hsl("#f00") == hex_to_hsl("#ff0000")


def test_color_adjustments():
    assert apply_color_adjustments("#ff0000") == "#ff0000"
    assert apply_color_adjustments("#ff0000", saturation=0) == "#808080"
    assert apply_color_adjustments("#ff0000", brightness=0) == "#000000"
    # Zero contrast pulls lightness to the midpoint
    assert hex_to_hsl(apply_color_adjustments("#ffffff", contrast=0))[2] == hex_to_hsl("#808080")[2]


def test_background_brightness_midpoint_is_identity():
    assert apply_hue_and_brightness("#ff0000", 0, 50) == "#ff0000"
    assert apply_hue_and_brightness("#ff0000", 0, 0) == "#000000"


def test_jitter_draws_three_values():
    calls = []

    def rng():
        calls.append(1)
        return 0.5

    assert jitter_color("#ff0000", 1.0, rng) == "#ff0000"
    assert len(calls) == 3


def test_jitter_stays_close_at_low_variance():
    rng = seeded_stream("DEADBEEF", "color")
    h, s, l = hex_to_hsl(jitter_color(hsl_to_hex(200, 60, 50), 0.1, rng))
    assert abs(h - 200) <= 3.5
    assert abs(l - 50) <= 2.5


def test_hue_interpolation_takes_short_path():
    a = hsl_to_hex(350, 100, 50)
    b = hsl_to_hex(10, 100, 50)
    h, _, _ = hex_to_hsl(interpolate_color(a, b, 0.5))
    assert min(h, 360 - h) < 3, f"Midpoint of 350 and 10 should be red, got {h}"


def test_palette_interpolation_endpoints_and_wrap():
    a = ["#ff0000"]
    b = ["#00ff00", "#0000ff"]
    assert interpolate_palette_colors(a, b, 0.0) == ["#ff0000", "#ff0000"]
    assert interpolate_palette_colors(a, b, 1.0) == ["#00ff00", "#0000ff"]
    assert interpolate_palette_colors(a, b, 2.0) == ["#00ff00", "#0000ff"]
    assert len(interpolate_palette_colors(a, b, 0.5)) == 2


def test_rgb_to_hex_rounds_and_clamps():
    assert rgb_to_hex(1.0, 0.0, 0.5) == "#ff0080"
    assert rgb_to_hex(1.5, -0.2, 0.0) == "#ff0000"
    assert hsl_to_hex(0, 0, 50) == rgb_to_hex(0.5, 0.5, 0.5)


# ----- Palette registry ------------------------------------------------------

def test_custom_palette_round_trip(caplog):
    register_palette("test-sunrise", ["#ff8800", "#ffee00"], name="Sunrise")
    try:
        palette = get_palette("test-sunrise")
        assert palette["id"] == "test-sunrise"
        assert palette["colors"] == ["#ff8800", "#ffee00"]
        assert palette["category"] == "Custom"
        assert has_palette("test-sunrise")
        ids = all_palette_ids()
        assert ids[-1] == "test-sunrise", "Custom palettes follow the built-ins"
        assert next_palette_id(ids[-2]) == "test-sunrise"
        assert next_palette_id("test-sunrise") == ids[0]
    finally:
        unregister_palette("test-sunrise")

    assert not has_palette("test-sunrise")
    with caplog.at_level(logging.WARNING, logger="sprite_engine.palettes"):
        fallback = get_palette("test-sunrise")
    assert fallback["id"] == DEFAULT_PALETTE_ID
    assert "test-sunrise" in caplog.text


def test_register_palette_rejects_bad_input():
    with pytest.raises(ValueError):
        register_palette(DEFAULT_PALETTE_ID, ["#000000"])
    with pytest.raises(ValueError):
        register_palette("test-empty", [])
    assert not has_palette("test-empty")


# ----- Blending --------------------------------------------------------------

def test_blend_math():
    dst = np.full((2, 2, 3), 0.5, dtype=np.float32)
    src = np.array([0.5, 0.5, 0.5], dtype=np.float32)
    assert np.allclose(blend_colors("MULTIPLY", dst, src), 0.25)
    assert np.allclose(blend_colors("SCREEN", dst, src), 0.75)
    assert np.allclose(blend_colors("DARKEST", dst, np.zeros(3, dtype=np.float32)), 0.0)
    assert np.allclose(blend_colors("NONE", dst, src), 0.5)


def test_composite_respects_alpha():
    dst = np.zeros((2, 2, 3), dtype=np.float32)
    alpha = np.array([[0.0, 1.0], [0.5, 0.0]], dtype=np.float32)
    composite(dst, np.ones(3, dtype=np.float32), alpha, "NONE")
    assert dst[0, 0, 0] == 0.0
    assert dst[0, 1, 0] == 1.0
    assert np.isclose(dst[1, 0, 0], 0.5)


def test_unknown_blend_mode_normalizes():
    assert normalize_blend_mode("SCREEN") == "SCREEN"
    assert normalize_blend_mode("COLOR_DODGE") == "NONE"


def test_pick_blend_mode_follows_the_stream():
    picks = [pick_blend_mode(seeded_stream("DEADBEEF", "blend")) for _ in range(3)]
    assert len(set(picks)) == 1, "Same stream, same pick"
    rng = seeded_stream("DEADBEEF", "blend-layer0")
    assert all(pick_blend_mode(rng) in BLEND_MODES for _ in range(50))
