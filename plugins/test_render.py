"""
Tests for the raster surface, sprite cache and post effects.
"""

import numpy as np
import pytest

from sprite_engine.effects import (
    MAX_DOF_BLUR,
    apply_bloom,
    apply_noise,
    depth_of_field_blur,
    size_depth,
)
from sprite_engine.sprites import (
    DEFAULT_SPRITES,
    SpriteAssetCache,
    get_collection,
    register_collection,
    render_shape,
)
from sprite_engine.state import NOISE_TYPES
from sprite_engine.surface import RasterSurface, linear_gradient


# ----- Surface ---------------------------------------------------------------

def test_clear_and_transparent_clear():
    surface = RasterSurface(8, 4)
    surface.clear("#ff0000")
    assert np.allclose(surface.pixels[..., 0], 1.0)
    assert np.allclose(surface.coverage, 1.0)
    surface.clear(None)
    assert not surface.coverage.any()
    assert surface.to_image(transparent=True).mode == "RGBA"
    assert surface.to_image().size == (8, 4)


def test_linear_gradient_direction():
    field = linear_gradient(4, 10, ["#000000", "#ffffff"], 0)
    assert field.shape == (4, 10, 3)
    assert field[0, 0, 0] < field[0, -1, 0]
    vertical = linear_gradient(10, 4, ["#000000", "#ffffff"], 90)
    assert vertical[0, 0, 0] < vertical[-1, 0, 0]


def test_draw_sprite_lands_on_canvas():
    surface = RasterSurface(32, 32)
    surface.clear("#000000")
    mask = np.ones((16, 16), dtype=np.float32)
    assert surface.draw_sprite(mask, 16, 16, 12, color="#00ff00")
    assert np.allclose(surface.pixels[16, 16], [0.0, 1.0, 0.0])
    assert np.allclose(surface.pixels[0, 0], 0.0)


def test_draw_sprite_off_canvas_is_skipped():
    surface = RasterSurface(32, 32)
    mask = np.ones((16, 16), dtype=np.float32)
    assert not surface.draw_sprite(mask, -100, -100, 12)
    assert not surface.coverage.any()


def test_global_alpha_and_opacity_scale_coverage():
    surface = RasterSurface(16, 16)
    surface.clear(None)
    surface.global_alpha = 0.5
    surface.draw_sprite(np.ones((8, 8), dtype=np.float32), 8, 8, 8, color="#ffffff", opacity=0.5)
    assert np.isclose(surface.coverage[8, 8], 0.25)


def test_outline_hollows_the_sprite():
    surface = RasterSurface(64, 64)
    surface.clear("#000000")
    mask = np.ones((32, 32), dtype=np.float32)
    surface.draw_sprite(mask, 32, 32, 40, color="#ffffff", outline_width=2)
    assert surface.pixels[32, 32, 0] < 0.01
    assert surface.pixels[32, 13, 0] > 0.5


def test_released_surface_raises():
    surface = RasterSurface(4, 4)
    surface.release()
    with pytest.raises(RuntimeError):
        surface.clear("#000000")


# ----- Sprites ---------------------------------------------------------------

def test_every_default_shape_renders():
    for sprite in DEFAULT_SPRITES:
        mask = render_shape(sprite.shape, 64)
        assert mask.shape == (64, 64)
        assert mask.max() > 0.5, sprite.id


def test_cache_loads_and_releases():
    cache = SpriteAssetCache(size=32)
    ref = DEFAULT_SPRITES[0].reference
    assert cache.get_cached(ref) is None
    cache.load(ref)
    assert cache.get_cached(ref).shape == (32, 32)
    assert cache.load_async(ref) is None, "Cached references are not reloaded"
    cache.release()
    assert cache.get_cached(ref) is None


def test_async_load_fills_cache():
    cache = SpriteAssetCache(size=32)
    threads = cache.preload([s.reference for s in DEFAULT_SPRITES[:3]])
    for t in threads:
        t.join(timeout=5)
    assert all(cache.get_cached(s.reference) is not None for s in DEFAULT_SPRITES[:3])


def test_image_collection(tmp_path):
    from PIL import Image

    path = tmp_path / "blob.png"
    img = Image.new("RGBA", (20, 10), (255, 255, 255, 0))
    img.paste((255, 255, 255, 255), (5, 2, 15, 8))
    img.save(path)

    coll = register_collection("test-images", "Test", [str(path)])
    assert get_collection("test-images") is coll
    cache = SpriteAssetCache(size=32)
    mask = cache.load(str(path))
    assert mask.shape == (32, 32)
    assert mask.max() == 1.0


def test_missing_image_raises_and_async_logs(tmp_path):
    cache = SpriteAssetCache()
    missing = str(tmp_path / "missing.png")
    with pytest.raises(OSError):
        cache.load(missing)
    thread = cache.load_async(missing)
    thread.join(timeout=5)
    assert cache.get_cached(missing) is None
    assert not cache.is_pending(missing)


# ----- Effects ---------------------------------------------------------------

def test_depth_of_field():
    assert size_depth(10, 10, 10) == 0.5
    assert depth_of_field_blur(50, 0, 100, focus=50, strength=100) == 0.0
    assert depth_of_field_blur(100, 0, 100, focus=0, strength=0) == 0.0
    assert depth_of_field_blur(100, 0, 100, focus=0, strength=100) == MAX_DOF_BLUR
    # Small distances fall under the skip threshold
    assert depth_of_field_blur(60, 0, 100, focus=50, strength=100) == 0.0


def test_bloom_spreads_light():
    pixels = np.zeros((21, 21, 3), dtype=np.float32)
    pixels[10, 10] = 1.0
    untouched = pixels.copy()
    apply_bloom(pixels, intensity=0, threshold=50, radius=20)
    assert np.array_equal(pixels, untouched)

    apply_bloom(pixels, intensity=100, threshold=50, radius=20)
    assert pixels[10, 12, 0] > 0.0
    assert pixels.max() <= 1.0


@pytest.mark.parametrize("noise_type", NOISE_TYPES)
def test_noise_stays_in_range(noise_type):
    pixels = np.full((16, 16, 3), 0.5, dtype=np.float32)
    apply_noise(pixels, noise_type, 80, np.random.default_rng(0), seed=3)
    assert pixels.shape == (16, 16, 3)
    assert pixels.min() >= 0.0 and pixels.max() <= 1.0
    assert not np.allclose(pixels, 0.5)


def test_noise_strength_zero_is_noop():
    pixels = np.full((4, 4, 3), 0.3, dtype=np.float32)
    apply_noise(pixels, "grain", 0)
    assert np.allclose(pixels, 0.3)
