"""
Sprite Collections and Asset Cache

Sprites are referenced by opaque identifier strings ("/sprites/default/star.svg").
The default collection is drawn procedurally with Pillow; registered
collections point at image files on disk. The engine only ever sees an
alpha mask per reference.

The cache is fire-and-forget: a draw either finds a mask already cached
or kicks off a background load and skips the tile for this frame.
"""

import logging
import math
import os
import threading
from collections import namedtuple
from dataclasses import dataclass, field

import numpy as np
from PIL import Image, ImageDraw

logger = logging.getLogger(__name__)

DEFAULT_COLLECTION_ID = "default"
DEFAULT_SPRITE_REFERENCE = "/sprites/default/star.svg"

BASE_SPRITE_RES = 256   # Cached mask resolution
_SUPERSAMPLE = 4        # Procedural shapes are drawn large then downsampled


SpriteInfo = namedtuple("SpriteInfo", ["id", "label", "reference", "shape"])

# Where a resolved sprite came from, in cascade order
SpriteResolution = namedtuple("SpriteResolution", ["reference", "source"])
SOURCE_SELECTED = "selected"
SOURCE_ALTERNATE = "alternate"
SOURCE_COLLECTION = "collection"
SOURCE_DEFAULT = "default"


@dataclass
class SpriteCollection:
    id: str
    name: str
    sprites: list = field(default_factory=list)

    def references(self):
        return [s.reference for s in self.sprites]

    def find(self, identifier):
        """Match by reference, id, or legacy sprite-mode name."""
        for sprite in self.sprites:
            if identifier in (sprite.reference, sprite.id):
                return sprite
        return None


def _default_sprite(sprite_id, label, filename=None, shape=None):
    filename = filename or f"{sprite_id}.svg"
    return SpriteInfo(
        sprite_id, label, f"/sprites/default/{filename}", shape or sprite_id,
    )


DEFAULT_SPRITES = [
    _default_sprite("rounded", "Rounded"),
    _default_sprite("circle", "Circle"),
    _default_sprite("square", "Square"),
    _default_sprite("triangle", "Triangle"),
    _default_sprite("hexagon", "Hexagon"),
    _default_sprite("diamond", "Diamond"),
    _default_sprite("star", "Star"),
    _default_sprite("line", "Line"),
    _default_sprite("pentagon", "Pentagon"),
    _default_sprite("asterisk", "Asterisk"),
    _default_sprite("cross", "Cross", "plus.svg", "plus"),
    _default_sprite("pixels", "Pixels", "grid.svg", "grid"),
    _default_sprite("heart", "Heart"),
    _default_sprite("smiley", "Smiley"),
    _default_sprite("x", "X", "cross.svg", "x"),
    _default_sprite("arrow", "Arrow"),
]

_COLLECTIONS = {
    DEFAULT_COLLECTION_ID: SpriteCollection(DEFAULT_COLLECTION_ID, "Default", list(DEFAULT_SPRITES)),
}


def register_collection(collection_id, name, paths):
    """Register a collection of image files (PNG, WebP, ...).

    Args:
        collection_id: Unique id
        name: Display name
        paths: Image paths, used verbatim as sprite references
    """
    sprites = [
        SpriteInfo(os.path.splitext(os.path.basename(p))[0], os.path.basename(p), p, None)
        for p in paths
    ]
    _COLLECTIONS[collection_id] = SpriteCollection(collection_id, name, sprites)
    return _COLLECTIONS[collection_id]


def get_collection(collection_id):
    """Collection by id; unknown ids fall back to the default collection."""
    coll = _COLLECTIONS.get(collection_id)
    if coll is None:
        logger.warning(f"Unknown sprite collection '{collection_id}', using default")
        coll = _COLLECTIONS[DEFAULT_COLLECTION_ID]
    return coll


def find_sprite(identifier):
    """Look a reference (or legacy mode name) up across every collection."""
    for coll in _COLLECTIONS.values():
        sprite = coll.find(identifier)
        if sprite is not None:
            return coll, sprite
    return None, None


def reference_for_mode(mode, collection_id=DEFAULT_COLLECTION_ID):
    """Reference for a legacy sprite-mode name, used to migrate old states."""
    sprite = get_collection(collection_id).find(mode)
    if sprite is None:
        _, sprite = find_sprite(mode)
    if sprite is None:
        default = _COLLECTIONS[DEFAULT_COLLECTION_ID]
        return default.sprites[0].reference if default.sprites else DEFAULT_SPRITE_REFERENCE
    return sprite.reference


def resolve_sprite(selected, collection_id, choice):
    """Resolve one pick from the selection through the fallback cascade.

    Order: the chosen selected sprite, any other selected sprite that is
    known, the first sprite of the active collection, the built-in default.

    Args:
        selected: List of selected references (non-empty)
        collection_id: Active collection id
        choice: Index into selected

    Returns:
        SpriteResolution(reference, source)
    """
    chosen = selected[choice % len(selected)]
    if find_sprite(chosen)[1] is not None:
        return SpriteResolution(chosen, SOURCE_SELECTED)
    for ref in selected:
        if ref != chosen and find_sprite(ref)[1] is not None:
            return SpriteResolution(ref, SOURCE_ALTERNATE)
    coll = get_collection(collection_id)
    if coll.sprites:
        return SpriteResolution(coll.sprites[0].reference, SOURCE_COLLECTION)
    return SpriteResolution(DEFAULT_SPRITE_REFERENCE, SOURCE_DEFAULT)


# ── Procedural shapes ───────────────────────────────────────────────────

def _regular_polygon(n, radius, rotation=-math.pi / 2, cx=0.5, cy=0.5):
    return [
        (cx + math.cos(rotation + 2 * math.pi * i / n) * radius,
         cy + math.sin(rotation + 2 * math.pi * i / n) * radius)
        for i in range(n)
    ]


def _star_points(points=5, outer=0.48, inner=0.2):
    pts = []
    for i in range(points * 2):
        r = outer if i % 2 == 0 else inner
        a = -math.pi / 2 + math.pi * i / points
        pts.append((0.5 + math.cos(a) * r, 0.5 + math.sin(a) * r))
    return pts


def _bar(angle, length=0.9, thickness=0.16):
    """Rectangle centered on the canvas, rotated by angle (radians)."""
    hx, hy = length / 2, thickness / 2
    ca, sa = math.cos(angle), math.sin(angle)
    return [
        (0.5 + x * ca - y * sa, 0.5 + x * sa + y * ca)
        for x, y in ((-hx, -hy), (hx, -hy), (hx, hy), (-hx, hy))
    ]


def _heart_points(samples=64):
    pts = []
    for i in range(samples):
        t = 2 * math.pi * i / samples
        x = 16 * math.sin(t) ** 3
        y = 13 * math.cos(t) - 5 * math.cos(2 * t) - 2 * math.cos(3 * t) - math.cos(4 * t)
        pts.append((0.5 + x / 36, 0.48 - y / 36))
    return pts


def _draw_shape(draw, shape, s):
    def px(points):
        return [(x * s, y * s) for x, y in points]

    if shape == "circle":
        draw.ellipse([0.04 * s, 0.04 * s, 0.96 * s, 0.96 * s], fill=255)
    elif shape == "square":
        draw.rectangle([0.08 * s, 0.08 * s, 0.92 * s, 0.92 * s], fill=255)
    elif shape == "rounded":
        draw.rounded_rectangle([0.06 * s, 0.06 * s, 0.94 * s, 0.94 * s], radius=0.22 * s, fill=255)
    elif shape == "triangle":
        draw.polygon(px([(0.5, 0.06), (0.96, 0.9), (0.04, 0.9)]), fill=255)
    elif shape == "hexagon":
        draw.polygon(px(_regular_polygon(6, 0.47, rotation=0.0)), fill=255)
    elif shape == "pentagon":
        draw.polygon(px(_regular_polygon(5, 0.47)), fill=255)
    elif shape == "diamond":
        draw.polygon(px([(0.5, 0.02), (0.9, 0.5), (0.5, 0.98), (0.1, 0.5)]), fill=255)
    elif shape == "star":
        draw.polygon(px(_star_points()), fill=255)
    elif shape == "line":
        draw.polygon(px(_bar(0.0, 0.94, 0.12)), fill=255)
    elif shape == "plus":
        draw.polygon(px(_bar(0.0, 0.9, 0.28)), fill=255)
        draw.polygon(px(_bar(math.pi / 2, 0.9, 0.28)), fill=255)
    elif shape == "x":
        draw.polygon(px(_bar(math.pi / 4, 1.0, 0.24)), fill=255)
        draw.polygon(px(_bar(-math.pi / 4, 1.0, 0.24)), fill=255)
    elif shape == "asterisk":
        for k in range(3):
            draw.polygon(px(_bar(math.pi / 2 + k * math.pi / 3, 0.94, 0.16)), fill=255)
    elif shape == "grid":
        cell = 0.92 / 3
        for row in range(3):
            for col in range(3):
                if (row + col) % 2 == 0:
                    x0, y0 = 0.04 + col * cell, 0.04 + row * cell
                    draw.rectangle([x0 * s, y0 * s, (x0 + cell) * s, (y0 + cell) * s], fill=255)
    elif shape == "heart":
        draw.polygon(px(_heart_points()), fill=255)
    elif shape == "smiley":
        draw.ellipse([0.04 * s, 0.04 * s, 0.96 * s, 0.96 * s], fill=255)
        draw.ellipse([0.3 * s, 0.3 * s, 0.4 * s, 0.42 * s], fill=0)
        draw.ellipse([0.6 * s, 0.3 * s, 0.7 * s, 0.42 * s], fill=0)
        draw.arc([0.26 * s, 0.34 * s, 0.74 * s, 0.76 * s], 20, 160, fill=0, width=int(0.07 * s))
    elif shape == "arrow":
        draw.polygon(px([(0.06, 0.38), (0.56, 0.38), (0.56, 0.14), (0.96, 0.5),
                         (0.56, 0.86), (0.56, 0.62), (0.06, 0.62)]), fill=255)
    else:
        raise ValueError(f"Unknown procedural shape: {shape}")


def render_shape(shape, size=BASE_SPRITE_RES):
    """Rasterize a procedural shape to a float32 alpha mask in [0, 1]."""
    big = size * _SUPERSAMPLE
    img = Image.new("L", (big, big), 0)
    _draw_shape(ImageDraw.Draw(img), shape, big)
    img = img.resize((size, size), Image.LANCZOS)
    return np.asarray(img, dtype=np.float32) / 255.0


def load_image_mask(path, size=BASE_SPRITE_RES):
    """Load an image file and return its alpha channel as a square mask."""
    with Image.open(path) as img:
        rgba = img.convert("RGBA")
    rgba.thumbnail((size, size), Image.LANCZOS)
    canvas = Image.new("L", (size, size), 0)
    alpha = rgba.getchannel("A")
    canvas.paste(alpha, ((size - rgba.width) // 2, (size - rgba.height) // 2))
    return np.asarray(canvas, dtype=np.float32) / 255.0


# ── Asset cache ─────────────────────────────────────────────────────────

class SpriteAssetCache:
    """Reference -> alpha mask cache with asynchronous loading.

    get_cached() never blocks. load_async() starts a daemon thread per
    missing reference; failures are logged and left uncached so the next
    draw retries.
    """

    def __init__(self, assets_root=None, size=BASE_SPRITE_RES):
        self.assets_root = assets_root
        self.size = size
        self._masks = {}
        self._pending = set()
        self._lock = threading.Lock()

    def get_cached(self, reference):
        with self._lock:
            return self._masks.get(reference)

    def is_pending(self, reference):
        with self._lock:
            return reference in self._pending

    def _resolve_path(self, reference):
        if os.path.isabs(reference) and os.path.exists(reference):
            return reference
        if self.assets_root is not None:
            return os.path.join(self.assets_root, reference.lstrip("/"))
        return reference

    def load(self, reference):
        """Load synchronously and cache. Raises on I/O or decode failure."""
        _, sprite = find_sprite(reference)
        if sprite is not None and sprite.shape is not None:
            mask = render_shape(sprite.shape, self.size)
        else:
            mask = load_image_mask(self._resolve_path(reference), self.size)
        with self._lock:
            self._masks[reference] = mask
        return mask

    def _load_worker(self, reference):
        try:
            self.load(reference)
        except (OSError, ValueError) as e:
            logger.warning(f"Failed to load sprite image: {reference} ({e})")
        finally:
            with self._lock:
                self._pending.discard(reference)

    def load_async(self, reference):
        """Start a background load unless one is already running.

        Returns:
            The started thread, or None if nothing was started
        """
        with self._lock:
            if reference in self._masks or reference in self._pending:
                return None
            self._pending.add(reference)
        thread = threading.Thread(target=self._load_worker, args=(reference,), daemon=True)
        thread.start()
        return thread

    def preload(self, references):
        """Kick off loads for several references; returns the started threads."""
        threads = [self.load_async(ref) for ref in references]
        return [t for t in threads if t is not None]

    def release(self):
        with self._lock:
            self._masks.clear()
