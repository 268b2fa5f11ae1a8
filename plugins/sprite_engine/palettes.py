"""
Palette Catalogue

Built-in palettes grouped by mood, plus a small registry for palettes
added at runtime. Lookups never fail: unknown ids resolve to the default
palette with a warning.
"""

import logging

logger = logging.getLogger(__name__)

DEFAULT_PALETTE_ID = "neon"

PALETTES = {
    # =====================================================================
    # NEON / CYBER
    # =====================================================================
    "neon": {
        "name": "Neon Pop",
        "category": "Neon/Cyber",
        "colors": ["#ff3cac", "#784ba0", "#2b86c5", "#00f5d4", "#fcee0c"],
    },
    "arcade": {
        "name": "Arcade Neon",
        "category": "Neon/Cyber",
        "colors": ["#f72585", "#7209b7", "#3a0ca3", "#4361ee", "#4cc9f0"],
    },
    "cyber": {
        "name": "Cyber Matrix",
        "category": "Neon/Cyber",
        "colors": ["#00ff41", "#00d4ff", "#ff00ff", "#ffaa00", "#ffffff"],
    },
    "electric": {
        "name": "Thunder Bolt",
        "category": "Neon/Cyber",
        "colors": ["#00f5ff", "#0099ff", "#0066ff", "#7b2cbf", "#e0aaff"],
    },
    # =====================================================================
    # WARM / FIRE
    # =====================================================================
    "sunset": {
        "name": "Sunset Drive",
        "category": "Warm/Fire",
        "colors": ["#ff7b00", "#ff5400", "#ff0054", "#ad00ff", "#6300ff"],
    },
    "ember": {
        "name": "Ember Glow",
        "category": "Warm/Fire",
        "colors": ["#8b0000", "#b22222", "#cd5c5c", "#ff6347", "#ffa07a"],
    },
    "lava": {
        "name": "Molten Core",
        "category": "Warm/Fire",
        "colors": ["#ff0000", "#ff4500", "#ff8c00", "#ffd700", "#ffff00"],
    },
    "sweetheart": {
        "name": "Sweetheart",
        "category": "Warm/Fire",
        "colors": ["#dc143c", "#ff1493", "#ff69b4", "#ffb6c1", "#ffc0cb"],
    },
    # =====================================================================
    # COOL / OCEAN
    # =====================================================================
    "oceanic": {
        "name": "Oceanic Pulse",
        "category": "Cool/Ocean",
        "colors": ["#031a6b", "#033860", "#087ca7", "#3fd7f2", "#9ef6ff"],
    },
    "aurora": {
        "name": "Aurora Glass",
        "category": "Cool/Ocean",
        "colors": ["#00c6ff", "#0072ff", "#7b42f6", "#b01eff", "#f441a5"],
    },
    "synth": {
        "name": "Synthwave",
        "category": "Cool/Ocean",
        "colors": ["#ff4ecd", "#ff9f1c", "#2ec4b6", "#cbf3f0", "#011627"],
    },
    "winter-frost": {
        "name": "Winter Frost",
        "category": "Cool/Ocean",
        "colors": ["#ffffff", "#e6f3ff", "#b0d4e6", "#87ceeb", "#c0d5e0"],
    },
    # =====================================================================
    # NATURE
    # =====================================================================
    "flora": {
        "name": "Flora Bloom",
        "category": "Nature",
        "colors": ["#ffafbd", "#ffc3a0", "#ffdfd3", "#d0ffb7", "#86fde8"],
    },
    "forest": {
        "name": "Emerald Grove",
        "category": "Nature",
        "colors": ["#2d5016", "#3d7c2f", "#5cb85c", "#90ee90", "#c8e6c9"],
    },
    # =====================================================================
    # SOFT / PASTEL
    # =====================================================================
    "pastel": {
        "name": "Soft Pastel",
        "category": "Soft/Pastel",
        "colors": ["#f7c5cc", "#ffdee8", "#c4f3ff", "#d9f0ff", "#fdf5d7"],
    },
    "candy": {
        "name": "Sweet Dreams",
        "category": "Soft/Pastel",
        "colors": ["#ff6b9d", "#c44569", "#f8b500", "#ffc93c", "#ff9ff3"],
    },
    # =====================================================================
    # DARK
    # =====================================================================
    "void": {
        "name": "Midnight Void",
        "category": "Dark/Mysterious",
        "colors": ["#0f0f1c", "#1f1147", "#371a79", "#5d2e9a", "#8c44ff"],
    },
}

PALETTE_ORDER = list(PALETTES.keys())

# Palettes registered at runtime, kept apart so the built-ins stay fixed
_CUSTOM_PALETTES = {}


def register_palette(palette_id, colors, name=None, category="Custom"):
    """Add or replace a custom palette. Built-in ids cannot be overridden."""
    if palette_id in PALETTES:
        raise ValueError(f"'{palette_id}' is a built-in palette")
    if not colors:
        raise ValueError("palette needs at least one color")
    _CUSTOM_PALETTES[palette_id] = {
        "name": name or palette_id,
        "category": category,
        "colors": list(colors),
    }


def unregister_palette(palette_id):
    _CUSTOM_PALETTES.pop(palette_id, None)


def all_palette_ids():
    """Built-in ids in catalogue order, followed by custom ids."""
    return PALETTE_ORDER + list(_CUSTOM_PALETTES.keys())


def has_palette(palette_id):
    return palette_id in PALETTES or palette_id in _CUSTOM_PALETTES


def get_palette(palette_id):
    """Palette dict with an "id" key. Unknown ids fall back to the default."""
    entry = PALETTES.get(palette_id) or _CUSTOM_PALETTES.get(palette_id)
    if entry is None:
        logger.warning(f"Unknown palette '{palette_id}', using '{DEFAULT_PALETTE_ID}'")
        palette_id = DEFAULT_PALETTE_ID
        entry = PALETTES[DEFAULT_PALETTE_ID]
    return {"id": palette_id, **entry}


def next_palette_id(palette_id):
    """Following palette in the full list, wrapping at the end."""
    ids = all_palette_ids()
    if palette_id not in ids:
        return ids[0]
    return ids[(ids.index(palette_id) + 1) % len(ids)]
