"""
Generator Presets

Each preset is a partial GeneratorState (field names, not JSON aliases)
applied on top of the current state with a fresh seed. Anything a preset
does not name keeps its current value, so a user's sprite selection and
palette survive switching presets.
"""

PRESETS = {
    # =====================================================================
    # BUILT-IN
    # =====================================================================
    "single_tile": {
        "name": "Single Tile",
        "description": "One large slow-breathing sprite, gently turning",
        "settings": {
            "scale_percent": 22, "scale_base": 85, "scale_spread": 45,
            "movement_mode": "pulse", "motion_intensity": 28, "motion_speed": 12.5,
            "rotation_enabled": True, "rotation_amount": 35, "rotation_animated": True,
        },
    },
    "nebula": {
        "name": "Nebula",
        "description": "Dense screen-blended drift with wide size spread",
        "settings": {
            "scale_percent": 320, "scale_base": 75, "scale_spread": 95,
            "palette_variance": 86,
            "movement_mode": "drift", "motion_intensity": 74, "motion_speed": 11,
            "blend_mode": "SCREEN", "blend_mode_auto": False, "previous_blend_mode": "SCREEN",
            "layer_opacity": 62,
            "rotation_enabled": True, "rotation_amount": 72, "rotation_animated": True,
        },
    },
    "minimal_grid": {
        "name": "Minimal Grid",
        "description": "Sparse, still, multiplied grid with low variance",
        "settings": {
            "scale_percent": 65, "scale_base": 55, "scale_spread": 38,
            "palette_variance": 18,
            "movement_mode": "drift", "motion_intensity": 20, "motion_speed": 5.5,
            "blend_mode": "MULTIPLY", "blend_mode_auto": False, "previous_blend_mode": "MULTIPLY",
            "layer_opacity": 48,
            "rotation_enabled": False, "rotation_amount": 0, "rotation_animated": False,
        },
    },

    # =====================================================================
    # EXTRA
    # =====================================================================
    "orbit": {
        "name": "Orbit",
        "description": "Spiral motion with slow spin and hue rotation",
        "settings": {
            "scale_percent": 540, "scale_base": 40, "scale_spread": 60,
            "movement_mode": "spiral", "motion_intensity": 62, "motion_speed": 9,
            "rotation_enabled": True, "rotation_amount": 90, "rotation_speed": 30,
            "rotation_animated": True,
            "hue_rotation_enabled": True, "hue_rotation_speed": 25,
        },
    },
    "parallax": {
        "name": "Parallax",
        "description": "Linear parallax lanes with depth of field",
        "settings": {
            "scale_percent": 900, "scale_base": 35, "scale_spread": 85,
            "movement_mode": "linear", "motion_intensity": 80, "motion_speed": 10,
            "depth_of_field_enabled": True, "depth_of_field_focus": 70,
            "depth_of_field_strength": 45,
        },
    },
}

PRESET_ORDER = ["single_tile", "nebula", "minimal_grid", "orbit", "parallax"]


def get_preset(name):
    """Get a preset by name. Returns None if not found."""
    return PRESETS.get(name)


def list_presets():
    """Return list of (key, name, description) in display order."""
    return [(k, PRESETS[k]["name"], PRESETS[k]["description"])
            for k in PRESET_ORDER if k in PRESETS]
