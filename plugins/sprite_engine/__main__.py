"""
Sprite Generator - Entry Point

Usage:
    python -m sprite_engine [preset] [--seed HEX] [--size W] [--window W]
    python -m sprite_engine [preset] --snap [--time T] [--state FILE] [--out FILE]

Examples:
    python -m sprite_engine
    python -m sprite_engine nebula
    python -m sprite_engine orbit --seed 1A2B3C4D --window 1280
    python -m sprite_engine minimal_grid --snap --size 1920
    python -m sprite_engine --snap --state saved.json --transparent

Use --list to see all available presets.
"""

import logging
import os
import sys

from .presets import PRESET_ORDER, list_presets


def snap(preset, seed, size, time_seconds, state_path=None, out_path=None, transparent=False):
    """Headless mode: render one frame, save a PNG, exit."""
    from .controller import SpriteController, aspect_size
    from .state import GeneratorState, default_state
    from .surface import RasterSurface

    if state_path:
        with open(state_path) as f:
            state = GeneratorState.from_json(f.read())
    else:
        state = default_state(seed=seed) if seed else None

    surface = RasterSurface(1, 1)
    controller = SpriteController(surface, state=state, noise_seed=0)
    if preset and not state_path:
        controller.apply_preset(preset)
        if seed:
            controller.apply_state(controller.get_state().evolve(seed=seed))

    state = controller.get_state()
    surface.resize(*aspect_size(state, size))
    controller.load_sprites()
    drawn = controller.render_still(time_seconds)

    if out_path is None:
        screenshots_dir = os.path.join(
            os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))),
            "screenshots"
        )
        os.makedirs(screenshots_dir, exist_ok=True)
        out_path = os.path.join(screenshots_dir, f"sprites_{preset or 'default'}_{state.seed}.png")

    surface.save(out_path, transparent=transparent)
    print(f"  {state.seed}: {drawn} tiles at {surface.width}x{surface.height}, saved: {out_path}")
    controller.destroy()


def main():
    preset = None
    seed = None
    size = 1280
    window_w = 960
    snap_mode = False
    time_seconds = 0.0
    state_path = None
    out_path = None
    transparent = False

    args = sys.argv[1:]
    i = 0
    while i < len(args):
        arg = args[i]
        if arg == "--seed" and i + 1 < len(args):
            seed = args[i + 1].upper()
            i += 2
        elif arg == "--size" and i + 1 < len(args):
            size = int(args[i + 1])
            i += 2
        elif arg == "--window" and i + 1 < len(args):
            window_w = int(args[i + 1])
            i += 2
        elif arg == "--time" and i + 1 < len(args):
            time_seconds = float(args[i + 1])
            i += 2
        elif arg == "--state" and i + 1 < len(args):
            state_path = args[i + 1]
            i += 2
        elif arg == "--out" and i + 1 < len(args):
            out_path = args[i + 1]
            i += 2
        elif arg == "--snap":
            snap_mode = True
            i += 1
        elif arg == "--transparent":
            transparent = True
            i += 1
        elif arg == "--verbose":
            logging.basicConfig(level=logging.DEBUG)
            i += 1
        elif arg == "--list":
            print("\nAvailable presets:\n")
            for key, name, desc in list_presets():
                print(f"    {key:16s} {name:16s} {desc}")
            print()
            return
        elif arg in ("--help", "-h"):
            print(__doc__)
            return
        elif arg in PRESET_ORDER:
            preset = arg
            i += 1
        else:
            print(f"Unknown argument: {arg}")
            print("Use --list to see available presets")
            return

    if snap_mode:
        print(f"Headless snap mode: {preset or 'default'} @ width {size}")
        snap(preset, seed, size, time_seconds, state_path, out_path, transparent)
        return

    from .viewer import Viewer

    print("Starting Sprite Generator")
    print(f"  Preset: {preset or 'default'}")
    print(f"  Seed: {seed or 'random'}")
    print(f"  Window: {window_w}")
    print()

    viewer = Viewer(width=window_w, start_preset=preset, seed=seed)
    viewer.run()


if __name__ == "__main__":
    main()
