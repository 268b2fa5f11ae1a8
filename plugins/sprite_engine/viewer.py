"""
Interactive Pygame Viewer for the Sprite Generator

Renders through a RasterSurface at a reduced internal resolution and
scales it to the window. The side panel drives the SpriteController
setters directly; the controller clamps every value.

Controls:
  SPACE       Pause / Resume animation
  R           Randomize everything (new seed)
  C           Randomize colors
  P           Next palette
  B           Reroll auto blend modes
  G           Reassign random sprite shapes
  TAB         Toggle control panel
  S           Save screenshot
  H           Toggle HUD overlay
  1-5         Presets
  Q / ESC     Quit
"""

import os
import time

import pygame

from .blending import BLEND_MODES
from .controller import SpriteController, aspect_size
from .controls import ControlPanel, THEME
from .movement import MOVEMENT_ORDER
from .palettes import get_palette, next_palette_id
from .presets import PRESET_ORDER, get_preset
from .sprites import DEFAULT_SPRITES
from .state import ASPECT_RATIOS, NOISE_TYPES, default_state
from .surface import RasterSurface

PANEL_WIDTH = 300
TRANSITIONS = ["instant", "fade", "smooth"]


class Viewer:
    """Window, panel and main loop around one SpriteController.

    Args:
        width: Canvas width in window pixels (height follows the aspect ratio)
        render_width: Internal render width; smaller is faster
        start_preset: Preset applied at startup, or None
        seed: Fixed seed string, or None for a random one
    """

    def __init__(self, width=960, render_width=640, start_preset=None, seed=None):
        self.canvas_w = width
        self.render_width = render_width
        self.panel_visible = True
        self.running = True
        self.show_hud = True
        self.preset_key = start_preset
        self.transition_kind = "instant"
        self._dirty_widgets = False

        state = default_state(seed=seed) if seed else None
        w, h = aspect_size(state or default_state(), render_width)
        self.surface = RasterSurface(w, h)
        self.controller = SpriteController(
            self.surface, state=state, on_state_change=self._on_state_change,
        )
        if start_preset:
            self.controller.apply_preset(start_preset)
        self.controller.load_sprites()

        self.panel = None
        self.widgets = {}
        self.preset_buttons = None

    @property
    def canvas_h(self):
        return int(round(self.canvas_w * self.surface.height / self.surface.width))

    @property
    def total_w(self):
        return self.canvas_w + (PANEL_WIDTH if self.panel_visible else 0)

    def _on_state_change(self, state):
        # Aspect changes resize the render target; sliders resync next frame
        w, h = aspect_size(state, self.render_width)
        if (w, h) != (self.surface.width, self.surface.height):
            self.surface.resize(w, h)
            self._resize_window()
        self._dirty_widgets = True

    def _resize_window(self):
        if pygame.display.get_init() and pygame.display.get_surface() is not None:
            pygame.display.set_mode((self.total_w, self.canvas_h), pygame.RESIZABLE)

    # ── Panel ───────────────────────────────────────────────────────────

    def _build_panel(self):
        c = self.controller
        s = c.get_state()
        panel = ControlPanel(self.canvas_w, 0, PANEL_WIDTH, self.canvas_h)
        wd = self.widgets

        panel.add_section("PRESETS")
        labels = [get_preset(k)["name"] for k in PRESET_ORDER]
        selected = PRESET_ORDER.index(self.preset_key) if self.preset_key in PRESET_ORDER else None
        self.preset_buttons = panel.add_button_row(labels, selected, self._on_preset_select)
        panel.add_button_row(TRANSITIONS, 0, self._on_transition_select)
        panel.add_button_row(["Randomize", "Colors", "Motion", "Shapes", "Reset"],
                             on_select=self._on_action, selectable=False)

        panel.add_section("COLOR")
        wd["palette"] = panel.add_button_row([get_palette(s.palette_id)["name"]],
                                             on_select=lambda i, n: c.use_palette(next_palette_id(c.get_state().palette_id)),
                                             selectable=False)
        wd["color_adjustments_enabled"] = panel.add_toggle("Adjustments", s.color_adjustments_enabled, c.set_color_adjustments_enabled)
        wd["palette_variance"] = panel.add_slider("Variance", 0, 150, s.palette_variance, on_change=c.set_palette_variance)
        wd["hue_shift"] = panel.add_slider("Hue Shift", 0, 100, s.hue_shift, on_change=c.set_hue_shift)
        wd["saturation"] = panel.add_slider("Saturation", 0, 200, s.saturation, on_change=c.set_saturation)
        wd["brightness"] = panel.add_slider("Brightness", 0, 200, s.brightness, on_change=c.set_brightness)
        wd["contrast"] = panel.add_slider("Contrast", 0, 200, s.contrast, on_change=c.set_contrast)

        panel.add_section("SPRITES")
        panel.add_button_row([sp.label for sp in DEFAULT_SPRITES],
                             on_select=lambda i, n: c.set_sprite_mode(DEFAULT_SPRITES[i].id),
                             selectable=False)
        wd["random_sprites"] = panel.add_toggle("Random Shapes", s.random_sprites, c.set_random_sprites)

        panel.add_section("DENSITY & SCALE")
        wd["density_scale_enabled"] = panel.add_toggle("Enabled", s.density_scale_enabled, c.set_density_scale_enabled)
        wd["scale_percent"] = panel.add_slider("Density", 0, 1800, s.scale_percent, step=5, on_change=c.set_scale_percent)
        wd["scale_base"] = panel.add_slider("Scale", 0, 100, s.scale_base, on_change=c.set_scale_base)
        wd["scale_spread"] = panel.add_slider("Spread", 0, 100, s.scale_spread, on_change=c.set_scale_spread)

        panel.add_section("MOTION")
        wd["movement_mode"] = panel.add_button_row(
            MOVEMENT_ORDER, MOVEMENT_ORDER.index(s.movement_mode) if s.movement_mode in MOVEMENT_ORDER else 0,
            lambda i, n: c.set_movement_mode(n))
        wd["animation_enabled"] = panel.add_toggle("Animate", s.animation_enabled, c.set_animation_enabled)
        wd["motion_intensity"] = panel.add_slider("Intensity", 0, 100, s.motion_intensity, on_change=c.set_motion_intensity)
        wd["motion_speed"] = panel.add_slider("Speed", 0, 12.5, s.motion_speed, fmt=".1f", step=0.5, on_change=c.set_motion_speed)

        panel.add_section("ROTATION")
        wd["rotation_enabled"] = panel.add_toggle("Rotate", s.rotation_enabled, c.set_rotation_enabled)
        wd["rotation_animated"] = panel.add_toggle("Spin", s.rotation_animated, c.set_rotation_animated)
        wd["rotation_amount"] = panel.add_slider("Amount", 0, 180, s.rotation_amount, on_change=c.set_rotation_amount)
        wd["rotation_speed"] = panel.add_slider("Spin Speed", 1, 100, s.rotation_speed, on_change=c.set_rotation_speed)

        panel.add_section("BLEND & OPACITY")
        wd["blend_opacity_enabled"] = panel.add_toggle("Enabled", s.blend_opacity_enabled, c.set_blend_opacity_enabled)
        wd["blend_mode_auto"] = panel.add_toggle("Auto Blend", s.blend_mode_auto, c.set_blend_mode_auto)
        wd["blend_mode"] = panel.add_button_row(
            BLEND_MODES, BLEND_MODES.index(s.blend_mode), lambda i, n: c.set_blend_mode(n))
        wd["layer_opacity"] = panel.add_slider("Opacity", 15, 100, s.layer_opacity, on_change=c.set_layer_opacity)

        panel.add_section("CANVAS")
        wd["canvas_enabled"] = panel.add_toggle("Adjustments", s.canvas_enabled, c.set_canvas_enabled)
        wd["background_hue_shift"] = panel.add_slider("BG Hue", 0, 100, s.background_hue_shift, on_change=c.set_background_hue_shift)
        wd["background_saturation"] = panel.add_slider("BG Saturation", 0, 200, s.background_saturation, on_change=c.set_background_saturation)
        wd["background_brightness"] = panel.add_slider("BG Brightness", 0, 100, s.background_brightness, on_change=c.set_background_brightness)
        wd["background_contrast"] = panel.add_slider("BG Contrast", 0, 200, s.background_contrast, on_change=c.set_background_contrast)
        wd["aspect_ratio"] = panel.add_button_row(
            ASPECT_RATIOS[:-1], ASPECT_RATIOS.index(s.aspect_ratio) if s.aspect_ratio in ASPECT_RATIOS[:-1] else None,
            lambda i, n: c.set_aspect_ratio(n))

        panel.add_section("GRADIENTS")
        wd["gradients_enabled"] = panel.add_toggle("Enabled", s.gradients_enabled, c.set_gradients_enabled)
        wd["sprite_fill_gradient"] = panel.add_toggle(
            "Sprite Gradient", s.sprite_fill_mode == "gradient",
            lambda v: c.set_sprite_fill_mode("gradient" if v else "solid"))
        wd["sprite_gradient_direction"] = panel.add_slider("Sprite Angle", 0, 360, s.sprite_gradient_direction, on_change=c.set_sprite_gradient_direction)
        wd["canvas_fill_gradient"] = panel.add_toggle(
            "Canvas Gradient", s.canvas_fill_mode == "gradient",
            lambda v: c.set_canvas_fill_mode("gradient" if v else "solid"))
        wd["canvas_gradient_direction"] = panel.add_slider("Canvas Angle", 0, 360, s.canvas_gradient_direction, on_change=c.set_canvas_gradient_direction)

        panel.add_section("OUTLINE")
        wd["outline_enabled"] = panel.add_toggle("Outline", s.outline_enabled, c.set_outline_enabled)
        wd["outline_mixed"] = panel.add_toggle("Mixed", s.outline_mixed, c.set_outline_mixed)
        wd["outline_stroke_width"] = panel.add_slider("Stroke", 1, 20, s.outline_stroke_width, on_change=c.set_outline_stroke_width)
        wd["outline_balance"] = panel.add_slider("Balance", 0, 100, s.outline_balance, on_change=c.set_outline_balance)

        panel.add_section("ANIMATION")
        wd["hue_rotation_enabled"] = panel.add_toggle("Hue Rotation", s.hue_rotation_enabled, c.set_hue_rotation_enabled)
        wd["hue_rotation_speed"] = panel.add_slider("Hue Speed", 0.1, 100, s.hue_rotation_speed, on_change=c.set_hue_rotation_speed)
        wd["palette_cycle_enabled"] = panel.add_toggle("Palette Cycle", s.palette_cycle_enabled, c.set_palette_cycle_enabled)
        wd["palette_cycle_speed"] = panel.add_slider("Cycle Speed", 0.1, 100, s.palette_cycle_speed, on_change=c.set_palette_cycle_speed)
        wd["canvas_hue_rotation_enabled"] = panel.add_toggle("Canvas Hue", s.canvas_hue_rotation_enabled, c.set_canvas_hue_rotation_enabled)
        wd["canvas_hue_rotation_speed"] = panel.add_slider("Canvas Speed", 0.1, 100, s.canvas_hue_rotation_speed, on_change=c.set_canvas_hue_rotation_speed)

        panel.add_section("DEPTH OF FIELD")
        wd["depth_of_field_enabled"] = panel.add_toggle("Enabled", s.depth_of_field_enabled, c.set_depth_of_field_enabled)
        wd["depth_of_field_focus"] = panel.add_slider("Focus", 0, 100, s.depth_of_field_focus, on_change=c.set_depth_of_field_focus)
        wd["depth_of_field_strength"] = panel.add_slider("Strength", 0, 100, s.depth_of_field_strength, on_change=c.set_depth_of_field_strength)

        panel.add_section("FX")
        wd["bloom_enabled"] = panel.add_toggle("Bloom", s.bloom_enabled, c.set_bloom_enabled)
        wd["bloom_intensity"] = panel.add_slider("Intensity", 0, 100, s.bloom_intensity, on_change=c.set_bloom_intensity)
        wd["bloom_threshold"] = panel.add_slider("Threshold", 0, 100, s.bloom_threshold, on_change=c.set_bloom_threshold)
        wd["bloom_radius"] = panel.add_slider("Radius", 0, 100, s.bloom_radius, on_change=c.set_bloom_radius)
        wd["noise_enabled"] = panel.add_toggle("Noise", s.noise_enabled, c.set_noise_enabled)
        wd["noise_type"] = panel.add_button_row(
            NOISE_TYPES, NOISE_TYPES.index(s.noise_type), lambda i, n: c.set_noise_type(n))
        wd["noise_strength"] = panel.add_slider("Strength", 0, 100, s.noise_strength, on_change=c.set_noise_strength)
        panel.add_spacer(16)

        self.panel = panel

    def _sync_widgets(self):
        """Pull widget values back from the state after external changes."""
        s = self.controller.get_state()
        for key, widget in self.widgets.items():
            if key == "palette":
                widget.buttons[0].label = get_palette(s.palette_id)["name"]
            elif key == "sprite_fill_gradient":
                widget.set_value(s.sprite_fill_mode == "gradient")
            elif key == "canvas_fill_gradient":
                widget.set_value(s.canvas_fill_mode == "gradient")
            elif hasattr(widget, "set_value"):
                widget.set_value(getattr(s, key))
            else:
                value = getattr(s, key)
                widget.select(widget.labels.index(value) if value in widget.labels else None)
        self._dirty_widgets = False

    # ── Callbacks ───────────────────────────────────────────────────────

    def _on_preset_select(self, idx, name):
        self.preset_key = PRESET_ORDER[idx]
        preset = get_preset(self.preset_key)
        if self.transition_kind == "instant":
            self.controller.apply_preset(self.preset_key)
        else:
            target = self.controller.get_state().evolve(**preset["settings"])
            self.controller.apply_state(target, self.transition_kind)

    def _on_transition_select(self, idx, name):
        self.transition_kind = name

    def _on_action(self, idx, name):
        c = self.controller
        actions = {
            "Randomize": c.randomize_all,
            "Colors": c.randomize_colors,
            "Motion": c.randomize_motion,
            "Shapes": c.randomize_sprite_shapes,
            "Reset": c.reset,
        }
        actions[name]()

    # ── Drawing ─────────────────────────────────────────────────────────

    def _draw_hud(self, screen):
        if not self.show_hud:
            return
        s = self.controller.get_state()
        prepared = self.controller.prepared
        line = (f"{s.seed}  |  {get_palette(s.palette_id)['name']}  |  {s.movement_mode}  |  "
                f"Tiles: {prepared.tile_count()}  |  "
                f"{self.surface.width}x{self.surface.height}  |  FPS: {self.controller.fps:.0f}")
        if not s.animation_enabled:
            line = "[PAUSED]  " + line

        bg_surface = pygame.Surface((self.canvas_w, 24), pygame.SRCALPHA)
        bg_surface.fill((0, 0, 0, 140))
        screen.blit(bg_surface, (0, 0))
        screen.blit(self.hud_font.render(line, True, (210, 215, 225)), (10, 6))

    def _frame_surface(self):
        rgb = self.surface.to_uint8()
        return pygame.surfarray.make_surface(rgb.swapaxes(0, 1))

    def _save_screenshot(self):
        screenshots_dir = os.path.join(
            os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__)))),
            "screenshots"
        )
        os.makedirs(screenshots_dir, exist_ok=True)
        seed = self.controller.get_state().seed
        timestamp = time.strftime("%Y%m%d_%H%M%S")
        path = os.path.join(screenshots_dir, f"sprites_{seed}_{timestamp}.png")
        self.surface.save(path)
        self.surface.save(os.path.join(screenshots_dir, "latest.png"))
        print(f"Screenshot saved: {path}")

    # ── Main loop ───────────────────────────────────────────────────────

    def run(self):
        """Main viewer loop."""
        pygame.init()
        screen = pygame.display.set_mode((self.total_w, self.canvas_h), pygame.RESIZABLE)
        pygame.display.set_caption("Sprite Generator")
        clock = pygame.time.Clock()

        self.hud_font = pygame.font.SysFont("menlo", 13)
        self.panel_font = pygame.font.SysFont("menlo", 12)
        self._build_panel()

        last_time = time.perf_counter()
        try:
            while self.running:
                now = time.perf_counter()
                dt = min(now - last_time, 0.1)
                last_time = now

                for event in pygame.event.get():
                    if event.type == pygame.QUIT:
                        self.running = False
                    elif event.type == pygame.KEYDOWN:
                        self._handle_keydown(event)
                    elif self.panel_visible and self.panel:
                        self.panel.handle_event(event)

                if self._dirty_widgets and self.panel:
                    self._sync_widgets()

                self.controller.tick(dt)

                screen = pygame.display.get_surface()
                screen.fill(THEME["bg"])
                scaled = pygame.transform.smoothscale(self._frame_surface(),
                                                      (self.canvas_w, self.canvas_h))
                screen.blit(scaled, (0, 0))
                self._draw_hud(screen)

                if self.panel_visible and self.panel:
                    self.panel.x = self.canvas_w
                    self.panel.height = self.canvas_h
                    self.panel.draw(screen, self.panel_font)

                pygame.display.flip()
                clock.tick(60)
        finally:
            self.controller.destroy()
            pygame.quit()

    def _handle_keydown(self, event):
        key = event.key
        c = self.controller

        if key in (pygame.K_q, pygame.K_ESCAPE):
            self.running = False
        elif key == pygame.K_SPACE:
            c.set_animation_enabled(not c.get_state().animation_enabled)
        elif key == pygame.K_r:
            c.randomize_all()
        elif key == pygame.K_c:
            c.randomize_colors()
        elif key == pygame.K_p:
            c.use_palette(next_palette_id(c.get_state().palette_id))
        elif key == pygame.K_b:
            c.reassign_auto_blend_modes()
        elif key == pygame.K_g:
            c.randomize_sprite_shapes()
        elif key == pygame.K_h:
            self.show_hud = not self.show_hud
        elif key == pygame.K_TAB:
            self.panel_visible = not self.panel_visible
            self._resize_window()
        elif key == pygame.K_s:
            self._save_screenshot()
        elif pygame.K_1 <= key <= pygame.K_9:
            idx = key - pygame.K_1
            if idx < len(PRESET_ORDER):
                self._on_preset_select(idx, PRESET_ORDER[idx])
                if self.preset_buttons:
                    self.preset_buttons.select(idx)
