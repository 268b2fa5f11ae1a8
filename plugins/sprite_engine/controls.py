"""
Panel Widgets for the Sprite Viewer

Dark-themed sliders, toggles and button rows drawn directly with pygame.
The panel scrolls with the mouse wheel since the generator has far more
controls than fit in one column.
"""

import pygame


THEME = {
    "bg": (14, 14, 20),
    "panel": (24, 24, 32),
    "track": (52, 54, 66),
    "track_fill": (45, 212, 191),
    "handle": (205, 210, 225),
    "handle_active": (255, 255, 255),
    "text": (180, 185, 195),
    "text_bright": (232, 236, 244),
    "text_dim": (104, 108, 120),
    "button": (40, 42, 54),
    "button_hover": (56, 58, 74),
    "button_active": (30, 140, 128),
    "toggle_off": (60, 62, 76),
    "divider": (42, 42, 56),
}

SCROLL_STEP = 40


class Slider:
    """Horizontal slider with label and value display.

    on_change receives the raw value; the controller clamps it.
    """

    height = 36

    def __init__(self, x, y, width, label, min_val, max_val, value,
                 fmt=".0f", step=None, on_change=None):
        self.x = x
        self.y = y
        self.width = width
        self.label = label
        self.min_val = min_val
        self.max_val = max_val
        self.value = value
        self.fmt = fmt
        self.step = step
        self.on_change = on_change
        self.dragging = False

        self.track_x = x + 8
        self.track_w = width - 16

    @property
    def track_y(self):
        return self.y + 22

    def _val_to_x(self, val):
        frac = (val - self.min_val) / (self.max_val - self.min_val)
        return self.track_x + frac * self.track_w

    def _x_to_val(self, px):
        frac = max(0.0, min(1.0, (px - self.track_x) / self.track_w))
        val = self.min_val + frac * (self.max_val - self.min_val)
        if self.step:
            val = round(val / self.step) * self.step
        return val

    def _drag_to(self, px):
        value = self._x_to_val(px)
        if value != self.value:
            self.value = value
            if self.on_change:
                self.on_change(value)

    def handle_event(self, event):
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            mx, my = event.pos
            if (self.track_x - 4 <= mx <= self.track_x + self.track_w + 4
                    and abs(my - self.track_y) <= 12):
                self.dragging = True
                self._drag_to(mx)
                return True
        elif event.type == pygame.MOUSEBUTTONUP and event.button == 1:
            self.dragging = False
        elif event.type == pygame.MOUSEMOTION and self.dragging:
            self._drag_to(event.pos[0])
            return True
        return False

    def set_value(self, val):
        self.value = max(self.min_val, min(self.max_val, val))

    def draw(self, surface, font):
        surface.blit(font.render(self.label, True, THEME["text"]), (self.x + 8, self.y + 2))
        val_surf = font.render(f"{self.value:{self.fmt}}", True, THEME["text_bright"])
        surface.blit(val_surf, (self.x + self.width - val_surf.get_width() - 8, self.y + 2))

        hx = self._val_to_x(self.value)
        pygame.draw.rect(surface, THEME["track"],
                         pygame.Rect(self.track_x, self.track_y - 2, self.track_w, 4),
                         border_radius=2)
        pygame.draw.rect(surface, THEME["track_fill"],
                         pygame.Rect(self.track_x, self.track_y - 2, hx - self.track_x, 4),
                         border_radius=2)
        color = THEME["handle_active"] if self.dragging else THEME["handle"]
        pygame.draw.circle(surface, color, (int(hx), self.track_y), 9 if self.dragging else 7)


class Toggle:
    """Labelled on/off switch."""

    height = 26

    def __init__(self, x, y, width, label, value=False, on_change=None):
        self.x = x
        self.y = y
        self.width = width
        self.label = label
        self.value = value
        self.on_change = on_change

    @property
    def rect(self):
        return pygame.Rect(self.x, self.y, self.width, self.height)

    def handle_event(self, event):
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            if self.rect.collidepoint(event.pos):
                self.value = not self.value
                if self.on_change:
                    self.on_change(self.value)
                return True
        return False

    def set_value(self, val):
        self.value = bool(val)

    def draw(self, surface, font):
        surface.blit(font.render(self.label, True, THEME["text"]), (self.x + 8, self.y + 5))
        sw, sh = 30, 14
        sx = self.x + self.width - sw - 8
        sy = self.y + (self.height - sh) // 2
        fill = THEME["track_fill"] if self.value else THEME["toggle_off"]
        pygame.draw.rect(surface, fill, pygame.Rect(sx, sy, sw, sh), border_radius=7)
        knob_x = sx + sw - 7 if self.value else sx + 7
        pygame.draw.circle(surface, THEME["handle"], (knob_x, sy + 7), 5)


class Button:
    """Clickable button with label."""

    def __init__(self, x, y, width, height, label, on_click=None, active=False):
        self.rect = pygame.Rect(x, y, width, height)
        self.label = label
        self.on_click = on_click
        self.active = active
        self.hovered = False

    def handle_event(self, event):
        if event.type == pygame.MOUSEBUTTONDOWN and event.button == 1:
            if self.rect.collidepoint(event.pos):
                if self.on_click:
                    self.on_click()
                return True
        elif event.type == pygame.MOUSEMOTION:
            self.hovered = self.rect.collidepoint(event.pos)
        return False

    def draw(self, surface, font):
        if self.active:
            color = THEME["button_active"]
        elif self.hovered:
            color = THEME["button_hover"]
        else:
            color = THEME["button"]
        pygame.draw.rect(surface, color, self.rect, border_radius=4)

        label_surf = font.render(self.label, True, THEME["text_bright"])
        lx = self.rect.x + (self.rect.width - label_surf.get_width()) // 2
        ly = self.rect.y + (self.rect.height - label_surf.get_height()) // 2
        surface.blit(label_surf, (lx, ly))


class ButtonRow:
    """Wrapping row of buttons; with selectable=True it acts like radio buttons."""

    def __init__(self, x, y, width, labels, selected=0, on_select=None,
                 btn_height=24, selectable=True):
        self.labels = labels
        self.selected = selected if selectable else None
        self.on_select = on_select
        self.selectable = selectable

        self.buttons = []
        bx, by = x, y
        for label in labels:
            bw = max(len(label) * 7 + 14, 44)
            if bx + bw > x + width and bx > x:
                bx = x
                by += btn_height + 4
            self.buttons.append(Button(bx, by, bw, btn_height, label))
            bx += bw + 4
        self.total_height = by - y + btn_height
        self._update_active()

    def _update_active(self):
        for i, btn in enumerate(self.buttons):
            btn.active = (i == self.selected)

    def select(self, index):
        if self.selectable:
            self.selected = index
            self._update_active()

    def handle_event(self, event):
        for i, btn in enumerate(self.buttons):
            if btn.handle_event(event):
                self.select(i)
                if self.on_select:
                    self.on_select(i, self.labels[i])
                return True
        return False

    def draw(self, surface, font):
        for btn in self.buttons:
            btn.draw(surface, font)


class SectionHeader:
    """Section divider with title."""

    height = 24

    def __init__(self, x, y, width, title):
        self.x = x
        self.y = y
        self.width = width
        self.title = title

    def draw(self, surface, font):
        pygame.draw.line(surface, THEME["divider"],
                         (self.x + 8, self.y + 8), (self.x + self.width - 8, self.y + 8))
        surface.blit(font.render(self.title, True, THEME["text_dim"]), (self.x + 8, self.y + 12))


class ControlPanel:
    """Scrolling side panel holding every widget.

    Widgets are laid out top to bottom on a content surface taller than the
    panel; scroll_offset selects which slice is shown.
    """

    def __init__(self, x, y, width, height):
        self.x = x
        self.y = y
        self.width = width
        self.height = height
        self.widgets = []
        self.scroll_offset = 0
        self._cursor_y = 8

    @property
    def content_height(self):
        return self._cursor_y + 8

    def add_section(self, title):
        self.widgets.append(SectionHeader(0, self._cursor_y, self.width, title))
        self._cursor_y += SectionHeader.height + 4

    def add_slider(self, label, min_val, max_val, value, fmt=".0f", step=None, on_change=None):
        slider = Slider(0, self._cursor_y, self.width, label,
                        min_val, max_val, value, fmt, step, on_change)
        self.widgets.append(slider)
        self._cursor_y += Slider.height + 4
        return slider

    def add_toggle(self, label, value=False, on_change=None):
        toggle = Toggle(0, self._cursor_y, self.width, label, value, on_change)
        self.widgets.append(toggle)
        self._cursor_y += Toggle.height + 2
        return toggle

    def add_button_row(self, labels, selected=0, on_select=None, selectable=True):
        row = ButtonRow(8, self._cursor_y, self.width - 16, labels,
                        selected, on_select, selectable=selectable)
        self.widgets.append(row)
        self._cursor_y += row.total_height + 8
        return row

    def add_spacer(self, height=8):
        self._cursor_y += height

    def scroll(self, dy):
        limit = max(0, self.content_height - self.height)
        self.scroll_offset = max(0, min(limit, self.scroll_offset - dy * SCROLL_STEP))

    def handle_event(self, event):
        """Route an event to widgets in content coordinates."""
        if event.type == pygame.MOUSEWHEEL:
            mx, _ = pygame.mouse.get_pos()
            if mx >= self.x:
                self.scroll(event.y)
                return True
            return False

        if hasattr(event, "pos"):
            local = (event.pos[0] - self.x, event.pos[1] - self.y)
            if not (0 <= local[0] <= self.width and 0 <= local[1] <= self.height):
                # Release drags that end outside the panel
                if event.type == pygame.MOUSEBUTTONUP:
                    for widget in self.widgets:
                        if isinstance(widget, Slider):
                            widget.dragging = False
                return False
            attrs = {k: v for k, v in event.__dict__.items() if k != "pos"}
            attrs["pos"] = (local[0], local[1] + self.scroll_offset)
            event = pygame.event.Event(event.type, attrs)

        for widget in self.widgets:
            if hasattr(widget, "handle_event") and widget.handle_event(event):
                return True
        return False

    def draw(self, target_surface, font):
        content = pygame.Surface((self.width, self.content_height))
        content.fill(THEME["panel"])
        for widget in self.widgets:
            widget.draw(content, font)
        target_surface.blit(content, (self.x, self.y),
                            area=pygame.Rect(0, self.scroll_offset, self.width, self.height))
        pygame.draw.line(target_surface, THEME["divider"],
                         (self.x, self.y), (self.x, self.y + self.height))
