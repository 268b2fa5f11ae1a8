"""
Render Surfaces

RenderSurface is the immediate-mode drawing interface the frame pass issues
calls against. RasterSurface implements it on a numpy float32 RGB buffer
(H, W, 3) in [0, 1] plus a coverage channel, so a frame can be handed to
pygame, saved through Pillow, or post-processed with scipy directly.

Sprite masks are resized and rotated with Pillow; outlines come from a
MinFilter erosion of the mask and blur from scipy.ndimage.
"""

import math

import numpy as np
from PIL import Image, ImageFilter
from scipy.ndimage import gaussian_filter

from .blending import composite
from .color import hex_to_rgb


def linear_gradient(height, width, colors, degrees):
    """Color field with evenly spaced stops along a direction.

    The gradient line runs through the centre at `degrees` (0 = left to
    right, 90 = top to bottom) and spans the half-diagonal each way, so
    every corner is covered.

    Returns:
        (height, width, 3) float32 array
    """
    stops = np.array([hex_to_rgb(c) for c in colors], dtype=np.float32)
    if len(stops) == 1:
        return np.broadcast_to(stops[0], (height, width, 3)).copy()

    theta = math.radians(degrees)
    dx, dy = math.cos(theta), math.sin(theta)
    half = math.hypot(width, height) / 2 or 1.0
    ys, xs = np.mgrid[0:height, 0:width].astype(np.float32)
    proj = (xs + 0.5 - width / 2) * dx + (ys + 0.5 - height / 2) * dy
    t = np.clip((proj / half + 1) * 0.5, 0, 1) * (len(stops) - 1)

    lo = np.floor(t).astype(np.int32)
    np.clip(lo, 0, len(stops) - 2, out=lo)
    frac = (t - lo)[..., None]
    return (stops[lo] * (1 - frac) + stops[lo + 1] * frac).astype(np.float32)


class RenderSurface:
    """Interface between the frame pass and whatever draws the pixels."""

    width = 0
    height = 0
    global_alpha = 1.0

    def clear(self, color=None):
        """Fill with a solid color, or clear to transparent when None."""
        raise NotImplementedError

    def fill_gradient(self, colors, degrees):
        raise NotImplementedError

    def draw_sprite(self, mask, x, y, size, rotation=0.0, color="#ffffff",
                    gradient=None, blend_mode="NONE", opacity=1.0,
                    outline_width=0, blur=0.0):
        raise NotImplementedError

    def get_pixels(self):
        raise NotImplementedError

    def put_pixels(self, pixels):
        raise NotImplementedError

    def release(self):
        raise NotImplementedError


class RasterSurface(RenderSurface):
    """numpy-backed surface.

    Args:
        width, height: Canvas size in pixels
    """

    def __init__(self, width, height):
        self.width = int(width)
        self.height = int(height)
        self.global_alpha = 1.0
        self.pixels = np.zeros((self.height, self.width, 3), dtype=np.float32)
        self.coverage = np.zeros((self.height, self.width), dtype=np.float32)
        self.released = False

    def _check(self):
        if self.released:
            raise RuntimeError("Surface has been released")

    def resize(self, width, height):
        self._check()
        self.width = int(width)
        self.height = int(height)
        self.pixels = np.zeros((self.height, self.width, 3), dtype=np.float32)
        self.coverage = np.zeros((self.height, self.width), dtype=np.float32)

    def clear(self, color=None):
        self._check()
        if color is None:
            self.pixels[:] = 0
            self.coverage[:] = 0
        else:
            self.pixels[:] = hex_to_rgb(color)
            self.coverage[:] = 1

    def fill_gradient(self, colors, degrees):
        self._check()
        self.pixels[:] = linear_gradient(self.height, self.width, colors, degrees)
        self.coverage[:] = 1

    def _prepare_mask(self, mask, size, rotation, outline_width, blur):
        side = max(1, int(round(size)))
        img = Image.fromarray(np.clip(mask * 255, 0, 255).astype(np.uint8), "L")
        img = img.resize((side, side), Image.BILINEAR)

        if outline_width > 0:
            # Stroke = mask minus its erosion; MinFilter needs an odd kernel and
            # replicates edges, so pad with zeros to erode shapes touching them
            radius = max(1, int(round(outline_width)))
            padded = Image.fromarray(np.pad(np.asarray(img), radius), "L")
            inner = np.asarray(padded.filter(ImageFilter.MinFilter(radius * 2 + 1)), dtype=np.int16)
            stroke = np.asarray(img, dtype=np.int16) - inner[radius:-radius, radius:-radius]
            img = Image.fromarray(np.clip(stroke, 0, 255).astype(np.uint8), "L")

        if rotation:
            # Canvas rotation is clockwise with y down; Pillow turns counter-clockwise
            img = img.rotate(-math.degrees(rotation), resample=Image.BILINEAR, expand=True)

        alpha = np.asarray(img, dtype=np.float32) / 255.0
        if blur > 0:
            pad = int(math.ceil(blur))
            alpha = np.pad(alpha, pad)
            alpha = gaussian_filter(alpha, sigma=blur / 2)
        return alpha

    def draw_sprite(self, mask, x, y, size, rotation=0.0, color="#ffffff",
                    gradient=None, blend_mode="NONE", opacity=1.0,
                    outline_width=0, blur=0.0):
        """Composite one tinted sprite centred at (x, y).

        Args:
            mask: (N, N) float32 alpha mask
            x, y: Centre in pixels
            size: Edge length in pixels before rotation
            rotation: Radians, clockwise
            color: Solid tint
            gradient: Optional (colors, degrees) fill replacing color
            blend_mode: One of BLEND_MODES
            opacity: 0-1, multiplied by global_alpha
            outline_width: Stroke width in pixels; 0 fills
            blur: Gaussian blur radius in pixels
        """
        self._check()
        alpha = self._prepare_mask(mask, size, rotation, outline_width, blur)
        h, w = alpha.shape
        left = int(round(x - w / 2))
        top = int(round(y - h / 2))

        x0, y0 = max(left, 0), max(top, 0)
        x1, y1 = min(left + w, self.width), min(top + h, self.height)
        if x0 >= x1 or y0 >= y1:
            return False

        a = alpha[y0 - top:y1 - top, x0 - left:x1 - left] * (opacity * self.global_alpha)
        if gradient is not None:
            stops, degrees = gradient
            field = linear_gradient(h, w, stops, degrees)
            src = field[y0 - top:y1 - top, x0 - left:x1 - left]
        else:
            src = np.array(hex_to_rgb(color), dtype=np.float32)

        composite(self.pixels[y0:y1, x0:x1], src, a, blend_mode)
        cov = self.coverage[y0:y1, x0:x1]
        cov += a * (1 - cov)
        return True

    def get_pixels(self):
        self._check()
        return self.pixels.copy()

    def put_pixels(self, pixels):
        self._check()
        np.clip(pixels, 0, 1, out=self.pixels)

    def to_uint8(self):
        self._check()
        return (np.clip(self.pixels, 0, 1) * 255).astype(np.uint8)

    def to_image(self, transparent=False):
        """Pillow image of the current frame (RGBA keeps coverage as alpha)."""
        rgb = self.to_uint8()
        if not transparent:
            return Image.fromarray(rgb, "RGB")
        a = (np.clip(self.coverage, 0, 1) * 255).astype(np.uint8)
        return Image.fromarray(np.dstack([rgb, a]), "RGBA")

    def save(self, path, transparent=False):
        self.to_image(transparent).save(path)

    def release(self):
        self.pixels = np.zeros((0, 0, 3), dtype=np.float32)
        self.coverage = np.zeros((0, 0), dtype=np.float32)
        self.released = True
