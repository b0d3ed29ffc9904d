# eeg_spectroviewer/core/surface.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence
import math
import numpy as np
from PIL import Image, ImageColor, ImageDraw, ImageFont

RGB = tuple[int, int, int]

WHITE: RGB = (255, 255, 255)


class PixelSurface(Protocol):
    """Immediate-mode 2D drawing target."""
    width: int
    height: int

    def clear(self, color: RGB = WHITE) -> None: ...
    def set_pixel(self, x: int, y: int, color: RGB) -> None: ...
    def fill_rect(self, x: float, y: float, w: float, h: float, color: RGB) -> None: ...
    def draw_line(self, x0: float, y0: float, x1: float, y1: float, color: RGB,
                  dash: Sequence[int] | None = None) -> None: ...
    def draw_text(self, x: float, y: float, text: str, color: RGB, anchor: str = "la") -> None: ...


@dataclass(frozen=True)
class DrawnText:
    x: float
    y: float
    text: str
    color: RGB


def parse_color(value) -> RGB:
    """Any Pillow colour string ('#rrggbb', 'white', ...) or an (r, g, b) triple."""
    if isinstance(value, str):
        r, g, b = ImageColor.getrgb(value)[:3]
        return r, g, b
    r, g, b = value
    return int(r), int(g), int(b)


class ImageSurface:
    """Headless RGB bitmap backed by a Pillow image."""

    def __init__(self, width: int = 800, height: int = 400, background: RGB = WHITE):
        if width <= 0 or height <= 0:
            raise ValueError(f"surface size must be positive, got {width}x{height}")
        self.width = int(width)
        self.height = int(height)
        self.background = background
        self.image = Image.new("RGB", (self.width, self.height), background)
        self._draw = ImageDraw.Draw(self.image)
        self._font = ImageFont.load_default()
        self.texts: list[DrawnText] = []

    # ---- drawing ----
    def clear(self, color: RGB = WHITE) -> None:
        self._draw.rectangle((0, 0, self.width - 1, self.height - 1), fill=tuple(color))
        self.texts = []

    def set_pixel(self, x: int, y: int, color: RGB) -> None:
        if 0 <= x < self.width and 0 <= y < self.height:
            self.image.putpixel((int(x), int(y)), tuple(color))

    def fill_rect(self, x: float, y: float, w: float, h: float, color: RGB) -> None:
        if w <= 0 or h <= 0:
            return
        x0 = max(0, int(math.floor(x)))
        y0 = max(0, int(math.floor(y)))
        x1 = min(self.width, int(math.ceil(x + w)))
        y1 = min(self.height, int(math.ceil(y + h)))
        if x1 <= x0 or y1 <= y0:
            return
        # Pillow rectangles are inclusive of both corners
        self._draw.rectangle((x0, y0, x1 - 1, y1 - 1), fill=tuple(color))

    def draw_line(self, x0, y0, x1, y1, color, dash=None) -> None:
        if not dash:
            self._draw.line((x0, y0, x1, y1), fill=tuple(color), width=1)
            return
        on, off = int(dash[0]), int(dash[1] if len(dash) > 1 else dash[0])
        length = math.hypot(x1 - x0, y1 - y0)
        if length == 0:
            self.set_pixel(int(x0), int(y0), color)
            return
        ux, uy = (x1 - x0) / length, (y1 - y0) / length
        pos = 0.0
        while pos < length:
            end = min(pos + on, length)
            self._draw.line((x0 + ux * pos, y0 + uy * pos, x0 + ux * end, y0 + uy * end),
                            fill=tuple(color), width=1)
            pos = end + off

    def draw_text(self, x, y, text, color, anchor="la") -> None:
        """``anchor``: horizontal l/m/r then vertical t/m/b (canvas-style alignment)."""
        text = str(text)
        left, top, right, bottom = self._font.getbbox(text)
        tw, th = right - left, bottom - top
        h_align = anchor[0] if anchor else "l"
        v_align = anchor[1] if len(anchor) > 1 else "t"
        if h_align == "m":
            x -= tw / 2
        elif h_align == "r":
            x -= tw
        if v_align == "m":
            y -= th / 2
        elif v_align in ("b", "s", "d"):
            y -= th
        self._draw.text((x, y), text, fill=tuple(color), font=self._font)
        self.texts.append(DrawnText(float(x), float(y), text, tuple(color)))

    # ---- inspection / export ----
    def pixel(self, x: int, y: int) -> RGB:
        return tuple(self.image.getpixel((int(x), int(y))))

    def to_array(self) -> np.ndarray:
        return np.asarray(self.image, dtype=np.uint8).copy()

    def has_text(self, fragment: str) -> bool:
        return any(fragment in t.text for t in self.texts)

    def save(self, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        self.image.save(path, format="PNG")
        return path
