# eeg_spectroviewer/core/palettes.py
from __future__ import annotations
import numpy as np

# ordered RGB control points, interpolated piecewise-linearly
COLOR_MAPS: dict[str, tuple[tuple[int, int, int], ...]] = {
    "viridis": (
        (68, 1, 84), (72, 40, 120), (62, 83, 160), (49, 104, 142), (38, 130, 142),
        (31, 158, 137), (53, 183, 121), (109, 205, 89), (180, 222, 44), (253, 231, 37),
    ),
    "jet": ((0, 0, 131), (0, 60, 170), (5, 255, 255), (255, 255, 0), (250, 0, 0)),
    "hot": ((0, 0, 0), (230, 0, 0), (255, 210, 0), (255, 255, 255)),
    "grayscale": ((0, 0, 0), (255, 255, 255)),
}
DEFAULT_COLOR_MAP = "viridis"


def control_points(name: str) -> np.ndarray:
    try:
        return np.asarray(COLOR_MAPS[name], dtype=float)
    except KeyError:
        raise ValueError(f"unknown color map '{name}' (known: {', '.join(COLOR_MAPS)})") from None


def normalize(values: np.ndarray, vmin: float, vmax: float) -> np.ndarray:
    """Scale to [0, 1]; a flat range maps everything to 0."""
    values = np.asarray(values, dtype=float)
    span = vmax - vmin
    if not np.isfinite(span) or span <= 0:
        return np.zeros(values.shape, dtype=float)
    out = (values - vmin) / span
    out = np.nan_to_num(out, nan=0.0, posinf=1.0, neginf=0.0)
    return np.clip(out, 0.0, 1.0)


def interpolate(normalized: np.ndarray, name: str) -> np.ndarray:
    """
    Map normalised values (any shape) to uint8 RGB (shape + (3,)).

    Uses the two control points around ``v * (n - 1)``; the upper segment
    index is capped at n - 2 so v == 1 lands exactly on the last point.
    """
    pts = control_points(name)
    n = pts.shape[0]
    v = np.asarray(normalized, dtype=float)
    pos = v * (n - 1)
    index = np.minimum(np.floor(pos).astype(int), n - 2)
    index = np.maximum(index, 0)
    t = (pos - index)[..., None]
    rgb = pts[index] * (1.0 - t) + pts[index + 1] * t
    return np.round(rgb).astype(np.uint8)


def color_for(value: float, vmin: float, vmax: float, name: str = DEFAULT_COLOR_MAP) -> tuple[int, int, int]:
    r, g, b = interpolate(normalize(np.array([value]), vmin, vmax), name)[0]
    return int(r), int(g), int(b)
