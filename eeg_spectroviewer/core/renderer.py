# eeg_spectroviewer/core/renderer.py
from __future__ import annotations
from dataclasses import dataclass, replace
import logging, math, re
import numpy as np

from .model import CombinedSpectrogramView, SpectrogramView
from .palettes import COLOR_MAPS, DEFAULT_COLOR_MAP, interpolate, normalize
from .projector import FREQUENCY_BANDS, band_mask
from .surface import WHITE, PixelSurface, parse_color

AXIS_COLOR = parse_color("#666666")
ERROR_COLOR = parse_color("#ff0000")
DIVIDER_COLOR = parse_color("#ffffff")
DIVIDER_DASH = (4, 4)

NO_DATA_MESSAGE = "No data available"
ERROR_MESSAGE = "Error rendering spectrogram"

ZOOM_STEP = 0.2
ZOOM_MIN = 0.5
ZOOM_MAX = 3.0

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderOptions:
    color_map: str = DEFAULT_COLOR_MAP
    time_range_percent: tuple[float, float] = (0.0, 100.0)
    zoom_level: float = 1.0
    band: str = "standard"
    show_axes: bool = True

    def __post_init__(self):
        if self.color_map not in COLOR_MAPS:
            raise ValueError(f"unknown color map '{self.color_map}'")
        if self.band not in FREQUENCY_BANDS:
            raise ValueError(f"unknown frequency band '{self.band}'")
        lo, hi = (float(v) for v in self.time_range_percent)
        if not (0.0 <= lo <= hi <= 100.0):
            raise ValueError(f"time range must satisfy 0 <= lo <= hi <= 100, got ({lo}, {hi})")
        object.__setattr__(self, "time_range_percent", (lo, hi))
        zoom = float(self.zoom_level)
        if not math.isfinite(zoom) or zoom <= 0:
            raise ValueError(f"zoom level must be > 0, got {self.zoom_level}")
        object.__setattr__(self, "zoom_level", zoom)

    @classmethod
    def from_config(cls, cfg: dict | None) -> "RenderOptions":
        r = (cfg or {}).get("render") or {}
        tr = r.get("time_range_percent", (0.0, 100.0))
        return cls(
            color_map=str(r.get("color_map", DEFAULT_COLOR_MAP)),
            time_range_percent=(float(tr[0]), float(tr[1])),
            zoom_level=float(r.get("zoom_level", 1.0)),
            band=str(r.get("band", "standard")),
            show_axes=bool(r.get("show_axes", True)),
        )

    def zoomed_in(self) -> "RenderOptions":
        return replace(self, zoom_level=min(round(self.zoom_level + ZOOM_STEP, 6), ZOOM_MAX))

    def zoomed_out(self) -> "RenderOptions":
        return replace(self, zoom_level=max(round(self.zoom_level - ZOOM_STEP, 6), ZOOM_MIN))


# ---------- messages ----------
def draw_message(surface: PixelSurface, message: str, color=AXIS_COLOR, detail: str | None = None) -> None:
    """Clear the surface and centre a message on it."""
    surface.clear(WHITE)
    cx, cy = surface.width / 2, surface.height / 2
    surface.draw_text(cx, cy - 10, message, color, anchor="mm")
    if detail:
        surface.draw_text(cx, cy + 10, detail, color, anchor="mm")


def draw_no_data(surface: PixelSurface, detail: str | None = None) -> None:
    draw_message(surface, NO_DATA_MESSAGE, AXIS_COLOR, detail)


def draw_error(surface: PixelSurface) -> None:
    draw_message(surface, ERROR_MESSAGE, ERROR_COLOR, "Check log for details")


# ---------- helpers ----------
def _validated(view: SpectrogramView) -> tuple[np.ndarray, np.ndarray, np.ndarray]:
    if view.times is None or view.frequencies is None or view.power_values is None:
        raise ValueError("spectrogram view is missing an axis or its power values")
    times = np.asarray(view.times, dtype=float)
    freqs = np.asarray(view.frequencies, dtype=float)
    if times.ndim != 1 or freqs.ndim != 1:
        raise ValueError("time and frequency axes must be one-dimensional")
    rows = list(view.power_values)
    if len(rows) != freqs.size:
        raise ValueError(f"{len(rows)} power rows for {freqs.size} frequencies")
    widths = {len(r) for r in rows}
    if widths and widths != {times.size}:
        raise ValueError(f"ragged or mis-sized power rows (widths {sorted(widths)}, {times.size} times)")
    power = np.asarray(rows, dtype=float).reshape(freqs.size, times.size)
    return times, freqs, power


def visible_slice(n: int, time_range_percent: tuple[float, float]) -> tuple[int, int]:
    """[floor(n*lo/100), ceil(n*hi/100)) clamped to 0..n."""
    lo, hi = time_range_percent
    start = int(math.floor(n * lo / 100.0))
    end = int(math.ceil(n * hi / 100.0))
    return max(0, min(start, n)), max(0, min(end, n))


def power_range(power: np.ndarray) -> tuple[float, float]:
    finite = power[np.isfinite(power)]
    if finite.size == 0:
        return 0.0, 0.0
    return float(finite.min()), float(finite.max())


def export_filename(view: SpectrogramView, channel: str | None = None) -> str:
    def clean(s: str) -> str:
        return re.sub(r"[^A-Za-z0-9._-]+", "_", s).strip("_")
    patient = clean(view.metadata.patient_id) or "patient"
    record = clean(view.metadata.record_id) or "record"
    ch = clean(channel or view.channel) or "channel"
    return f"spectrogram_{patient}_{record}_{ch}.png"


# ---------- drawing passes ----------
def _draw_cells(surface, colors: np.ndarray, zoom: float) -> tuple[float, float]:
    n_freq, n_time = colors.shape[:2]
    width, height = surface.width, surface.height
    pw = width / (n_time or 1)
    ph = height / (n_freq or 1)
    cw, ch = pw * zoom, ph * zoom
    for i in range(n_freq):
        y = height - (i + 1) * ph   # row 0 (lowest frequency) at the bottom
        row = colors[i]
        for j in range(n_time):
            r, g, b = row[j]
            surface.fill_rect(j * pw, y, cw, ch, (int(r), int(g), int(b)))
    return pw, ph


def _draw_axes(surface, times: np.ndarray, freqs: np.ndarray, pw: float, ph: float) -> None:
    width, height = surface.width, surface.height
    surface.draw_line(0, height - 1, width, height - 1, AXIS_COLOR)
    surface.draw_line(0, 0, 0, height, AXIS_COLOR)

    time_step = max(1, times.size // 5)
    for i in range(0, times.size, time_step):
        surface.draw_text(i * pw, height - 5, f"{times[i]:.1f}s", AXIS_COLOR, anchor="mb")

    freq_step = max(1, freqs.size // 5)
    for i in range(0, freqs.size, freq_step):
        surface.draw_text(25, height - i * ph, f"{freqs[i]:.0f}Hz", AXIS_COLOR, anchor="rb")


def _draw_segment_dividers(surface, view: CombinedSpectrogramView, times: np.ndarray, pw: float) -> int:
    if times.size == 0:
        return 0
    t0, t1 = float(times[0]), float(times[-1])
    drawn = 0
    for boundary in np.asarray(view.segment_boundaries, dtype=float):
        if not (t0 <= boundary <= t1):
            continue
        j = int(np.searchsorted(times, boundary, side="left"))
        x = j * pw
        surface.draw_line(x, 0, x, surface.height, DIVIDER_COLOR, dash=DIVIDER_DASH)
        drawn += 1
    surface.draw_text(surface.width - 5, 5, f"Combined view: {view.segment_count} segments",
                      DIVIDER_COLOR, anchor="rt")
    return drawn


def _render(view: SpectrogramView, surface: PixelSurface, options: RenderOptions) -> None:
    surface.clear(WHITE)
    times, freqs, power = _validated(view)

    if options.band != "standard":
        mask = band_mask(freqs, options.band)
        freqs, power = freqs[mask], power[mask, :]

    start, end = visible_slice(times.size, options.time_range_percent)
    t_slice = times[start:end]
    p_slice = power[:, start:end]
    if freqs.size == 0 or t_slice.size == 0:
        draw_no_data(surface, f"channel {view.channel}" if view.channel else None)
        return

    # colour scale is local to the visible window
    vmin, vmax = power_range(p_slice)
    colors = interpolate(normalize(p_slice, vmin, vmax), options.color_map)
    pw, ph = _draw_cells(surface, colors, options.zoom_level)

    if options.show_axes:
        _draw_axes(surface, t_slice, freqs, pw, ph)
    if isinstance(view, CombinedSpectrogramView):
        _draw_segment_dividers(surface, view, t_slice, pw)


def render(view: SpectrogramView | None, surface: PixelSurface, options: RenderOptions | None = None) -> None:
    """
    Full redraw of ``view`` onto ``surface``.

    Never raises: a missing or empty view draws a "no data" indicator, and
    any failure while rasterising is logged and replaced by an on-surface
    error message, so one bad view cannot break others.
    """
    options = options or RenderOptions()
    if view is None:
        draw_no_data(surface)
        return
    try:
        _render(view, surface, options)
    except Exception:
        _LOG.exception("failed to render spectrogram (patient=%s record=%s channel=%s)",
                       getattr(getattr(view, "metadata", None), "patient_id", "?"),
                       getattr(getattr(view, "metadata", None), "record_id", "?"),
                       getattr(view, "channel", "?"))
        draw_error(surface)
