# eeg_spectroviewer/core/projector.py
from __future__ import annotations
from dataclasses import replace
import numpy as np

from .errors import InvalidChannel, RangeError
from .model import ChannelSeries, ParsedRecording, SpectrogramView, frozen_array

# name -> (low Hz inclusive, high Hz exclusive); None = open end
FREQUENCY_BANDS: dict[str, tuple[float | None, float | None]] = {
    "standard": (None, None),
    "delta": (0.5, 4.0),
    "theta": (4.0, 8.0),
    "alpha": (8.0, 13.0),
    "beta": (13.0, 30.0),
    "gamma": (30.0, None),
}

def _channel(recording: ParsedRecording, channel: str) -> ChannelSeries:
    try:
        return recording.channels[channel]
    except KeyError:
        raise InvalidChannel(channel, recording.channel_ids) from None


def project(recording: ParsedRecording, channel: str) -> SpectrogramView:
    """Transpose one channel's [time][frequency] matrix into [frequency][time]."""
    series = _channel(recording, channel)
    return SpectrogramView(
        times=recording.times,
        frequencies=series.frequencies,
        power_values=frozen_array(series.power_values.T, 2),
        metadata=recording.metadata,
        channel=channel,
    )


def _check_range(recording: ParsedRecording, start: int, end: int) -> None:
    n = recording.n_frames
    if start < 0 or end >= n or start > end:
        raise RangeError(f"time index range [{start}, {end}] outside 0..{n - 1}")


def average_power(recording: ParsedRecording, channel: str,
                  start_time_index: int, end_time_index: int) -> np.ndarray:
    """Mean power per frequency over t in [start, end], both inclusive."""
    series = _channel(recording, channel)
    _check_range(recording, start_time_index, end_time_index)
    block = series.power_values[start_time_index:end_time_index + 1, :]
    if block.shape[1] == 0:
        return np.zeros(0, dtype=float)
    return block.mean(axis=0)


def average_power_spectrum(recording: ParsedRecording,
                           start_time_index: int, end_time_index: int) -> dict[str, np.ndarray]:
    """average_power for every channel of the recording."""
    _check_range(recording, start_time_index, end_time_index)
    return {ch: average_power(recording, ch, start_time_index, end_time_index)
            for ch in recording.channel_ids}


def frame_at(recording: ParsedRecording, time_index: int) -> dict:
    """Timestamp and each channel's power row at one frame."""
    if time_index < 0 or time_index >= recording.n_frames:
        raise RangeError(f"time index {time_index} outside 0..{recording.n_frames - 1}")
    return {
        "time": float(recording.times[time_index]),
        "channels": {ch: s.power_values[time_index] for ch, s in recording.channels.items()},
    }


def band_mask(frequencies: np.ndarray, band: str) -> np.ndarray:
    try:
        lo, hi = FREQUENCY_BANDS[band]
    except KeyError:
        raise ValueError(f"unknown frequency band '{band}' (known: {', '.join(FREQUENCY_BANDS)})") from None
    freqs = np.asarray(frequencies, dtype=float)
    mask = np.ones(freqs.shape, dtype=bool)
    if lo is not None:
        mask &= freqs >= lo
    if hi is not None:
        mask &= freqs < hi
    return mask


def select_band(view: SpectrogramView, band: str) -> SpectrogramView:
    """Restrict a view to the frequency rows of one EEG band."""
    mask = band_mask(view.frequencies, band)
    if band == "standard" or mask.all():
        return view
    power = np.asarray(view.power_values)
    return replace(
        view,
        frequencies=frozen_array(np.asarray(view.frequencies)[mask], 1),
        power_values=frozen_array(power[mask, :], 2),
    )
