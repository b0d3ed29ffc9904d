# eeg_spectroviewer/core/metrics.py
from __future__ import annotations
import numpy as np

from .model import ParsedRecording
from .projector import FREQUENCY_BANDS, average_power, band_mask

BAND_NAMES: tuple[str, ...] = tuple(b for b in FREQUENCY_BANDS if b != "standard")


def band_powers(frequencies: np.ndarray, spectrum: np.ndarray) -> dict[str, float]:
    """Mean of an average-power spectrum inside each EEG band (NaN when the band is empty)."""
    out = {}
    for band in BAND_NAMES:
        mask = band_mask(frequencies, band)
        out[band] = float(spectrum[mask].mean()) if mask.any() else float("nan")
    return out


def channel_metrics(recording: ParsedRecording, channel: str) -> dict:
    meta = recording.metadata
    series = recording.channels[channel]
    row = {
        "patient_id": meta.patient_id,
        "record_id": meta.record_id,
        "channel": channel,
        "n_frames": recording.n_frames,
        "n_freqs": int(series.frequencies.size),
        "freq_min_Hz": float("nan"),
        "freq_max_Hz": float("nan"),
        "duration": round(float(meta.duration), 6),
        "sampling_rate": round(float(meta.sampling_rate), 6),
        "power_min": float("nan"),
        "power_max": float("nan"),
        "power_mean": float("nan"),
    }
    row.update({f"{b}_mean": float("nan") for b in BAND_NAMES})
    if series.is_empty or recording.n_frames == 0:
        return row

    pv = series.power_values
    spectrum = average_power(recording, channel, 0, recording.n_frames - 1)
    row.update({
        "freq_min_Hz": float(series.frequencies[0]),
        "freq_max_Hz": float(series.frequencies[-1]),
        "power_min": round(float(np.nanmin(pv)), 6),
        "power_max": round(float(np.nanmax(pv)), 6),
        "power_mean": round(float(np.nanmean(pv)), 6),
    })
    row.update({f"{b}_mean": round(v, 6) for b, v in band_powers(series.frequencies, spectrum).items()})
    return row
