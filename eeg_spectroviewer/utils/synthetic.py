# eeg_spectroviewer/utils/synthetic.py
from __future__ import annotations
from typing import Sequence
import numpy as np

from ..core.builder import build
from ..core.model import KNOWN_CHANNELS, ColumnarTable, ParsedRecording

def synthetic_table(patient_id: str = "1", record_id: str = "EEG1000",
                    channels: Sequence[str] = KNOWN_CHANNELS,
                    n_times: int = 200, n_freqs: int = 50, dt: float = 0.05,
                    seed: int | None = 0) -> ColumnarTable:
    """
    Mock spectrogram in the on-disk column layout: a slow oscillation
    decaying with frequency, a 10 Hz burst at 3-4 s, a 30 Hz burst at
    7-8 s and a little noise. Channels differ by phase.
    """
    rng = np.random.default_rng(seed)
    times = np.arange(n_times, dtype=float) * dt
    freqs = np.arange(n_freqs, dtype=float)
    T, F = np.meshgrid(times, freqs, indexing="ij")   # [time, freq]

    columns: dict[str, np.ndarray] = {"time": times}
    for k, ch in enumerate(channels):
        value = np.sin(T * 2 * np.pi * 0.5 + k * np.pi / 4) * np.exp(-F / 20)
        value += np.where((T > 3) & (T < 4), 3 * np.exp(-((F - 10) ** 2) / 50), 0.0)
        value += np.where((T > 7) & (T < 8), 2 * np.exp(-((F - 30) ** 2) / 40), 0.0)
        value += (rng.random(value.shape) - 0.5) * 0.2
        for j, f in enumerate(freqs):
            columns[f"{ch}_{f:g}"] = value[:, j]

    metadata = {
        "patient_id": patient_id,
        "record_id": record_id,
        "sampling_rate": f"{1.0 / dt:g}",
        "duration": f"{times[-1] if n_times else 0.0:g}",
    }
    return ColumnarTable(names=tuple(columns), columns=columns, row_count=n_times, metadata=metadata)


def synthetic_recording(patient_id: str = "1", record_id: str = "EEG1000", **kwargs) -> ParsedRecording:
    kwargs.setdefault("channels", KNOWN_CHANNELS)
    table = synthetic_table(patient_id, record_id, **kwargs)
    return build(table, channels=kwargs["channels"])
