# eeg_spectroviewer/core/plotting.py
from __future__ import annotations
from pathlib import Path
import matplotlib.pyplot as plt
import numpy as np

from .model import ParsedRecording
from .projector import average_power_spectrum

def _sanitize(name: str) -> str:
    import re
    s = re.sub(r"[^A-Za-z0-9._-]+", "_", name).strip("_")
    return s[:120] if len(s) > 120 else s

def _label(recording: ParsedRecording) -> str:
    meta = recording.metadata
    parts = [p for p in (meta.patient_id, meta.record_id) if p]
    return " / ".join(parts) or "recording"

def save_average_spectrum_plot(recording: ParsedRecording, out_dir: Path,
                               start_time_index: int = 0, end_time_index: int | None = None,
                               log_scale: bool = False) -> Path | None:
    """
    Average power vs frequency, one line per channel, over the inclusive
    frame range (whole recording by default). Empty channels are skipped.
    """
    if recording.n_frames == 0:
        print(f"[INFO] {_label(recording)}: no frames; skipping average spectrum plot.")
        return None
    end = recording.n_frames - 1 if end_time_index is None else end_time_index
    spectra = average_power_spectrum(recording, start_time_index, end)

    prepared = [(ch, recording.channels[ch].frequencies, spectrum)
                for ch, spectrum in spectra.items() if spectrum.size > 0]
    if not prepared:
        print(f"[INFO] {_label(recording)}: all channels empty; skipping average spectrum plot.")
        return None

    out_dir.mkdir(parents=True, exist_ok=True)
    plt.figure(figsize=(9, 5))
    for ch, freqs, spectrum in prepared:
        plt.plot(np.asarray(freqs), np.asarray(spectrum), label=ch)
    if log_scale:
        plt.yscale("log")
    plt.xlabel("Frequency [Hz]")
    plt.ylabel("Average power")
    t0, t1 = recording.times[start_time_index], recording.times[end]
    plt.title(f"{_label(recording)}: average power spectrum ({t0:.1f}-{t1:.1f} s)")
    plt.grid(True, alpha=0.3)
    plt.legend(fontsize=8, ncol=len(prepared), loc="upper right", frameon=False)
    plt.tight_layout()

    base = _sanitize(_label(recording)) or "recording"
    out_path = out_dir / f"{base}_average_spectrum.png"
    plt.savefig(out_path, dpi=160)
    plt.close()
    print(f"[OK] {_label(recording)}: {len(prepared)} channel spectra → {out_path}")
    return out_path
