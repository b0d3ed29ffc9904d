# eeg_spectroviewer/core/reports.py
from __future__ import annotations
from pathlib import Path
from typing import Literal, Sequence
import numpy as np
import pandas as pd
from scipy.io import savemat
from .metrics import BAND_NAMES, channel_metrics
from .model import ParsedRecording

ReportFormat = Literal["csv", "mat", "both"]

STRING_COLUMNS = ("patient_id", "record_id", "channel")
NUMERIC_COLUMNS = (
    "n_frames", "n_freqs", "freq_min_Hz", "freq_max_Hz", "duration", "sampling_rate",
    "power_min", "power_max", "power_mean",
) + tuple(f"{b}_mean" for b in BAND_NAMES)

def build_dataframe(recordings: Sequence[ParsedRecording]) -> pd.DataFrame:
    """One row per (recording, channel), channels in recording order."""
    rows = [channel_metrics(rec, ch) for rec in recordings for ch in rec.channel_ids]
    return pd.DataFrame(rows, columns=list(STRING_COLUMNS + NUMERIC_COLUMNS))

def _write_csv(df_out: pd.DataFrame, out_csv: Path, title: str) -> None:
    out_csv.parent.mkdir(parents=True, exist_ok=True)
    df_out.to_csv(out_csv, index=False, encoding="utf-8")
    print(f"[OK] wrote report: {title} → {out_csv}")

def _to_mat_cellstr(seq: list[str]) -> np.ndarray:
    """Make a MATLAB column cell array from a list of strings."""
    seq2 = [("" if s is None else str(s)) for s in seq]
    arr = np.empty((len(seq2), 1), dtype=object)
    arr[:, 0] = seq2
    return arr

def _write_mat(df_out: pd.DataFrame, out_mat: Path, varname: str, title: str) -> None:
    """
    Save a MATLAB struct with fields matching the CSV columns.
    Strings become cell arrays (Nx1), numerics become double (Nx1).
    """
    out_mat.parent.mkdir(parents=True, exist_ok=True)
    mat_struct = {name: _to_mat_cellstr(df_out[name].astype(str).tolist()) for name in STRING_COLUMNS}
    for name in NUMERIC_COLUMNS:
        mat_struct[name] = df_out[name].to_numpy(dtype=float).reshape(-1, 1)
    savemat(out_mat, {varname: mat_struct})
    print(f"[OK] wrote report: {title} → {out_mat}")

def write_report(recordings: Sequence[ParsedRecording],
                 out_base: Path,
                 title: str,
                 fmt: ReportFormat = "csv",
                 mat_variable: str = "report") -> pd.DataFrame | None:
    """
    Write the channel summary in the requested format.
    - out_base is a *base path without extension* (e.g., .../report)
    - fmt: "csv" | "mat" | "both"
    """
    if not recordings:
        return None
    if fmt not in ("csv", "mat", "both"):
        raise ValueError(f"unknown report format '{fmt}'")
    df_out = build_dataframe(recordings)
    if fmt in ("csv", "both"):
        _write_csv(df_out, out_base.with_suffix(".csv"), title)
    if fmt in ("mat", "both"):
        _write_mat(df_out, out_base.with_suffix(".mat"), mat_variable, title)
    return df_out
