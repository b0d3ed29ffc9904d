# eeg_spectroviewer/core/normalize.py
from __future__ import annotations
from typing import Iterable
import numpy as np
import pandas as pd

TIME_COLUMN = "time"


def coerce_numeric_or_zero(cells) -> np.ndarray:
    """
    Lenient cell conversion used at the decoder/builder boundary.

    Anything that is not a number (None, NaN, free text, bytes) becomes 0.0;
    bad cell data never raises. Decimal commas are accepted like the CSV
    readers do.
    """
    if isinstance(cells, np.ndarray) and np.issubdtype(cells.dtype, np.number):
        out = cells.astype(float)
        return np.where(np.isnan(out), 0.0, out)
    if isinstance(cells, np.ndarray) and cells.dtype.kind in "mM":
        # timestamps / durations -> float milliseconds (epoch for timestamps), NaT -> 0
        unit = "datetime64[ms]" if cells.dtype.kind == "M" else "timedelta64[ms]"
        ms = cells.astype(unit)
        out = ms.astype("int64").astype(float)
        return np.where(np.isnat(ms), 0.0, out)
    s = pd.Series(list(cells) if not isinstance(cells, pd.Series) else cells, dtype="object")
    if s.empty:
        return np.zeros(0, dtype=float)
    vals = pd.to_numeric(s, errors="coerce")
    if vals.isna().any():
        # second chance for "1,5"-style decimals before falling back to zero
        retry = pd.to_numeric(s.astype(str).str.replace(",", ".", regex=False), errors="coerce")
        vals = vals.fillna(retry)
    return vals.astype(float).fillna(0.0).to_numpy()


def parse_float(text: str) -> float | None:
    try:
        f = float(text.strip())
    except (TypeError, ValueError):
        return None
    if np.isnan(f):
        return None
    return f


def classify_columns(names: Iterable[str], channels: Iterable[str]) -> dict[str, list[tuple[float, str]]]:
    """
    Single pass over the schema names: map each channel to its
    (frequency, column name) pairs, sorted ascending by frequency.

    Names that are the time column, carry an unknown prefix, or whose suffix
    is not a float are skipped. A repeated frequency keeps its first column.
    """
    channels = tuple(channels)
    index: dict[str, list[tuple[float, str]]] = {ch: [] for ch in channels}
    for name in names:
        if name == TIME_COLUMN:
            continue
        prefix, sep, suffix = str(name).rpartition("_")
        if not sep or prefix not in index:
            continue
        freq = parse_float(suffix)
        if freq is None:
            continue
        index[prefix].append((freq, name))

    for ch, pairs in index.items():
        pairs.sort(key=lambda p: p[0])   # stable
        seen: set[float] = set()
        unique = []
        for freq, name in pairs:
            if freq in seen:
                continue
            seen.add(freq)
            unique.append((freq, name))
        index[ch] = unique
    return index
