# eeg_spectroviewer/core/builder.py
from __future__ import annotations
import logging
from typing import Iterable
import numpy as np

from .model import (KNOWN_CHANNELS, ChannelSeries, ColumnarTable, ParsedRecording,
                    RecordingMetadata, frozen_array)
from .normalize import TIME_COLUMN, classify_columns, coerce_numeric_or_zero, parse_float

DEFAULT_DURATION_S = 10.0

_LOG = logging.getLogger(__name__)

def _metadata_float(table: ColumnarTable, key: str) -> float | None:
    raw = table.metadata_value(key)
    if raw is None:
        return None
    return parse_float(str(raw))


def _times_from_table(table: ColumnarTable) -> np.ndarray:
    n = table.row_count
    if table.has_column(TIME_COLUMN):
        return coerce_numeric_or_zero(table.column(TIME_COLUMN))
    duration = _metadata_float(table, "duration")
    if duration is None:
        duration = DEFAULT_DURATION_S
    _LOG.info("no '%s' column; synthesising %d samples over 0..%g", TIME_COLUMN, n, duration)
    return np.linspace(0.0, duration, num=n, dtype=float)


def _sampling_rate(times: np.ndarray, table: ColumnarTable) -> float:
    # consecutive samples are assumed to be milliseconds apart
    if times.size > 1:
        step = float(times[1] - times[0])
        if step != 0.0:
            return 1000.0 / step
        _LOG.warning("zero time step between first two frames; using metadata sampling_rate")
    rate = _metadata_float(table, "sampling_rate")
    return rate if rate is not None else 0.0


def build(table: ColumnarTable, channels: Iterable[str] = KNOWN_CHANNELS) -> ParsedRecording:
    """
    Reorganise decoded columns into {channel -> ChannelSeries} plus metadata.

    Columns are classified once up front; cells are only read afterwards,
    column by column, in ascending-frequency order.
    """
    times = _times_from_table(table)
    n = times.shape[0]

    index = classify_columns(table.names, channels)
    series: dict[str, ChannelSeries] = {}
    for ch, pairs in index.items():
        if not pairs:
            series[ch] = ChannelSeries.empty(n)
            continue
        power = np.zeros((n, len(pairs)), dtype=float)
        for freq_idx, (_, name) in enumerate(pairs):
            power[:, freq_idx] = coerce_numeric_or_zero(table.column(name))
        series[ch] = ChannelSeries(
            frequencies=frozen_array([f for f, _ in pairs], 1),
            power_values=frozen_array(power, 2),
        )

    metadata = RecordingMetadata(
        patient_id=str(table.metadata_value("patient_id", "") or ""),
        record_id=str(table.metadata_value("record_id", "") or ""),
        sampling_rate=_sampling_rate(times, table),
        duration=float(times[-1] - times[0]) if n else 0.0,
        total_frames=int(n),
    )
    empty = [ch for ch, s in series.items() if s.is_empty]
    if empty:
        _LOG.debug("channels without matching columns: %s", ", ".join(empty))
    return ParsedRecording(times=frozen_array(times, 1), channels=series, metadata=metadata)
