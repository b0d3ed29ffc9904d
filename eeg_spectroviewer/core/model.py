# eeg_spectroviewer/core/model.py
from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Mapping, Sequence
import numpy as np

KNOWN_CHANNELS: tuple[str, ...] = ("LL", "RL", "LP", "RP")


def frozen_array(a, ndim: int) -> np.ndarray:
    arr = np.array(a, dtype=float, copy=True)
    if arr.size == 0 and arr.ndim != ndim:
        arr = arr.reshape((0,) * ndim)
    arr.setflags(write=False)
    return arr


@dataclass(frozen=True)
class ColumnarTable:
    names: tuple[str, ...]                 # schema order
    columns: Mapping[str, Sequence[Any]]   # name -> cells, each of length row_count
    row_count: int
    metadata: Mapping[str, str] = field(default_factory=dict)

    def has_column(self, name: str) -> bool:
        return name in self.columns

    def column(self, name: str):
        return self.columns.get(name)

    def metadata_value(self, key: str, default: str | None = None) -> str | None:
        return self.metadata.get(key, default)


@dataclass(frozen=True)
class RecordingMetadata:
    patient_id: str = ""
    record_id: str = ""
    sampling_rate: float = 0.0
    duration: float = 0.0
    total_frames: int = 0


@dataclass(frozen=True)
class ChannelSeries:
    frequencies: np.ndarray    # [F], ascending, unique
    power_values: np.ndarray   # [N, F] -> power_values[t, f]

    @classmethod
    def empty(cls, n_frames: int) -> "ChannelSeries":
        return cls(frequencies=frozen_array([], 1), power_values=frozen_array(np.zeros((n_frames, 0)), 2))

    @property
    def is_empty(self) -> bool:
        return self.frequencies.size == 0


@dataclass(frozen=True)
class ParsedRecording:
    times: np.ndarray                      # [N]
    channels: Mapping[str, ChannelSeries]
    metadata: RecordingMetadata

    @property
    def n_frames(self) -> int:
        return int(self.times.shape[0])

    @property
    def channel_ids(self) -> tuple[str, ...]:
        return tuple(self.channels)


@dataclass(frozen=True)
class SpectrogramView:
    times: np.ndarray          # [T]
    frequencies: np.ndarray    # [F], ascending
    power_values: np.ndarray   # [F, T]
    metadata: RecordingMetadata
    channel: str = ""

    @property
    def is_empty(self) -> bool:
        pv = np.asarray(self.power_values)
        return len(self.frequencies) == 0 or len(self.times) == 0 or pv.size == 0


@dataclass(frozen=True)
class CombinedSpectrogramView(SpectrogramView):
    segment_boundaries: np.ndarray = field(default_factory=lambda: frozen_array([], 1))
    offsets: tuple[float, ...] = ()

    @property
    def segment_count(self) -> int:
        return len(self.offsets)
