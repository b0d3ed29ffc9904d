# eeg_spectroviewer/core/combiner.py
from __future__ import annotations
from dataclasses import replace
from typing import Mapping, Protocol, Sequence
import logging
import numpy as np

from .errors import EmptyOffsets, InvalidChannel
from .model import CombinedSpectrogramView, ParsedRecording, SpectrogramView, frozen_array
from .projector import project

SEGMENT_GAP = 1.0

_LOG = logging.getLogger(__name__)


class SegmentSource(Protocol):
    def segment(self, recording: ParsedRecording, channel: str,
                offset: float, index: int) -> SpectrogramView: ...


class ReplicaSegmentSource:
    """
    Placeholder policy: every offset reuses the same recording, with power
    scaled by ``1 + gain_step * index``. It does not reconstruct the data
    recorded at that offset; use RecordingSegmentSource when per-segment
    recordings are available.
    """

    def __init__(self, gain_step: float = 0.1):
        self.gain_step = float(gain_step)

    def segment(self, recording, channel, offset, index):
        view = project(recording, channel)
        gain = 1.0 + self.gain_step * index
        if gain == 1.0:
            return view
        return replace(view, power_values=frozen_array(np.asarray(view.power_values) * gain, 2))


class RecordingSegmentSource:
    """Per-segment data keyed by offset, as supplied by the recording loader."""

    def __init__(self, segments: Mapping[float, ParsedRecording], fallback: bool = False,
                 gain_step: float = 0.1):
        self.segments = {float(k): v for k, v in segments.items()}
        self._fallback = ReplicaSegmentSource(gain_step) if fallback else None

    def segment(self, recording, channel, offset, index):
        rec = self.segments.get(float(offset))
        if rec is not None:
            return project(rec, channel)
        if self._fallback is None:
            raise KeyError(f"no recording for segment at offset {offset}")
        _LOG.warning("no recording for offset %s; reusing base recording", offset)
        return self._fallback.segment(recording, channel, offset, index)


def combine(recording: ParsedRecording, channel: str, offsets: Sequence[float],
            source: SegmentSource | None = None) -> CombinedSpectrogramView:
    """
    Concatenate the segments at ``offsets`` into one extended time axis.

    Segments are laid out in ascending offset order; each starts one unit
    after the previous segment's last local time.
    """
    if offsets is None or len(offsets) == 0:
        raise EmptyOffsets("no offsets to combine")
    if channel not in recording.channels:
        raise InvalidChannel(channel, recording.channel_ids)
    values = [float(o) for o in offsets]
    bad = [v for v in values if not np.isfinite(v)]
    if bad:
        raise ValueError(f"offsets must be finite, got {bad}")
    source = source or ReplicaSegmentSource()
    ordered = sorted(values)   # sorted() is stable

    time_parts: list[np.ndarray] = []
    power_parts: list[np.ndarray] = []
    boundaries: list[float] = []
    frequencies = None
    cumulative = 0.0

    for idx, offset in enumerate(ordered):
        view = source.segment(recording, channel, offset, idx)
        local_t = np.asarray(view.times, dtype=float)
        power = np.asarray(view.power_values, dtype=float)
        if frequencies is None:
            frequencies = np.asarray(view.frequencies, dtype=float)
        elif not np.array_equal(frequencies, view.frequencies):
            raise ValueError(f"segment at offset {offset} has a different frequency axis")

        if idx > 0:
            boundaries.append(cumulative + (float(local_t[0]) if local_t.size else 0.0))
        time_parts.append(local_t + cumulative)
        power_parts.append(power.reshape(len(frequencies), local_t.size))

        last_local = float(local_t[-1]) if local_t.size else 0.0
        cumulative += last_local + SEGMENT_GAP

    times = np.concatenate(time_parts) if time_parts else np.zeros(0)
    power = np.concatenate(power_parts, axis=1) if power_parts else np.zeros((0, 0))
    _LOG.debug("combined %d segment(s) of %s: %d columns", len(ordered), channel, times.size)

    return CombinedSpectrogramView(
        times=frozen_array(times, 1),
        frequencies=frozen_array(frequencies, 1),
        power_values=frozen_array(power, 2),
        metadata=recording.metadata,
        channel=channel,
        segment_boundaries=frozen_array(boundaries, 1),
        offsets=tuple(ordered),
    )
