# eeg_spectroviewer/core/pipeline.py
from __future__ import annotations
from collections import defaultdict
from pathlib import Path
from typing import Mapping, Sequence

from .combiner import ReplicaSegmentSource, combine
from .errors import EmptyOffsets, InvalidChannel
from .model import ParsedRecording
from .plotting import save_average_spectrum_plot
from .projector import project
from .renderer import RenderOptions, export_filename, render
from .reports import write_report
from .surface import ImageSurface

def patient_key(recording: ParsedRecording) -> str:
    meta = recording.metadata
    return meta.patient_id or meta.record_id or "unknown"

def _surface_size(cfg: dict) -> tuple[int, int]:
    r = cfg.get("render") or {}
    return int(r.get("width", 800)), int(r.get("height", 400))

def render_channels(recording: ParsedRecording, out_dir: Path, options: RenderOptions,
                    size: tuple[int, int] = (800, 400)) -> list[Path]:
    """One PNG per channel; empty channels still produce a 'no data' image."""
    written = []
    out_dir.mkdir(parents=True, exist_ok=True)
    for ch in recording.channel_ids:
        view = project(recording, ch)
        surface = ImageSurface(*size)
        render(view, surface, options)
        written.append(surface.save(out_dir / export_filename(view, ch)))
    return written

def render_combined(recording: ParsedRecording, offsets: Sequence[float], out_dir: Path,
                    options: RenderOptions, size: tuple[int, int] = (800, 400),
                    gain_step: float = 0.1) -> list[Path]:
    written = []
    source = ReplicaSegmentSource(gain_step)
    out_dir.mkdir(parents=True, exist_ok=True)
    for ch in recording.channel_ids:
        try:
            view = combine(recording, ch, offsets, source)
        except (EmptyOffsets, InvalidChannel) as e:
            print(f"[INFO] {patient_key(recording)} {ch}: no combined view ({e})")
            continue
        surface = ImageSurface(*size)
        render(view, surface, options)
        name = export_filename(view, ch).replace(".png", "_combined.png")
        written.append(surface.save(out_dir / name))
    return written

def run_pipeline(recordings: list[ParsedRecording], cfg: dict, out_root: Path,
                 offsets: Mapping[str, Sequence[float]] | None = None) -> dict[str, list[Path]]:
    """
    Render every channel of every recording, grouped per patient, plus
    combined multi-offset views, average spectrum plots and a channel report.
    Returns the written image paths per patient.
    """
    options = RenderOptions.from_config(cfg)
    size = _surface_size(cfg)
    combine_cfg = cfg.get("combine") or {}
    do_combine = bool(combine_cfg.get("enabled", True))
    gain_step = float(combine_cfg.get("gain_step", 0.1))
    do_plot = bool((cfg.get("plots") or {}).get("average_spectrum", True))
    offsets = offsets or {}

    by_patient: dict[str, list[ParsedRecording]] = defaultdict(list)
    for rec in recordings:
        by_patient[patient_key(rec)].append(rec)

    written: dict[str, list[Path]] = {}
    for patient, recs in sorted(by_patient.items()):
        patient_dir = out_root / patient
        paths: list[Path] = []
        for rec in recs:
            paths.extend(render_channels(rec, patient_dir / "spectrograms", options, size))

            patient_offsets = list(offsets.get(patient, ()))
            if do_combine and len(patient_offsets) > 1:
                paths.extend(render_combined(rec, patient_offsets, patient_dir / "combined",
                                             options, size, gain_step))
            if do_plot:
                save_average_spectrum_plot(rec, patient_dir / "plots")
        written[patient] = paths
        print(f"[OK] {patient}: {len(recs)} recording(s) → {len(paths)} image(s) in {patient_dir}")

    rep = cfg.get("reports") or {}
    fmt = str(rep.get("format", "csv")).lower()
    mat_var = str(rep.get("mat_variable", "report"))
    write_report(recordings, out_root / "report", "channel summary", fmt=fmt, mat_variable=mat_var)
    return written
