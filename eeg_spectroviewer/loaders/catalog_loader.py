# eeg_spectroviewer/loaders/catalog_loader.py
from __future__ import annotations
from pathlib import Path
import logging
import pandas as pd

_LOG = logging.getLogger(__name__)

OFFSET_COLUMN = "eeg_label_offset_seconds"
ID_COLUMNS = ("eeg_id", "spectrogram_id", "patient_id")


def _id_str(v) -> str:
    if pd.isna(v):
        return ""
    if isinstance(v, float) and v.is_integer():
        return str(int(v))
    return str(v).strip()


def load_catalog(path: Path) -> pd.DataFrame:
    """
    Read the EEG label catalogue (eeg_id, spectrogram_id, patient_id,
    eeg_label_offset_seconds, expert_consensus, *_vote).

    Id columns are normalised to strings; rows without a spectrogram_id are dropped.
    """
    df = pd.read_csv(path, sep=",", low_memory=False)
    df.columns = [str(c).strip() for c in df.columns]
    missing = [c for c in ("patient_id", "spectrogram_id") if c not in df.columns]
    if missing:
        raise ValueError(f"{Path(path).name}: catalogue missing column(s) {', '.join(missing)}")

    for col in ID_COLUMNS:
        if col in df.columns:
            df[col] = df[col].map(_id_str)
    before = len(df)
    df = df[df["spectrogram_id"] != ""].reset_index(drop=True)
    if len(df) != before:
        _LOG.info("dropped %d catalogue row(s) without spectrogram_id", before - len(df))
    return df


def offsets_by_patient(df: pd.DataFrame) -> dict[str, list[float]]:
    """{patient_id: ascending offsets}; non-numeric offsets are dropped."""
    if df.empty or OFFSET_COLUMN not in df.columns:
        return {}
    offsets = pd.to_numeric(df[OFFSET_COLUMN], errors="coerce")
    frame = pd.DataFrame({"patient_id": df["patient_id"], "offset": offsets}).dropna(subset=["offset"])
    out: dict[str, list[float]] = {}
    for patient, grp in frame.groupby("patient_id", sort=True):
        out[str(patient)] = sorted(float(v) for v in grp["offset"])
    return out


def spectrogram_ids_by_patient(df: pd.DataFrame) -> dict[str, list[str]]:
    out: dict[str, list[str]] = {}
    for patient, sid in zip(df["patient_id"], df["spectrogram_id"]):
        ids = out.setdefault(str(patient), [])
        if sid not in ids:
            ids.append(sid)
    return out


def resolve_spectrogram_path(root: Path, ident: str, is_patient_id: bool = True) -> Path:
    """<root>/<patient_id>.parquet or <root>/spectrogram_<id>.parquet."""
    root = Path(root)
    if is_patient_id:
        return root / f"{ident}.parquet"
    return root / f"spectrogram_{ident}.parquet"
