# eeg_spectroviewer/utils/detect.py
from __future__ import annotations
from pathlib import Path
from dataclasses import dataclass
from typing import Literal

DetectedKind = Literal["parquet", "arrow", "unknown"]

_ARROW_SUFFIXES = (".arrow", ".feather", ".ipc")

@dataclass(frozen=True)
class DetectedItem:
    path: Path        # actual path on disk
    kind: DetectedKind

def _has_magic(p: Path, magic: bytes) -> bool:
    try:
        with p.open("rb") as f:
            return f.read(len(magic)) == magic
    except OSError:
        return False

def detect_kind(p: Path) -> DetectedKind:
    """
    Classify a single path.
    - .parquet                  -> 'parquet'
    - .arrow / .feather / .ipc  -> 'arrow'
    - anything starting with PAR1 -> 'parquet'
    else                        -> 'unknown'
    """
    suffix = p.suffix.lower()
    if suffix == ".parquet":
        return "parquet"
    if suffix in _ARROW_SUFFIXES:
        return "arrow"
    if suffix in ("", ".bin") and _has_magic(p, b"PAR1"):
        return "parquet"
    return "unknown"

def discover_inputs(root: Path, recurse: bool = True) -> list[DetectedItem]:
    """
    If 'root' is a file -> return that one item (if known).
    If 'root' is a folder -> walk (optionally recursively) and collect recordings.
    """
    items: list[DetectedItem] = []
    if root.is_file():
        kind = detect_kind(root)
        if kind != "unknown":
            items.append(DetectedItem(root.resolve(), kind))
        return items
    if not root.is_dir():
        return items

    it = root.rglob("*") if recurse else root.glob("*")
    for p in it:
        if not p.is_file():
            continue
        kind = detect_kind(p)
        if kind != "unknown":
            items.append(DetectedItem(p.resolve(), kind))

    # deterministic ordering
    items.sort(key=lambda x: (x.kind, str(x.path)))
    return items
