# eeg_spectroviewer/main.py
from __future__ import annotations
from pathlib import Path
import logging
import sys
import yaml

from .core.errors import DecodeError
from .core.pipeline import run_pipeline
from .loaders import catalog_loader, columnar_loader
from .utils.detect import discover_inputs
from .utils.synthetic import synthetic_recording

def load_config(cfg_path: Path) -> dict:
    with cfg_path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}

def _load_offsets(cfg: dict, verbose: bool) -> dict[str, list[float]]:
    catalog = (cfg.get("input") or {}).get("catalog")
    if not catalog:
        return {}
    path = Path(catalog).resolve()
    if not path.is_file():
        if verbose:
            print(f"[INFO] catalogue not found: {path}; combined views disabled")
        return {}
    try:
        df = catalog_loader.load_catalog(path)
    except (OSError, ValueError) as e:
        print(f"[WARN] failed to read catalogue {path.name}: {e}")
        return {}
    offsets = catalog_loader.offsets_by_patient(df)
    if verbose:
        print(f"[catalog] {len(df)} row(s), offsets for {len(offsets)} patient(s)")
    return offsets

def main(argv: list[str] | None = None):
    argv = sys.argv[1:] if argv is None else argv
    # ---------- config ----------
    here = Path(__file__).resolve().parent
    cfg_path = Path(argv[0]).resolve() if argv else here / "config.yaml"
    cfg = load_config(cfg_path)

    in_path = Path((cfg.get("input") or {}).get("path", ".")).resolve()
    recurse = bool((cfg.get("input") or {}).get("recurse", True))
    mock_when_empty = bool((cfg.get("input") or {}).get("mock_when_empty", False))
    out_root = Path((cfg.get("output") or {}).get("root", "./out")).resolve()
    out_root.mkdir(parents=True, exist_ok=True)

    verbose = bool((cfg.get("logging") or {}).get("verbose", True))
    logging.basicConfig(level=logging.INFO if verbose else logging.WARNING,
                        format="%(levelname)s %(name)s: %(message)s")
    if verbose:
        print(f"[cfg] input={in_path} (recurse={recurse})")
        print(f"[cfg] output={out_root}")

    # ---------- discover ----------
    detected = discover_inputs(in_path, recurse=recurse)
    if verbose:
        kinds: dict[str, int] = {}
        for d in detected:
            kinds[d.kind] = kinds.get(d.kind, 0) + 1
        print(f"[detector] found {sum(kinds.values())} inputs → {kinds}")

    # ---------- load ----------
    recordings = []
    for item in detected:
        if verbose:
            print(f"  [load] {item.kind:7} {item.path.name}")
        try:
            recordings.append(columnar_loader.load_recording(item.path, cfg))
        except (DecodeError, OSError) as e:
            print(f"[WARN] loader failed for {item.path.name}: {e}")

    if not recordings:
        if not mock_when_empty:
            print(f"[INFO] No Parquet/Arrow recordings loaded from: {in_path}")
            sys.exit(0)
        print("[INFO] No recordings loaded; rendering mock spectrogram data.")
        recordings = [synthetic_recording(channels=columnar_loader.known_channels(cfg))]

    offsets = _load_offsets(cfg, verbose)
    if verbose:
        print(f"[pipeline] processing {len(recordings)} recording(s)")
    written = run_pipeline(recordings, cfg, out_root, offsets=offsets)

    if verbose:
        total = sum(len(v) for v in written.values())
        print(f"[summary] {len(written)} patient(s), {total} image(s) written to {out_root}")

if __name__ == "__main__":
    main()
