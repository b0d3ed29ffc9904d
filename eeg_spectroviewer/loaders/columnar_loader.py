# eeg_spectroviewer/loaders/columnar_loader.py
from __future__ import annotations
from pathlib import Path
import asyncio, logging, re
import pyarrow as pa
import pyarrow.ipc as ipc
import pyarrow.parquet as pq

from ..core.builder import build
from ..core.errors import DecodeError
from ..core.model import KNOWN_CHANNELS, ColumnarTable, ParsedRecording

_LOG = logging.getLogger(__name__)

_PARQUET_MAGIC = b"PAR1"
_ARROW_FILE_MAGIC = b"ARROW1"
_ARROW_STREAM_CONTINUATION = b"\xff\xff\xff\xff"

# ---------- container sniffing ----------
def detect_container(buffer: bytes) -> str | None:
    """'parquet', 'arrow_file', 'arrow_stream' or None."""
    if len(buffer) >= 12 and buffer[:4] == _PARQUET_MAGIC and buffer[-4:] == _PARQUET_MAGIC:
        return "parquet"
    if len(buffer) >= 12 and buffer[:6] == _ARROW_FILE_MAGIC:
        return "arrow_file"
    if len(buffer) >= 8 and buffer[:4] == _ARROW_STREAM_CONTINUATION:
        return "arrow_stream"
    return None


def _read_arrow_table(buffer: bytes, kind: str) -> pa.Table:
    source = pa.BufferReader(buffer)
    if kind == "parquet":
        return pq.read_table(source)
    if kind == "arrow_file":
        return ipc.open_file(source).read_all()
    return ipc.open_stream(source).read_all()


def _decode_metadata(raw) -> dict[str, str]:
    out: dict[str, str] = {}
    for k, v in (raw or {}).items():
        key = k.decode("utf-8", errors="replace") if isinstance(k, bytes) else str(k)
        val = v.decode("utf-8", errors="replace") if isinstance(v, bytes) else str(v)
        out[key] = val
    return out


# ---------- public decoder ----------
def decode(buffer: bytes) -> ColumnarTable:
    """
    Parse a Parquet or Arrow IPC buffer into a ColumnarTable.

    Raises DecodeError on empty/truncated/unrecognised input; the caller's
    state is never touched because the table is only returned on success.
    """
    if not isinstance(buffer, (bytes, bytearray, memoryview)):
        raise DecodeError(f"expected a bytes-like buffer, got {type(buffer).__name__}")
    buffer = bytes(buffer)
    if not buffer:
        raise DecodeError("empty buffer")

    kind = detect_container(buffer)
    if kind is None:
        raise DecodeError(f"unrecognised columnar container ({len(buffer)} bytes, bad magic/footer)")

    try:
        table = _read_arrow_table(buffer, kind)
    except (pa.ArrowException, OSError, ValueError) as e:
        raise DecodeError(f"malformed {kind} buffer: {e}") from e

    names = tuple(str(n) for n in table.column_names)
    if len(set(names)) != len(names):
        raise DecodeError("duplicate column names in schema")

    columns = {}
    for name, col in zip(names, table.columns):
        if len(col) != table.num_rows:
            raise DecodeError(f"column '{name}' has {len(col)} rows, schema declares {table.num_rows}")
        columns[name] = col.to_numpy(zero_copy_only=False)

    metadata = _decode_metadata(table.schema.metadata)
    _LOG.debug("decoded %s: %d columns x %d rows", kind, len(names), table.num_rows)
    return ColumnarTable(names=names, columns=columns, row_count=int(table.num_rows), metadata=metadata)


# ---------- buffer I/O ----------
def load_buffer(path: Path) -> bytes:
    return Path(path).read_bytes()


async def fetch_buffer(path: Path) -> bytes:
    """Asynchronous read; the only suspend point before decoding."""
    return await asyncio.to_thread(load_buffer, path)


# ---------- filename helpers ----------
_SPECTROGRAM_PREFIX = re.compile(r"^spectrogram_(?P<id>.+)$")

def infer_ids_from_path(path: Path) -> tuple[str, str]:
    """
    (patient_id, record_id) from file naming:
      <patient_id>.parquet        -> (patient_id, "")
      spectrogram_<id>.parquet    -> ("", id)
    """
    stem = Path(path).stem
    m = _SPECTROGRAM_PREFIX.match(stem)
    if m:
        return "", m.group("id")
    return stem, ""


def _with_default_ids(table: ColumnarTable, path: Path) -> ColumnarTable:
    patient, record = infer_ids_from_path(path)
    meta = dict(table.metadata)
    if patient and not meta.get("patient_id"):
        meta["patient_id"] = patient
    if record and not meta.get("record_id"):
        meta["record_id"] = record
    if meta == dict(table.metadata):
        return table
    return ColumnarTable(names=table.names, columns=table.columns, row_count=table.row_count, metadata=meta)


def known_channels(cfg: dict | None) -> tuple[str, ...]:
    chans = ((cfg or {}).get("channels") or {}).get("known")
    if isinstance(chans, (list, tuple)) and chans:
        return tuple(str(c) for c in chans)
    return KNOWN_CHANNELS


# ---------- public loader ----------
def decode_recording(buffer: bytes, path: Path | None = None, cfg: dict | None = None) -> ParsedRecording:
    table = decode(buffer)
    if path is not None:
        table = _with_default_ids(table, path)
    return build(table, channels=known_channels(cfg))


def load_recording(path: Path, cfg: dict | None = None) -> ParsedRecording:
    """Read, decode and build one recording file."""
    return decode_recording(load_buffer(path), path, cfg)
