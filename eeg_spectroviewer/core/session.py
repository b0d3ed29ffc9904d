# eeg_spectroviewer/core/session.py
from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, Sequence
import itertools, logging

from .combiner import SegmentSource, combine
from .errors import DecodeError, EmptyOffsets, InvalidChannel
from .model import ParsedRecording
from .projector import project
from .renderer import RenderOptions, draw_no_data, render
from .surface import PixelSurface

Fetcher = Callable[[Path], Awaitable[bytes]]
Decoder = Callable[[bytes, Path], ParsedRecording]

_LOG = logging.getLogger(__name__)


@dataclass(frozen=True)
class RenderRequest:
    request_id: int
    path: Path
    channel: str
    options: RenderOptions
    offsets: tuple[float, ...] | None = None


@dataclass(frozen=True)
class SlotResult:
    request_id: int
    status: str                  # "rendered" | "no_data" | "stale"
    recording: ParsedRecording | None = None
    detail: str = ""


class RenderSlot:
    """
    Owns one target surface and serialises renders onto it.

    ``show`` awaits the buffer fetch, then checks that it is still the
    newest request for this slot before decoding and drawing; an older
    request finishing late is dropped without touching the surface.
    Everything after the fetch runs synchronously.
    """

    def __init__(self, surface: PixelSurface, fetch: Fetcher, decode: Decoder,
                 segment_source: SegmentSource | None = None):
        self.surface = surface
        self._fetch = fetch
        self._decode = decode
        self._segment_source = segment_source
        self._request_ids = itertools.count(1)
        self._latest: int | None = None
        self.recording: ParsedRecording | None = None

    @property
    def latest_request(self) -> int | None:
        return self._latest

    def _is_current(self, req: RenderRequest) -> bool:
        return self._latest == req.request_id

    async def show(self, path: Path, channel: str, options: RenderOptions | None = None,
                   offsets: Sequence[float] | None = None) -> SlotResult:
        req = RenderRequest(
            request_id=next(self._request_ids),
            path=Path(path),
            channel=channel,
            options=options or RenderOptions(),
            offsets=tuple(offsets) if offsets is not None else None,
        )
        self._latest = req.request_id

        try:
            buffer = await self._fetch(req.path)
        except (OSError, ValueError) as e:
            if not self._is_current(req):
                return SlotResult(req.request_id, "stale")
            _LOG.warning("fetch failed for %s: %s", req.path, e)
            draw_no_data(self.surface, req.path.name)
            return SlotResult(req.request_id, "no_data", detail=str(e))

        if not self._is_current(req):
            _LOG.debug("discarding stale fetch %d for %s", req.request_id, req.path)
            return SlotResult(req.request_id, "stale")

        try:
            recording = self._decode(buffer, req.path)
        except DecodeError as e:
            _LOG.warning("could not decode %s: %s", req.path, e)
            draw_no_data(self.surface, req.path.name)
            return SlotResult(req.request_id, "no_data", detail=str(e))

        self.recording = recording
        return self.redraw(req, recording)

    def redraw(self, req: RenderRequest, recording: ParsedRecording) -> SlotResult:
        """Synchronous part: project or combine, then render."""
        try:
            if req.offsets is not None:
                view = combine(recording, req.channel, req.offsets, self._segment_source)
            else:
                view = project(recording, req.channel)
        except (InvalidChannel, EmptyOffsets, KeyError, ValueError) as e:
            _LOG.info("no view for %s/%s: %s", req.path.name, req.channel, e)
            draw_no_data(self.surface, str(e))
            return SlotResult(req.request_id, "no_data", recording, str(e))

        render(view, self.surface, req.options)
        return SlotResult(req.request_id, "rendered", recording)
