"""
Frame Streamer

Replays a frame log and forwards each frame's payload, one byte at a time and
in file order, to a payload sink. The payload decoder behind the sink owns all
record semantics; the streamer never looks inside a payload.

A payload length outside (0, max_payload_length] stops the stream: everything
forwarded before that point is kept and the result is STOPPED_ON_CORRUPTION.
A final frame cut short by the end of the file is a normal end of stream.
"""

from enum import Enum
from dataclasses import dataclass
from typing import Optional, Tuple

from .advisories import Advisory, AdvisoryKind, AdvisoryLog
from .header import HEADER_SIZE, read_header
from .policy import ResyncPolicy, Verdict


class StreamStatus(Enum):
    COMPLETED = "completed"
    STOPPED_ON_CORRUPTION = "stopped_on_corruption"


@dataclass(frozen=True)
class DecodedFrame:
    timestamp_ms: int
    payload: bytes
    offset: int = 0


@dataclass(frozen=True)
class StreamResult:
    frames_forwarded: int
    bytes_forwarded: int
    status: StreamStatus
    stop_offset: Optional[int] = None
    advisories: Tuple[Advisory, ...] = ()

    @property
    def completed(self):
        return self.status == StreamStatus.COMPLETED


class FrameStreamer:
    """Forwards frame payloads from a log to a payload sink."""

    def __init__(self, policy: Optional[ResyncPolicy] = None):
        self.policy = policy or ResyncPolicy()
        self.on_frame = None     # Callback(DecodedFrame), called before the payload bytes are forwarded
        self.on_advisory = None  # Callback(advisory)

    def stream(self, cursor, sink) -> StreamResult:
        """
        Forward every frame from the cursor's position to end of stream.

        No resync is attempted: this pass trusts that the index pass has
        already validated the file, or accepts the risk on a standalone run.
        """
        log = AdvisoryLog(self.on_advisory)
        frames = 0
        nbytes = 0

        while cursor.bytes_remaining() >= HEADER_SIZE:
            offset = cursor.position()
            header = read_header(cursor)

            # The full size field is the length here, so a bad sync pad reads as too large
            length = header.raw_size_field
            anomaly = self.policy.check_payload_length(length)
            if anomaly is not None and self.policy.classify_stream(anomaly) == Verdict.STOP:
                log.emit(AdvisoryKind.PAYLOAD_OUT_OF_BOUNDS, offset,
                         f"Unlikely packet size {length}. Stopping, data up to this point is kept",
                         payload_length=length, frames_forwarded=frames)
                return StreamResult(frames, nbytes, StreamStatus.STOPPED_ON_CORRUPTION, offset, tuple(log.items))

            if cursor.bytes_remaining() < length:
                log.emit(AdvisoryKind.TRUNCATED_TAIL, offset,
                         f"Frame declares {length} payload bytes, only {cursor.bytes_remaining()} remain",
                         payload_length=length, remaining=cursor.bytes_remaining())
                break

            payload = cursor.read(length)
            self._forward(DecodedFrame(header.timestamp_ms, payload, offset), sink)
            frames += 1
            nbytes += length

        return StreamResult(frames, nbytes, StreamStatus.COMPLETED, None, tuple(log.items))

    def stream_indexed(self, cursor, index, sink, start_frame=0, end_frame=None) -> StreamResult:
        """
        Forward the indexed frames [start_frame, end_frame).

        Only offsets recorded by the index pass are visited, so corrupted
        spans the index pass resynchronized over are skipped.
        """
        log = AdvisoryLog(self.on_advisory)
        frames = 0
        nbytes = 0

        if end_frame is None:
            end_frame = len(index)
        frame_range = index.get_frame_range(start_frame, end_frame)
        if frame_range is None:
            return StreamResult(0, 0, StreamStatus.COMPLETED, None, ())

        for entry in index.entries[frame_range[0]:frame_range[1]]:
            anomaly = self.policy.check_payload_length(entry.payload_length)
            if anomaly is not None and self.policy.classify_stream(anomaly) == Verdict.STOP:
                log.emit(AdvisoryKind.PAYLOAD_OUT_OF_BOUNDS, entry.offset,
                         f"Unlikely packet size {entry.payload_length}. Stopping, data up to this point is kept",
                         payload_length=entry.payload_length, frames_forwarded=frames)
                return StreamResult(frames, nbytes, StreamStatus.STOPPED_ON_CORRUPTION,
                                    entry.offset, tuple(log.items))

            frame = self.read_frame(cursor, entry)
            self._forward(frame, sink)
            frames += 1
            nbytes += len(frame.payload)

        return StreamResult(frames, nbytes, StreamStatus.COMPLETED, None, tuple(log.items))

    def read_frame(self, cursor, entry) -> DecodedFrame:
        """Random-access read of one indexed frame."""
        cursor.seek(entry.offset + HEADER_SIZE)
        payload = cursor.read(entry.payload_length)
        return DecodedFrame(entry.timestamp_ms, payload, entry.offset)

    def iter_frames(self, cursor):
        """
        Yield DecodedFrames lazily from the cursor's position.

        Stops silently at the first out-of-bounds length or truncated tail; use
        stream() when the terminal status matters.
        """
        while cursor.bytes_remaining() >= HEADER_SIZE:
            offset = cursor.position()
            header = read_header(cursor)
            length = header.raw_size_field
            if self.policy.check_payload_length(length) is not None or cursor.bytes_remaining() < length:
                return
            yield DecodedFrame(header.timestamp_ms, cursor.read(length), offset)

    def _forward(self, frame, sink):
        if self.on_frame:
            self.on_frame(frame)
        for b in frame.payload:
            sink.accept_byte(b)
