"""
Frame Indexer

Builds a random-access index of the frames in a binary log by walking the file
header by header and recording the offset and timestamp of each valid frame.
Misaligned headers are skipped by resynchronizing one byte at a time, so a log
with a corrupted stretch still yields every frame before and after it.
"""

from functools import cached_property
from dataclasses import dataclass
from typing import Tuple, Optional

import numpy as np

from .advisories import Advisory, AdvisoryKind, AdvisoryLog
from .errors import EmptyLogError, SyncMismatch, TimestampRegressionError
from .header import validate_at
from .policy import Anomaly, ResyncPolicy, Verdict


@dataclass(frozen=True)
class FrameIndexEntry:
    offset: int
    timestamp_ms: int
    payload_length: int = 0


@dataclass(frozen=True)
class FrameIndex:
    """Ordered, immutable index of the frames in one log."""
    start_offset: int
    entries: Tuple[FrameIndexEntry, ...]
    end_offset: int = 0
    advisories: Tuple[Advisory, ...] = ()
    resync_spans: Tuple[Tuple[int, int], ...] = ()    # (offset, skipped bytes)

    def __len__(self):
        return len(self.entries)

    def __iter__(self):
        return iter(self.entries)

    def __getitem__(self, n):
        return self.entries[n]

    @property
    def total_frames(self):
        return len(self.entries)

    @property
    def timestamp_regressions(self):
        return sum(1 for a in self.advisories if a.kind == AdvisoryKind.TIMESTAMP_REGRESSION)

    def get_frame_offset(self, frame_num):
        """Get file offset for a specific frame number."""
        if frame_num < 0 or frame_num >= len(self.entries):
            return None
        return self.entries[frame_num].offset

    def get_frame_range(self, start_frame, end_frame):
        """
        Clamp a requested [start_frame, end_frame) range to the index.

        Returns (start, end) tuple, or None if the range is empty.
        """
        if start_frame < 0 or start_frame >= len(self.entries):
            return None
        end_frame = min(end_frame, len(self.entries))
        if start_frame >= end_frame:
            return None
        return (start_frame, end_frame)

    def find_frame_at(self, timestamp_ms):
        """
        Number of the last frame whose timestamp is <= timestamp_ms.

        Assumes timestamps are non-decreasing; with regressions present the
        answer is one of possibly several matching frames. Returns None when
        timestamp_ms precedes the first frame.
        """
        n = int(np.searchsorted(self._timestamp_column, timestamp_ms, side='right'))
        return n - 1 if n > 0 else None

    @cached_property
    def _timestamp_column(self):
        # int64 so negative query timestamps compare without wrapping
        return self.timestamps_array().astype(np.int64)

    def offsets_array(self):
        return np.fromiter((e.offset for e in self.entries), dtype=np.uint64, count=len(self.entries))

    def timestamps_array(self):
        return np.fromiter((e.timestamp_ms for e in self.entries), dtype=np.uint32, count=len(self.entries))

    def summary(self):
        """Return a JSON-friendly summary of the index."""
        timestamps = self.timestamps_array().astype(np.int64)
        lengths = np.fromiter((e.payload_length for e in self.entries), dtype=np.int64, count=len(self.entries))
        deltas = np.diff(timestamps)

        return {
            'total_frames': len(self.entries),
            'start_offset': self.start_offset,
            'end_offset': self.end_offset,
            'first_timestamp_ms': int(timestamps[0]) if len(timestamps) else None,
            'last_timestamp_ms': int(timestamps[-1]) if len(timestamps) else None,
            'duration_ms': int(timestamps.max() - timestamps.min()) if len(timestamps) else 0,
            'mean_interval_ms': float(deltas.mean()) if len(deltas) else 0.0,
            'payload_bytes': int(lengths.sum()),
            'timestamp_regressions': int((deltas < 0).sum()),
            'resync_spans': len(self.resync_spans),
            'resync_bytes': sum(skipped for _, skipped in self.resync_spans),
        }


class FrameIndexer:
    """Indexes a binary frame log for fast random access."""

    def __init__(self, policy: Optional[ResyncPolicy] = None):
        self.policy = policy or ResyncPolicy()
        self.on_advisory = None  # Callback(advisory)

    def build(self, cursor) -> FrameIndex:
        """
        Scan from the cursor's current position to end of stream and index every frame.

        On success the cursor is put back where the scan started so a stream
        pass can re-read from the top.

        Raises:
            EmptyLogError: no complete frame was found
            TimestampRegressionError: strict mode and too many regressions
        """
        start_offset = cursor.position()
        log = AdvisoryLog(self.on_advisory)
        entries = []
        resync_spans = []
        resync_start = None
        regressions = 0
        end_offset = None

        while not cursor.at_end():
            candidate = cursor.position()

            try:
                header = validate_at(cursor)
            except SyncMismatch:
                if self.policy.classify_index(Anomaly.SYNC_MISMATCH) != Verdict.RESYNC:
                    end_offset = candidate
                    break
                if resync_start is None:
                    resync_start = candidate
                cursor.seek(self.policy.next_candidate(cursor, candidate))
                continue

            if resync_start is not None:
                self._close_resync_span(log, resync_spans, resync_start, candidate)
                resync_start = None

            if header is None:
                log.emit(AdvisoryKind.TRUNCATED_TAIL, candidate,
                         f"{cursor.bytes_remaining()} trailing bytes are too short for a frame header",
                         remaining=cursor.bytes_remaining())
                end_offset = candidate
                break

            if cursor.bytes_remaining() < header.payload_length:
                log.emit(AdvisoryKind.TRUNCATED_TAIL, candidate,
                         f"Frame declares {header.payload_length} payload bytes, "
                         f"only {cursor.bytes_remaining()} remain",
                         payload_length=header.payload_length, remaining=cursor.bytes_remaining())
                end_offset = candidate
                break

            # Check if timestamps are sequential
            if entries and header.timestamp_ms < entries[-1].timestamp_ms:
                regressions += 1
                log.emit(AdvisoryKind.TIMESTAMP_REGRESSION, candidate,
                         f"Timestamps are not sequential: {entries[-1].timestamp_ms} then {header.timestamp_ms}",
                         previous=entries[-1].timestamp_ms, timestamp=header.timestamp_ms)
                if self.policy.classify_index(Anomaly.TIMESTAMP_REGRESSION, regressions) == Verdict.STOP:
                    partial = self._make_index(start_offset, entries, candidate, log, resync_spans)
                    raise TimestampRegressionError(candidate, regressions, partial)

            entries.append(FrameIndexEntry(candidate, header.timestamp_ms, header.payload_length))
            cursor.seek(candidate + header.frame_size)

        if resync_start is not None:
            self._close_resync_span(log, resync_spans, resync_start, cursor.size)

        if end_offset is None:
            end_offset = cursor.position()
        if not entries:
            raise EmptyLogError(start_offset, cursor.size)

        # Reset to log beginning so the stream pass starts from the top
        cursor.seek(start_offset)

        return self._make_index(start_offset, entries, end_offset, log, resync_spans)

    @staticmethod
    def _close_resync_span(log, resync_spans, start, end):
        skipped = end - start
        resync_spans.append((start, skipped))
        log.emit(AdvisoryKind.RESYNC, start,
                 f"Wrong sync bytes, skipped {skipped} bytes to offset 0x{end:08X}",
                 skipped=skipped, resumed_at=end)

    @staticmethod
    def _make_index(start_offset, entries, end_offset, log, resync_spans):
        return FrameIndex(
            start_offset=start_offset,
            entries=tuple(entries),
            end_offset=end_offset,
            advisories=tuple(log.items),
            resync_spans=tuple(resync_spans),
        )


def build_index(cursor, policy=None, on_advisory=None):
    """Convenience wrapper: index a cursor with an optional policy and advisory callback."""
    indexer = FrameIndexer(policy)
    indexer.on_advisory = on_advisory
    return indexer.build(cursor)
