"""
Corruption and resynchronization policy shared by the index and stream passes.

The policy decides what a header anomaly means for the pass that found it:
keep going past it (RESYNC / ADVISE), treat it as the normal end of the
stream (END), or abandon the rest of the stream (STOP).
"""

from enum import Enum

from .header import HEADER_SIZE, TIMESTAMP_SIZE, SYNC_PAD_SIZE

MAX_PAYLOAD_LENGTH = 1024 * 1024

RESYNC_MODES = ("byte", "scan")

# Offset of the sync pad within a header
SYNC_PAD_OFFSET = TIMESTAMP_SIZE + 2


class Anomaly(Enum):
    SYNC_MISMATCH = "sync_mismatch"
    TIMESTAMP_REGRESSION = "timestamp_regression"
    TRUNCATED_TAIL = "truncated_tail"
    PAYLOAD_EMPTY = "payload_empty"
    PAYLOAD_TOO_LARGE = "payload_too_large"


class Verdict(Enum):
    RESYNC = "resync"       # skip ahead and look for the next header
    ADVISE = "advise"       # report, keep the frame, continue
    END = "end"             # normal end of stream
    STOP = "stop"           # fatal for the rest of this pass


class ResyncPolicy:
    """Classifies header anomalies and picks resync candidates."""

    def __init__(self, max_payload_length=MAX_PAYLOAD_LENGTH, resync_mode="byte",
                 scan_window=64 * 1024, max_timestamp_regressions=None):
        """
        Args:
            max_payload_length: Upper bound on a payload in the stream pass (default: 1 MiB)
            resync_mode: "byte" steps one byte per attempt; "scan" jumps straight to
                         the next offset whose sync pad is zero
            scan_window: Bytes read per step in scan mode
            max_timestamp_regressions: None keeps regressions advisory; an integer N
                                       makes regression N+1 fatal to the index pass
        """
        if resync_mode not in RESYNC_MODES:
            raise ValueError(f"Unknown resync mode '{resync_mode}', expected one of {RESYNC_MODES}")
        if scan_window <= SYNC_PAD_SIZE:
            raise ValueError(f"scan_window must be larger than {SYNC_PAD_SIZE}")
        self.max_payload_length = max_payload_length
        self.resync_mode = resync_mode
        self.scan_window = scan_window
        self.max_timestamp_regressions = max_timestamp_regressions

    @classmethod
    def from_config(cls, decoder_config):
        return cls(
            max_payload_length=decoder_config.max_payload_length,
            resync_mode=decoder_config.resync_mode,
            scan_window=decoder_config.scan_window,
            max_timestamp_regressions=decoder_config.max_timestamp_regressions,
        )

    # Index pass

    def classify_index(self, anomaly, regressions=0):
        """Verdict for an anomaly seen while indexing."""
        if anomaly == Anomaly.SYNC_MISMATCH:
            return Verdict.RESYNC
        if anomaly == Anomaly.TIMESTAMP_REGRESSION:
            if self.max_timestamp_regressions is not None and regressions > self.max_timestamp_regressions:
                return Verdict.STOP
            return Verdict.ADVISE
        if anomaly == Anomaly.TRUNCATED_TAIL:
            return Verdict.END
        raise ValueError(f"{anomaly} is not checked by the index pass")

    # Stream pass

    def check_payload_length(self, length):
        """Return the anomaly for an out-of-bounds payload length, or None."""
        if length < 1:
            return Anomaly.PAYLOAD_EMPTY
        if length > self.max_payload_length:
            return Anomaly.PAYLOAD_TOO_LARGE
        return None

    def classify_stream(self, anomaly):
        """Verdict for an anomaly seen while streaming."""
        if anomaly in (Anomaly.PAYLOAD_EMPTY, Anomaly.PAYLOAD_TOO_LARGE):
            return Verdict.STOP
        if anomaly == Anomaly.TRUNCATED_TAIL:
            return Verdict.END
        raise ValueError(f"{anomaly} is not checked by the stream pass")

    # Resync

    def next_candidate(self, cursor, failed_offset):
        """
        Offset of the next candidate header after a sync failure at failed_offset.

        Byte mode returns failed_offset + 1. Scan mode skips every offset whose
        sync pad is non-zero, which is exactly the set of offsets byte mode would
        reject, so both modes produce the same index. Returns cursor.size when no
        candidate with a full header remains.
        """
        start = failed_offset + 1
        if self.resync_mode == "byte":
            return start
        return self._scan_candidate(cursor, start)

    def _scan_candidate(self, cursor, start):
        pad = b"\x00" * SYNC_PAD_SIZE
        pos = start
        while pos + HEADER_SIZE <= cursor.size:
            cursor.seek(pos + SYNC_PAD_OFFSET)
            window = cursor.read(self.scan_window)
            hit = window.find(pad)
            if hit >= 0:
                return pos + hit
            if len(window) < self.scan_window:
                break
            pos += len(window) - SYNC_PAD_SIZE + 1
        return cursor.size
