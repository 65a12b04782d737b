"""
Decode session: the two-pass decode of one log file.

    IDLE --build_index()--> INDEXED --stream()--> STREAMING --> COMPLETED
                                                            +-> STOPPED_ON_CORRUPTION
                                                            +-> CANCELLED

The index pass must succeed before the stream pass runs. quick_check() is a
degraded streaming-only mode that just confirms the log holds at least one
frame; it gives none of the ordering checks of the indexed path and does not
change the session state.

Closing the source while streaming makes the stream pass raise LogReadError;
the session then ends in CANCELLED with no result.
"""

from enum import Enum
from typing import Optional

from .advisories import AdvisoryLog
from .config import FramelogConfig
from .cursor import ByteCursor
from .errors import LogReadError, SessionStateError
from .indexer import FrameIndexer
from .policy import ResyncPolicy
from .preamble import LogPreamble, read_preamble
from .streamer import FrameStreamer, StreamStatus


class SessionState(Enum):
    IDLE = "idle"
    INDEXED = "indexed"
    STREAMING = "streaming"
    COMPLETED = "completed"
    STOPPED_ON_CORRUPTION = "stopped_on_corruption"
    CANCELLED = "cancelled"


class DecodeSession:
    """Owns the cursor for one log and runs the index and stream passes over it."""

    def __init__(self, source, config: Optional[FramelogConfig] = None):
        """
        Args:
            source: Path to a log file, or an existing ByteCursor
            config: FramelogConfig (defaults if None)
        """
        self.source = source
        self.config = config or FramelogConfig()
        self.policy = ResyncPolicy.from_config(self.config.decoder)

        self.cursor = None
        self.preamble = None
        self.index = None
        self.result = None
        self.state = SessionState.IDLE
        self.advisories = AdvisoryLog()

        self.on_advisory = None  # Callback(advisory)
        self.on_frame = None     # Callback(DecodedFrame)

    def _emit(self, advisory):
        self.advisories.items.append(advisory)
        if self.on_advisory:
            self.on_advisory(advisory)

    def open(self) -> LogPreamble:
        """Open the source and read its preamble. I/O failures raise LogOpenError right away."""
        if self.preamble is not None:
            return self.preamble
        if self.cursor is None:
            if isinstance(self.source, ByteCursor):
                self.cursor = self.source
            else:
                self.cursor = ByteCursor.from_path(self.source)

        if self.config.preamble.enabled:
            self.preamble = read_preamble(self.cursor, self.config.preamble, self._emit)
        else:
            self.preamble = LogPreamble(data_offset=self.cursor.position())
        return self.preamble

    def build_index(self):
        """Run the index pass. Raises EmptyLogError when the log holds no frame."""
        if self.state != SessionState.IDLE:
            raise SessionStateError(f"Cannot index a session in state {self.state.value}")
        if self.cursor is None:
            self.open()

        self.cursor.seek(self.preamble.data_offset)
        indexer = FrameIndexer(self.policy)
        indexer.on_advisory = self._emit
        self.index = indexer.build(self.cursor)
        self.state = SessionState.INDEXED
        return self.index

    def stream(self, sink):
        """Run the stream pass, forwarding payload bytes to sink. Requires a built index."""
        if self.state != SessionState.INDEXED:
            raise SessionStateError(f"Cannot stream a session in state {self.state.value}, index it first")

        streamer = FrameStreamer(self.policy)
        streamer.on_advisory = self._emit
        streamer.on_frame = self.on_frame

        self.state = SessionState.STREAMING
        try:
            self.cursor.seek(self.index.start_offset)
            if self.config.decoder.replay == "indexed":
                self.result = streamer.stream_indexed(self.cursor, self.index, sink)
            else:
                self.result = streamer.stream(self.cursor, sink)
        except LogReadError:
            self.state = SessionState.CANCELLED
            raise

        if self.result.status == StreamStatus.STOPPED_ON_CORRUPTION:
            self.state = SessionState.STOPPED_ON_CORRUPTION
        else:
            self.state = SessionState.COMPLETED
        return self.result

    def quick_check(self):
        """
        Confirm the log holds at least one frame without indexing it.

        Reads only the first frame, with the stream pass's bounds check, and
        rewinds to it afterwards. Returns True when that frame is readable.
        """
        if self.cursor is None:
            self.open()

        start = self.preamble.data_offset
        self.cursor.seek(start)
        first = next(FrameStreamer(self.policy).iter_frames(self.cursor), None)
        self.cursor.seek(start)
        return first is not None

    def run(self, sink):
        """Open, index, stream and close. Returns the StreamResult."""
        try:
            self.open()
            self.build_index()
            return self.stream(sink)
        finally:
            self.close()

    def close(self):
        if self.cursor is not None and self.cursor is not self.source:
            self.cursor.close()

    def __enter__(self):
        self.open()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
        return False
