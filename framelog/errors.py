"""
Exceptions raised by the frame log decoder.

Corruption found while streaming is not an exception: the streamer reports it
through StreamResult.status so that frames decoded so far remain usable.
"""


class FrameLogError(Exception):
    """Base class for all frame log errors."""


class LogOpenError(FrameLogError):
    """The log source could not be opened."""

    def __init__(self, path, reason):
        self.path = path
        self.reason = reason
        super().__init__(f"Unable to open log file <{path}>: {reason}")


class LogReadError(FrameLogError):
    """A read from the log source failed (closed or invalidated source)."""


class HeaderError(FrameLogError):
    """A frame header could not be accepted."""

    def __init__(self, offset, message):
        self.offset = offset
        super().__init__(f"0x{offset:08X}: {message}")


class SyncMismatch(HeaderError):
    """The high 48 bits of the size field were not zero."""

    def __init__(self, offset, raw_size_field):
        self.raw_size_field = raw_size_field
        super().__init__(
            offset,
            f"Wrong sync bytes. Got 0x{raw_size_field & 0xFFFFFFFFFFFF0000:016X}, expected 0x00",
        )


class EmptyLogError(FrameLogError):
    """The index pass found no complete frame."""

    def __init__(self, start_offset, size):
        self.start_offset = start_offset
        self.size = size
        super().__init__(f"No log data found (scanned {size - start_offset} bytes from offset {start_offset})")


class TimestampRegressionError(FrameLogError):
    """Too many timestamp regressions were seen in strict mode."""

    def __init__(self, offset, regressions, partial_index):
        self.offset = offset
        self.regressions = regressions
        self.partial_index = partial_index
        super().__init__(f"0x{offset:08X}: {regressions} timestamp regressions exceed the configured limit")


class SessionStateError(FrameLogError):
    """A decode session operation was called in the wrong state."""
