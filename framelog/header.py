"""
Frame header layout and validation.

Each frame starts with a 12-byte little-endian header:

    offset  size  field
    0       4     timestamp in milliseconds (wraps at 2^32)
    4       8     size field: low 16 bits = payload length,
                  high 48 bits = sync pad, must be zero

The sync pad is the format's only alignment check. It catches gross
misalignment, not single-bit payload corruption.
"""

import struct
from dataclasses import dataclass

from .errors import SyncMismatch

HEADER_FORMAT = "<IQ"
HEADER_SIZE = struct.calcsize(HEADER_FORMAT)    # 12
TIMESTAMP_SIZE = 4
SIZE_FIELD_SIZE = 8
SYNC_PAD_SIZE = 6

PAYLOAD_LENGTH_MASK = 0xFFFF
SYNC_MASK = 0xFFFFFFFFFFFF0000
MAX_ENCODABLE_PAYLOAD = PAYLOAD_LENGTH_MASK
TIMESTAMP_MODULUS = 1 << 32


@dataclass(frozen=True)
class FrameHeader:
    timestamp_ms: int
    raw_size_field: int

    @property
    def payload_length(self):
        return self.raw_size_field & PAYLOAD_LENGTH_MASK

    @property
    def sync_ok(self):
        return (self.raw_size_field & SYNC_MASK) == 0

    @property
    def frame_size(self):
        """Header plus payload, in bytes."""
        return HEADER_SIZE + self.payload_length

    @classmethod
    def unpack(cls, data, offset=0):
        timestamp_ms, raw_size_field = struct.unpack_from(HEADER_FORMAT, data, offset)
        return cls(timestamp_ms, raw_size_field)


def read_header(cursor):
    """Read a header at the cursor without checking sync. None if fewer than 12 bytes remain."""
    data = cursor.read_exact(HEADER_SIZE)
    if data is None:
        return None
    return FrameHeader.unpack(data)


def validate_at(cursor):
    """
    Read and validate the header at the cursor's current position.

    The cursor is left just past the header; skipping the payload is up to the
    caller so each pass can apply its own bounds.

    Returns:
        FrameHeader, or None if fewer than HEADER_SIZE bytes remain

    Raises:
        SyncMismatch: any bit above the low 16 of the size field is set
    """
    offset = cursor.position()
    header = read_header(cursor)
    if header is not None and not header.sync_ok:
        raise SyncMismatch(offset, header.raw_size_field)
    return header


def encode_frame(timestamp_ms, payload):
    """Build the bytes of one frame. Timestamps wrap at 2^32."""
    payload = bytes(payload)
    if len(payload) > MAX_ENCODABLE_PAYLOAD:
        raise ValueError(f"Payload of {len(payload)} bytes exceeds the {MAX_ENCODABLE_PAYLOAD} byte limit")
    return struct.pack(HEADER_FORMAT, timestamp_ms % TIMESTAMP_MODULUS, len(payload)) + payload


def decode_frame(data, offset=0):
    """
    Decode one frame from a buffer.

    Returns:
        (timestamp_ms, payload) tuple

    Raises:
        SyncMismatch: the size field fails the sync check
        ValueError: the buffer is too short for the header or payload
    """
    if len(data) - offset < HEADER_SIZE:
        raise ValueError(f"Need {HEADER_SIZE} header bytes at offset {offset}, have {len(data) - offset}")
    header = FrameHeader.unpack(data, offset)
    if not header.sync_ok:
        raise SyncMismatch(offset, header.raw_size_field)
    start = offset + HEADER_SIZE
    end = start + header.payload_length
    if end > len(data):
        raise ValueError(f"Frame at offset {offset} declares {header.payload_length} payload bytes, "
                         f"only {len(data) - start} available")
    return header.timestamp_ms, bytes(data[start:end])
