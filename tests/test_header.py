import struct

import pytest

from framelog.cursor import ByteCursor
from framelog.errors import SyncMismatch
from framelog.header import (HEADER_SIZE, FrameHeader, decode_frame, encode_frame,
                             read_header, validate_at)


def test_header_layout_is_little_endian():
    data = encode_frame(0x11223344, b"\xab\xcd")
    assert HEADER_SIZE == 12
    assert data[:4] == b"\x44\x33\x22\x11"
    assert data[4:12] == b"\x02\x00\x00\x00\x00\x00\x00\x00"
    assert data[12:] == b"\xab\xcd"


@pytest.mark.parametrize("timestamp, payload", [
    (0, b"\x00"),
    (123456, b"telemetry"),
    (0xFFFFFFFF, bytes(range(256)) * 4),
    (42, b"\x5a" * 0xFFFF),
])
def test_encode_decode_round_trip(timestamp, payload):
    assert decode_frame(encode_frame(timestamp, payload)) == (timestamp, payload)


def test_timestamp_wraps_at_32_bits():
    ts, _ = decode_frame(encode_frame((1 << 32) + 5, b"x"))
    assert ts == 5


def test_encode_rejects_oversized_payload():
    with pytest.raises(ValueError):
        encode_frame(0, b"\x00" * 0x10000)


def test_validate_at_accepts_well_formed_header():
    cursor = ByteCursor.from_bytes(encode_frame(77, b"abc"))
    header = validate_at(cursor)
    assert header == FrameHeader(77, 3)
    assert header.payload_length == 3
    assert header.frame_size == 15
    # The payload is left for the caller
    assert cursor.position() == HEADER_SIZE


def test_validate_at_rejects_non_zero_sync_pad():
    data = struct.pack("<IQ", 5, (1 << 16) | 3) + b"abc"
    cursor = ByteCursor.from_bytes(data)
    with pytest.raises(SyncMismatch) as exc_info:
        validate_at(cursor)
    assert exc_info.value.offset == 0
    assert exc_info.value.raw_size_field == (1 << 16) | 3


def test_only_low_16_bits_are_the_payload_length():
    header = FrameHeader(0, 0xABCD_0000_1234)
    assert header.payload_length == 0x1234
    assert not header.sync_ok


def test_short_header_returns_none():
    cursor = ByteCursor.from_bytes(b"\x00" * (HEADER_SIZE - 1))
    assert validate_at(cursor) is None
    assert read_header(cursor) is None
    assert cursor.position() == 0


def test_read_header_skips_sync_check():
    cursor = ByteCursor.from_bytes(struct.pack("<IQ", 9, 1 << 40))
    header = read_header(cursor)
    assert header.raw_size_field == 1 << 40


def test_decode_frame_rejects_truncated_payload():
    data = encode_frame(1, b"abcdef")[:-2]
    with pytest.raises(ValueError):
        decode_frame(data)
