"""
Test Configuration
==================

Pytest fixtures for building synthetic frame logs.
"""

import struct

import pytest

from framelog.config import FramelogConfig
from framelog.header import encode_frame


def build_log(frames):
    """Concatenate (timestamp_ms, payload) pairs into log bytes."""
    return b"".join(encode_frame(ts, payload) for ts, payload in frames)


def raw_header(timestamp_ms, raw_size_field):
    """A header with an arbitrary size field, sync pad included."""
    return struct.pack("<IQ", timestamp_ms, raw_size_field)


@pytest.fixture
def sample_frames():
    """Five well-formed frames with increasing timestamps."""
    return [
        (1000, b"\x01\x02\x03"),
        (1010, b"hello"),
        (1020, bytes(range(1, 40))),
        (1030, b"\xff" * 7),
        (1045, b"z"),
    ]


@pytest.fixture
def corrupted_log():
    """
    Two good frames, one header with a non-zero sync pad, then two more good frames.

    Byte layout:
        0    frame A (ts 100, 20 bytes)
        32   frame B (ts 200, 16 bytes)
        60   corrupted header (sync pad 0x01 in byte 5 of the size field) + 40 bytes of 0xFF
        112  frame D (ts 0x01020304, 257 bytes)
        381  frame E (ts 0x01020310, 30 bytes)

    The bytes around the corrupted span are chosen so that no offset between
    61 and 111 passes the sync check.
    """
    data = (
        encode_frame(100, b"\xaa" * 20)
        + encode_frame(200, b"\xbb" * 16)
        + raw_header(300, (1 << 40) | 40) + b"\xff" * 40
        + encode_frame(0x01020304, b"\xdd" * 257)
        + encode_frame(0x01020310, b"\xee" * 30)
    )
    return data


@pytest.fixture
def write_log(tmp_path):
    """Write log bytes to a temporary file and return its path."""
    def _write(data, name="test.log"):
        path = tmp_path / name
        path.write_bytes(data)
        return path
    return _write


@pytest.fixture
def raw_config():
    """Default configuration for logs without a text preamble."""
    config = FramelogConfig()
    config.preamble.enabled = False
    return config
