import io

import pytest

from conftest import build_log
from framelog.advisories import AdvisoryKind
from framelog.config import FramelogConfig
from framelog.cursor import ByteCursor
from framelog.errors import EmptyLogError, LogOpenError, LogReadError, SessionStateError
from framelog.header import HEADER_SIZE
from framelog.preamble import encode_preamble
from framelog.session import DecodeSession, SessionState
from framelog.sinks import CollectingSink
from framelog.streamer import StreamStatus


@pytest.fixture
def log_with_preamble(write_log, sample_frames):
    head = encode_preamble("GCS log", "g1", "o1")
    return write_log(head + build_log(sample_frames)), len(head)


def test_two_pass_decode(log_with_preamble, sample_frames):
    path, head_len = log_with_preamble
    sink = CollectingSink()

    with DecodeSession(path) as session:
        assert session.state == SessionState.IDLE
        assert session.preamble.data_offset == head_len

        index = session.build_index()
        assert session.state == SessionState.INDEXED
        assert index.start_offset == head_len
        assert len(index) == len(sample_frames)

        result = session.stream(sink)

    assert session.state == SessionState.COMPLETED
    assert result.frames_forwarded == len(sample_frames)
    assert bytes(sink.data) == b"".join(p for _, p in sample_frames)
    assert session.cursor.closed


def test_stream_requires_index(log_with_preamble):
    path, _ = log_with_preamble
    with DecodeSession(path) as session:
        with pytest.raises(SessionStateError):
            session.stream(CollectingSink())


def test_index_only_once(log_with_preamble):
    path, _ = log_with_preamble
    with DecodeSession(path) as session:
        session.build_index()
        with pytest.raises(SessionStateError):
            session.build_index()


def test_run_closes_source(log_with_preamble, sample_frames):
    path, _ = log_with_preamble
    session = DecodeSession(path)
    result = session.run(CollectingSink())
    assert result.status == StreamStatus.COMPLETED
    assert session.cursor.closed


def test_missing_file_fails_before_any_pass(tmp_path):
    session = DecodeSession(tmp_path / "nope.log")
    with pytest.raises(LogOpenError):
        session.run(CollectingSink())
    assert session.state == SessionState.IDLE


def test_empty_log_aborts_session(write_log):
    path = write_log(encode_preamble("GCS log", "g", "o"))
    session = DecodeSession(path)
    with pytest.raises(EmptyLogError):
        session.run(CollectingSink())
    assert session.state == SessionState.IDLE
    assert session.index is None


def test_stopped_on_corruption_keeps_partial_result(corrupted_log, raw_config):
    session = DecodeSession(ByteCursor.from_bytes(corrupted_log), raw_config)
    sink = CollectingSink()

    session.open()
    session.build_index()
    result = session.stream(sink)

    assert session.state == SessionState.STOPPED_ON_CORRUPTION
    assert result.frames_forwarded == 2
    assert bytes(sink.data) == b"\xaa" * 20 + b"\xbb" * 16
    kinds = [a.kind for a in session.advisories.items]
    assert kinds == [AdvisoryKind.RESYNC, AdvisoryKind.PAYLOAD_OUT_OF_BOUNDS]


def test_indexed_replay_recovers_frames_after_corruption(corrupted_log, raw_config):
    raw_config.decoder.replay = "indexed"
    session = DecodeSession(ByteCursor.from_bytes(corrupted_log), raw_config)
    result = session.run(CollectingSink())
    assert session.state == SessionState.COMPLETED
    assert result.frames_forwarded == 4


def test_caller_owned_cursor_is_left_open(sample_frames, raw_config):
    cursor = ByteCursor.from_bytes(build_log(sample_frames))
    DecodeSession(cursor, raw_config).run(CollectingSink())
    assert not cursor.closed


def test_advisories_reach_callback(write_log, sample_frames):
    config = FramelogConfig()
    config.preamble.expected_object_hash = "other"
    path = write_log(encode_preamble("GCS log", "g1", "o1") + build_log([(20, b"a"), (10, b"b")]))
    seen = []

    session = DecodeSession(path, config)
    session.on_advisory = seen.append
    session.run(CollectingSink())

    assert [a.kind for a in seen] == [AdvisoryKind.LIKELY_INCOMPATIBLE, AdvisoryKind.TIMESTAMP_REGRESSION]
    assert session.advisories.items == seen


def test_quick_check(write_log, sample_frames):
    path = write_log(build_log(sample_frames))
    config = FramelogConfig()
    config.preamble.enabled = False

    with DecodeSession(path, config) as session:
        assert session.quick_check()
        assert session.cursor.position() == 0
        assert session.state == SessionState.IDLE
        # The full decode still works afterwards
        session.build_index()
        assert session.stream(CollectingSink()).frames_forwarded == len(sample_frames)


class ReadTrackingCursor(ByteCursor):
    """Remembers the furthest offset any read reached."""

    furthest = 0

    def read(self, n):
        data = super().read(n)
        self.furthest = max(self.furthest, self.position())
        return data


def test_quick_check_reads_only_the_first_frame(raw_config):
    frames = [(ts, b"\x42" * 50) for ts in range(1000)]
    data = build_log(frames)
    cursor = ReadTrackingCursor(io.BytesIO(data))

    with DecodeSession(cursor, raw_config) as session:
        assert session.quick_check()

    assert cursor.furthest == HEADER_SIZE + 50
    assert cursor.position() == 0


def test_closing_the_source_cancels_the_stream(sample_frames, raw_config):
    cursor = ByteCursor.from_bytes(build_log(sample_frames))
    session = DecodeSession(cursor, raw_config)
    session.open()
    session.build_index()

    class ClosingSink:
        def accept_byte(self, b):
            cursor.close()

    with pytest.raises(LogReadError):
        session.stream(ClosingSink())
    assert session.state == SessionState.CANCELLED
    assert session.result is None
    with pytest.raises(SessionStateError):
        session.stream(CollectingSink())


def test_quick_check_on_empty_log(write_log, raw_config):
    path = write_log(b"\x00" * 12)
    with DecodeSession(path, raw_config) as session:
        assert not session.quick_check()


def test_on_frame_callback(sample_frames, raw_config):
    frames = []
    session = DecodeSession(ByteCursor.from_bytes(build_log(sample_frames)), raw_config)
    session.on_frame = frames.append
    session.run(CollectingSink())
    assert [f.timestamp_ms for f in frames] == [ts for ts, _ in sample_frames]
