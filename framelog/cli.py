"""
Frame log decoder command line.

Indexes a recorded binary frame log, reports anything suspicious found along
the way, then replays the frames into a payload sink.

Usage:
    framelog <logfile> [--index-only] [--quick] [--bson] [--resync scan]
    python -m framelog.cli <logfile> ...

Exit status: 0 when the log decoded to the end, 2 when decoding stopped on
corruption (frames before that point were still decoded), 1 on errors.
"""

import sys
import argparse

from .config import load_config, REPLAY_MODES
from .errors import FrameLogError, EmptyLogError, LogOpenError, TimestampRegressionError
from .policy import RESYNC_MODES
from .session import DecodeSession
from .sinks import BsonDocumentSink, CountingSink
from .streamer import StreamStatus


def parse_args(argv=None):
    parser = argparse.ArgumentParser(description='Index and decode a recorded binary frame log')
    parser.add_argument('logfile', help='Binary log file to decode')
    parser.add_argument('-c', '--config', help='YAML file with decoder settings')
    parser.add_argument('--resync', choices=RESYNC_MODES, help='Resync strategy for corrupted headers')
    parser.add_argument('--replay', choices=REPLAY_MODES, help='Replay frames sequentially or from the index')
    parser.add_argument('--no-preamble', action='store_true', help='Log starts directly with frames')
    parser.add_argument('--index-only', action='store_true', help='Build the index and stop')
    parser.add_argument('--quick', action='store_true', help='Only confirm the log holds data, without indexing')
    parser.add_argument('--bson', action='store_true', help='Decode payloads as a stream of BSON documents')
    parser.add_argument('--show', type=int, default=10, help='Number of index entries to print (default: 10)')
    parser.add_argument('-v', '--verbose', action='store_true', help='Print every frame and record')
    return parser.parse_args(argv)


def build_config(args):
    config = load_config(args.config)
    if args.resync:
        config.decoder.resync_mode = args.resync
    if args.replay:
        config.decoder.replay = args.replay
    if args.no_preamble:
        config.preamble.enabled = False
    return config


def print_advisory(advisory):
    print(f"WARNING: {advisory}")


def print_index(index, count):
    summary = index.summary()
    print(f"\nFrame index sample (first {min(count, len(index))} frames):")
    for n, entry in enumerate(index.entries[:count]):
        print(f"  Frame {n}: offset 0x{entry.offset:08X}, t={entry.timestamp_ms} ms, {entry.payload_length} bytes")

    print(f"\nTime span: {summary['first_timestamp_ms']} .. {summary['last_timestamp_ms']} ms "
          f"({summary['duration_ms'] / 1000.0:.1f} s, mean interval {summary['mean_interval_ms']:.1f} ms)")
    if summary['resync_spans']:
        print(f"Resynced over {summary['resync_spans']} corrupted spans ({summary['resync_bytes']:,} bytes)")
    if summary['timestamp_regressions']:
        print(f"{summary['timestamp_regressions']} timestamp regressions")


def make_sink(args):
    if not args.bson:
        return CountingSink()

    sink = BsonDocumentSink()
    if args.verbose:
        sink.on_record = lambda doc: print(f"  REC: {doc}")
    sink.on_error = lambda offset, msg: print(f"WARNING: payload stream 0x{offset:08X}: {msg}")
    return sink


def main(argv=None):
    args = parse_args(argv)

    try:
        session = DecodeSession(args.logfile, build_config(args))
    except (TypeError, ValueError) as e:
        print(f"Error: Bad configuration: {e}")
        return 1

    session.on_advisory = print_advisory
    if args.verbose:
        frame_count = [0]

        def on_frame(frame):
            frame_count[0] += 1
            print(f"{frame_count[0]:10}: 0x{frame.offset:08X}: T {frame.timestamp_ms:10} ms, LEN {len(frame.payload)}")

        session.on_frame = on_frame

    try:
        session.open()

        if args.quick:
            if session.quick_check():
                print(f"✅ {args.logfile} contains log data")
                return 0
            print(f"Error: Empty logfile. No log data can be found in {args.logfile}")
            return 1

        print(f"Indexing {args.logfile}...")
        index = session.build_index()
        print(f"✅ Indexed {len(index):,} frames ({session.cursor.size:,} bytes)")
        print_index(index, args.show)

        if args.index_only:
            return 0

        sink = make_sink(args)
        print(f"\nDecoding {len(index):,} frames...")
        result = session.stream(sink)

    except LogOpenError as e:
        print(f"Error: {e}")
        return 1
    except EmptyLogError as e:
        print(f"Error: Empty logfile. {e}")
        return 1
    except TimestampRegressionError as e:
        print(f"Error: Logfile corrupted. {e} ({len(e.partial_index)} frames indexed before it)")
        return 1
    except FrameLogError as e:
        print(f"Error: {e}")
        return 1
    finally:
        session.close()

    if args.bson:
        print(f"   Records: {sink.documents:,} BSON documents ({sink.errors} errors, {sink.pending} bytes pending)")

    if result.status == StreamStatus.STOPPED_ON_CORRUPTION:
        print(f"Error: Logfile corrupted at 0x{result.stop_offset:08X}. "
              f"Stopped decoding, data up to this point is kept ({result.frames_forwarded:,} frames)")
        return 2

    print(f"✅ Decoded {result.frames_forwarded:,} frames ({result.bytes_forwarded:,} payload bytes)")
    return 0


if __name__ == '__main__':
    sys.exit(main())
