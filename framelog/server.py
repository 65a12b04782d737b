"""
Frame Log Server

A local HTTP server that serves indexed frames from a recorded log on demand.
The log is indexed once at startup; each request seeks straight to the frames
it needs, so memory use stays constant whatever the file size.

Usage:
    framelog-server <logfile> [--port 5000] [--config decoder.yaml]
    python -m framelog.server <logfile> ...

Endpoints:
    /api/info               file, index summary and preamble
    /api/frames?start&end   frames [start, end) with hex payloads
    /api/frame_at?t=        frame covering timestamp t (ms)
    /api/advisories?kind=   anomalies found while indexing
"""

import os
import sys
import argparse
import threading

from flask import Flask, jsonify, request
from flask_cors import CORS

from .advisories import AdvisoryKind
from .config import load_config
from .errors import FrameLogError
from .session import DecodeSession
from .streamer import FrameStreamer

app = Flask(__name__)
CORS(app)  # Enable CORS for local development

# Global state
current_log = None
current_filepath = None
server_config = None

# One cursor serves every request; reads must not interleave
cursor_lock = threading.Lock()


def load_log(filepath, config=None):
    """Open and index a log, making it the one served by the API."""
    global current_log, current_filepath, server_config

    config = config or load_config()
    session = DecodeSession(filepath, config)
    try:
        session.open()
        session.build_index()
    except FrameLogError:
        session.close()
        raise

    if current_log is not None:
        current_log.close()

    current_log = session
    current_filepath = filepath
    server_config = config.server
    return session


def _frame_to_dict(frame_num, frame):
    return {
        'index': frame_num,
        'offset': frame.offset,
        'timestamp_ms': frame.timestamp_ms,
        'length': len(frame.payload),
        'payload': frame.payload.hex(),
    }


# ================================================================================================
# Flask Routes
# ================================================================================================

@app.route('/api/info')
def get_info():
    """Return information about the currently loaded log."""
    if current_log is None:
        return jsonify({'error': 'No log file loaded'}), 404

    preamble = current_log.preamble
    return jsonify({
        'filename': os.path.basename(current_filepath),
        'file_size': current_log.cursor.size,
        'total_frames': len(current_log.index),
        'summary': current_log.index.summary(),
        'preamble': {
            'separator_found': preamble.separator_found,
            'banner': preamble.banner,
            'git_hash': preamble.git_hash,
            'object_hash': preamble.object_hash,
            'data_offset': preamble.data_offset,
        },
    })


@app.route('/api/frames')
def get_frames():
    """
    Return a chunk of frames.

    Query parameters:
        start: First frame index (inclusive)
        end: Last frame index (exclusive)

    Returns:
        JSON with 'frames' array and 'total' count
    """
    if current_log is None:
        return jsonify({'error': 'No log file loaded'}), 404

    try:
        start_frame = int(request.args.get('start', 0))
        end_frame = int(request.args.get('end', start_frame + server_config.frames_per_page))
    except ValueError:
        return jsonify({'error': 'start and end must be integers'}), 400

    end_frame = min(end_frame, start_frame + server_config.max_frames_per_request)

    index = current_log.index
    frames = []
    frame_range = index.get_frame_range(start_frame, end_frame)
    if frame_range is not None:
        streamer = FrameStreamer(current_log.policy)
        with cursor_lock:
            for frame_num in range(*frame_range):
                frame = streamer.read_frame(current_log.cursor, index[frame_num])
                frames.append(_frame_to_dict(frame_num, frame))

    print(f"API /frames: requested frames {start_frame}-{end_frame}, returned {len(frames)} frames", flush=True)

    return jsonify({
        'frames': frames,
        'total': len(index),
    })


@app.route('/api/frame_at')
def get_frame_at():
    """Return the frame that covers timestamp t (ms)."""
    if current_log is None:
        return jsonify({'error': 'No log file loaded'}), 404

    try:
        timestamp_ms = int(request.args['t'])
    except (KeyError, ValueError):
        return jsonify({'error': 't must be an integer timestamp in ms'}), 400

    frame_num = current_log.index.find_frame_at(timestamp_ms)
    if frame_num is None:
        return jsonify({'error': f'No frame at or before {timestamp_ms} ms'}), 404

    streamer = FrameStreamer(current_log.policy)
    with cursor_lock:
        frame = streamer.read_frame(current_log.cursor, current_log.index[frame_num])
    return jsonify(_frame_to_dict(frame_num, frame))


@app.route('/api/advisories')
def get_advisories():
    """Return the anomalies reported while opening and indexing the log, optionally of one kind."""
    if current_log is None:
        return jsonify({'error': 'No log file loaded'}), 404

    kind = request.args.get('kind')
    if kind is None:
        advisories = current_log.advisories.items
    else:
        try:
            advisories = current_log.advisories.of_kind(AdvisoryKind(kind))
        except ValueError:
            return jsonify({'error': f'Unknown advisory kind: {kind}'}), 400

    return jsonify({'advisories': [a.to_dict() for a in advisories]})


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description='Frame Log Server')
    parser.add_argument('logfile', help='Binary log file to serve')
    parser.add_argument('-c', '--config', help='YAML file with decoder settings')
    parser.add_argument('--host', help='Interface to listen on (default: from config)')
    parser.add_argument('--port', type=int, help='Port to listen on (default: from config)')

    args = parser.parse_args()

    # Validate log file exists
    if not os.path.exists(args.logfile):
        print(f"Error: Log file not found: {args.logfile}")
        return 1

    config = load_config(args.config)
    host = args.host or config.server.host
    port = args.port or config.server.port

    # Load and index log file
    print(f"Indexing {args.logfile}...")
    try:
        session = load_log(args.logfile, config)
    except (FrameLogError, ValueError) as e:
        print(f"Error indexing log file: {e}")
        return 1

    for advisory in session.advisories.items:
        print(f"WARNING: {advisory}")

    url = f"http://{host}:{port}"
    print(f"\n✅ Frame Log Server")
    print(f"   File: {os.path.basename(args.logfile)}")
    print(f"   Frames: {len(session.index):,}")
    print(f"   URL: {url}\n")

    app.run(host=host, port=port, debug=False)

    return 0


if __name__ == '__main__':
    sys.exit(main())
