"""
Binary frame log decoder with resynchronization
"""
from .advisories import Advisory, AdvisoryKind
from .config import FramelogConfig, DecoderConfig, PreambleConfig, ServerConfig, load_config
from .cursor import ByteCursor
from .errors import (FrameLogError, LogOpenError, LogReadError, HeaderError, SyncMismatch,
                     EmptyLogError, TimestampRegressionError, SessionStateError)
from .header import FrameHeader, HEADER_SIZE, validate_at, read_header, encode_frame, decode_frame
from .indexer import FrameIndex, FrameIndexEntry, FrameIndexer, build_index
from .policy import ResyncPolicy, Anomaly, Verdict, MAX_PAYLOAD_LENGTH
from .preamble import LogPreamble, read_preamble, encode_preamble
from .session import DecodeSession, SessionState
from .sinks import PayloadSink, CollectingSink, CountingSink, BsonDocumentSink
from .streamer import FrameStreamer, DecodedFrame, StreamResult, StreamStatus

__all__ = ['Advisory', 'AdvisoryKind',
           'FramelogConfig', 'DecoderConfig', 'PreambleConfig', 'ServerConfig', 'load_config',
           'ByteCursor',
           'FrameLogError', 'LogOpenError', 'LogReadError', 'HeaderError', 'SyncMismatch',
           'EmptyLogError', 'TimestampRegressionError', 'SessionStateError',
           'FrameHeader', 'HEADER_SIZE', 'validate_at', 'read_header', 'encode_frame', 'decode_frame',
           'FrameIndex', 'FrameIndexEntry', 'FrameIndexer', 'build_index',
           'ResyncPolicy', 'Anomaly', 'Verdict', 'MAX_PAYLOAD_LENGTH',
           'LogPreamble', 'read_preamble', 'encode_preamble',
           'DecodeSession', 'SessionState',
           'PayloadSink', 'CollectingSink', 'CountingSink', 'BsonDocumentSink',
           'FrameStreamer', 'DecodedFrame', 'StreamResult', 'StreamStatus']
