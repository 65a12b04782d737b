"""
Payload sinks.

A sink is the byte-oriented input of a payload decoder: the streamer calls
accept_byte() once per payload byte, in file order. Record boundaries are the
sink's business, and completed records are reported through its own callbacks.
"""

import struct

from bson import BSON
from bson.errors import InvalidBSON

# BSON document: int32 total length, elements, trailing 0x00
BSON_MIN_DOC_SIZE = 5
BSON_MAX_DOC_SIZE = 16 * 1024 * 1024


class PayloadSink:
    """Base class for payload sinks"""

    def accept_byte(self, b):
        raise NotImplementedError


class CollectingSink(PayloadSink):
    """Keeps every byte it is given."""

    def __init__(self):
        self.data = bytearray()

    def accept_byte(self, b):
        self.data.append(b)

    def __len__(self):
        return len(self.data)


class CountingSink(PayloadSink):
    """Counts bytes and throws them away."""

    def __init__(self):
        self.count = 0

    def accept_byte(self, b):
        self.count += 1


class BsonDocumentSink(PayloadSink):
    """
    Reassembles BSON documents from a byte stream.

    Each document is length-prefixed (little-endian int32, counting itself),
    so the sink buffers bytes until the declared length has arrived and then
    decodes the document. A length that can't be right, or a document that
    fails to decode, is reported and skipped by dropping one byte and trying
    again from the next.
    """

    def __init__(self, max_doc_size=BSON_MAX_DOC_SIZE):
        self.max_doc_size = max_doc_size
        self.buffer = bytearray()
        self.stream_offset = 0      # payload-stream offset of buffer[0]
        self.documents = 0
        self.errors = 0

        self.on_record = None   # Callback(document)
        self.on_error = None    # Callback(stream_offset, message)

    def accept_byte(self, b):
        self.buffer.append(b)
        self._drain()

    def _drain(self):
        while len(self.buffer) >= 4:
            doc_len = struct.unpack_from("<i", self.buffer)[0]
            if doc_len < BSON_MIN_DOC_SIZE or doc_len > self.max_doc_size:
                self._skip_byte(f"Unlikely BSON document length {doc_len}")
                continue

            if len(self.buffer) < doc_len:
                return

            raw = bytes(self.buffer[:doc_len])
            try:
                document = BSON(raw).decode()
            except InvalidBSON as e:
                self._skip_byte(f"Invalid BSON document: {e}")
                continue

            del self.buffer[:doc_len]
            self.stream_offset += doc_len
            self.documents += 1
            if self.on_record:
                self.on_record(document)

    def _skip_byte(self, message):
        self.errors += 1
        if self.on_error:
            self.on_error(self.stream_offset, message)
        del self.buffer[:1]
        self.stream_offset += 1

    @property
    def pending(self):
        """Bytes buffered toward an incomplete document."""
        return len(self.buffer)
