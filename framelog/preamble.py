"""
Text preamble at the start of a recorded log.

A log written by the ground station starts with a few text lines before the
binary frames:

    line 1   banner
    line 2   git hash of the recorder build
    line 3   hash of the object definitions the payloads were encoded with
    ...      optional extra lines
    ##       separator; frames start right after it

The separator is searched for within a limited number of lines. When it
isn't there the whole file is decoded from the start, which is also what
happens with logs that have no preamble at all.
"""

from dataclasses import dataclass
from typing import Tuple

from .advisories import Advisory, AdvisoryKind, AdvisoryLog
from .config import PreambleConfig

MAX_LINE_LENGTH = 256


@dataclass(frozen=True)
class LogPreamble:
    banner: str = ""
    git_hash: str = ""
    object_hash: str = ""
    data_offset: int = 0
    separator_found: bool = False
    advisories: Tuple[Advisory, ...] = ()


def _read_text_line(cursor):
    return cursor.readline(MAX_LINE_LENGTH).decode('latin-1').strip()


def read_preamble(cursor, config=None, on_advisory=None) -> LogPreamble:
    """
    Read the preamble at the cursor and leave the cursor on the first frame.

    Never fails: a missing separator falls back to the starting offset, and
    hash mismatches are only reported as advisories.
    """
    cfg = config or PreambleConfig()
    log = AdvisoryLog(on_advisory)
    start = cursor.position()

    banner = _read_text_line(cursor)
    git_hash = _read_text_line(cursor)
    object_hash = _read_text_line(cursor)

    # Look for the header/body separation string
    found = False
    for _ in range(cfg.max_separator_lines):
        if cursor.at_end():
            break
        if _read_text_line(cursor) == cfg.separator:
            found = True
            break

    if not found:
        log.emit(AdvisoryKind.SEPARATOR_NOT_FOUND, start,
                 f"Cannot find the '{cfg.separator}' separator within {cfg.max_separator_lines} lines. "
                 f"Decoding from the start of the file")
        cursor.seek(start)
        return LogPreamble(data_offset=start, separator_found=False, advisories=tuple(log.items))

    if cfg.expected_object_hash and object_hash != cfg.expected_object_hash:
        log.emit(AdvisoryKind.LIKELY_INCOMPATIBLE, start,
                 f"Likely log file incompatibility: log was made with branch {git_hash}, "
                 f"object hash {object_hash}. Will attempt to decode the file",
                 git_hash=git_hash, object_hash=object_hash)
    elif cfg.expected_git_hash and git_hash != cfg.expected_git_hash:
        log.emit(AdvisoryKind.POSSIBLY_INCOMPATIBLE, start,
                 f"Possible log file incompatibility: log was made with branch {git_hash}. "
                 f"Will attempt to decode the file",
                 git_hash=git_hash)

    return LogPreamble(banner, git_hash, object_hash, cursor.position(), True, tuple(log.items))


def encode_preamble(banner, git_hash, object_hash, separator="##"):
    """Build preamble bytes in the layout read_preamble() expects."""
    return f"{banner}\n{git_hash}\n{object_hash}\n{separator}\n".encode('latin-1')
