"""Structured advisories for non-fatal log anomalies."""

from enum import Enum
from dataclasses import dataclass, field
from typing import Dict, Any


class AdvisoryKind(Enum):
    """Kinds of non-fatal anomalies reported while decoding"""
    RESYNC = "resync"
    TIMESTAMP_REGRESSION = "timestamp_regression"
    TRUNCATED_TAIL = "truncated_tail"
    PAYLOAD_OUT_OF_BOUNDS = "payload_out_of_bounds"
    SEPARATOR_NOT_FOUND = "separator_not_found"
    POSSIBLY_INCOMPATIBLE = "possibly_incompatible"
    LIKELY_INCOMPATIBLE = "likely_incompatible"


@dataclass(frozen=True)
class Advisory:
    """One anomaly, located at a byte offset in the log"""
    kind: AdvisoryKind
    offset: int
    message: str
    detail: Dict[str, Any] = field(default_factory=dict)

    def __str__(self):
        return f"0x{self.offset:08X}: {self.kind.value}: {self.message}"

    def to_dict(self):
        return {
            'kind': self.kind.value,
            'offset': self.offset,
            'message': self.message,
            'detail': dict(self.detail),
        }


class AdvisoryLog:
    """Collects advisories for one pass and forwards each one to a callback."""

    def __init__(self, callback=None):
        self.items = []
        self.callback = callback  # Callback(advisory)

    def emit(self, kind: AdvisoryKind, offset: int, message: str, **detail) -> Advisory:
        advisory = Advisory(kind, offset, message, detail)
        self.items.append(advisory)
        if self.callback:
            self.callback(advisory)
        return advisory

    def of_kind(self, kind: AdvisoryKind):
        return [a for a in self.items if a.kind == kind]

    def __len__(self):
        return len(self.items)

