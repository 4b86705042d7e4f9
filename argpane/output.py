"""Worker output protocol.

The worker's stdout is free text except for control records, framed by
MARKER (a Unicode non-character)::

    MARKER id MARKER "progress-bar" MARKER description MARKER value MARKER "\\n"

The trailing newline only keeps raw output readable; the decoder drops it.
Anything that doesn't parse as a complete record is kept as plain text.
"""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .ansi import strip_ansi
from .constants import MARKER, PROGRESS_BAR_KIND
from .logging_setup import get_logger

if TYPE_CHECKING:
    from collections.abc import Hashable

__all__ = [
    "OutputDecoder",
    "OutputSegment",
    "ProgressBarOutput",
    "TextOutput",
    "encode_progress_bar",
    "progress_bar",
    "progress_bar_with_id",
    "stable_id",
]

_RECORD_FIELDS = 4  # id, kind, description, value
_ID_MASK = 0xFFFF_FFFF_FFFF_FFFF


@dataclass
class TextOutput:
    """A run of plain program output, ANSI styling included."""

    text: str


@dataclass
class ProgressBarOutput:
    """State of a progress bar."""

    description: str
    value: float  # within [0, 1]


OutputPayload = TextOutput | ProgressBarOutput


@dataclass
class OutputSegment:
    """An output element, `id` 0 for plain text."""

    id: int
    payload: OutputPayload


def stable_id(key: Hashable) -> int:
    """Return a non-zero unsigned 64 bits id for any hashable `key`.

    The id is stable for the lifetime of the process.
    """
    return (hash(key) & _ID_MASK) or 1


def encode_progress_bar(record_id: int, description: str, value: float) -> str:
    """Return the control record of a progress bar update."""
    fields = (str(record_id), PROGRESS_BAR_KIND, description.replace("\n", " ").replace(MARKER, ""), repr(float(value)))
    return MARKER + MARKER.join(fields) + MARKER + "\n"


def progress_bar(description: str, value: float) -> None:
    """Display a progress bar, the description identifying it.

    First call creates the progress bar, later calls update it.
    If the description changes between calls, use `progress_bar_with_id`.

    Args:
        description: Text displayed with the bar
        value: Progress, between 0 and 1
    """
    progress_bar_with_id(description, description, value)


def progress_bar_with_id(key: Hashable, description: str, value: float) -> None:
    """Display a progress bar identified by `key`.

    Args:
        key: Any hashable value identifying this progress bar
        description: Text displayed with the bar
        value: Progress, between 0 and 1
    """
    sys.stdout.write(encode_progress_bar(stable_id(key), description, value))
    sys.stdout.flush()


def _parse_record(fields: list[str]) -> tuple[int, OutputPayload] | None:
    """Parse the fields of a control record, None if it isn't one."""
    if len(fields) != _RECORD_FIELDS:
        return None
    raw_id, kind, description, raw_value = fields
    if not (raw_id.isascii() and raw_id.isdigit()) or kind != PROGRESS_BAR_KIND:
        return None
    try:
        value = float(raw_value)
    except ValueError:
        return None
    if math.isnan(value):
        return None
    return int(raw_id), ProgressBarOutput(description, min(max(value, 0.0), 1.0))


@dataclass
class OutputDecoder:
    """Decode worker output into an ordered list of segments."""

    segments: list[OutputSegment] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.log = get_logger("argpane.output")

    def _append_text(self, text: str) -> None:
        if text:
            self.segments.append(OutputSegment(0, TextOutput(text)))

    def _apply(self, segment_id: int, payload: OutputPayload) -> None:
        if segment_id:
            for segment in self.segments:
                if segment.id == segment_id:
                    segment.payload = payload
                    return
        self.segments.append(OutputSegment(segment_id, payload))

    def feed(self, text: str) -> None:
        """Decode a chunk of output.

        Args:
            text: Output drained from the worker since the last call
        """
        if not text:
            return
        parts = text.split(MARKER)
        pending = parts[0]
        index = 1
        while index < len(parts):
            record = _parse_record(parts[index : index + _RECORD_FIELDS])
            if record is None:
                # stray marker, keep it verbatim
                pending += MARKER + parts[index]
                index += 1
                continue
            if index + _RECORD_FIELDS >= len(parts):
                # closing marker not received
                pending += MARKER + MARKER.join(parts[index:])
                break
            self._append_text(pending)
            self._apply(*record)
            pending = parts[index + _RECORD_FIELDS].removeprefix("\n")
            index += _RECORD_FIELDS + 1
        else:
            self._append_text(pending)
            return
        self.log.debug("Incomplete control record kept as text")
        self._append_text(pending)

    def plain_text(self) -> str:
        """Return the output as copyable text, without ANSI styling."""
        chunks = []
        for segment in self.segments:
            if isinstance(segment.payload, TextOutput):
                chunks.append(segment.payload.text)
            else:
                chunks.append(segment.payload.description + "\n")
        return strip_ansi("".join(chunks))

    def clear(self) -> None:
        """Forget every segment."""
        self.segments.clear()
