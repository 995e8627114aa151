"""Text Frame Types for Backend Communication

This module defines the line-oriented frame format spoken over the backend
process's stdin/stdout.

## Frame Format

```
<NAME> START
<payload, may span several lines>
<NAME> END
```

NAME is one or more uppercase letters or underscores. Markers are
case-sensitive and the start marker must begin a line.

## Reserved Names

- SELECT_LANGUAGE (outbound): language code, sent before every question
- FREECODING_QUESTION (outbound): question text
- FREECODING_ANSWER (inbound): answer text

Every other name is a generic event, in both directions.
"""

import re
from dataclasses import dataclass
from enum import Enum


START_SUFFIX = "START"
END_SUFFIX = "END"

# Matches a complete frame name
NAME_RE = re.compile(r"[A-Z_]+")

# Start marker anchored at a line start; group 1 is the frame name
START_MARKER_RE = re.compile(r"^([A-Z_]+) START", re.MULTILINE)


class FrameName:
    """Reserved frame names"""
    SELECT_LANGUAGE = "SELECT_LANGUAGE"
    QUESTION = "FREECODING_QUESTION"
    ANSWER = "FREECODING_ANSWER"
    DOCUMENT_LOAD = "DOCUMENT_LOAD"


class EventKind(Enum):
    """How an inbound frame is dispatched"""
    ANSWER = "answer"  # Delivered to the channel's answer slot
    EVENT = "event"  # Published to the subscription registry by name

    @classmethod
    def for_name(cls, name: str) -> "EventKind":
        """Classify a frame name"""
        if name == FrameName.ANSWER:
            return cls.ANSWER
        return cls.EVENT


def is_valid_name(name: str) -> bool:
    """Check whether a string is usable as a frame name"""
    return NAME_RE.fullmatch(name) is not None


def start_marker(name: str) -> str:
    return f"{name} {START_SUFFIX}"


def end_marker(name: str) -> str:
    return f"{name} {END_SUFFIX}"


@dataclass(frozen=True)
class Frame:
    """A decoded protocol frame"""
    name: str
    payload: str

    @property
    def kind(self) -> EventKind:
        return EventKind.for_name(self.name)

    @classmethod
    def answer(cls, text: str) -> "Frame":
        """Create a FREECODING_ANSWER frame"""
        return cls(FrameName.ANSWER, text)

    @classmethod
    def question(cls, text: str) -> "Frame":
        """Create a FREECODING_QUESTION frame"""
        return cls(FrameName.QUESTION, text)

    @classmethod
    def select_language(cls, code: str) -> "Frame":
        """Create a SELECT_LANGUAGE frame"""
        return cls(FrameName.SELECT_LANGUAGE, code)

    def __repr__(self):
        preview = self.payload if len(self.payload) <= 40 else self.payload[:37] + "..."
        return f"Frame({self.name}, {preview!r})"
