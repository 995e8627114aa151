"""Incremental Frame Decoder

Reassembles named frames from backend stdout, which arrives in chunks of
arbitrary size. Feeding the chunks one at a time yields exactly the frames
that feeding their concatenation at once would yield.

## Scanning Rules

- Idle: look for the first `<NAME> START` at the beginning of a line.
  Text before it is noise and is discarded. When no marker is present the
  buffer is dropped, except for an unterminated last line that may still
  grow into a start marker (e.g. `FREECODING_ANS`).
- Capturing: look for the literal `<NAME> END` for the same name. Until it
  shows up the partial payload is kept. Start markers of other names are
  plain payload; frames never nest.
- Text after an end marker on the same line is not at a line start, so it
  can never open a new frame.
"""

import codecs
import logging
from typing import List, Optional

from freecoding.frame import (
    Frame,
    START_MARKER_RE,
    START_SUFFIX,
    end_marker,
    is_valid_name,
)


logger = logging.getLogger(__name__)

# Longest unterminated line kept while waiting for a start marker to complete
DEFAULT_MAX_MARKER_LENGTH = 256


def could_begin_start_marker(line: str) -> bool:
    """Check whether an unterminated line is a prefix of some start marker

    Args:
        line: Text after the last newline of the buffer

    Returns:
        True if more input could turn the line into `<NAME> START`
    """
    if not line:
        return False
    name, sep, rest = line.partition(" ")
    if not is_valid_name(name):
        return False
    if not sep:
        return True
    return START_SUFFIX.startswith(rest)


class FrameDecoder:
    """Stateful decoder turning byte chunks into frames"""

    def __init__(self, max_marker_length: int = DEFAULT_MAX_MARKER_LENGTH, encoding: str = "utf-8"):
        """Create a new decoder

        Args:
            max_marker_length: Longest unterminated line kept while idle
            encoding: Text encoding of the stream
        """
        self.max_marker_length = max_marker_length
        self.encoding = encoding
        self._text_decoder = codecs.getincrementaldecoder(encoding)(errors="replace")
        self._buffer = ""
        self._capturing: Optional[str] = None
        self._at_line_start = True
        self._search_from = 0

    @property
    def capturing(self) -> Optional[str]:
        """Name of the frame currently open, None when idle"""
        return self._capturing

    @property
    def pending(self) -> str:
        """Text retained for the next call"""
        return self._buffer

    def feed(self, chunk: bytes) -> List[Frame]:
        """Consume a chunk of raw bytes

        Args:
            chunk: Bytes read from the stream, split anywhere

        Returns:
            Frames completed by this chunk, in stream order
        """
        return self.feed_text(self._text_decoder.decode(chunk))

    def feed_text(self, text: str) -> List[Frame]:
        """Consume already decoded text"""
        self._buffer += text
        frames = []
        while True:
            if self._capturing is None:
                if not self._open_frame():
                    break
            else:
                frame = self._close_frame()
                if frame is None:
                    break
                frames.append(frame)
        return frames

    def reset(self) -> None:
        """Discard all state (used when the connection goes away)"""
        if self._capturing is not None:
            logger.debug("Discarding partial %s frame (%d chars)", self._capturing, len(self._buffer))
        self._text_decoder.reset()
        self._buffer = ""
        self._capturing = None
        self._at_line_start = True
        self._search_from = 0

    def _open_frame(self) -> bool:
        """Scan for a start marker. Returns True if a frame was opened."""
        text = self._buffer

        if not self._at_line_start:
            newline = text.find("\n")
            if newline == -1:
                self._buffer = ""
                return False
            text = text[newline + 1:]
            self._at_line_start = True

        match = START_MARKER_RE.search(text)
        if match is None:
            self._buffer = self._keep_tail(text)
            return False

        if match.start() > 0:
            logger.debug("Discarding %d chars of noise", match.start())

        self._capturing = match.group(1)
        self._buffer = text[match.end():]
        self._search_from = 0
        return True

    def _keep_tail(self, text: str) -> str:
        """Return the part of an unmatched buffer worth keeping"""
        tail = text[text.rfind("\n") + 1:]
        if not tail:
            return ""
        if len(tail) <= self.max_marker_length and could_begin_start_marker(tail):
            return tail
        # The rest of this line can no longer start a frame
        self._at_line_start = False
        return ""

    def _close_frame(self) -> Optional[Frame]:
        """Scan for the end marker of the open frame"""
        name = self._capturing
        marker = end_marker(name)

        index = self._buffer.find(marker, self._search_from)
        if index == -1:
            self._search_from = max(0, len(self._buffer) - len(marker) + 1)
            return None

        frame = Frame(name, self._buffer[:index].strip())
        self._buffer = self._buffer[index + len(marker):]
        self._capturing = None
        self._at_line_start = False
        self._search_from = 0

        logger.debug("Decoded %r", frame)
        return frame
