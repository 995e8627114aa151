"""Frame Writer - encodes outbound frames onto the backend's stdin

## Wire Format

```
SELECT_LANGUAGE START
en
SELECT_LANGUAGE END
FREECODING_QUESTION START
<question text>
FREECODING_QUESTION END
```

Every question is preceded by a SELECT_LANGUAGE frame carrying the language
captured when the question was submitted.
"""

import logging
import threading
from typing import BinaryIO

from freecoding.channel import Question
from freecoding.frame import Frame, end_marker, is_valid_name, start_marker


logger = logging.getLogger(__name__)


class EncodeError(Exception):
    """Frame cannot be represented on the wire"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def encode_frame(frame: Frame, encoding: str = "utf-8") -> bytes:
    """Encode a frame to its wire bytes

    Args:
        frame: Frame to encode
        encoding: Text encoding of the stream

    Returns:
        Start marker line, payload line(s), end marker line

    Raises:
        EncodeError: If the name is invalid or the payload contains the end marker
    """
    if not is_valid_name(frame.name):
        raise EncodeError(f"invalid frame name: {frame.name!r}")

    end = end_marker(frame.name)
    if end in frame.payload:
        raise EncodeError(f"payload contains its own end marker {end!r}")

    text = f"{start_marker(frame.name)}\n{frame.payload}\n{end}\n"
    return text.encode(encoding)


def encode_question(question: Question, encoding: str = "utf-8") -> bytes:
    """Encode the language selection and question frames for one question"""
    return (
        encode_frame(Frame.select_language(question.language), encoding)
        + encode_frame(Frame.question(question.text), encoding)
    )


class FrameWriter:
    """Writes frames to a binary stream"""

    def __init__(self, writer: BinaryIO, encoding: str = "utf-8"):
        """Create a new frame writer

        Args:
            writer: Binary output stream (backend stdin)
            encoding: Text encoding of the stream
        """
        self.writer = writer
        self.encoding = encoding
        self._lock = threading.Lock()

    def write_bytes(self, data: bytes) -> None:
        """Write pre-encoded frame bytes and flush"""
        with self._lock:
            self.writer.write(data)
            self.writer.flush()

    def write(self, frame: Frame) -> None:
        """Write a frame

        Raises:
            EncodeError: If the frame cannot be encoded
        """
        self.write_bytes(encode_frame(frame, self.encoding))

    def write_question(self, question: Question) -> None:
        """Write SELECT_LANGUAGE followed by FREECODING_QUESTION"""
        logger.debug("Sending question (%d chars, language=%s)", len(question.text), question.language)
        self.write_bytes(encode_question(question, self.encoding))
