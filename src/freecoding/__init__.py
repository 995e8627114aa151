"""FreeCoding bridge - framed question/answer transport to a backend process

This library reconstructs named frames from the backend's stdout, routes
answers and side-channel events to the right consumer, and buffers
questions submitted before the backend writer is attached.
"""

__version__ = "0.1.0"

from freecoding.frame import (
    Frame,
    FrameName,
    EventKind,
    is_valid_name,
)

from freecoding.decoder import FrameDecoder

from freecoding.channel import (
    Channel,
    ChannelError,
    ProtocolViolation,
    Question,
    QuestionOutbox,
    OutboxState,
    SessionConfig,
    DEFAULT_LANGUAGE,
)

from freecoding.router import EventRouter

from freecoding.writer import (
    FrameWriter,
    EncodeError,
    encode_frame,
    encode_question,
)

from freecoding.config import BridgeConfig, ConfigError

from freecoding.process import (
    BackendProcess,
    BackendError,
    SpawnError,
    ProcessExited,
    Closed,
)

from freecoding.chat import ChatSession

__all__ = [
    "__version__",
    # Frames
    "Frame",
    "FrameName",
    "EventKind",
    "is_valid_name",
    # Decoder
    "FrameDecoder",
    # Channel
    "Channel",
    "ChannelError",
    "ProtocolViolation",
    "Question",
    "QuestionOutbox",
    "OutboxState",
    "SessionConfig",
    "DEFAULT_LANGUAGE",
    # Router
    "EventRouter",
    # Writer
    "FrameWriter",
    "EncodeError",
    "encode_frame",
    "encode_question",
    # Config
    "BridgeConfig",
    "ConfigError",
    # Process
    "BackendProcess",
    "BackendError",
    "SpawnError",
    "ProcessExited",
    "Closed",
    # Chat
    "ChatSession",
]
