"""Event Router - gives decoded frames their protocol meaning

The decoder is name-agnostic. This is the only place where a frame name
decides where the payload goes:

- FREECODING_ANSWER → Channel.deliver_answer
- anything else     → Channel.publish(name, payload)
"""

import logging
from typing import List, Optional

from freecoding.channel import Channel
from freecoding.decoder import FrameDecoder
from freecoding.frame import EventKind, Frame


logger = logging.getLogger(__name__)


class EventRouter:
    """Dispatches frames from one backend connection into a Channel"""

    def __init__(self, channel: Channel, decoder: Optional[FrameDecoder] = None):
        self.channel = channel
        self.decoder = decoder if decoder is not None else FrameDecoder()

    def route(self, frame: Frame) -> None:
        """Dispatch one frame

        Raises:
            ProtocolViolation: If an answer arrives with no answer listener
        """
        if frame.kind is EventKind.ANSWER:
            self.channel.deliver_answer(frame.payload)
        else:
            self.channel.publish(frame.name, frame.payload)

    def feed(self, chunk: bytes) -> List[Frame]:
        """Decode a chunk and route every completed frame in order

        Returns:
            The frames that were routed
        """
        frames = self.decoder.feed(chunk)
        for frame in frames:
            self.route(frame)
        return frames
