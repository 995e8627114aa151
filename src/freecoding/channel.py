"""Question/Answer Channel

The Channel mediates between the UI-facing side and the framed backend
stream. It owns:

- the question outbox, which buffers questions until the backend writer
  attaches and then replays them in submission order
- the answer slot, a single rebindable callback receiving the next answer
- the subscription registry for every other named event
- session configuration (selected language)

Usage:
```python
from freecoding.channel import Channel

channel = Channel()
channel.submit_question("how do I read a file?")   # buffered

channel.attach_question_listener(writer.write_question)  # flushed now

channel.set_answer_listener(print)
channel.submit_question("and write one?")
```
"""

import logging
import threading
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, List, Optional


logger = logging.getLogger(__name__)

DEFAULT_LANGUAGE = "en"

Callback = Callable[[str], None]


# =========================================================================
# Error types
# =========================================================================

class ChannelError(Exception):
    """Base error for the channel"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class ProtocolViolation(ChannelError):
    """A caller broke the register-before-deliver contract"""
    pass


# =========================================================================
# Session state
# =========================================================================

@dataclass(frozen=True)
class Question:
    """A submitted question and the language selected when it was asked"""
    text: str
    language: str


class SessionConfig:
    """Mutable per-session settings read when questions are submitted"""

    def __init__(self, language: str = DEFAULT_LANGUAGE):
        self.language = language


class OutboxState(Enum):
    BUFFERING = "buffering"
    ATTACHED = "attached"


class QuestionOutbox:
    """Buffers questions until a listener attaches, then forwards directly

    Starts BUFFERING. The first `attach` replays the buffer in FIFO order
    and moves to ATTACHED once every buffered question was delivered; later
    attaches only swap the listener. If the listener raises during the
    replay, the question it was handed is dropped with the exception.
    The rest stay buffered and the outbox stays BUFFERING.
    """

    def __init__(self):
        self._state = OutboxState.BUFFERING
        self._buffer: List[Question] = []
        self._listener: Optional[Callable[[Question], None]] = None

    @property
    def state(self) -> OutboxState:
        return self._state

    @property
    def pending(self) -> List[Question]:
        """Snapshot of buffered questions"""
        return list(self._buffer)

    def push(self, question: Question) -> None:
        if self._state is OutboxState.ATTACHED:
            self._listener(question)
        else:
            self._buffer.append(question)

    def attach(self, listener: Callable[[Question], None]) -> None:
        self._listener = listener
        if self._state is OutboxState.ATTACHED:
            return

        if self._buffer:
            logger.debug("Flushing %d buffered question(s)", len(self._buffer))
        # Questions pushed by the listener itself land at the end of the buffer
        while self._buffer:
            listener(self._buffer.pop(0))
        self._state = OutboxState.ATTACHED


# =========================================================================
# Channel
# =========================================================================

class Channel:
    """Coordinates questions, answers and named events for one session"""

    def __init__(self, config: Optional[SessionConfig] = None):
        self.config = config if config is not None else SessionConfig()
        self._outbox = QuestionOutbox()
        self._answer_listener: Optional[Callback] = None
        self._subscriptions: Dict[str, Callback] = {}
        # Re-entrant: the question listener runs under the lock and may submit
        self._lock = threading.RLock()

    # ── questions ──────────────────────────────────────────────────────

    def submit_question(self, text: str) -> Question:
        """Send a question now, or buffer it until a listener attaches

        The current language is captured with the question, so a later
        language change does not affect questions already submitted.
        """
        with self._lock:
            question = Question(text=text, language=self.config.language)
            self._outbox.push(question)
            return question

    def attach_question_listener(self, listener: Callable[[Question], None]) -> None:
        """Install the outbound listener and flush buffered questions to it"""
        with self._lock:
            self._outbox.attach(listener)

    @property
    def question_state(self) -> OutboxState:
        return self._outbox.state

    @property
    def pending_questions(self) -> List[Question]:
        with self._lock:
            return self._outbox.pending

    # ── answers ────────────────────────────────────────────────────────

    def set_answer_listener(self, listener: Callback) -> None:
        """Register the callback for the next answer, replacing any other"""
        with self._lock:
            self._answer_listener = listener

    def clear_answer_listener(self) -> None:
        """Disarm the answer slot without delivering anything"""
        with self._lock:
            self._answer_listener = None

    @property
    def answer_pending(self) -> bool:
        """Whether an answer callback is waiting"""
        with self._lock:
            return self._answer_listener is not None

    def deliver_answer(self, text: str) -> None:
        """Hand an answer to the registered callback

        The slot is cleared before the callback runs, so one registration
        receives exactly one answer. The callback runs outside the lock.

        Raises:
            ProtocolViolation: If no answer callback is registered
        """
        with self._lock:
            listener = self._answer_listener
            if listener is None:
                raise ProtocolViolation("answer received but no answer listener is registered")
            self._answer_listener = None
        listener(text)

    # ── named events ───────────────────────────────────────────────────

    def subscribe(self, event_name: str, listener: Callback) -> None:
        """Register the single subscriber for an event name (last one wins)"""
        with self._lock:
            self._subscriptions[event_name] = listener

    def unsubscribe(self, event_name: str) -> None:
        with self._lock:
            self._subscriptions.pop(event_name, None)

    def publish(self, event_name: str, payload: str) -> bool:
        """Deliver an event to its subscriber

        Returns:
            True if a subscriber received it, False if it was dropped
        """
        with self._lock:
            listener = self._subscriptions.get(event_name)
            if listener is None:
                logger.debug("No subscriber for %s, dropping event", event_name)
                return False
        listener(payload)
        return True

    # ── configuration ──────────────────────────────────────────────────

    def set_language(self, code: str) -> None:
        """Select the language sent with subsequent questions (not validated)"""
        with self._lock:
            self.config.language = code

    def current_language(self) -> str:
        with self._lock:
            return self.config.language
