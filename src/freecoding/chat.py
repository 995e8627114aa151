"""Chat Session - adapts UI messages onto the Channel

The UI collaborator sends plain dicts (already JSON-decoded):

    {"type": "sendMessage", "data": "<question>"}
    {"type": "changeLanguage", "data": "<language code>"}

and receives dicts through ``post_message``:

    {"type": "addMessage", "value": {"text": ..., "isUser": False, "timestamp": ...}}
    {"type": "documentLoaded", "value": {"text": ..., "timestamp": ...}}
"""

import logging
import time
from typing import Any, Callable, Dict, Optional

from freecoding.channel import Channel
from freecoding.frame import FrameName


logger = logging.getLogger(__name__)

PostMessage = Callable[[Dict[str, Any]], None]


def _timestamp() -> str:
    return time.strftime("%H:%M:%S")


class ChatSession:
    """Translates between UI messages and channel traffic for one chat view"""

    def __init__(
        self,
        channel: Channel,
        post_message: PostMessage,
        clock: Callable[[], str] = _timestamp,
    ):
        self.channel = channel
        self.post_message = post_message
        self.clock = clock
        channel.subscribe(FrameName.DOCUMENT_LOAD, self._on_document_loaded)

    def handle_message(self, message: Dict[str, Any]) -> None:
        """Handle one message from the UI"""
        kind = message.get("type")
        data = message.get("data", "")

        if kind == "sendMessage":
            self.ask(str(data))
        elif kind == "changeLanguage":
            self.channel.set_language(str(data))
            logger.info("Language changed to %s", data)
        else:
            logger.debug("Ignoring UI message of type %r", kind)

    def ask(self, text: str) -> None:
        """Bind a fresh answer listener for this question, then submit it

        The answer slot is disarmed again if the question cannot be sent.
        """
        self.channel.set_answer_listener(self._on_answer)
        try:
            self.channel.submit_question(text)
        except Exception:
            self.channel.clear_answer_listener()
            raise

    # ── backend notifications ──────────────────────────────────────────

    def backend_exited(self, returncode: Optional[int]) -> None:
        self._add_message(f"Backend server died with code: {returncode}")

    def internal_error(self, error: Exception) -> None:
        self._add_message(f"Internal error: {getattr(error, 'message', error)}")

    # ── outbound ───────────────────────────────────────────────────────

    def _on_answer(self, text: str) -> None:
        self._add_message(text)

    def _on_document_loaded(self, text: str) -> None:
        self.post_message({
            "type": "documentLoaded",
            "value": {"text": text, "timestamp": self.clock()},
        })

    def _add_message(self, text: str, is_user: bool = False) -> None:
        self.post_message({
            "type": "addMessage",
            "value": {"text": text, "isUser": is_user, "timestamp": self.clock()},
        })
