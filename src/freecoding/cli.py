"""CLI entry point - a terminal chat against the backend process."""

import argparse
import logging
import shlex
import sys
import threading
from typing import Any, Dict, List, Optional

from freecoding import __version__
from freecoding.channel import Channel, SessionConfig
from freecoding.chat import ChatSession
from freecoding.config import BridgeConfig, ConfigError
from freecoding.process import BackendError, BackendProcess, SpawnError
from freecoding.writer import EncodeError


LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="freecoding",
        description="Ask a FreeCoding backend questions from the terminal.",
    )
    parser.add_argument(
        "-V", "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )
    parser.add_argument(
        "-b", "--backend",
        default=None,
        help="Backend command line. If omitted: FREECODING_BACKEND_CMD env > 'jbang src/java/server'",
    )
    parser.add_argument("--cwd", default=None, help="Working directory for the backend.")
    parser.add_argument("-l", "--language", default=None, help="Initial language code (default: en).")
    parser.add_argument(
        "--log-level",
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        help="Logging level (default: FREECODING_LOG_LEVEL env or WARNING).",
    )
    return parser


def _print_message(message: Dict[str, Any]) -> None:
    value = message.get("value", {})
    if message.get("type") == "documentLoaded":
        print(f"[{value.get('timestamp')}] Document loaded:\n{value.get('text')}")
    else:
        speaker = "You" if value.get("isUser") else "Bot"
        print(f"[{value.get('timestamp')}] {speaker}: {value.get('text')}")
    sys.stdout.flush()


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = BridgeConfig(
            backend_command=shlex.split(args.backend) if args.backend else None,
            backend_cwd=args.cwd,
            language=args.language,
            log_level=args.log_level,
        )
    except ConfigError as e:
        print(f"freecoding: {e.message}", file=sys.stderr)
        return 2

    logging.basicConfig(level=config.log_level, format=LOG_FORMAT)

    channel = Channel(SessionConfig(language=config.language))
    replied = threading.Event()
    died = threading.Event()

    def post_message(message: Dict[str, Any]) -> None:
        _print_message(message)
        if message.get("type") == "addMessage":
            replied.set()

    chat = ChatSession(channel, post_message)

    def on_exit(returncode: Optional[int]) -> None:
        chat.backend_exited(returncode)
        died.set()
        replied.set()

    try:
        backend = BackendProcess.spawn(config, channel, on_exit=on_exit, on_internal_error=chat.internal_error)
    except SpawnError as e:
        print(f"freecoding: {e.message}", file=sys.stderr)
        return 1

    with backend:
        while backend.running and not died.is_set():
            try:
                line = input("> ")
            except (EOFError, KeyboardInterrupt):
                break

            text = line.strip()
            if not text:
                continue
            if text == "/quit":
                break
            if text.startswith("/lang "):
                chat.handle_message({"type": "changeLanguage", "data": text[len("/lang "):].strip()})
                continue

            replied.clear()
            try:
                chat.handle_message({"type": "sendMessage", "data": text})
            except EncodeError as e:
                print(f"freecoding: cannot send question: {e.message}", file=sys.stderr)
                continue
            except BackendError as e:
                print(f"freecoding: {e.message}", file=sys.stderr)
                break
            try:
                replied.wait()
            except KeyboardInterrupt:
                break

    return 1 if died.is_set() else 0


if __name__ == "__main__":
    sys.exit(main())
