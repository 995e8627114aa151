"""Backend Process - owns the child process and its stdio streams

The BackendProcess is the host-side runtime that connects a Channel to a
running backend. It handles:

- Spawning the backend command with piped stdin/stdout/stderr
- Attaching to already connected streams (tests, sockets)
- Writing questions and outbound events from a dedicated writer thread
- Reading stdout in a dedicated reader thread, decoding and routing frames
  chunk by chunk in stream order
- Logging backend stderr
- Reporting backend exit through `on_exit`, and protocol violations or
  failing listeners through `on_internal_error`, apart from the answer/event
  path
- Terminating the process on close

Usage:
```python
from freecoding.channel import Channel
from freecoding.config import BridgeConfig
from freecoding.process import BackendProcess

channel = Channel()
with BackendProcess.spawn(BridgeConfig(), channel, on_exit=print) as backend:
    channel.set_answer_listener(print)
    channel.submit_question("What does this function do?")
    backend.wait()
```
"""

import logging
import queue
import subprocess
import threading
from typing import BinaryIO, Callable, Optional

from freecoding.channel import Channel, ProtocolViolation, Question
from freecoding.config import BridgeConfig, DEFAULT_READ_SIZE
from freecoding.decoder import FrameDecoder
from freecoding.frame import Frame
from freecoding.router import EventRouter
from freecoding.writer import FrameWriter, encode_frame, encode_question


logger = logging.getLogger(__name__)

ExitCallback = Callable[[Optional[int]], None]
InternalErrorCallback = Callable[[Exception], None]


# =========================================================================
# Error types
# =========================================================================

class BackendError(Exception):
    """Base error for the backend process"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class SpawnError(BackendError):
    """Backend executable could not be started"""
    pass


class ProcessExited(BackendError):
    """Backend process exited"""

    def __init__(self, returncode: Optional[int]):
        super().__init__(f"Backend server died with code: {returncode}")
        self.returncode = returncode


class Closed(BackendError):
    """Backend connection is closed"""

    def __init__(self):
        super().__init__("Backend connection is closed")


# =========================================================================
# BackendProcess
# =========================================================================

class BackendProcess:
    """Connects a Channel to a backend over a pair of byte streams"""

    def __init__(
        self,
        stdout: BinaryIO,
        stdin: BinaryIO,
        channel: Channel,
        process: Optional[subprocess.Popen] = None,
        decoder: Optional[FrameDecoder] = None,
        read_size: int = DEFAULT_READ_SIZE,
        on_exit: Optional[ExitCallback] = None,
        on_internal_error: Optional[InternalErrorCallback] = None,
    ):
        """Internal constructor - use spawn() or attach() instead"""
        self.channel = channel
        self.process = process
        self.read_size = read_size
        self.on_exit = on_exit
        self.on_internal_error = on_internal_error

        self._stdout = stdout
        self._writer = FrameWriter(stdin)
        self._router = EventRouter(channel, decoder)
        self._write_queue: queue.Queue = queue.Queue()
        self._closed = False
        self._exited = threading.Event()
        self._returncode: Optional[int] = None
        self._threads = []

    @classmethod
    def spawn(
        cls,
        config: BridgeConfig,
        channel: Channel,
        on_exit: Optional[ExitCallback] = None,
        on_internal_error: Optional[InternalErrorCallback] = None,
    ) -> "BackendProcess":
        """Start the backend command and connect it to the channel

        Raises:
            SpawnError: If the process cannot be started
        """
        try:
            proc = subprocess.Popen(
                config.backend_command,
                cwd=config.backend_cwd,
                stdin=subprocess.PIPE,
                stdout=subprocess.PIPE,
                stderr=subprocess.PIPE,
            )
        except OSError as e:
            raise SpawnError(f"failed to start backend {config.backend_command[0]!r}: {e}")

        logger.info("Started backend pid=%d: %s", proc.pid, " ".join(config.backend_command))

        backend = cls(
            proc.stdout,
            proc.stdin,
            channel,
            process=proc,
            decoder=FrameDecoder(max_marker_length=config.max_marker_length),
            read_size=config.read_size,
            on_exit=on_exit,
            on_internal_error=on_internal_error,
        )
        backend._start_thread(backend._stderr_loop, proc.stderr)
        backend.start()
        return backend

    @classmethod
    def attach(
        cls,
        stdout: BinaryIO,
        stdin: BinaryIO,
        channel: Channel,
        on_exit: Optional[ExitCallback] = None,
        on_internal_error: Optional[InternalErrorCallback] = None,
    ) -> "BackendProcess":
        """Connect the channel to streams of an already running backend

        The streams stay owned by the caller; close() does not close them.
        """
        backend = cls(stdout, stdin, channel, on_exit=on_exit, on_internal_error=on_internal_error)
        backend.start()
        return backend

    def start(self) -> None:
        """Start reader and writer threads, then take over outbound questions

        Raises:
            EncodeError: If a buffered question cannot be encoded; the
                backend is closed and later questions stay buffered
        """
        self._start_thread(self._writer_loop)
        self._start_thread(self._reader_loop)
        try:
            self.channel.attach_question_listener(self._enqueue_question)
        except Exception:
            self.close()
            raise

    # ── properties ─────────────────────────────────────────────────────

    @property
    def pid(self) -> Optional[int]:
        return self.process.pid if self.process is not None else None

    @property
    def running(self) -> bool:
        return not self._closed and not self._exited.is_set()

    @property
    def returncode(self) -> Optional[int]:
        return self._returncode

    # ── outbound ───────────────────────────────────────────────────────

    def send(self, frame: Frame) -> None:
        """Queue a generic outbound frame

        Raises:
            Closed: If the connection is closed
            ProcessExited: If the backend already exited
            EncodeError: If the frame cannot be encoded
        """
        self._enqueue(encode_frame(frame))

    def _enqueue_question(self, question: Question) -> None:
        self._enqueue(encode_question(question))

    def _enqueue(self, data: bytes) -> None:
        if self._closed:
            raise Closed()
        if self._exited.is_set():
            raise ProcessExited(self._returncode)
        self._write_queue.put(data)

    # ── lifecycle ──────────────────────────────────────────────────────

    def wait(self, timeout: Optional[float] = None) -> bool:
        """Block until the backend stream ends. Returns False on timeout."""
        return self._exited.wait(timeout)

    def close(self, timeout: float = 2.0) -> None:
        """Stop the writer and terminate the backend process"""
        if self._closed:
            return
        self._closed = True
        self._write_queue.put(None)

        proc = self.process
        if proc is None:
            return

        if proc.poll() is None:
            logger.info("Terminating backend pid=%d", proc.pid)
            proc.terminate()
            try:
                proc.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                logger.warning("Backend pid=%d ignored terminate, killing", proc.pid)
                proc.kill()
                proc.wait()

        # The reader sees EOF once the process is gone; close stdout after it
        self._exited.wait(timeout)
        for stream in (proc.stdin, proc.stdout, proc.stderr):
            if stream is None:
                continue
            try:
                stream.close()
            except OSError:
                pass

    def __enter__(self) -> "BackendProcess":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def __repr__(self):
        status = "closed" if self._closed else ("running" if self.running else "exited")
        return f"BackendProcess(pid={self.pid}, status={status})"

    # ── threads ────────────────────────────────────────────────────────

    def _start_thread(self, target, *args) -> None:
        thread = threading.Thread(target=target, args=args, daemon=True)
        thread.start()
        self._threads.append(thread)

    def _writer_loop(self) -> None:
        """Writer thread - drains the queue onto backend stdin"""
        while True:
            data = self._write_queue.get()
            if data is None:  # Shutdown sentinel
                return
            try:
                self._writer.write_bytes(data)
            except (OSError, ValueError) as e:
                logger.warning("Writing to backend failed: %s", e)
                return

    def _reader_loop(self) -> None:
        """Reader thread - decodes stdout and routes frames chunk by chunk"""
        try:
            while True:
                chunk = self._read_chunk()
                if not chunk:
                    break
                logger.debug("Read %d bytes from backend", len(chunk))
                for frame in self._router.decoder.feed(chunk):
                    self._dispatch(frame)
        except (OSError, ValueError) as e:
            # ValueError: stream closed under us by close()
            if not self._closed:
                logger.warning("Reading from backend failed: %s", e)
        except Exception:
            logger.exception("Backend reader stopped")
        finally:
            self._stream_ended()

    def _read_chunk(self) -> bytes:
        read1 = getattr(self._stdout, "read1", None)
        if read1 is not None:
            return read1(self.read_size)
        return self._stdout.read(self.read_size)

    def _dispatch(self, frame: Frame) -> None:
        try:
            self._router.route(frame)
        except ProtocolViolation as e:
            logger.error("Protocol violation on %s frame: %s", frame.name, e.message)
            self._internal_error(e)
        except Exception as e:
            # A failing listener must not stop the reader
            logger.exception("Listener for %s frame failed", frame.name)
            self._internal_error(e)

    def _internal_error(self, error: Exception) -> None:
        if self.on_internal_error is not None:
            self.on_internal_error(error)

    def _stream_ended(self) -> None:
        decoder = self._router.decoder
        if decoder.capturing is not None:
            logger.warning("Backend output ended inside an open %s frame", decoder.capturing)
        decoder.reset()

        if self.process is not None:
            self._returncode = self.process.wait()

        if not self._closed:
            logger.warning("Backend exited with code %s", self._returncode)
            if self.on_exit is not None:
                self.on_exit(self._returncode)
        self._exited.set()

    def _stderr_loop(self, stderr: BinaryIO) -> None:
        """Log backend stderr line by line"""
        try:
            for line in iter(stderr.readline, b""):
                logger.warning("backend stderr: %s", line.decode("utf-8", errors="replace").rstrip())
        except (OSError, ValueError):
            pass
