"""Bridge configuration

Values are resolved in this order:
1. Constructor arguments and builder methods (highest priority)
2. Environment variables (FREECODING_*)
3. Default values
"""

import os
import shlex
from typing import List, Optional

from freecoding.channel import DEFAULT_LANGUAGE
from freecoding.decoder import DEFAULT_MAX_MARKER_LENGTH


DEFAULT_BACKEND_COMMAND = "jbang src/java/server"
DEFAULT_READ_SIZE = 4096
DEFAULT_LOG_LEVEL = "WARNING"


class ConfigError(Exception):
    """Invalid configuration value"""

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ConfigError(f"{name} must be an integer, got {raw!r}")
    if value <= 0:
        raise ConfigError(f"{name} must be positive, got {value}")
    return value


class BridgeConfig:
    """Settings for spawning and talking to the backend process"""

    def __init__(
        self,
        backend_command: Optional[List[str]] = None,
        backend_cwd: Optional[str] = None,
        language: Optional[str] = None,
        read_size: Optional[int] = None,
        max_marker_length: int = DEFAULT_MAX_MARKER_LENGTH,
        log_level: Optional[str] = None,
    ):
        """Create configuration

        Args:
            backend_command: Argument vector of the backend executable
            backend_cwd: Working directory for the backend
            language: Initial language code
            read_size: Maximum bytes per stdout read
            max_marker_length: Longest unterminated line kept by the decoder
            log_level: Logging level name for the CLI
        """
        if backend_command is None:
            backend_command = shlex.split(os.getenv("FREECODING_BACKEND_CMD", DEFAULT_BACKEND_COMMAND))
        if not backend_command:
            raise ConfigError("backend command is empty")

        if backend_cwd is None:
            backend_cwd = os.getenv("FREECODING_BACKEND_CWD") or None

        if language is None:
            language = os.getenv("FREECODING_LANGUAGE", DEFAULT_LANGUAGE)

        if read_size is None:
            read_size = _int_from_env("FREECODING_READ_SIZE", DEFAULT_READ_SIZE)
        elif read_size <= 0:
            raise ConfigError(f"read_size must be positive, got {read_size}")

        if log_level is None:
            log_level = os.getenv("FREECODING_LOG_LEVEL", DEFAULT_LOG_LEVEL)

        self.backend_command = list(backend_command)
        self.backend_cwd = backend_cwd
        self.language = language
        self.read_size = read_size
        self.max_marker_length = max_marker_length
        self.log_level = log_level.upper()

    def with_backend_command(self, command: List[str]) -> "BridgeConfig":
        if not command:
            raise ConfigError("backend command is empty")
        self.backend_command = list(command)
        return self

    def with_backend_cwd(self, cwd: Optional[str]) -> "BridgeConfig":
        self.backend_cwd = cwd
        return self

    def with_language(self, language: str) -> "BridgeConfig":
        self.language = language
        return self

    def with_log_level(self, level: str) -> "BridgeConfig":
        self.log_level = level.upper()
        return self

    def __repr__(self):
        return (
            f"BridgeConfig(backend_command={self.backend_command!r}, "
            f"backend_cwd={self.backend_cwd!r}, language={self.language!r}, "
            f"read_size={self.read_size})"
        )
