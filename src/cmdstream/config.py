"""cmdstream environment variable configuration.

Environment variables:
    CMDSTREAM_CHUNK_SIZE: Maximum bytes read from a pipe per readiness wake-up
        - default 4096
        - clamped to 1..1048576, invalid values fall back to the default

    CMDSTREAM_ENCODING: Encoding used to decode child output
        - default utf-8

    CMDSTREAM_KILL_SIGNAL: Signal sent by Process.kill() without an argument
        - name (TERM, SIGKILL, int...) or number
        - default TERM

    CMDSTREAM_BACKEND: anyio backend running the drain loop
        - asyncio (default)
        - trio

    CMDSTREAM_LOG_DEBUG: Debug logging
        - true/1/yes = on (DEBUG logs written to a temp file)
        - false/0/no = off (default, INFO logs to stderr)
"""

from __future__ import annotations

import codecs
import os
import tempfile
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

__all__ = ["Config", "load_config", "get_config", "reload_config", "SUPPORTED_BACKENDS"]

DEFAULT_CHUNK_SIZE = 4096
MAX_CHUNK_SIZE = 1024 * 1024
DEFAULT_ENCODING = "utf-8"
DEFAULT_KILL_SIGNAL = "TERM"

SUPPORTED_BACKENDS = frozenset({"asyncio", "trio"})


def _parse_bool(value: str | None, default: bool = False) -> bool:
    """Parse a boolean environment variable."""
    if value is None:
        return default
    return value.lower() in ("true", "1", "yes", "on")


def _parse_chunk_size(value: str | None) -> int:
    """Parse the read chunk size, clamped to 1..MAX_CHUNK_SIZE."""
    if not value:
        return DEFAULT_CHUNK_SIZE
    try:
        size = int(value)
    except ValueError:
        return DEFAULT_CHUNK_SIZE
    return max(1, min(size, MAX_CHUNK_SIZE))


def _parse_encoding(value: str | None) -> str:
    """Parse the output encoding; unknown codecs fall back to utf-8."""
    if not value or not value.strip():
        return DEFAULT_ENCODING
    try:
        return codecs.lookup(value.strip()).name
    except LookupError:
        return DEFAULT_ENCODING


def _parse_backend(value: str | None) -> str:
    if not value:
        return "asyncio"
    backend = value.lower().strip()
    return backend if backend in SUPPORTED_BACKENDS else "asyncio"


def _generate_log_file_path() -> str:
    """Generate a debug log file path.

    Returns:
        Absolute path of a timestamped log file in the temp directory
    """
    log_dir = Path(tempfile.gettempdir()) / "cmdstream"
    log_dir.mkdir(parents=True, exist_ok=True)

    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = log_dir / f"cmdstream_debug_{timestamp}.log"

    return str(log_file.resolve())


@dataclass
class Config:
    """cmdstream configuration.

    Attributes:
        chunk_size: Maximum bytes per pipe read
        encoding: Encoding used to decode child output
        kill_signal: Default signal for Process.kill()
        backend: anyio backend name
        log_debug: Debug logging to a temp file
        log_file: Log file path (set when log_debug=True)
    """

    chunk_size: int = DEFAULT_CHUNK_SIZE
    encoding: str = DEFAULT_ENCODING
    kill_signal: str = DEFAULT_KILL_SIGNAL
    backend: str = "asyncio"
    log_debug: bool = False
    log_file: str | None = None

    def __repr__(self) -> str:
        return (
            f"Config(chunk_size={self.chunk_size}, "
            f"encoding={self.encoding}, "
            f"kill_signal={self.kill_signal}, "
            f"backend={self.backend}, "
            f"log_debug={self.log_debug}, "
            f"log_file={self.log_file})"
        )


def load_config() -> Config:
    """Load configuration from environment variables."""
    log_debug = _parse_bool(os.environ.get("CMDSTREAM_LOG_DEBUG"), default=False)
    log_file = _generate_log_file_path() if log_debug else None

    return Config(
        chunk_size=_parse_chunk_size(os.environ.get("CMDSTREAM_CHUNK_SIZE")),
        encoding=_parse_encoding(os.environ.get("CMDSTREAM_ENCODING")),
        kill_signal=(os.environ.get("CMDSTREAM_KILL_SIGNAL") or "").strip() or DEFAULT_KILL_SIGNAL,
        backend=_parse_backend(os.environ.get("CMDSTREAM_BACKEND")),
        log_debug=log_debug,
        log_file=log_file,
    )


# Global config instance (lazily loaded)
_config: Config | None = None


def get_config() -> Config:
    """Return the global configuration instance."""
    global _config
    if _config is None:
        _config = load_config()
    return _config


def reload_config() -> Config:
    """Reload configuration (used by tests)."""
    global _config
    _config = load_config()
    return _config
