"""
Records the raw traffic of a fuzzing session.

Every byte sent to or received from the server is written to one file, in the
order it crossed the socket. When the server crashes or hangs, the end of this
file shows what it was doing.
"""

from __future__ import annotations
import logging
from pathlib import Path
from typing import BinaryIO, Optional, Union

log = logging.getLogger(__name__)


class SessionLog:
    """
    Append-only log of raw bytes.

    If the file couldn't be opened, "file" is None and write() does nothing.
    Fuzzing without a log is still useful when you're watching the server's output.
    """

    def __init__(self, file: Optional[BinaryIO], path: Optional[Path] = None) -> None:
        self.file = file
        self.path = path

    @classmethod
    def open(cls, log_dir: Union[str, Path], nick: str) -> SessionLog:
        """Opens "<log_dir>/<nick>" for writing, replacing any previous log of the same nick."""
        path = Path(log_dir) / nick
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            file = open(path, "wb")
        except OSError as e:
            log.error("Could not open session log %s: %s", path, e)
            log.error("Continuing without a session log")
            return cls(None, path)

        log.info("Logging session to %s", path)
        return cls(file, path)

    @property
    def degraded(self) -> bool:
        return self.file is None

    def write(self, data: bytes) -> None:
        if self.file is None:
            return
        self.file.write(data)
        # The run can end at any moment
        self.file.flush()

    def close(self) -> None:
        if self.file is not None:
            self.file.close()
            self.file = None
