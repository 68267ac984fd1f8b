from __future__ import annotations

import logging
import threading
from dataclasses import dataclass
from typing import BinaryIO, TextIO

from hcp.config import READ_SIZE, TAIL_CAP

logger = logging.getLogger(__name__)


def trim_trailing(buf: bytes | bytearray) -> bytes:
    """Return ``buf`` up to and including its last ``\\r`` or ``\\n``."""
    end = max(buf.rfind(b"\n"), buf.rfind(b"\r"))
    return bytes(buf[: end + 1])


def terminal_sink(stream: TextIO | None) -> BinaryIO | None:
    """Byte side of a parent stream, or None when hcp was started without it."""
    return getattr(stream, "buffer", None)


def tee(source: BinaryIO, sink: BinaryIO | None, max_bytes: int = TAIL_CAP) -> bytes:
    """Copy ``source`` to ``sink`` until EOF and return its last ``max_bytes`` bytes.

    Writes are cut at line terminators so that two readers sharing a terminal
    interleave whole lines rather than characters. Whatever follows the last
    terminator is held back until more input arrives or the source ends.
    ``sink=None`` discards the output.
    """
    tail = bytearray()
    pending = bytearray()
    while True:
        chunk = source.read(READ_SIZE)
        if not chunk:
            break
        tail += chunk
        if len(tail) > max_bytes:
            del tail[: len(tail) - max_bytes]
        if sink is None:
            continue
        pending += chunk
        to_write = trim_trailing(pending)
        if to_write:
            sink.write(to_write)
            sink.flush()
            del pending[: len(to_write)]
    if sink is not None and pending:
        sink.write(bytes(pending))
        sink.flush()
    return bytes(tail)


@dataclass(frozen=True)
class TeeResult:
    tail: bytes = b""
    error: Exception | None = None


class TeeReader:
    """Runs :func:`tee` on its own thread and owns ``source`` until joined."""

    def __init__(
        self,
        source: BinaryIO,
        sink: BinaryIO | None,
        name: str,
        max_bytes: int = TAIL_CAP,
    ) -> None:
        self.name = name
        self._source = source
        self._sink = sink
        self._max_bytes = max_bytes
        self._result = TeeResult()
        self._thread = threading.Thread(
            target=self._run, name=f"tee-{name}", daemon=True
        )

    def start(self) -> TeeReader:
        self._thread.start()
        return self

    def join(self) -> TeeResult:
        self._thread.join()
        return self._result

    def _run(self) -> None:
        try:
            with self._source:
                tail = tee(self._source, self._sink, self._max_bytes)
        except Exception as exc:
            # Handed back through join() so the run reports it as a stream failure.
            logger.debug("tee %s failed: %r", self.name, exc)
            self._result = TeeResult(error=exc)
        else:
            self._result = TeeResult(tail=tail)
