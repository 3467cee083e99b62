"""Line framing for the pvdd byte stream."""

from __future__ import annotations

import codecs
from typing import Iterator


class LineFramer:
    """Splits inbound chunks into complete ``\\n``-terminated lines.

    A partial line at the end of a chunk is kept until a later chunk
    completes it. Bytes go through an incremental UTF-8 decoder so a
    character split across two reads is reassembled.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""

    @property
    def pending(self) -> str:
        return self._pending

    def feed(self, chunk: bytes | str) -> Iterator[str]:
        """Yield every line completed by ``chunk``, without its terminator."""
        if isinstance(chunk, bytes):
            chunk = self._decoder.decode(chunk)
        if not chunk:
            return
        data = self._pending + chunk
        *lines, self._pending = data.split("\n")
        for line in lines:
            yield line.removesuffix("\r")

    def flush(self) -> str | None:
        """Return and clear the buffered partial line, if any."""
        tail = self._pending + self._decoder.decode(b"", final=True)
        self.reset()
        return tail.removesuffix("\r") if tail else None

    def reset(self) -> None:
        self._decoder.reset()
        self._pending = ""
