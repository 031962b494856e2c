"""
Regroups raw token deltas into line-sized chunks.

Token deltas from the model never line up with sentences or JSON objects, so
the backend hands the pipeline whole lines instead. A line opening with `{`
starts a block that is kept together until its braces balance.
"""

from typing import Optional
import re

_FENCE_RE = re.compile(r"^```[\w-]*$")


class LineChunker:
    """Incremental delta-to-chunk regrouper. Feed deltas, then flush once."""

    def __init__(self) -> None:
        self._pending = ""
        self._block: list[str] = []
        self._depth = 0
        self._in_string = False
        self._escaped = False

    def feed(self, delta: str) -> list[str]:
        """Add a token delta and return any chunks it completed."""
        self._pending += delta
        *lines, self._pending = self._pending.split("\n")
        chunks: list[str] = []
        for line in lines:
            chunk = self._take_line(line)
            if chunk is not None:
                chunks.append(chunk)
        return chunks

    def flush(self) -> list[str]:
        """Return whatever is left once the stream has ended."""
        chunks: list[str] = []
        if self._pending:
            chunk = self._take_line(self._pending)
            self._pending = ""
            if chunk is not None:
                chunks.append(chunk)
        if self._block:
            # Unbalanced block; the classifier will treat it as narration
            chunks.append("\n".join(self._block))
            self._reset_block()
        return chunks

    def _take_line(self, line: str) -> Optional[str]:
        line = line.rstrip("\r")
        stripped = line.strip()

        if self._block:
            self._block.append(line)
            self._scan(line)
            if self._depth <= 0:
                chunk = "\n".join(self._block)
                self._reset_block()
                return chunk
            return None

        if not stripped or _FENCE_RE.match(stripped):
            return None

        if stripped.startswith("{"):
            self._scan(line)
            if self._depth > 0:
                self._block.append(line)
                return None
            self._reset_block()
        return line

    def _scan(self, text: str) -> None:
        for ch in text:
            if self._in_string:
                if self._escaped:
                    self._escaped = False
                elif ch == "\\":
                    self._escaped = True
                elif ch == '"':
                    self._in_string = False
            elif ch == '"':
                self._in_string = True
            elif ch == "{":
                self._depth += 1
            elif ch == "}":
                self._depth -= 1

    def _reset_block(self) -> None:
        self._block = []
        self._depth = 0
        self._in_string = False
        self._escaped = False
