"""
Incremental parser for a streamed JSON array of objects.

Model output arrives as text fragments; each top-level element is decoded as
soon as its closing brace arrives so callers can react before the array ends.
Text before the opening ``[`` (markdown fences, preambles) is ignored.
"""

import json
import logging
from typing import Any, List, Optional


class JsonArrayStreamParser:
    def __init__(self, *, logger: Optional[logging.Logger] = None) -> None:
        self._buffer = ""
        self._pos = 0
        self._started = False
        self._finished = False
        self._depth = 0
        self._in_string = False
        self._escape = False
        self._element_start = -1
        self._logger = logger or logging.getLogger(__name__)

    @property
    def finished(self) -> bool:
        return self._finished

    def feed(self, text: str) -> List[Any]:
        """Consume ``text`` and return the elements completed by it."""
        if self._finished or not text:
            return []

        self._buffer += text
        completed: List[Any] = []
        while self._pos < len(self._buffer):
            char = self._buffer[self._pos]

            if not self._started:
                if char == "[":
                    self._started = True
                self._pos += 1
                continue

            if self._in_string:
                if self._escape:
                    self._escape = False
                elif char == "\\":
                    self._escape = True
                elif char == '"':
                    self._in_string = False
                self._pos += 1
                continue

            if char == '"':
                self._in_string = True
            elif char in "{[":
                if self._depth == 0:
                    self._element_start = self._pos
                self._depth += 1
            elif char in "}]":
                if self._depth == 0:
                    # closing bracket of the outer array
                    self._finished = True
                    self._pos += 1
                    break
                self._depth -= 1
                if self._depth == 0 and self._element_start >= 0:
                    element = self._decode(self._buffer[self._element_start : self._pos + 1])
                    if element is not None:
                        completed.append(element)
                    self._element_start = -1
            self._pos += 1

        self._compact()
        return completed

    def _decode(self, raw: str) -> Optional[Any]:
        try:
            return json.loads(raw)
        except json.JSONDecodeError:
            self._logger.warning("Skipping malformed array element: %s", raw[:200])
            return None

    def _compact(self) -> None:
        # Drop consumed text that no open element refers to.
        keep_from = self._element_start if self._element_start >= 0 else self._pos
        if keep_from > 0:
            self._buffer = self._buffer[keep_from:]
            self._pos -= keep_from
            if self._element_start >= 0:
                self._element_start = 0


__all__ = ["JsonArrayStreamParser"]
