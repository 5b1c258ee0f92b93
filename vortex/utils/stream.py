# vortex/utils/stream.py
import json
import re
from typing import Any, Iterator, TextIO, Tuple

from vortex.nucleus.errors import DecodeError

_WHITESPACE = re.compile(r"[ \t\n\r]*")
_decoder = json.JSONDecoder()


def _read_lines(stream: TextIO) -> Iterator[Tuple[int, str]]:
    lines = iter(stream)
    line_number = 0
    while True:
        try:
            line = next(lines)
        except StopIteration:
            return
        except UnicodeDecodeError as e:
            raise DecodeError(f"input is not valid UTF-8: {e.reason}", line=line_number + 1) from e
        line_number += 1
        yield line_number, line


def _is_incomplete(buffer: str, error: json.JSONDecodeError) -> bool:
    # Tokens never span lines, so a value that is merely cut short fails
    # at the trailing whitespace; anything earlier is a real syntax error.
    # A raw newline inside a string fails there too but is never valid.
    if error.msg.startswith("Invalid control character"):
        return False
    return error.pos >= len(buffer.rstrip(" \t\n\r"))


def iter_json_values(stream: TextIO) -> Iterator[Tuple[int, Any]]:
    """
    Reads JSON values off a text stream, yielding (line_number, value) pairs
    where line_number is the line the value starts on.

    No delimiter is needed between values: several may share a line and one
    may span several lines. Each value is yielded as soon as its last line
    has been read. Raises DecodeError on a syntax error, on bytes that are
    not UTF-8, or when input ends part way through a value.
    """
    buffer = ""
    buffer_line = 1

    for line_number, line in _read_lines(stream):
        if not buffer:
            buffer_line = line_number
        buffer += line

        position = _WHITESPACE.match(buffer, 0).end()
        while position < len(buffer):
            try:
                value, end = _decoder.raw_decode(buffer, position)
            except json.JSONDecodeError as e:
                if _is_incomplete(buffer, e):
                    break
                raise DecodeError(
                    f"malformed JSON: {e.msg} at column {e.colno}",
                    line=buffer_line + buffer.count("\n", 0, e.pos),
                ) from e
            yield buffer_line + buffer.count("\n", 0, position), value
            position = _WHITESPACE.match(buffer, end).end()

        buffer_line += buffer.count("\n", 0, position)
        buffer = buffer[position:]

    if buffer:
        raise DecodeError("input ended inside a JSON value", line=buffer_line)
