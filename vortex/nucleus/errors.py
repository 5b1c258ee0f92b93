# vortex/nucleus/errors.py
from typing import Optional


class NodeError(Exception):
    """
    Base class for every failure that stops the node.

    Each subclass names the processing phase it belongs to, so the log line
    that reports it can say where the message was lost.
    """

    phase = "node"

    def __init__(self, detail: str, *, line: Optional[int] = None, message_id: Optional[int] = None):
        self.detail = detail
        self.line = line
        self.message_id = message_id
        super().__init__(detail)

    def __str__(self) -> str:
        context = []
        if self.line is not None:
            context.append(f"line {self.line}")
        if self.message_id is not None:
            context.append(f"msg_id {self.message_id}")
        where = f" ({', '.join(context)})" if context else ""
        return f"{self.phase} failed{where}: {self.detail}"


class DecodeError(NodeError):
    """Incoming text is not JSON, or not a recognised request envelope."""

    phase = "decode"


class DispatchError(NodeError):
    """A decoded request carried a payload the node has no handler for."""

    phase = "dispatch"


class EncodeError(NodeError):
    """A reply could not be serialized. Always a programming defect."""

    phase = "encode"


class WriteError(NodeError):
    """The output sink rejected a reply."""

    phase = "write"
