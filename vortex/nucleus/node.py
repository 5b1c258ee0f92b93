# vortex/nucleus/node.py
import logging
from typing import TextIO

from vortex.nucleus.errors import DispatchError, WriteError
from vortex.nucleus.protocol import (
    Echo,
    EchoOk,
    Envelope,
    Init,
    InitOk,
    RequestPayload,
    ResponsePayload,
    encode_response,
)

logger = logging.getLogger(__name__)


class Node:
    """
    The Nucleus of a vortex process. The final step for every request:
    it answers the request and owns the counter that numbers its replies.

    Ids start at 0 and go up by one per reply actually written, so the ids a
    client sees are gap-free and in emission order. Separate instances keep
    separate counters.
    """

    def __init__(self):
        self.next_message_id = 0

    def handle(self, request: Envelope[RequestPayload], output: TextIO) -> Envelope[ResponsePayload]:
        """
        Answers one request, writes the reply to `output` and advances the counter.

        Raises DispatchError, EncodeError or WriteError. The counter is left
        untouched whenever the reply did not reach the sink.
        """
        reply = request.reply(self._respond(request), self.next_message_id)
        text = encode_response(reply)

        try:
            output.write(text)
            output.flush()
        except (OSError, ValueError) as e:
            raise WriteError(
                f"could not write {reply.body.payload.root.type} reply: {e}",
                message_id=request.body.message_id,
            ) from e

        self.next_message_id += 1
        logger.debug(
            f"Replied to {request.source} with msg_id {reply.body.message_id} "
            f"(in_reply_to: {reply.body.in_reply_to}, type: {reply.body.payload.root.type})"
        )
        return reply

    def _respond(self, request: Envelope[RequestPayload]) -> ResponsePayload:
        """Maps a request payload onto its reply payload."""
        payload = request.body.payload.root

        if isinstance(payload, Echo):
            return ResponsePayload(EchoOk(echo=payload.echo))
        if isinstance(payload, Init):
            logger.info(f"Initialized as '{payload.node_id}' in a cluster of {len(payload.node_ids)} node(s).")
            return ResponsePayload(InitOk())

        raise DispatchError(
            f"no handler for payload type '{getattr(payload, 'type', type(payload).__name__)}'",
            message_id=request.body.message_id,
        )
