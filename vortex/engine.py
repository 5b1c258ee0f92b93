# vortex/engine.py
import enum
import logging
from typing import Callable, List, TextIO

from vortex.electrons.base import BaseElectron
from vortex.nucleus.errors import NodeError
from vortex.nucleus.protocol import Envelope, RequestPayload, decode_request
from vortex.utils.stream import iter_json_values

logger = logging.getLogger(__name__)


class LoopState(enum.Enum):
    AWAITING_INPUT = "awaiting_input"
    HANDLING = "handling"
    TERMINATED = "terminated"


class PipelineEngine:
    """
    The engine that runs the processing loop of a node.

    It takes a list of Electrons (middleware) and a final Nucleus handler,
    and chains them together to process each incoming request. Requests are
    handled strictly one at a time: a reply is written before the next input
    is read.
    """

    def __init__(
        self,
        electrons: List[BaseElectron],
        nucleus_handler: Callable[[Envelope[RequestPayload], TextIO], object],
    ):
        self._electrons = electrons
        self._nucleus_handler = nucleus_handler
        self.state = LoopState.AWAITING_INPUT
        logger.info(f"PipelineEngine initialized with {len(self._electrons)} electrons.")

    def run(self, input_stream: TextIO, output_stream: TextIO) -> int:
        """
        Consumes requests from `input_stream` until it ends, answering each on
        `output_stream`. Returns the number of requests handled.

        Any NodeError terminates the loop and is re-raised; nothing is skipped.
        """
        handled = 0
        line = None
        try:
            for line, value in iter_json_values(input_stream):
                envelope = decode_request(value, line=line)
                self.state = LoopState.HANDLING
                self._execute_pipeline(envelope, output_stream)
                handled += 1
                self.state = LoopState.AWAITING_INPUT
        except NodeError as e:
            self.state = LoopState.TERMINATED
            if e.line is None:
                e.line = line
            logger.error(f"Stopping after {handled} handled message(s): {e}")
            raise

        self.state = LoopState.TERMINATED
        logger.info(f"Input stream closed. Handled {handled} message(s).")
        return handled

    def _execute_pipeline(self, envelope: Envelope[RequestPayload], output_stream: TextIO) -> None:
        """
        Constructs and executes the chain of electron calls for a single envelope.
        """
        # Start with the nucleus handler as the final step in the chain.
        def nucleus():
            self._nucleus_handler(envelope, output_stream)

        next_handler = nucleus

        # Wrap the handlers in reverse order. Each electron gets the *next*
        # handler in the chain as an argument.
        for electron in reversed(self._electrons):
            def create_closure(current_electron, next_step):
                def closure():
                    current_electron.process(envelope, next_step)
                return closure

            next_handler = create_closure(electron, next_handler)

        next_handler()
