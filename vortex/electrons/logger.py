# vortex/electrons/logger.py
import logging
from typing import Callable

from vortex.electrons.base import BaseElectron
from vortex.nucleus.protocol import Envelope, RequestPayload

logger = logging.getLogger(__name__)


class LoggerElectron(BaseElectron):
    """
    A simple electron that logs key information about each incoming envelope.
    """

    def process(
        self,
        envelope: Envelope[RequestPayload],
        next_electron: Callable[[], None],
    ) -> None:
        logger.info(
            f"[LoggerElectron] Processing message {envelope.body.message_id} "
            f"(type: {envelope.body.payload.root.type}, from: {envelope.source}, to: {envelope.destination})"
        )

        next_electron()
