# vortex/electrons/base.py
from abc import ABC, abstractmethod
from typing import Callable

from vortex.nucleus.protocol import Envelope, RequestPayload


class BaseElectron(ABC):
    """
    Abstract base class for all "Electrons" (middleware components).

    An Electron is a processing unit in the pipeline that can inspect a
    request before it reaches the Nucleus (the node that answers it).

    This class defines the contract that every electron must adhere to.
    """

    @abstractmethod
    def process(
        self,
        envelope: Envelope[RequestPayload],
        next_electron: Callable[[], None],
    ) -> None:
        """
        Processes an incoming request envelope.

        Args:
            envelope: The decoded request envelope.
            next_electron: A callable that invokes the next electron in the
                           pipeline. It is the responsibility of the current
                           electron to call `next_electron()` to continue the
                           processing chain. If it is not called, the chain is
                           halted and the request gets no reply.
        """
        pass
