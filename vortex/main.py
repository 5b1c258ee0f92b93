# vortex/main.py
import logging
import sys
from typing import List, Optional, TextIO

from vortex.settings import Settings, settings
from vortex.engine import PipelineEngine
from vortex.electrons.base import BaseElectron
from vortex.electrons.logger import LoggerElectron
from vortex.nucleus.errors import NodeError
from vortex.nucleus.node import Node


def build_engine(config: Settings, node: Node) -> PipelineEngine:
    """Wires the electrons in front of the node according to the settings."""
    active_electrons: List[BaseElectron] = []
    if config.ENVELOPE_LOGGING:
        active_electrons.append(LoggerElectron())

    return PipelineEngine(electrons=active_electrons, nucleus_handler=node.handle)


def main(
    input_stream: Optional[TextIO] = None,
    output_stream: Optional[TextIO] = None,
    config: Settings = settings,
) -> int:
    """
    The main entry point for a vortex node. Returns the process exit status.
    """
    logging.basicConfig(
        level=config.LOG_LEVEL.upper(),
        format=config.LOG_FORMAT,
        stream=sys.stderr,
    )
    logger = logging.getLogger("Vortex_Main")

    node = Node()
    pipeline_engine = build_engine(config, node)

    logger.info("Starting vortex node... Now accepting messages on stdin.")
    try:
        pipeline_engine.run(input_stream or sys.stdin, output_stream or sys.stdout)
    except NodeError as e:
        logger.critical(f"Node halted: {e}")
        return 1
    return 0


def run() -> None:
    # The wire is UTF-8 whatever the locale says.
    sys.stdin.reconfigure(encoding="utf-8")
    sys.stdout.reconfigure(encoding="utf-8")
    sys.exit(main())


if __name__ == "__main__":
    try:
        run()
    except KeyboardInterrupt:
        print("\nNode is shutting down.", file=sys.stderr)
