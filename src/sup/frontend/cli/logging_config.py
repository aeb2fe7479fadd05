"""Lightweight logging setup for the CLI."""

import logging
import sys
from typing import Optional


def configure_logging(level: int = logging.INFO, logfile: Optional[str] = None) -> None:
    # Configure root logger once; keep output simple for terminals.
    handler_args = {"filename": logfile, "filemode": "a"} if logfile else {"stream": sys.stdout}
    logging.basicConfig(
        level=level,
        format="[%(asctime)s] %(levelname)s %(name)s: %(message)s",
        datefmt="%H:%M:%S",
        **handler_args,
    )
