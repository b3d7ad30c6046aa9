"""
Root logger setup for the API process.
"""

import logging


def setup_logging(level: str = "INFO") -> None:
    """Attach a console handler to the root logger once."""
    logger = logging.getLogger()
    if logger.handlers:
        # create_app may run several times in one process (tests, reloads).
        return

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    handler = logging.StreamHandler()
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    logger.addHandler(handler)
