"""Logging configuration for Team Builder.

Library modules only create loggers under the "team_builder" namespace:

    import logging
    logger = logging.getLogger("team_builder.module_name")

setup_logging() is called once by the command line entry point. Code that
imports the package as a library keeps full control over handlers.
"""

import logging
import sys

APP_LOGGER_NAME = "team_builder"


def setup_logging(app_level: int = logging.INFO) -> None:
    """Configure logging for the command line tool.

    The root logger stays at WARNING so third-party libraries are quiet,
    while the "team_builder" namespace logs at the requested level.

    Args:
        app_level: The logging level for team_builder modules
    """
    root_logger = logging.getLogger()
    root_logger.setLevel(logging.WARNING)

    if not root_logger.handlers:
        handler = logging.StreamHandler(sys.stderr)
        handler.setLevel(logging.DEBUG)
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        handler.setFormatter(formatter)
        root_logger.addHandler(handler)

    logging.getLogger(APP_LOGGER_NAME).setLevel(app_level)
