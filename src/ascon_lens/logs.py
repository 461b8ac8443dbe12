import logging

import structlog

LOG_LEVEL_ENV = "ASCON_LENS_LOG_LEVEL"
DEFAULT_LOG_LEVEL = "WARNING"
LOGGER_NAME = "ascon_lens"


def _level_number(level: str | int) -> int:
    if isinstance(level, int):
        return level
    number = logging.getLevelName(level.upper())
    if not isinstance(number, int):
        raise ValueError(f"Invalid log level: {level}")
    return number


def configure_logging(level: str | int = DEFAULT_LOG_LEVEL, json: bool = False) -> None:
    """Configure structlog with a level filter and either a console or JSON renderer.

    Called by the CLI and the API entry points. The library never calls it.
    """
    number = _level_number(level)
    if json:
        renderer = structlog.processors.JSONRenderer(indent=2)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=False)

    logging.basicConfig(format="%(message)s", level=number)
    logging.getLogger(LOGGER_NAME).setLevel(number)

    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="%H:%M:%S"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(number),
        cache_logger_on_first_use=False,
    )


def get_logger(**initial_values) -> structlog.stdlib.BoundLogger:
    """Logger for the cipher core.

    Events go to the standard library logger named ``ascon_lens``, so without
    configure_logging() only warnings reach the last-resort handler.
    """
    return structlog.wrap_logger(
        logging.getLogger(LOGGER_NAME),
        wrapper_class=structlog.stdlib.BoundLogger,
        **initial_values,
    )
