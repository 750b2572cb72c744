"""Loggers for the openbox REST client.

Events are rendered by the application's structlog processors and then
handed to the standard library logger named after the emitting module, so
``logging`` levels and handlers decide what is shown. Nothing is printed
until the application enables ``openbox_rest`` logging.
"""

import logging

import structlog


def get_logger(name: str) -> structlog.stdlib.BoundLogger:
    """Return a structlog logger writing to ``logging.getLogger(name)``."""
    return structlog.wrap_logger(
        logging.getLogger(name),
        wrapper_class=structlog.stdlib.BoundLogger,
    )
