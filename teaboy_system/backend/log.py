"""structlog setup shared by the backend modules."""

import logging

import structlog

from teaboy_system.backend import config


def configure_logging(level: str = None, json_output: bool = None) -> None:
    level = level or config.LOG_LEVEL
    if json_output is None:
        json_output = config.LOG_JSON

    renderer = (
        structlog.processors.JSONRenderer()
        if json_output
        else structlog.dev.ConsoleRenderer()
    )
    structlog.configure(
        processors=[
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.format_exc_info,
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, level.upper(), logging.INFO)
        ),
        cache_logger_on_first_use=False,
    )
