import logging
import sys

import colorlog
import structlog

from .config import LoggingConfig

# HTTP logging from the Azure SDK should only appear at DEBUG level
_HTTP_LOGGERS = [
    "azure.core.pipeline.policies.http_logging_policy",
    "azure.core.pipeline",
    "azure.identity",
    "azure.mgmt",
    "azure",
    "msal",
    "urllib3",
    "urllib3.connectionpool",
]


def _set_azure_http_log_level(log_level: str) -> None:
    """Set log levels for HTTP-related loggers to reduce noise."""
    target_level = logging.DEBUG if log_level == "DEBUG" else logging.WARNING
    for name in _HTTP_LOGGERS:
        logging.getLogger(name).setLevel(target_level)


class ColoredProcessorFormatter(
    structlog.stdlib.ProcessorFormatter, colorlog.ColoredFormatter
):
    """Render with structlog, then color the whole line by level."""


# Run for stdlib records and structlog events alike
_SHARED_PROCESSORS = [
    structlog.stdlib.add_logger_name,
    structlog.stdlib.add_log_level,
    structlog.processors.TimeStamper(fmt="iso"),
    structlog.processors.StackInfoRenderer(),
]


def _final_processors(json_output: bool) -> list:
    if json_output:
        return [
            structlog.stdlib.ProcessorFormatter.remove_processors_meta,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(),
        ]
    return [
        structlog.stdlib.ProcessorFormatter.remove_processors_meta,
        structlog.dev.ConsoleRenderer(colors=False),
    ]


def setup_logging(config: LoggingConfig) -> None:
    """
    Setup stdlib and structlog logging based on config.

    Both kinds of logger go through the same structlog processors, so a
    line from ``logging.getLogger`` looks like one from ``structlog``.
    """
    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.setLevel(config.get_log_level())

    processors = _final_processors(config.json_output)

    if config.json_output:
        console_handler: logging.Handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processors=processors, foreign_pre_chain=_SHARED_PROCESSORS
            )
        )
    else:
        console_handler = colorlog.StreamHandler(sys.stderr)
        console_handler.setFormatter(
            ColoredProcessorFormatter(
                processors=processors,
                foreign_pre_chain=_SHARED_PROCESSORS,
                fmt=config.format,
                style="%",
                stream=sys.stderr,
            )
        )
    root_logger.addHandler(console_handler)

    if config.file_output:
        file_handler = logging.FileHandler(config.file_output)
        file_handler.setFormatter(
            structlog.stdlib.ProcessorFormatter(
                processors=processors, foreign_pre_chain=_SHARED_PROCESSORS
            )
        )
        root_logger.addHandler(file_handler)

    _set_azure_http_log_level(config.level)

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            *_SHARED_PROCESSORS,
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
