import logging
from typing import Any

from rich.logging import RichHandler

ROOT_LOGGER_NAME = 'workdigest'


class WorkdigestLogger(logging.LoggerAdapter):
    """Logger with a few rich-markup conveniences"""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        return msg, kwargs

    def info_kv(self, key: str, value: Any, key_style: str = 'green', value_style: str = 'default') -> None:
        """Log a highlighted key/value pair"""
        self.info(f'[{key_style}]{key}[/]: [{value_style}]{value}[/]', extra={'markup': True})

    def info_style(self, msg: str, style: str = 'bold cyan') -> None:
        self.info(f'[{style}]{msg}[/]', extra={'markup': True})

    def warning_style(self, msg: str, style: str = 'bold yellow') -> None:
        self.warning(f'[{style}]{msg}[/]', extra={'markup': True})


def get_logger(name: str | None = None) -> WorkdigestLogger:
    """Get a logger nested under the `workdigest` root logger"""
    if name is None or name == ROOT_LOGGER_NAME:
        logger = logging.getLogger(ROOT_LOGGER_NAME)
    elif name.startswith(f'{ROOT_LOGGER_NAME}.'):
        logger = logging.getLogger(name)
    else:
        logger = logging.getLogger(f'{ROOT_LOGGER_NAME}.{name}')
    return WorkdigestLogger(logger, {})


def setup_logging(level: str | int = 'INFO', log_time_format: str | None = None) -> None:
    """Configure the `workdigest` root logger with a rich console handler"""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level.upper() if isinstance(level, str) else level)

    for handler in logger.handlers[:]:
        if isinstance(handler, RichHandler):
            logger.removeHandler(handler)

    handler = RichHandler(
        rich_tracebacks=True,
        show_path=False,
        log_time_format=log_time_format or '[%X]',
    )
    handler.setFormatter(logging.Formatter('%(name)s: %(message)s'))
    logger.addHandler(handler)
