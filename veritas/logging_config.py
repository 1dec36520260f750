"""Loguru sinks driven by the `logging` section of the veritas config."""

import sys

from loguru import logger

from veritas.config.schema import LoggingConfig

CONSOLE_FORMAT = "<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | <cyan>{name}</cyan> - {message}"
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}"


def setup_logging(config: LoggingConfig | None = None, level: str | None = None) -> str:
    """
    Replace the loguru sinks with a stderr sink and an optional rotating file.

    Args:
        config: Logging section of the loaded config; defaults apply when omitted.
        level: Overrides `config.level`, e.g. from `--log-level`.

    Returns:
        The level in effect.
    """
    config = config or LoggingConfig()
    effective = (level or config.level).upper()

    logger.remove()
    logger.add(sys.stderr, format=CONSOLE_FORMAT, level=effective, colorize=True)
    if config.file:
        logger.add(
            config.file,
            format=FILE_FORMAT,
            level=effective,
            rotation=config.rotation,
            retention=config.retention,
            encoding="utf-8",
        )
    return effective
