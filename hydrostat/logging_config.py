"""
Logging Configuration
Attaches console (and optional file) handlers to the 'hydrostat' logger.

Modules log through logging.getLogger(__name__), so everything under
hydrostat.* goes through the handlers set up here. Nothing is configured on
import; demos and scripts call setup_logging() once.
"""
import logging
import sys
from typing import Optional, Union

from .config import CONFIG, SimulationConfig

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'


def setup_logging(
    level: Union[int, str, None] = None,
    log_file: Optional[str] = None,
    config: Optional[SimulationConfig] = None
) -> logging.Logger:
    """
    Configures the 'hydrostat' namespace logger.

    Args:
        level: Logging level as a number or a name ("DEBUG", "info", ...).
            When omitted, the config's log_level is used.
        log_file: Optional path to save logs to a file (overwritten).
        config: Run settings to read log_level from; defaults to CONFIG.

    Returns:
        The configured package logger.
    """
    if level is None:
        level = (config or CONFIG).log_level
    level = SimulationConfig.resolve_log_level(level)

    logger = logging.getLogger("hydrostat")
    logger.setLevel(level)

    # Repeated calls replace the handlers instead of stacking them
    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)

    formatter = logging.Formatter(LOG_FORMAT, datefmt='%H:%M:%S')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='w', encoding='utf-8')
        file_handler.setLevel(level)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.info("Logging initialized at %s.", logging.getLevelName(level))
    return logger
