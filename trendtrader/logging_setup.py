# -*- coding: utf-8 -*-
"""
Logging configuration for the trend trader processes.
"""

import logging
from typing import Optional


LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
ROOT_LOGGER_NAME = "trendtrader"


def setup_logging(log_level: str = "INFO", log_file: Optional[str] = None) -> logging.Logger:
    """
    Setup logging configuration.

    Installs a console handler (and a file handler if ``log_file`` is given)
    on the package logger. Calling it again replaces the handlers it added
    before instead of stacking duplicates.

    Parameters
    ----------
    log_level : str, default "INFO"
        Level name such as "DEBUG" or "INFO".
    log_file : str or None, optional
        Path of a log file to append to.

    Returns
    -------
    logging.Logger
        The configured package logger.
    """
    level = getattr(logging, log_level.upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level)

    for handler in list(logger.handlers):
        if getattr(handler, '_trendtrader_handler', False):
            logger.removeHandler(handler)
            handler.close()

    formatter = logging.Formatter(LOG_FORMAT)

    handlers = [logging.StreamHandler()]
    if log_file:
        handlers.append(logging.FileHandler(log_file))

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
        handler._trendtrader_handler = True
        logger.addHandler(handler)

    return logger
