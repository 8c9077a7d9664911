"""
Logging configuration for PySpeciesPool.

All modules obtain their logger through get_logger(__name__) so that a single
call to setup_logging() controls the whole package.
"""
import logging
from pathlib import Path
from typing import Optional, Sequence, Union

PACKAGE_LOGGER = "pyspeciespool"
DEFAULT_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"


def setup_logging(
    level: Union[int, str] = logging.INFO,
    log_file: Optional[Union[str, Path]] = None,
    fmt: str = DEFAULT_FORMAT,
) -> logging.Logger:
    """Configure the package logger.

    Calling this more than once replaces the handlers installed by the
    previous call, so repeated configuration does not duplicate output.

    Args:
        level: Logging level name or number
        log_file: Optional path of a file that receives the same records
        fmt: Format string for all handlers

    Returns:
        The configured package logger
    """
    logger = logging.getLogger(PACKAGE_LOGGER)
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger.setLevel(level)

    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(fmt)

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file is not None:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_path, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    logger.propagate = False
    return logger


def get_logger(name: str) -> logging.Logger:
    """Return a logger below the package logger."""
    if name != PACKAGE_LOGGER and not name.startswith(PACKAGE_LOGGER + "."):
        name = f"{PACKAGE_LOGGER}.{name}"
    return logging.getLogger(name)


def log_target_summary(
    logger: logging.Logger,
    plot_id: str,
    n_radius: int,
    n_filtered: int,
    outcomes: Sequence[str],
) -> None:
    """Log the neighbour counts and outcome codes of one target plot."""
    logger.debug(
        "Target %s: %d plots within radius, %d after similarity filter, outcomes=%s",
        plot_id, n_radius, n_filtered, ",".join(outcomes) or "ok",
    )
