"""Structured logging setup using loguru."""

import sys
from pathlib import Path
from loguru import logger
from typing import Callable, Iterable, Optional, Union


def mask_token(text: str, token: str) -> str:
    """Replace the bot token inside URLs/messages before they reach the logs."""
    if not token or not text:
        return text
    return text.replace(token, "***")


def secret_filter(secrets: Iterable[str]) -> Callable[[dict], bool]:
    """
    Loguru filter that scrubs secrets from every record.

    File URLs of the Bot API carry the token in their path, so any message
    that mentions such a URL goes through here.
    """
    secrets = [s for s in secrets if s]

    def _filter(record: dict) -> bool:
        for secret in secrets:
            record["message"] = mask_token(record["message"], secret)
        return True

    return _filter


def setup_logger(
    log_level: str = "INFO",
    log_file: Optional[Union[str, Path]] = None,
    secrets: Iterable[str] = (),
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """
    Configure loguru sinks for the payment service.

    Args:
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_file: Optional path to log file. If None, logs only to console.
        secrets: Values masked as *** in every sink (bot token, service keys)
        rotation: Log rotation size (e.g., "10 MB", "1 day")
        retention: Log retention period (e.g., "7 days")
    """
    logger.remove()
    scrub = secret_filter(secrets)

    format_string = (
        "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
        "<level>{level: <8}</level> | "
        "<cyan>{name}</cyan>:<cyan>{function}</cyan>:<cyan>{line}</cyan> | "
        "<level>{message}</level>"
    )

    # diagnose prints local variables, which would include the bot token
    logger.add(
        sys.stderr,
        format=format_string,
        level=log_level,
        filter=scrub,
        colorize=True,
        backtrace=True,
        diagnose=False
    )

    if log_file:
        log_file = Path(log_file)
        log_file.parent.mkdir(parents=True, exist_ok=True)

        logger.add(
            log_file,
            format=format_string,
            level=log_level,
            filter=scrub,
            rotation=rotation,
            retention=retention,
            compression="zip",
            backtrace=True,
            diagnose=False
        )
