"""
loguru setup for keyrelay.

Every sink installed here runs records through :func:`redact_credentials`,
so a full API key that slips into an exception message (providers often
echo the key back in 401 bodies) is reduced to its masked preview before
it reaches stderr or the log file.
"""

import re
import sys

from loguru import logger

# Same prefixes the pool accepts, plus the Google API key shape
_CREDENTIAL_RE = re.compile(r"\b(?:csk-|sk-|api-|AIza)[A-Za-z0-9_\-]{12,}")

_CONSOLE_FORMAT = "<level>[{level.name}]</level> {message}"
_FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss} | {level} | {name} | {message}"


def _mask(match: re.Match) -> str:
    return f"...{match.group(0)[-4:]}"


def redact_credentials(record: dict) -> bool:
    """loguru filter: rewrite credential-shaped tokens in place, keep the record."""
    record["message"] = _CREDENTIAL_RE.sub(_mask, record["message"])
    return True


def setup_logging(
    level: str = "WARNING",
    log_file: str | None = None,
    rotation: str = "10 MB",
    retention: str = "7 days",
) -> None:
    """
    Replace loguru's default sink with a redacting stderr sink.

    Rotation events are logged at INFO and save failures at ERROR, so the
    default WARNING level keeps the CLI quiet unless something went wrong.

    Args:
        level: Minimum log level (DEBUG, INFO, WARNING, ERROR).
        log_file: Optional path for a size-rotated log file.
        rotation: When to roll the log file.
        retention: How long rolled files are kept.
    """
    level = level.upper()
    logger.remove()
    logger.add(sys.stderr, level=level, format=_CONSOLE_FORMAT, filter=redact_credentials)

    if log_file:
        logger.add(
            log_file,
            level=level,
            format=_FILE_FORMAT,
            filter=redact_credentials,
            rotation=rotation,
            retention=retention,
        )
