"""Logging setup for the web3hire backend.

All loggers live under the ``web3hire`` hierarchy so a single call to
:func:`setup_logging` configures the whole service.
"""

import logging
import sys

ROOT_LOGGER_NAME = "web3hire"
LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def setup_logging(level: str = "INFO") -> logging.Logger:
    """Attach a stream handler to the root ``web3hire`` logger.

    Safe to call more than once: an existing handler is reused and only the
    level is updated.
    """
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level.upper())

    if not any(getattr(h, "_web3hire_handler", False) for h in logger.handlers):
        handler = logging.StreamHandler(sys.stdout)
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._web3hire_handler = True
        logger.addHandler(handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a logger, namespaced under ``web3hire`` if it isn't already."""
    if name != ROOT_LOGGER_NAME and not name.startswith(f"{ROOT_LOGGER_NAME}."):
        name = f"{ROOT_LOGGER_NAME}.{name}"
    return logging.getLogger(name)


def log_auth_event(
    event: str,
    wallet_address: str | None,
    success: bool,
    detail: str | None = None,
) -> None:
    """Log an authentication event in a greppable single-line format.

    Never pass signatures, nonces or tokens as ``detail``.
    """
    logger = get_logger("web3hire.auth")
    outcome = "ok" if success else "failed"
    message = f"AUTH {event} | wallet={wallet_address or '-'} | {outcome}"
    if detail:
        message = f"{message} | {detail}"
    if success:
        logger.info(message)
    else:
        logger.warning(message)
