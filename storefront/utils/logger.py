"""
Logging setup for the storefront cart core.

Every module logs through a child of the ``storefront`` logger so that one
handler (stdout) and one level (``LOG_LEVEL``) govern the whole package.
Messages use a key=value style so they stay grep-able in hosted logs:

    cart: method=add_item user_id=42 product_id=7 quantity=2
"""
import logging
import os
import sys

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO").upper()
logger = logging.getLogger("storefront")
logger.setLevel(LOG_LEVEL)

if not logger.handlers:
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(logging.NOTSET)
    console_handler.setFormatter(logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT))
    logger.addHandler(console_handler)

# Prevent propagation to root logger (avoid duplicate logs)
logger.propagate = False


def set_log_level(level: str) -> None:
    """Change the package-wide level at runtime (e.g. from StorefrontConfig)."""
    logger.setLevel(level.upper())


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Optional suffix, e.g. "cache" gives the "storefront.cache" logger

    Returns:
        Logger instance
    """
    if name:
        return logging.getLogger(f"storefront.{name}")
    return logger
