"""
Logging configuration for the application.

``setup_logging`` attaches a console handler and an optional file
handler to the root logger.  Every module obtains its own logger via
``logging.getLogger(__name__)`` so records carry the originating module
name.

Card payments pass through the API, so every handler carries a
``CardNumberFilter`` that masks anything shaped like a card number
before it is written.  Only the last four digits survive, the same
part that is stored on the payment row.
"""

import logging
import re
from pathlib import Path
from typing import Optional


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"

# 13 to 19 digits, optionally grouped by single spaces or dashes.  Digits
# glued to a dash or word character (TXN-<ms> ids) are left alone.
CARD_NUMBER_RE = re.compile(r"(?<![\w-])(?:\d[ -]?){12,18}\d(?![\w-])")


def mask_card_numbers(text: str) -> str:
    def _mask(match: "re.Match[str]") -> str:
        digits = re.sub(r"\D", "", match.group(0))
        return "*" * (len(digits) - 4) + digits[-4:]

    return CARD_NUMBER_RE.sub(_mask, text)


class CardNumberFilter(logging.Filter):
    """Rewrite records so card numbers never reach a log sink."""

    def filter(self, record: logging.LogRecord) -> bool:
        message = record.getMessage()
        masked = mask_card_numbers(message)
        if masked != message:
            record.msg = masked
            record.args = None
        return True


def setup_logging(level: str = "INFO", logfile: Optional[str] = None) -> None:
    """Configure the root logger once.

    Calling this again (tests, repeated ``create_app``) is a no-op.

    Parameters
    ----------
    level : str
        Logging level name (e.g. ``"DEBUG"``, ``"INFO"``).  Case
        insensitive.
    logfile : Optional[str]
        Path to a file to log messages to.  If omitted, no file
        handler is added.
    """
    logger = logging.getLogger()
    if logger.handlers:
        return

    logger.setLevel(getattr(logging, level.upper(), logging.INFO))
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%d %H:%M:%S")
    handlers: list = [logging.StreamHandler()]
    if logfile:
        handlers.append(logging.FileHandler(Path(logfile).resolve(), encoding="utf-8"))
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(CardNumberFilter())
        logger.addHandler(handler)
