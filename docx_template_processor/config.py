"""
Runtime settings for the template processor.

Values come from environment variables so that tool callers can switch
behaviour without code changes:

    WORD_TEMPLATE_OUTPUT_ESCAPING=1  escape replacement values as XML text
    WORD_TEMPLATE_TEMP_DIR=/path     where temporary package copies live
    WORD_TEMPLATE_DEBUG=1            log engine activity to stderr
"""
import logging
import os
from dataclasses import dataclass
from typing import Optional

PACKAGE_LOGGER = "docx_template_processor"

_TRUE_VALUES = ("1", "true", "yes", "on")


def _env_flag(name: str) -> bool:
    return os.getenv(name, "0").strip().lower() in _TRUE_VALUES


@dataclass(frozen=True)
class Settings:
    output_escaping: bool = False
    temp_dir: Optional[str] = None
    debug: bool = False

    @classmethod
    def from_env(cls) -> "Settings":
        return cls(
            output_escaping=_env_flag("WORD_TEMPLATE_OUTPUT_ESCAPING"),
            temp_dir=os.getenv("WORD_TEMPLATE_TEMP_DIR") or None,
            debug=_env_flag("WORD_TEMPLATE_DEBUG"),
        )


def configure_logging(settings: Optional[Settings] = None) -> logging.Logger:
    """Attach a stderr handler to the package logger when debugging is on."""
    settings = settings or Settings.from_env()
    logger = logging.getLogger(PACKAGE_LOGGER)
    if settings.debug:
        logger.setLevel(logging.DEBUG)
        if not logger.handlers:
            handler = logging.StreamHandler()
            handler.setFormatter(logging.Formatter("[%(name)s] %(message)s"))
            logger.addHandler(handler)
    return logger
