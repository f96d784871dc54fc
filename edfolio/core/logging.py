"""Shared logging helpers."""

import logging
from typing import Optional

_CONFIGURED = False
_DEFAULT_FORMAT = "%(asctime)s %(levelname)s %(name)s - %(message)s"


def setup_logging(level: Optional[str] = None, *, fmt: Optional[str] = None) -> None:
    """Configure the root logger once, using LOG_LEVEL when no level is given."""
    global _CONFIGURED
    if _CONFIGURED:
        return
    if level is None:
        from edfolio.core.config import settings
        level = settings.LOG_LEVEL
    logging.basicConfig(level=level.upper(), format=fmt or _DEFAULT_FORMAT)
    _CONFIGURED = True
