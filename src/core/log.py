"""Logging bootstrap.

Modules log through ``logging.getLogger(__name__)``; the embedding
application calls ``setup_logging`` once at start-up.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

from config import LOG_LEVEL

LOG_FORMAT = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


def resolve_level(level: Union[int, str, None]) -> int:
    if level is None:
        level = LOG_LEVEL
    if isinstance(level, int):
        return level
    return getattr(logging, str(level).strip().upper(), logging.INFO)


def setup_logging(level: Optional[Union[int, str]] = None) -> None:
    logging.basicConfig(
        level=resolve_level(level),
        format=LOG_FORMAT,
        datefmt=DATE_FORMAT,
    )
