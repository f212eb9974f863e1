"""
Logging setup for applications embedding the offline store.

Library modules only ever call ``logging.getLogger(__name__)``; configuring
handlers is left to the host application through ``setup_logging``.
"""

import logging
from typing import Optional, Union

from offline_sync.core.config import settings

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def setup_logging(level: Optional[Union[str, int]] = None) -> None:
    """
    Configure the root logger.

    Args:
        level: Logging level name or number. Defaults to ``settings.LOG_LEVEL``.
    """
    if level is None:
        level = settings.LOG_LEVEL
    if isinstance(level, str):
        level = level.upper()
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("offline_sync").setLevel(level)
