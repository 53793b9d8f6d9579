"""
Logging configuration for the placement portal.

Call setup_logging() once at process start (API server or admin console).
Modules log through logging.getLogger(__name__).
"""

import logging
import sys
from typing import Optional, Union


def setup_logging(
    component_name: str = "api",
    level: Union[int, str] = logging.INFO,
    format_string: Optional[str] = None
) -> logging.Logger:
    """
    Configure root logging for a portal component.

    Args:
        component_name: Component identifier (e.g. 'api', 'console')
        level: Logging level name or number
        format_string: Custom format string (default provided)
    """
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
        if not isinstance(level, int):
            level = logging.INFO

    if format_string is None:
        format_string = f"[%(asctime)s] [{component_name.upper()}] %(levelname)s - %(message)s"

    logging.basicConfig(
        level=level,
        format=format_string,
        datefmt="%Y-%m-%d %H:%M:%S",
        handlers=[logging.StreamHandler(sys.stdout)]
    )

    logger = logging.getLogger(component_name)
    logger.info("%s logging initialized (level=%s)", component_name.upper(), logging.getLevelName(level))
    return logger
