"""Common CLI helper utilities."""

from __future__ import annotations

import logging
import os


def setup_logging() -> None:
    """Configure standard logging format for CLI tools.

    Debug output is enabled when the ``DEBUG`` environment variable
    mentions ``libingester``.
    """
    level = logging.INFO
    if "libingester" in os.environ.get("DEBUG", ""):
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(levelname)s - %(message)s",
    )
