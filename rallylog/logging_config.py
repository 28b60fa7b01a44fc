"""
Logging setup shared by the API, the CLI and the validation harness.
"""

import logging
from typing import Optional

from rallylog.config import settings


def configure_logging(level: Optional[str] = None, fmt: Optional[str] = None) -> logging.Logger:
    """Attach a single stream handler to the ``rallylog`` logger."""
    root = logging.getLogger("rallylog")
    root.setLevel(getattr(logging, (level or settings.LOG_LEVEL).upper(), logging.INFO))
    if not root.handlers:
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(fmt or settings.LOG_FORMAT))
        root.addHandler(handler)
    return root
