"""
tourmap – named stops in, routed bike/foot legs and trip maps out.

Importing the package sets a plain root logging format (overridable via
``TOURMAP_LOG_LEVEL``) and fixes where artefacts go by default
(``TOURMAP_OUTPUT_DIR``).  The CLI swaps the handler for Rich.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Final

__all__ = ["logger", "OUTPUT_DIR", "__version__"]

__version__ = "0.3.0"

# ---------- paths ----------
OUTPUT_DIR: Final[Path] = Path(os.getenv("TOURMAP_OUTPUT_DIR", "output"))

# ---------- logging ----------
LOG_LEVEL = os.getenv("TOURMAP_LOG_LEVEL", "INFO").upper()

logging.basicConfig(
    level=LOG_LEVEL,
    format="%(asctime)s │ %(levelname)-8s │ %(name)s │ %(message)s",
    datefmt="%Y-%m-%d %H:%M:%S",
)

logger = logging.getLogger("tourmap")
logger.debug("Logging initialised (level=%s)", LOG_LEVEL)
