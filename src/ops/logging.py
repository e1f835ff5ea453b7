"""
Logging setup.
"""

from __future__ import annotations

import logging
import os

# Loggers that are too chatty at INFO for a frame-by-frame run.
NOISY_LOGGERS = ("uvicorn.access", "matplotlib", "PIL")


def setup_logging(log_path: str, log_level: str = "INFO") -> None:
    log_dir = os.path.dirname(log_path)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    level = getattr(logging, str(log_level).upper(), None)
    if not isinstance(level, int):
        level = logging.INFO

    logging.basicConfig(
        level=level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(log_path),
            logging.StreamHandler(),
        ],
        force=True,
    )

    for name in NOISY_LOGGERS:
        logging.getLogger(name).setLevel(max(level, logging.WARNING))
