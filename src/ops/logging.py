"""
Logging setup for the KYC live runtime.
"""

from __future__ import annotations

import logging
import os
from typing import Iterable

VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")

# Third-party loggers that are chatty at INFO
NOISY_LOGGERS = ("urllib3", "google", "multipart")


def setup_logging(log_path: str, log_level: str, quiet: Iterable[str] = NOISY_LOGGERS) -> None:
    """
    Log to both `log_path` and stderr.

    Frames and image payloads are never logged; callers log sizes and
    outcomes only.
    """
    if log_level not in VALID_LOG_LEVELS:
        raise ValueError(f"log_level must be one of: {', '.join(VALID_LOG_LEVELS)}")

    log_dir = os.path.dirname(log_path)
    if log_dir and not os.path.exists(log_dir):
        os.makedirs(log_dir)

    logging.basicConfig(
        level=getattr(logging, log_level),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        handlers=[
            logging.FileHandler(log_path),
            logging.StreamHandler(),
        ],
        force=True,
    )

    for name in quiet:
        logging.getLogger(name).setLevel(max(logging.WARNING, getattr(logging, log_level)))
