# seo_pilot/utils/logging_setup.py

import logging
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

LOG_FORMAT = "%(asctime)s - %(levelname)s - %(name)s - %(message)s"
NOISY_LOGGERS = ("httpx", "httpcore", "urllib3", "google.auth")


def setup_logging(log_dir: Optional[Path] = None, *, verbose: bool = False) -> None:
    """
    File log (rotating, always DEBUG) + stderr log (WARNING, or DEBUG with --verbose).
    Does nothing if the root logger already has handlers.
    """
    root = logging.getLogger()
    if root.handlers:
        return
    root.setLevel(logging.DEBUG)
    fmt = logging.Formatter(LOG_FORMAT)

    if log_dir is not None:
        try:
            log_dir.mkdir(parents=True, exist_ok=True)
            fh = RotatingFileHandler(log_dir / "seo-pilot.log", maxBytes=1_000_000, backupCount=3, encoding="utf-8")
            fh.setLevel(logging.DEBUG)
            fh.setFormatter(fmt)
            root.addHandler(fh)
        except OSError as e:
            logging.getLogger(__name__).warning("File logging disabled: %s", e)

    sh = logging.StreamHandler()
    sh.setLevel(logging.DEBUG if verbose else logging.WARNING)
    sh.setFormatter(fmt)
    root.addHandler(sh)

    for noisy in NOISY_LOGGERS:
        logging.getLogger(noisy).setLevel(logging.WARNING)
