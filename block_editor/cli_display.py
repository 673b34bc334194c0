import logging
import os
from datetime import datetime


def setup_logger(log_dir: str = ".block_editor/logs",
                 verbose: bool = False) -> logging.Logger:
    """Creates a file logger. All verbose output goes here.

    With *verbose*, INFO and above are echoed to stderr as well.
    """
    os.makedirs(log_dir, exist_ok=True)
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
    log_file = os.path.join(log_dir, f"edit_{timestamp}.log")

    logger = logging.getLogger("block_editor")
    logger.setLevel(logging.DEBUG)

    # File handler captures everything
    fh = logging.FileHandler(log_file, encoding="utf-8")
    fh.setLevel(logging.DEBUG)
    fh.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(message)s", datefmt="%H:%M:%S"
    ))
    logger.addHandler(fh)

    if verbose:
        sh = logging.StreamHandler()
        sh.setLevel(logging.INFO)
        sh.setFormatter(logging.Formatter("[%(levelname)s] %(message)s"))
        logger.addHandler(sh)

    return logger
