from __future__ import annotations

import logging
import sys
from pathlib import Path

_CONFIGURED = False


def setup_logging(
    *,
    log_dir: str | Path = ".local/taskboard",
    console_level: int = logging.INFO,
    file_level: int = logging.DEBUG,
) -> bool:
    """Install a console handler and a file handler on the ``taskboard`` logger.

    Streamlit re-executes the entry script on every interaction, so repeated
    calls are no-ops. Returns True when handlers were installed by this call.
    """
    global _CONFIGURED
    if _CONFIGURED:
        return False

    log_dir = Path(log_dir)
    log_dir.mkdir(parents=True, exist_ok=True)

    # Streamlit owns the root logger; attach to our namespace only.
    logger = logging.getLogger("taskboard")
    logger.setLevel(min(console_level, file_level))
    logger.propagate = False

    fmt = logging.Formatter(
        fmt="%(asctime)s.%(msecs)03d %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    ch = logging.StreamHandler(sys.stderr)
    ch.setLevel(console_level)
    ch.setFormatter(fmt)
    logger.addHandler(ch)

    fh = logging.FileHandler(str(log_dir / "taskboard.log"), encoding="utf-8")
    fh.setLevel(file_level)
    fh.setFormatter(fmt)
    logger.addHandler(fh)

    _CONFIGURED = True
    return True
