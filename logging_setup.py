# logging_setup.py

from __future__ import annotations

import sys
from pathlib import Path

from loguru import logger

from config import Settings, get_settings

_configured = False


def setup_logging(settings: Settings | None = None) -> None:
    """
    Configure loguru sinks:
    - stderr at the configured level
    - optional rotating file under LOG_DIR with everything down to DEBUG

    Safe to call on every Streamlit rerun; only the first call does anything.
    """
    global _configured
    if _configured:
        return
    settings = settings or get_settings()

    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="{time:YYYY-MM-DD HH:mm:ss.SSS} {level} {name}: {message}",
    )
    if settings.log_dir:
        log_dir = Path(settings.log_dir).expanduser()
        log_dir.mkdir(parents=True, exist_ok=True)
        logger.add(
            str(log_dir / "taskdeck.log"),
            level="DEBUG",
            rotation="5 MB",
            retention=5,
            encoding="utf-8",
            enqueue=True,
        )
    _configured = True
