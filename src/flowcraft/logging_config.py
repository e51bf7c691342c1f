"""
Logging Configuration
=====================
Sets up the ``flowcraft`` logger and routes Qt's own diagnostics into it.

QtSvg reports every SVG feature it cannot paint (mermaid output uses a few)
through Qt's message handler. Those lines end up under ``flowcraft.qt`` so
they share the format and the optional log file with the rest of the app.
"""
import logging
import sys
from typing import Optional

from PySide6.QtCore import QtMsgType, qInstallMessageHandler

LOG_FORMAT = '%(asctime)s - %(name)s - %(levelname)s - %(message)s'
DATE_FORMAT = '%H:%M:%S'

_QT_LEVELS = {
    QtMsgType.QtDebugMsg: logging.DEBUG,
    QtMsgType.QtInfoMsg: logging.INFO,
    QtMsgType.QtWarningMsg: logging.WARNING,
    QtMsgType.QtCriticalMsg: logging.ERROR,
    QtMsgType.QtFatalMsg: logging.CRITICAL,
}


def setup_logging(
    level: int = logging.INFO,
    log_file: Optional[str] = None,
    capture_qt: bool = True,
) -> logging.Logger:
    """
    Configure the 'flowcraft' namespace logger.

    Args:
        level: Logging level (e.g. logging.DEBUG, logging.INFO)
        log_file: Optional path; the file is appended to across sessions.
        capture_qt: Forward Qt warnings (QtSvg, platform plugins) to ``flowcraft.qt``.
    """
    logger = logging.getLogger("flowcraft")
    logger.setLevel(level)

    # Re-running setup (tests, window re-creation) must not duplicate output
    for handler in list(logger.handlers):
        logger.removeHandler(handler)
        handler.close()

    formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    console = logging.StreamHandler(sys.stdout)
    console.setFormatter(formatter)
    logger.addHandler(console)

    if log_file:
        file_handler = logging.FileHandler(log_file, mode='a', encoding='utf-8')
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    if capture_qt:
        qInstallMessageHandler(qt_message_handler)

    logger.info(f"Logging initialized at {logging.getLevelName(level)}.")
    return logger


def qt_message_handler(mode: QtMsgType, context, message: str) -> None:
    logging.getLogger("flowcraft.qt").log(_QT_LEVELS.get(mode, logging.WARNING), message)


def level_from_name(name: Optional[str], default: int = logging.INFO) -> int:
    """Translate a level name such as 'debug' into a logging constant."""
    if not name:
        return default
    value = logging.getLevelName(name.strip().upper())
    return value if isinstance(value, int) else default
