import logging
import sys


class ColoredFormatter(logging.Formatter):
    COLORS = {
        "DEBUG": "\033[94m",  # Blue
        "INFO": "\033[92m",  # Green
        "WARNING": "\033[93m",  # Yellow
        "ERROR": "\033[91m",  # Red
        "CRITICAL": "\033[95m",  # Magenta
    }
    RESET = "\033[0m"

    def format(self, record):
        # Colour a copy of the level name so other handlers see the plain one
        original = record.levelname
        color = self.COLORS.get(original, self.RESET)
        record.levelname = f"{color}{original}{self.RESET}"
        try:
            return super().format(record)
        finally:
            record.levelname = original


def set_log_level(level: str) -> None:
    """Set the package logger level from a name such as ``"DEBUG"``."""
    numeric = logging.getLevelName(level.upper())
    if not isinstance(numeric, int):
        raise ValueError(f"Unknown log level: {level}")
    NETCLOCK_LOGGER.setLevel(numeric)


NETCLOCK_LOGGER = logging.getLogger("netclock")
NETCLOCK_LOGGER.setLevel(logging.WARNING)

# stdout carries the time report, diagnostics go to stderr
handler = logging.StreamHandler(sys.stderr)
log_format = "%(asctime)s %(levelname)s %(message)s"
date_format = "%Y-%m-%d %H:%M:%S"
formatter = ColoredFormatter(fmt=log_format, datefmt=date_format)
handler.setFormatter(formatter)
NETCLOCK_LOGGER.handlers.clear()
NETCLOCK_LOGGER.addHandler(handler)
