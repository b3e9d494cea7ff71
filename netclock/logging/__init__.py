from netclock.logging._netclock_logger import NETCLOCK_LOGGER, ColoredFormatter, set_log_level

__all__ = ["NETCLOCK_LOGGER", "ColoredFormatter", "set_log_level"]
