from netclock.settings._netclock_settings import NetClockSettings, default_config_path

__all__ = ["NetClockSettings", "default_config_path"]
