"""netclock: single-shot SNTP / RFC 868 clock synchronization."""

__version__ = "0.1.0"
