"""Protocol and process constants for netclock.

Centralizing these values keeps the protocol modules, the settings layer and
the CLI in agreement.
"""

# ============================================================================
# WIRE PROTOCOLS
# ============================================================================
NTP_PORT = 123
TIME_PORT = 37  # RFC 868

NTP_PACKET_SIZE = 48
RFC868_PACKET_SIZE = 4

NTP_VERSION = 4
NTP_MODE_CLIENT = 3
NTP_MODE_SERVER = 4
NTP_LEAP_ALARM = 3

# Seconds between 1900-01-01 (NTP / RFC 868 epoch) and 1970-01-01 (Unix epoch)
NTP_UNIX_DELTA = 2_208_988_800
NTP_ERA_SECONDS = 1 << 32

NANOSECONDS = 1_000_000_000

# ============================================================================
# NETWORK
# ============================================================================
DEFAULT_TIMEOUT_S = 5.0

# ============================================================================
# EXIT CODES
# ============================================================================
EXIT_NETWORK_ERROR = 3
EXIT_PROTOCOL_ERROR = 4
EXIT_PERMISSION_ERROR = 5
EXIT_CLOCK_ERROR = 6
