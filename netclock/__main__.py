import math
import sys
from datetime import datetime, timedelta

import click
from pydantic import ValidationError

from netclock import __version__
from netclock.clock.clock_adjuster import AdjustmentMode
from netclock.exceptions import NetClockError
from netclock.logging import NETCLOCK_LOGGER, set_log_level
from netclock.settings import NetClockSettings, default_config_path
from netclock.synchronizer import ClockSynchronizer
from netclock.time.rfc868_client import Transport
from netclock.time.sntp_client import measure_clock_precision_ns
from netclock.time.sync_result import SyncResult
from netclock.time.time_sources import TimeProtocol


def format_precision(precision_ns: int) -> str:
    seconds = precision_ns / 1e9
    return f"Precision: {precision_ns / 1e3:.3f}μs ({math.ceil(math.log2(seconds))})"


def format_details(result: SyncResult) -> list:
    """Verbose lines describing an SNTP reply; empty for RFC 868."""
    if result.offset_ns is None:
        return []
    lines = [
        f"Delay: {result.delay_s * 1e3:.3f}ms",
        f"Dispersion: {result.dispersion_s * 1e6:.1f}μs",
        f"Stratum: {result.stratum} (reference {result.reference})",
    ]
    if result.precision is not None:
        lines.append(f"Server precision: 2^{result.precision}s")
    return lines


def format_adjustment(result: SyncResult, mode: AdjustmentMode) -> str:
    method = "adjtime" if mode is AdjustmentMode.SLEW else "instant change"
    return f"adjust local clock by {result.clock_delta_ns / 1e9:.6f} seconds ({method})"


@click.command()
@click.version_option(__version__, prog_name="netclock")
@click.argument("host")
@click.option("-v", "--verbose", count=True, help="Verbose output (repeat for debug logging)")
@click.option("-p", "--print", "print_only", is_flag=True, default=False, help="Just print, don't set")
@click.option("-s", "--silent", is_flag=True, default=False, help="Just set, don't print")
@click.option(
    "-u",
    "udp",
    is_flag=True,
    default=False,
    help="Use UDP instead of TCP as transport for RFC 868. SNTP always uses UDP.",
)
@click.option(
    "-o",
    "--port",
    type=click.IntRange(1, 65535),
    default=None,
    help="Use this port instead of 37 (RFC 868) or 123 (SNTP)",
)
@click.option(
    "-a",
    "adjtime",
    is_flag=True,
    default=False,
    help="Gradually skew the local clock with adjtime(2) instead of stepping it",
)
@click.option("--rfc868", is_flag=True, default=False, help="Use the RFC 868 time protocol instead of SNTP")
@click.option(
    "-t",
    "--timeout",
    type=click.FloatRange(min=0, min_open=True),
    default=None,
    help="Seconds to wait for the reply (default: 5)",
)
@click.option("--log-level", default=None, help="Set logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)")
def cli(host, verbose, print_only, silent, udp, port, adjtime, rfc868, timeout, log_level):
    """Fetch the time from HOST with SNTP (RFC 5905) or RFC 868 and set the local clock."""
    if print_only and silent:
        raise click.UsageError("-p/--print and -s/--silent are mutually exclusive")

    # Only explicit flags override the environment and config file
    overrides = {"host": host}
    if verbose:
        overrides["verbose"] = verbose
    if silent:
        overrides["silent"] = True
    if port is not None:
        overrides["port"] = port
    if timeout is not None:
        overrides["timeout"] = timeout
    if log_level is not None:
        overrides["log_level"] = log_level
    if rfc868:
        overrides["protocol"] = TimeProtocol.RFC868
    if udp:
        overrides["transport"] = Transport.UDP
    if print_only:
        overrides["mode"] = AdjustmentMode.PRINT_ONLY
    elif adjtime:
        overrides["mode"] = AdjustmentMode.SLEW

    try:
        settings = NetClockSettings(**overrides)
    except ValidationError as e:
        raise click.UsageError(str(e))
    except ValueError as e:
        raise click.UsageError(f"Invalid config file {default_config_path()}: {e}")

    set_log_level("DEBUG" if settings.verbose > 1 else settings.log_level)

    try:
        synchronizer = ClockSynchronizer(settings)
        if settings.verbose:
            click.echo(format_precision(measure_clock_precision_ns()))

        result = synchronizer.query()
        if settings.verbose:
            for line in format_details(result):
                click.echo(line)

        if not settings.silent:
            corrected = datetime.now() + timedelta(microseconds=result.clock_delta_ns // 1000)
            click.echo(corrected.strftime("%c"))
            if settings.verbose:
                click.echo(format_adjustment(result, settings.mode))

        synchronizer.apply(result)
    except NetClockError as e:
        NETCLOCK_LOGGER.error(str(e))
        sys.exit(e.exit_code)


if __name__ == "__main__":
    cli()
