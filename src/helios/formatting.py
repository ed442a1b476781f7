"""Human-readable formatting of telemetry values."""

BYTE_UNITS = ("B", "KiB", "MiB", "GiB", "TiB", "PiB", "EiB")


def format_bytes(size: int) -> str:
    """Format bytes with binary units, e.g. ``1.5 MiB``."""
    value = float(size)
    unit_index = 0
    while value >= 1024 and unit_index < len(BYTE_UNITS) - 1:
        value /= 1024
        unit_index += 1

    if unit_index == 0:
        return f"{size} {BYTE_UNITS[0]}"
    return f"{value:.1f} {BYTE_UNITS[unit_index]}"


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}" if count == 1 else f"{count} {unit}s"


def format_uptime(seconds: int) -> str:
    """
    Format an uptime as its largest units.

    Days and hours show down to minutes, anything under an hour shows
    minutes and seconds, and anything under a minute shows seconds only.
    """
    seconds = int(seconds)
    days = seconds // 86400
    hours = (seconds % 86400) // 3600
    minutes = (seconds % 3600) // 60
    secs = seconds % 60

    if days > 0:
        parts = [_plural(days, "day"), _plural(hours, "hour"), _plural(minutes, "minute")]
    elif hours > 0:
        parts = [_plural(hours, "hour"), _plural(minutes, "minute")]
    elif minutes > 0:
        parts = [_plural(minutes, "minute"), _plural(secs, "second")]
    else:
        parts = [_plural(secs, "second")]
    return ", ".join(parts)


def format_cpu_freq(mhz: int) -> str:
    """Format a clock frequency given in MHz."""
    mhz = int(mhz)
    if mhz >= 1000:
        ghz = mhz / 1000
        if ghz.is_integer():
            return f"{int(ghz)} GHz"
        return f"{ghz:.2f} GHz"
    return f"{mhz} MHz"


def format_usage(used: int, total: int) -> str:
    """Format ``used / total (pct%)`` for memory, swap and disks."""
    percent = (used / total) * 100 if total > 0 else 0.0
    return f"{format_bytes(used)} / {format_bytes(total)} ({percent:.1f}%)"
