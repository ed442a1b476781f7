"""Host probe: one full scan of host telemetry using psutil."""

import ipaddress
import logging
import re
import socket
import time
from collections.abc import Callable, Iterable, Mapping
from pathlib import Path

import cpuinfo
import psutil

from helios.formatting import format_cpu_freq, format_uptime, format_usage
from helios.identity import HostIdentity, get_identity
from helios.models import LineEntry, SystemSnapshot

logger = logging.getLogger(__name__)

SKIPPED_FILESYSTEMS = frozenset({"tmpfs", "devtmpfs", "overlay", "squashfs"})

IPV4_EXCLUDED = tuple(
    ipaddress.IPv4Network(net)
    for net in (
        "0.0.0.0/32",  # unspecified
        "127.0.0.0/8",  # loopback
        "169.254.0.0/16",  # link-local
        "224.0.0.0/4",  # multicast
        "255.255.255.255/32",  # broadcast
        "192.0.2.0/24",  # documentation
        "198.51.100.0/24",
        "203.0.113.0/24",
        "10.0.0.0/8",  # private
        "172.16.0.0/12",
        "192.168.0.0/16",
    )
)
IPV6_EXCLUDED = tuple(
    ipaddress.IPv6Network(net)
    for net in (
        "::/128",  # unspecified
        "::1/128",  # loopback
        "fe80::/10",  # link-local
        "fc00::/7",  # unique local
        "ff00::/8",  # multicast
    )
)

# Failures that mean "this host field is unavailable"
PROBE_ERRORS = (OSError, ValueError, psutil.Error)

_MODEL_NAME_RE = re.compile(r"^model name\s*:\s*(.+)$", re.MULTILINE)


def is_globally_routable(address: str) -> bool:
    """Tell whether an interface address counts towards the Network line."""
    try:
        ip = ipaddress.ip_address(address.split("%", 1)[0])
    except ValueError:
        return False
    excluded = IPV4_EXCLUDED if ip.version == 4 else IPV6_EXCLUDED
    return not any(ip in network for network in excluded)


def summarize_network(interfaces: Mapping[str, Iterable]) -> str | None:
    """
    Count routable IPv4 and IPv6 addresses across all interfaces.

    ``interfaces`` maps interface names to address records with ``family``
    and ``address`` attributes, as returned by ``psutil.net_if_addrs()``.
    Returns None when nothing routable was found.
    """
    ipv4 = 0
    ipv6 = 0
    for addresses in interfaces.values():
        for addr in addresses:
            if addr.family not in (socket.AF_INET, socket.AF_INET6):
                continue
            if not is_globally_routable(addr.address):
                continue
            if addr.family == socket.AF_INET:
                ipv4 += 1
            else:
                ipv6 += 1

    parts = []
    if ipv4 > 0:
        parts.append(f"{ipv4}x IPv4")
    if ipv6 > 0:
        parts.append(f"{ipv6}x IPv6")
    return ", ".join(parts) or None


def summarize_disks(
    partitions: Iterable,
    disk_usage: Callable[[str], object] | None = None,
) -> list[LineEntry]:
    """
    Build the Disk lines from mounted partitions.

    Devices are deduplicated with the first mount point winning, and
    pseudo filesystems are skipped. The key names the mount point only
    when more than one disk qualifies.
    """
    disk_usage = disk_usage or psutil.disk_usage
    seen_devices: set[str] = set()
    disks: list[tuple[str, str]] = []

    for part in partitions:
        if part.device in seen_devices:
            continue
        seen_devices.add(part.device)

        if not part.fstype or part.fstype in SKIPPED_FILESYSTEMS:
            continue

        try:
            usage = disk_usage(part.mountpoint)
        except PROBE_ERRORS as exc:
            logger.debug("Skipping disk %s: %s", part.mountpoint, exc)
            continue

        used = usage.total - usage.free
        disks.append((part.mountpoint, f"{format_usage(used, usage.total)} - {part.fstype}"))

    if len(disks) == 1:
        return [LineEntry("Disk", disks[0][1])]
    return [LineEntry(f"Disk ({mountpoint})", value) for mountpoint, value in disks]


def read_cpu_brand(cpuinfo_path: Path = Path("/proc/cpuinfo")) -> str:
    """
    Brand string of the first logical CPU.

    Reads the Linux "model name" field when present and asks py-cpuinfo
    otherwise. Returns "Unknown" when neither source names the CPU; the
    machine architecture is never used as a brand.
    """
    try:
        match = _MODEL_NAME_RE.search(cpuinfo_path.read_text(encoding="utf-8", errors="ignore"))
    except OSError:
        match = None
    if match and match.group(1).strip():
        return match.group(1).strip()

    try:
        brand = cpuinfo.get_cpu_info().get("brand_raw")
    except Exception as exc:
        logger.debug("py-cpuinfo lookup failed: %s", exc)
        brand = None
    if brand and brand.strip():
        return brand.strip()
    return "Unknown"


class HostProbe:
    """
    Collects a SystemSnapshot from the running host.

    Holds no state besides the identity values; every call performs a full
    scan. Each telemetry step is isolated so that a failing host query only
    drops its own line.
    """

    def __init__(self, identity: HostIdentity) -> None:
        self._identity = identity

    @property
    def identity(self) -> HostIdentity:
        return self._identity

    def __call__(self) -> SystemSnapshot:
        return self.collect()

    def collect(self) -> SystemSnapshot:
        """Collect a snapshot of the current host state."""
        identity = self._identity
        lines: list[LineEntry] = [LineEntry("OS", identity.os_name)]
        if identity.host_model:
            lines.append(LineEntry("Host", identity.host_model))
        lines.append(LineEntry("Kernel", identity.kernel))

        steps = (
            ("uptime", self._collect_uptime),
            ("cpu", self._collect_cpu),
            ("memory", self._collect_memory),
            ("swap", self._collect_swap),
            ("disk", self._collect_disks),
            ("network", self._collect_network),
        )
        for name, step in steps:
            try:
                lines.extend(step())
            except PROBE_ERRORS as exc:
                logger.debug("Omitting %s: %s", name, exc)

        return SystemSnapshot(host=identity.hostname, lines=tuple(lines))

    def _collect_uptime(self) -> list[LineEntry]:
        uptime = max(0, int(time.time() - psutil.boot_time()))
        return [LineEntry("Uptime", format_uptime(uptime))]

    def _collect_cpu(self) -> list[LineEntry]:
        cpu_count = psutil.cpu_count(logical=True)
        if not cpu_count:
            return []

        try:
            freq = psutil.cpu_freq()
        except PROBE_ERRORS:
            freq = None
        mhz = int(freq.current) if freq else 0

        return [LineEntry("CPU", f"{read_cpu_brand()} ({cpu_count}) @ {format_cpu_freq(mhz)}")]

    def _collect_memory(self) -> list[LineEntry]:
        mem = psutil.virtual_memory()
        return [LineEntry("Memory", format_usage(mem.total - mem.available, mem.total))]

    def _collect_swap(self) -> list[LineEntry]:
        swap = psutil.swap_memory()
        if swap.total > 0:
            return [LineEntry("Swap", format_usage(swap.used, swap.total))]
        return [LineEntry("Swap", "Disabled")]

    def _collect_disks(self) -> list[LineEntry]:
        return summarize_disks(psutil.disk_partitions())

    def _collect_network(self) -> list[LineEntry]:
        summary = summarize_network(psutil.net_if_addrs())
        if summary is None:
            return []
        return [LineEntry("Network", summary)]


def probe(identity: HostIdentity | None = None) -> SystemSnapshot:
    """Perform one full scan of the host."""
    if identity is None:
        identity = get_identity()
    return HostProbe(identity).collect()
