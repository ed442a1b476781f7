"""Host identity values that cannot change while the process runs."""

import logging
import platform
import socket
import threading
from dataclasses import dataclass
from pathlib import Path

logger = logging.getLogger(__name__)

# Ordered: "10.1" must come after "10.10" through "10.16" or it would shadow them.
MAC_VERSIONS: tuple[tuple[str, str, str], ...] = (
    ("26", "macOS", "Tahoe"),
    ("15", "macOS", "Sequoia"),
    ("14", "macOS", "Sonoma"),
    ("13", "macOS", "Ventura"),
    ("12", "macOS", "Monterey"),
    ("11", "macOS", "Big Sur"),
    # Big Sur reports itself as 10.16 in some situations.
    ("10.16", "macOS", "Big Sur"),
    ("10.15", "macOS", "Catalina"),
    ("10.14", "macOS", "Mojave"),
    ("10.13", "macOS", "High Sierra"),
    ("10.12", "macOS", "Sierra"),
    ("10.11", "OS X", "El Capitan"),
    ("10.10", "OS X", "Yosemite"),
    ("10.9", "OS X", "Mavericks"),
    ("10.8", "OS X", "Mountain Lion"),
    ("10.7", "Mac OS X", "Lion"),
    ("10.6", "Mac OS X", "Snow Leopard"),
    ("10.5", "Mac OS X", "Leopard"),
    ("10.4", "Mac OS X", "Tiger"),
    ("10.3", "Mac OS X", "Panther"),
    ("10.2", "Mac OS X", "Jaguar"),
    ("10.1", "Mac OS X", "Puma"),
    ("10.0", "Mac OS X", "Cheetah"),
)

VIRTUAL_PRODUCT_PREFIX = "Standard PC"
HYPERVISOR_MARKER = "KVM/QEMU"

DMI_DIRS = ("sys/devices/virtual/dmi/id", "sys/class/dmi/id")
PRODUCT_NAME_FALLBACKS = (
    "sys/firmware/devicetree/base/model",
    "sys/firmware/devicetree/base/banner-name",
    "tmp/sysinfo/model",
)


def resolve_os_name(system: str | None, version: str | None) -> str:
    """
    Build the OS display string.

    Darwin versions are matched against MAC_VERSIONS top to bottom and the
    first prefix match wins, e.g. ``("Darwin", "14.5")`` gives
    ``macOS 14.5 Sonoma``.
    """
    system = system or "Unknown"
    if system == "Darwin":
        if not version:
            return "macOS"
        for prefix, family, codename in MAC_VERSIONS:
            if version.startswith(prefix):
                return f"{family} {version} {codename}"
        return system
    if version:
        return f"{system} {version}"
    return system


def build_host_model(family: str | None, product: str | None, version: str | None) -> str:
    """Assemble the vendor/model string from optional firmware fields."""
    parts: list[str] = []
    if family and family.strip():
        parts.append(family.strip())
    if product and product.strip():
        if product.strip().startswith(VIRTUAL_PRODUCT_PREFIX):
            parts.append(HYPERVISOR_MARKER)
        parts.append(product.strip())
    if version and version.strip():
        parts.append(f"({version.strip()})")
    return " ".join(parts).strip()


def _read_text(path: Path) -> str | None:
    try:
        return path.read_text(encoding="utf-8", errors="replace").strip("\x00").strip()
    except OSError:
        return None


def _read_dmi(root: Path, field: str) -> str | None:
    for directory in DMI_DIRS:
        value = _read_text(root / directory / field)
        if value is not None:
            return value
    return None


def read_host_model(root: Path | str = "/") -> str:
    """Read the firmware family, product name and version and assemble them."""
    root = Path(root)
    family = _read_dmi(root, "product_family")
    product = _read_dmi(root, "product_name")
    if product is None:
        for fallback in PRODUCT_NAME_FALLBACKS:
            product = _read_text(root / fallback)
            if product is not None:
                break
    version = _read_dmi(root, "product_version")
    return build_host_model(family, product, version)


def detect_os_name() -> str:
    """Detect the OS display string for the running platform."""
    system = platform.system()
    version: str | None = None
    if system == "Linux":
        try:
            release = platform.freedesktop_os_release()
        except OSError:
            logger.debug("os-release not readable, using platform.system()")
        else:
            system = release.get("NAME") or system
            version = release.get("VERSION_ID")
    elif system == "Darwin":
        version = platform.mac_ver()[0] or None
    else:
        version = platform.release() or None
    return resolve_os_name(system, version)


def detect_kernel() -> str:
    """Long-form kernel version, e.g. ``Linux 6.8.0-45-generic``."""
    return " ".join(part for part in (platform.system(), platform.release()) if part)


def detect_hostname() -> str:
    try:
        hostname = socket.gethostname()
    except OSError:
        hostname = ""
    return hostname or "unknown.local"


@dataclass(slots=True, frozen=True)
class HostIdentity:
    """Identity values shared by every snapshot taken in this process."""

    os_name: str
    kernel: str
    hostname: str
    host_model: str

    @classmethod
    def collect(cls) -> "HostIdentity":
        """Query the host once for every identity value."""
        identity = cls(
            os_name=detect_os_name(),
            kernel=detect_kernel(),
            hostname=detect_hostname(),
            host_model=read_host_model(),
        )
        logger.info("Host identity: %s on %s (%s)", identity.hostname, identity.os_name, identity.kernel)
        return identity


_identity: HostIdentity | None = None
_identity_lock = threading.Lock()


def get_identity() -> HostIdentity:
    """Return the process-wide identity, collecting it on first use."""
    global _identity
    identity = _identity
    if identity is not None:
        return identity
    with _identity_lock:
        if _identity is None:
            _identity = HostIdentity.collect()
        return _identity


def reset_identity() -> None:
    """Forget the collected identity (tests only)."""
    global _identity
    with _identity_lock:
        _identity = None
