"""Data models for helios."""

from dataclasses import dataclass


@dataclass(slots=True, frozen=True)
class LineEntry:
    """One human-readable telemetry fact, e.g. ``CPU: Ryzen 9 (16) @ 4.20 GHz``."""

    key: str
    value: str

    def to_dict(self) -> dict[str, str]:
        return {"key": self.key, "value": self.value}


@dataclass(slots=True, frozen=True)
class SystemSnapshot:
    """Immutable capture of host telemetry at one point in time."""

    host: str
    lines: tuple[LineEntry, ...]  # display order, keys may repeat

    def to_dict(self) -> dict[str, object]:
        """Serialize field for field, ``host`` first."""
        return {
            "host": self.host,
            "lines": [line.to_dict() for line in self.lines],
        }


@dataclass(slots=True, frozen=True)
class CacheEntry:
    """The cached snapshot and the epoch second it was captured at."""

    snapshot: SystemSnapshot
    captured_at: int
