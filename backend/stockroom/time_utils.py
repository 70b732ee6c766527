from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def as_aware_utc(dt: datetime) -> datetime:
    """Attach UTC to naive datetimes; convert aware ones to UTC."""
    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def parse_iso_datetime(value: Optional[str]) -> Optional[datetime]:
    """
    Parse an ISO-8601 datetime string and normalize to UTC-naive datetime.

    - None / "" -> None
    - "YYYY-MM-DDTHH:MM" (naive) is interpreted as UTC
    - "...Z" or "...+/-HH:MM" is converted to UTC and tzinfo is stripped
    """
    if value is None:
        return None
    s = value.strip()
    if not s:
        return None

    # Accept trailing Z
    if s.endswith("Z"):
        s = s[:-1] + "+00:00"

    dt = datetime.fromisoformat(s)

    if dt.tzinfo is None:
        return dt
    return dt.astimezone(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    dt_utc = as_aware_utc(dt).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


@dataclass(frozen=True, order=True)
class Timestamp:
    """
    Document-store timestamp: whole seconds since the epoch plus nanoseconds.

    This is the shape the store hands back for fields it stamped itself.
    Older documents may instead carry a bare ``{"seconds": ...}`` mapping or a
    plain datetime; readers must accept all three.
    """
    seconds: int
    nanoseconds: int = 0

    @classmethod
    def now(cls) -> "Timestamp":
        return cls.from_datetime(datetime.now(timezone.utc))

    @classmethod
    def from_datetime(cls, dt: datetime) -> "Timestamp":
        dt = as_aware_utc(dt)
        epoch = datetime(1970, 1, 1, tzinfo=timezone.utc)
        delta = dt - epoch
        seconds = delta.days * 86400 + delta.seconds
        return cls(seconds=seconds, nanoseconds=delta.microseconds * 1000)

    def to_datetime(self) -> datetime:
        """Aware UTC datetime (microsecond precision)."""
        return datetime.fromtimestamp(self.seconds, tz=timezone.utc).replace(
            microsecond=self.nanoseconds // 1000
        )

    def to_dict(self) -> dict:
        return {"seconds": self.seconds, "nanoseconds": self.nanoseconds}
