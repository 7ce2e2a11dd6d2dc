# src/taskpulse/domain/repeat.py

"""
Repeat-interval codec.

Canonical string form:
    "none"                      -> fires once at remind_at
    "after_{value}_{unit}"      -> fires once, value*unit after remind_at
    "every_{value}_{unit}"      -> fires every value*unit, starting at remind_at

Decoding never raises: malformed input degrades to NO_REPEAT.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum

MIN_VALUE = 1
MAX_VALUE = 9999


class RepeatKind(StrEnum):
    NONE = "none"
    AFTER = "after"
    EVERY = "every"


class TimeUnit(StrEnum):
    SECONDS = "seconds"
    MINUTES = "minutes"
    HOURS = "hours"
    DAYS = "days"
    WEEKS = "weeks"
    MONTHS = "months"
    YEARS = "years"


# Months and years are fixed-length approximations.
_UNIT_SECONDS: dict[str, int] = {
    "second": 1,
    "seconds": 1,
    "minute": 60,
    "minutes": 60,
    "hour": 3600,
    "hours": 3600,
    "day": 86400,
    "days": 86400,
    "week": 7 * 86400,
    "weeks": 7 * 86400,
    "month": 30 * 86400,
    "months": 30 * 86400,
    "year": 365 * 86400,
    "years": 365 * 86400,
}


@dataclass(slots=True, frozen=True)
class RepeatPolicy:
    """
    Tagged repeat policy.

    `unit` is kept as a plain string so units this version does not know about
    still round-trip through encode/decode.
    """

    kind: RepeatKind
    value: int = 0
    unit: str = ""

    def __post_init__(self) -> None:
        if self.kind == RepeatKind.NONE:
            return
        if not (MIN_VALUE <= self.value <= MAX_VALUE):
            raise ValueError(f"repeat value must be in [{MIN_VALUE}, {MAX_VALUE}], got {self.value}")
        if not self.unit:
            raise ValueError("repeat unit is required")

    @classmethod
    def after(cls, value: int, unit: str | TimeUnit) -> RepeatPolicy:
        return cls(RepeatKind.AFTER, int(value), str(unit))

    @classmethod
    def every(cls, value: int, unit: str | TimeUnit) -> RepeatPolicy:
        return cls(RepeatKind.EVERY, int(value), str(unit))

    @property
    def is_repeating(self) -> bool:
        return self.kind == RepeatKind.EVERY

    @property
    def is_one_shot(self) -> bool:
        return self.kind != RepeatKind.EVERY


NO_REPEAT = RepeatPolicy(RepeatKind.NONE)


def encode(policy: RepeatPolicy) -> str:
    if policy.kind == RepeatKind.NONE:
        return "none"
    return f"{policy.kind.value}_{policy.value}_{policy.unit}"


def decode(raw: str | None) -> RepeatPolicy:
    if not raw:
        return NO_REPEAT

    parts = raw.strip().split("_")
    if len(parts) < 3:
        return NO_REPEAT

    try:
        kind = RepeatKind(parts[0])
    except ValueError:
        return NO_REPEAT
    if kind == RepeatKind.NONE:
        return NO_REPEAT

    try:
        value = int(parts[1])
    except ValueError:
        return NO_REPEAT

    unit = "_".join(parts[2:])
    try:
        return RepeatPolicy(kind, value, unit)
    except ValueError:
        return NO_REPEAT


def describe(policy: RepeatPolicy) -> str:
    if policy.kind == RepeatKind.NONE:
        return "Does not repeat"

    unit = policy.unit.replace("_", " ")
    if policy.value == 1 and unit.endswith("s"):
        unit = unit[:-1]

    if policy.kind == RepeatKind.AFTER:
        return f"Once, after {policy.value} {unit}"
    return f"Every {policy.value} {unit}"


def interval_of(policy: RepeatPolicy) -> timedelta | None:
    """Length of one interval, or None for NO_REPEAT and unknown units."""
    if policy.kind == RepeatKind.NONE:
        return None
    seconds = _UNIT_SECONDS.get(policy.unit.lower())
    if seconds is None:
        return None
    return timedelta(seconds=seconds * policy.value)


def next_fire_after(policy: RepeatPolicy, base_instant: datetime, now: datetime) -> datetime | None:
    """
    Next fire time strictly after `now`.

    - NO_REPEAT: base_instant while it is still ahead, then None.
    - AFTER:     base_instant + interval while it is still ahead, then None.
    - EVERY:     smallest base_instant + k*interval (k >= 0) that is > now.
                 Missed intervals are skipped, never queued.
    """
    if policy.kind == RepeatKind.NONE:
        return base_instant if base_instant > now else None

    step = interval_of(policy)
    if step is None:
        return None

    if policy.kind == RepeatKind.AFTER:
        fire = base_instant + step
        return fire if fire > now else None

    if base_instant > now:
        return base_instant
    elapsed = now - base_instant
    k = elapsed // step + 1
    return base_instant + step * k
