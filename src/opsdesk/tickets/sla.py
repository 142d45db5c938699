"""Ticket SLA computation.

Two independent results:

* ``sla_count_hrs``: hours from acknowledgement to the end of on-site work,
  minus up to two pauses taken on the attended date.
* ``sla_status``: ``Passed``/``Failed`` against the severity's response and
  resolution thresholds. Never raises; anything unparseable yields None.
"""

from __future__ import annotations

from datetime import date, datetime, time
from decimal import Decimal
from typing import Mapping, Optional, Union

from ..common.datetime_utils import combine
from ..core.constants import SLA_THRESHOLDS_MINUTES
from ..core.enums import SlaStatus
from ..core.exceptions import UnprocessableError, ValidationError
from .model import SLA_COUNT_SOURCES, SLA_STATUS_SOURCES

DateLike = Union[date, str, None]
TimeLike = Union[time, str, None]


def thresholds_for(sev: Optional[str]) -> Optional[tuple[int, int]]:
    """(response, resolution) minutes, or None when the severity is not evaluated."""
    if sev is None:
        return None
    key = sev.value if hasattr(sev, "value") else str(sev)
    return SLA_THRESHOLDS_MINUTES.get(key.strip().lower())


def _present(value) -> bool:
    return value is not None and value != ""


def _hours(start: datetime, end: datetime) -> float:
    return (end - start).total_seconds() / 3600


def _pause_hours(
    day: DateLike,
    start: TimeLike,
    end: TimeLike,
    *,
    label: str,
    remaining: float,
) -> float:
    has_start, has_end = _present(start), _present(end)
    if not has_start and not has_end:
        return 0.0
    if has_start != has_end:
        raise ValidationError(f"{label} requires both a start and an end time")

    pause_start = combine(day, start, f"{label} start")
    pause_end = combine(day, end, f"{label} end")
    if pause_end <= pause_start:
        raise UnprocessableError(f"{label} end must be after its start")

    duration = _hours(pause_start, pause_end)
    if duration > remaining:
        raise UnprocessableError(f"{label} duration exceeds the remaining SLA duration")
    return duration


def compute_sla_count_hrs(
    *,
    date_ack: DateLike,
    time_ack: TimeLike,
    date_attended: DateLike,
    work_end: TimeLike,
    pause_time_start: TimeLike = None,
    pause_time_end: TimeLike = None,
    pause_time_start_2: TimeLike = None,
    pause_time_end_2: TimeLike = None,
) -> Optional[float]:
    """Hours from acknowledgement to work end, pauses excluded.

    Returns None unless ack date/time, attended date and work end are all
    present. Raises UnprocessableError when work ends before the
    acknowledgement and ValidationError on malformed times or half pauses.
    """
    if not all(_present(v) for v in (date_ack, time_ack, date_attended, work_end)):
        return None

    ack = combine(date_ack, time_ack, "Acknowledge time")
    finished = combine(date_attended, work_end, "Work end")
    remaining = _hours(ack, finished)
    if remaining < 0:
        raise UnprocessableError("Work end cannot be earlier than the acknowledge time")

    remaining -= _pause_hours(
        date_attended, pause_time_start, pause_time_end, label="Pause 1", remaining=remaining
    )
    remaining -= _pause_hours(
        date_attended, pause_time_start_2, pause_time_end_2, label="Pause 2", remaining=remaining
    )
    return round(max(remaining, 0.0), 2)


def compute_sla_status(
    *,
    sev: Optional[str],
    date_ack: DateLike,
    time_ack: TimeLike,
    date_resolved: DateLike,
    time_resolved: TimeLike,
    date_responded: DateLike = None,
    time_responded: TimeLike = None,
) -> Optional[SlaStatus]:
    thresholds = thresholds_for(sev)
    if thresholds is None:
        return None
    if not all(_present(v) for v in (date_ack, time_ack, date_resolved, time_resolved)):
        return None

    response_minutes, resolution_minutes = thresholds
    try:
        ack = combine(date_ack, time_ack)
        resolved = combine(date_resolved, time_resolved)
        responded = None
        if _present(date_responded) and _present(time_responded):
            responded = combine(date_responded, time_responded)
    except (ValidationError, ValueError, TypeError):
        return None

    resolution_ok = (resolved - ack).total_seconds() / 60 <= resolution_minutes
    response_ok = responded is None or (responded - ack).total_seconds() / 60 <= response_minutes
    return SlaStatus.PASSED if resolution_ok and response_ok else SlaStatus.FAILED


def sla_values(merged: Mapping[str, object], changed: Optional[set] = None) -> dict:
    """Recompute the SLA fields whose sources are in ``changed`` (all when None).

    A field whose sources are no longer complete comes back as None, which
    clears it.
    """
    out = {}
    if changed is None or changed & set(SLA_COUNT_SOURCES):
        hours = compute_sla_count_hrs(**{k: merged.get(k) for k in SLA_COUNT_SOURCES})
        out["sla_count_hrs"] = None if hours is None else Decimal(str(hours))
    if changed is None or changed & set(SLA_STATUS_SOURCES):
        out["sla_status"] = compute_sla_status(**{k: merged.get(k) for k in SLA_STATUS_SOURCES})
    return out
