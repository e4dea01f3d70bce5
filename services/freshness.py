"""Human-relative freshness labels for readings."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta, tzinfo
from typing import Any, Optional

from services.normalizer import parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_STALE_AFTER = timedelta(minutes=5)
UNKNOWN_LABEL = "Unknown"


@dataclass(frozen=True)
class Freshness:
    relative_label: str
    is_stale: bool


def describe_freshness(
    observed_at: Any,
    now: datetime,
    stale_after: timedelta = DEFAULT_STALE_AFTER,
    tz: Optional[tzinfo] = None,
) -> Freshness:
    """Describe how long ago a reading was observed.

    Ages under a minute read ``"{secs}s ago"``, ages under an hour read
    ``"{mins}m ago"``, and anything older shows the wall-clock time in
    ``tz`` (the process-local zone when omitted). Timestamps in the future
    count as zero seconds old. Values that cannot be interpreted produce an
    ``"Unknown"`` label flagged as stale instead of raising.
    """
    try:
        observed = parse_timestamp(observed_at)
        age = now - observed
    except (TypeError, ValueError) as exc:
        logger.debug("Cannot describe freshness", extra={"reason": str(exc)})
        return Freshness(relative_label=UNKNOWN_LABEL, is_stale=True)

    if age < timedelta(0):
        age = timedelta(0)

    seconds = int(age.total_seconds())
    if seconds < 60:
        label = f"{seconds}s ago"
    elif seconds < 3600:
        label = f"{seconds // 60}m ago"
    else:
        label = observed.astimezone(tz).strftime("%H:%M:%S")

    return Freshness(relative_label=label, is_stale=age > stale_after)
