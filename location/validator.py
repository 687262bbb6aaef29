"""
Fix filtering.

Strict mode follows the usual recipe for discarding bad positioning data:
invalid accuracy, fixes older than the current session (cached from a previous
run), out-of-order delivery and, optionally, repeats that carry no new
information. Rejections are expected noise and are only logged at DEBUG.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from common.logging_setup import get_logger
from common.types import LocationFix
from location.config import LocationConfig


log = get_logger("location.validator")


def rejection_reason(
    candidate: LocationFix,
    prior_location: Optional[LocationFix],
    session_start: Optional[datetime],
    config: LocationConfig,
) -> Optional[str]:
    """Return why `candidate` should be dropped, or None if it is acceptable."""
    if candidate.horizontal_accuracy < 0:
        return "invalid_accuracy"
    if not config.strict_mode:
        return None
    if session_start is not None and candidate.timestamp < session_start:
        return "before_session"
    if prior_location is not None:
        if candidate.timestamp < prior_location.timestamp:
            return "out_of_order"
        if (
            config.reject_repeated_locations
            and candidate.coordinate == prior_location.coordinate
            and not candidate.horizontal_accuracy < prior_location.horizontal_accuracy
        ):
            return "repeated"
    return None


def accept(
    candidate: LocationFix,
    prior_location: Optional[LocationFix],
    session_start: Optional[datetime],
    config: LocationConfig,
) -> bool:
    reason = rejection_reason(candidate, prior_location, session_start, config)
    if reason is not None:
        log.debug(
            "Fix rejected",
            extra={"extra": {"reason": reason, "lat": candidate.latitude, "lon": candidate.longitude,
                             "hacc_m": candidate.horizontal_accuracy}},
        )
        return False
    return True
