from __future__ import annotations

from typing import Optional

from common.types import Placemark


def format_address(placemark: Placemark) -> Optional[str]:
    """
    Short street address: "thoroughfare, sub_thoroughfare", or just the
    thoroughfare when there is no number. None without a thoroughfare.
    """
    if placemark.thoroughfare is None:
        return None
    if placemark.sub_thoroughfare is None:
        return placemark.thoroughfare
    return f"{placemark.thoroughfare}, {placemark.sub_thoroughfare}"
