"""
Unit tests for fix filtering
"""

import pytest
import os
import sys

# Add project root to path
project_root = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
sys.path.append(project_root)

from location.config import LocationConfig
from location.validator import accept, rejection_reason
from tests.helpers import at, make_fix


class TestBasicValidity:
    """Invalid accuracy is rejected in every mode"""

    @pytest.mark.parametrize("strict", [True, False])
    @pytest.mark.parametrize("hacc", [-1.0, -0.001, -500.0])
    def test_negative_accuracy_rejected(self, strict, hacc):
        """Negative horizontal accuracy never passes"""
        cfg = LocationConfig(strict_mode=strict)
        assert accept(make_fix(hacc=hacc), None, None, cfg) is False
        assert rejection_reason(make_fix(hacc=hacc), None, None, cfg) == "invalid_accuracy"

    def test_zero_accuracy_accepted(self):
        """Zero is a valid (perfect) accuracy"""
        assert accept(make_fix(hacc=0.0), None, None, LocationConfig()) is True

    def test_first_fix_accepted(self):
        """With no prior state a valid fix passes"""
        assert accept(make_fix(t=5), None, at(0), LocationConfig()) is True


class TestStrictMode:
    """Session, ordering and repeat rules"""

    def test_fix_before_session_rejected_in_strict_mode(self):
        """A cached fix older than the session start is stale"""
        cfg = LocationConfig(strict_mode=True)
        fix = make_fix(t=-30)
        assert accept(fix, None, at(0), cfg) is False
        assert rejection_reason(fix, None, at(0), cfg) == "before_session"

    def test_fix_before_session_accepted_in_non_strict_mode(self):
        """The same stale fix passes when strict mode is off"""
        cfg = LocationConfig(strict_mode=False)
        assert accept(make_fix(t=-30), None, at(0), cfg) is True

    def test_fix_at_session_start_accepted(self):
        """Only strictly earlier timestamps are stale"""
        assert accept(make_fix(t=0), None, at(0), LocationConfig()) is True

    def test_out_of_order_rejected(self):
        """A fix older than the current location is dropped"""
        cfg = LocationConfig()
        prior = make_fix(t=10, lat=1.0)
        candidate = make_fix(t=9, lat=2.0)
        assert accept(candidate, prior, at(0), cfg) is False
        assert rejection_reason(candidate, prior, at(0), cfg) == "out_of_order"

    def test_out_of_order_accepted_in_non_strict_mode(self):
        """Non-strict mode only checks accuracy"""
        cfg = LocationConfig(strict_mode=False)
        assert accept(make_fix(t=9, lat=2.0), make_fix(t=10, lat=1.0), at(0), cfg) is True

    def test_same_timestamp_is_not_out_of_order(self):
        """Equal timestamps are allowed"""
        assert accept(make_fix(t=10, lat=2.0), make_fix(t=10, lat=1.0), at(0), LocationConfig()) is True


class TestRepeatedLocations:
    """Repeated coordinates with no accuracy gain carry no information"""

    def _cfg(self, reject=True):
        return LocationConfig(strict_mode=True, reject_repeated_locations=reject)

    @pytest.mark.parametrize("hacc", [5.0, 7.5])
    def test_repeat_without_improvement_rejected(self, hacc):
        """Same coordinate, equal or worse accuracy"""
        prior = make_fix(t=1, hacc=5.0)
        candidate = make_fix(t=2, hacc=hacc)
        assert accept(candidate, prior, at(0), self._cfg()) is False
        assert rejection_reason(candidate, prior, at(0), self._cfg()) == "repeated"

    def test_repeat_with_better_accuracy_accepted(self):
        """Same coordinate, strictly smaller accuracy radius"""
        prior = make_fix(t=1, hacc=5.0)
        assert accept(make_fix(t=2, hacc=4.9), prior, at(0), self._cfg()) is True

    def test_different_coordinate_accepted(self):
        """Any coordinate change is new information"""
        prior = make_fix(t=1, lat=38.8895, hacc=5.0)
        assert accept(make_fix(t=2, lat=38.88951, hacc=9.0), prior, at(0), self._cfg()) is True

    def test_repeat_accepted_when_option_off(self):
        """Without the option repeats pass"""
        prior = make_fix(t=1, hacc=5.0)
        assert accept(make_fix(t=2, hacc=5.0), prior, at(0), self._cfg(reject=False)) is True

    def test_repeat_option_only_applies_in_strict_mode(self):
        """Non-strict mode accepts any valid fix, repeats included"""
        cfg = LocationConfig(strict_mode=False, reject_repeated_locations=True)
        prior = make_fix(t=1, hacc=5.0)
        assert accept(make_fix(t=2, hacc=5.0), prior, at(0), cfg) is True


class TestPassThroughFilters:
    """Distance and heading filters are for the sensor, not the validator"""

    def test_distance_filter_does_not_reject(self):
        """A tiny move passes even with a large distance filter"""
        cfg = LocationConfig(distance_filter_m=1000.0, heading_filter_deg=90.0)
        prior = make_fix(t=1, lat=38.8895)
        assert accept(make_fix(t=2, lat=38.88951), prior, at(0), cfg) is True
