"""Tests for the break resolution batch processor."""

from __future__ import annotations

import pytest
from pydantic import ValidationError

from conftest import at
from timecard_server.models.timecard import BreakResolution, BreakResolutionKind, TimecardStatus
from timecard_server.services.break_resolution_service import resolve_breaks


class TestResolveBreaks:
    """Tests for resolve_breaks."""

    def test_add_default_break(self, make_timecard):
        """Test adding the default break to a nine hour shift."""
        timecard = make_timecard(check_in_time=at(8), check_out_time=at(17), pay_rate=25)

        updates = resolve_breaks([timecard], {"tc-1": BreakResolution.add_break()})

        assert len(updates) == 1
        update = updates[0]
        assert update.id == "tc-1"
        assert update.is_valid
        assert update.break_duration == 30
        assert update.total_hours == 8.5
        assert update.total_pay == 212.5
        assert update.break_start_time == at(12, 15)
        assert update.break_end_time == at(12, 45)

    def test_no_break_taken(self, make_timecard):
        """Test confirming no break keeps the full shift."""
        timecard = make_timecard(check_in_time=at(8), check_out_time=at(17), pay_rate=25)

        update = resolve_breaks([timecard], {"tc-1": BreakResolution.no_break()})[0]

        assert update.break_duration == 0
        assert update.total_hours == 9
        assert update.total_pay == 225
        assert update.break_start_time is None
        assert update.break_end_time is None

    def test_no_break_replaces_existing_break(self, make_timecard):
        """Test a no-break decision clears recorded break times."""
        timecard = make_timecard(break_start_time=at(12), break_end_time=at(12, 30))

        update = resolve_breaks([timecard], {"tc-1": BreakResolution.no_break()})[0]

        assert update.break_duration == 0
        assert update.total_hours == 8

    def test_explicit_interval(self, make_timecard):
        """Test an explicit one hour break."""
        timecard = make_timecard(pay_rate=25)

        update = resolve_breaks([timecard], {"tc-1": BreakResolution.interval(at(12), at(13))})[0]

        assert update.break_duration == 60
        assert update.total_hours == 7
        assert update.total_pay == 175

    def test_interval_outside_shift_is_invalid(self, make_timecard):
        """Test an interval outside the shift is reported, not applied."""
        timecard = make_timecard()

        update = resolve_breaks([timecard], {"tc-1": BreakResolution.interval(at(18), at(18, 30))})[0]

        assert not update.is_valid
        assert update.validation_errors == ["Break must fall between check-in and check-out time"]

    def test_add_break_on_short_shift(self, make_timecard):
        """Test a shift too short for the default break is reported."""
        timecard = make_timecard(check_out_time=at(9, 20))

        update = resolve_breaks([timecard], {"tc-1": BreakResolution.add_break()})[0]

        assert not update.is_valid
        assert update.validation_errors == ["Shift is too short for a 30 minute break"]
        assert update.break_duration == 0

    def test_unresolved_timecards_skipped(self, make_timecard):
        """Test timecards without a resolution are left out."""
        timecards = [make_timecard(id="tc-1"), make_timecard(id="tc-2")]

        updates = resolve_breaks(timecards, {"tc-2": BreakResolution.no_break()})

        assert [u.id for u in updates] == ["tc-2"]

    def test_non_draft_skipped(self, make_timecard):
        """Test submitted timecards are not changed."""
        timecard = make_timecard(status=TimecardStatus.SUBMITTED)

        assert resolve_breaks([timecard], {"tc-1": BreakResolution.add_break()}) == []

    def test_output_follows_input_order(self, make_timecard):
        """Test updates come back in timecard order, not resolution order."""
        timecards = [make_timecard(id="tc-1"), make_timecard(id="tc-2"), make_timecard(id="tc-3")]
        resolutions = {
            "tc-3": BreakResolution.no_break(),
            "tc-1": BreakResolution.add_break(),
            "tc-2": BreakResolution.no_break(),
        }

        updates = resolve_breaks(timecards, resolutions)

        assert [u.id for u in updates] == ["tc-1", "tc-2", "tc-3"]

    def test_repeatable_and_inputs_untouched(self, make_timecard):
        """Test the same call gives the same updates and leaves inputs alone."""
        timecard = make_timecard(check_in_time=at(8), check_out_time=at(17))
        resolutions = {"tc-1": BreakResolution.add_break()}

        first = resolve_breaks([timecard], resolutions)
        second = resolve_breaks([timecard], resolutions)

        assert first == second
        assert timecard.break_start_time is None
        assert timecard.total_hours is None


class TestBreakResolutionModel:
    """Tests for BreakResolution field rules."""

    def test_interval_requires_both_times(self):
        """Test an interval without times is refused."""
        with pytest.raises(ValidationError):
            BreakResolution(kind=BreakResolutionKind.INTERVAL)
        with pytest.raises(ValidationError):
            BreakResolution(kind=BreakResolutionKind.INTERVAL, break_start_time=at(12))

    def test_no_break_takes_no_times(self):
        """Test a no-break decision can't carry break times."""
        with pytest.raises(ValidationError):
            BreakResolution(kind=BreakResolutionKind.NO_BREAK, break_start_time=at(12), break_end_time=at(12, 30))

    def test_add_break_takes_no_times(self):
        """Test the default break is placed by the server, not the caller."""
        with pytest.raises(ValidationError):
            BreakResolution(kind=BreakResolutionKind.ADD_BREAK, break_end_time=at(12, 30))

    def test_valid_resolutions(self):
        """Test the factory methods build valid resolutions."""
        assert BreakResolution.interval(at(12), at(12, 30)).kind == BreakResolutionKind.INTERVAL
        assert BreakResolution.no_break().break_start_time is None
        assert BreakResolution.add_break().break_end_time is None
