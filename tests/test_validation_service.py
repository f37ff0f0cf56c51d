"""Tests for the submission validator."""

from __future__ import annotations

from datetime import date

from conftest import at
from timecard_server.models.timecard import SubmissionErrorKind, TimecardStatus
from timecard_server.services.validation_service import (
    SHOW_DAY_NOT_STARTED,
    can_edit_timecard,
    edit_restriction_message,
    find_missing_breaks,
    has_missing_break,
    validate_submission,
)

TODAY = date(2024, 1, 15)


class TestMissingBreaks:
    """Tests for the missing break rule."""

    def test_long_shift_without_break(self, make_timecard):
        """Test an eight hour shift with no break blocks submission."""
        outcome = validate_submission([make_timecard()], today=TODAY)

        assert outcome.can_submit is False
        assert outcome.errors == ["1 timecard(s) missing break information"]
        assert outcome.missing_breaks == ["tc-1"]
        assert outcome.issues[0].kind == SubmissionErrorKind.MISSING_BREAK

    def test_long_shift_with_break(self, make_timecard):
        """Test recorded break times satisfy the rule."""
        timecard = make_timecard(break_start_time=at(12), break_end_time=at(12, 30))

        outcome = validate_submission([timecard], today=TODAY)

        assert outcome.can_submit is True
        assert outcome.errors == []
        assert outcome.missing_breaks == []

    def test_six_hours_is_not_over_threshold(self, make_timecard):
        """Test a shift of exactly six hours needs no break."""
        assert has_missing_break(make_timecard(check_out_time=at(15))) is False

    def test_stored_total_hours_used(self, make_timecard):
        """Test stored hours take precedence over the raw shift length."""
        assert has_missing_break(make_timecard(total_hours=5.5)) is False
        assert has_missing_break(make_timecard(check_out_time=at(14), total_hours=7.0)) is True

    def test_stored_break_duration_satisfies_rule(self, make_timecard):
        """Test a stored break duration counts as break information."""
        assert has_missing_break(make_timecard(total_hours=7.5, break_duration=30)) is False

    def test_half_recorded_break_still_missing(self, make_timecard):
        """Test a break start without an end is still missing."""
        info = find_missing_breaks([make_timecard(break_start_time=at(12))])

        assert len(info) == 1
        assert info[0].timecard_id == "tc-1"
        assert info[0].total_hours == 8
        assert info[0].has_break_data is True

    def test_non_draft_ignored(self, make_timecard):
        """Test submitted timecards are not checked."""
        outcome = validate_submission([make_timecard(status=TimecardStatus.SUBMITTED)], today=TODAY)

        assert outcome.can_submit is True
        assert outcome.missing_breaks == []

    def test_missing_breaks_are_ordered_and_unique(self, make_timecard):
        """Test ids follow batch order and repeats are reported once."""
        timecards = [
            make_timecard(id="tc-2"),
            make_timecard(id="tc-1"),
            make_timecard(id="tc-2"),
            make_timecard(id="tc-3", check_out_time=at(12)),
        ]

        outcome = validate_submission(timecards, today=TODAY)

        assert outcome.missing_breaks == ["tc-2", "tc-1"]
        assert outcome.errors == ["2 timecard(s) missing break information"]


class TestShowDay:
    """Tests for the show day rule."""

    def test_before_show_day(self, make_timecard):
        """Test submission is blocked before the project starts."""
        timecard = make_timecard(break_start_time=at(12), break_end_time=at(12, 30))

        outcome = validate_submission([timecard], project_start_date=date(2024, 2, 1), today=TODAY)

        assert outcome.can_submit is False
        assert outcome.errors == [SHOW_DAY_NOT_STARTED]
        assert outcome.issues[0].kind == SubmissionErrorKind.BEFORE_SHOW_DAY

    def test_on_show_day(self, make_timecard):
        """Test submission is allowed on the first show day."""
        timecard = make_timecard(break_start_time=at(12), break_end_time=at(12, 30))

        assert validate_submission([timecard], project_start_date=TODAY, today=TODAY).can_submit is True

    def test_after_show_day(self, make_timecard):
        """Test submission is allowed once the project has started."""
        timecard = make_timecard(break_start_time=at(12), break_end_time=at(12, 30))

        assert validate_submission([timecard], project_start_date=date(2024, 1, 1), today=TODAY).can_submit is True

    def test_both_errors_reported_in_order(self, make_timecard):
        """Test missing breaks are reported before the show day error."""
        outcome = validate_submission([make_timecard()], project_start_date=date(2024, 2, 1), today=TODAY)

        assert outcome.can_submit is False
        assert outcome.errors == ["1 timecard(s) missing break information", SHOW_DAY_NOT_STARTED]
        assert outcome.missing_breaks == ["tc-1"]


class TestTimeSequence:
    """Tests for time sequence checks and edge cases."""

    def test_check_out_before_check_in(self, make_timecard):
        """Test reversed times block submission with the day named."""
        outcome = validate_submission([make_timecard(check_in_time=at(17), check_out_time=at(9))], today=TODAY)

        assert outcome.can_submit is False
        assert outcome.errors == ["Invalid time sequence for 2024-01-15: check-out must be after check-in"]
        assert outcome.issues[0].kind == SubmissionErrorKind.INVALID_TIME_SEQUENCE
        assert outcome.missing_breaks == []

    def test_empty_batch(self):
        """Test an empty batch can be submitted."""
        outcome = validate_submission([], today=TODAY)

        assert outcome.can_submit is True
        assert outcome.errors == []


class TestEditRestrictions:
    """Tests for can_edit_timecard and edit_restriction_message."""

    def test_draft_is_editable(self, make_timecard):
        """Test drafts can be edited by their owner."""
        timecard = make_timecard()

        assert can_edit_timecard(timecard) is True
        assert edit_restriction_message(timecard) is None

    def test_submitted_is_locked(self, make_timecard):
        """Test submitted timecards are locked with an explanation."""
        timecard = make_timecard(status=TimecardStatus.SUBMITTED)

        assert can_edit_timecard(timecard) is False
        assert "has been submitted" in edit_restriction_message(timecard)

    def test_rejected_explains_next_step(self, make_timecard):
        """Test rejected timecards point the user at the comments."""
        timecard = make_timecard(status=TimecardStatus.REJECTED)

        assert can_edit_timecard(timecard) is False
        assert "rejected" in edit_restriction_message(timecard)
