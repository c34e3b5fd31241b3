"""Tests for the daily study streak."""

from datetime import date, datetime

from nihongo_srs.srs.streak import update_streak


class TestUpdateStreak:
    def test_first_study_day(self):
        assert update_streak(None, 0, datetime(2026, 5, 1, 12, 0)) == 1

    def test_same_day_unchanged(self):
        last = datetime(2026, 5, 1, 8, 0)
        assert update_streak(last, 4, datetime(2026, 5, 1, 23, 0)) == 4

    def test_next_day_increments(self):
        last = datetime(2026, 5, 1, 8, 0)
        assert update_streak(last, 4, datetime(2026, 5, 2, 20, 0)) == 5

    def test_midnight_boundary_counts_as_next_day(self):
        last = datetime(2026, 5, 1, 23, 59)
        assert update_streak(last, 2, datetime(2026, 5, 2, 0, 1)) == 3

    def test_nearly_two_days_elapsed_still_consecutive(self):
        last = datetime(2026, 5, 1, 0, 1)
        assert update_streak(last, 2, datetime(2026, 5, 2, 23, 59)) == 3

    def test_gap_resets(self):
        last = datetime(2026, 5, 1, 23, 59)
        assert update_streak(last, 9, datetime(2026, 5, 3, 0, 1)) == 1

    def test_month_boundary(self):
        assert update_streak(date(2026, 4, 30), 1, date(2026, 5, 1)) == 2

    def test_future_last_date_treated_as_same_day(self):
        assert update_streak(datetime(2026, 5, 3), 6, datetime(2026, 5, 1)) == 6
