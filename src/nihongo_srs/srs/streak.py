"""Daily study streak."""

from datetime import date, datetime


def update_streak(
    last_study_date: datetime | date | None,
    current_streak: int,
    today: datetime | date | None = None,
) -> int:
    """Streak after studying ``today``.

    Only local calendar dates are compared, so 23:59 followed by 00:01
    counts as consecutive days.
    """
    if last_study_date is None:
        return 1

    today = today or datetime.now()
    last_day = last_study_date.date() if isinstance(last_study_date, datetime) else last_study_date
    this_day = today.date() if isinstance(today, datetime) else today

    gap = (this_day - last_day).days
    if gap <= 0:
        return current_streak
    elif gap == 1:
        return current_streak + 1
    return 1
