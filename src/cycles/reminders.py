"""Resolve when cycle-anchored reminders are due.

A reminder's timing is relative to a predicted cycle event:

    period     -> predicted next period start
    fertile    -> start of the predicted fertile window
    ovulation  -> predicted ovulation day

``days`` before/after shifts the due date; ``on`` ignores ``days``.
Medication and custom reminders are not tied to the cycle and have no
computed due date.
"""

from __future__ import annotations

from datetime import date, timedelta

from src.models.tracking import (
    CycleInsights,
    ReminderRead,
    ReminderType,
    ReminderWhen,
    UpcomingReminder,
)


def anchor_date(reminder_type: ReminderType, insights: CycleInsights) -> date | None:
    """Return the predicted event a reminder type is anchored to, if any."""
    if reminder_type == ReminderType.period:
        return insights.predicted_next_start
    if reminder_type == ReminderType.fertile:
        return insights.fertile_window_start
    if reminder_type == ReminderType.ovulation:
        return insights.predicted_ovulation
    return None


def due_date(reminder: ReminderRead, insights: CycleInsights) -> date | None:
    """Date the reminder should fire for the upcoming cycle, or None."""
    anchor = anchor_date(reminder.reminder_type, insights)
    if anchor is None:
        return None
    offset = timedelta(days=reminder.timing.days)
    if reminder.timing.when == ReminderWhen.before:
        return anchor - offset
    if reminder.timing.when == ReminderWhen.after:
        return anchor + offset
    return anchor


def upcoming_reminders(
    reminders: list[ReminderRead], insights: CycleInsights
) -> list[UpcomingReminder]:
    """Enabled cycle-anchored reminders due on or after ``insights.as_of``, soonest first."""
    upcoming = []
    for reminder in reminders:
        if not reminder.enabled:
            continue
        anchor = anchor_date(reminder.reminder_type, insights)
        due = due_date(reminder, insights)
        if anchor is None or due is None or due < insights.as_of:
            continue
        upcoming.append(UpcomingReminder(reminder=reminder, due_date=due, anchor_date=anchor))
    return sorted(upcoming, key=lambda u: (u.due_date, u.reminder.reminder_id))
