"""Derive menstrual cycles from a user's daily period-flow logs.

Cycles are never edited incrementally.  Every pass reads all of the user's
qualifying log entries (light, medium or heavy flow), groups them into
bleeding runs, and replaces the user's stored cycle set with one cycle per
run.

Grouping is a single forward scan over the entries in date order.  Each entry
is compared with the entry immediately before it (not with the start of the
run): a gap of up to ``MAX_RUN_GAP_DAYS`` days continues the current run,
anything larger starts a new one.

Example::

    Jan 1 heavy, Jan 2 medium, Jan 3 light, Jan 29 heavy

    -> Jan 1 .. Jan 3   period_length=3  cycle_length=28
    -> Jan 29 .. Jan 29 period_length=1  cycle_length=None
"""

from __future__ import annotations

import asyncio
import logging
import weakref
from typing import Iterable, Sequence

from src.models.tracking import CycleDraft, CycleRead, PeriodLogRead, is_qualifying_flow
from src.storage.base import Storage

logger = logging.getLogger("flowcycle.cycles.deriver")

# Largest gap (in days) between consecutive bleeding days of the same period
MAX_RUN_GAP_DAYS = 2


def group_runs(entries: Iterable[PeriodLogRead]) -> list[list[PeriodLogRead]]:
    """Partition log entries into bleeding runs.

    Entries are sorted by date first (stable, so same-date duplicates keep
    their input order).  Duplicates are not merged: each one counts as a
    separate day of the run.

    Args:
        entries: Qualifying log entries in any order.

    Returns:
        Runs in chronological order; each run is a non-empty list of entries.
    """
    runs: list[list[PeriodLogRead]] = []
    for entry in sorted(entries, key=lambda e: e.log_date):
        if runs and (entry.log_date - runs[-1][-1].log_date).days <= MAX_RUN_GAP_DAYS:
            runs[-1].append(entry)
        else:
            runs.append([entry])
    return runs


def build_cycle_drafts(runs: Sequence[Sequence[PeriodLogRead]]) -> list[CycleDraft]:
    """Turn runs into cycle drafts.

    ``period_length`` is the number of entries in the run, not its calendar
    span.  ``cycle_length`` is the distance from this run's start to the next
    run's start; the last run has none.
    """
    drafts: list[CycleDraft] = []
    for i, run in enumerate(runs):
        start = run[0].log_date
        cycle_length = None
        if i + 1 < len(runs):
            cycle_length = (runs[i + 1][0].log_date - start).days
        drafts.append(
            CycleDraft(
                start_date=start,
                end_date=run[-1].log_date,
                period_length=len(run),
                cycle_length=cycle_length,
            )
        )
    return drafts


def derive_cycle_drafts(entries: Iterable[PeriodLogRead]) -> list[CycleDraft]:
    """Filter to qualifying flows, group into runs, and build drafts."""
    qualifying = [e for e in entries if is_qualifying_flow(e.flow)]
    return build_cycle_drafts(group_runs(qualifying))


class CycleDeriver:
    """Recompute and store a user's cycle history.

    Passes for the same user are serialized with a per-user lock so two
    overlapping requests cannot interleave their delete and insert steps.
    Passes for different users do not block each other.

    Usage::

        deriver = CycleDeriver(storage)
        cycles = await deriver.derive(user_id)
    """

    def __init__(self, storage: Storage) -> None:
        self._storage = storage
        # A lock lives only while some pass for that user holds or awaits it
        self._locks: weakref.WeakValueDictionary[int, asyncio.Lock] = weakref.WeakValueDictionary()

    def _lock_for(self, user_id: int) -> asyncio.Lock:
        lock = self._locks.get(user_id)
        if lock is None:
            lock = self._locks[user_id] = asyncio.Lock()
        return lock

    async def derive(self, user_id: int) -> list[CycleRead] | None:
        """Replace the user's cycles with those derived from their logs.

        Storage errors propagate unchanged.

        Args:
            user_id: Owner of the log entries and cycles.

        Returns:
            The newly stored cycles, oldest first, or None when the user has
            no qualifying entries.  In that case existing cycles are left
            untouched.
        """
        async with self._lock_for(user_id):
            entries = await self._storage.list_qualifying_log_entries(user_id)
            drafts = derive_cycle_drafts(entries)
            if not drafts:
                logger.debug("No qualifying log entries for user %s; cycles unchanged", user_id)
                return None

            cycles = await self._storage.replace_cycles(user_id, drafts)
            logger.info(
                "Derived %d cycle(s) from %d log entries for user %s",
                len(cycles), len(entries), user_id,
            )
            return cycles
