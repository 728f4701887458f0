"""Cycle statistics and next-period prediction.

Calendar averaging over the user's derived cycles:
- Average cycle and period length over a rolling window of recent cycles
- Next period start, expected period end, ovulation and fertile window
- Current cycle day and phase

Falls back to configurable defaults (28-day cycle, 5-day period) until the
user has enough history.
"""

from __future__ import annotations

import math
import statistics
from dataclasses import dataclass
from datetime import date, timedelta

from src.config import Settings
from src.models.tracking import CycleInsights, CyclePhase, CycleRead


@dataclass
class PredictionConfig:
    """Tunables for cycle predictions."""

    default_cycle_length: int = 28
    default_period_length: int = 5
    rolling_average_cycles: int = 6
    luteal_phase_days: int = 14
    fertile_window_days: int = 6
    min_cycle_days: int = 21
    max_cycle_days: int = 45
    irregular_stddev_days: float = 7.0

    @classmethod
    def from_settings(cls, settings: Settings) -> PredictionConfig:
        return cls(
            default_cycle_length=settings.default_cycle_length,
            default_period_length=settings.default_period_length,
            rolling_average_cycles=settings.rolling_average_cycles,
            luteal_phase_days=settings.luteal_phase_days,
            fertile_window_days=settings.fertile_window_days,
            min_cycle_days=settings.min_cycle_days,
            max_cycle_days=settings.max_cycle_days,
        )


class CycleInsightsEngine:
    """Compute insights from a user's stored cycles.

    Usage::

        engine = CycleInsightsEngine()
        insights = engine.compute(cycles, as_of=date(2024, 2, 10))
        print(insights.predicted_next_start, insights.current_phase)
    """

    def __init__(self, config: PredictionConfig | None = None) -> None:
        self._config = config or PredictionConfig()

    def compute(self, cycles: list[CycleRead], as_of: date | None = None) -> CycleInsights:
        """Build insights for ``as_of`` (defaults to today).

        Args:
            cycles: The user's cycles in any order.
            as_of:  Reference date for the current cycle day and phase.

        Returns:
            CycleInsights; prediction fields stay None when there are no cycles.
        """
        cfg = self._config
        today = as_of or date.today()
        ordered = sorted(cycles, key=lambda c: c.start_date)

        if not ordered:
            return CycleInsights(
                as_of=today,
                average_cycle_length=float(cfg.default_cycle_length),
                average_period_length=float(cfg.default_period_length),
                warnings=["No cycles recorded yet"],
            )

        recent = ordered[-cfg.rolling_average_cycles:]
        lengths = [c.cycle_length for c in recent if c.cycle_length is not None]
        period_lengths = [c.period_length for c in recent]
        warnings: list[str] = []

        if lengths:
            avg_cycle = statistics.mean(lengths)
            stddev = statistics.stdev(lengths) if len(lengths) > 1 else 0.0
        else:
            avg_cycle = float(cfg.default_cycle_length)
            stddev = None
            warnings.append(
                f"No complete cycles yet; assuming a {cfg.default_cycle_length}-day cycle"
            )
        avg_period = statistics.mean(period_lengths)

        for length in lengths:
            if length < cfg.min_cycle_days:
                warnings.append(
                    f"Short cycle detected: {length} days (below {cfg.min_cycle_days} day minimum)"
                )
                break
            if length > cfg.max_cycle_days:
                warnings.append(
                    f"Long cycle detected: {length} days (above {cfg.max_cycle_days} day maximum)"
                )
                break

        last_start = ordered[-1].start_date
        cycle_days = max(round(avg_cycle), 1)
        current_start = last_start
        next_start = current_start + timedelta(days=cycle_days)
        if next_start < today:
            # Overdue: project whole average cycles forward until the next
            # start is on or after the reference date.
            skipped = math.ceil((today - next_start).days / cycle_days)
            next_start += timedelta(days=skipped * cycle_days)
            current_start = next_start - timedelta(days=cycle_days)
            warnings.append(
                f"No period logged since {last_start}; predictions are projected "
                f"{skipped} cycle(s) ahead"
            )

        period_end = next_start + timedelta(days=max(round(avg_period), 1) - 1)
        ovulation = next_start - timedelta(days=cfg.luteal_phase_days)
        fertile_start = ovulation - timedelta(days=cfg.fertile_window_days - 1)

        cycle_day = (today - current_start).days + 1
        phase = None
        if cycle_day >= 1:
            phase = self._phase(cycle_day, round(avg_period), today, ovulation)

        return CycleInsights(
            as_of=today,
            cycles_used=len(lengths),
            average_cycle_length=round(avg_cycle, 1),
            average_period_length=round(avg_period, 1),
            cycle_length_stddev=round(stddev, 1) if stddev is not None else None,
            is_irregular=stddev is not None and stddev > cfg.irregular_stddev_days,
            current_cycle_start=current_start,
            current_cycle_day=cycle_day,
            current_phase=phase,
            predicted_next_start=next_start,
            predicted_period_end=period_end,
            predicted_ovulation=ovulation,
            fertile_window_start=fertile_start,
            fertile_window_end=ovulation,
            warnings=warnings,
        )

    @staticmethod
    def _phase(
        cycle_day: int, period_days: int, today: date, ovulation: date
    ) -> CyclePhase:
        if cycle_day <= period_days:
            return CyclePhase.menstrual
        days_to_ov = (ovulation - today).days
        if days_to_ov > 1:
            return CyclePhase.follicular
        if days_to_ov >= -1:
            return CyclePhase.ovulation
        return CyclePhase.luteal
