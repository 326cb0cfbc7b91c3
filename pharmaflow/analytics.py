"""Throughput, completion-time and bottleneck analytics over workflows."""

from __future__ import annotations

import logging
from collections import defaultdict
from datetime import date as CalendarDate
from datetime import datetime, timedelta
from typing import Dict, Iterable, List, Literal, Optional, Tuple

from pydantic import Field

from .config import AnalyticsConfig
from .constants import ANALYTICS_PERIODS, Module, StepStatus, WorkflowStatus
from .contracts import CamelModel, Workflow, ensure_utc, utcnow
from .errors import ValidationError

logger = logging.getLogger(__name__)

SECONDS_PER_HOUR = 3600.0


class Bottleneck(CamelModel):
    module: Module
    average_delay: float  # hours
    frequency: int
    impact: Literal["low", "medium", "high"]


class ModuleEfficiency(CamelModel):
    overall: float = 0.0
    by_module: Dict[Module, float] = Field(default_factory=dict)


class DailyTrend(CamelModel):
    date: CalendarDate
    completed: int = 0
    failed: int = 0


class Trends(CamelModel):
    daily: List[DailyTrend] = Field(default_factory=list)


class WorkflowAnalytics(CamelModel):
    """Aggregated report for one period."""

    period_start: datetime
    period_end: datetime
    total_workflows: int = 0
    completed_workflows: int = 0
    failed_workflows: int = 0
    in_progress_workflows: int = 0
    pending_workflows: int = 0
    completion_rate: float = 0.0
    average_completion_time: float = 0.0  # hours
    workflow_types: Dict[str, int] = Field(default_factory=dict)
    efficiency: ModuleEfficiency = Field(default_factory=ModuleEfficiency)
    bottlenecks: List[Bottleneck] = Field(default_factory=list)
    trends: Trends = Field(default_factory=Trends)


def resolve_period(
    period: Optional[str] = None,
    date_from: Optional[datetime] = None,
    date_to: Optional[datetime] = None,
    now: Optional[datetime] = None,
    default_period: str = "30d",
) -> Tuple[datetime, datetime]:
    """Turn a named period or an explicit range into ``(start, end)``.

    Explicit bounds win over ``period``; a missing end defaults to ``now``.
    """
    now = ensure_utc(now) or utcnow()
    end = ensure_utc(date_to) or now
    if date_from is not None:
        start = ensure_utc(date_from)
    else:
        name = period or default_period
        if name not in ANALYTICS_PERIODS:
            raise ValidationError(
                f"Unsupported period: {name} (expected one of {', '.join(ANALYTICS_PERIODS)})"
            )
        start = end - timedelta(days=ANALYTICS_PERIODS[name])
    if start > end:
        raise ValidationError("Analytics range start is after its end")
    return start, end


def terminal_at(workflow: Workflow) -> Optional[datetime]:
    """Time of the step that gave ``workflow`` its terminal status."""
    if workflow.status is WorkflowStatus.COMPLETED:
        candidates = [s.finished_at or s.timestamp for s in workflow.steps]
    elif workflow.status is WorkflowStatus.FAILED:
        candidates = [
            s.finished_at or s.timestamp
            for s in workflow.steps
            if s.status is StepStatus.FAILED
        ]
        # The first failure is what flipped the workflow.
        return min(candidates) if candidates else None
    else:
        return None
    return max(candidates) if candidates else None


def _last_finished_module(workflow: Workflow) -> Optional[Module]:
    finished = [s for s in workflow.steps if s.status is StepStatus.COMPLETED]
    if not finished:
        return None
    last = max(finished, key=lambda s: s.finished_at or s.timestamp)
    return last.module


def _hours(delta: timedelta) -> float:
    return delta.total_seconds() / SECONDS_PER_HOUR


class AnalyticsAggregator:
    """Read-only aggregation over a snapshot of workflows."""

    def __init__(self, config: Optional[AnalyticsConfig] = None) -> None:
        self.config = config or AnalyticsConfig()

    def compute(
        self,
        workflows: Iterable[Workflow],
        period: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> WorkflowAnalytics:
        start, end = resolve_period(
            period, date_from, date_to, now, default_period=self.config.default_period
        )
        # Active during the period: created before it ended, touched after it began.
        selected = [
            wf for wf in workflows if wf.created_at <= end and wf.updated_at >= start
        ]
        report = WorkflowAnalytics(period_start=start, period_end=end)
        if not selected:
            return report

        report.total_workflows = len(selected)
        by_status: Dict[WorkflowStatus, int] = defaultdict(int)
        types: Dict[str, int] = defaultdict(int)
        for wf in selected:
            by_status[wf.status] += 1
            types[wf.type.value] += 1
        report.completed_workflows = by_status[WorkflowStatus.COMPLETED]
        report.failed_workflows = by_status[WorkflowStatus.FAILED]
        report.in_progress_workflows = by_status[WorkflowStatus.IN_PROGRESS]
        report.pending_workflows = by_status[WorkflowStatus.PENDING]
        report.completion_rate = report.completed_workflows / report.total_workflows * 100
        report.workflow_types = dict(types)

        report.average_completion_time = self._average_completion_time(selected)
        report.efficiency = self._efficiency(selected)
        report.bottlenecks = self._bottlenecks(selected)
        report.trends = Trends(daily=self._daily_trends(selected))
        logger.debug(
            f"Computed analytics over {report.total_workflows} workflows "
            f"({start.isoformat()} - {end.isoformat()})"
        )
        return report

    def _average_completion_time(self, workflows: List[Workflow]) -> float:
        durations = []
        for wf in workflows:
            if wf.status is not WorkflowStatus.COMPLETED:
                continue
            finished = terminal_at(wf)
            if finished is not None:
                durations.append(_hours(finished - wf.created_at))
        return sum(durations) / len(durations) if durations else 0.0

    def _efficiency(self, workflows: List[Workflow]) -> ModuleEfficiency:
        totals: Dict[Module, int] = defaultdict(int)
        completed: Dict[Module, int] = defaultdict(int)
        for wf in workflows:
            for step in wf.steps:
                totals[step.module] += 1
                # ``failed`` is terminal, so a completed step never failed.
                if step.status is StepStatus.COMPLETED:
                    completed[step.module] += 1
        steps_total = sum(totals.values())
        return ModuleEfficiency(
            overall=sum(completed.values()) / steps_total * 100 if steps_total else 0.0,
            by_module={
                module: completed[module] / count * 100 for module, count in totals.items()
            },
        )

    def _bottlenecks(self, workflows: List[Workflow]) -> List[Bottleneck]:
        delays: Dict[Module, List[float]] = defaultdict(list)
        last_counts: Dict[Module, int] = defaultdict(int)
        for wf in workflows:
            for step in wf.steps:
                if step.started_at is not None and step.finished_at is not None:
                    delays[step.module].append(_hours(step.finished_at - step.started_at))
            if wf.status is WorkflowStatus.COMPLETED:
                module = _last_finished_module(wf)
                if module is not None:
                    last_counts[module] += 1

        threshold = self.config.bottleneck_delay_threshold_hours
        found: List[Bottleneck] = []
        for module, samples in delays.items():
            average = sum(samples) / len(samples)
            frequency = last_counts.get(module, 0)
            if average <= threshold or frequency <= self.config.bottleneck_min_frequency:
                continue
            ratio = average / threshold
            if ratio >= 2.0:
                impact = "high"
            elif ratio >= 1.5:
                impact = "medium"
            else:
                impact = "low"
            found.append(
                Bottleneck(
                    module=module,
                    average_delay=average,
                    frequency=frequency,
                    impact=impact,
                )
            )
        return sorted(found, key=lambda b: b.average_delay, reverse=True)

    def _daily_trends(self, workflows: List[Workflow]) -> List[DailyTrend]:
        days: Dict[CalendarDate, DailyTrend] = {}
        for wf in workflows:
            finished = terminal_at(wf)
            if finished is None:
                continue
            day = finished.date()
            trend = days.setdefault(day, DailyTrend(date=day))
            if wf.status is WorkflowStatus.COMPLETED:
                trend.completed += 1
            else:
                trend.failed += 1
        return [days[day] for day in sorted(days)]
