"""Workflow analytics tests with hand-computed expectations."""

from datetime import date, datetime, timedelta, timezone

import pytest

from pharmaflow.analytics import AnalyticsAggregator, resolve_period, terminal_at
from pharmaflow.config import AnalyticsConfig
from pharmaflow.constants import Module
from pharmaflow.contracts import Step, Workflow
from pharmaflow.errors import ValidationError

NOW = datetime(2024, 1, 31, tzinfo=timezone.utc)


def _at(day, hour, minute=0, month=1, year=2024):
    return datetime(year, month, day, hour, minute, tzinfo=timezone.utc)


def _step(step_id, module, status, started=None, finished=None):
    return Step(
        id=step_id,
        name=step_id,
        module=module,
        status=status,
        started_at=started,
        finished_at=finished,
        timestamp=finished or started or NOW,
    )


@pytest.fixture
def workflows():
    completed_a = Workflow(
        id="wf_a",
        type="supplier_to_warehouse",
        steps=[
            _step("receipt", "warehouse", "completed", _at(10, 8), _at(10, 9)),
            _step("sampling", "quality_control", "completed", _at(10, 9), _at(10, 12)),
        ],
        created_at=_at(10, 8),
        updated_at=_at(10, 12),
    )
    completed_b = Workflow(
        id="wf_b",
        type="warehouse_to_quality",
        steps=[
            _step("prep", "warehouse", "completed", _at(11, 10), _at(11, 10, 30)),
            _step("qc", "quality_control", "completed", _at(11, 10, 30), _at(11, 12, 30)),
        ],
        created_at=_at(11, 10),
        updated_at=_at(11, 12, 30),
    )
    failed = Workflow(
        id="wf_c",
        type="procurement_to_supplier",
        steps=[
            _step("approval", "procurement", "completed", _at(12, 0), _at(12, 1)),
            _step("notify", "procurement", "failed", _at(12, 1), _at(12, 2)),
        ],
        created_at=_at(12, 0),
        updated_at=_at(12, 2),
    )
    running = Workflow(
        id="wf_d",
        type="sales_to_distribution",
        steps=[
            _step("validation", "distribution", "in_progress", _at(20, 0)),
            _step("allocation", "warehouse", "pending"),
        ],
        created_at=_at(20, 0),
        updated_at=_at(20, 0),
    )
    stale = Workflow(
        id="wf_old",
        type="supplier_to_warehouse",
        steps=[
            _step("receipt", "warehouse", "completed", _at(1, 0, month=11, year=2023), _at(1, 9, month=11, year=2023)),
        ],
        created_at=_at(1, 0, month=11, year=2023),
        updated_at=_at(1, 9, month=11, year=2023),
    )
    return [completed_a, completed_b, failed, running, stale]


def test_counts_and_completion_time(workflows):
    report = AnalyticsAggregator().compute(workflows, period="30d", now=NOW)

    assert report.total_workflows == 4
    assert report.completed_workflows == 2
    assert report.failed_workflows == 1
    assert report.in_progress_workflows == 1
    assert report.pending_workflows == 0
    assert report.completion_rate == pytest.approx(50.0)
    # (4h + 2.5h) / 2
    assert report.average_completion_time == pytest.approx(3.25)
    assert report.workflow_types == {
        "supplier_to_warehouse": 1,
        "warehouse_to_quality": 1,
        "procurement_to_supplier": 1,
        "sales_to_distribution": 1,
    }


def test_module_efficiency(workflows):
    report = AnalyticsAggregator().compute(workflows, period="30d", now=NOW)
    by_module = report.efficiency.by_module

    assert by_module[Module.WAREHOUSE] == pytest.approx(200 / 3)
    assert by_module[Module.QUALITY_CONTROL] == pytest.approx(100.0)
    assert by_module[Module.PROCUREMENT] == pytest.approx(50.0)
    assert by_module[Module.DISTRIBUTION] == pytest.approx(0.0)
    assert Module.MANUFACTURING not in by_module
    # 5 of 8 steps completed.
    assert report.efficiency.overall == pytest.approx(62.5)


@pytest.mark.parametrize(
    "threshold, impact",
    [(1.0, "high"), (1.5, "medium"), (2.0, "low")],
)
def test_bottleneck_detection(workflows, threshold, impact):
    config = AnalyticsConfig(bottleneck_delay_threshold_hours=threshold)
    report = AnalyticsAggregator(config).compute(workflows, period="30d", now=NOW)

    # quality_control averages (3h + 2h) / 2 and finished last in both
    # completed workflows; warehouse (0.75h) and procurement (1h) stay under.
    assert len(report.bottlenecks) == 1
    bottleneck = report.bottlenecks[0]
    assert bottleneck.module is Module.QUALITY_CONTROL
    assert bottleneck.average_delay == pytest.approx(2.5)
    assert bottleneck.frequency == 2
    assert bottleneck.impact == impact


def test_bottleneck_requires_frequency_above_minimum(workflows):
    config = AnalyticsConfig(bottleneck_delay_threshold_hours=0.5, bottleneck_min_frequency=1)
    report = AnalyticsAggregator(config).compute(workflows, period="30d", now=NOW)
    # procurement (1h) and warehouse (0.75h) are slow enough but never last.
    assert [b.module for b in report.bottlenecks] == [Module.QUALITY_CONTROL]

    config = AnalyticsConfig(bottleneck_delay_threshold_hours=0.5, bottleneck_min_frequency=2)
    report = AnalyticsAggregator(config).compute(workflows, period="30d", now=NOW)
    assert report.bottlenecks == []


def test_bottlenecks_sorted_by_delay():
    last_warehouse = Workflow(
        type="manufacturing_to_finished",
        steps=[
            _step("production", "manufacturing", "completed", _at(15, 0), _at(15, 3)),
            _step("inventory", "warehouse", "completed", _at(15, 3), _at(15, 4)),
        ],
        created_at=_at(15, 0),
        updated_at=_at(15, 4),
    )
    last_manufacturing = Workflow(
        type="manufacturing_to_finished",
        steps=[
            _step("inventory", "warehouse", "completed", _at(16, 0), _at(16, 2)),
            _step("production", "manufacturing", "completed", _at(16, 2), _at(16, 6)),
        ],
        created_at=_at(16, 0),
        updated_at=_at(16, 6),
    )
    report = AnalyticsAggregator().compute(
        [last_warehouse, last_manufacturing], period="30d", now=NOW
    )
    summary = [(b.module, b.average_delay, b.frequency, b.impact) for b in report.bottlenecks]
    assert summary == [
        (Module.MANUFACTURING, pytest.approx(3.5), 1, "high"),
        (Module.WAREHOUSE, pytest.approx(1.5), 1, "medium"),
    ]


def test_daily_trends(workflows):
    report = AnalyticsAggregator().compute(workflows, period="30d", now=NOW)
    daily = [(t.date, t.completed, t.failed) for t in report.trends.daily]
    assert daily == [
        (date(2024, 1, 10), 1, 0),
        (date(2024, 1, 11), 1, 0),
        (date(2024, 1, 12), 0, 1),
    ]


def test_empty_period_yields_zero_metrics(workflows):
    report = AnalyticsAggregator().compute(workflows, period="7d", now=NOW)
    assert report.total_workflows == 0
    assert report.completion_rate == 0.0
    assert report.average_completion_time == 0.0
    assert report.bottlenecks == []
    assert report.efficiency.by_module == {}
    assert report.trends.daily == []

    assert AnalyticsAggregator().compute([], now=NOW).total_workflows == 0


def test_explicit_range_overrides_period(workflows):
    report = AnalyticsAggregator().compute(
        workflows,
        period="7d",
        date_from=_at(1, 0, month=10, year=2023),
        date_to=_at(30, 0, month=11, year=2023),
    )
    assert report.total_workflows == 1
    assert report.completed_workflows == 1
    assert report.average_completion_time == pytest.approx(9.0)


def test_resolve_period():
    start, end = resolve_period("7d", now=NOW)
    assert end == NOW
    assert start == NOW - timedelta(days=7)

    start, end = resolve_period(now=NOW, default_period="90d")
    assert start == NOW - timedelta(days=90)

    with pytest.raises(ValidationError):
        resolve_period("14d", now=NOW)
    with pytest.raises(ValidationError):
        resolve_period(date_from=NOW, date_to=NOW - timedelta(days=1))


def test_terminal_at(workflows):
    completed_a, _, failed, running, _ = workflows
    assert terminal_at(completed_a) == _at(10, 12)
    assert terminal_at(failed) == _at(12, 2)
    assert terminal_at(running) is None


@pytest.mark.asyncio
async def test_service_analytics_reads_store_without_mutating(service, repository, workflows):
    for wf in workflows:
        await repository.create_workflow(wf)
    before = [wf.model_dump() for wf in await repository.list_workflows()]

    report = await service.analytics(period="30d", now=NOW)
    assert report.total_workflows == 4
    assert report.average_completion_time == pytest.approx(3.25)

    after = [wf.model_dump() for wf in await repository.list_workflows()]
    assert before == after
