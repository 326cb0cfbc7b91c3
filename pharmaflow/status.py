"""Workflow status derivation."""

from __future__ import annotations

from typing import Any, Iterable

from .constants import STATUS_RANK, TERMINAL_STATUSES, StepStatus, WorkflowStatus


def _status_of(item: Any) -> StepStatus:
    return StepStatus(getattr(item, "status", item))


def aggregate(steps: Iterable[Any]) -> WorkflowStatus:
    """Derive a workflow status from its steps (or bare step statuses).

    Precedence:
        1. any step ``failed``       -> ``failed``
        2. every step ``completed``  -> ``completed``
        3. any step ``in_progress``  -> ``in_progress``
        4. otherwise                 -> ``pending``

    A mix of ``completed`` and ``pending`` steps with nothing in progress is
    therefore ``pending``.
    """
    statuses = [_status_of(step) for step in steps]
    if StepStatus.FAILED in statuses:
        return WorkflowStatus.FAILED
    if all(status is StepStatus.COMPLETED for status in statuses):
        return WorkflowStatus.COMPLETED
    if StepStatus.IN_PROGRESS in statuses:
        return WorkflowStatus.IN_PROGRESS
    return WorkflowStatus.PENDING


def can_transition(current: StepStatus, requested: StepStatus) -> bool:
    """Return ``True`` when ``current -> requested`` keeps the step monotonic.

    Terminal steps accept nothing; otherwise any forward move (including a
    skip such as ``pending -> failed``) or a same-status refresh is allowed.
    """
    current = StepStatus(current)
    requested = StepStatus(requested)
    if current in TERMINAL_STATUSES:
        return False
    return STATUS_RANK[requested] >= STATUS_RANK[current]


__all__ = ["aggregate", "can_transition"]
