"""Status aggregation tests."""

import pytest

from pharmaflow.constants import StepStatus
from pharmaflow.status import aggregate, can_transition

P, I, C, F = (
    StepStatus.PENDING,
    StepStatus.IN_PROGRESS,
    StepStatus.COMPLETED,
    StepStatus.FAILED,
)


@pytest.mark.parametrize(
    "statuses, expected",
    [
        ([P], P),
        ([P, P], P),
        ([I, P], I),
        ([C, I], I),
        ([C, C], C),
        ([C], C),
        ([F], F),
        ([C, F, I], F),
        ([P, F], F),
        # Completed work with nothing running is still pending.
        ([C, P], P),
        ([C, C, P], P),
    ],
)
def test_aggregate_precedence(statuses, expected):
    assert aggregate(statuses) is expected


def test_aggregate_accepts_steps_and_strings():
    class FakeStep:
        def __init__(self, status):
            self.status = status

    assert aggregate([FakeStep("completed"), FakeStep("in_progress")]) is I
    assert aggregate(["failed", "pending"]) is F


@pytest.mark.parametrize(
    "current, requested, allowed",
    [
        (P, I, True),
        (P, C, True),
        (P, F, True),
        (I, C, True),
        (I, F, True),
        (I, I, True),
        (P, P, True),
        (I, P, False),
        (C, P, False),
        (C, I, False),
        (C, C, False),
        (C, F, False),
        (F, C, False),
        (F, F, False),
    ],
)
def test_can_transition_is_monotonic(current, requested, allowed):
    assert can_transition(current, requested) is allowed
