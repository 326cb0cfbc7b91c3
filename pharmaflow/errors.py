"""Error taxonomy for the pharmaflow orchestration engine.

All request-path errors are raised synchronously to the caller and are never
retried: they describe caller input or logic errors, not transient failures.
"""

from __future__ import annotations

from typing import Optional


class OrchestrationError(Exception):
    """Base exception for pharmaflow."""


class NotFound(OrchestrationError):
    """A workflow or step id does not exist."""


class WorkflowNotFound(NotFound):
    def __init__(self, workflow_id: str) -> None:
        super().__init__(f"Workflow not found: {workflow_id}")
        self.workflow_id = workflow_id


class StepNotFound(NotFound):
    def __init__(self, workflow_id: str, step_id: str) -> None:
        super().__init__(f"Step not found: {step_id} (workflow {workflow_id})")
        self.workflow_id = workflow_id
        self.step_id = step_id


class InvalidTransition(OrchestrationError):
    """A step status change would move backward or leave a terminal state."""

    def __init__(
        self, step_id: str, current: str, requested: str, workflow_id: Optional[str] = None
    ) -> None:
        super().__init__(
            f"Invalid transition for step {step_id}: {current} -> {requested}"
        )
        self.workflow_id = workflow_id
        self.step_id = step_id
        self.current = current
        self.requested = requested


class ValidationError(OrchestrationError):
    """Malformed creation or update payload."""


__all__ = [
    "OrchestrationError",
    "NotFound",
    "WorkflowNotFound",
    "StepNotFound",
    "InvalidTransition",
    "ValidationError",
]
