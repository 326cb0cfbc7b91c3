"""Workflow selection by type, status, module and creation date."""

from __future__ import annotations

from datetime import datetime
from typing import Iterable, Optional

from pydantic import BaseModel, field_validator

from .constants import Module, WorkflowStatus, WorkflowType
from .contracts import Workflow, ensure_utc


class WorkflowFilter(BaseModel):
    """Conjunction of optional workflow filters; unset fields match anything."""

    type: Optional[WorkflowType] = None
    status: Optional[WorkflowStatus] = None
    module: Optional[Module] = None
    date_from: Optional[datetime] = None
    date_to: Optional[datetime] = None

    @field_validator("date_from", "date_to")
    @classmethod
    def _as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    def matches(self, workflow: Workflow) -> bool:
        if self.type is not None and workflow.type is not self.type:
            return False
        if self.status is not None and workflow.status is not self.status:
            return False
        if self.module is not None and self.module not in workflow.modules:
            return False
        # Both date bounds are inclusive.
        if self.date_from is not None and workflow.created_at < self.date_from:
            return False
        if self.date_to is not None and workflow.created_at > self.date_to:
            return False
        return True


def select(
    workflows: Iterable[Workflow], workflow_filter: Optional[WorkflowFilter] = None
) -> list[Workflow]:
    """Return ``workflows`` matching ``workflow_filter``, keeping input order."""
    if workflow_filter is None:
        return list(workflows)
    return [wf for wf in workflows if workflow_filter.matches(wf)]
