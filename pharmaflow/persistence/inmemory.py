"""In-memory implementation of the workflow repository."""

from __future__ import annotations

from typing import Dict, List, Optional

from ..contracts import Workflow
from .repository import WorkflowRepository


class InMemoryWorkflowRepository(WorkflowRepository):
    """Store workflow state in local memory.

    Useful for tests or when no database is configured. Data is not
    persisted across process restarts.
    """

    def __init__(self) -> None:
        super().__init__()
        self._workflows: Dict[str, Workflow] = {}

    async def _insert(self, workflow: Workflow) -> None:
        self._workflows[workflow.id] = workflow

    async def _load(self, workflow_id: str) -> Optional[Workflow]:
        workflow = self._workflows.get(workflow_id)
        return workflow.model_copy(deep=True) if workflow is not None else None

    async def _save(self, workflow: Workflow) -> None:
        self._workflows[workflow.id] = workflow

    async def _remove(self, workflow_id: str) -> bool:
        return self._workflows.pop(workflow_id, None) is not None

    async def _list_ids(self) -> List[str]:
        return list(self._workflows)
