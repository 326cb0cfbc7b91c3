"""Repository abstraction for workflow state persistence."""

from __future__ import annotations

import abc
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Callable, Dict, List, Optional

from ..contracts import Workflow
from ..errors import ValidationError, WorkflowNotFound

logger = logging.getLogger(__name__)

Mutation = Callable[[Workflow], Optional[Workflow]]


class WorkflowRepository(metaclass=abc.ABCMeta):
    """Base class for workflow stores.

    The repository is the single point of concurrency control: every
    operation touching a workflow runs under that workflow's own
    ``asyncio.Lock``, so mutations of one workflow apply in some serial order
    while distinct workflows never contend. Backends only implement the raw
    load/save hooks and always hand out private copies.
    """

    def __init__(self) -> None:
        # Only ids with a holder or waiter have an entry.
        self._locks: Dict[str, asyncio.Lock] = {}
        self._lock_users: Dict[str, int] = {}

    @asynccontextmanager
    async def _locked(self, workflow_id: str) -> AsyncIterator[None]:
        lock = self._locks.get(workflow_id)
        if lock is None:
            lock = self._locks[workflow_id] = asyncio.Lock()
        self._lock_users[workflow_id] = self._lock_users.get(workflow_id, 0) + 1
        try:
            async with lock:
                yield
        finally:
            remaining = self._lock_users[workflow_id] - 1
            if remaining:
                self._lock_users[workflow_id] = remaining
            else:
                del self._lock_users[workflow_id]
                del self._locks[workflow_id]

    # ------------------------------------------------------------------
    # Backend hooks
    @abc.abstractmethod
    async def _insert(self, workflow: Workflow) -> None:
        """Store a new workflow."""

    @abc.abstractmethod
    async def _load(self, workflow_id: str) -> Optional[Workflow]:
        """Return a private copy of the stored workflow, or ``None``."""

    @abc.abstractmethod
    async def _save(self, workflow: Workflow) -> None:
        """Replace the stored workflow."""

    @abc.abstractmethod
    async def _remove(self, workflow_id: str) -> bool:
        """Delete the workflow, returning whether it existed."""

    @abc.abstractmethod
    async def _list_ids(self) -> List[str]:
        """Return workflow ids in creation order."""

    # ------------------------------------------------------------------
    # Repository API
    async def create_workflow(self, workflow: Workflow) -> Workflow:
        """Persist a new workflow."""
        async with self._locked(workflow.id):
            if await self._load(workflow.id) is not None:
                raise ValidationError(f"Workflow already exists: {workflow.id}")
            await self._insert(workflow.model_copy(deep=True))
        return workflow.model_copy(deep=True)

    async def get_workflow(self, workflow_id: str) -> Workflow | None:
        """Retrieve the workflow by id."""
        async with self._locked(workflow_id):
            return await self._load(workflow_id)

    async def mutate(self, workflow_id: str, mutation: Mutation) -> Workflow:
        """Atomically read, modify and commit one workflow.

        ``mutation`` receives a private copy and returns the workflow to
        commit, or ``None`` to leave the stored state untouched. Exceptions
        raised by ``mutation`` propagate without committing anything.

        Returns:
            A copy of the committed (or unchanged) workflow.

        Raises:
            WorkflowNotFound: If no workflow has ``workflow_id``.
        """
        async with self._locked(workflow_id):
            current = await self._load(workflow_id)
            if current is None:
                raise WorkflowNotFound(workflow_id)
            updated = mutation(current.model_copy(deep=True))
            if updated is None:
                return current
            await self._save(updated)
            return updated.model_copy(deep=True)

    async def delete_workflow(self, workflow_id: str) -> bool:
        """Remove a workflow; ``False`` if it did not exist."""
        async with self._locked(workflow_id):
            return await self._remove(workflow_id)

    async def snapshot(self) -> list[Workflow]:
        """Return every workflow, each read whole under its own lock."""
        workflows: list[Workflow] = []
        for workflow_id in await self._list_ids():
            async with self._locked(workflow_id):
                workflow = await self._load(workflow_id)
            if workflow is not None:
                workflows.append(workflow)
        return workflows

    async def list_workflows(self) -> list[Workflow]:
        """Return all persisted workflows in creation order."""
        return await self.snapshot()

    async def close(self) -> None:
        """Release backend resources (no-op by default)."""
