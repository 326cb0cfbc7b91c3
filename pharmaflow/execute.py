"""Step execution coordinator for pharmaflow workflows."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from typing import Optional, Set

from . import events as ev
from .constants import DEFAULT_COMPLETION_DELAY, StepStatus
from .contracts import Workflow
from .errors import WorkflowNotFound
from .events import EventLog
from .persistence import WorkflowRepository

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ScheduledTransition:
    """A deferred step transition that only applies from ``expected``."""

    workflow_id: str
    step_id: str
    expected: StepStatus = StepStatus.IN_PROGRESS
    target: StepStatus = StepStatus.COMPLETED

    def apply(self, workflow: Workflow) -> Optional[Workflow]:
        """Return the transitioned workflow, or ``None`` when stale."""
        step = next((s for s in workflow.steps if s.id == self.step_id), None)
        if step is None or step.status is not self.expected:
            return None
        workflow.transition_step(self.step_id, self.target)
        return workflow


class StepExecutor:
    """Starts steps synchronously and completes them in the background.

    ``execute`` moves a pending step to ``in_progress`` and returns straight
    away. A background task then completes the step after
    ``completion_delay`` seconds, standing in for the owning domain's
    turnaround. That completion goes through the repository's atomic
    read-modify-write like any other mutation and is discarded if the step
    has since left ``in_progress`` or the workflow is gone.
    """

    def __init__(
        self,
        repository: WorkflowRepository,
        completion_delay: float = DEFAULT_COMPLETION_DELAY,
        events: Optional[EventLog] = None,
    ) -> None:
        self._repository = repository
        self.completion_delay = completion_delay
        self._events = events
        self._tasks: Set[asyncio.Task] = set()

    async def execute(self, workflow_id: str, step_id: str) -> Workflow:
        """Start ``step_id``; a no-op if the step is not pending.

        Raises:
            WorkflowNotFound: If the workflow does not exist.
            StepNotFound: If the workflow has no such step.
        """
        started = False

        def _start(workflow: Workflow) -> Optional[Workflow]:
            nonlocal started
            step = workflow.get_step(step_id)
            if step.status is not StepStatus.PENDING:
                return None
            workflow.transition_step(step_id, StepStatus.IN_PROGRESS)
            started = True
            return workflow

        workflow = await self._repository.mutate(workflow_id, _start)
        if not started:
            logger.debug(
                f"Step {step_id} already {workflow.get_step(step_id).status.value}; "
                f"nothing to execute for workflow_id={workflow_id}"
            )
            return workflow

        logger.info(f"Started step {step_id} for workflow_id={workflow_id}")
        if self._events is not None:
            await self._events.record(
                ev.STEP_STARTED,
                "execute_step",
                {"stepId": step_id, "status": StepStatus.IN_PROGRESS.value},
                workflow_id=workflow_id,
            )
        self._schedule(ScheduledTransition(workflow_id, step_id))
        return workflow

    def _schedule(self, transition: ScheduledTransition) -> None:
        task = asyncio.create_task(self._complete_later(transition))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    async def _complete_later(self, transition: ScheduledTransition) -> None:
        await asyncio.sleep(self.completion_delay)
        try:
            await self.apply_transition(transition)
        except Exception:
            logger.exception(
                f"Delayed completion of step {transition.step_id} failed "
                f"for workflow_id={transition.workflow_id}"
            )

    async def apply_transition(self, transition: ScheduledTransition) -> bool:
        """Apply ``transition`` if still current; return whether it applied."""
        applied = False

        def _apply(workflow: Workflow) -> Optional[Workflow]:
            nonlocal applied
            result = transition.apply(workflow)
            applied = result is not None
            return result

        try:
            await self._repository.mutate(transition.workflow_id, _apply)
        except WorkflowNotFound:
            applied = False

        if not applied:
            logger.debug(
                f"Discarded stale transition of step {transition.step_id} to "
                f"{transition.target.value} for workflow_id={transition.workflow_id}"
            )
            if self._events is not None:
                await self._events.record(
                    ev.STEP_DISCARDED,
                    "complete_step",
                    {"stepId": transition.step_id, "expected": transition.expected.value},
                    workflow_id=transition.workflow_id,
                )
            return False

        logger.info(
            f"Step {transition.step_id} {transition.target.value} "
            f"for workflow_id={transition.workflow_id}"
        )
        if self._events is not None:
            await self._events.record(
                ev.STEP_COMPLETED,
                "complete_step",
                {"stepId": transition.step_id, "status": transition.target.value},
                workflow_id=transition.workflow_id,
            )
        return True

    @property
    def in_flight(self) -> int:
        """Number of scheduled completions that have not finished yet."""
        return len(self._tasks)

    async def join(self) -> None:
        """Wait until every scheduled completion has fired."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks))
