"""Transport-agnostic request surface of the orchestration engine.

Each method corresponds to one operation of the workflow API::

    POST   /workflows                       create_workflow
    GET    /workflows                       list_workflows
    GET    /workflows/{id}                  get_workflow
    PUT    /workflows/{id}                  update_workflow
    DELETE /workflows/{id}                  delete_workflow
    PUT    /workflows/{id}/steps/{stepId}   update_step
    POST   /workflows/{id}/steps/{stepId}   execute_step
    GET    /analytics/workflows             analytics
"""

from __future__ import annotations

import copy
import logging
from datetime import datetime
from typing import Any, Dict, Optional

from . import events as ev
from .analytics import AnalyticsAggregator, WorkflowAnalytics
from .config import PharmaflowConfig, load_config
from .constants import Priority, StepStatus, WorkflowType
from .contracts import Workflow, WorkflowCreate, WorkflowUpdate, parse_payload
from .dispatch import WorkflowDispatcher
from .errors import InvalidTransition, ValidationError, WorkflowNotFound
from .events import EventLog, IntegrationEvent
from .execute import StepExecutor
from .persistence import WorkflowRepository, get_repository
from .query import WorkflowFilter, select

logger = logging.getLogger(__name__)


class WorkflowService:
    """Facade wiring the store, dispatcher, executor and analytics together."""

    def __init__(
        self,
        repository: WorkflowRepository | None = None,
        config: Optional[PharmaflowConfig] = None,
        events: Optional[EventLog] = None,
    ) -> None:
        self.config = config or load_config()
        self.repository = repository or get_repository()
        self.events = events or EventLog()
        self.executor = StepExecutor(
            self.repository,
            completion_delay=self.config.execution.completion_delay,
            events=self.events,
        )
        self.dispatcher = WorkflowDispatcher(
            self.repository, executor=self.executor, events=self.events
        )
        self.analytics_aggregator = AnalyticsAggregator(self.config.analytics)

    # ------------------------------------------------------------------
    # Workflows
    async def create_workflow(self, payload: WorkflowCreate | Dict[str, Any]) -> Workflow:
        return await self.dispatcher.create_workflow(payload)

    async def initiate(
        self,
        workflow_type: WorkflowType,
        source_id: str,
        target_id: Optional[str] = None,
        priority: Optional[Priority] = None,
        start: bool = True,
    ) -> Workflow:
        return await self.dispatcher.initiate(
            workflow_type, source_id, target_id=target_id, priority=priority, start=start
        )

    async def get_workflow(self, workflow_id: str) -> Workflow:
        workflow = await self.repository.get_workflow(workflow_id)
        if workflow is None:
            raise WorkflowNotFound(workflow_id)
        return workflow

    async def list_workflows(
        self,
        type: Optional[str] = None,
        status: Optional[str] = None,
        module: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[Workflow]:
        """List workflows in creation order, narrowed by every given filter."""
        workflow_filter = parse_payload(
            WorkflowFilter,
            {
                "type": type,
                "status": status,
                "module": module,
                "date_from": date_from,
                "date_to": date_to,
            },
        )
        return select(await self.repository.list_workflows(), workflow_filter)

    async def update_workflow(
        self, workflow_id: str, changes: WorkflowUpdate | Dict[str, Any]
    ) -> Workflow:
        """Merge metadata and remarks; status and steps cannot be written."""
        update = parse_payload(WorkflowUpdate, changes)
        workflow = await self.repository.mutate(workflow_id, update.apply)
        logger.info(f"Updated workflow {workflow_id}")
        await self.events.record(
            ev.WORKFLOW_UPDATED,
            "update_workflow",
            update.model_dump(exclude_none=True, by_alias=True),
            workflow_id=workflow_id,
        )
        return workflow

    async def delete_workflow(self, workflow_id: str) -> None:
        if not await self.repository.delete_workflow(workflow_id):
            raise WorkflowNotFound(workflow_id)
        logger.info(f"Deleted workflow {workflow_id}")
        await self.events.record(
            ev.WORKFLOW_DELETED, "delete_workflow", None, workflow_id=workflow_id
        )

    # ------------------------------------------------------------------
    # Steps
    async def update_step(
        self,
        workflow_id: str,
        step_id: str,
        status: StepStatus | str,
        data: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> Workflow:
        """Record a step outcome reported by its owning domain.

        Raises:
            WorkflowNotFound: If the workflow does not exist.
            StepNotFound: If the workflow has no such step.
            InvalidTransition: If ``status`` would move the step backward or
                the step is already terminal. Nothing is committed.
        """
        try:
            status = StepStatus(status)
        except ValueError as exc:
            raise ValidationError(f"Unknown step status: {status}") from exc

        def _update(workflow: Workflow) -> Workflow:
            workflow.transition_step(step_id, status, data=data, error=error)
            return workflow

        try:
            workflow = await self.repository.mutate(workflow_id, _update)
        except InvalidTransition as exc:
            logger.warning(f"Rejected step update for workflow_id={workflow_id}: {exc}")
            raise

        logger.info(
            f"Step {step_id} -> {status.value}; workflow {workflow_id} is "
            f"{workflow.status.value}"
        )
        await self.events.record(
            ev.STEP_UPDATED,
            "update_step",
            {
                "stepId": step_id,
                "status": status.value,
                "data": copy.deepcopy(data),
                "error": error,
            },
            workflow_id=workflow_id,
        )
        return workflow

    async def execute_step(self, workflow_id: str, step_id: str) -> Workflow:
        """Start a step; it completes in the background after a short delay."""
        return await self.executor.execute(workflow_id, step_id)

    async def join(self) -> None:
        """Wait for all background step completions."""
        await self.executor.join()

    # ------------------------------------------------------------------
    # Reporting
    async def analytics(
        self,
        period: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        now: Optional[datetime] = None,
    ) -> WorkflowAnalytics:
        workflows = await self.repository.snapshot()
        return self.analytics_aggregator.compute(
            workflows, period=period, date_from=date_from, date_to=date_to, now=now
        )

    async def list_events(
        self,
        type: Optional[str] = None,
        module: Optional[str] = None,
        workflow_id: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
    ) -> list[IntegrationEvent]:
        return await self.events.list(
            type=type,
            module=module,
            workflow_id=workflow_id,
            date_from=date_from,
            date_to=date_to,
        )
