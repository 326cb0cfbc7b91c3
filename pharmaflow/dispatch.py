"""Workflow creation for pharmaflow."""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional

from . import events as ev
from .constants import Priority, WorkflowType
from .contracts import StepCreate, Workflow, WorkflowCreate, WorkflowMetadata, parse_payload
from .errors import ValidationError
from .events import EventLog
from .execute import StepExecutor
from .persistence import WorkflowRepository
from .templates import DEFAULT_PRIORITIES, template_for

logger = logging.getLogger(__name__)


class WorkflowDispatcher:
    """Service responsible for creating new workflows."""

    def __init__(
        self,
        repository: WorkflowRepository,
        executor: Optional[StepExecutor] = None,
        events: Optional[EventLog] = None,
    ) -> None:
        self._repository = repository
        self._executor = executor
        self._events = events

    async def create_workflow(self, payload: WorkflowCreate | Dict[str, Any]) -> Workflow:
        """Create a workflow from a creation payload.

        Every step starts ``pending``, so the new workflow is ``pending`` too.

        Raises:
            ValidationError: If the payload has no type, no steps, an unknown
                module or duplicate step ids.
        """
        request = parse_payload(WorkflowCreate, payload)
        workflow = await self._repository.create_workflow(request.to_workflow())
        logger.info(
            f"Created {workflow.type.value} workflow {workflow.id} "
            f"with {len(workflow.steps)} steps"
        )
        if self._events is not None:
            await self._events.record(
                ev.WORKFLOW_CREATED,
                "create_workflow",
                workflow.model_dump(mode="json", by_alias=True),
                workflow_id=workflow.id,
            )
        return workflow

    def build_request(
        self,
        workflow_type: WorkflowType,
        source_id: str,
        target_id: Optional[str] = None,
        priority: Optional[Priority] = None,
    ) -> WorkflowCreate:
        """Build the creation payload for a standard process template."""
        try:
            workflow_type = WorkflowType(workflow_type)
            priority = Priority(priority) if priority is not None else None
        except ValueError as exc:
            raise ValidationError(str(exc)) from exc
        data: Dict[str, Any] = {"sourceId": source_id}
        if target_id:
            data["targetId"] = target_id
        return WorkflowCreate(
            type=workflow_type,
            steps=[
                StepCreate(id=step.id, name=step.name, module=step.module, data=dict(data))
                for step in template_for(workflow_type)
            ],
            metadata=WorkflowMetadata(
                source_id=source_id,
                target_id=target_id,
                priority=priority
                or DEFAULT_PRIORITIES.get(workflow_type, Priority.NORMAL),
            ),
        )

    async def initiate(
        self,
        workflow_type: WorkflowType,
        source_id: str,
        target_id: Optional[str] = None,
        priority: Optional[Priority] = None,
        start: bool = True,
    ) -> Workflow:
        """Create a workflow from its template and optionally execute step one."""
        workflow = await self.create_workflow(
            self.build_request(workflow_type, source_id, target_id, priority)
        )
        if start and self._executor is not None:
            workflow = await self._executor.execute(workflow.id, workflow.steps[0].id)
        return workflow
