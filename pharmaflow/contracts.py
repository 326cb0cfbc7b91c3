"""Core data contracts for pharmaflow workflows."""

from __future__ import annotations

import copy
import logging
import uuid
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .constants import (
    TERMINAL_STATUSES,
    Module,
    Priority,
    StepStatus,
    WorkflowStatus,
    WorkflowType,
)
from .errors import InvalidTransition, StepNotFound, ValidationError
from .status import aggregate, can_transition

logger = logging.getLogger(__name__)


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def ensure_utc(value: Optional[datetime]) -> Optional[datetime]:
    """Treat naive datetimes as UTC so they compare with stored timestamps."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def new_workflow_id() -> str:
    return f"wf_{uuid.uuid4().hex[:16]}"


class CamelModel(BaseModel):
    """Base model serialising with camelCase aliases."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class Step(CamelModel):
    """One unit of work inside a workflow, owned by a single domain module."""

    id: str
    name: str
    module: Module
    status: StepStatus = StepStatus.PENDING
    data: Dict[str, Any] = Field(default_factory=dict)
    timestamp: datetime = Field(default_factory=utcnow)
    started_at: Optional[datetime] = None
    finished_at: Optional[datetime] = None
    error: Optional[str] = None

    @field_validator("timestamp", "started_at", "finished_at")
    @classmethod
    def _as_utc(cls, v: Optional[datetime]) -> Optional[datetime]:
        return ensure_utc(v)

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    def transition(
        self,
        status: StepStatus,
        at: Optional[datetime] = None,
        data: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
    ) -> None:
        """Move the step to ``status``, stamping its timing fields.

        Raises:
            InvalidTransition: If the move is backward or the step is terminal.
        """
        status = StepStatus(status)
        if not can_transition(self.status, status):
            raise InvalidTransition(self.id, self.status.value, status.value)

        at = at or utcnow()
        if status is StepStatus.IN_PROGRESS and self.started_at is None:
            self.started_at = at
        if status in TERMINAL_STATUSES:
            self.finished_at = at
        self.status = status
        self.timestamp = at
        if data is not None:
            self.data = copy.deepcopy(data)
        if error is not None:
            self.error = error


class WorkflowMetadata(CamelModel):
    """Free-form workflow metadata with a few well-known keys."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="allow"
    )

    source_id: Optional[str] = None
    target_id: Optional[str] = None
    priority: Priority = Priority.NORMAL
    assigned_to: Optional[str] = None


class Workflow(CamelModel):
    """A cross-module business process with a fixed, ordered list of steps.

    ``status`` is derived from the steps whenever the model is built and after
    every step transition; it is never assigned by callers.
    """

    id: str = Field(default_factory=new_workflow_id)
    type: WorkflowType
    status: WorkflowStatus = WorkflowStatus.PENDING
    steps: List[Step] = Field(default_factory=list)
    metadata: WorkflowMetadata = Field(default_factory=WorkflowMetadata)
    remarks: Optional[str] = None
    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)

    @field_validator("created_at", "updated_at")
    @classmethod
    def _as_utc(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @model_validator(mode="after")
    def _derive_status(self) -> "Workflow":
        self.status = aggregate(self.steps)
        return self

    @property
    def modules(self) -> Set[Module]:
        return {step.module for step in self.steps}

    def get_step(self, step_id: str) -> Step:
        for step in self.steps:
            if step.id == step_id:
                return step
        raise StepNotFound(self.id, step_id)

    def recompute_status(self) -> WorkflowStatus:
        self.status = aggregate(self.steps)
        return self.status

    def transition_step(
        self,
        step_id: str,
        status: StepStatus,
        data: Optional[Dict[str, Any]] = None,
        error: Optional[str] = None,
        at: Optional[datetime] = None,
    ) -> Step:
        """Apply a step transition and re-derive the workflow status."""
        step = self.get_step(step_id)
        at = at or utcnow()
        try:
            step.transition(status, at=at, data=data, error=error)
        except InvalidTransition as exc:
            exc.workflow_id = self.id
            raise
        previous = self.status
        self.recompute_status()
        self.updated_at = at
        if previous is not self.status:
            logger.debug(
                f"Workflow {self.id} status {previous.value} -> {self.status.value}"
            )
        return step

    def to_json(self) -> str:
        """Serialize workflow to JSON."""
        return self.model_dump_json(by_alias=True)

    @classmethod
    def from_json(cls, data: str) -> "Workflow":
        """Deserialize workflow from JSON."""
        return cls.model_validate_json(data)


class StepCreate(CamelModel):
    """Step declaration in a creation payload."""

    id: str = Field(min_length=1)
    name: str
    module: Module
    data: Dict[str, Any] = Field(default_factory=dict)


class WorkflowCreate(CamelModel):
    """Creation payload; any supplied status is ignored."""

    type: WorkflowType
    steps: List[StepCreate] = Field(min_length=1)
    metadata: WorkflowMetadata = Field(default_factory=WorkflowMetadata)

    @field_validator("steps")
    @classmethod
    def _unique_step_ids(cls, steps: List[StepCreate]) -> List[StepCreate]:
        seen: Set[str] = set()
        for step in steps:
            if step.id in seen:
                raise ValueError(f"duplicate step id: {step.id}")
            seen.add(step.id)
        return steps

    def to_workflow(self, now: Optional[datetime] = None) -> Workflow:
        now = now or utcnow()
        return Workflow(
            type=self.type,
            steps=[
                Step(
                    id=step.id,
                    name=step.name,
                    module=step.module,
                    data=copy.deepcopy(step.data),
                    timestamp=now,
                )
                for step in self.steps
            ],
            metadata=self.metadata.model_copy(deep=True),
            created_at=now,
            updated_at=now,
        )


class WorkflowUpdate(CamelModel):
    """Bulk field update; status, type and steps are not writable here."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="forbid"
    )

    metadata: Optional[Dict[str, Any]] = None
    remarks: Optional[str] = None

    @field_validator("metadata")
    @classmethod
    def _check_metadata(cls, v: Optional[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
        if v is not None:
            try:
                WorkflowMetadata.model_validate(v)
            except PydanticValidationError as exc:
                raise ValueError(str(exc)) from exc
        return v

    def apply(self, workflow: Workflow, at: Optional[datetime] = None) -> Workflow:
        if self.metadata is not None:
            merged = workflow.metadata.model_dump(by_alias=True)
            for key, value in copy.deepcopy(self.metadata).items():
                field = WorkflowMetadata.model_fields.get(key)
                merged[field.alias if field and field.alias else key] = value
            workflow.metadata = parse_payload(WorkflowMetadata, merged)
        if self.remarks is not None:
            workflow.remarks = self.remarks
        workflow.updated_at = at or utcnow()
        return workflow


ModelT = TypeVar("ModelT", bound=BaseModel)


def parse_payload(model: Type[ModelT], payload: Any) -> ModelT:
    """Validate a request payload, raising :class:`ValidationError` on failure."""
    if isinstance(payload, model):
        return payload
    try:
        return model.model_validate(payload)
    except PydanticValidationError as exc:
        raise ValidationError(f"Invalid {model.__name__}: {exc}") from exc
