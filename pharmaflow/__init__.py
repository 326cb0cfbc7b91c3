"""pharmaflow: cross-module workflow orchestration for pharmaceutical ERP processes."""

from .analytics import AnalyticsAggregator, WorkflowAnalytics
from .constants import Module, Priority, StepStatus, WorkflowStatus, WorkflowType
from .contracts import Step, Workflow, WorkflowCreate, WorkflowMetadata, WorkflowUpdate
from .dispatch import WorkflowDispatcher
from .errors import (
    InvalidTransition,
    NotFound,
    OrchestrationError,
    StepNotFound,
    ValidationError,
    WorkflowNotFound,
)
from .execute import StepExecutor
from .persistence import get_repository
from .service import WorkflowService
from .status import aggregate

__version__ = "0.1.0"
__all__ = [
    "AnalyticsAggregator",
    "WorkflowAnalytics",
    "Module",
    "Priority",
    "StepStatus",
    "WorkflowStatus",
    "WorkflowType",
    "Step",
    "Workflow",
    "WorkflowCreate",
    "WorkflowMetadata",
    "WorkflowUpdate",
    "WorkflowDispatcher",
    "InvalidTransition",
    "NotFound",
    "OrchestrationError",
    "StepNotFound",
    "ValidationError",
    "WorkflowNotFound",
    "StepExecutor",
    "get_repository",
    "WorkflowService",
    "aggregate",
]
