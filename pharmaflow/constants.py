"""Enumerations and defaults shared across pharmaflow."""

from __future__ import annotations

from enum import Enum


class StepStatus(str, Enum):
    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    FAILED = "failed"


# Workflow status shares the step vocabulary; it is always derived.
WorkflowStatus = StepStatus


class Module(str, Enum):
    """Domains that own workflow steps."""

    PROCUREMENT = "procurement"
    WAREHOUSE = "warehouse"
    QUALITY_CONTROL = "quality_control"
    QUALITY_ASSURANCE = "quality_assurance"
    MANUFACTURING = "manufacturing"
    DISTRIBUTION = "distribution"


class WorkflowType(str, Enum):
    """Business process templates."""

    PROCUREMENT_TO_SUPPLIER = "procurement_to_supplier"
    SUPPLIER_TO_WAREHOUSE = "supplier_to_warehouse"
    WAREHOUSE_TO_QUALITY = "warehouse_to_quality"
    MANUFACTURING_TO_FINISHED = "manufacturing_to_finished"
    SALES_TO_DISTRIBUTION = "sales_to_distribution"


class Priority(str, Enum):
    LOW = "low"
    NORMAL = "normal"
    HIGH = "high"
    URGENT = "urgent"


TERMINAL_STATUSES = frozenset({StepStatus.COMPLETED, StepStatus.FAILED})

# Position along pending -> in_progress -> {completed | failed}.
STATUS_RANK = {
    StepStatus.PENDING: 0,
    StepStatus.IN_PROGRESS: 1,
    StepStatus.COMPLETED: 2,
    StepStatus.FAILED: 2,
}

DEFAULT_COMPLETION_DELAY = 2.0
ANALYTICS_PERIODS = {"7d": 7, "30d": 30, "90d": 90}
