"""Fixed step lists for the standard cross-module processes."""

from __future__ import annotations

from typing import Dict, List, NamedTuple

from .constants import Module, Priority, WorkflowType


class StepTemplate(NamedTuple):
    id: str
    name: str
    module: Module


TEMPLATES: Dict[WorkflowType, List[StepTemplate]] = {
    WorkflowType.PROCUREMENT_TO_SUPPLIER: [
        StepTemplate("po_approval", "Purchase Order Approval", Module.PROCUREMENT),
        StepTemplate("supplier_notification", "Supplier Notification", Module.PROCUREMENT),
        StepTemplate("supplier_acknowledgment", "Supplier Acknowledgment", Module.PROCUREMENT),
    ],
    WorkflowType.SUPPLIER_TO_WAREHOUSE: [
        StepTemplate("delivery_receipt", "Delivery Receipt", Module.WAREHOUSE),
        StepTemplate("quality_sampling", "Quality Sampling", Module.WAREHOUSE),
        StepTemplate("putaway_assignment", "Putaway Assignment", Module.WAREHOUSE),
    ],
    WorkflowType.WAREHOUSE_TO_QUALITY: [
        StepTemplate("sample_preparation", "Sample Preparation", Module.WAREHOUSE),
        StepTemplate("qc_testing", "QC Testing", Module.QUALITY_CONTROL),
        StepTemplate("qa_review", "QA Review", Module.QUALITY_ASSURANCE),
        StepTemplate("release_decision", "Release Decision", Module.QUALITY_ASSURANCE),
    ],
    WorkflowType.MANUFACTURING_TO_FINISHED: [
        StepTemplate("material_consumption", "Material Consumption", Module.MANUFACTURING),
        StepTemplate("production_execution", "Production Execution", Module.MANUFACTURING),
        StepTemplate("finished_goods_qc", "Finished Goods QC", Module.QUALITY_CONTROL),
        StepTemplate("finished_goods_qa", "Finished Goods QA", Module.QUALITY_ASSURANCE),
        StepTemplate("inventory_creation", "Inventory Creation", Module.WAREHOUSE),
    ],
    WorkflowType.SALES_TO_DISTRIBUTION: [
        StepTemplate("order_validation", "Order Validation", Module.DISTRIBUTION),
        StepTemplate("inventory_allocation", "Inventory Allocation", Module.WAREHOUSE),
        StepTemplate("shipment_creation", "Shipment Creation", Module.DISTRIBUTION),
        StepTemplate("delivery_execution", "Delivery Execution", Module.DISTRIBUTION),
        StepTemplate("proof_of_delivery", "Proof of Delivery", Module.DISTRIBUTION),
    ],
}

# Quality release work is prioritised by default.
DEFAULT_PRIORITIES: Dict[WorkflowType, Priority] = {
    WorkflowType.WAREHOUSE_TO_QUALITY: Priority.HIGH,
}


def template_for(workflow_type: WorkflowType) -> List[StepTemplate]:
    return list(TEMPLATES[WorkflowType(workflow_type)])
