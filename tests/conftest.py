import pytest

import pharmaflow.persistence as persistence
from pharmaflow import WorkflowService
from pharmaflow.config import ExecutionConfig, PharmaflowConfig
from pharmaflow.persistence import InMemoryWorkflowRepository


def _make_payload(*steps, type="supplier_to_warehouse", source_id="grn_456"):
    """Creation payload with ``(id, module)`` steps."""
    return {
        "type": type,
        "steps": [
            {"id": step_id, "name": step_id.replace("_", " ").title(), "module": module}
            for step_id, module in steps
        ],
        "metadata": {"sourceId": source_id, "priority": "normal"},
    }


@pytest.fixture
def make_payload():
    return _make_payload


@pytest.fixture
def repository():
    return InMemoryWorkflowRepository()


@pytest.fixture
def fast_config():
    return PharmaflowConfig(execution=ExecutionConfig(completion_delay=0.01))


@pytest.fixture
def service(repository, fast_config):
    return WorkflowService(repository=repository, config=fast_config)


@pytest.fixture(autouse=True)
def _reset_repository_singleton():
    persistence._repository_instance = None
    yield
    persistence._repository_instance = None
