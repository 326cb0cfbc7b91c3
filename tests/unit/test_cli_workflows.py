import asyncio
import json

import pytest
import yaml
from typer.testing import CliRunner

import pharmaflow.persistence as persistence
from pharmaflow.cli import app
from pharmaflow.contracts import WorkflowCreate
from pharmaflow.persistence import InMemoryWorkflowRepository


def _setup_repo() -> InMemoryWorkflowRepository:
    repo = InMemoryWorkflowRepository()
    persistence._repository_instance = repo
    return repo


@pytest.fixture(autouse=True)
def _fast_config(tmp_path, monkeypatch):
    config_path = tmp_path / "config.yaml"
    config_path.write_text(yaml.safe_dump({"execution": {"completion_delay": 0}}))
    monkeypatch.setenv("PHARMAFLOW_CONFIG", str(config_path))
    monkeypatch.delenv("PHARMAFLOW_DATABASE_URL", raising=False)
    monkeypatch.delenv("DATABASE_URL", raising=False)


def _create(repo, make_payload, *steps):
    request = WorkflowCreate.model_validate(make_payload(*steps))
    return asyncio.run(repo.create_workflow(request.to_workflow()))


def test_workflows_command_lists_workflows(make_payload):
    repo = _setup_repo()
    wf1 = _create(repo, make_payload, ("a", "warehouse"))
    wf2 = _create(repo, make_payload, ("b", "quality_control"))

    runner = CliRunner()
    result = runner.invoke(app, ["workflow", "list"])
    assert result.exit_code == 0, f"Command failed. Output: {result.stdout}"
    lines = result.stdout.strip().splitlines()
    assert lines[0].startswith(wf1.id)
    assert lines[1].startswith(wf2.id)
    assert "supplier_to_warehouse\tpending" in lines[0]

    result = runner.invoke(app, ["workflow", "list", "--module", "quality_control"])
    assert result.exit_code == 0
    assert wf2.id in result.stdout
    assert wf1.id not in result.stdout


def test_list_reports_empty_store_and_bad_filter():
    _setup_repo()
    runner = CliRunner()
    result = runner.invoke(app, ["workflow", "list"])
    assert result.exit_code == 0
    assert "No workflows found" in result.stdout

    result = runner.invoke(app, ["workflow", "list", "--status", "archived"])
    assert result.exit_code == 1
    assert "Invalid WorkflowFilter" in result.stdout


def test_workflow_command_shows_details_and_missing(make_payload):
    repo = _setup_repo()
    wf = _create(repo, make_payload, ("delivery_receipt", "warehouse"))

    runner = CliRunner()
    result = runner.invoke(app, ["workflow", "show", wf.id])
    assert result.exit_code == 0, f"Command failed. Output: {result.stdout}"
    assert f"Workflow {wf.id} (supplier_to_warehouse): pending" in result.stdout
    assert "- delivery_receipt [warehouse]: pending" in result.stdout
    assert "grn_456" in result.stdout

    result_missing = runner.invoke(app, ["workflow", "show", "missing-id"])
    assert result_missing.exit_code == 1
    assert "Workflow not found" in result_missing.stdout


def test_create_from_yaml_payload(tmp_path, make_payload):
    repo = _setup_repo()
    payload_path = tmp_path / "workflow.yaml"
    payload_path.write_text(yaml.safe_dump(make_payload(("a", "warehouse"), ("b", "warehouse"))))

    runner = CliRunner()
    result = runner.invoke(app, ["workflow", "create", str(payload_path)])
    assert result.exit_code == 0, f"Command failed. Output: {result.stdout}"
    assert "Created workflow wf_" in result.stdout
    assert len(asyncio.run(repo.list_workflows())) == 1

    result = runner.invoke(app, ["workflow", "create", str(tmp_path / "missing.yaml")])
    assert result.exit_code == 1
    assert "Specified path does not exist" in result.stdout


def test_update_step_and_rejected_transition(make_payload):
    repo = _setup_repo()
    wf = _create(repo, make_payload, ("a", "warehouse"))

    runner = CliRunner()
    result = runner.invoke(
        app,
        ["workflow", "update-step", wf.id, "a", "completed", "--data", '{"grnId": "grn_1"}'],
    )
    assert result.exit_code == 0, f"Command failed. Output: {result.stdout}"
    assert f"Workflow {wf.id} (supplier_to_warehouse): completed" in result.stdout

    stored = asyncio.run(repo.get_workflow(wf.id))
    assert stored.get_step("a").data == {"grnId": "grn_1"}

    result = runner.invoke(app, ["workflow", "update-step", wf.id, "a", "pending"])
    assert result.exit_code == 1
    assert "Invalid transition" in result.stdout

    result = runner.invoke(app, ["workflow", "update-step", wf.id, "a", "failed", "--data", "{"])
    assert result.exit_code == 1
    assert "Invalid --data JSON" in result.stdout


def test_execute_waits_for_completion(make_payload):
    repo = _setup_repo()
    wf = _create(repo, make_payload, ("a", "warehouse"), ("b", "warehouse"))

    runner = CliRunner()
    result = runner.invoke(app, ["workflow", "execute", wf.id, "a"])
    assert result.exit_code == 0, f"Command failed. Output: {result.stdout}"
    assert "- a [warehouse]: completed" in result.stdout
    assert f"Workflow {wf.id} (supplier_to_warehouse): pending" in result.stdout


def test_initiate_and_delete():
    repo = _setup_repo()
    runner = CliRunner()
    result = runner.invoke(
        app,
        ["workflow", "initiate", "warehouse_to_quality", "smp_1", "--no-start"],
    )
    assert result.exit_code == 0, f"Command failed. Output: {result.stdout}"
    assert "'priority': 'high'" in result.stdout
    [wf] = asyncio.run(repo.list_workflows())
    assert [s.id for s in wf.steps][0] == "sample_preparation"

    result = runner.invoke(app, ["workflow", "delete", wf.id])
    assert result.exit_code == 0
    assert f"Deleted workflow {wf.id}" in result.stdout
    assert asyncio.run(repo.get_workflow(wf.id)) is None

    result = runner.invoke(app, ["workflow", "delete", wf.id])
    assert result.exit_code == 1


def test_analytics_prints_json(make_payload):
    repo = _setup_repo()
    wf = _create(repo, make_payload, ("a", "warehouse"))
    runner = CliRunner()
    runner.invoke(app, ["workflow", "update-step", wf.id, "a", "completed"])

    result = runner.invoke(app, ["analytics", "--period", "7d"])
    assert result.exit_code == 0, f"Command failed. Output: {result.stdout}"
    report = json.loads(result.stdout)
    assert report["totalWorkflows"] == 1
    assert report["completedWorkflows"] == 1
    assert report["completionRate"] == 100.0
    assert report["workflowTypes"] == {"supplier_to_warehouse": 1}

    result = runner.invoke(app, ["analytics", "--period", "1y"])
    assert result.exit_code == 1
    assert "Unsupported period" in result.stdout
