"""Command line interface for pharmaflow workflows."""

from __future__ import annotations

import asyncio
import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Awaitable, Optional, TypeVar

import typer
import yaml

from pharmaflow import WorkflowService, get_repository
from pharmaflow.config import load_config
from pharmaflow.contracts import Workflow
from pharmaflow.errors import OrchestrationError

app = typer.Typer(help="CLI for pharmaflow workflows")

workflow_app = typer.Typer(help="Commands for managing workflows")
app.add_typer(workflow_app, name="workflow")

T = TypeVar("T")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Enable debug logging"),
) -> None:
    """pharmaflow CLI entry point."""
    config = load_config()
    logging.basicConfig(level=logging.DEBUG if verbose else config.log_level.upper())


def _service() -> WorkflowService:
    return WorkflowService(repository=get_repository(), config=load_config())


def _run(coro: Awaitable[T]) -> T:
    try:
        return asyncio.run(coro)
    except OrchestrationError as exc:
        typer.secho(str(exc), fg=typer.colors.RED)
        raise typer.Exit(code=1)


def _echo_workflow(wf: Workflow) -> None:
    typer.echo(f"Workflow {wf.id} ({wf.type.value}): {wf.status.value}")
    meta = wf.metadata.model_dump(by_alias=True, exclude_none=True, mode="json")
    typer.echo(f"Metadata: {meta}")
    if wf.remarks:
        typer.echo(f"Remarks: {wf.remarks}")
    for step in wf.steps:
        typer.echo(
            f"- {step.id} [{step.module.value}]: {step.status.value} "
            f"({step.timestamp.isoformat()})"
            + (f" error: {step.error}" if step.error else "")
        )


@workflow_app.command("list")
def workflow_list(
    type: Optional[str] = typer.Option(None, help="Workflow type"),
    status: Optional[str] = typer.Option(None, help="Workflow status"),
    module: Optional[str] = typer.Option(None, help="Module owning at least one step"),
    date_from: Optional[datetime] = typer.Option(None, help="Created at or after"),
    date_to: Optional[datetime] = typer.Option(None, help="Created at or before"),
) -> None:
    """
    List workflows in creation order.

    Example:
        pharmaflow workflow list --module warehouse --status in_progress
        # Output: wf_1a2b3c...    supplier_to_warehouse    in_progress
    """
    workflows = _run(
        _service().list_workflows(
            type=type, status=status, module=module, date_from=date_from, date_to=date_to
        )
    )
    if not workflows:
        typer.echo("No workflows found")
        return
    for wf in workflows:
        typer.echo(f"{wf.id}\t{wf.type.value}\t{wf.status.value}")


@workflow_app.command("show")
def workflow_show(workflow_id: str) -> None:
    """Show a workflow with its metadata and step states."""
    wf = _run(_service().get_workflow(workflow_id))
    _echo_workflow(wf)


@workflow_app.command("create")
def workflow_create(payload_path: Path) -> None:
    """
    Create a workflow from a YAML or JSON payload file.

    The payload holds ``type``, ``steps`` (id, name, module, data) and
    ``metadata``.
    """
    if not payload_path.exists():
        typer.secho("Specified path does not exist", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    with open(payload_path) as f:
        payload = yaml.safe_load(f) or {}
    wf = _run(_service().create_workflow(payload))
    typer.echo(f"Created workflow {wf.id}: {wf.status.value}")


@workflow_app.command("initiate")
def workflow_initiate(
    workflow_type: str,
    source_id: str,
    target_id: Optional[str] = typer.Option(None, help="Related document id"),
    priority: Optional[str] = typer.Option(None, help="low, normal, high or urgent"),
    start: bool = typer.Option(True, help="Execute the first step right away"),
) -> None:
    """
    Create a workflow from a standard process template.

    Example:
        pharmaflow workflow initiate supplier_to_warehouse grn_456 --target-id po_123
    """

    async def _initiate() -> Workflow:
        service = _service()
        wf = await service.initiate(
            workflow_type, source_id, target_id=target_id, priority=priority, start=start
        )
        await service.join()
        return await service.get_workflow(wf.id)

    wf = _run(_initiate())
    _echo_workflow(wf)


@workflow_app.command("update-step")
def workflow_update_step(
    workflow_id: str,
    step_id: str,
    status: str,
    data: Optional[str] = typer.Option(None, help="JSON object with the step payload"),
    error: Optional[str] = typer.Option(None, help="Failure message"),
) -> None:
    """Record a step outcome reported by its owning module."""
    step_data = None
    if data:
        try:
            step_data = json.loads(data)
        except json.JSONDecodeError as exc:
            typer.secho(f"Invalid --data JSON: {exc}", fg=typer.colors.RED)
            raise typer.Exit(code=1)
    wf = _run(
        _service().update_step(workflow_id, step_id, status, data=step_data, error=error)
    )
    _echo_workflow(wf)


@workflow_app.command("execute")
def workflow_execute(
    workflow_id: str,
    step_id: str,
    wait: bool = typer.Option(True, help="Wait for the step to complete"),
) -> None:
    """Start a pending step; with --wait, block until it completes."""

    async def _execute() -> Workflow:
        service = _service()
        wf = await service.execute_step(workflow_id, step_id)
        if wait:
            await service.join()
            wf = await service.get_workflow(workflow_id)
        return wf

    wf = _run(_execute())
    _echo_workflow(wf)


@workflow_app.command("delete")
def workflow_delete(workflow_id: str) -> None:
    """Delete a workflow."""
    _run(_service().delete_workflow(workflow_id))
    typer.echo(f"Deleted workflow {workflow_id}")


@app.command("analytics")
def analytics(
    period: Optional[str] = typer.Option(None, help="7d, 30d or 90d"),
    date_from: Optional[datetime] = typer.Option(None, help="Range start"),
    date_to: Optional[datetime] = typer.Option(None, help="Range end"),
) -> None:
    """Print throughput, completion-time and bottleneck analytics as JSON."""
    report = _run(
        _service().analytics(period=period, date_from=date_from, date_to=date_to)
    )
    typer.echo(report.model_dump_json(by_alias=True, indent=2))


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
