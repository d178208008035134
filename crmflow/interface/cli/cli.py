import click
import json
import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel

from crmflow.application.config_loader import load_config
from crmflow.interface.cli.output_models import (
    HistoryOutput,
    IssueOutput,
    ListOutput,
    RunOutput,
    ValidateOutput,
    WorkflowSummary,
)

logger = logging.getLogger(__name__)


def _json_emit(model: BaseModel) -> None:
    # Single-line JSON, omit None fields (e.g., RunOutput.run_id when not saved).
    click.echo(model.model_dump_json(exclude_none=True), nl=True)


def _get_json_mode(ctx: click.Context) -> bool:
    obj = ctx.obj or {}
    return bool(obj.get("json", False))


def _get_config(ctx: click.Context) -> dict[str, Any]:
    cfg = load_config(project_root=Path.cwd(), user_home=Path.home())
    store_root = (ctx.obj or {}).get("store_root")
    if store_root:
        cfg["store_root"] = Path(store_root)
    return cfg


def _open_store(cfg: dict[str, Any]):
    from crmflow.domain.persistence.workflow_file_store import FileWorkflowStore

    return FileWorkflowStore(root=Path(cfg["store_root"]))


def _set_nested(target: dict[str, Any], dotted_key: str, value: str) -> None:
    keys = dotted_key.split(".")
    current = target
    for key in keys[:-1]:
        nxt = current.get(key)
        if not isinstance(nxt, dict):
            nxt = {}
            current[key] = nxt
        current = nxt
    current[keys[-1]] = value


def _build_context(context_file: str | None, assignments: tuple[str, ...]) -> dict[str, Any]:
    """Trigger payload from a JSON/YAML file plus ``key=value`` overrides."""
    context: dict[str, Any] = {}
    if context_file:
        data = yaml.safe_load(Path(context_file).read_text(encoding="utf-8"))
        if data is not None and not isinstance(data, dict):
            raise ValueError(f"Context file root must be a mapping: {context_file}")
        context.update(data or {})
    for assignment in assignments:
        if "=" not in assignment:
            raise ValueError(f"Expected key=value, got '{assignment}'")
        key, value = assignment.split("=", 1)
        if not key.strip():
            raise ValueError(f"Empty key in '{assignment}'")
        _set_nested(context, key.strip(), value)
    return context


def _build_runner(cfg: dict[str, Any], store, emit_events: bool):
    """Runner wired to dry-run collaborators from config."""
    from crmflow.application.step_executor import StepExecutor
    from crmflow.application.workflow_runner import WorkflowRunner
    from crmflow.domain.collaborators.agent import AgentRegistry
    from crmflow.domain.collaborators.dry_run import DryRunAgent, DryRunIntegrationAdapter
    from crmflow.domain.collaborators.integration import IntegrationRegistry
    from crmflow.domain.collaborators.record_gateway import InMemoryRecordGateway
    from crmflow.domain.events.emitter import WorkflowEventEmitter
    from crmflow.domain.events.stderr_observer import StderrEventObserver

    integrations = IntegrationRegistry()
    for integration_id in cfg["integrations"]:
        integrations.register(integration_id, DryRunIntegrationAdapter(integration_id))

    agents = AgentRegistry()
    for agent_id, reply in cfg["agents"].items():
        agents.register(agent_id, DryRunAgent(agent_id, reply="" if reply is None else str(reply)))

    emitter = WorkflowEventEmitter()
    if emit_events:
        emitter.subscribe(StderrEventObserver())

    executor = StepExecutor(
        integrations=integrations,
        agents=agents,
        records=InMemoryRecordGateway(),
    )
    return WorkflowRunner(executor=executor, store=store, event_emitter=emitter)


def _echo_report(report) -> None:
    click.echo(
        f"workflow={report.workflow_id} "
        f"status={report.status.value} "
        f"success={'true' if report.success else 'false'} "
        f"steps_executed={report.steps_executed}"
    )
    for index, result in enumerate(report.results, start=1):
        parts = [f"[{index}] {result.step_id} ({result.type})"]
        if result.passed is not None:
            parts.append(f"passed={'true' if result.passed else 'false'}")
        if result.skipped:
            parts.append(f"skipped duration={result.duration}")
        if result.error:
            parts.append(f"error={result.error}")
        elif result.output is not None:
            parts.append(f"output={json.dumps(result.output, default=str, ensure_ascii=False)}")
        click.echo(" ".join(parts))
    if report.error:
        click.echo(f"error={report.error}")


@click.group(help="CRM workflow automation engine CLI.")
@click.option("--json", "json_output", is_flag=True, help="Emit machine-readable JSON on stdout.")
@click.option(
    "--store-root",
    "store_root",
    required=False,
    type=click.Path(file_okay=False),
    help="Workflow store directory (overrides config store_root).",
)
@click.option(
    "--log-level",
    "log_level",
    required=False,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
    help="Logging level (overrides config log_level).",
)
@click.pass_context
def cli(ctx: click.Context, json_output: bool, store_root: str | None, log_level: str | None) -> None:
    ctx.ensure_object(dict)
    ctx.obj["json"] = bool(json_output)
    ctx.obj["store_root"] = store_root

    level = log_level
    if level is None:
        try:
            level = load_config(project_root=Path.cwd(), user_home=Path.home())["log_level"]
        except Exception:
            # Config errors are reported by the command that loads the config.
            level = "WARNING"
    logging.basicConfig(level=getattr(logging, level.upper()), format="%(levelname)s %(name)s: %(message)s")


@cli.command("run")
@click.argument("workflow_id", type=str)
@click.option("--context", "context_file", required=False, type=click.Path(exists=True, dir_okay=False))
@click.option("--set", "assignments", multiple=True, help="Trigger field as key=value (repeatable).")
@click.option("--no-save", "no_save", is_flag=True, help="Do not record the run in the store.")
@click.option("--events", "events", is_flag=True, help="Print run events to stderr.")
@click.pass_context
def run_cmd(
    ctx: click.Context,
    workflow_id: str,
    context_file: str | None,
    assignments: tuple[str, ...],
    no_save: bool,
    events: bool,
) -> None:
    try:
        cfg = _get_config(ctx)
        store = _open_store(cfg)
        workflow = store.load_workflow(workflow_id)
        context = _build_context(context_file, assignments)

        runner = _build_runner(cfg, store=None, emit_events=events or bool(cfg.get("emit_events")))
        report = runner.execute_workflow(workflow, context)

        run_id = None
        # Inactive workflows never ran, so there is nothing to record.
        if not no_save and workflow.is_active:
            run_id = store.save_run(workflow_id, report).stem

        exit_code = 0 if report.success else 1

        if _get_json_mode(ctx):
            _json_emit(
                RunOutput(
                    exit_code=exit_code,
                    workflow_id=workflow_id,
                    run_id=run_id,
                    report=report.to_payload(),
                    error=report.error,
                )
            )
            raise click.exceptions.Exit(exit_code)

        _echo_report(report)
        if run_id:
            click.echo(f"run_id={run_id}")
        if exit_code:
            raise click.exceptions.Exit(exit_code)

    except click.exceptions.Exit:
        raise
    except Exception as e:
        if _get_json_mode(ctx):
            _json_emit(RunOutput(exit_code=1, workflow_id=workflow_id, error=str(e)))
            raise click.exceptions.Exit(1)
        raise click.ClickException(str(e)) from e


@cli.command("validate")
@click.argument("workflow_file", type=click.Path(exists=True, dir_okay=False))
@click.pass_context
def validate_cmd(ctx: click.Context, workflow_file: str) -> None:
    try:
        from crmflow.application.workflow_validation import validate_workflow
        from crmflow.domain.persistence.workflow_file_store import load_definition_file

        workflow = load_definition_file(Path(workflow_file))
        issues = validate_workflow(workflow)
        exit_code = 1 if issues else 0

        if _get_json_mode(ctx):
            _json_emit(
                ValidateOutput(
                    exit_code=exit_code,
                    workflow_id=workflow.id,
                    valid=not issues,
                    issues=[IssueOutput(step_id=i.step_id, message=i.message) for i in issues],
                )
            )
            raise click.exceptions.Exit(exit_code)

        if not issues:
            click.echo(f"{workflow.id}: OK ({len(workflow.steps)} steps)")
            return
        for issue in issues:
            where = f"step {issue.step_id}" if issue.step_id else "workflow"
            click.echo(f"{workflow.id}: {where}: {issue.message}")
        raise click.exceptions.Exit(1)

    except click.exceptions.Exit:
        raise
    except Exception as e:
        if _get_json_mode(ctx):
            _json_emit(ValidateOutput(exit_code=1, error=str(e)))
            raise click.exceptions.Exit(1)
        raise click.ClickException(str(e)) from e


@cli.command("list")
@click.pass_context
def list_cmd(ctx: click.Context) -> None:
    try:
        store = _open_store(_get_config(ctx))
        summaries: list[WorkflowSummary] = []
        for workflow_id in store.list_workflows():
            try:
                wf = store.load_workflow(workflow_id)
            except Exception as e:
                logger.warning(f"Skipping unreadable workflow '{workflow_id}': {e}")
                continue
            summaries.append(
                WorkflowSummary(
                    workflow_id=wf.id,
                    name=wf.name,
                    trigger_type=wf.trigger_type.value,
                    is_active=wf.is_active,
                    steps=len(wf.steps),
                    run_count=wf.run_count,
                    last_run_at=wf.last_run_at.isoformat() if wf.last_run_at else None,
                )
            )

        if _get_json_mode(ctx):
            _json_emit(ListOutput(exit_code=0, workflows=summaries))
            raise click.exceptions.Exit(0)

        if not summaries:
            click.echo("No workflows found.")
            return
        for s in summaries:
            state = "active" if s.is_active else "inactive"
            click.echo(f"{s.workflow_id}\t{s.trigger_type}\t{state}\tsteps={s.steps}\truns={s.run_count}")

    except click.exceptions.Exit:
        raise
    except Exception as e:
        if _get_json_mode(ctx):
            _json_emit(ListOutput(exit_code=1, error=str(e)))
            raise click.exceptions.Exit(1)
        raise click.ClickException(str(e)) from e


@cli.command("history")
@click.argument("workflow_id", type=str)
@click.pass_context
def history_cmd(ctx: click.Context, workflow_id: str) -> None:
    try:
        store = _open_store(_get_config(ctx))
        runs = store.list_runs(workflow_id)

        if _get_json_mode(ctx):
            _json_emit(HistoryOutput(exit_code=0, workflow_id=workflow_id, runs=runs))
            raise click.exceptions.Exit(0)

        if not runs:
            click.echo(f"No runs recorded for {workflow_id}.")
            return
        for run_id in runs:
            record = store.load_run(workflow_id, run_id)
            click.echo(
                f"{run_id}\tstatus={record.report.status.value}\t"
                f"steps_executed={record.report.steps_executed}"
            )

    except click.exceptions.Exit:
        raise
    except Exception as e:
        if _get_json_mode(ctx):
            _json_emit(HistoryOutput(exit_code=1, workflow_id=workflow_id, error=str(e)))
            raise click.exceptions.Exit(1)
        raise click.ClickException(str(e)) from e
