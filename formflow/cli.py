"""Command line interface for inspecting and walking formflow workflows."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional

import typer

from formflow.contracts import Actor, EngineStatus
from formflow.definitions import WorkflowDefinitionStore, get_definition_store
from formflow.engine import WorkflowEngine
from formflow.errors import (
    InvalidActorError,
    NotFoundError,
    RequiredStepsIncompleteError,
)
from formflow.service import WorkflowService

app = typer.Typer(help="CLI for formflow guided workflows")

# Command groups
workflow_app = typer.Typer(help="Commands for inspecting workflow definitions")
session_app = typer.Typer(help="Commands for walking through a workflow")

app.add_typer(workflow_app, name="workflow")
app.add_typer(session_app, name="session")


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", help="Logging level for formflow"),
) -> None:
    """Formflow CLI entry point."""
    logging.basicConfig(level=getattr(logging, log_level.upper(), logging.WARNING))


# ----------------------------------------------------------------------
# workflow commands
@workflow_app.command("list")
def workflow_list(
    category: Optional[str] = typer.Option(None, help="Only show this category"),
    all_workflows: bool = typer.Option(
        False, "--all", help="Include inactive workflows"
    ),
) -> None:
    """
    List available workflows.

    Example:
        formflow workflow list
        formflow workflow list --category small-claims --all
        # Output: small-claims-filing    File a Small Claims case    3 steps
    """
    store = get_definition_store()
    workflows = store.list_workflows(active_only=not all_workflows, category=category)
    if not workflows:
        typer.echo("No workflows found")
        return
    for wf in workflows:
        flag = "" if wf.active else "\t(inactive)"
        typer.echo(f"{wf.workflow_id}\t{wf.name}\t{wf.total_steps} steps{flag}")


@workflow_app.command("show")
def workflow_show(workflow_id: str) -> None:
    """
    Show the steps of a workflow with their required flags and mappings.

    Example:
        formflow workflow show small-claims-filing
        # Output: small-claims-filing: File a Small Claims case
        #         1. Plaintiff's Claim [SC-100] required
        #            maps plaintiff_name -> plaintiff_name
    """
    store = get_definition_store()
    try:
        wf = store.load(workflow_id)
    except NotFoundError:
        typer.echo("Workflow not found")
        raise typer.Exit(code=1)

    forms = store.forms
    typer.echo(f"{wf.workflow_id}: {wf.name}")
    if wf.description:
        typer.echo(wf.description)
    for step in wf.steps:
        requirement = "required" if step.required else "optional"
        typer.echo(
            f"{step.position}. {step.display_name(forms)} [{step.form_id}] {requirement}"
        )
        for mapping in step.field_mappings:
            typer.echo(f"   maps {mapping.from_key} -> {mapping.to_key}")
        if step.is_conditional:
            rules = ", ".join(
                f"{c.field} {c.operator} {c.value}" if c.value is not None
                else f"{c.field} {c.operator}"
                for c in step.conditions
            )
            typer.echo(f"   shown when {rules}")


@workflow_app.command("validate")
def workflow_validate(path: Optional[Path] = typer.Argument(None)) -> None:
    """
    Load every definition file and report the ones that fail.

    Exits with code 1 when any file is invalid or a step references a form
    missing from a non-empty form catalog.
    """
    store = WorkflowDefinitionStore(path) if path else get_definition_store()
    problems = [f"{file_path}: {message}" for file_path, message in store.errors]

    forms = store.forms
    workflows = store.list_workflows(active_only=False)
    if forms:
        for wf in workflows:
            for step in wf.steps:
                if step.form_id not in forms:
                    problems.append(
                        f"{wf.workflow_id} step {step.position}: unknown form {step.form_id}"
                    )

    for problem in problems:
        typer.secho(problem, fg=typer.colors.RED)
    if problems:
        raise typer.Exit(code=1)
    typer.echo(f"{len(workflows)} workflows and {len(forms)} forms are valid")


# ----------------------------------------------------------------------
# session commands
UserOption = typer.Option(None, "--user", help="Authenticated user id")
TokenOption = typer.Option(None, "--session-token", help="Anonymous session token")


def _actor(user: Optional[str], session_token: Optional[str]) -> Actor:
    try:
        return Actor.of(user_id=user, session_token=session_token)
    except InvalidActorError:
        typer.secho(
            "Pass exactly one of --user or --session-token", fg=typer.colors.RED
        )
        raise typer.Exit(code=2)


def _parse_fields(pairs: Optional[List[str]]) -> Dict[str, str]:
    values: Dict[str, str] = {}
    for pair in pairs or []:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            typer.secho(f"Invalid field {pair!r}, expected key=value", fg=typer.colors.RED)
            raise typer.Exit(code=2)
        values[key] = value
    return values


def _describe(engine: WorkflowEngine, forms: Dict[str, Any]) -> str:
    progress = engine.progress()
    if engine.status == EngineStatus.COMPLETE:
        return f"Workflow {engine.definition.workflow_id} complete ({progress.percent}%)"
    step = engine.current_step()
    label = "Not started" if engine.status == EngineStatus.NOT_STARTED else "Step"
    return (
        f"{label} {progress.current}/{progress.total}: "
        f"{step.display_name(forms)} [{step.form_id}] ({progress.percent}%)"
    )


def _run_session(
    workflow_id: str,
    actor: Actor,
    operation: Callable[[WorkflowEngine], Awaitable[Any]],
) -> None:
    service = WorkflowService.from_config()

    async def run() -> WorkflowEngine:
        engine = await service.open(workflow_id, actor)
        try:
            await operation(engine)
        finally:
            await service.save(engine)
        return engine

    try:
        engine = asyncio.run(run())
    except NotFoundError:
        typer.echo("Workflow not found")
        raise typer.Exit(code=1)
    except RequiredStepsIncompleteError as exc:
        typer.secho(exc.message, fg=typer.colors.YELLOW)
        typer.echo(f"Missing steps: {', '.join(map(str, exc.missing_positions))}")
        raise typer.Exit(code=1)
    typer.echo(_describe(engine, service.definitions.forms))


@session_app.command("start")
def session_start(
    workflow_id: str,
    user: Optional[str] = UserOption,
    session_token: Optional[str] = TokenOption,
) -> None:
    """Enter a workflow at its first step (or resume where you left off)."""
    _run_session(workflow_id, _actor(user, session_token), lambda e: e.start())


@session_app.command("advance")
def session_advance(
    workflow_id: str,
    field: Optional[List[str]] = typer.Option(
        None, "--field", "-f", help="Field value as key=value; repeatable"
    ),
    user: Optional[str] = UserOption,
    session_token: Optional[str] = TokenOption,
) -> None:
    """
    Save field values on the current step and move to the next one.

    Example:
        formflow session advance small-claims-filing --session-token abc \\
            -f plaintiff_name="Jane Doe"
    """
    values = _parse_fields(field)
    _run_session(workflow_id, _actor(user, session_token), lambda e: e.advance(values))


@session_app.command("back")
def session_back(
    workflow_id: str,
    user: Optional[str] = UserOption,
    session_token: Optional[str] = TokenOption,
) -> None:
    """Return to the previous step."""
    _run_session(workflow_id, _actor(user, session_token), lambda e: e.go_back())


@session_app.command("restart")
def session_restart(
    workflow_id: str,
    user: Optional[str] = UserOption,
    session_token: Optional[str] = TokenOption,
) -> None:
    """Forget the current position; entered data is kept."""

    async def restart(engine: WorkflowEngine) -> None:
        engine.restart()

    _run_session(workflow_id, _actor(user, session_token), restart)


@session_app.command("progress")
def session_progress(
    workflow_id: str,
    user: Optional[str] = UserOption,
    session_token: Optional[str] = TokenOption,
) -> None:
    """Show the current position without changing it."""

    async def noop(engine: WorkflowEngine) -> None:
        return None

    _run_session(workflow_id, _actor(user, session_token), noop)


@session_app.command("status")
def session_status(
    workflow_id: str,
    user: Optional[str] = UserOption,
    session_token: Optional[str] = TokenOption,
) -> None:
    """List the submissions entered so far and whether they are complete."""
    actor = _actor(user, session_token)
    service = WorkflowService.from_config()

    async def collect():
        engine = await service.open(workflow_id, actor)
        completed = {s.step_position for s in await engine.completed_submissions()}
        return engine, completed

    try:
        engine, completed = asyncio.run(collect())
    except NotFoundError:
        typer.echo("Workflow not found")
        raise typer.Exit(code=1)

    forms = service.definitions.forms
    typer.echo(_describe(engine, forms))
    for step in engine.definition.steps:
        mark = "x" if step.position in completed else " "
        requirement = "required" if step.required else "optional"
        typer.echo(f"[{mark}] {step.position}. {step.display_name(forms)} ({requirement})")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    app()
