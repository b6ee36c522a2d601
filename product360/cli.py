"""Command line interface for the product360 engine."""

from __future__ import annotations

import asyncio
import logging
from datetime import date
from pathlib import Path
from typing import Optional

import typer

from product360 import ReadinessOrchestrator, VersionStore, get_store, load_config
from product360.errors import Product360Error
from product360.loader import load_file

app = typer.Typer(help="CLI for product versioning and readiness")

# Command groups
versions_app = typer.Typer(help="Commands for listing and branching versions")
readiness_app = typer.Typer(help="Commands for Product 360 readiness")

app.add_typer(versions_app, name="versions")
app.add_typer(readiness_app, name="readiness")


@app.callback()
def main(
    log_level: str = typer.Option("WARNING", help="Logging level (DEBUG, INFO, ...)"),
) -> None:
    """product360 CLI entry point."""
    logging.basicConfig(
        level=log_level.upper(), format="%(asctime)s %(levelname)s %(name)s: %(message)s"
    )


def _fail(exc: Exception) -> None:
    typer.secho(str(exc), fg=typer.colors.RED)
    raise typer.Exit(code=1)


@app.command("load")
def load(path: Path) -> None:
    """
    Load versions, state programs, artifacts, tasks and change sets from a YAML file.

    Records are written to the configured store (PRODUCT360_DATABASE_URL or
    database_url in product360.yaml). Useful for seeding a SQLite database.

    Example:
        product360 load fixtures/homeowners.yaml
    """
    if not path.exists():
        typer.secho("Specified path does not exist", fg=typer.colors.RED)
        raise typer.Exit(code=1)
    try:
        counts = asyncio.run(load_file(get_store(), path))
    except (Product360Error, ValueError) as exc:
        _fail(exc)
    for kind, count in counts.items():
        typer.echo(f"{kind}: {count}")


@versions_app.command("list")
def versions_list(org_id: str, entity_type: str, entity_id: str) -> None:
    """
    List versions of an entity, newest first.

    Example:
        product360 versions list org-1 product homeowners
        # Output: 3    draft        Draft v3 (cloned from v2)
        #         2    published    Spring filing
    """
    store = VersionStore(get_store())
    try:
        versions = asyncio.run(store.get_versions(org_id, entity_type, entity_id))
    except (Product360Error, ValueError) as exc:
        _fail(exc)
    for v in versions:
        effective = v.effective_start.isoformat() if v.effective_start else "-"
        typer.echo(f"{v.version_number}\t{v.status.value}\t{effective}\t{v.id}\t{v.summary}")


@versions_app.command("clone")
def versions_clone(
    org_id: str,
    entity_type: str,
    entity_id: str,
    source_version_id: str,
    user: str = typer.Option(..., help="User id recorded as the draft's author"),
    summary: Optional[str] = typer.Option(None, help="Change note for the new draft"),
) -> None:
    """
    Branch a new draft from an existing version.

    Example:
        product360 versions clone org-1 product homeowners 5f1c... --user alice
        # Output: Created draft v4 (9ab2...)
    """
    store = VersionStore(get_store())
    try:
        draft = asyncio.run(
            store.clone_version(
                org_id, entity_type, entity_id, source_version_id, user, summary
            )
        )
    except (Product360Error, ValueError) as exc:
        _fail(exc)
    typer.echo(f"Created draft v{draft.version_number} ({draft.id})")


@versions_app.command("diff")
def versions_diff(
    org_id: str,
    entity_type: str,
    entity_id: str,
    left_version_id: str,
    right_version_id: str,
) -> None:
    """
    Compare the payloads of two versions of an entity.

    Example:
        product360 versions diff org-1 product homeowners v1 v2
        # Output: 2 added, 1 changed, 0 removed
        #         coverages.2
        #         deductible
    """
    store = VersionStore(get_store())
    try:
        result = asyncio.run(
            store.compare_versions(
                org_id, entity_type, entity_id, left_version_id, right_version_id
            )
        )
    except (Product360Error, ValueError) as exc:
        _fail(exc)
    typer.echo(
        f"{result.fields_added} added, {result.fields_changed} changed, "
        f"{result.fields_removed} removed"
    )
    for path in result.changed_paths:
        typer.echo(path)


@readiness_app.command("show")
def readiness_show(
    org_id: str,
    product_id: str,
    version: Optional[str] = typer.Option(None, help="Product version id"),
    as_json: bool = typer.Option(False, "--json", help="Print the full report as JSON"),
) -> None:
    """
    Compute the Product 360 readiness report.

    Example:
        product360 readiness show org-1 homeowners
        # Output: Homeowners v3: 71/100 (at_risk)
        #         States: 1 active, 1 ready, 1 blocked of 3
        #         Blockers:
        #         - Texas (TX) is blocked: missing forms
    """
    orchestrator = ReadinessOrchestrator(get_store(), config=load_config())
    try:
        report = asyncio.run(orchestrator.compute(org_id, product_id, version))
    except Product360Error as exc:
        _fail(exc)

    if as_json:
        typer.echo(report.model_dump_json(indent=2))
        return

    typer.echo(
        f"{report.product_name}: {report.overall_readiness_score}/100 ({report.band})"
    )
    stats = report.state_stats
    typer.echo(
        f"States: {stats.active} active, {stats.ready_to_activate} ready, "
        f"{stats.blocked} blocked of {stats.total}"
    )
    for artifact in report.artifacts:
        typer.echo(
            f"{artifact.label}: {artifact.score} "
            f"({artifact.published} published, {artifact.draft} draft)"
        )
    typer.echo(f"Pending approvals: {report.total_pending_approvals}")
    if report.blockers:
        typer.echo("Blockers:")
        for line in report.blockers:
            typer.echo(f"- {line}")


@readiness_app.command("missing")
def readiness_missing(
    org_id: str,
    product_id: str,
    state: str,
    version: Optional[str] = typer.Option(None, help="Product version id"),
    as_of: Optional[str] = typer.Option(None, help="Target date (YYYY-MM-DD), default today"),
) -> None:
    """
    Show what is missing to go live in one state on a date.

    Example:
        product360 readiness missing org-1 homeowners TX --as-of 2026-11-01
        # Output: - TX: missing required forms artifact
    """
    try:
        target = date.fromisoformat(as_of) if as_of else None
    except ValueError:
        typer.secho(f"Invalid date: {as_of}", fg=typer.colors.RED)
        raise typer.Exit(code=1)

    orchestrator = ReadinessOrchestrator(get_store(), config=load_config())
    try:
        lines = asyncio.run(
            orchestrator.whats_missing(org_id, product_id, version, state, target)
        )
    except (Product360Error, ValueError) as exc:
        _fail(exc)

    if not lines:
        typer.echo("No known blockers")
        return
    for line in lines:
        typer.echo(f"- {line}")
