"""
Site Waste Planner - CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Run the action (DB init, bundle load, planning stage).
  4. Report the result to stdout; errors go to stderr with exit code 1.

Install and run::

    pip install -e .
    site-waste --help
    site-waste init-db
    site-waste load-project --file config/projects/sample_project.json
    site-waste sync-allocation --project demo-house
    site-waste optimise --project demo-house --diversion-weight 1
    site-waste build-strategy --project demo-house --output-dir data/outputs
"""

from __future__ import annotations

import json
import sqlite3
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="site-waste",
    help="Construction site waste planner - allocation, facility optimiser and strategy.",
    add_completion=False,
)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from site_waste_planner.config import load_config

    try:
        return load_config(Path(config_path) if config_path else None)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    from site_waste_planner.utils.logging import configure_logging
    configure_logging(config.logging)


def _run_stage_or_exit(stage, project_id: str, **kwargs):
    """Run a planning stage; stage errors become ``[ERROR]`` + exit 1."""
    try:
        return stage.run(project_id=project_id, **kwargs)
    except sqlite3.Error as exc:
        typer.echo(f"[ERROR] Database error during {stage.stage_name}: {exc}", err=True)
        raise typer.Exit(code=1)
    except ValueError as exc:
        typer.echo(f"[ERROR] {stage.stage_name} failed: {exc}", err=True)
        raise typer.Exit(code=1)


ConfigOption = typer.Option(None, "--config", help="Path to TOML config file.")
DbPathOption = typer.Option(None, "--db-path", help="Override DB path from config.")
ProjectOption = typer.Option(..., "--project", "-p", help="Project id to plan.")


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("init-db")
def init_db(
    db_path: Optional[str] = DbPathOption,
    config_path: Optional[str] = ConfigOption,
) -> None:
    """Create the SQLite database and apply the schema.

    Safe to run repeatedly; all DDL uses IF NOT EXISTS.
    """
    from site_waste_planner.db.connection import get_connection
    from site_waste_planner.db.schema import ALL_TABLE_NAMES, apply_schema

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_path = db_path or config.database.db_path
    typer.echo(f"Initializing database at: {target_path}")

    with get_connection(
        target_path,
        wal_mode=config.database.wal_mode,
        busy_timeout_ms=config.database.busy_timeout_ms,
    ) as conn:
        apply_schema(conn)

    typer.echo(f"  Tables: {len(ALL_TABLE_NAMES)} created/verified.")
    typer.echo("[OK] Database ready.")


@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = ConfigOption,
    show_full: bool = typer.Option(False, "--full", help="Print the full config as JSON."),
) -> None:
    """Validate the configuration and print the parsed values."""
    config = _load_config_or_exit(config_path)
    opt = config.optimiser

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Database path:     {config.database.db_path}")
    typer.echo(f"  Output dir:        {config.data.output_dir}")
    typer.echo(f"  Catch-all stream:  {config.planning.catch_all_stream}")
    typer.echo(
        f"  Significance (t):  major >= {config.planning.major_stream_tonnes:g}, "
        f"medium >= {config.planning.medium_stream_tonnes:g}"
    )
    typer.echo(
        f"  Optimiser weights: distance={opt.distance_weight:g} cost={opt.cost_weight:g} "
        f"carbon={opt.carbon_weight:g} diversion={opt.diversion_weight:g}"
    )
    typer.echo(f"  Currency:          {config.impact.currency}")
    typer.echo(f"  Log level:         {config.logging.level}")
    typer.echo(f"  Debug mode:        {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))

    typer.echo("")
    typer.echo("[OK] Config is valid.")


@app.command("load-project")
def load_project(
    bundle_file: str = typer.Option(..., "--file", "-f", help="Path to a project bundle JSON file."),
    db_path: Optional[str] = DbPathOption,
    config_path: Optional[str] = ConfigOption,
) -> None:
    """Load a project bundle (streams, facilities, items, distances, plan) into the database.

    Upsert semantics: existing rows with the same keys are updated. The
    schema is applied first if missing.
    """
    from pydantic import ValidationError

    from site_waste_planner.catalog.seed_loader import load_project_bundle
    from site_waste_planner.db.connection import get_connection
    from site_waste_planner.db.schema import apply_schema

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    path = Path(bundle_file)
    typer.echo(f"Loading project bundle from: {path}")

    try:
        with get_connection(
            db_path or config.database.db_path,
            wal_mode=config.database.wal_mode,
            busy_timeout_ms=config.database.busy_timeout_ms,
        ) as conn:
            apply_schema(conn)
            counts = load_project_bundle(conn, path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except json.JSONDecodeError as exc:
        typer.echo(f"[ERROR] JSON parse error: {exc}", err=True)
        raise typer.Exit(code=1)
    except (ValidationError, ValueError) as exc:
        typer.echo(f"[ERROR] Bundle validation failed:\n{exc}", err=True)
        raise typer.Exit(code=1)

    for section, n in counts.items():
        typer.echo(f"  {section:<16} {n}")
    typer.echo("[OK] Project loaded.")


@app.command("sync-allocation")
def sync_allocation_cmd(
    project_id: str = ProjectOption,
    db_path: Optional[str] = DbPathOption,
    config_path: Optional[str] = ConfigOption,
) -> None:
    """Recompute forecast item masses and per-stream forecast tonnes."""
    from site_waste_planner.pipeline.sync import SyncAllocationStage
    from site_waste_planner.reporting.formatters import format_sync_result

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    stage = SyncAllocationStage(config=config, db_path=db_path)
    run = _run_stage_or_exit(stage, project_id)

    typer.echo(format_sync_result(stage.last_result, project_id))
    typer.echo("")
    typer.echo(f"[OK] Sync complete | rows={run.rows_processed} | run_slug={run.run_slug}")


@app.command("optimise")
def optimise_cmd(
    project_id: str = ProjectOption,
    distance_weight: Optional[float] = typer.Option(None, "--distance-weight", help="Override distance weight."),
    cost_weight: Optional[float] = typer.Option(None, "--cost-weight", help="Override cost weight."),
    carbon_weight: Optional[float] = typer.Option(None, "--carbon-weight", help="Override carbon weight."),
    diversion_weight: Optional[float] = typer.Option(None, "--diversion-weight", help="Override diversion weight."),
    output_dir: Optional[str] = typer.Option(None, "--output-dir", help="Write CSV/JSON results here."),
    db_path: Optional[str] = DbPathOption,
    config_path: Optional[str] = ConfigOption,
) -> None:
    """Recommend a facility for each stream in the project's plan.

    Weights default to the [optimiser] config section; any weight given on
    the command line replaces that one weight.
    """
    from site_waste_planner.models.optimiser import OptimiserWeights
    from site_waste_planner.pipeline.optimise import OptimiseStage
    from site_waste_planner.reporting.formatters import format_optimiser_results

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    opt = config.optimiser
    weights = OptimiserWeights(
        distance=opt.distance_weight if distance_weight is None else distance_weight,
        cost=opt.cost_weight if cost_weight is None else cost_weight,
        carbon=opt.carbon_weight if carbon_weight is None else carbon_weight,
        diversion=opt.diversion_weight if diversion_weight is None else diversion_weight,
    )

    stage = OptimiseStage(config=config, db_path=db_path)
    run = _run_stage_or_exit(
        stage,
        project_id,
        weights=weights,
        output_dir=Path(output_dir) if output_dir else None,
    )

    typer.echo(format_optimiser_results(stage.last_result, project_id))
    typer.echo("")
    typer.echo(f"[OK] Optimiser complete | streams={run.rows_processed} | run_slug={run.run_slug}")


@app.command("build-strategy")
def build_strategy_cmd(
    project_id: str = ProjectOption,
    output_dir: Optional[str] = typer.Option(
        None,
        "--output-dir",
        help="Write strategy JSON + CSVs here (default: config data.output_dir).",
    ),
    no_export: bool = typer.Option(False, "--no-export", help="Print only; write no files."),
    db_path: Optional[str] = DbPathOption,
    config_path: Optional[str] = ConfigOption,
) -> None:
    """Build the waste strategy: stream plans, recommendations and narrative."""
    from site_waste_planner.pipeline.strategy import BuildStrategyStage
    from site_waste_planner.reporting.formatters import format_strategy_report

    config = _load_config_or_exit(config_path)
    _configure_logging(config)

    target_dir = None if no_export else Path(output_dir or config.data.output_dir)

    stage = BuildStrategyStage(config=config, db_path=db_path)
    run = _run_stage_or_exit(stage, project_id, output_dir=target_dir)

    typer.echo(format_strategy_report(stage.last_result, config.planning.recommendation_display_limit))
    typer.echo("")
    if target_dir is not None:
        typer.echo(f"  Output: {target_dir}")
    typer.echo(f"[OK] Strategy built | recommendations={run.rows_processed} | run_slug={run.run_slug}")


# ── Entry point ───────────────────────────────────────────────────────────────

if __name__ == "__main__":
    app()
